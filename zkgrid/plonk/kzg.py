"""
KZG 다항식 커밋먼트 스킴
=========================

  - 커밋먼트: C = p(τ)·G1
  - 열기 증명: q(x) = (p(x) - y) / (x - z),  π = q(τ)·G1
  - 검증: e(C - y·G1, G2) == e(π, τ·G2 - z·G2)

사용 예시:
    >>> C = commit(poly, srs)
    >>> proof = create_witness(poly, FR(7), srs)
    >>> verify_opening(C, proof, FR(7), poly.evaluate(FR(7)), srs)  # True
"""

from zkgrid.plonk.field import FR, G1, Z1, ec_mul, ec_add, ec_neg, ec_pairing
from zkgrid.plonk.polynomial import Polynomial, poly_div


def commit(poly, srs):
    """다항식을 KZG 커밋한다: C = Σᵢ cᵢ · [τⁱ]₁.

    Raises:
        ValueError: 다항식 차수가 SRS 최대 차수를 초과할 때
    """
    if poly.degree > srs.max_degree:
        raise ValueError(
            f"다항식 차수 {poly.degree}가 SRS 최대 차수 {srs.max_degree}를 초과합니다"
        )

    result = Z1
    for i, coeff in enumerate(poly.coeffs):
        if coeff == 0:
            continue
        result = ec_add(result, ec_mul(srs.g1_powers[i], coeff))

    return result


def create_witness(poly, point, srs):
    """p(z)에 대한 열기 증명 π = commit((p(x) - p(z)) / (x - z))."""
    if not isinstance(point, FR):
        point = FR(point)

    y = poly.evaluate(point)
    quotient, remainder = poly_div(poly - Polynomial([y]), Polynomial([-point, FR(1)]))
    if not remainder.is_zero():
        raise ValueError("열기 증명 생성 실패: 나머지가 0이 아닙니다")

    return commit(quotient, srs)


def verify_opening(commitment, proof, point, evaluation, srs):
    """KZG 열기 증명을 검증한다.

    Returns:
        bool: e(C - y·G1, G2) == e(π, [τ - z]₂)
    """
    if not isinstance(point, FR):
        point = FR(point)
    if not isinstance(evaluation, FR):
        evaluation = FR(evaluation)

    tau_minus_z_g2 = ec_add(srs.g2_powers[1], ec_neg(ec_mul(srs.g2_powers[0], point)))
    c_minus_y = ec_add(commitment, ec_neg(ec_mul(G1, evaluation)))

    lhs = ec_pairing(srs.g2_powers[0], c_minus_y)
    rhs = ec_pairing(tau_minus_z_g2, proof)

    return lhs == rhs
