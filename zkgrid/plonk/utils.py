"""
PLONK 공유 유틸리티
===================

여러 모듈에서 공유되는 수학적 유틸리티.

  - vanishing_poly_eval: Z_H(ζ) = ζ^n - 1
  - lagrange_basis_eval: L_i(ζ)
  - public_input_polynomial / public_input_poly_eval: PI(x), PI(ζ)
  - next_power_of_2

**공개 입력 규약**:
  공개 입력 wᵢ는 회로의 i번째 게이트(공개 입력 게이트, q_O = 1)의
  c 배선에 놓인다. 게이트 제약
      q_O·c + PI(ωⁱ) = 0
  가 c = wᵢ를 강제하도록 PI(ωⁱ) = -wᵢ 로 정의한다.
"""

from zkgrid.plonk.field import FR
from zkgrid.plonk.polynomial import Polynomial


def vanishing_poly_eval(n, zeta):
    """소거 다항식 Z_H(ζ) = ζ^n - 1 을 평가한다."""
    return zeta ** n - FR(1)


def lagrange_basis_eval(i, n, omega, zeta):
    """i번째 Lagrange 기저 다항식 L_i(ζ)를 평가한다.

    공식:
        L_i(ζ) = (ω^i / n) · (ζ^n - 1) / (ζ - ω^i)

    Args:
        i: 기저 인덱스 (0 ≤ i < n)
        n: 도메인 크기
        omega: n차 원시 단위근
        zeta: 평가 점

    Returns:
        FR: L_i(ζ)
    """
    if not isinstance(zeta, FR):
        zeta = FR(zeta)

    omega_i = omega ** i
    denominator = zeta - omega_i
    if denominator == 0:
        return FR(1)

    zh_zeta = vanishing_poly_eval(n, zeta)
    return zh_zeta * omega_i / (FR(n) * denominator)


def public_input_polynomial(pub_inputs, n, omega):
    """공개 입력 다항식 PI(x) = -Σᵢ wᵢ · Lᵢ(x) 를 구성한다.

    Args:
        pub_inputs: 공개 입력 값 리스트 [w₀, w₁, ...]
        n: 도메인 크기
        omega: n차 원시 단위근

    Returns:
        Polynomial: PI(x)
    """
    if not pub_inputs:
        return Polynomial.zero()

    evals = [FR(0)] * n
    for i, val in enumerate(pub_inputs):
        evals[i] = -(val if isinstance(val, FR) else FR(val))

    return Polynomial.from_evaluations(evals, omega)


def public_input_poly_eval(pub_inputs, n, omega, zeta):
    """PI(ζ)를 다항식 구성 없이 Lagrange 기저 평가값으로 계산한다.

    Verifier가 사용한다. public_input_polynomial(...).evaluate(ζ)와 같다.
    """
    result = FR(0)
    for i, val in enumerate(pub_inputs):
        if not isinstance(val, FR):
            val = FR(val)
        result = result - val * lagrange_basis_eval(i, n, omega, zeta)
    return result


def next_power_of_2(n):
    """n 이상의 가장 작은 2의 거듭제곱.

    예시:
        >>> next_power_of_2(5)  # 8
    """
    if n <= 1:
        return 1
    p = 1
    while p < n:
        p <<= 1
    return p
