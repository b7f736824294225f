"""
PLONK 순열 인자 (Permutation Argument)
========================================

배선 복사 제약을 순열로 인코딩하고 Grand Product로 증명한다.

**코셋 식별자 K1, K2**:
  3n개의 배선 위치를 서로소인 3개의 코셋으로 나눈다.
  - a 배선: H         = {ω⁰, ..., ω^{n-1}}
  - b 배선: K1·H
  - c 배선: K2·H

**순열 누적자 z(x)**:
  z(ω⁰) = 1
  z(ωⁱ⁺¹) = z(ωⁱ) · ∏ₖ (wₖ(ωⁱ) + β·id_k(ωⁱ) + γ) / (wₖ(ωⁱ) + β·σₖ(ωⁱ) + γ)
"""

from zkgrid.plonk.field import FR


K1 = FR(2)
K2 = FR(3)


def build_permutation_polynomials(sigma, n, domain):
    """순열 σ를 S_σ1, S_σ2, S_σ3의 평가값으로 인코딩한다.

    Args:
        sigma: 길이 3n의 순열 (Circuit.build_copy_constraints 결과)
        n: 도메인 크기
        domain: [ω⁰, ..., ω^{n-1}]

    Returns:
        tuple: (S_sigma1_evals, S_sigma2_evals, S_sigma3_evals)
    """
    def position_to_value(pos):
        if pos < n:
            return domain[pos]
        elif pos < 2 * n:
            return K1 * domain[pos - n]
        return K2 * domain[pos - 2 * n]

    s_sigma1_evals = [position_to_value(sigma[i]) for i in range(n)]
    s_sigma2_evals = [position_to_value(sigma[n + i]) for i in range(n)]
    s_sigma3_evals = [position_to_value(sigma[2 * n + i]) for i in range(n)]

    return s_sigma1_evals, s_sigma2_evals, s_sigma3_evals


def compute_accumulator(a_vals, b_vals, c_vals, sigma_evals, domain, beta, gamma):
    """순열 누적자 z의 평가값 [z(ω⁰)=1, z(ω¹), ..., z(ω^{n-1})]을 계산한다.

    Args:
        a_vals, b_vals, c_vals: 배선 값 (길이 n)
        sigma_evals: build_permutation_polynomials의 결과
        domain: [ω⁰, ..., ω^{n-1}]
        beta, gamma: 챌린지

    Raises:
        ValueError: z(ω^n) ≠ 1 (배선 값이 복사 제약을 위반)
    """
    s1, s2, s3 = sigma_evals
    n = len(domain)

    z_evals = [FR(1)]
    acc = FR(1)
    for i in range(n):
        num = (
            (a_vals[i] + beta * domain[i] + gamma)
            * (b_vals[i] + beta * K1 * domain[i] + gamma)
            * (c_vals[i] + beta * K2 * domain[i] + gamma)
        )
        den = (
            (a_vals[i] + beta * s1[i] + gamma)
            * (b_vals[i] + beta * s2[i] + gamma)
            * (c_vals[i] + beta * s3[i] + gamma)
        )
        acc = acc * num / den
        if i < n - 1:
            z_evals.append(acc)

    # 텔레스코핑: 올바른 순열이면 전체 곱이 1
    if acc != 1:
        raise ValueError("순열 누적자가 1로 닫히지 않습니다 (복사 제약 위반)")

    return z_evals
