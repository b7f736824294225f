"""
PLONK Prover Round 3: 몫 다항식 t(x) 커밋먼트
================================================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: α  (Fiat-Shamir)           │
  │  Prover → Verifier: [t_lo]₁, [t_mid]₁, [t_hi]₁│
  └─────────────────────────────────────────────────┘

**세 가지 제약 항**:

  Term 1: 게이트 제약:
    q_L·a + q_R·b + q_O·c + q_M·a·b + q_C + PI

  Term 2: 순열 제약 (α 배수):
    (a + β·x + γ)(b + β·K1·x + γ)(c + β·K2·x + γ) · z(x)
    - (a + β·S_σ1 + γ)(b + β·S_σ2 + γ)(c + β·S_σ3 + γ) · z(ω·x)

  Term 3: 경계 제약 (α² 배수):
    (z(x) - 1) · L₁(x)

  t(x) = (Term1 + α·Term2 + α²·Term3) / Z_H(x)

**t(x) 3-분할**:
  t(x) = t_lo(x) + x^n·t_mid(x) + x^{2n}·t_hi(x)
  블라인딩 때문에 t의 차수는 3n + 5 이므로 t_hi는 n + 6개의 계수를 가진다.
"""

from zkgrid.plonk.field import FR
from zkgrid.plonk.polynomial import Polynomial
from zkgrid.plonk.kzg import commit
from zkgrid.plonk.permutation import K1, K2


def execute(state):
    """Round 3을 실행한다.

    Raises:
        ValueError: 제약 다항식이 Z_H(x)로 나누어 떨어지지 않을 때
                    (배선 값이 회로를 만족하지 않음)
    """
    # ── 1. α 챌린지 ──
    state.alpha = state.transcript.challenge_scalar(b"alpha")

    n = state.n
    alpha = state.alpha
    beta = state.beta
    gamma = state.gamma
    pp = state.preprocessed

    a = state.a_poly
    b = state.b_poly
    c = state.c_poly
    z = state.z_poly

    # ── 2. 보조 다항식 ──
    z_omega = z.shift_argument(state.omega)
    x_poly = Polynomial([FR(0), FR(1)])
    gamma_poly = Polynomial([gamma])

    # L₁(x): L₁(ω⁰) = 1, 나머지 도메인 점에서 0
    l1 = Polynomial.from_evaluations([FR(1)] + [FR(0)] * (n - 1), state.omega)

    # ── 3. 제약 다항식 ──
    term1 = (
        pp.q_l_poly * a
        + pp.q_r_poly * b
        + pp.q_o_poly * c
        + pp.q_m_poly * (a * b)
        + pp.q_c_poly
        + state.pi_poly
    )

    perm_num = (
        (a + x_poly * beta + gamma_poly)
        * (b + x_poly * (beta * K1) + gamma_poly)
        * (c + x_poly * (beta * K2) + gamma_poly)
        * z
    )
    perm_den = (
        (a + pp.s_sigma1_poly * beta + gamma_poly)
        * (b + pp.s_sigma2_poly * beta + gamma_poly)
        * (c + pp.s_sigma3_poly * beta + gamma_poly)
        * z_omega
    )
    term2 = (perm_num - perm_den) * alpha

    term3 = (z - Polynomial.one()) * l1 * (alpha * alpha)

    constraint = term1 + term2 + term3

    # ── 4. Z_H(x)로 나누기 ──
    try:
        t_poly = constraint.divide_by_vanishing(n)
    except ValueError as exc:
        raise ValueError(
            "제약 다항식이 Z_H(x)로 나누어 떨어지지 않습니다. "
            "회로 또는 witness에 오류가 있습니다."
        ) from exc

    # ── 5. 3-분할 ──
    t_coeffs = list(t_poly.coeffs)
    while len(t_coeffs) < 3 * n:
        t_coeffs.append(FR(0))

    state.t_lo_poly = Polynomial(t_coeffs[:n])
    state.t_mid_poly = Polynomial(t_coeffs[n:2 * n])
    state.t_hi_poly = Polynomial(t_coeffs[2 * n:])

    # ── 6. KZG 커밋 + 트랜스크립트 ──
    state.proof.t_lo_comm = commit(state.t_lo_poly, state.srs)
    state.proof.t_mid_comm = commit(state.t_mid_poly, state.srs)
    state.proof.t_hi_comm = commit(state.t_hi_poly, state.srs)

    state.transcript.append_point(b"t_lo_comm", state.proof.t_lo_comm)
    state.transcript.append_point(b"t_mid_comm", state.proof.t_mid_comm)
    state.transcript.append_point(b"t_hi_comm", state.proof.t_hi_comm)
