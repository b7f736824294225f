"""
PLONK Prover Round 5: 선형화 + KZG 열기 증명
===============================================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: v  (Fiat-Shamir)           │
  │  Prover → Verifier: r̄, [W_ζ]₁, [W_ζω]₁         │
  └─────────────────────────────────────────────────┘

**선형화 다항식 r(x)**:
  Round 4의 평가값을 스칼라로 대입하여 곱을 "스칼라 × 다항식"으로 바꾼다.
  r(ζ) = t(ζ)·Z_H(ζ) 가 성립한다.

  게이트: q_M(x)·ā·b̄ + q_L(x)·ā + q_R(x)·b̄ + q_O(x)·c̄ + q_C(x) + PI(ζ)
  순열:   α·(ā+βζ+γ)(b̄+βK1ζ+γ)(c̄+βK2ζ+γ)·z(x)
        - α·(ā+βs̄1+γ)(b̄+βs̄2+γ)·β·z̄ω·S_σ3(x)
        - α·(ā+βs̄1+γ)(b̄+βs̄2+γ)·(c̄+γ)·z̄ω
  경계:   α²·L₁(ζ)·z(x) - α²·L₁(ζ)

**일괄 열기**:
  W_ζ(x)  = [ (t_comb - t̄) + v(r - r̄) + v²(a - ā) + v³(b - b̄)
              + v⁴(c - c̄) + v⁵(S_σ1 - s̄1) + v⁶(S_σ2 - s̄2) ] / (x - ζ)
  W_ζω(x) = (z(x) - z̄ω) / (x - ζω)
"""

from zkgrid.plonk.field import FR
from zkgrid.plonk.polynomial import Polynomial, poly_div
from zkgrid.plonk.kzg import commit
from zkgrid.plonk.permutation import K1, K2
from zkgrid.plonk.utils import lagrange_basis_eval


def execute(state):
    """Round 5를 실행한다."""
    n = state.n
    zeta = state.zeta
    omega = state.omega
    alpha = state.alpha
    beta = state.beta
    gamma = state.gamma
    pp = state.preprocessed
    proof = state.proof

    a_eval = proof.a_eval
    b_eval = proof.b_eval
    c_eval = proof.c_eval
    s_sigma1_eval = proof.s_sigma1_eval
    s_sigma2_eval = proof.s_sigma2_eval
    z_omega_eval = proof.z_omega_eval

    pi_zeta = state.pi_poly.evaluate(zeta)
    l1_zeta = lagrange_basis_eval(0, n, omega, zeta)

    # ── 1. 선형화 다항식 r(x) ──
    r_poly = (
        pp.q_m_poly * (a_eval * b_eval)
        + pp.q_l_poly * a_eval
        + pp.q_r_poly * b_eval
        + pp.q_o_poly * c_eval
        + pp.q_c_poly
        + Polynomial([pi_zeta])
    )

    perm_z_scalar = (
        alpha
        * (a_eval + beta * zeta + gamma)
        * (b_eval + beta * K1 * zeta + gamma)
        * (c_eval + beta * K2 * zeta + gamma)
    )
    ab_factor = (
        (a_eval + beta * s_sigma1_eval + gamma)
        * (b_eval + beta * s_sigma2_eval + gamma)
    )
    perm_s3_scalar = alpha * ab_factor * beta * z_omega_eval
    perm_const = -(alpha * ab_factor * z_omega_eval * (c_eval + gamma))

    r_poly = r_poly + state.z_poly * perm_z_scalar
    r_poly = r_poly - pp.s_sigma3_poly * perm_s3_scalar
    r_poly = r_poly + Polynomial([perm_const])

    r_poly = r_poly + state.z_poly * (alpha * alpha * l1_zeta)
    r_poly = r_poly + Polynomial([-(alpha * alpha * l1_zeta)])

    r_eval = r_poly.evaluate(zeta)
    proof.r_eval = r_eval

    # r̄는 v보다 먼저 트랜스크립트에 고정되어야 한다
    state.transcript.append_scalar(b"r_eval", r_eval)
    state.v = state.transcript.challenge_scalar(b"v")
    v = state.v

    # ── 2. t(ζ) ──
    zeta_n = zeta ** n
    zeta_2n = zeta_n * zeta_n
    t_combined = (
        state.t_lo_poly
        + state.t_mid_poly * zeta_n
        + state.t_hi_poly * zeta_2n
    )
    t_eval = t_combined.evaluate(zeta)

    # ── 3. W_ζ(x) ──
    numerator = t_combined - Polynomial([t_eval])
    numerator = numerator + (r_poly - Polynomial([r_eval])) * v

    v_power = v
    for poly, value in (
        (state.a_poly, a_eval),
        (state.b_poly, b_eval),
        (state.c_poly, c_eval),
        (pp.s_sigma1_poly, s_sigma1_eval),
        (pp.s_sigma2_poly, s_sigma2_eval),
    ):
        v_power = v_power * v
        numerator = numerator + (poly - Polynomial([value])) * v_power

    W_zeta_poly, _ = poly_div(numerator, Polynomial([-zeta, FR(1)]))

    # ── 4. W_ζω(x) ──
    W_zeta_omega_poly, _ = poly_div(
        state.z_poly - Polynomial([z_omega_eval]),
        Polynomial([-(zeta * omega), FR(1)]),
    )

    # ── 5. KZG 커밋 + 트랜스크립트 (u 챌린지용) ──
    proof.W_zeta_comm = commit(W_zeta_poly, state.srs)
    proof.W_zeta_omega_comm = commit(W_zeta_omega_poly, state.srs)

    state.transcript.append_point(b"W_zeta_comm", proof.W_zeta_comm)
    state.transcript.append_point(b"W_zeta_omega_comm", proof.W_zeta_omega_comm)
