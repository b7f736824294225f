"""
PLONK Verifier
================

PLONK 증명을 검증한다. 검증 키(셀렉터/순열 커밋먼트, n, ω)와
SRS의 G2 원소만 필요하며, 다항식 원본은 쓰지 않는다.

**검증 과정**:
  1. Fiat-Shamir 트랜스크립트 재생 (공개 입력부터 흡수)
     → β, γ, α, ζ, v, u 챌린지 복원
  2. Z_H(ζ), L₁(ζ), PI(ζ) 계산
  3. 선형화 커밋먼트 [D]₁ 구성
  4. r₀ 계산 (선형화 다항식의 상수 기여분)
  5. 결합 커밋먼트 [F]₁, [E]₁ 구성
  6. 페어링 검사

**핵심 방정식**:
  commit(r(x)) = [D]₁ + r₀·G₁
  [F]₁ = [t_comb]₁ + v·([D]₁ + r₀·G₁) + v²·[a]₁ + ... + v⁶·[S_σ2]₁
  E = t̄ + v·r̄ + v²·ā + ... + v⁶·s̄_σ2 + u·z̄_ω,   t̄ = r̄ / Z_H(ζ)

  페어링: e([W_ζ]₁ + u·[W_ζω]₁, [τ]₂)
        == e(ζ·[W_ζ]₁ + uζω·[W_ζω]₁ + [F]₁ + u·[z]₁ - [E]₁, G₂)

사용 예시:
    >>> from zkgrid.plonk.verifier import verify
    >>> verify(proof, public_inputs, verification_key, srs)  # True
"""

import logging

from zkgrid.plonk.field import FR, G1, ec_mul, ec_add, ec_neg, ec_pairing
from zkgrid.plonk.transcript import KeccakTranscript
from zkgrid.plonk.permutation import K1, K2
from zkgrid.plonk.prover import Proof, absorb_public_inputs
from zkgrid.plonk.utils import (
    vanishing_poly_eval,
    lagrange_basis_eval,
    public_input_poly_eval,
)

logger = logging.getLogger(__name__)


def verify(proof, public_inputs, preprocessed, srs, transcript=None):
    """PLONK 증명을 검증한다.

    Args:
        proof: Proof 객체
        public_inputs: 공개 입력 값 리스트 (회로의 공개 입력 순서)
        preprocessed: PreprocessedData 또는 VerificationKey
            (n, omega, num_public_inputs, *_comm 속성만 사용)
        srs: SRS (g2_powers만 사용)
        transcript: Prover와 같은 모드의 새 트랜스크립트 (None이면 keccak)

    Returns:
        bool: 검증 성공 여부
    """
    pp = preprocessed
    n = pp.n
    omega = pp.omega

    if len(public_inputs) != pp.num_public_inputs:
        logger.debug("public input count mismatch: %d != %d",
                     len(public_inputs), pp.num_public_inputs)
        return False
    if any(getattr(proof, name) is None for name in Proof.G1_FIELDS + Proof.FR_FIELDS):
        return False

    public_inputs = [v if isinstance(v, FR) else FR(v) for v in public_inputs]

    # ── Step 1: Fiat-Shamir 트랜스크립트 재생 ──
    if transcript is None:
        transcript = KeccakTranscript()

    absorb_public_inputs(transcript, public_inputs)

    transcript.append_point(b"a_comm", proof.a_comm)
    transcript.append_point(b"b_comm", proof.b_comm)
    transcript.append_point(b"c_comm", proof.c_comm)

    beta = transcript.challenge_scalar(b"beta")
    gamma = transcript.challenge_scalar(b"gamma")

    transcript.append_point(b"z_comm", proof.z_comm)

    alpha = transcript.challenge_scalar(b"alpha")

    transcript.append_point(b"t_lo_comm", proof.t_lo_comm)
    transcript.append_point(b"t_mid_comm", proof.t_mid_comm)
    transcript.append_point(b"t_hi_comm", proof.t_hi_comm)

    zeta = transcript.challenge_scalar(b"zeta")

    transcript.append_scalar(b"a_eval", proof.a_eval)
    transcript.append_scalar(b"b_eval", proof.b_eval)
    transcript.append_scalar(b"c_eval", proof.c_eval)
    transcript.append_scalar(b"s_sigma1_eval", proof.s_sigma1_eval)
    transcript.append_scalar(b"s_sigma2_eval", proof.s_sigma2_eval)
    transcript.append_scalar(b"z_omega_eval", proof.z_omega_eval)
    transcript.append_scalar(b"r_eval", proof.r_eval)

    v = transcript.challenge_scalar(b"v")

    transcript.append_point(b"W_zeta_comm", proof.W_zeta_comm)
    transcript.append_point(b"W_zeta_omega_comm", proof.W_zeta_omega_comm)

    u = transcript.challenge_scalar(b"u")

    # ── Step 2: 공개 값 계산 ──
    a_eval = proof.a_eval
    b_eval = proof.b_eval
    c_eval = proof.c_eval
    s_sigma1_eval = proof.s_sigma1_eval
    s_sigma2_eval = proof.s_sigma2_eval
    z_omega_eval = proof.z_omega_eval

    zh_zeta = vanishing_poly_eval(n, zeta)
    if zh_zeta == 0:
        # ζ가 도메인 위에 떨어지면 t̄를 복원할 수 없다
        return False
    l1_zeta = lagrange_basis_eval(0, n, omega, zeta)
    pi_zeta = public_input_poly_eval(public_inputs, n, omega, zeta)

    # ── Step 3: 선형화 커밋먼트 [D]₁ ──
    D = ec_mul(pp.q_m_comm, a_eval * b_eval)
    D = ec_add(D, ec_mul(pp.q_l_comm, a_eval))
    D = ec_add(D, ec_mul(pp.q_r_comm, b_eval))
    D = ec_add(D, ec_mul(pp.q_o_comm, c_eval))
    D = ec_add(D, pp.q_c_comm)

    perm_z_scalar = (
        alpha
        * (a_eval + beta * zeta + gamma)
        * (b_eval + beta * K1 * zeta + gamma)
        * (c_eval + beta * K2 * zeta + gamma)
    )
    D = ec_add(D, ec_mul(proof.z_comm, perm_z_scalar))

    ab_factor = (
        (a_eval + beta * s_sigma1_eval + gamma)
        * (b_eval + beta * s_sigma2_eval + gamma)
    )
    perm_s3_scalar = alpha * ab_factor * beta * z_omega_eval
    D = ec_add(D, ec_neg(ec_mul(pp.s_sigma3_comm, perm_s3_scalar)))

    D = ec_add(D, ec_mul(proof.z_comm, alpha * alpha * l1_zeta))

    # ── Step 4: r₀ (상수 기여분) ──
    r_0 = (
        pi_zeta
        - alpha * ab_factor * z_omega_eval * (c_eval + gamma)
        - alpha * alpha * l1_zeta
    )

    # ── Step 5: [F]₁ 및 [E]₁ 구성 ──
    zeta_n = zeta ** n
    zeta_2n = zeta_n * zeta_n
    t_comm = ec_add(
        proof.t_lo_comm,
        ec_add(
            ec_mul(proof.t_mid_comm, zeta_n),
            ec_mul(proof.t_hi_comm, zeta_2n)
        )
    )

    F = t_comm
    F = ec_add(F, ec_mul(D, v))
    F = ec_add(F, ec_mul(G1, v * r_0))

    r_eval = proof.r_eval
    t_eval = r_eval / zh_zeta
    e_scalar = t_eval + v * r_eval

    v_pow = v
    for comm, value in (
        (proof.a_comm, a_eval),
        (proof.b_comm, b_eval),
        (proof.c_comm, c_eval),
        (pp.s_sigma1_comm, s_sigma1_eval),
        (pp.s_sigma2_comm, s_sigma2_eval),
    ):
        v_pow = v_pow * v
        F = ec_add(F, ec_mul(comm, v_pow))
        e_scalar = e_scalar + v_pow * value

    e_scalar = e_scalar + u * z_omega_eval
    E = ec_mul(G1, e_scalar)

    # ── Step 6: 페어링 검사 ──
    A = ec_add(proof.W_zeta_comm, ec_mul(proof.W_zeta_omega_comm, u))

    B = ec_mul(proof.W_zeta_comm, zeta)
    B = ec_add(B, ec_mul(proof.W_zeta_omega_comm, u * zeta * omega))
    B = ec_add(B, F)
    B = ec_add(B, ec_mul(proof.z_comm, u))
    B = ec_add(B, ec_neg(E))

    lhs = ec_pairing(srs.g2_powers[1], A)
    rhs = ec_pairing(srs.g2_powers[0], B)

    return lhs == rhs
