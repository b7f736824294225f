"""
PLONK Prover Round 2: 순열 누적자 z(x) 커밋먼트
=================================================

  ┌─────────────────────────────────────────────────┐
  │  Verifier → Prover: β, γ  (Fiat-Shamir)       │
  │  Prover → Verifier: [z]₁                       │
  └─────────────────────────────────────────────────┘

  z(ω⁰) = 1
  z(ω^{i+1}) = z(ωⁱ) ·
      (aᵢ + β·ωⁱ + γ)(bᵢ + β·K1·ωⁱ + γ)(cᵢ + β·K2·ωⁱ + γ)
      ─────────────────────────────────────────────────────────
      (aᵢ + β·S_σ1(ωⁱ) + γ)(bᵢ + β·S_σ2(ωⁱ) + γ)(cᵢ + β·S_σ3(ωⁱ) + γ)

**블라인딩**:
  z'(x) = z(x) + (b₁ + b₂·x + b₃·x²)·Z_H(x)
  z는 ζ와 ζω 두 점에서 열리므로 블라인딩 계수 3개를 쓴다.
"""

from zkgrid.plonk.polynomial import Polynomial
from zkgrid.plonk.kzg import commit
from zkgrid.plonk.permutation import compute_accumulator
from zkgrid.plonk.prover.round1 import add_blinding


def execute(state):
    """Round 2를 실행한다.

    Args:
        state: ProverState. Round 1의 결과를 읽고,
               z_poly와 [z]₁ 커밋먼트를 기록한다.
    """
    # ── 1. β, γ 챌린지 ──
    state.beta = state.transcript.challenge_scalar(b"beta")
    state.gamma = state.transcript.challenge_scalar(b"gamma")

    # ── 2. 누적자 평가값 ──
    z_evals = compute_accumulator(
        state.a_vals, state.b_vals, state.c_vals,
        state.preprocessed.sigma_evals, state.domain,
        state.beta, state.gamma,
    )

    # ── 3. 보간 + 블라인딩 ──
    z_poly = Polynomial.from_evaluations(z_evals, state.omega)
    state.z_poly = add_blinding(z_poly, Polynomial.vanishing(state.n), 3)

    # ── 4. KZG 커밋 + 트랜스크립트 ──
    state.proof.z_comm = commit(state.z_poly, state.srs)
    state.transcript.append_point(b"z_comm", state.proof.z_comm)
