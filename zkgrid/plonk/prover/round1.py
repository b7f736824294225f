"""
PLONK Prover Round 1: 배선(Witness) 다항식 커밋먼트
=====================================================

  ┌─────────────────────────────────────────────────┐
  │  Prover → Verifier: [a]₁, [b]₁, [c]₁          │
  └─────────────────────────────────────────────────┘

**과정**:
  1. 공개 입력 다항식 PI(x) 구성 (PI(ωⁱ) = -wᵢ)
  2. 배선 값(a, b, c)을 IFFT로 보간
  3. 블라인딩: a'(x) = a(x) + (b₁ + b₂·x)·Z_H(x)
     도메인 위의 값은 그대로이고, 도메인 밖의 값은 무작위가 된다.
  4. KZG 커밋 후 트랜스크립트에 추가
"""

import secrets

from zkgrid.plonk.field import FR, CURVE_ORDER
from zkgrid.plonk.polynomial import Polynomial
from zkgrid.plonk.kzg import commit
from zkgrid.plonk.utils import public_input_polynomial


def execute(state):
    """Round 1을 실행한다.

    Args:
        state: ProverState. a_vals, b_vals, c_vals를 읽고,
               pi_poly, a_poly, b_poly, c_poly와 커밋먼트를 기록한다.
    """
    n = state.n
    omega = state.omega

    # ── 1. 공개 입력 다항식 ──
    state.pi_poly = public_input_polynomial(state.public_inputs, n, omega)

    # ── 2. 배선 다항식 보간 (IFFT) ──
    a_poly = Polynomial.from_evaluations(state.a_vals, omega)
    b_poly = Polynomial.from_evaluations(state.b_vals, omega)
    c_poly = Polynomial.from_evaluations(state.c_vals, omega)

    # ── 3. 블라인딩 ──
    zh = Polynomial.vanishing(n)
    state.a_poly = add_blinding(a_poly, zh, 2)
    state.b_poly = add_blinding(b_poly, zh, 2)
    state.c_poly = add_blinding(c_poly, zh, 2)

    # ── 4. KZG 커밋 + 트랜스크립트 ──
    state.proof.a_comm = commit(state.a_poly, state.srs)
    state.proof.b_comm = commit(state.b_poly, state.srs)
    state.proof.c_comm = commit(state.c_poly, state.srs)

    state.transcript.append_point(b"a_comm", state.proof.a_comm)
    state.transcript.append_point(b"b_comm", state.proof.b_comm)
    state.transcript.append_point(b"c_comm", state.proof.c_comm)


def add_blinding(poly, zh, num_blinds):
    """poly + (r₁ + r₂·x + ...)·Z_H(x), rᵢ는 무작위 FR."""
    blind_coeffs = [FR(secrets.randbelow(CURVE_ORDER)) for _ in range(num_blinds)]
    return poly + Polynomial(blind_coeffs) * zh
