"""
PLONK Prover 모듈 테스트
========================

prover 패키지의 5개 라운드(round1~5)와 전체 prove() 함수를 테스트한다.

테스트 회로: x³ + x + 5 = out (x = 3, out = 35 공개)
  게이트 0 (public): c = 35
  게이트 1 (mul): 3 * 3 = 9
  게이트 2 (mul): 9 * 3 = 27
  게이트 3 (add): 27 + 3 = 30
  게이트 4 (const): 30 + 5 = 35
"""

import pytest

from zkgrid.plonk.field import FR, ec_eq
from zkgrid.plonk.kzg import commit
from zkgrid.plonk.prover import Proof, ProverState, absorb_public_inputs, prove
from zkgrid.plonk.prover import round1, round2, round3, round4, round5
from zkgrid.plonk.utils import vanishing_poly_eval


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _state_after(rounds, cubic_wires, cubic_preprocessed, cubic_srs):
    a_vals, b_vals, c_vals, public_inputs = cubic_wires
    state = ProverState(a_vals, b_vals, c_vals, public_inputs, cubic_preprocessed, cubic_srs)
    absorb_public_inputs(state.transcript, state.public_inputs)
    for round_module in rounds:
        round_module.execute(state)
    return state


@pytest.fixture(scope="module")
def state_after_round1(cubic_wires, cubic_preprocessed, cubic_srs):
    return _state_after((round1,), cubic_wires, cubic_preprocessed, cubic_srs)


@pytest.fixture(scope="module")
def state_after_round3(cubic_wires, cubic_preprocessed, cubic_srs):
    return _state_after((round1, round2, round3), cubic_wires, cubic_preprocessed, cubic_srs)


@pytest.fixture(scope="module")
def state_after_round5(cubic_wires, cubic_preprocessed, cubic_srs):
    return _state_after((round1, round2, round3, round4, round5),
                        cubic_wires, cubic_preprocessed, cubic_srs)


# ---------------------------------------------------------------------------
# Proof / ProverState
# ---------------------------------------------------------------------------

class TestProofAndProverState:
    def test_proof_init_all_none(self):
        proof = Proof()
        for name in Proof.G1_FIELDS + Proof.FR_FIELDS:
            assert getattr(proof, name) is None

    def test_prover_state_converts_to_fr(self, cubic_wires, cubic_preprocessed, cubic_srs):
        a_vals, b_vals, c_vals, public_inputs = cubic_wires
        state = ProverState(a_vals, b_vals, c_vals, public_inputs, cubic_preprocessed, cubic_srs)
        assert state.public_inputs == [FR(35)]
        assert state.n == 8


# ---------------------------------------------------------------------------
# Round 1
# ---------------------------------------------------------------------------

class TestRound1:
    def test_pi_poly_encodes_public_input(self, state_after_round1):
        s = state_after_round1
        assert s.pi_poly.evaluate(s.domain[0]) == -FR(35)
        assert s.pi_poly.evaluate(s.domain[1]) == FR(0)

    def test_blinded_polys_keep_domain_values(self, state_after_round1):
        s = state_after_round1
        for i, w in enumerate(s.domain):
            assert s.a_poly.evaluate(w) == s.a_vals[i]
            assert s.c_poly.evaluate(w) == s.c_vals[i]

    def test_blinding_increases_degree(self, state_after_round1):
        assert state_after_round1.a_poly.degree == state_after_round1.n + 1

    def test_commitments_match(self, state_after_round1, cubic_srs):
        s = state_after_round1
        assert ec_eq(s.proof.a_comm, commit(s.a_poly, cubic_srs))


# ---------------------------------------------------------------------------
# Round 2 / 3
# ---------------------------------------------------------------------------

class TestRound2And3:
    def test_challenges_set(self, state_after_round3):
        s = state_after_round3
        assert s.beta is not None and s.gamma is not None and s.alpha is not None
        assert s.beta != s.gamma

    def test_z_starts_at_one(self, state_after_round3):
        s = state_after_round3
        assert s.z_poly.evaluate(s.domain[0]) == FR(1)

    def test_t_split_degrees(self, state_after_round3):
        s = state_after_round3
        assert s.t_lo_poly.degree < s.n
        assert s.t_mid_poly.degree < s.n

    def test_wrong_witness_fails_at_round3(self, cubic_wires, cubic_preprocessed, cubic_srs):
        """게이트 제약을 위반하는 배선 값은 Z_H로 나누어 떨어지지 않는다."""
        a_vals, b_vals, c_vals, public_inputs = cubic_wires
        bad_c = list(c_vals)
        bad_c[3] = bad_c[3] + 1
        # 복사 제약을 깨지 않도록 s를 쓰는 게이트 4의 a도 함께 바꾼다
        bad_a = list(a_vals)
        bad_a[4] = bad_a[4] + 1
        state = ProverState(bad_a, b_vals, bad_c, public_inputs, cubic_preprocessed, cubic_srs)
        absorb_public_inputs(state.transcript, state.public_inputs)
        round1.execute(state)
        round2.execute(state)
        with pytest.raises(ValueError):
            round3.execute(state)


# ---------------------------------------------------------------------------
# Round 4 / 5
# ---------------------------------------------------------------------------

class TestRound4And5:
    def test_evaluations_match_polynomials(self, state_after_round5):
        s = state_after_round5
        p = s.proof
        assert p.a_eval == s.a_poly.evaluate(s.zeta)
        assert p.s_sigma2_eval == s.preprocessed.s_sigma2_poly.evaluate(s.zeta)
        assert p.z_omega_eval == s.z_poly.evaluate(s.zeta * s.omega)

    def test_r_eval_equals_t_times_zh(self, state_after_round5):
        """r(ζ) = t(ζ) · Z_H(ζ)"""
        s = state_after_round5
        zeta_n = s.zeta ** s.n
        t_zeta = (
            s.t_lo_poly.evaluate(s.zeta)
            + s.t_mid_poly.evaluate(s.zeta) * zeta_n
            + s.t_hi_poly.evaluate(s.zeta) * zeta_n * zeta_n
        )
        assert s.proof.r_eval == t_zeta * vanishing_poly_eval(s.n, s.zeta)

    def test_v_set_after_r_eval(self, state_after_round5):
        assert state_after_round5.v is not None

    def test_all_fields_set(self, state_after_round5):
        for name in Proof.G1_FIELDS + Proof.FR_FIELDS:
            assert getattr(state_after_round5.proof, name) is not None


# ---------------------------------------------------------------------------
# prove()
# ---------------------------------------------------------------------------

class TestProveFunction:
    def test_on_round_called_in_order(self, cubic_circuit, cubic_wires,
                                      cubic_preprocessed, cubic_srs):
        a_vals, b_vals, c_vals, public_inputs = cubic_wires
        seen = []
        prove(cubic_circuit, a_vals, b_vals, c_vals, public_inputs,
              cubic_preprocessed, cubic_srs, on_round=seen.append)
        assert seen == [1, 2, 3, 4, 5]

    def test_on_round_can_abort(self, cubic_circuit, cubic_wires,
                                cubic_preprocessed, cubic_srs):
        a_vals, b_vals, c_vals, public_inputs = cubic_wires

        def stop_at_3(number):
            if number == 3:
                raise RuntimeError("stop")

        with pytest.raises(RuntimeError):
            prove(cubic_circuit, a_vals, b_vals, c_vals, public_inputs,
                  cubic_preprocessed, cubic_srs, on_round=stop_at_3)

    def test_wrong_public_input_count(self, cubic_circuit, cubic_wires,
                                      cubic_preprocessed, cubic_srs):
        a_vals, b_vals, c_vals, _ = cubic_wires
        with pytest.raises(ValueError):
            prove(cubic_circuit, a_vals, b_vals, c_vals, [],
                  cubic_preprocessed, cubic_srs)

    def test_wrong_wire_length(self, cubic_circuit, cubic_wires,
                               cubic_preprocessed, cubic_srs):
        a_vals, b_vals, c_vals, public_inputs = cubic_wires
        with pytest.raises(ValueError):
            prove(cubic_circuit, a_vals[:5], b_vals, c_vals, public_inputs,
                  cubic_preprocessed, cubic_srs)
