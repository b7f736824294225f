"""
PLONK 백엔드 테스트 픽스처
===========================

테스트 회로: x³ + x + 5 = out (x = 3, out = 35 공개)

  게이트 0 (public): c = out
  게이트 1 (mul):    x · x = x²
  게이트 2 (mul):    x² · x = x³
  게이트 3 (add):    x³ + x = s
  게이트 4 (const):  s + 5 = out

  5 게이트 → 도메인 크기 n = 8
"""

import pytest

from zkgrid.plonk.circuit import Circuit
from zkgrid.plonk.preprocessor import preprocess
from zkgrid.plonk.prover import prove
from zkgrid.plonk.srs import SRS
from zkgrid.witness import solve


def build_cubic_circuit():
    circuit = Circuit()
    out = circuit.new_variable("out")
    circuit.add_public_input_gate(out)
    x = circuit.add_private_input("x")
    x2 = circuit.new_variable()
    circuit.add_multiplication_gate(x, x, x2)
    x3 = circuit.new_variable()
    circuit.add_multiplication_gate(x2, x, x3)
    s = circuit.new_variable()
    circuit.add_addition_gate(x3, x, s)
    circuit.add_constant_gate(s, 5, out)
    return circuit


@pytest.fixture(scope="session")
def cubic_circuit():
    return build_cubic_circuit()


@pytest.fixture(scope="session")
def cubic_srs():
    """도메인 8 + 여유 10 차수의 결정론적 SRS."""
    return SRS.generate(18, seed=12345)


@pytest.fixture(scope="session")
def cubic_preprocessed(cubic_circuit, cubic_srs):
    return preprocess(cubic_circuit, cubic_srs)


@pytest.fixture(scope="session")
def cubic_wires(cubic_circuit, cubic_preprocessed):
    """(a_vals, b_vals, c_vals, public_inputs)"""
    witness = solve(cubic_circuit, {"x": 3}, {"out": 35})
    a_vals, b_vals, c_vals = witness.wire_values(cubic_circuit, cubic_preprocessed.n)
    return a_vals, b_vals, c_vals, witness.public_inputs


@pytest.fixture(scope="session")
def cubic_proof(cubic_circuit, cubic_wires, cubic_preprocessed, cubic_srs):
    a_vals, b_vals, c_vals, public_inputs = cubic_wires
    return prove(cubic_circuit, a_vals, b_vals, c_vals, public_inputs,
                 cubic_preprocessed, cubic_srs)
