"""
Witness 생성 테스트
====================
"""

import pytest

from zkgrid.errors import RangeError, WitnessGenerationError
from zkgrid.plonk.circuit import Circuit
from zkgrid.plonk.field import CURVE_ORDER, FR
from zkgrid.witness import Witness, solve


class TestSolve:
    def test_public_inputs(self, witness, commitment):
        assert witness.public_inputs == [commitment]

    def test_assignment_complete(self, artifact, witness):
        assert len(witness.assignment) == artifact.circuit.num_variables
        assert all(isinstance(v, FR) for v in witness.assignment)
        assert witness.assignment[0] == FR(0)

    def test_inputs_bound(self, artifact, witness):
        circuit = artifact.circuit
        assert witness.assignment[circuit.variable("x")] == FR(3)
        assert witness.assignment[circuit.variable("nullifier")] == FR(123456)

    def test_wire_values_padded(self, artifact, witness):
        a_vals, b_vals, c_vals = witness.wire_values(artifact.circuit, 256)
        assert len(a_vals) == len(b_vals) == len(c_vals) == 256
        assert c_vals[0] == FR(witness.public_inputs[0])

    def test_accepts_bare_circuit(self, artifact, private_inputs, commitment):
        witness = solve(artifact.circuit, private_inputs, {"commitment": commitment})
        assert witness.public_inputs == [commitment]

    def test_repr_hides_values(self, witness):
        text = repr(witness)
        assert "123456" not in text
        assert text.startswith("Witness(")


class TestMismatch:
    @pytest.mark.parametrize("field, value", [("x", 4), ("y", 6), ("nullifier", 123457)])
    def test_wrong_secret(self, artifact, private_inputs, commitment, field, value):
        inputs = dict(private_inputs, **{field: value})
        with pytest.raises(WitnessGenerationError):
            solve(artifact, inputs, {"commitment": commitment})

    def test_wrong_commitment(self, artifact, private_inputs, commitment):
        with pytest.raises(WitnessGenerationError):
            solve(artifact, private_inputs, {"commitment": (commitment + 1) % CURVE_ORDER})


class TestInputValidation:
    def test_missing_private_input(self, artifact, commitment):
        with pytest.raises(WitnessGenerationError):
            solve(artifact, {"x": 3, "y": 5}, {"commitment": commitment})

    def test_unknown_private_input(self, artifact, private_inputs, commitment):
        inputs = dict(private_inputs, z=1)
        with pytest.raises(WitnessGenerationError):
            solve(artifact, inputs, {"commitment": commitment})

    def test_missing_public_input(self, artifact, private_inputs):
        with pytest.raises(WitnessGenerationError):
            solve(artifact, private_inputs, {})

    def test_not_a_mapping(self, artifact, commitment):
        with pytest.raises(WitnessGenerationError):
            solve(artifact, [3, 5, 123456], {"commitment": commitment})

    def test_out_of_range(self, artifact, private_inputs, commitment):
        inputs = dict(private_inputs, x=CURVE_ORDER)
        with pytest.raises(RangeError):
            solve(artifact, inputs, {"commitment": commitment})


class TestUnsolvable:
    def test_unassigned_gate_input(self):
        circuit = Circuit()
        x = circuit.add_private_input("x")
        dangling = circuit.new_variable()
        out = circuit.new_variable()
        circuit.add_addition_gate(x, dangling, out)
        with pytest.raises(WitnessGenerationError):
            solve(circuit, {"x": 1}, {})

    def test_zero_output_selector(self):
        circuit = Circuit()
        x = circuit.add_private_input("x")
        out = circuit.new_variable()
        circuit.add_gate(1, 0, 0, 0, 0, x, x, out)
        with pytest.raises(WitnessGenerationError):
            solve(circuit, {"x": 1}, {})

    def test_unused_variable(self):
        circuit = Circuit()
        x = circuit.add_private_input("x")
        y = circuit.new_variable()
        circuit.new_variable()
        circuit.add_addition_gate(x, x, y)
        with pytest.raises(WitnessGenerationError):
            solve(circuit, {"x": 1}, {})

    def test_witness_constructor(self):
        witness = Witness([FR(0), FR(1)], [])
        assert witness.public_inputs == []
