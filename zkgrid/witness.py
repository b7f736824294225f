"""
Witness 생성기 (Witness Solver)
=================================

비공개 입력 (x, y, nullifier)과 공개 입력 (commitment)으로부터
회로의 모든 변수 값을 계산한다.

**풀이 규칙**:
  게이트를 순서대로 실행한다. 각 게이트에서 a, b는 이미 값이 있어야 하고
    c = -(q_L·a + q_R·b + q_M·a·b + q_C) / q_O
  로 c를 구한다. c가 이미 값을 가진 변수(예: commitment)라면 계산하는 대신
  제약을 검사한다. 공개 입력 게이트는 PI 항으로 검사되므로 건너뛴다.

비밀값이 커밋먼트로 해싱되지 않으면 마지막 게이트의 검사에서
WitnessGenerationError가 발생한다. 증명 생성 비용을 쓰기 전에 실패한다.

사용 예시:
    >>> witness = solve(artifact, {"x": 3, "y": 5, "nullifier": 123456},
    ...                 {"commitment": compute_commitment(3, 5, 123456)})
"""

from zkgrid.errors import WitnessGenerationError
from zkgrid.plonk.circuit import ZERO_VARIABLE
from zkgrid.plonk.field import FR
from zkgrid.poseidon import to_field_element


class Witness:
    """회로를 만족하는 변수 할당.

    속성:
        assignment: 변수 인덱스 → FR (길이 num_variables)
        public_inputs: 공개 입력 값 (회로의 공개 입력 순서, int)

    메모리에만 존재하며 저장하거나 전송하지 않는다.
    """

    def __init__(self, assignment, public_inputs):
        self.assignment = assignment
        self.public_inputs = public_inputs

    def wire_values(self, circuit, n):
        """도메인 크기 n으로 패딩된 배선 값 (a, b, c)."""
        return circuit.wire_values(self.assignment, n)

    def __repr__(self):
        # 비밀값이 로그에 남지 않도록 값을 출력하지 않는다
        return f"Witness(variables={len(self.assignment)}, public_inputs={len(self.public_inputs)})"


def _bind_inputs(circuit, values, variables, kind):
    if not isinstance(values, dict):
        raise WitnessGenerationError(f"{kind} 입력은 이름 → 값 딕셔너리여야 합니다")
    expected = {circuit.variable_name(v): v for v in variables}
    missing = sorted(set(expected) - set(values))
    unknown = sorted(set(values) - set(expected))
    if missing:
        raise WitnessGenerationError(f"{kind} 입력이 빠졌습니다: {', '.join(missing)}")
    if unknown:
        raise WitnessGenerationError(f"알 수 없는 {kind} 입력입니다: {', '.join(unknown)}")
    return [(expected[name], to_field_element(values[name], name)) for name in expected]


def solve(circuit, private_inputs, public_inputs):
    """회로의 만족 할당을 계산한다.

    Args:
        circuit: CommitmentCircuit 또는 Circuit
        private_inputs: {"x": ..., "y": ..., "nullifier": ...}
        public_inputs: {"commitment": ...}

    Returns:
        Witness

    Raises:
        RangeError: 입력이 필드 범위를 벗어날 때
        WitnessGenerationError: 입력 이름이 틀렸거나 제약이 만족되지 않을 때
    """
    circuit = getattr(circuit, "circuit", circuit)

    assignment = [None] * circuit.num_variables
    assignment[ZERO_VARIABLE] = FR(0)

    for var, value in _bind_inputs(circuit, private_inputs, circuit.private_variables, "비공개"):
        assignment[var] = FR(value)
    public_bound = _bind_inputs(circuit, public_inputs, circuit.public_variables, "공개")
    for var, value in public_bound:
        assignment[var] = FR(value)

    for index, gate in enumerate(circuit.gates):
        if index < circuit.num_public_inputs:
            continue

        a = assignment[gate.a]
        b = assignment[gate.b]
        if a is None or b is None:
            raise WitnessGenerationError(f"게이트 {index}의 입력 배선에 값이 없습니다")

        if assignment[gate.c] is None:
            if gate.q_o == 0:
                raise WitnessGenerationError(f"게이트 {index}의 출력을 풀 수 없습니다 (q_O = 0)")
            partial = gate.q_l * a + gate.q_r * b + gate.q_m * (a * b) + gate.q_c
            assignment[gate.c] = -partial / gate.q_o
        elif not gate.check(a, b, assignment[gate.c]):
            raise WitnessGenerationError(
                f"게이트 {index}의 제약이 만족되지 않습니다: "
                "비밀값이 커밋먼트와 일치하지 않습니다"
            )

    unassigned = [i for i, v in enumerate(assignment) if v is None]
    if unassigned:
        raise WitnessGenerationError(f"값이 정해지지 않은 변수가 있습니다: {unassigned[:5]}")

    ordered_public = [int(assignment[v]) for v in circuit.public_variables]
    return Witness(assignment, ordered_public)
