"""
커밋먼트 회로 (Circuit Definition)
====================================

  비공개 입력: x, y, nullifier
  공개 입력:   commitment
  제약:        Poseidon2(x, y, nullifier) == commitment

Poseidon2 순열을 PLONK 게이트로 펼친 고정 회로. 한 번 컴파일하여
버전이 붙은 JSON 아티팩트로 저장하고, 프로세스 시작 시 한 번 로드한다.

**게이트 배치**:

  게이트 0           공개 입력 게이트 (c = commitment)
  게이트 1           capacity 상수 (len · 2⁶⁴)
  M_E                선형 게이트 8개 (아래 분해)
  full round         S-box 4개 × 3 게이트 + M_E 8 게이트
  partial round      S-box 1개 × 3 게이트 + M_I 7 게이트
  마지막 full round  M_E 중 출력 0번 행만 3 게이트로 계산하여
                     commitment 변수에 바로 쓴다

  M_E 분해 (t₀ … t₇는 모두 선형 게이트):
    t₀ = x₀ + x₁        t₁ = x₂ + x₃
    t₂ = 2x₁ + t₁       t₃ = 2x₃ + t₀
    t₄ = 4t₁ + t₃       t₅ = 4t₀ + t₂
    t₆ = t₃ + t₅        t₇ = t₂ + t₄
    출력 = (t₆, t₅, t₇, t₄)

  S-box (s + rc)⁵, 라운드 상수는 셀렉터에 접어 넣는다:
    sq  = s² + 2rc·s + rc²      (q_M = 1, q_L = 2rc, q_C = rc²)
    q4  = sq · sq
    out = q4 · s + rc · q4      (a = q4, b = s, q_L = rc)

**아티팩트 형식** (format "zkgrid-circuit", version 1):

  {
    "format", "version", "hash_profile", "fingerprint",
    "private_inputs": ["x", "y", "nullifier"],
    "public_inputs": ["commitment"],
    "num_variables", "variables": {이름: 인덱스},
    "gates": [[q_L, q_R, q_O, q_M, q_C, a, b, c], ...]   셀렉터는 10진 문자열
  }

로더는 형식/버전, 해시 프로파일과 지문, 입력 개수(비공개 3, 공개 1)를
검사한다. 지문은 현재 설정의 해시 파라미터로 다시 계산한 값과 같아야 한다.
"""

import json
import logging
from pathlib import Path

from zkgrid.errors import CircuitArtifactError
from zkgrid.plonk.circuit import Circuit, ZERO_VARIABLE
from zkgrid.plonk.field import FR
from zkgrid.poseidon import hash_parameters, initial_state

logger = logging.getLogger(__name__)

ARTIFACT_FORMAT = "zkgrid-circuit"
ARTIFACT_VERSION = 1

PRIVATE_INPUTS = ("x", "y", "nullifier")
PUBLIC_INPUTS = ("commitment",)


class CommitmentCircuit:
    """로드된 커밋먼트 회로.

    속성:
        circuit: Circuit
        hash_profile: 회로가 구현하는 해시 프로파일 이름
        fingerprint: 해시 파라미터 지문
    """

    def __init__(self, circuit, hash_profile, fingerprint):
        self.circuit = circuit
        self.hash_profile = hash_profile
        self.fingerprint = fingerprint

    @property
    def private_inputs(self):
        return tuple(self.circuit.variable_name(v) for v in self.circuit.private_variables)

    @property
    def public_inputs(self):
        return tuple(self.circuit.variable_name(v) for v in self.circuit.public_variables)

    def __repr__(self):
        return (
            f"CommitmentCircuit(profile={self.hash_profile!r}, "
            f"gates={self.circuit.n}, variables={self.circuit.num_variables})"
        )


# ─────────────────────────────────────────────────────────────────────
# 컴파일
# ─────────────────────────────────────────────────────────────────────

class _Builder:
    """Poseidon2 순열을 게이트로 펼치는 보조 객체."""

    def __init__(self, circuit):
        self.circuit = circuit

    def linear(self, a, b, q_l, q_r, out=None):
        """out = q_L·a + q_R·b"""
        if out is None:
            out = self.circuit.new_variable()
        self.circuit.add_gate(q_l, q_r, -1, 0, 0, a, b, out)
        return out

    def constant(self, value):
        out = self.circuit.new_variable()
        self.circuit.add_gate(0, 0, -1, 0, value, ZERO_VARIABLE, ZERO_VARIABLE, out)
        return out

    def sbox(self, s, rc):
        """(s + rc)⁵"""
        rc = FR(rc)
        sq = self.circuit.new_variable()
        self.circuit.add_gate(rc * 2, 0, -1, 1, rc * rc, s, s, sq)
        q4 = self.circuit.new_variable()
        self.circuit.add_multiplication_gate(sq, sq, q4)
        out = self.circuit.new_variable()
        self.circuit.add_gate(rc, 0, -1, 1, 0, q4, s, out)
        return out

    def external_layer(self, state):
        x0, x1, x2, x3 = state
        t0 = self.linear(x0, x1, 1, 1)
        t1 = self.linear(x2, x3, 1, 1)
        t2 = self.linear(x1, t1, 2, 1)
        t3 = self.linear(x3, t0, 2, 1)
        t4 = self.linear(t1, t3, 4, 1)
        t5 = self.linear(t0, t2, 4, 1)
        t6 = self.linear(t3, t5, 1, 1)
        t7 = self.linear(t2, t4, 1, 1)
        return [t6, t5, t7, t4]

    def external_row0(self, state, out):
        """M_E의 0번 행만: out = 5x₀ + 7x₁ + x₂ + 3x₃"""
        x0, x1, x2, x3 = state
        row = self.linear(x0, x1, 5, 7)
        rest = self.linear(x2, x3, 1, 3)
        return self.linear(row, rest, 1, 1, out=out)

    def internal_layer(self, state, diagonal):
        u0, u1, u2, u3 = state
        s01 = self.linear(u0, u1, 1, 1)
        s23 = self.linear(u2, u3, 1, 1)
        total = self.linear(s01, s23, 1, 1)
        return [self.linear(u, total, d, 1) for u, d in zip(state, diagonal)]


def compile_commitment_circuit(profile=None):
    """Poseidon2(x, y, nullifier) == commitment 회로를 컴파일한다.

    Args:
        profile: 해시 프로파일 (None이면 설정값)

    Returns:
        CommitmentCircuit
    """
    params = hash_parameters(profile)
    circuit = Circuit()
    builder = _Builder(circuit)

    commitment = circuit.new_variable("commitment")
    circuit.add_public_input_gate(commitment)

    inputs = [circuit.add_private_input(name) for name in PRIVATE_INPUTS]
    state = inputs + [builder.constant(initial_state(len(inputs))[3])]

    state = builder.external_layer(state)
    last = params.num_rounds - 1
    for r, rc in enumerate(params.round_constants):
        if params.is_partial_round(r):
            state[0] = builder.sbox(state[0], rc[0])
            state = builder.internal_layer(state, params.internal_diagonal)
            continue
        state = [builder.sbox(s, c) for s, c in zip(state, rc)]
        if r == last:
            builder.external_row0(state, commitment)
        else:
            state = builder.external_layer(state)

    logger.info("compiled commitment circuit: profile=%s gates=%d variables=%d",
                params.profile, circuit.n, circuit.num_variables)
    return CommitmentCircuit(circuit, params.profile, params.fingerprint)


# ─────────────────────────────────────────────────────────────────────
# 저장 / 로드
# ─────────────────────────────────────────────────────────────────────

def circuit_to_dict(artifact):
    circuit = artifact.circuit
    return {
        "format": ARTIFACT_FORMAT,
        "version": ARTIFACT_VERSION,
        "hash_profile": artifact.hash_profile,
        "fingerprint": artifact.fingerprint,
        "private_inputs": list(artifact.private_inputs),
        "public_inputs": list(artifact.public_inputs),
        "num_variables": circuit.num_variables,
        "variables": dict(circuit.variable_names),
        "gates": [
            [str(int(g.q_l)), str(int(g.q_r)), str(int(g.q_o)),
             str(int(g.q_m)), str(int(g.q_c)), g.a, g.b, g.c]
            for g in circuit.gates
        ],
    }


def save_circuit(artifact, path):
    """회로 아티팩트를 JSON 파일로 저장한다."""
    p = Path(path)
    with p.open("w", encoding="utf-8") as fh:
        json.dump(circuit_to_dict(artifact), fh)
    logger.info("saved circuit artifact to %s", p)
    return p


def circuit_from_dict(data, profile=None):
    """아티팩트 딕셔너리를 검증하고 CommitmentCircuit으로 복원한다.

    Args:
        data: 아티팩트 딕셔너리
        profile: 기대하는 해시 프로파일 (None이면 설정값)

    Raises:
        CircuitArtifactError: 형식/버전/프로파일/지문/입력 개수 불일치 또는 손상된 게이트
    """
    if not isinstance(data, dict) or data.get("format") != ARTIFACT_FORMAT:
        raise CircuitArtifactError("회로 아티팩트 형식이 아닙니다")
    if data.get("version") != ARTIFACT_VERSION:
        raise CircuitArtifactError(f"지원하지 않는 아티팩트 버전입니다: {data.get('version')}")

    params = hash_parameters(profile)
    if data.get("hash_profile") != params.profile:
        raise CircuitArtifactError(
            f"해시 프로파일 불일치: 아티팩트 {data.get('hash_profile')!r}, 설정 {params.profile!r}"
        )
    if data.get("fingerprint") != params.fingerprint:
        raise CircuitArtifactError("해시 파라미터 지문이 일치하지 않습니다")

    private_names = data.get("private_inputs") or []
    public_names = data.get("public_inputs") or []
    if len(private_names) != len(PRIVATE_INPUTS) or len(public_names) != len(PUBLIC_INPUTS):
        raise CircuitArtifactError(
            f"입력 개수 불일치: 비공개 {len(private_names)}, 공개 {len(public_names)} "
            f"(기대값 {len(PRIVATE_INPUTS)}, {len(PUBLIC_INPUTS)})"
        )

    try:
        variables = data["variables"]
        circuit = Circuit()
        circuit.num_variables = int(data["num_variables"])
        circuit.variable_names = {str(k): int(v) for k, v in variables.items()}
        circuit.private_variables = [circuit.variable_names[name] for name in private_names]
        public_vars = [circuit.variable_names[name] for name in public_names]
        for row in data["gates"]:
            q_l, q_r, q_o, q_m, q_c, a, b, c = row
            circuit.add_gate(int(q_l), int(q_r), int(q_o), int(q_m), int(q_c),
                             int(a), int(b), int(c))
    except (KeyError, TypeError, ValueError) as exc:
        raise CircuitArtifactError(f"손상된 회로 아티팩트: {exc}") from exc

    # 공개 입력 게이트는 맨 앞에 있어야 한다
    for i, var in enumerate(public_vars):
        gate = circuit.gates[i] if i < circuit.n else None
        if gate is None or gate.c != var or gate.q_o != 1 or gate.q_l != 0 or gate.q_r != 0 \
                or gate.q_m != 0 or gate.q_c != 0:
            raise CircuitArtifactError("공개 입력 게이트가 회로 맨 앞에 없습니다")
    circuit.public_variables = public_vars

    return CommitmentCircuit(circuit, params.profile, params.fingerprint)


def load_circuit(path, profile=None):
    """JSON 아티팩트 파일에서 회로를 로드한다.

    Raises:
        CircuitArtifactError: 파일을 읽을 수 없거나 검증에 실패할 때
    """
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise CircuitArtifactError(f"회로 아티팩트를 읽을 수 없습니다: {path}") from exc

    artifact = circuit_from_dict(data, profile)
    logger.info("loaded circuit artifact %s: profile=%s gates=%d",
                p, artifact.hash_profile, artifact.circuit.n)
    return artifact
