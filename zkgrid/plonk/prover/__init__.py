"""
PLONK Prover: 5-라운드 프로토콜 오케스트레이터
=================================================

  ┌─────────────────────────────────────────────────────┐
  │  Round 0: 공개 입력을 트랜스크립트에 흡수            │
  ├─────────────────────────────────────────────────────┤
  │  Round 1: 배선 다항식 커밋  [a]₁, [b]₁, [c]₁        │
  ├─────────────────────────────────────────────────────┤
  │  Round 2: β, γ → 순열 누적자 [z]₁                   │
  ├─────────────────────────────────────────────────────┤
  │  Round 3: α → 몫 다항식 [t_lo]₁, [t_mid]₁, [t_hi]₁ │
  ├─────────────────────────────────────────────────────┤
  │  Round 4: ζ → ā, b̄, c̄, s̄_σ1, s̄_σ2, z̄_ω           │
  ├─────────────────────────────────────────────────────┤
  │  Round 5: v → 선형화 r̄, [W_ζ]₁, [W_ζω]₁             │
  └─────────────────────────────────────────────────────┘

각 라운드 사이에서 on_round 콜백을 호출한다. 콜백이 예외를 던지면
증명 생성이 즉시 중단된다 (취소 처리는 zkgrid.proving.ProofTask 참고).

사용 예시:
    >>> from zkgrid.plonk.prover import prove
    >>> proof = prove(circuit, a, b, c, public_inputs, preprocessed, srs, transcript)
"""

from zkgrid.plonk.field import FR
from zkgrid.plonk.transcript import KeccakTranscript
from zkgrid.plonk.prover import round1, round2, round3, round4, round5


ROUNDS = (round1, round2, round3, round4, round5)


class Proof:
    """PLONK 증명 데이터 컨테이너.

    Round 1: a_comm, b_comm, c_comm (G1)
    Round 2: z_comm (G1)
    Round 3: t_lo_comm, t_mid_comm, t_hi_comm (G1)
    Round 4: a_eval, b_eval, c_eval, s_sigma1_eval, s_sigma2_eval, z_omega_eval (FR)
    Round 5: r_eval (FR), W_zeta_comm, W_zeta_omega_comm (G1)
    """

    G1_FIELDS = (
        "a_comm", "b_comm", "c_comm", "z_comm",
        "t_lo_comm", "t_mid_comm", "t_hi_comm",
        "W_zeta_comm", "W_zeta_omega_comm",
    )
    FR_FIELDS = (
        "a_eval", "b_eval", "c_eval",
        "s_sigma1_eval", "s_sigma2_eval", "z_omega_eval", "r_eval",
    )

    def __init__(self):
        for name in self.G1_FIELDS + self.FR_FIELDS:
            setattr(self, name, None)


class ProverState:
    """라운드 간 공유되는 Prover 상태.

    속성 (입력):
        a_vals, b_vals, c_vals: 배선 값 (길이 n)
        public_inputs: 공개 입력 값 리스트
        preprocessed: PreprocessedData
        srs: SRS
        transcript: Fiat-Shamir 트랜스크립트

    속성 (라운드 간 생성):
        pi_poly, a_poly, b_poly, c_poly, z_poly, t_lo_poly, t_mid_poly, t_hi_poly
        beta, gamma, alpha, zeta, v
    """

    def __init__(self, a_vals, b_vals, c_vals, public_inputs, preprocessed, srs, transcript=None):
        self.a_vals = [v if isinstance(v, FR) else FR(v) for v in a_vals]
        self.b_vals = [v if isinstance(v, FR) else FR(v) for v in b_vals]
        self.c_vals = [v if isinstance(v, FR) else FR(v) for v in c_vals]
        self.public_inputs = [v if isinstance(v, FR) else FR(v) for v in public_inputs]
        self.preprocessed = preprocessed
        self.srs = srs

        self.transcript = transcript if transcript is not None else KeccakTranscript()

        self.n = preprocessed.n
        self.omega = preprocessed.omega
        self.domain = preprocessed.domain

        self.pi_poly = None
        self.a_poly = None
        self.b_poly = None
        self.c_poly = None
        self.z_poly = None
        self.t_lo_poly = None
        self.t_mid_poly = None
        self.t_hi_poly = None

        self.beta = None
        self.gamma = None
        self.alpha = None
        self.zeta = None
        self.v = None

        self.proof = Proof()

    def build_proof(self):
        return self.proof


def absorb_public_inputs(transcript, public_inputs):
    """공개 입력을 트랜스크립트에 흡수한다 (Prover/Verifier 공통)."""
    for value in public_inputs:
        transcript.append_scalar(b"public_input", value)


def prove(circuit, a_vals, b_vals, c_vals, public_inputs, preprocessed, srs,
          transcript=None, on_round=None):
    """PLONK 5-라운드 프로토콜을 실행하여 증명을 생성한다.

    Args:
        circuit: Circuit
        a_vals, b_vals, c_vals: 배선 값 (길이 preprocessed.n)
        public_inputs: 공개 입력 값 리스트
        preprocessed: PreprocessedData
        srs: SRS
        transcript: 트랜스크립트 (None이면 keccak 모드)
        on_round: 각 라운드 직전에 라운드 번호(1~5)로 호출되는 콜백

    Returns:
        Proof

    Raises:
        ValueError: 배선 길이/공개 입력 수가 맞지 않거나 제약이 만족되지 않을 때
    """
    n = preprocessed.n
    if not (len(a_vals) == len(b_vals) == len(c_vals) == n):
        raise ValueError(f"배선 값의 길이는 도메인 크기 {n}이어야 합니다")
    if len(public_inputs) != circuit.num_public_inputs:
        raise ValueError(
            f"공개 입력 수가 맞지 않습니다: {len(public_inputs)} != {circuit.num_public_inputs}"
        )

    state = ProverState(a_vals, b_vals, c_vals, public_inputs, preprocessed, srs, transcript)
    absorb_public_inputs(state.transcript, state.public_inputs)

    for number, round_module in enumerate(ROUNDS, start=1):
        if on_round is not None:
            on_round(number)
        round_module.execute(state)

    return state.build_proof()
