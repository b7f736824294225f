"""
증명 생성 (Prover 통합)
========================

Witness와 회로로부터 원장에 제출할 증명 바이트와 공개 입력 벡터를 만든다.

  ┌───────────────┐    ┌──────────────┐    ┌────────────────────────┐
  │ CommitmentCir │ →  │  ProvingKey  │ →  │ prove(...)             │
  │ cuit          │    │  (SRS + 전처리)│    │  → (proof 800B, [c])   │
  └───────────────┘    └──────┬───────┘    └────────────────────────┘
                              │
                       VerificationKey → ProofVerifier (원장 검증자)

**트랜스크립트 모드**는 설정값(transcript_mode)이다. keccak 모드로 만든
증명은 keccak 검증자만, native 모드로 만든 증명은 native 검증자만 받아들인다.

**ProofTask**:
  증명 생성은 수 초 이상 걸리는 블로킹 작업이므로 작업 스레드에서 실행한다.
  라운드 사이마다 취소 플래그를 확인하여 협조적으로 중단한다.
"""

import logging
import threading
from concurrent.futures import (
    CancelledError,
    ThreadPoolExecutor,
    TimeoutError as FutureTimeoutError,
)

from eth_utils import keccak

from zkgrid.circuit_artifact import compile_commitment_circuit, load_circuit
from zkgrid.config import get_config
from zkgrid.errors import (
    ProofCancelledError,
    ProofGenerationError,
    ProofTimeoutError,
)
from zkgrid.log import short_hex
from zkgrid.plonk.field import get_root_of_unity, normalize_point, point_from_affine
from zkgrid.plonk.preprocessor import preprocess
from zkgrid.plonk.prover import prove as plonk_prove
from zkgrid.plonk.serialization import encode_g1, proof_from_bytes, proof_to_bytes
from zkgrid.plonk.srs import SRS
from zkgrid.plonk.transcript import TranscriptMode, new_transcript
from zkgrid.plonk.utils import next_power_of_2
from zkgrid.plonk.verifier import verify as plonk_verify
from zkgrid.witness import solve

logger = logging.getLogger(__name__)

# 커밋하는 다항식의 최대 차수는 n + 5 (t_hi)
SRS_DEGREE_MARGIN = 10


class VerificationKey:
    """검증에 필요한 공개 데이터만 담은 키.

    속성:
        n, omega, num_public_inputs
        q_*_comm, s_sigma*_comm: G1 커밋먼트
        g2_powers: [G2, τ·G2]
        hash_profile: native 트랜스크립트의 해시 프로파일
    """

    COMMITMENT_FIELDS = (
        "q_l_comm", "q_r_comm", "q_o_comm", "q_m_comm", "q_c_comm",
        "s_sigma1_comm", "s_sigma2_comm", "s_sigma3_comm",
    )

    def __init__(self, n, omega, num_public_inputs, commitments, g2_powers, hash_profile):
        self.n = n
        self.omega = omega
        self.num_public_inputs = num_public_inputs
        for name in self.COMMITMENT_FIELDS:
            setattr(self, name, commitments[name])
        self.g2_powers = g2_powers
        self.hash_profile = hash_profile

    @classmethod
    def from_preprocessed(cls, preprocessed, srs, hash_profile):
        commitments = {name: getattr(preprocessed, name) for name in cls.COMMITMENT_FIELDS}
        return cls(
            preprocessed.n,
            preprocessed.omega,
            preprocessed.num_public_inputs,
            commitments,
            list(srs.g2_powers),
            hash_profile,
        )

    @property
    def digest(self):
        """커밋먼트 전체의 keccak 다이제스트 (배포된 검증자 식별용)."""
        blob = b"".join(encode_g1(getattr(self, name)) for name in self.COMMITMENT_FIELDS)
        blob += self.n.to_bytes(4, "big") + self.num_public_inputs.to_bytes(4, "big")
        return "0x" + keccak(blob).hex()

    def to_dict(self):
        return {
            "n": self.n,
            "num_public_inputs": self.num_public_inputs,
            "hash_profile": self.hash_profile,
            "digest": self.digest,
            "commitments": {
                name: ["0x%064x" % c for c in normalize_point(getattr(self, name))]
                for name in self.COMMITMENT_FIELDS
            },
        }

    @classmethod
    def from_dict(cls, data, g2_powers):
        """to_dict()의 결과와 SRS의 G2 원소로 키를 복원한다."""
        commitments = {
            name: point_from_affine(int(x, 16), int(y, 16))
            for name, (x, y) in data["commitments"].items()
        }
        n = int(data["n"])
        return cls(n, get_root_of_unity(n), int(data["num_public_inputs"]),
                   commitments, g2_powers, data["hash_profile"])


class ProvingKey:
    """회로별 증명 키: 회로 + SRS + 전처리 결과.

    모든 세션이 읽기 전용으로 공유한다.
    """

    def __init__(self, artifact, srs, preprocessed):
        self.artifact = artifact
        self.srs = srs
        self.preprocessed = preprocessed
        self.verification_key = VerificationKey.from_preprocessed(
            preprocessed, srs, artifact.hash_profile
        )

    @property
    def circuit(self):
        return self.artifact.circuit

    @classmethod
    def setup(cls, artifact, srs_seed=None):
        """SRS를 생성하고 회로를 전처리한다.

        Args:
            artifact: CommitmentCircuit
            srs_seed: SRS 시드 (None이면 설정의 srs_seed)
        """
        if srs_seed is None:
            srs_seed = get_config()["srs_seed"]
        n = next_power_of_2(max(artifact.circuit.n, 2))
        srs = SRS.generate(n + SRS_DEGREE_MARGIN, seed=srs_seed)
        key = cls(artifact, srs, preprocess(artifact.circuit, srs))
        logger.info("proving key ready: domain=%d vk=%s",
                    n, short_hex(key.verification_key.digest))
        return key


# ─────────────────────────────────────────────────────────────────────
# 증명 / 검증
# ─────────────────────────────────────────────────────────────────────

def _public_inputs_of(witness):
    return [int(v) for v in witness.public_inputs]


def verify_proof(proof_bytes, public_inputs, verification_key, transcript_mode):
    """증명 바이트를 검증한다. 형식이 잘못된 증명은 False."""
    try:
        proof = proof_from_bytes(proof_bytes)
    except ValueError as exc:
        logger.debug("malformed proof rejected: %s", exc)
        return False
    transcript = new_transcript(transcript_mode, verification_key.hash_profile)
    return plonk_verify(proof, list(public_inputs), verification_key,
                        verification_key, transcript)


def prove(circuit, witness, transcript_mode, proving_key, on_round=None, self_check=None):
    """Witness로부터 증명을 생성한다.

    Args:
        circuit: CommitmentCircuit (proving_key의 회로와 같아야 함)
        witness: Witness
        transcript_mode: "keccak" 또는 "native"
        proving_key: ProvingKey
        on_round: 라운드마다 호출되는 콜백 (취소용)
        self_check: 반환 전 자체 검증 여부 (None이면 설정값)

    Returns:
        (bytes, list[int]): 800바이트 증명, 공개 입력 벡터

    Raises:
        ProofGenerationError: 백엔드 오류 또는 자체 검증 실패
        ProofCancelledError: on_round 콜백이 취소를 알렸을 때
    """
    if getattr(circuit, "circuit", circuit) is not proving_key.circuit:
        raise ProofGenerationError("증명 키가 다른 회로로 만들어졌습니다")
    try:
        mode = TranscriptMode(transcript_mode)
    except ValueError as exc:
        raise ProofGenerationError(f"알 수 없는 트랜스크립트 모드입니다: {transcript_mode!r}") from exc
    if self_check is None:
        self_check = get_config()["prover"]["self_check"]

    pp = proving_key.preprocessed
    public_inputs = _public_inputs_of(witness)
    try:
        a_vals, b_vals, c_vals = witness.wire_values(proving_key.circuit, pp.n)
        transcript = new_transcript(mode, proving_key.artifact.hash_profile)
        proof = plonk_prove(
            proving_key.circuit, a_vals, b_vals, c_vals, public_inputs,
            pp, proving_key.srs, transcript, on_round=on_round,
        )
        proof_bytes = proof_to_bytes(proof)
    except ProofGenerationError:
        raise
    except (ValueError, IndexError, TypeError, MemoryError) as exc:
        raise ProofGenerationError(f"증명 생성 실패: {exc}") from exc

    if self_check and not verify_proof(proof_bytes, public_inputs,
                                       proving_key.verification_key, mode):
        raise ProofGenerationError("생성된 증명이 자체 검증을 통과하지 못했습니다")

    logger.info("proof generated: mode=%s commitment=%s",
                mode.value, short_hex(public_inputs[0]) if public_inputs else "-")
    return proof_bytes, public_inputs


class ProofVerifier:
    """무상태(stateless) 검증자. 원장 에뮬레이터에 주입된다."""

    def __init__(self, verification_key, transcript_mode=TranscriptMode.KECCAK):
        self.verification_key = verification_key
        self.transcript_mode = TranscriptMode(transcript_mode)

    def verify(self, proof_bytes, public_inputs):
        return verify_proof(proof_bytes, public_inputs, self.verification_key,
                            self.transcript_mode)

    __call__ = verify


# ─────────────────────────────────────────────────────────────────────
# 비동기 작업
# ─────────────────────────────────────────────────────────────────────

class ProofTask:
    """작업 스레드에서 실행 중인 증명 생성.

    result(timeout)는 (proof_bytes, public_inputs)를 반환한다.
    timeout은 작업이 스레드에서 실행을 시작한 때부터 잰다 (대기열에 있는
    시간은 포함하지 않는다). 시간 초과 시 계산을 취소하고 ProofTimeoutError를 던진다.
    """

    def __init__(self, executor, fn, *args, **kwargs):
        self._cancel_event = threading.Event()
        self._started = threading.Event()
        self._future = executor.submit(self._run, fn, args, kwargs)
        # 대기 중에 취소된 작업은 _run이 불리지 않는다
        self._future.add_done_callback(lambda _: self._started.set())

    def _check_cancelled(self, round_number):
        if self._cancel_event.is_set():
            raise ProofCancelledError(f"증명 생성이 라운드 {round_number} 직전에 취소되었습니다")

    def _run(self, fn, args, kwargs):
        self._started.set()
        return fn(*args, on_round=self._check_cancelled, **kwargs)

    @property
    def started(self):
        return self._started.is_set()

    def cancel(self):
        """취소를 요청한다. 이미 끝난 작업이면 False."""
        if self._future.done():
            return False
        self._cancel_event.set()
        self._future.cancel()
        return True

    @property
    def cancelled(self):
        return self._cancel_event.is_set()

    def done(self):
        return self._future.done()

    def result(self, timeout=None):
        self._started.wait()
        try:
            return self._future.result(timeout)
        except FutureTimeoutError as exc:
            self.cancel()
            raise ProofTimeoutError(f"증명 생성이 {timeout}초 안에 끝나지 않았습니다") from exc
        except CancelledError as exc:
            raise ProofCancelledError("증명 생성이 취소되었습니다") from exc


class ProvingContext:
    """회로, 증명 키, 검증자, 작업 스레드 풀을 한데 묶는다.

    회로와 증명 키는 처음 사용할 때 한 번만 만든다.
    회로는 설정의 circuit_path가 있으면 그 아티팩트에서 로드하고,
    없으면 현재 해시 프로파일로 컴파일한다.
    """

    def __init__(self, artifact=None, srs_seed=None, transcript_mode=None, max_workers=1,
                 proving_key=None):
        config = get_config()
        if proving_key is not None:
            artifact = proving_key.artifact
        self._artifact = artifact
        self._srs_seed = srs_seed
        self.transcript_mode = TranscriptMode(transcript_mode or config["transcript_mode"])
        self._proving_key = proving_key
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="zkgrid-prover")

    @property
    def artifact(self):
        with self._lock:
            if self._artifact is None:
                path = get_config()["circuit_path"]
                self._artifact = load_circuit(path) if path else compile_commitment_circuit()
            return self._artifact

    @property
    def proving_key(self):
        artifact = self.artifact
        with self._lock:
            if self._proving_key is None:
                self._proving_key = ProvingKey.setup(artifact, self._srs_seed)
            return self._proving_key

    @property
    def verification_key(self):
        return self.proving_key.verification_key

    def verifier(self, transcript_mode=None):
        return ProofVerifier(self.verification_key, transcript_mode or self.transcript_mode)

    def solve(self, private_inputs, public_inputs):
        return solve(self.artifact, private_inputs, public_inputs)

    def prove(self, witness, on_round=None):
        return prove(self.artifact, witness, self.transcript_mode, self.proving_key,
                     on_round=on_round)

    def submit(self, witness):
        """증명 생성을 작업 스레드에 맡기고 ProofTask를 반환한다."""
        proving_key = self.proving_key
        return ProofTask(self._executor, prove, self.artifact, witness,
                         self.transcript_mode, proving_key)

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)
