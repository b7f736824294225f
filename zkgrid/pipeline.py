"""
commit / reveal 파이프라인
============================

  비밀값 → 커밋먼트 → start_game (원장) → Created
  비밀값 + 커밋먼트 → Witness → 증명 → submit_proof (원장) → Verified | Rejected

**SessionContext**:
  레지스트리, 원장 어댑터, 증명 컨텍스트를 묶는 명시적 객체.
  전역 상태 대신 호출자가 들고 다닌다.

**reveal 순서** (세션별 reveal 잠금 안에서):
  1. 세션 조회 (종료 상태면 InvalidSessionStateError)
  2. 널리파이어 재사용 검사 (ReplayError)
  3. Witness 생성 (비밀값이 커밋먼트와 다르면 WitnessGenerationError,
     세션 상태는 바뀌지 않음)
  4. 증명 생성 (ProofTask, 시간 제한)
  5. AwaitingProof 전이 후 submit_proof 제출 (확정될 때까지 세션 만료 보류)
  6. 성공 → Verified (널리파이어 소비)
     검증자 거부 / replay / 시뮬레이션 실패 → Rejected
     일시적 오류 소진 → AwaitingProof에 남음 (재시도 가능)
"""

import logging
import threading
from concurrent.futures import (
    CancelledError,
    ThreadPoolExecutor,
    TimeoutError as FutureTimeoutError,
)
from dataclasses import dataclass

from zkgrid.commitment import commitment_to_hex, compute_commitment, derive_nullifier
from zkgrid.config import get_config
from zkgrid.errors import (
    InvalidSessionStateError,
    LedgerError,
    ProofCancelledError,
    ProofTimeoutError,
    ReplayError,
    SubmissionError,
    WitnessGenerationError,
)
from zkgrid.ledger import (
    InMemoryLedger,
    LedgerAdapter,
    build_start_game_tx,
    build_submit_proof_tx,
)
from zkgrid.log import short_hex
from zkgrid.proving import ProvingContext
from zkgrid.session import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Secret:
    """커밋하는 쪽만 메모리에 들고 있는 비밀값."""

    x: int
    y: int
    nullifier: int

    def as_private_inputs(self):
        return {"x": self.x, "y": self.y, "nullifier": self.nullifier}

    def __repr__(self):
        return "Secret(<hidden>)"


class SessionContext:
    """파이프라인이 쓰는 협력 객체 묶음."""

    def __init__(self, registry, ledger, proving):
        self.registry = registry
        self.ledger = ledger
        self.proving = proving

    @classmethod
    def create(cls, proving=None, registry=None, ledger_client=None):
        """설정값으로 로컬 배포용 컨텍스트를 만든다.

        ledger_client가 없으면 증명 컨텍스트의 검증자를 주입한 InMemoryLedger를 쓴다.
        """
        proving = proving or ProvingContext()
        if ledger_client is None:
            ledger_client = InMemoryLedger(verifier=_DeployedVerifier(proving))
        return cls(
            registry=registry or SessionRegistry(),
            ledger=LedgerAdapter(ledger_client),
            proving=proving,
        )

    def close(self):
        self.ledger.close()
        self.registry.close()


class _DeployedVerifier:
    """원장에 배포된 검증자. 증명 키는 첫 검증 때 만든다."""

    def __init__(self, proving):
        self.proving = proving

    def __call__(self, proof_bytes, public_inputs):
        return self.proving.verifier().verify(proof_bytes, public_inputs)


def start_session(context, session_id, player1, player2, stake1, stake2, x, y, nullifier=None):
    """커밋먼트를 계산하고 start_game을 제출한 뒤 세션을 Created로 등록한다.

    nullifier가 없으면 derive_nullifier(session_id, player1, player2)를 쓴다.

    Returns:
        (Session, Secret)

    Raises:
        RangeError: 입력이 범위를 벗어날 때
        LedgerError: 시작 트랜잭션이 실패할 때 (세션은 등록되지 않음)
    """
    if nullifier is None:
        nullifier = derive_nullifier(session_id, player1, player2)
    secret = Secret(x, y, nullifier)
    commitment = compute_commitment(x, y, nullifier, context.proving.artifact.hash_profile)
    commitment_hex = commitment_to_hex(commitment)

    tx = build_start_game_tx(session_id, player1, player2, stake1, stake2, commitment_hex)
    receipt = context.ledger.submit(tx)

    session = context.registry.register(
        session_id, str(player1), str(player2), stake1, stake2, commitment_hex,
        start_tx=receipt.tx_hash,
    )
    return session, secret


class RevealTask:
    """진행 중인 reveal 시도.

    stage: "queued" → "solving" → "proving" → "submitting" → "done" | "failed"
    result(timeout)은 검증된 Session을 반환하거나 실패 원인 예외를 던진다.
    """

    def __init__(self, session_id):
        self.session_id = session_id
        self.stage = "queued"
        self._cancel_event = threading.Event()
        self._proof_task = None
        self._future = None

    def _attach(self, future):
        self._future = future

    def cancel(self):
        """증명 단계까지만 취소할 수 있다. 제출이 시작되면 False."""
        if self.stage in ("submitting", "done", "failed"):
            return False
        self._cancel_event.set()
        if self._proof_task is not None:
            self._proof_task.cancel()
        self._future.cancel()
        return True

    @property
    def cancelled(self):
        return self._cancel_event.is_set()

    def done(self):
        return self._future.done()

    def result(self, timeout=None):
        try:
            return self._future.result(timeout)
        except CancelledError as exc:
            raise ProofCancelledError(f"세션 {self.session_id}의 reveal이 취소되었습니다") from exc
        except FutureTimeoutError as exc:
            raise ProofTimeoutError(
                f"세션 {self.session_id}의 reveal이 {timeout}초 안에 끝나지 않았습니다"
            ) from exc


def _run_reveal(context, task, secret, proof_timeout):
    registry = context.registry
    session_id = task.session_id
    try:
        with registry.reveal_lock(session_id):
            session = registry.get(session_id)
            registry.ensure_not_replayed(session_id, secret.nullifier)
            if session.status.is_terminal:
                raise InvalidSessionStateError(
                    f"세션 {session_id}은(는) 이미 종료 상태입니다: {session.status.value}"
                )

            task.stage = "solving"
            witness = context.proving.solve(
                secret.as_private_inputs(),
                {"commitment": int(session.commitment, 16)},
            )

            task.stage = "proving"
            if task.cancelled:
                raise ProofCancelledError("증명 생성 전에 취소되었습니다")
            task._proof_task = context.proving.submit(witness)
            proof_bytes, public_inputs = task._proof_task.result(proof_timeout)

            task.stage = "submitting"
            tx = build_submit_proof_tx(session_id, proof_bytes, public_inputs)
            with registry.submission(session_id):
                registry.mark_awaiting_proof(session_id, reveal_tx=tx.tx_hash)
                try:
                    receipt = context.ledger.submit(tx)
                except SubmissionError:
                    logger.warning("session %d left in AwaitingProof after transport failures",
                                   session_id)
                    raise
                except LedgerError as exc:
                    registry.mark_rejected(session_id, exc.code or type(exc).__name__)
                    raise

                try:
                    verified = registry.mark_verified(session_id, secret.nullifier,
                                                      reveal_tx=receipt.tx_hash)
                except ReplayError:
                    logger.warning("session %d rejected: nullifier already consumed",
                                   session_id)
                    raise
    except WitnessGenerationError:
        task.stage = "failed"
        logger.info("session %d: secret does not match commitment, nothing submitted", session_id)
        raise
    except Exception:
        task.stage = "failed"
        raise

    task.stage = "done"
    logger.info("session %d verified: commitment=%s", session_id, short_hex(verified.commitment))
    return verified


class RevealPipeline:
    """여러 세션의 reveal을 동시에 실행한다. 같은 세션의 시도는 직렬화된다."""

    def __init__(self, context, max_workers=4, proof_timeout=None):
        self.context = context
        self.proof_timeout = (
            proof_timeout if proof_timeout is not None
            else get_config()["prover"]["timeout_seconds"]
        )
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="zkgrid-reveal")

    def reveal(self, session_id, secret):
        """reveal을 시작하고 RevealTask를 반환한다."""
        task = RevealTask(session_id)
        task._attach(self._executor.submit(_run_reveal, self.context, task, secret,
                                           self.proof_timeout))
        return task

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)


def reveal(context, session_id, secret, timeout=None):
    """reveal을 동기적으로 실행하고 검증된 Session을 반환한다."""
    if timeout is None:
        timeout = get_config()["prover"]["timeout_seconds"]
    task = RevealTask(session_id)
    with ThreadPoolExecutor(max_workers=1) as executor:
        task._attach(executor.submit(_run_reveal, context, task, secret, timeout))
        return task.result()
