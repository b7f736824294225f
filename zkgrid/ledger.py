"""
원장 어댑터 (Ledger Adapter)
=============================

프로토콜이 의존하는 두 컨트랙트 호출을 만들고, 시뮬레이션하고, 제출한다.

  start_game(session_id: u32, player1, player2, stake1: i128, stake2: i128,
             commitment: bytes32)
  submit_proof(session_id: u32, proof: bytes, public_inputs: [field])

**제출 흐름**:

  build_*_tx ──→ simulate ──(실패)──→ SimulationError / VerificationRejectedError
                    │                  / ReplayError   (재시도하지 않음)
                    ↓
                  send ──(네트워크/시퀀스 오류)──→ 백오프 후 재시도 (max_retries)
                    │                               소진되면 SubmissionError
                    ↓
                 Receipt

  같은 트랜잭션의 해시는 내용에서 결정되므로, 응답을 받지 못한 전송을
  재시도하기 전에 get_receipt(tx_hash)로 이미 반영되었는지 먼저 확인한다.

**InMemoryLedger**:
  게임 컨트랙트의 로컬 에뮬레이터. 계정 시퀀스 번호, 원장 시퀀스,
  keccak 트랜잭션 해시, 주입된 무상태 검증자, 세션별 소비된 커밋먼트,
  주입 가능한 일시적 네트워크 오류를 가진다.

  스테이크 정산:
    start_game    두 플레이어의 잔액에서 stake1, stake2를 빼서 세션 에스크로에 묶는다
    submit_proof  검증에 성공하면 에스크로 전액을 제출자(없으면 player1)에게 돌려준다
  잔액은 순포지션이라 음수가 될 수 있다.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Optional, Tuple

from eth_utils import keccak

from zkgrid.commitment import commitment_from_hex, commitment_to_bytes, commitment_to_hex
from zkgrid.config import get_config
from zkgrid.errors import (
    LedgerError,
    RangeError,
    ReplayError,
    SimulationError,
    SubmissionError,
    VerificationRejectedError,
)
from zkgrid.log import short_hex
from zkgrid.poseidon import to_field_element

logger = logging.getLogger(__name__)

U32_MAX = 0xFFFFFFFF
I128_MIN = -(1 << 127)
I128_MAX = (1 << 127) - 1

# 컨트랙트 오류 코드
GAME_NOT_FOUND = "GAME_NOT_FOUND"
GAME_ALREADY_EXISTS = "GAME_ALREADY_EXISTS"
SAME_PLAYER = "SAME_PLAYER"
NEGATIVE_STAKE = "NEGATIVE_STAKE"
NOT_PLAYER = "NOT_PLAYER"
PUBLIC_INPUT_MISMATCH = "PUBLIC_INPUT_MISMATCH"
PROOF_REJECTED = "PROOF_REJECTED"
ALREADY_VERIFIED = "ALREADY_VERIFIED"

# 전송 계층 오류 코드
NETWORK_ERROR = "NETWORK_ERROR"
BAD_SEQUENCE = "BAD_SEQUENCE"
TIMEOUT = "TIMEOUT"


# ─────────────────────────────────────────────────────────────────────
# 트랜잭션
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StartGameTx:
    session_id: int
    player1: str
    player2: str
    stake1: int
    stake2: int
    commitment: bytes

    method = "start_game"

    @property
    def source(self):
        return self.player1

    def encode(self):
        return b"".join([
            self.method.encode(),
            self.session_id.to_bytes(4, "big"),
            self.player1.encode("utf-8"), b"\x00",
            self.player2.encode("utf-8"), b"\x00",
            self.stake1.to_bytes(16, "big", signed=True),
            self.stake2.to_bytes(16, "big", signed=True),
            self.commitment,
        ])

    @property
    def tx_hash(self):
        return "0x" + keccak(self.encode()).hex()


@dataclass(frozen=True)
class SubmitProofTx:
    session_id: int
    proof: bytes
    public_inputs: Tuple[int, ...]
    submitter: Optional[str] = None

    method = "submit_proof"

    @property
    def source(self):
        return self.submitter or f"session:{self.session_id}"

    def encode(self):
        return b"".join(
            [self.method.encode(), self.session_id.to_bytes(4, "big"),
             len(self.proof).to_bytes(4, "big"), self.proof]
            + [v.to_bytes(32, "big") for v in self.public_inputs]
        )

    @property
    def tx_hash(self):
        return "0x" + keccak(self.encode()).hex()


@dataclass(frozen=True)
class SimulationOutcome:
    ok: bool
    code: Optional[str] = None
    message: str = ""


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    ledger_sequence: int
    method: str
    session_id: int


@dataclass(frozen=True)
class Game:
    """컨트랙트에 기록된 게임. winner는 스테이크가 풀리기 전까지 None."""

    session_id: int
    player1: str
    player2: str
    stake1: int
    stake2: int
    commitment: str
    winner: Optional[str] = None


def _check_u32(value, name):
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise RangeError(f"{name}은(는) u32 범위여야 합니다: {value!r}")
    return value


def _check_i128(value, name):
    if isinstance(value, bool) or not isinstance(value, int) or not I128_MIN <= value <= I128_MAX:
        raise RangeError(f"{name}은(는) i128 범위여야 합니다: {value!r}")
    return value


def _commitment_bytes(commitment):
    if isinstance(commitment, bytes):
        if len(commitment) != 32:
            raise RangeError(f"커밋먼트는 32바이트여야 합니다: {len(commitment)}")
        to_field_element(int.from_bytes(commitment, "big"), "commitment")
        return commitment
    if isinstance(commitment, str):
        return commitment_to_bytes(commitment_from_hex(commitment))
    return commitment_to_bytes(commitment)


def build_start_game_tx(session_id, player1, player2, stake1, stake2, commitment):
    """시작(커밋) 트랜잭션을 만든다.

    Raises:
        RangeError: u32 / i128 / 32바이트 범위를 벗어날 때
    """
    return StartGameTx(
        session_id=_check_u32(session_id, "session_id"),
        player1=str(player1),
        player2=str(player2),
        stake1=_check_i128(stake1, "stake1"),
        stake2=_check_i128(stake2, "stake2"),
        commitment=_commitment_bytes(commitment),
    )


def build_submit_proof_tx(session_id, proof, public_inputs, submitter=None):
    """증명 제출(reveal) 트랜잭션을 만든다."""
    if not isinstance(proof, bytes) or not proof:
        raise RangeError("증명은 비어 있지 않은 bytes여야 합니다")
    return SubmitProofTx(
        session_id=_check_u32(session_id, "session_id"),
        proof=proof,
        public_inputs=tuple(
            to_field_element(v, f"public_inputs[{i}]") for i, v in enumerate(public_inputs)
        ),
        submitter=submitter,
    )


# ─────────────────────────────────────────────────────────────────────
# 원장 클라이언트
# ─────────────────────────────────────────────────────────────────────

class LedgerClient:
    """원장 클라이언트 인터페이스."""

    def simulate(self, tx):
        raise NotImplementedError

    def send(self, tx):
        raise NotImplementedError

    def get_receipt(self, tx_hash):
        raise NotImplementedError

    def get_commitment(self, session_id):
        raise NotImplementedError

    def get_game(self, session_id):
        raise NotImplementedError


class InMemoryLedger(LedgerClient):
    """게임 컨트랙트 에뮬레이터.

    Args:
        verifier: verifier(proof_bytes, public_inputs) -> bool (무상태 검증자)
    """

    def __init__(self, verifier):
        self.verifier = verifier
        self.ledger_sequence = 0
        self.account_sequences = {}
        self.balances = {}
        self.escrow = {}
        self._games = {}
        self._consumed = set()
        self._receipts = {}
        self._verified = {}
        self._pending_faults = []
        self._lock = threading.Lock()

    def inject_faults(self, count=1, code=NETWORK_ERROR, apply_before_failing=False):
        """다음 count번의 send 호출을 일시적 오류로 실패시킨다.

        apply_before_failing이 True이면 트랜잭션을 반영한 뒤 응답만 잃어버린다.
        """
        with self._lock:
            self._pending_faults.extend([(code, apply_before_failing)] * count)

    # ── 컨트랙트 로직 ──

    def _verify(self, tx):
        # 검증자는 무상태이므로 같은 (증명, 공개 입력)의 결과를 재사용한다
        key = (keccak(tx.proof), tx.public_inputs)
        if key not in self._verified:
            self._verified[key] = bool(self.verifier(tx.proof, list(tx.public_inputs)))
        return self._verified[key]

    def _check(self, tx):
        if isinstance(tx, StartGameTx):
            if tx.player1 == tx.player2:
                return SimulationOutcome(False, SAME_PLAYER, "자기 자신과는 게임할 수 없습니다")
            if tx.stake1 < 0 or tx.stake2 < 0:
                return SimulationOutcome(False, NEGATIVE_STAKE, "스테이크는 음수일 수 없습니다")
            if tx.session_id in self._games:
                return SimulationOutcome(False, GAME_ALREADY_EXISTS,
                                         f"이미 존재하는 게임입니다: {tx.session_id}")
            return SimulationOutcome(True)

        if isinstance(tx, SubmitProofTx):
            game = self._games.get(tx.session_id)
            if game is None:
                return SimulationOutcome(False, GAME_NOT_FOUND, f"게임이 없습니다: {tx.session_id}")
            if tx.submitter is not None and tx.submitter not in (game["player1"], game["player2"]):
                return SimulationOutcome(False, NOT_PLAYER,
                                         f"게임 참가자가 아닙니다: {tx.submitter}")
            expected = int.from_bytes(game["commitment"], "big")
            if list(tx.public_inputs) != [expected]:
                return SimulationOutcome(False, PUBLIC_INPUT_MISMATCH,
                                         "공개 입력이 게임의 커밋먼트와 다릅니다")
            if (tx.session_id, expected) in self._consumed:
                return SimulationOutcome(False, ALREADY_VERIFIED, "이미 검증된 커밋먼트입니다")
            if not self._verify(tx):
                return SimulationOutcome(False, PROOF_REJECTED, "검증자가 증명을 거부했습니다")
            return SimulationOutcome(True)

        return SimulationOutcome(False, "UNKNOWN_METHOD", f"알 수 없는 트랜잭션: {tx!r}")

    def _apply(self, tx):
        if isinstance(tx, StartGameTx):
            self._games[tx.session_id] = {
                "player1": tx.player1,
                "player2": tx.player2,
                "stake1": tx.stake1,
                "stake2": tx.stake2,
                "commitment": tx.commitment,
                "winner": None,
            }
            self._move(tx.player1, -tx.stake1)
            self._move(tx.player2, -tx.stake2)
            self.escrow[tx.session_id] = tx.stake1 + tx.stake2
        else:
            game = self._games[tx.session_id]
            expected = int.from_bytes(game["commitment"], "big")
            self._consumed.add((tx.session_id, expected))
            game["winner"] = tx.submitter or game["player1"]
            self._move(game["winner"], self.escrow.pop(tx.session_id))

        self.ledger_sequence += 1
        self.account_sequences[tx.source] = self.account_sequences.get(tx.source, 0) + 1
        receipt = Receipt(tx.tx_hash, self.ledger_sequence, tx.method, tx.session_id)
        self._receipts[receipt.tx_hash] = receipt
        return receipt

    def _move(self, account, amount):
        self.balances[account] = self.balances.get(account, 0) + amount

    # ── 클라이언트 인터페이스 ──

    def simulate(self, tx):
        with self._lock:
            return self._check(tx)

    def send(self, tx):
        with self._lock:
            fault = self._pending_faults.pop(0) if self._pending_faults else None
            if fault is not None and not fault[1]:
                raise SubmissionError(f"일시적 전송 오류 ({fault[0]})", code=fault[0])

            outcome = self._check(tx)
            if not outcome.ok:
                raise LedgerError(outcome.message, code=outcome.code)
            receipt = self._apply(tx)

            if fault is not None:
                raise SubmissionError(f"응답 유실 ({fault[0]})", code=fault[0])
            return receipt

    def get_receipt(self, tx_hash):
        with self._lock:
            return self._receipts.get(tx_hash)

    def get_commitment(self, session_id):
        """게임의 커밋먼트를 0x 16진 문자열로 반환한다 (없으면 None)."""
        with self._lock:
            game = self._games.get(session_id)
        if game is None:
            return None
        return commitment_to_hex(int.from_bytes(game["commitment"], "big"))

    def get_game(self, session_id):
        """게임을 Game으로 반환한다 (없으면 None)."""
        with self._lock:
            game = self._games.get(session_id)
            if game is None:
                return None
            return Game(
                session_id=session_id,
                player1=game["player1"],
                player2=game["player2"],
                stake1=game["stake1"],
                stake2=game["stake2"],
                commitment=commitment_to_hex(int.from_bytes(game["commitment"], "big")),
                winner=game["winner"],
            )

    def escrowed(self, session_id):
        """세션 에스크로에 묶여 있는 스테이크 합계. 풀렸거나 없는 게임이면 0."""
        with self._lock:
            return self.escrow.get(session_id, 0)

    def balance(self, account):
        with self._lock:
            return self.balances.get(account, 0)

    def is_consumed(self, session_id, commitment):
        with self._lock:
            return (session_id, commitment) in self._consumed


# ─────────────────────────────────────────────────────────────────────
# 어댑터
# ─────────────────────────────────────────────────────────────────────

_FATAL_ERRORS = {
    PROOF_REJECTED: VerificationRejectedError,
    ALREADY_VERIFIED: ReplayError,
}


def raise_for_outcome(outcome):
    """실패한 시뮬레이션 결과를 알맞은 예외로 바꾼다."""
    if outcome.ok:
        return
    error_cls = _FATAL_ERRORS.get(outcome.code, SimulationError)
    raise error_cls(outcome.message, code=outcome.code)


class LedgerAdapter:
    """시뮬레이션, 시간 제한, 재시도를 담당하는 원장 어댑터."""

    def __init__(self, client, timeout_seconds=None, max_retries=None,
                 retry_backoff_seconds=None, sleep=time.sleep):
        config = get_config()["ledger"]
        self.client = client
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config["timeout_seconds"]
        )
        self.max_retries = max_retries if max_retries is not None else config["max_retries"]
        self.retry_backoff_seconds = (
            retry_backoff_seconds if retry_backoff_seconds is not None
            else config["retry_backoff_seconds"]
        )
        self.sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="zkgrid-ledger")

    def _call(self, fn, *args):
        future = self._executor.submit(fn, *args)
        try:
            return future.result(self.timeout_seconds)
        except FutureTimeoutError as exc:
            raise SubmissionError(
                f"원장 호출이 {self.timeout_seconds}초 안에 끝나지 않았습니다", code=TIMEOUT
            ) from exc

    def simulate(self, tx):
        """트랜잭션을 시뮬레이션한다. 실패하면 알맞은 LedgerError를 던진다."""
        outcome = self._call(self.client.simulate, tx)
        raise_for_outcome(outcome)
        return outcome

    def submit(self, tx):
        """시뮬레이션 후 트랜잭션을 제출하고 Receipt를 반환한다.

        SubmissionError만 재시도한다. 재시도 전에 이전 시도가 이미
        반영되었는지 영수증으로 확인한다.
        """
        self.simulate(tx)

        attempt = 0
        while True:
            try:
                receipt = self._call(self.client.send, tx)
                break
            except SubmissionError as exc:
                receipt = self._call(self.client.get_receipt, tx.tx_hash)
                if receipt is not None:
                    logger.info("%s %s already applied before transport error",
                                tx.method, short_hex(tx.tx_hash))
                    break
                if attempt >= self.max_retries:
                    logger.warning("%s for session %d failed after %d attempts: %s",
                                   tx.method, tx.session_id, attempt + 1, exc)
                    raise
                delay = self.retry_backoff_seconds * (2 ** attempt)
                attempt += 1
                logger.info("retrying %s for session %d in %.2fs (%s)",
                            tx.method, tx.session_id, delay, exc.code)
                self.sleep(delay)
            except LedgerError as exc:
                if type(exc) is not LedgerError:
                    raise
                # 시뮬레이션 이후 상태가 바뀌어 컨트랙트가 거부함
                raise_for_outcome(SimulationOutcome(False, exc.code, str(exc)))

        logger.info("%s confirmed: session=%d tx=%s ledger=%d",
                    tx.method, tx.session_id, short_hex(receipt.tx_hash), receipt.ledger_sequence)
        return receipt

    def get_commitment(self, session_id):
        return self._call(self.client.get_commitment, session_id)

    def get_game(self, session_id):
        return self._call(self.client.get_game, session_id)

    def close(self):
        self._executor.shutdown(wait=False)
