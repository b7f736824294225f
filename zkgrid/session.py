"""
세션 레지스트리 (Session Registry)
====================================

세션별 프로토콜 상태를 추적하고 commit → reveal 순서와 replay 방지를 강제한다.

**상태 기계**:

  Created ──→ AwaitingProof ──┬──→ Verified
     │             │    ↺     └──→ Rejected
     └─────────────┴──────────────→ Expired   (session.timeout_seconds 경과)

  - Created: 시작 트랜잭션이 확정되어 커밋먼트가 원장에 기록된 뒤에만 진입
  - AwaitingProof: 증명 제출 트랜잭션을 보냈지만 아직 확정되지 않음
    (일시적 오류 후 재제출은 같은 상태에 머문다)
  - Verified: 원장 검증자가 증명을 받아들였고 널리파이어가 처음 소비됨.
    널리파이어 소비와 상태 전이는 하나의 잠금 안에서 원자적으로 일어난다.
  - Rejected: 검증자 거부, 또는 이미 소비된 널리파이어로 재제출
  - Expired: created_at부터 timeout이 지나면 조회 시 지연 적용된다.
    submission() 블록 안(원장 확정 대기 중)에서는 적용하지 않고,
    원장 결과를 기록하는 mark_verified / mark_rejected도 적용하지 않는다.
  - 종료 상태(Verified, Rejected, Expired)에서의 전이는
    InvalidSessionStateError를 던지고 아무 효과도 남기지 않는다.

**저장소**:
  TinyDB. 기본은 MemoryStorage, session.db_path가 설정되면 JSON 파일.
  널리파이어는 원문 대신 keccak(session_id ‖ nullifier) 태그로만 저장한다.
"""

import enum
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Optional

from eth_utils import keccak
from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage

from zkgrid.config import get_config
from zkgrid.errors import (
    InvalidSessionStateError,
    ReplayError,
    SessionNotFoundError,
)
from zkgrid.log import short_hex
from zkgrid.poseidon import to_field_element

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    CREATED = "Created"
    AWAITING_PROOF = "AwaitingProof"
    VERIFIED = "Verified"
    REJECTED = "Rejected"
    EXPIRED = "Expired"

    @property
    def is_terminal(self):
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({
    SessionStatus.VERIFIED,
    SessionStatus.REJECTED,
    SessionStatus.EXPIRED,
})

# 현재 상태 → 허용되는 다음 상태
TRANSITIONS = {
    SessionStatus.CREATED: {SessionStatus.AWAITING_PROOF, SessionStatus.EXPIRED},
    SessionStatus.AWAITING_PROOF: {
        SessionStatus.AWAITING_PROOF,
        SessionStatus.VERIFIED,
        SessionStatus.REJECTED,
        SessionStatus.EXPIRED,
    },
    SessionStatus.VERIFIED: set(),
    SessionStatus.REJECTED: set(),
    SessionStatus.EXPIRED: set(),
}


@dataclass
class Session:
    """두 플레이어, 스테이크, 커밋먼트를 묶는 프로토콜 인스턴스."""

    session_id: int
    player1: str
    player2: str
    stake1: int
    stake2: int
    commitment: str
    status: SessionStatus = SessionStatus.CREATED
    created_at: float = 0.0
    updated_at: float = 0.0
    start_tx: Optional[str] = None
    reveal_tx: Optional[str] = None
    reason: Optional[str] = None
    attempts: int = field(default=0)

    def to_dict(self):
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        data["status"] = SessionStatus(data["status"])
        return cls(**data)


def nullifier_tag(session_id, nullifier):
    """(session_id, nullifier) 쌍의 저장용 태그."""
    value = to_field_element(nullifier, "nullifier")
    return keccak(session_id.to_bytes(4, "big") + value.to_bytes(32, "big")).hex()


class SessionRegistry:
    """TinyDB 기반 세션 레지스트리.

    모든 DB 접근은 레지스트리 잠금으로 직렬화된다 (TinyDB는 스레드 안전하지 않음).
    reveal_lock(session_id)은 같은 세션의 reveal 시도를 직렬화한다.
    """

    def __init__(self, db_path=None, timeout_seconds=None, clock=time.time):
        config = get_config()["session"]
        if db_path is None:
            db_path = config["db_path"]
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config["timeout_seconds"]
        )
        self.clock = clock
        self.db = TinyDB(db_path) if db_path else TinyDB(storage=MemoryStorage)
        self.sessions = self.db.table("sessions")
        self.nullifiers = self.db.table("nullifiers")
        self._lock = threading.RLock()
        self._reveal_locks = {}     # session_id → [Lock, 대기/보유 스레드 수]
        self._in_flight = set()     # 증명 제출이 진행 중인 session_id

    # ── 조회 ──

    def _row(self, session_id):
        rows = self.sessions.search(Query().session_id == session_id)
        if not rows:
            raise SessionNotFoundError(f"세션이 없습니다: {session_id}")
        return rows[0]

    def get(self, session_id):
        """세션을 반환한다. 만료 시간이 지났으면 먼저 Expired로 전이한다."""
        with self._lock:
            session = Session.from_dict(self._row(session_id))
            return self._expire_if_stale(session)

    def exists(self, session_id):
        with self._lock:
            return bool(self.sessions.search(Query().session_id == session_id))

    def all(self):
        with self._lock:
            return [Session.from_dict(row) for row in self.sessions.all()]

    # ── 전이 ──

    def register(self, session_id, player1, player2, stake1, stake2, commitment, start_tx=None):
        """시작 트랜잭션이 확정된 세션을 Created 상태로 등록한다.

        Raises:
            InvalidSessionStateError: 같은 session_id가 이미 있을 때
        """
        with self._lock:
            if self.sessions.search(Query().session_id == session_id):
                raise InvalidSessionStateError(f"이미 등록된 세션입니다: {session_id}")
            now = self.clock()
            session = Session(
                session_id=session_id,
                player1=player1,
                player2=player2,
                stake1=stake1,
                stake2=stake2,
                commitment=commitment,
                created_at=now,
                updated_at=now,
                start_tx=start_tx,
            )
            self.sessions.insert(session.to_dict())
        logger.info("session %d created: commitment=%s", session_id, short_hex(commitment))
        return session

    def _write(self, session):
        session.updated_at = self.clock()
        self.sessions.update(session.to_dict(), Query().session_id == session.session_id)

    def _transition(self, session, new_status, **changes):
        if new_status not in TRANSITIONS[session.status]:
            raise InvalidSessionStateError(
                f"세션 {session.session_id}: {session.status.value} → {new_status.value} 전이는 허용되지 않습니다"
            )
        previous = session.status
        session.status = new_status
        for key, value in changes.items():
            setattr(session, key, value)
        self._write(session)
        logger.info("session %d: %s -> %s", session.session_id, previous.value, new_status.value)
        return session

    def _expire_if_stale(self, session):
        if session.status.is_terminal or self.timeout_seconds is None:
            return session
        if session.session_id in self._in_flight:
            return session
        if self.clock() - session.created_at >= self.timeout_seconds:
            return self._transition(session, SessionStatus.EXPIRED, reason="timeout")
        return session

    def _load_active(self, session_id, apply_expiry=True):
        if apply_expiry:
            session = self.get(session_id)
        else:
            session = Session.from_dict(self._row(session_id))
        if session.status.is_terminal:
            raise InvalidSessionStateError(
                f"세션 {session_id}은(는) 이미 종료 상태입니다: {session.status.value}"
            )
        return session

    def mark_awaiting_proof(self, session_id, reveal_tx=None):
        with self._lock:
            session = self._load_active(session_id)
            return self._transition(
                session, SessionStatus.AWAITING_PROOF,
                reveal_tx=reveal_tx, attempts=session.attempts + 1,
            )

    def mark_verified(self, session_id, nullifier, reveal_tx=None):
        """검증 성공을 기록하고 널리파이어를 소비한다 (원자적).

        원장이 이미 증명을 받아들인 뒤에 호출되므로 지연 만료를 적용하지 않는다.
        이미 기록된 Expired 상태만 전이를 막는다.

        Raises:
            ReplayError: (session_id, nullifier)가 이미 소비되었을 때.
                세션은 Rejected로 전이한다.
            InvalidSessionStateError: 세션이 AwaitingProof가 아닐 때
        """
        tag = nullifier_tag(session_id, nullifier)
        with self._lock:
            session = self._load_active(session_id, apply_expiry=False)
            if session.status is not SessionStatus.AWAITING_PROOF:
                raise InvalidSessionStateError(
                    f"세션 {session_id}: 증명 제출 전에는 검증 완료로 전이할 수 없습니다"
                )
            if self.nullifiers.search(Query().tag == tag):
                self._transition(session, SessionStatus.REJECTED, reason="replay")
                raise ReplayError(f"세션 {session_id}의 널리파이어가 이미 사용되었습니다",
                                  code="ALREADY_VERIFIED")
            self.nullifiers.insert({"tag": tag, "session_id": session_id})
            return self._transition(
                session, SessionStatus.VERIFIED,
                reveal_tx=reveal_tx or session.reveal_tx, reason=None,
            )

    def mark_rejected(self, session_id, reason):
        """원장의 거부 결과를 기록한다. 지연 만료보다 원장 결과가 우선한다."""
        with self._lock:
            session = self._load_active(session_id, apply_expiry=False)
            return self._transition(session, SessionStatus.REJECTED, reason=reason)

    def ensure_not_replayed(self, session_id, nullifier):
        """(session_id, nullifier)가 이미 소비되었으면 ReplayError."""
        tag = nullifier_tag(session_id, nullifier)
        with self._lock:
            if self.nullifiers.search(Query().tag == tag):
                raise ReplayError(f"세션 {session_id}의 널리파이어가 이미 사용되었습니다",
                                  code="ALREADY_VERIFIED")

    def expire_stale(self):
        """만료 시간이 지난 활성 세션을 모두 Expired로 전이하고 그 목록을 반환한다."""
        expired = []
        with self._lock:
            for row in self.sessions.all():
                session = Session.from_dict(row)
                if session.status.is_terminal:
                    continue
                if self._expire_if_stale(session).status is SessionStatus.EXPIRED:
                    expired.append(session)
        return expired

    # ── 잠금 ──

    @contextmanager
    def reveal_lock(self, session_id):
        """같은 세션의 reveal 시도를 직렬화한다.

        잠금을 기다리거나 쥔 스레드가 없어지면 항목을 지운다.
        """
        with self._lock:
            entry = self._reveal_locks.setdefault(session_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._reveal_locks[session_id]

    @contextmanager
    def submission(self, session_id):
        """증명 제출이 진행되는 동안 세션의 지연 만료를 멈춘다.

        진입할 때 만료를 한 번 적용하고, 이미 종료 상태면
        InvalidSessionStateError를 던진다.
        """
        with self._lock:
            self._load_active(session_id)
            self._in_flight.add(session_id)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(session_id)

    def close(self):
        self.db.close()
