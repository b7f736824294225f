"""
commit / reveal 파이프라인 테스트
===================================

start_session → reveal의 전체 흐름과 실패 경로별 세션 상태를 테스트한다.
증명 생성은 비싸므로 성공 경로는 모듈 단위로 한 번만 실행하고,
증명이 필요 없는 실패 경로(잘못된 비밀값, 종료 상태, replay)를 우선 검사한다.
"""

import pytest

from zkgrid.commitment import commitment_to_hex, compute_commitment, derive_nullifier
from zkgrid.errors import (
    InvalidSessionStateError,
    ReplayError,
    SessionNotFoundError,
    SimulationError,
    SubmissionError,
    VerificationRejectedError,
    WitnessGenerationError,
)
from zkgrid.ledger import SAME_PLAYER, InMemoryLedger
from zkgrid.pipeline import RevealPipeline, Secret, SessionContext, reveal, start_session
from zkgrid.session import SessionRegistry, SessionStatus

PLAYER1 = "GALICE"
PLAYER2 = "GBOB"


@pytest.fixture
def context(proving_context):
    context = SessionContext.create(proving=proving_context)
    yield context
    context.close()


@pytest.fixture(scope="module")
def verified(proving_context):
    """reveal까지 성공한 세션 하나를 가진 컨텍스트."""
    context = SessionContext.create(proving=proving_context)
    session, secret = start_session(context, 7, PLAYER1, PLAYER2, 100, 100, 3, 5)
    result = reveal(context, 7, secret)
    yield context, result, secret
    context.close()


# ─────────────────────────────────────────────────────────────────────
# Secret
# ─────────────────────────────────────────────────────────────────────

class TestSecret:
    def test_repr_hidden(self):
        secret = Secret(3, 5, 123456)
        assert repr(secret) == "Secret(<hidden>)"
        assert "123456" not in str(secret)

    def test_private_inputs(self):
        assert Secret(3, 5, 9).as_private_inputs() == {"x": 3, "y": 5, "nullifier": 9}


# ─────────────────────────────────────────────────────────────────────
# commit
# ─────────────────────────────────────────────────────────────────────

class TestStartSession:
    def test_created(self, context):
        session, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
        assert session.status is SessionStatus.CREATED
        assert secret.nullifier == derive_nullifier(1, PLAYER1, PLAYER2)
        expected = commitment_to_hex(compute_commitment(3, 5, secret.nullifier))
        assert session.commitment == expected
        assert context.ledger.get_commitment(1) == expected
        assert session.start_tx.startswith("0x")

    def test_explicit_nullifier(self, context):
        _, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5, nullifier=42)
        assert secret.nullifier == 42

    def test_ledger_failure_not_registered(self, context):
        with pytest.raises(SimulationError) as excinfo:
            start_session(context, 1, PLAYER1, PLAYER1, 10, 20, 3, 5)
        assert excinfo.value.code == SAME_PLAYER
        assert not context.registry.exists(1)

    def test_duplicate_session(self, context):
        start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
        with pytest.raises(SimulationError):
            start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 4, 4)


# ─────────────────────────────────────────────────────────────────────
# reveal 성공 / replay
# ─────────────────────────────────────────────────────────────────────

class TestRevealSuccess:
    def test_verified(self, verified):
        context, result, _ = verified
        assert result.status is SessionStatus.VERIFIED
        assert context.registry.get(7).status is SessionStatus.VERIFIED
        assert result.attempts == 1

    def test_consumed_on_ledger(self, verified):
        context, result, _ = verified
        commitment = int(result.commitment, 16)
        assert context.ledger.client.is_consumed(7, commitment)

    def test_stakes_released(self, verified):
        context, _, _ = verified
        assert context.ledger.client.escrowed(7) == 0
        assert context.ledger.get_game(7).winner == PLAYER1
        assert context.ledger.client.balance(PLAYER1) == 100
        assert context.ledger.client.balance(PLAYER2) == -100

    def test_replay_rejected(self, verified):
        context, _, secret = verified
        with pytest.raises(ReplayError):
            reveal(context, 7, secret)
        assert context.registry.get(7).status is SessionStatus.VERIFIED


# ─────────────────────────────────────────────────────────────────────
# reveal 실패 경로
# ─────────────────────────────────────────────────────────────────────

class TestRevealFailures:
    def test_unknown_session(self, context):
        with pytest.raises(SessionNotFoundError):
            reveal(context, 99, Secret(3, 5, 1))

    def test_wrong_secret_leaves_state(self, context):
        """커밋먼트와 맞지 않는 비밀값은 아무것도 제출하지 않는다."""
        _, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
        with pytest.raises(WitnessGenerationError):
            reveal(context, 1, Secret(4, 5, secret.nullifier))
        session = context.registry.get(1)
        assert session.status is SessionStatus.CREATED
        assert session.attempts == 0
        assert context.ledger.client.ledger_sequence == 1

    def test_terminal_session(self, context):
        _, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
        context.registry.mark_awaiting_proof(1)
        context.registry.mark_rejected(1, "PROOF_REJECTED")
        with pytest.raises(InvalidSessionStateError):
            reveal(context, 1, secret)

    def test_verifier_rejects(self, proving_context):
        context = SessionContext.create(
            proving=proving_context,
            ledger_client=InMemoryLedger(verifier=lambda proof, public_inputs: False),
        )
        try:
            _, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
            with pytest.raises(VerificationRejectedError):
                reveal(context, 1, secret)
            session = context.registry.get(1)
            assert session.status is SessionStatus.REJECTED
            assert session.reason == "PROOF_REJECTED"
        finally:
            context.close()

    def test_transport_failure_stays_awaiting(self, context):
        _, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
        context.ledger.client.inject_faults(context.ledger.max_retries + 1)
        with pytest.raises(SubmissionError):
            reveal(context, 1, secret)
        session = context.registry.get(1)
        assert session.status is SessionStatus.AWAITING_PROOF
        assert session.reveal_tx is not None


# ─────────────────────────────────────────────────────────────────────
# RevealPipeline
# ─────────────────────────────────────────────────────────────────────

class TestRevealPipeline:
    def test_failed_task(self, context):
        pipeline = RevealPipeline(context, max_workers=2)
        try:
            start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
            task = pipeline.reveal(1, Secret(0, 0, 0))
            with pytest.raises(WitnessGenerationError):
                task.result(60)
            assert task.stage == "failed"
            assert task.done()
            assert task.cancel() is False
        finally:
            pipeline.shutdown()

    def test_concurrent_sessions(self, context):
        pipeline = RevealPipeline(context, max_workers=2)
        try:
            start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
            start_session(context, 2, PLAYER1, PLAYER2, 10, 20, 1, 1)
            wrong = pipeline.reveal(1, Secret(9, 9, 9))
            missing = pipeline.reveal(3, Secret(1, 1, 1))
            with pytest.raises(WitnessGenerationError):
                wrong.result(60)
            with pytest.raises(SessionNotFoundError):
                missing.result(60)
            assert context.registry.get(2).status is SessionStatus.CREATED
        finally:
            pipeline.shutdown()

    def test_same_session_at_most_once(self, context):
        """같은 세션을 동시에 두 번 reveal하면 하나만 Verified가 된다."""
        pipeline = RevealPipeline(context, max_workers=2)
        try:
            session, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
            tasks = [pipeline.reveal(1, secret), pipeline.reveal(1, secret)]
            outcomes = []
            for task in tasks:
                try:
                    outcomes.append(task.result(600).status.value)
                except ReplayError:
                    outcomes.append("ReplayError")
            assert sorted(outcomes) == ["ReplayError", "Verified"]
            assert context.registry.get(1).status is SessionStatus.VERIFIED
            assert context.ledger.client.is_consumed(1, int(session.commitment, 16))
        finally:
            pipeline.shutdown()


# ─────────────────────────────────────────────────────────────────────
# 만료와 원장 결과
# ─────────────────────────────────────────────────────────────────────

class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class SlowConfirmLedger(InMemoryLedger):
    """submit_proof가 확정되는 동안 시계가 앞으로 간다."""

    def __init__(self, verifier, clock, delay):
        super().__init__(verifier)
        self.clock = clock
        self.delay = delay

    def send(self, tx):
        receipt = super().send(tx)
        if tx.method == "submit_proof":
            self.clock.now += self.delay
        return receipt


class TestExpiryDuringSubmission:
    def test_timeout_during_confirmation(self, proving_context):
        """확정 대기 중 타임아웃이 지나도 원장이 받아들인 증명은 Verified로 남는다."""
        clock = FakeClock()
        context = SessionContext.create(
            proving=proving_context,
            registry=SessionRegistry(timeout_seconds=60.0, clock=clock),
            ledger_client=SlowConfirmLedger(proving_context.verifier(), clock, 61.0),
        )
        try:
            session, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
            result = reveal(context, 1, secret)
            assert result.status is SessionStatus.VERIFIED
            assert context.ledger.client.is_consumed(1, int(session.commitment, 16))
            assert context.registry.get(1).status is SessionStatus.VERIFIED
            with pytest.raises(ReplayError):
                context.registry.ensure_not_replayed(1, secret.nullifier)
        finally:
            context.close()

    def test_expired_before_submission(self, proving_context):
        clock = FakeClock()
        context = SessionContext.create(
            proving=proving_context,
            registry=SessionRegistry(timeout_seconds=60.0, clock=clock),
        )
        try:
            _, secret = start_session(context, 1, PLAYER1, PLAYER2, 10, 20, 3, 5)
            clock.now += 61.0
            with pytest.raises(InvalidSessionStateError):
                reveal(context, 1, secret)
            assert context.registry.get(1).status is SessionStatus.EXPIRED
            assert context.ledger.client.ledger_sequence == 1
        finally:
            context.close()
