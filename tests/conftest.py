"""
공용 테스트 픽스처
===================

모든 테스트는 compact 해시 프로파일(도메인 크기 256)로 실행한다.
증명 키와 x=3, y=5 커밋먼트에 대한 증명은 세션 전체에서 한 번만 만든다.
"""

import pytest

from zkgrid.circuit_artifact import compile_commitment_circuit
from zkgrid.commitment import compute_commitment
from zkgrid.config import configure, reset_config
from zkgrid.proving import ProvingContext, ProvingKey, prove
from zkgrid.witness import solve

TEST_PROFILE = "poseidon2-bn254-t4-compact"
TEST_SRS_SEED = "zkgrid-test-srs"

SECRET_X = 3
SECRET_Y = 5
SECRET_NULLIFIER = 123456


def apply_test_config():
    """테스트 공통 설정을 다시 적용한다 (설정을 건드리는 테스트의 정리용)."""
    reset_config()
    configure(
        hash_profile=TEST_PROFILE,
        srs_seed=TEST_SRS_SEED,
        transcript_mode="keccak",
        log_level="WARNING",
        ledger={"retry_backoff_seconds": 0.0},
    )


def pytest_configure(config):
    apply_test_config()


@pytest.fixture
def restore_config():
    yield
    apply_test_config()


# ─────────────────────────────────────────────────────────────────────
# 세션 범위 픽스처 (증명 키 / 증명)
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def artifact():
    return compile_commitment_circuit(TEST_PROFILE)


@pytest.fixture(scope="session")
def proving_key(artifact):
    return ProvingKey.setup(artifact, srs_seed=TEST_SRS_SEED)


@pytest.fixture(scope="session")
def commitment():
    return compute_commitment(SECRET_X, SECRET_Y, SECRET_NULLIFIER, TEST_PROFILE)


@pytest.fixture(scope="session")
def private_inputs():
    return {"x": SECRET_X, "y": SECRET_Y, "nullifier": SECRET_NULLIFIER}


@pytest.fixture(scope="session")
def witness(artifact, private_inputs, commitment):
    return solve(artifact, private_inputs, {"commitment": commitment})


@pytest.fixture(scope="session")
def keccak_proof(artifact, witness, proving_key):
    """(proof_bytes, public_inputs), keccak 트랜스크립트."""
    return prove(artifact, witness, "keccak", proving_key, self_check=False)


@pytest.fixture(scope="session")
def proving_context(proving_key):
    context = ProvingContext(proving_key=proving_key, transcript_mode="keccak")
    yield context
    context.shutdown()
