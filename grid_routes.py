"""
Grid Flask Blueprint: commit / reveal JSON API
=================================================

  POST /api/commitment              Hash(x, y, nullifier)
  POST /api/nullifier               세션에 묶인 널리파이어 유도
  POST /api/sessions                커밋먼트 계산 + start_game + Created 등록
  GET  /api/sessions/<id>           세션 상태 조회
  POST /api/sessions/<id>/reveal    witness → 증명 → submit_proof
  GET  /api/circuit                 회로 / 검증 키 정보

오류는 {"error", "message", "code", "retryable"} JSON으로 응답한다.
"""

import logging

from flask import Blueprint, jsonify, request

from zkgrid.commitment import commitment_to_hex, compute_commitment, derive_nullifier
from zkgrid.errors import (
    InvalidSessionStateError,
    LedgerError,
    ProofGenerationError,
    RangeError,
    ReplayError,
    SessionNotFoundError,
    SimulationError,
    SubmissionError,
    VerificationRejectedError,
    WitnessGenerationError,
    ZkGridError,
)
from zkgrid.pipeline import Secret, start_session

logger = logging.getLogger(__name__)

grid_bp = Blueprint('grid', __name__, url_prefix='/api')

# app.py에서 주입
CONTEXT = None
PIPELINE = None


def init_grid_bp(context, pipeline):
    """app.py에서 SessionContext와 RevealPipeline을 주입받는다."""
    global CONTEXT, PIPELINE
    CONTEXT = context
    PIPELINE = pipeline


# ─── 요청 헬퍼 ───

def _payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise RangeError("요청 본문은 JSON 객체여야 합니다")
    return data


def _int_field(data, name, required=True):
    """정수 필드를 읽는다. JSON 숫자, 10진 문자열, 0x 16진 문자열을 받는다."""
    if name not in data or data[name] is None:
        if required:
            raise RangeError(f"필드가 필요합니다: {name}")
        return None
    value = data[name]
    if isinstance(value, bool):
        raise RangeError(f"{name}은(는) 정수여야 합니다")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value, 10)
        except ValueError:
            pass
    raise RangeError(f"{name}은(는) 정수여야 합니다: {value!r}")


def _str_field(data, name):
    value = data.get(name)
    if not isinstance(value, str) or not value:
        raise RangeError(f"필드가 필요합니다: {name}")
    return value


def _secret(data):
    return Secret(
        _int_field(data, "x"),
        _int_field(data, "y"),
        _int_field(data, "nullifier"),
    )


# ─── 오류 처리 ───

_STATUS_CODES = (
    (SessionNotFoundError, 404),
    (InvalidSessionStateError, 409),
    (ReplayError, 409),
    (VerificationRejectedError, 422),
    (WitnessGenerationError, 422),
    (SimulationError, 422),
    (SubmissionError, 502),
    (ProofGenerationError, 502),
    (LedgerError, 502),
    (RangeError, 400),
)


def status_for(error):
    for error_cls, status in _STATUS_CODES:
        if isinstance(error, error_cls):
            return status
    return 500


@grid_bp.errorhandler(ZkGridError)
def handle_zkgrid_error(error):
    status = status_for(error)
    if status >= 500:
        logger.warning("request failed: %s: %s", type(error).__name__, error)
    return jsonify({
        "error": type(error).__name__,
        "message": str(error),
        "code": getattr(error, "code", None),
        "retryable": error.retryable,
    }), status


# ──────────────────────────────────────────────────────────────
# 커밋먼트
# ──────────────────────────────────────────────────────────────

@grid_bp.route("/commitment", methods=["POST"])
def commitment():
    """Hash(x, y, nullifier)를 0x 16진 문자열로 반환한다."""
    secret = _secret(_payload())
    value = compute_commitment(secret.x, secret.y, secret.nullifier,
                               CONTEXT.proving.artifact.hash_profile)
    return jsonify({"commitment": commitment_to_hex(value)})


@grid_bp.route("/nullifier", methods=["POST"])
def nullifier():
    data = _payload()
    value = derive_nullifier(
        _int_field(data, "session_id"),
        _str_field(data, "player1"),
        _str_field(data, "player2"),
    )
    return jsonify({"nullifier": str(value), "nullifier_hex": "0x%064x" % value})


# ──────────────────────────────────────────────────────────────
# 세션
# ──────────────────────────────────────────────────────────────

@grid_bp.route("/sessions", methods=["POST"])
def create_session():
    """커밋먼트를 원장에 기록하고 세션을 만든다.

    nullifier를 생략하면 세션에서 유도한다. 응답의 nullifier는
    reveal 때 다시 필요하므로 호출자가 보관해야 한다.
    """
    data = _payload()
    session, secret = start_session(
        CONTEXT,
        _int_field(data, "session_id"),
        _str_field(data, "player1"),
        _str_field(data, "player2"),
        _int_field(data, "stake1"),
        _int_field(data, "stake2"),
        _int_field(data, "x"),
        _int_field(data, "y"),
        _int_field(data, "nullifier", required=False),
    )
    body = session.to_dict()
    body["nullifier"] = str(secret.nullifier)
    return jsonify(body), 201


@grid_bp.route("/sessions/<int:session_id>", methods=["GET"])
def get_session(session_id):
    return jsonify(CONTEXT.registry.get(session_id).to_dict())


@grid_bp.route("/sessions/<int:session_id>/reveal", methods=["POST"])
def reveal_session(session_id):
    """증명을 만들어 제출하고 최종 세션 상태를 반환한다."""
    secret = _secret(_payload())
    session = PIPELINE.reveal(session_id, secret).result()
    return jsonify(session.to_dict())


# ──────────────────────────────────────────────────────────────
# 회로
# ──────────────────────────────────────────────────────────────

@grid_bp.route("/circuit", methods=["GET"])
def circuit_info():
    artifact = CONTEXT.proving.artifact
    return jsonify({
        "hash_profile": artifact.hash_profile,
        "fingerprint": artifact.fingerprint,
        "gates": artifact.circuit.n,
        "variables": artifact.circuit.num_variables,
        "private_inputs": list(artifact.private_inputs),
        "public_inputs": list(artifact.public_inputs),
        "transcript_mode": CONTEXT.proving.transcript_mode.value,
        "verification_key": CONTEXT.proving.verification_key.to_dict(),
    })
