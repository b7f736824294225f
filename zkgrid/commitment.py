"""
커밋먼트 (Field Hasher)
========================

  commitment = Poseidon2(x, y, nullifier)

세션 시작 시 공개되는 값이다. 원장 트랜잭션과 HTTP 응답에서는
"0x" + 64자리 16진수 (32바이트 빅엔디안) 고정폭 문자열로 교환한다.

**널리파이어 (replay 방지)**:
  세션마다 다른 널리파이어를 쓰면 같은 (x, y)라도 세션별 커밋먼트가
  달라져 이전 세션의 증명을 재사용할 수 없다. 권장 유도식:

    nullifier = keccak256(session_id_be32 ‖ player1 ‖ player2) mod r

사용 예시:
    >>> c = compute_commitment(3, 5, 123456)
    >>> commitment_to_hex(c)
    '0x...'
"""

import re

from eth_utils import keccak

from zkgrid.errors import RangeError
from zkgrid.plonk.field import CURVE_ORDER
from zkgrid.poseidon import hash_elements, to_field_element

COMMITMENT_BYTES = 32

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def compute_commitment(x, y, nullifier, profile=None):
    """Hash(x, y, nullifier)를 계산한다.

    Args:
        x, y: 비밀 좌표 (∈ [0, r))
        nullifier: 세션 널리파이어 (∈ [0, r))
        profile: 해시 프로파일 (None이면 설정값)

    Returns:
        int: 커밋먼트 ∈ [0, r)

    Raises:
        RangeError: 입력이 필드 범위를 벗어날 때
    """
    values = [
        to_field_element(x, "x"),
        to_field_element(y, "y"),
        to_field_element(nullifier, "nullifier"),
    ]
    return hash_elements(values, profile)


def commitment_to_hex(value):
    """커밋먼트를 고정폭 0x 16진 문자열로 변환한다."""
    value = to_field_element(value, "commitment")
    return "0x" + value.to_bytes(COMMITMENT_BYTES, "big").hex()


def commitment_to_bytes(value):
    return to_field_element(value, "commitment").to_bytes(COMMITMENT_BYTES, "big")


def commitment_from_hex(text):
    """고정폭 16진 문자열을 커밋먼트 정수로 변환한다.

    Raises:
        RangeError: 형식이 틀렸거나 값이 필드 범위 밖일 때
    """
    if not isinstance(text, str) or not _HEX_RE.match(text):
        raise RangeError(f"커밋먼트는 0x + 64자리 16진수여야 합니다: {text!r}")
    return to_field_element(int(text, 16), "commitment")


def commitment_from_bytes(data):
    if len(data) != COMMITMENT_BYTES:
        raise RangeError(f"커밋먼트는 {COMMITMENT_BYTES}바이트여야 합니다: {len(data)}")
    return to_field_element(int.from_bytes(data, "big"), "commitment")


def _player_bytes(player):
    if isinstance(player, bytes):
        return player
    if isinstance(player, str):
        return player.encode("utf-8")
    raise TypeError(f"플레이어 주소는 str 또는 bytes여야 합니다: {type(player).__name__}")


def derive_nullifier(session_id, player1, player2):
    """세션에 묶인 널리파이어를 유도한다.

    keccak256(session_id_be32 ‖ player1 ‖ player2) mod r
    """
    if not 0 <= session_id <= 0xFFFFFFFF:
        raise RangeError(f"session_id는 u32 범위여야 합니다: {session_id}")
    blob = session_id.to_bytes(4, "big") + _player_bytes(player1) + _player_bytes(player2)
    return int.from_bytes(keccak(blob), "big") % CURVE_ORDER
