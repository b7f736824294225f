"""
PLONK Fiat-Shamir Transcript
==============================

비대화식 변환을 위한 Fiat-Shamir 트랜스크립트. 두 가지 모드를 지원한다.

**keccak (원장 호환)**:
  바이트 상태를 누적하고 Keccak-256으로 챌린지를 뽑는다.
  배포된 온체인 검증자가 이 모드를 사용하므로, 원장에 제출하는 증명은
  반드시 이 모드로 만들어야 한다.

**native (필드 원소)**:
  상태를 스칼라 필드 원소로 누적하고 Poseidon2 스폰지로 챌린지를 뽑는다.
  회로 내/오프체인 재귀 검증에 유리하지만 keccak 검증자는 거부한다.

**챌린지 순서**:
  공개 입력 → [a],[b],[c] → β, γ → [z] → α → [t_lo],[t_mid],[t_hi] → ζ
  → 평가값 6개 → r̄ → v → [W_ζ],[W_ζω] → u

사용 예시:
    >>> t = new_transcript(TranscriptMode.KECCAK)
    >>> t.append_point(b"a_comm", commitment)
    >>> beta = t.challenge_scalar(b"beta")
"""

import enum

from eth_utils import keccak

from zkgrid.plonk.field import FR, CURVE_ORDER, normalize_point
from zkgrid.poseidon import hash_elements

_LIMB_BITS = 128
_LIMB_MASK = (1 << _LIMB_BITS) - 1


class TranscriptMode(str, enum.Enum):
    KECCAK = "keccak"
    NATIVE = "native"


class KeccakTranscript:
    """Keccak-256 기반 트랜스크립트.

    속성:
        state: 현재까지 누적된 바이트열
    """

    mode = TranscriptMode.KECCAK

    def __init__(self, label=b"zkgrid-plonk"):
        self.state = bytearray()
        self.state.extend(label)

    def append_scalar(self, label, scalar):
        """FR 스칼라를 32바이트 빅엔디안으로 추가한다."""
        self.state.extend(label)
        self.state.extend((int(scalar) % CURVE_ORDER).to_bytes(32, "big"))

    def append_point(self, label, point):
        """G1 점을 아핀 (x, y) 64바이트로 추가한다. 무한원점은 64바이트 0."""
        self.state.extend(label)
        x, y = normalize_point(point)
        self.state.extend(x.to_bytes(32, "big"))
        self.state.extend(y.to_bytes(32, "big"))

    def challenge_scalar(self, label):
        """상태를 해싱하여 챌린지를 뽑고, 다이제스트를 상태에 체이닝한다."""
        self.state.extend(label)
        h = keccak(bytes(self.state))
        self.state.extend(h)
        return FR(int.from_bytes(h, "big") % CURVE_ORDER)


class PoseidonTranscript:
    """Poseidon2 스폰지 기반 트랜스크립트.

    G1 좌표는 베이스 필드 원소라 스칼라 필드보다 클 수 있으므로
    128비트 림(limb) 두 개로 나누어 흡수한다.
    레이블은 빅엔디안 정수로 해석한 필드 원소로 흡수한다.
    """

    mode = TranscriptMode.NATIVE

    def __init__(self, label=b"zkgrid-plonk", hash_profile=None):
        self.hash_profile = hash_profile
        self.state = [self._label_element(label)]

    @staticmethod
    def _label_element(label):
        return int.from_bytes(label, "big") % CURVE_ORDER

    def append_scalar(self, label, scalar):
        self.state.append(self._label_element(label))
        self.state.append(int(scalar) % CURVE_ORDER)

    def append_point(self, label, point):
        self.state.append(self._label_element(label))
        for coord in normalize_point(point):
            self.state.append(coord & _LIMB_MASK)
            self.state.append(coord >> _LIMB_BITS)

    def challenge_scalar(self, label):
        self.state.append(self._label_element(label))
        h = hash_elements(self.state, self.hash_profile)
        self.state = [h]
        return FR(h)


def new_transcript(mode, hash_profile=None):
    """모드에 맞는 트랜스크립트를 생성한다.

    Args:
        mode: TranscriptMode 또는 "keccak" / "native"
        hash_profile: native 모드의 Poseidon2 프로파일 (None이면 설정값)

    Raises:
        ValueError: 알 수 없는 모드
    """
    mode = TranscriptMode(mode)
    if mode is TranscriptMode.KECCAK:
        return KeccakTranscript()
    return PoseidonTranscript(hash_profile=hash_profile)
