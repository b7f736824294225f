"""
Poseidon2 해시 (BN254 스칼라 필드, width 4)
=============================================

커밋먼트 Hash(x, y, nullifier)와 native 트랜스크립트가 사용하는
대수적(arithmetization-friendly) 스폰지 해시.

**순열 구조** (t = 4, S-box x⁵):

  state ← M_E · state
  R_F/2 번의 full round:    state ← M_E · S(state + rc)
  R_P   번의 partial round: s₀ ← (s₀ + rc₀)⁵,  state ← M_I · state
  R_F/2 번의 full round

  M_E = [[5,7,1,3],[4,6,1,1],[1,3,5,7],[1,1,4,6]]
  M_I = J + diag(d),  즉 outᵢ = dᵢ·uᵢ + Σⱼ uⱼ

**스폰지**:
  rate 3, capacity 1 (state[3]). capacity 초기값은 입력 길이 · 2⁶⁴.
  입력을 3개씩 흡수하며 순열을 적용하고, 마지막에 state[0]을 출력한다.

**해시 프로파일**:
  프로파일은 라운드 수와 라운드 상수를 고정한다. 라운드 상수는 프로파일
  이름에서 SHA-256으로 결정론적으로 유도된다. 해셔와 회로 로더는 같은
  설정 키(hash_profile)를 통해서만 파라미터를 얻는다.

  | 프로파일                     | R_F | R_P | 회로 도메인 |
  |------------------------------|-----|-----|-------------|
  | poseidon2-bn254-t4           |  8  | 56  | 1024        |
  | poseidon2-bn254-t4-compact   |  8  |  5  |  256        |

사용 예시:
    >>> h = hash_elements([3, 5, 123456])
"""

import functools
import hashlib
import json
from dataclasses import dataclass

from zkgrid.config import get_config
from zkgrid.errors import RangeError
from zkgrid.plonk.field import FR, CURVE_ORDER


WIDTH = 4
RATE = 3
ALPHA = 5

EXTERNAL_MATRIX = (
    (5, 7, 1, 3),
    (4, 6, 1, 1),
    (1, 3, 5, 7),
    (1, 1, 4, 6),
)

INTERNAL_DIAGONAL = (4, 5, 7, 3)

DEFAULT_PROFILE = "poseidon2-bn254-t4"

# 프로파일 이름 → (full rounds, partial rounds)
PROFILES = {
    "poseidon2-bn254-t4": (8, 56),
    "poseidon2-bn254-t4-compact": (8, 5),
}


@dataclass(frozen=True)
class HashParameters:
    """하나의 해시 프로파일을 완전히 고정하는 파라미터.

    round_constants[i]는 i번째 라운드 (full/partial 통틀어 순서대로)의
    상수 벡터이다. partial round는 0번 원소만 사용한다.
    """

    profile: str
    full_rounds: int
    partial_rounds: int
    round_constants: tuple
    width: int = WIDTH
    rate: int = RATE
    alpha: int = ALPHA
    external_matrix: tuple = EXTERNAL_MATRIX
    internal_diagonal: tuple = INTERNAL_DIAGONAL

    @property
    def half_full_rounds(self):
        return self.full_rounds // 2

    @property
    def num_rounds(self):
        return self.full_rounds + self.partial_rounds

    def is_partial_round(self, index):
        """index번째 라운드가 partial round인지 여부."""
        return self.half_full_rounds <= index < self.half_full_rounds + self.partial_rounds

    @property
    def fingerprint(self):
        """모든 파라미터에 대한 SHA-256 지문 (16진 문자열)."""
        payload = json.dumps(
            {
                "profile": self.profile,
                "width": self.width,
                "rate": self.rate,
                "alpha": self.alpha,
                "full_rounds": self.full_rounds,
                "partial_rounds": self.partial_rounds,
                "external_matrix": self.external_matrix,
                "internal_diagonal": self.internal_diagonal,
                "round_constants": [[str(c) for c in rc] for rc in self.round_constants],
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _round_constant(profile, round_index, position):
    seed = f"{profile}/rc/{round_index}/{position}".encode("utf-8")
    return int.from_bytes(hashlib.sha256(seed).digest(), "big") % CURVE_ORDER


@functools.lru_cache(maxsize=None)
def _build_parameters(profile):
    if profile not in PROFILES:
        raise ValueError(f"알 수 없는 해시 프로파일입니다: {profile}")
    full_rounds, partial_rounds = PROFILES[profile]
    half = full_rounds // 2
    constants = []
    for r in range(full_rounds + partial_rounds):
        if half <= r < half + partial_rounds:
            constants.append((_round_constant(profile, r, 0), 0, 0, 0))
        else:
            constants.append(tuple(_round_constant(profile, r, i) for i in range(WIDTH)))
    return HashParameters(
        profile=profile,
        full_rounds=full_rounds,
        partial_rounds=partial_rounds,
        round_constants=tuple(constants),
    )


def hash_parameters(profile=None):
    """프로파일의 HashParameters를 반환한다.

    profile이 None이면 현재 설정의 hash_profile을 사용한다.

    Raises:
        ValueError: 알 수 없는 프로파일
    """
    if profile is None:
        profile = get_config()["hash_profile"]
    return _build_parameters(profile)


# ─────────────────────────────────────────────────────────────────────
# 순열 (정수 산술)
# ─────────────────────────────────────────────────────────────────────

def _sbox(v):
    return pow(v, ALPHA, CURVE_ORDER)


def _external_layer(state):
    return [
        sum(m * s for m, s in zip(row, state)) % CURVE_ORDER
        for row in EXTERNAL_MATRIX
    ]


def _internal_layer(state, diagonal):
    total = sum(state)
    return [(d * s + total) % CURVE_ORDER for d, s in zip(diagonal, state)]


def permute(state, params):
    """Poseidon2 순열을 적용한 새 상태를 반환한다.

    Args:
        state: 길이 4의 정수 리스트 (각 원소 ∈ [0, r))
        params: HashParameters
    """
    if len(state) != params.width:
        raise ValueError(f"상태 길이는 {params.width}이어야 합니다: {len(state)}")

    state = _external_layer(state)
    for r, rc in enumerate(params.round_constants):
        if params.is_partial_round(r):
            state[0] = _sbox((state[0] + rc[0]) % CURVE_ORDER)
            state = _internal_layer(state, params.internal_diagonal)
        else:
            state = [_sbox((s + c) % CURVE_ORDER) for s, c in zip(state, rc)]
            state = _external_layer(state)
    return state


# ─────────────────────────────────────────────────────────────────────
# 스폰지
# ─────────────────────────────────────────────────────────────────────

def to_field_element(value, name="value"):
    """정수를 스칼라 필드 원소로 검증한다.

    Raises:
        RangeError: 정수가 아니거나 [0, r) 밖일 때
    """
    if isinstance(value, FR):
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise RangeError(f"{name}은(는) 정수여야 합니다: {value!r}")
    if not 0 <= value < CURVE_ORDER:
        raise RangeError(f"{name}이(가) 스칼라 필드 범위 [0, r)를 벗어났습니다")
    return value


def initial_state(num_inputs):
    """흡수 전 스폰지 상태 (capacity = 입력 길이 · 2⁶⁴)."""
    return [0, 0, 0, num_inputs << 64]


def hash_elements(inputs, profile=None):
    """필드 원소 시퀀스의 Poseidon2 스폰지 해시.

    Args:
        inputs: 정수(또는 FR) 시퀀스, 각 원소 ∈ [0, r)
        profile: 해시 프로파일 (None이면 설정값)

    Returns:
        int: 해시 값 ∈ [0, r)

    Raises:
        RangeError: 입력이 필드 범위를 벗어날 때
    """
    params = hash_parameters(profile)
    elements = [to_field_element(v, f"input[{i}]") for i, v in enumerate(inputs)]

    state = initial_state(len(elements))
    if not elements:
        return permute(state, params)[0]

    for start in range(0, len(elements), params.rate):
        chunk = elements[start:start + params.rate]
        for i, v in enumerate(chunk):
            state[i] = (state[i] + v) % CURVE_ORDER
        state = permute(state, params)
    return state[0]
