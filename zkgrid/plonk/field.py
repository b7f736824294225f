"""
PLONK 기반 모듈: 유한체(Finite Field) 및 타원곡선 연산
========================================================

증명 백엔드 전체에서 사용되는 기본 대수적 도구를 정의한다.

**유한체 FR**:
  BN254(bn128) 곡선의 스칼라 필드. 커밋먼트 해시(Poseidon2), 회로 배선,
  다항식 연산이 모두 이 필드 위에서 이루어진다.
  - 위수 r ≈ 2^254, 소수체
  - r - 1 = 2^28 × m (m은 홀수) → 최대 2^28차 단위근 지원

**타원곡선 연산**:
  KZG 커밋먼트와 페어링 검증을 위한 G1, G2 연산.
  py_ecc.optimized_bn128 (Jacobian 좌표)을 사용한다. 점은 (x, y, z)
  3-튜플이며, 무한원점은 z = 0 이다. 직렬화나 트랜스크립트에 넣을 때는
  normalize_point()로 아핀 좌표 (x, y)를 얻는다.

사용 예시:
    >>> from zkgrid.plonk.field import FR, G1, ec_mul
    >>> c = FR(3) * FR(7)      # FR(21)
    >>> P = ec_mul(G1, 5)      # 5·G1
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import optimized_bn128 as bn128


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """BN254 스칼라 필드 위의 유한체 원소.

    py_ecc의 FQ를 상속하여 +, -, *, /, ** 연산을 제공한다.

    예시:
        >>> x = FR(3)
        >>> x * x           # FR(9)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (필드 크기)
CURVE_ORDER = bn128.curve_order

# 베이스 필드 크기 (G1 좌표의 범위)
FIELD_MODULUS = bn128.field_modulus


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 상수 및 연산
# ─────────────────────────────────────────────────────────────────────

G1 = bn128.G1
G2 = bn128.G2

# G1 항등원 (무한원점)
Z1 = bn128.Z1


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point."""
    if isinstance(scalar, FR):
        scalar = int(scalar)
    return bn128.multiply(point, scalar % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2."""
    return bn128.add(p1, p2)


def ec_neg(point):
    """타원곡선 점의 역원: -point."""
    return bn128.neg(point)


def ec_eq(p1, p2):
    """Jacobian 좌표의 두 점이 같은 점인지 비교한다.

    같은 점이라도 z 좌표가 다르면 튜플 비교(==)는 False가 되므로
    반드시 이 함수를 사용한다.
    """
    return bn128.eq(p1, p2)


def is_infinity(point):
    """무한원점 여부."""
    return bn128.is_inf(point)


def normalize_point(point):
    """G1 점을 아핀 정수 좌표 (x, y)로 변환한다.

    무한원점은 (0, 0)으로 표현한다 (BN254 위에 (0, 0)은 존재하지 않음).
    """
    if bn128.is_inf(point):
        return 0, 0
    x, y = bn128.normalize(point)
    return int(x), int(y)


def point_from_affine(x, y):
    """아핀 정수 좌표 (x, y)로부터 G1 점을 복원한다.

    Raises:
        ValueError: 좌표가 필드 범위를 벗어나거나 곡선 위의 점이 아닐 때
    """
    if x == 0 and y == 0:
        return Z1
    if not (0 <= x < FIELD_MODULUS and 0 <= y < FIELD_MODULUS):
        raise ValueError("G1 좌표가 베이스 필드 범위를 벗어났습니다")
    point = (bn128.FQ(x), bn128.FQ(y), bn128.FQ.one())
    if not bn128.is_on_curve(point, bn128.b):
        raise ValueError("G1 곡선 위의 점이 아닙니다")
    return point


def ec_pairing(g2_point, g1_point):
    """쌍선형 페어링 e(G1, G2) → GT.

    주의:
        py_ecc 페어링의 인자 순서는 (G2, G1)이다.
    """
    return bn128.pairing(g2_point, g1_point)


# ─────────────────────────────────────────────────────────────────────
# 단위근 (Roots of Unity)
# ─────────────────────────────────────────────────────────────────────

def get_root_of_unity(n):
    """n차 원시 단위근 ω를 반환한다.

    생성자 g = FR(5)를 사용하여 ω = g^((r-1)/n)으로 계산한다.

    Args:
        n: 단위근의 차수 (2의 거듭제곱이어야 하며, ≤ 2^28)

    Raises:
        ValueError: n이 2의 거듭제곱이 아니거나 2^28을 초과할 때

    예시:
        >>> omega = get_root_of_unity(4)
        >>> omega ** 4 == FR(1)  # True
    """
    if n < 1 or (n & (n - 1)) != 0:
        raise ValueError(f"n은 2의 거듭제곱이어야 합니다: {n}")
    if n > (1 << 28):
        raise ValueError(f"n은 2^28 이하여야 합니다: {n}")
    if n == 1:
        return FR(1)

    # ω^n = g^(r-1) = 1 (페르마 소정리)
    g = FR(5)
    return g ** ((CURVE_ORDER - 1) // n)


def get_roots_of_unity(n):
    """평가 도메인 H = [1, ω, ω², ..., ω^(n-1)]을 반환한다."""
    omega = get_root_of_unity(n)
    roots = []
    current = FR(1)
    for _ in range(n):
        roots.append(current)
        current = current * omega
    return roots
