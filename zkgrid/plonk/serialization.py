"""
PLONK 증명 바이너리 인코딩
============================

원장에 제출하는 증명의 고정 레이아웃 (800바이트):

  ┌──────────────────────────────────────────────────────┐
  │  G1 × 9  (각 64바이트: x ‖ y, 32바이트 빅엔디안)     │
  │    a, b, c, z, t_lo, t_mid, t_hi, W_ζ, W_ζω          │
  ├──────────────────────────────────────────────────────┤
  │  FR × 7  (각 32바이트 빅엔디안)                      │
  │    ā, b̄, c̄, s̄_σ1, s̄_σ2, z̄_ω, r̄                      │
  └──────────────────────────────────────────────────────┘

무한원점은 64바이트 0으로 표현한다.
"""

from zkgrid.plonk.field import FR, CURVE_ORDER, normalize_point, point_from_affine
from zkgrid.plonk.prover import Proof

G1_BYTES = 64
FR_BYTES = 32
PROOF_BYTES = len(Proof.G1_FIELDS) * G1_BYTES + len(Proof.FR_FIELDS) * FR_BYTES


# ─── FR ───

def encode_fr(value):
    """FR → 32바이트"""
    return (int(value) % CURVE_ORDER).to_bytes(FR_BYTES, "big")


def decode_fr(data):
    """32바이트 → FR (정규형이 아니면 ValueError)"""
    value = int.from_bytes(data, "big")
    if value >= CURVE_ORDER:
        raise ValueError("스칼라가 필드 범위를 벗어났습니다")
    return FR(value)


# ─── G1 point ───

def encode_g1(point):
    """G1 point → 64바이트"""
    x, y = normalize_point(point)
    return x.to_bytes(32, "big") + y.to_bytes(32, "big")


def decode_g1(data):
    """64바이트 → G1 point (곡선 위의 점인지 검사)"""
    x = int.from_bytes(data[:32], "big")
    y = int.from_bytes(data[32:], "big")
    return point_from_affine(x, y)


# ─── Proof ───

def proof_to_bytes(proof):
    """Proof → 800바이트"""
    out = bytearray()
    for name in Proof.G1_FIELDS:
        out.extend(encode_g1(getattr(proof, name)))
    for name in Proof.FR_FIELDS:
        out.extend(encode_fr(getattr(proof, name)))
    return bytes(out)


def proof_from_bytes(data):
    """800바이트 → Proof

    Raises:
        ValueError: 길이가 틀렸거나 점/스칼라가 유효하지 않을 때
    """
    if len(data) != PROOF_BYTES:
        raise ValueError(f"증명 길이는 {PROOF_BYTES}바이트여야 합니다: {len(data)}")

    proof = Proof()
    offset = 0
    for name in Proof.G1_FIELDS:
        setattr(proof, name, decode_g1(data[offset:offset + G1_BYTES]))
        offset += G1_BYTES
    for name in Proof.FR_FIELDS:
        setattr(proof, name, decode_fr(data[offset:offset + FR_BYTES]))
        offset += FR_BYTES
    return proof
