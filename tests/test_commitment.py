"""
커밋먼트 / 널리파이어 테스트
=============================
"""

import random

import pytest
from eth_utils import keccak

from zkgrid.commitment import (
    commitment_from_bytes,
    commitment_from_hex,
    commitment_to_bytes,
    commitment_to_hex,
    compute_commitment,
    derive_nullifier,
)
from zkgrid.errors import RangeError
from zkgrid.plonk.field import CURVE_ORDER
from zkgrid.poseidon import hash_elements

COMPACT = "poseidon2-bn254-t4-compact"


class TestComputeCommitment:
    def test_matches_hash(self):
        assert compute_commitment(3, 5, 123456, COMPACT) == hash_elements([3, 5, 123456], COMPACT)

    def test_default_profile(self, commitment):
        assert compute_commitment(3, 5, 123456) == commitment

    def test_each_input_matters(self):
        base = compute_commitment(3, 5, 123456, COMPACT)
        assert compute_commitment(4, 5, 123456, COMPACT) != base
        assert compute_commitment(3, 6, 123456, COMPACT) != base
        assert compute_commitment(3, 5, 123457, COMPACT) != base

    def test_coordinates_not_symmetric(self):
        assert compute_commitment(5, 3, 1, COMPACT) != compute_commitment(3, 5, 1, COMPACT)

    def test_no_collisions_on_small_grid(self):
        rng = random.Random(7)
        nullifier = rng.randrange(CURVE_ORDER)
        seen = {compute_commitment(x, y, nullifier, COMPACT) for x in range(10) for y in range(10)}
        assert len(seen) == 100

    def test_field_boundary(self):
        assert 0 <= compute_commitment(CURVE_ORDER - 1, 0, 0, COMPACT) < CURVE_ORDER

    @pytest.mark.parametrize("args", [
        (CURVE_ORDER, 0, 0),
        (0, -1, 0),
        (0, 0, CURVE_ORDER + 1),
        (True, 0, 0),
    ])
    def test_out_of_range(self, args):
        with pytest.raises(RangeError):
            compute_commitment(*args, profile=COMPACT)


class TestEncoding:
    def test_hex_fixed_width(self):
        text = commitment_to_hex(1)
        assert text == "0x" + "0" * 63 + "1"
        assert len(text) == 66

    def test_hex_roundtrip(self, commitment):
        assert commitment_from_hex(commitment_to_hex(commitment)) == commitment

    def test_hex_uppercase_accepted(self):
        assert commitment_from_hex("0x" + "0" * 62 + "FF") == 255

    @pytest.mark.parametrize("text", [
        "0x1",
        "1" * 64,
        "0x" + "g" * 64,
        "0x" + "f" * 64,       # ≥ r
        None,
    ])
    def test_bad_hex(self, text):
        with pytest.raises(RangeError):
            commitment_from_hex(text)

    def test_bytes(self, commitment):
        data = commitment_to_bytes(commitment)
        assert len(data) == 32
        assert commitment_from_bytes(data) == commitment

    def test_bad_bytes_length(self):
        with pytest.raises(RangeError):
            commitment_from_bytes(b"\x00" * 31)


class TestNullifier:
    def test_formula(self):
        expected = int.from_bytes(
            keccak((7).to_bytes(4, "big") + b"alice" + b"bob"), "big"
        ) % CURVE_ORDER
        assert derive_nullifier(7, "alice", "bob") == expected

    def test_bound_to_session(self):
        assert derive_nullifier(1, "alice", "bob") != derive_nullifier(2, "alice", "bob")

    def test_bound_to_player_order(self):
        assert derive_nullifier(1, "alice", "bob") != derive_nullifier(1, "bob", "alice")

    def test_bytes_players(self):
        assert derive_nullifier(1, b"alice", b"bob") == derive_nullifier(1, "alice", "bob")

    def test_session_range(self):
        with pytest.raises(RangeError):
            derive_nullifier(1 << 32, "alice", "bob")

    def test_bad_player_type(self):
        with pytest.raises(TypeError):
            derive_nullifier(1, 123, "bob")

    def test_separate_sessions_separate_commitments(self):
        """같은 (x, y)라도 세션이 다르면 커밋먼트가 다르다."""
        c1 = compute_commitment(3, 5, derive_nullifier(1, "alice", "bob"), COMPACT)
        c2 = compute_commitment(3, 5, derive_nullifier(2, "alice", "bob"), COMPACT)
        assert c1 != c2
