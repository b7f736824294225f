"""
Poseidon2 해시 테스트
======================

파라미터 결정론, 프로파일 분리, 순열 구조, 스폰지 입력 검증을 테스트한다.
"""

import pytest

from zkgrid.errors import RangeError
from zkgrid.plonk.field import CURVE_ORDER, FR
from zkgrid.poseidon import (
    DEFAULT_PROFILE,
    EXTERNAL_MATRIX,
    PROFILES,
    hash_elements,
    hash_parameters,
    initial_state,
    permute,
    to_field_element,
)

COMPACT = "poseidon2-bn254-t4-compact"


# ─────────────────────────────────────────────────────────────────────
# 파라미터
# ─────────────────────────────────────────────────────────────────────

class TestParameters:
    def test_profiles(self):
        assert PROFILES[DEFAULT_PROFILE] == (8, 56)
        assert PROFILES[COMPACT] == (8, 5)

    def test_round_structure(self):
        params = hash_parameters(COMPACT)
        assert params.num_rounds == 13
        assert params.half_full_rounds == 4
        assert [params.is_partial_round(r) for r in range(13)] == (
            [False] * 4 + [True] * 5 + [False] * 4
        )

    def test_partial_round_constants_use_first_lane_only(self):
        params = hash_parameters(COMPACT)
        for r, rc in enumerate(params.round_constants):
            assert len(rc) == 4
            if params.is_partial_round(r):
                assert rc[1:] == (0, 0, 0)

    def test_constants_in_field(self):
        params = hash_parameters(DEFAULT_PROFILE)
        assert all(0 <= c < CURVE_ORDER for rc in params.round_constants for c in rc)

    def test_cached_and_deterministic(self):
        assert hash_parameters(COMPACT) is hash_parameters(COMPACT)
        assert hash_parameters(COMPACT).fingerprint == hash_parameters(COMPACT).fingerprint

    def test_fingerprint_differs_per_profile(self):
        assert hash_parameters(COMPACT).fingerprint != hash_parameters(DEFAULT_PROFILE).fingerprint

    def test_default_profile_from_config(self):
        # 테스트 설정은 compact 프로파일을 쓴다
        assert hash_parameters().profile == COMPACT

    def test_unknown_profile(self):
        with pytest.raises(ValueError):
            hash_parameters("poseidon2-bn254-t3")


# ─────────────────────────────────────────────────────────────────────
# 순열
# ─────────────────────────────────────────────────────────────────────

class TestPermutation:
    def test_wrong_width(self):
        with pytest.raises(ValueError):
            permute([0, 0, 0], hash_parameters(COMPACT))

    def test_output_in_field(self):
        out = permute([1, 2, 3, 4], hash_parameters(COMPACT))
        assert len(out) == 4
        assert all(0 <= v < CURVE_ORDER for v in out)

    def test_does_not_mutate_input(self):
        state = [1, 2, 3, 4]
        permute(state, hash_parameters(COMPACT))
        assert state == [1, 2, 3, 4]

    def test_external_matrix_is_invertible(self):
        """M4의 행렬식이 0이 아니어야 순열이 전단사이다."""
        m = [[FR(v) for v in row] for row in EXTERNAL_MATRIX]
        det = FR(1)
        for col in range(4):
            pivot = next(r for r in range(col, 4) if m[r][col] != 0)
            m[col], m[pivot] = m[pivot], m[col]
            det = det * m[col][col]
            for r in range(col + 1, 4):
                factor = m[r][col] / m[col][col]
                m[r] = [a - factor * b for a, b in zip(m[r], m[col])]
        assert det != 0


# ─────────────────────────────────────────────────────────────────────
# 스폰지
# ─────────────────────────────────────────────────────────────────────

class TestSponge:
    def test_initial_state_capacity(self):
        assert initial_state(3) == [0, 0, 0, 3 << 64]

    def test_single_block_is_one_permutation(self):
        params = hash_parameters(COMPACT)
        expected = permute([7, 8, 9, 3 << 64], params)[0]
        assert hash_elements([7, 8, 9], COMPACT) == expected

    def test_deterministic(self):
        assert hash_elements([1, 2, 3], COMPACT) == hash_elements([1, 2, 3], COMPACT)

    def test_order_matters(self):
        assert hash_elements([1, 2, 3], COMPACT) != hash_elements([3, 2, 1], COMPACT)

    def test_length_is_domain_separated(self):
        """[1, 2]와 [1, 2, 0]은 capacity가 달라 서로 다른 해시를 가진다."""
        assert hash_elements([1, 2], COMPACT) != hash_elements([1, 2, 0], COMPACT)

    def test_profiles_differ(self):
        assert hash_elements([1, 2, 3], COMPACT) != hash_elements([1, 2, 3], DEFAULT_PROFILE)

    def test_multi_block(self):
        value = hash_elements(list(range(10)), COMPACT)
        assert 0 <= value < CURVE_ORDER

    def test_empty_input(self):
        assert 0 <= hash_elements([], COMPACT) < CURVE_ORDER

    def test_accepts_fr(self):
        assert hash_elements([FR(1), 2, FR(3)], COMPACT) == hash_elements([1, 2, 3], COMPACT)

    def test_out_of_range_rejected(self):
        with pytest.raises(RangeError):
            hash_elements([CURVE_ORDER], COMPACT)
        with pytest.raises(RangeError):
            hash_elements([-1], COMPACT)


class TestToFieldElement:
    def test_valid(self):
        assert to_field_element(CURVE_ORDER - 1) == CURVE_ORDER - 1

    @pytest.mark.parametrize("value", [True, 1.5, "3", None])
    def test_non_integer(self, value):
        with pytest.raises(RangeError):
            to_field_element(value)

    def test_range_error_is_value_error(self):
        with pytest.raises(ValueError):
            to_field_element(CURVE_ORDER)
