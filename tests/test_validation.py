"""
tests/test_validation.py — Payload Normalization Helpers
=========================================================
"""

from __future__ import annotations

import pytest

from findmyanime.database.models import LibraryStatus, PostCategory
from findmyanime.validation import (
    MAX_DB_INT,
    MAX_PAGE,
    clamp_paging,
    clean_text,
    coerce_choice,
    non_negative_count,
    normalize_username,
    positive_id,
    validate_rating,
)


class TestCleanText:
    def test_trims_and_caps(self):
        assert clean_text("  hello  ", 3) == "hel"

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_rejects_empty_or_non_text(self, value):
        with pytest.raises(ValueError, match="required"):
            clean_text(value, 10)


class TestCoerceChoice:
    def test_known_value(self):
        assert coerce_choice("on_hold", LibraryStatus, LibraryStatus.PLAN_TO_READ) is LibraryStatus.ON_HOLD

    @pytest.mark.parametrize("value", ["ON_HOLD", "", None, 3])
    def test_unknown_value_falls_back(self, value):
        assert coerce_choice(value, PostCategory, PostCategory.DISCUSSION) is PostCategory.DISCUSSION


class TestPositiveId:
    @pytest.mark.parametrize("value,expected", [(1, 1), ("42", 42), (7.0, 7)])
    def test_accepts(self, value, expected):
        assert positive_id(value) == expected

    def test_accepts_largest_column_value(self):
        assert positive_id(MAX_DB_INT) == MAX_DB_INT

    @pytest.mark.parametrize(
        "value",
        [0, -1, "-1", "1e3", 2.5, float("nan"), False, None, [], 2**31, 10**20, str(10**20)],
    )
    def test_rejects(self, value):
        with pytest.raises(ValueError):
            positive_id(value)


class TestCounts:
    def test_none_means_unchanged(self):
        assert non_negative_count(None) is None

    def test_negative_clamped_to_zero(self):
        assert non_negative_count(-5) == 0

    def test_rejects_text(self):
        with pytest.raises(ValueError):
            non_negative_count("12")

    @pytest.mark.parametrize("value", [2**31, 10**20, 1e30])
    def test_rejects_values_beyond_column_range(self, value):
        with pytest.raises(ValueError):
            non_negative_count(value)


class TestRating:
    @pytest.mark.parametrize("value", [1, 3, 5, 4.0])
    def test_accepts_whole_stars(self, value):
        assert validate_rating(value) == int(value)

    @pytest.mark.parametrize("value", [0, 6, 4.5, "3", None, True])
    def test_rejects(self, value):
        with pytest.raises(ValueError, match="1-5"):
            validate_rating(value)


def test_normalize_username():
    assert normalize_username("  MiXeD  ") == "mixed"
    assert normalize_username(None) == ""


class TestClampPaging:
    def test_defaults(self):
        assert clamp_paging(None, None, default_limit=50) == (1, 50, 0)

    def test_limit_upper_bound(self):
        assert clamp_paging(1, 1000, default_limit=50) == (1, 100, 0)

    def test_limit_lower_bound_and_page_floor(self):
        assert clamp_paging(-3, 0, default_limit=50) == (1, 1, 0)

    def test_offset(self):
        assert clamp_paging(3, 20, default_limit=50) == (3, 20, 40)

    def test_huge_page_is_pinned_within_column_range(self):
        page, limit, offset = clamp_paging(10**20, 100, default_limit=50)
        assert page == MAX_PAGE
        assert offset <= MAX_DB_INT
