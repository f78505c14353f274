"""Tests for submission validation and the merge policy."""

import pytest

from mediaprint.errors import ValidationError
from mediaprint.fingerprint.merge import (
    media_title_and_kind,
    normalize_hash,
    populated_field_count,
    should_update,
    validate_confidence,
    validate_submission,
)

SMALL = {"title": "Inception", "kind": "movie"}
RICH = {"title": "Inception", "kind": "movie", "year": 2010, "providerId": "27205"}


class TestNormalizeHash:
    def test_lowercases_valid_hash(self) -> None:
        assert normalize_hash("ABCDEF0123456789ABCDEF0123456789") == (
            "abcdef0123456789abcdef0123456789"
        )

    @pytest.mark.parametrize(
        "value",
        ["", "abc", "g" * 32, "a" * 31, "a" * 33, None, 12345],
    )
    def test_rejects_malformed(self, value: object) -> None:
        with pytest.raises(ValidationError):
            normalize_hash(value)


class TestValidateConfidence:
    @pytest.mark.parametrize("value", [0.5, 0.75, 1.0, 1])
    def test_accepts_range(self, value: object) -> None:
        assert validate_confidence(value) == float(value)

    @pytest.mark.parametrize("value", [0.49, 1.01, -1, True, "0.9", None])
    def test_rejects_out_of_range_or_non_numeric(self, value: object) -> None:
        with pytest.raises(ValidationError):
            validate_confidence(value)


class TestMediaTitleAndKind:
    def test_reads_kind(self) -> None:
        assert media_title_and_kind(SMALL) == ("Inception", "movie")

    def test_accepts_legacy_type_key(self) -> None:
        assert media_title_and_kind({"title": "Lost", "type": "tv"}) == ("Lost", "tv")

    @pytest.mark.parametrize(
        "media_data",
        [{}, {"title": "x"}, {"kind": "movie"}, {"title": "", "kind": "movie"}, "x", None],
    )
    def test_rejects_missing_fields(self, media_data: object) -> None:
        with pytest.raises(ValidationError):
            media_title_and_kind(media_data)

    def test_validate_submission_returns_normalized_values(self) -> None:
        file_hash, media_data, confidence = validate_submission("A" * 32, SMALL, 1)
        assert file_hash == "a" * 32
        assert media_data is SMALL
        assert confidence == 1.0


class TestShouldUpdate:
    def test_populated_field_count_ignores_empty_values(self) -> None:
        data = {"title": "x", "kind": "movie", "year": None, "overview": "", "genres": []}
        assert populated_field_count(data) == 2

    def test_clearly_more_confident_submission_updates(self) -> None:
        assert should_update(0.7, 0.9, SMALL) is True

    def test_comparable_but_richer_submission_updates(self) -> None:
        assert should_update(0.8, 0.8, RICH) is True

    def test_comparable_submission_with_three_fields_does_not_update(self) -> None:
        three = {"title": "Inception", "kind": "movie", "year": 2010}
        assert should_update(0.8, 0.8, three) is False

    def test_less_confident_rich_submission_does_not_update(self) -> None:
        assert should_update(0.9, 0.5, RICH) is False

    def test_boundary_uses_plain_float_arithmetic(self) -> None:
        # 0.9 + 0.1 == 1.0, so 1.0 is not "more than 0.1 above" 0.9.
        assert should_update(0.9, 1.0, SMALL) is False
        assert should_update(0.9, 1.0, RICH) is True

    def test_margin_is_strict(self) -> None:
        assert should_update(0.5, 0.75, SMALL) is True
        assert should_update(0.75, 0.5, SMALL) is False
