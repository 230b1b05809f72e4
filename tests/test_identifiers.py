"""Tests for identifier normalization."""

import pytest

from campaign_state.identifiers import CampaignKey, normalize_identifier, parse_numeric_identifier


class TestParseNumericIdentifier:
    """Integer-shaped identifiers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (7, 7),
            ("7", 7),
            (" 42 ", 42),
            ("0x1f", 31),
            (3.0, 3),
            ("123456789012345678901234567890", 123456789012345678901234567890),
        ],
    )
    def test_numeric(self, value, expected):
        assert parse_numeric_identifier(value) == expected

    @pytest.mark.parametrize("value", [True, False, 2.5, "", "abc", "0xzz", "-3", "7a"])
    def test_not_numeric(self, value):
        assert parse_numeric_identifier(value) is None


class TestNormalizeIdentifier:
    """CampaignKey construction and matching."""

    def test_int_and_string_normalize_equal(self):
        assert normalize_identifier(7) == normalize_identifier("7") == CampaignKey("7", 7)

    def test_hex_normalizes_to_decimal(self):
        assert normalize_identifier("0x10").text == "16"

    def test_text_identifier(self):
        key = normalize_identifier(" local-1 ")

        assert key.text == "local-1"
        assert not key.is_numeric

    def test_negative_number_kept_as_text(self):
        key = normalize_identifier(-1)

        assert key.text == "-1"
        assert not key.is_numeric

    def test_key_passes_through(self):
        key = CampaignKey("9", 9)
        assert normalize_identifier(key) is key

    def test_matches_string_or_number(self):
        key = normalize_identifier("7")

        assert key.matches(7)
        assert key.matches("7")
        assert key.matches("0x7")
        assert not key.matches(8)

    @pytest.mark.parametrize("other", [None, True, False])
    def test_never_matches_none_or_bool(self, other):
        assert not normalize_identifier(1).matches(other)

    def test_text_key_matches_exact_string_only(self):
        key = normalize_identifier("abc")

        assert key.matches("abc")
        assert not key.matches("ABC")
