"""Unit tests for text, count and date normalization."""

from datetime import date

import pytest

from socialprobe.core.normalize import (
    decode_entities,
    decode_escapes,
    is_reliable_date,
    normalize_text,
    optional_snippet,
    parse_count,
    parse_post_date,
    snippet,
    timestamp_to_date,
)

TODAY = date(2024, 5, 10)


class TestParseCount:
    """Test locale-formatted count parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("1.5K", 1500),
        ("1,234", 1234),
        ("1.234", 1234),
        ("2,5M", 2500000),
        ("1 234 followers", 1234),
        ("12,345,678", 12345678),
        ("10K", 10000),
        ("2.5m", 2500000),
        ("1.25K", 1250),
        ("1.2B", 1200000000),
        ("999", 999),
        ("0", 0),
    ])
    def test_formats(self, text, expected):
        assert parse_count(text) == expected

    def test_rounds_half_up(self):
        assert parse_count("1.2345K") == 1235
        assert parse_count("2.5") == 3

    def test_special_spaces_as_thousands_separator(self):
        assert parse_count("12 345") == 12345
        assert parse_count("12&nbsp;345") == 12345
        assert parse_count("1 234 567") == 1234567

    def test_word_starting_with_suffix_letter_is_not_a_suffix(self):
        """'12 Beiträge' is 12, not 12 billion."""
        assert parse_count("12 Beiträge") == 12
        assert parse_count("120 Members") == 120
        assert parse_count("5 komentarzy") == 5

    def test_suffix_after_space(self):
        assert parse_count("2,5 M") == 2500000

    @pytest.mark.parametrize("text", [None, "", "n/a", "followers", "1.2.3"])
    def test_malformed_returns_none(self, text):
        assert parse_count(text) is None

    @pytest.mark.parametrize("value,suffix,divisor", [
        (1500, "K", 1000),
        (23400, "K", 1000),
        (1200000, "M", 1000000),
        (45600000, "M", 1000000),
    ])
    def test_suffix_round_trip_both_decimal_styles(self, value, suffix, divisor):
        short = f"{value / divisor:g}"
        assert parse_count(f"{short}{suffix}") == value
        assert parse_count(f"{short.replace('.', ',')}{suffix}") == value

    @pytest.mark.parametrize("value", [1234, 98765, 1234567])
    def test_thousands_round_trip_separator_styles(self, value):
        for separator in (",", ".", " ", "\u00a0"):
            text = f"{value:,}".replace(",", separator)
            assert parse_count(text) == value


class TestNormalizeText:
    """Test escape and entity decoding."""

    def test_json_unicode_escape(self):
        assert decode_escapes(r"Caf\u00e9") == "Café"

    def test_surrogate_pair(self):
        assert decode_escapes(r"\ud83d\ude00") == "\U0001F600"

    def test_lone_surrogate_dropped(self):
        assert decode_escapes(r"ok\ud83d") == "ok"

    def test_simple_escapes(self):
        assert decode_escapes(r"https:\/\/x.com") == "https://x.com"
        assert decode_escapes(r"line\nbreak") == "line break"
        assert decode_escapes(r"say \"hi\"") == 'say "hi"'

    def test_normalize_leaves_backslashes_alone(self):
        assert normalize_text(r"path C:\new") == r"path C:\new"
        assert normalize_text(r"¯\_(ツ)_/¯") == r"¯\_(ツ)_/¯"

    def test_entities(self):
        assert normalize_text("Fish &amp; Chips") == "Fish & Chips"
        assert normalize_text("&quot;quoted&quot;") == '"quoted"'
        assert normalize_text("&#x2615; time") == "☕ time"

    def test_double_encoded_entities_fully_resolved(self):
        assert decode_entities("&amp;amp;") == "&"

    def test_collapses_whitespace(self):
        assert normalize_text("  a \t b  c \n") == "a b c"

    @pytest.mark.parametrize("raw", [
        r"Caf\u00e9 &amp; bar",
        r"path C:\new",
        r"¯\_(ツ)_/¯",
        "Fish &amp;amp; Chips",
        "  spaced out  ",
        "plain text",
        "",
    ])
    def test_idempotent(self, raw):
        once = normalize_text(raw)
        assert normalize_text(once) == once

    def test_none_is_empty(self):
        assert normalize_text(None) == ""


class TestSnippet:
    """Test snippet truncation."""

    def test_truncates(self):
        assert snippet("x" * 400) == "x" * 300
        assert snippet("abcdef", limit=3) == "abc"

    def test_optional_snippet(self):
        assert optional_snippet(None) is None
        assert optional_snippet("   ") is None
        assert optional_snippet(" bio ") == "bio"


class TestParsePostDate:
    """Test post date parsing."""

    def test_unix_int(self):
        assert parse_post_date(1714521600) == date(2024, 5, 1)

    def test_unix_string(self):
        assert parse_post_date("1713607200") == date(2024, 4, 20)

    def test_iso(self):
        assert parse_post_date("2024-05-01T10:00:00.000Z") == date(2024, 5, 1)
        assert parse_post_date("2024-04-15") == date(2024, 4, 15)

    @pytest.mark.parametrize("raw,expected", [
        ("3h", TODAY),
        ("45 min", TODAY),
        ("2 d", date(2024, 5, 8)),
        ("1w", date(2024, 5, 3)),
    ])
    def test_relative(self, raw, expected):
        assert parse_post_date(raw, today=TODAY) == expected

    def test_month_day_current_year(self):
        assert parse_post_date("May 1", today=TODAY) == date(2024, 5, 1)

    def test_month_day_in_future_rolls_back(self):
        assert parse_post_date("Dec 25", today=TODAY) == date(2023, 12, 25)

    def test_full_dates(self):
        assert parse_post_date("May 1, 2024") == date(2024, 5, 1)
        assert parse_post_date("1 May 2024") == date(2024, 5, 1)

    @pytest.mark.parametrize("raw", [None, "", "sometime", "2024-13-45"])
    def test_unparseable(self, raw):
        assert parse_post_date(raw, today=TODAY) is None

    def test_timestamp_to_date_rejects_garbage(self):
        assert timestamp_to_date("abc") is None
        assert timestamp_to_date(None) is None


class TestIsReliableDate:
    """Test the staleness horizon."""

    def test_recent_date(self):
        assert is_reliable_date(date(2024, 5, 1), today=TODAY) is True

    def test_future_date(self):
        assert is_reliable_date(date(2024, 6, 1), today=TODAY) is False

    def test_stale_date(self):
        assert is_reliable_date(date(2022, 1, 1), today=TODAY) is False
        assert is_reliable_date(date(2022, 1, 1), horizon_days=3650, today=TODAY) is True

    def test_missing_date(self):
        assert is_reliable_date(None, today=TODAY) is False
