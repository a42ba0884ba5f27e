"""Tests for parsing helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from stakedrop.helpers.parsers import (
    format_token_amount,
    parse_date,
    parse_hex_int,
    parse_hex_timestamp,
    parse_token_amount,
    to_unix_timestamp,
)


class TestHexParsing:
    """Tests for hex integer and timestamp parsing."""

    def test_parse_hex_int(self) -> None:
        """Test hex strings become integers."""
        assert parse_hex_int("0xff") == 255
        assert parse_hex_int("0x0") == 0

    def test_parse_hex_int_default(self) -> None:
        """Test None falls back to the default."""
        assert parse_hex_int(None) == 0
        assert parse_hex_int(None, default=7) == 7

    def test_parse_hex_timestamp(self) -> None:
        """Test hex timestamps become aware UTC datetimes."""
        parsed = parse_hex_timestamp(hex(1_700_000_000))

        assert parsed == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)


class TestDates:
    """Tests for date parsing and Unix conversion."""

    def test_parse_plain_date_is_utc_midnight(self) -> None:
        """Test a bare date is read as UTC midnight."""
        assert parse_date("2024-01-01") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_parse_date_keeps_offset(self) -> None:
        """Test an explicit offset is preserved."""
        parsed = parse_date("2024-01-01T02:00:00+02:00")

        assert parsed.utcoffset() == timedelta(hours=2)
        assert to_unix_timestamp(parsed) == to_unix_timestamp(datetime(2024, 1, 1, tzinfo=UTC))

    def test_parse_date_accepts_datetime(self) -> None:
        """Test naive datetimes get UTC attached."""
        assert parse_date(datetime(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=UTC)

    def test_parse_date_rejects_garbage(self) -> None:
        """Test invalid strings raise ValueError."""
        with pytest.raises(ValueError):
            parse_date("next tuesday")

    def test_to_unix_timestamp(self) -> None:
        """Test aware and naive datetimes convert alike."""
        aware = datetime(2021, 1, 1, tzinfo=UTC)
        naive = datetime(2021, 1, 1)
        other_zone = datetime(2021, 1, 1, 1, tzinfo=timezone(timedelta(hours=1)))

        assert to_unix_timestamp(aware) == 1_609_459_200
        assert to_unix_timestamp(naive) == 1_609_459_200
        assert to_unix_timestamp(other_zone) == 1_609_459_200


class TestTokenAmounts:
    """Tests for whole-token <-> base unit conversion."""

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            ("1", 10**18),
            ("1.5", 15 * 10**17),
            (1000000, 10**24),
            ("0.000000000000000001", 1),
            ("0", 0),
            ("123456789012345678901234567890", 123456789012345678901234567890 * 10**18),
        ],
    )
    def test_parse_token_amount(self, amount: str | int, expected: int) -> None:
        """Test amounts convert exactly, without float rounding."""
        assert parse_token_amount(amount) == expected

    @pytest.mark.parametrize("amount", ["abc", "-1", "", "NaN", "inf"])
    def test_parse_token_amount_rejects_invalid(self, amount: str) -> None:
        """Test invalid or negative amounts are rejected."""
        with pytest.raises(ValueError, match="Invalid token amount"):
            parse_token_amount(amount)

    def test_parse_token_amount_rejects_too_many_decimals(self) -> None:
        """Test sub-unit precision is rejected rather than truncated."""
        with pytest.raises(ValueError, match="more than 18 decimals"):
            parse_token_amount("0.0000000000000000001")

    def test_parse_token_amount_custom_decimals(self) -> None:
        """Test tokens with fewer decimals."""
        assert parse_token_amount("2.5", decimals=6) == 2_500_000

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(15 * 10**17, "1.5"), (10**24, "1000000"), (0, "0"), (1, "0.000000000000000001")],
    )
    def test_format_token_amount(self, amount: int, expected: str) -> None:
        """Test base units render without exponent notation."""
        assert format_token_amount(amount) == expected
