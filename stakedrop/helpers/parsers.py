"""Parsing utilities for common data transformations."""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation, localcontext

from stakedrop.helpers.constants import TOKEN_DECIMALS

# Enough significant digits for any uint256 amount
AMOUNT_PRECISION = 100


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None:
        return default
    return int(hex_value, 16)


def parse_hex_timestamp(hex_timestamp: str) -> datetime:
    """Parse Unix timestamp from hex string to an aware UTC datetime.

    Example:
        >>> parse_hex_timestamp("0x63a1b2c3")
        datetime.datetime(2022, 12, 20, ..., tzinfo=datetime.timezone.utc)
    """
    return datetime.fromtimestamp(int(hex_timestamp, 16), tz=UTC)


def parse_date(value: str | datetime) -> datetime:
    """Parse an ISO-8601 date or datetime, assuming UTC when no offset is given.

    Args:
        value: "YYYY-MM-DD", a full ISO timestamp, or a datetime

    Returns:
        datetime: Timezone-aware datetime

    Example:
        >>> parse_date("2024-01-01")
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_unix_timestamp(value: datetime) -> int:
    """Convert a datetime to whole Unix seconds (naive values are read as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp())


def parse_token_amount(amount: str | int, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a whole-token amount into base units without float rounding.

    Args:
        amount: Token amount such as "1000" or "0.5"
        decimals: Token decimals

    Returns:
        int: Amount in base units

    Raises:
        ValueError: If the amount is not a non-negative number or has more
            fractional digits than the token supports

    Example:
        >>> parse_token_amount("1.5")
        1500000000000000000
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        msg = f"Invalid token amount: {amount}"
        raise ValueError(msg) from None

    if not value.is_finite() or value < 0:
        msg = f"Invalid token amount: {amount}"
        raise ValueError(msg)

    with localcontext() as ctx:
        ctx.prec = AMOUNT_PRECISION
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        msg = f"Token amount {amount} has more than {decimals} decimals"
        raise ValueError(msg)
    return int(scaled)


def format_token_amount(amount: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Render base units as a human-readable token amount.

    Example:
        >>> format_token_amount(1500000000000000000)
        '1.5'
    """
    with localcontext() as ctx:
        ctx.prec = AMOUNT_PRECISION
        value = Decimal(amount).scaleb(-decimals).normalize()
    return f"{value:f}"


__all__ = [
    "format_token_amount",
    "parse_date",
    "parse_hex_int",
    "parse_hex_timestamp",
    "parse_token_amount",
    "to_unix_timestamp",
]
