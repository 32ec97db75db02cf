"""
Decimal helpers for chain amounts.

Chain amounts arrive as strings of smallest units ("1000000") or as numbers.
Everything is converted to ``Decimal`` before doing arithmetic so that
rounding only happens where a display value is produced.
"""
import re
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, ROUND_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional, Union

from .constants import DISPLAY_DECIMALS, SMALLEST_UNITS_PER_TOKEN

Numeric = Union[Decimal, int, float, str]

# Enough room for 10^9 tokens in smallest units with 6 decimals on top
_PRECISION = 60

_CHAIN_TIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:?\d{2})?$"
)


def _quantum(decimals: int) -> Decimal:
    return Decimal(1).scaleb(-decimals)


def to_decimal(value: Any) -> Decimal:
    """Coerce a raw chain value to ``Decimal``; missing values count as zero."""
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(value if isinstance(value, int) else str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a numeric amount: {value!r}") from e


def fix_decimals(value: Numeric, decimals: int = DISPLAY_DECIMALS, rounding: str = ROUND_HALF_UP) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return to_decimal(value).quantize(_quantum(decimals), rounding=rounding)


def fix_decimals_and_round_up(value: Numeric, decimals: int = DISPLAY_DECIMALS) -> Decimal:
    """Round away from zero so tiny rewards never display as less than they are."""
    return fix_decimals(value, decimals, rounding=ROUND_UP)


def atoms(amount: Numeric, conversion_factor: Optional[Numeric] = None) -> str:
    """
    Convert an amount of smallest units to a display amount string.

    Args:
        amount: Amount in the chain's smallest unit
        conversion_factor: Per-denom chain-to-view factor; defaults to 1e-6

    Returns:
        The display amount fixed to 6 decimal places, e.g. ``"1.000000"``
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        if conversion_factor is None:
            value = to_decimal(amount) / SMALLEST_UNITS_PER_TOKEN
        else:
            value = to_decimal(amount) * to_decimal(conversion_factor)
        return format(fix_decimals(value), "f")


def parse_chain_time(value: Any) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp as emitted by Tendermint.

    Tendermint emits nanosecond fractions which ``datetime`` cannot hold, so
    the fraction is truncated to microseconds. Returns None for anything
    that is not a timestamp.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    match = _CHAIN_TIME.match(value.strip())
    if not match:
        return None

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    tz = timezone.utc
    if offset and offset != "Z":
        sign = -1 if offset[0] == "-" else 1
        digits = offset[1:].replace(":", "")
        tz = timezone(sign * timedelta(hours=int(digits[:2]), minutes=int(digits[2:])))
    try:
        return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, tzinfo=tz)
    except ValueError:
        return None
