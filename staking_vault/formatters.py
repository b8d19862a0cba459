"""Formatting and fixed-point arithmetic utilities."""

from datetime import datetime, timezone
from decimal import Decimal

from staking_vault.constants import (
    EXCHANGE_RATE_UNIT,
    HALF_PERCENTAGE_FACTOR,
    PERCENTAGE_FACTOR,
    TOKEN_UNIT,
)
from staking_vault.models import CooldownStatus


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip().replace("_", "")
        if v.lower().startswith("0x"):
            return int(v, 16)
        if "e" in v.lower() or "." in v:
            # "1.5e18" style amounts from hand-written scenario files.
            d = Decimal(v)
            if d != d.to_integral_value():
                raise ValueError(f"not an integer amount: {value!r}")
            return int(d)
        return int(v)
    return int(value)


def normalize_hex_str(value) -> str:
    """Normalize hex string to 0x-prefixed format."""
    if isinstance(value, (bytes, bytearray)):
        return f"0x{value.hex()}"
    if hasattr(value, "hex") and not isinstance(value, str):
        hex_str = value.hex()
        return hex_str if hex_str.startswith("0x") else f"0x{hex_str}"
    s = str(value).strip()
    if s.lower().startswith("0x"):
        return f"0x{s[2:]}"
    return f"0x{s}"


def ceil_div(numer: int, denom: int) -> int:
    """Ceiling division."""
    if denom == 0:
        raise ZeroDivisionError("denom must be > 0")
    return (numer + denom - 1) // denom


def percent_mul(value: int, percentage: int) -> int:
    """Multiply by a basis-point percentage, rounding half up."""
    if value == 0 or percentage == 0:
        return 0
    return (value * percentage + HALF_PERCENTAGE_FACTOR) // PERCENTAGE_FACTOR


def format_bp(bp: int) -> str:
    """Format basis points as percentage."""
    return f"{(Decimal(bp) / Decimal(100)):.2f}%"


def format_amount(value: int, *, decimals: int = 6, symbol: str = "") -> str:
    """Format an 18-decimal token amount."""
    amount = Decimal(value) / TOKEN_UNIT
    s = f"{amount:.{decimals}f}".rstrip("0").rstrip(".")
    return f"{s} {symbol}".rstrip() if symbol else s


def format_rate(rate: int, *, decimals: int = 6) -> str:
    """Format the exchange rate as shares per asset."""
    r = Decimal(rate) / Decimal(EXCHANGE_RATE_UNIT)
    return f"{r:.{decimals}f}"


def format_duration(seconds: int) -> str:
    """Format a duration as days/hours/minutes."""
    if seconds <= 0:
        return "0s"
    days, rem = divmod(seconds, 86_400)
    hours, rem = divmod(rem, 3_600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs and not days:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_timestamp(ts: int) -> str:
    if ts <= 0:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def cooldown_badge(status: CooldownStatus) -> tuple[str, str]:
    """Returns (emoji, label) for a cooldown status."""
    if status is CooldownStatus.COOLING:
        return "⏳", "Cooling down"
    if status is CooldownStatus.REDEEMABLE:
        return "🟢", "Redeemable"
    if status is CooldownStatus.EXPIRED:
        return "⌛", "Window expired"
    return "💤", "Idle"


def delta_indicator(prev_val: int, cur_val: int) -> str:
    """Returns emoji indicator for value change."""
    if cur_val > prev_val:
        return "📈"
    if cur_val < prev_val:
        return "📉"
    return "➡️"
