# utils/format.py
import datetime

from .constants import EconomyConfig


def format_number(value: int, short: bool = True) -> str:
    """Formats a number with commas or short suffixes (k, M, B)."""
    if value is None:
        return "0"

    try:
        num = float(value)
    except (TypeError, ValueError):
        return "0"

    if not short:
        return f"{int(num):,}"

    abs_num = abs(num)
    if abs_num >= 1_000_000_000:
        s = f"{num / 1_000_000_000:.1f}B"
    elif abs_num >= 1_000_000:
        s = f"{num / 1_000_000:.1f}M"
    elif abs_num >= 1_000:
        s = f"{num / 1_000:.1f}k"
    else:
        s = str(int(num))

    return s.replace(".0", "")


def format_currency(amount: int, short: bool = False) -> str:
    """
    Formats an integer into a currency string.
    short=True -> 1.5M 🍕
    short=False -> 1,500,000 🍕
    """
    if amount is None:
        amount = 0

    if short:
        return f"{format_number(amount, short=True)} {EconomyConfig.CURRENCY_SYMBOL}"
    return f"{int(amount):,} {EconomyConfig.CURRENCY_SYMBOL}"


def format_duration(seconds: int) -> str:
    """
    Converts seconds to human readable text.
    Example: 3665 -> '1h 1m 5s'
    """
    if not seconds or seconds < 0:
        return "0s"

    m, s = divmod(int(seconds), 60)
    h, m = divmod(m, 60)
    d, h = divmod(h, 24)

    parts = []
    if d > 0: parts.append(f"{d}d")
    if h > 0: parts.append(f"{h}h")
    if m > 0: parts.append(f"{m}m")
    if s > 0: parts.append(f"{s}s")

    return " ".join(parts) if parts else "<1s"


def format_card(card) -> str:
    if card is None:
        return "??"
    return f"{card.value}{card.suit}"


def format_hand(hand) -> str:
    if not hand:
        return "No cards"
    return " ".join(format_card(card) for card in hand)


def format_dt(dt: datetime.datetime, style: str = "f") -> str:
    """
    Returns a Discord Timestamp string.
    Styles:
    t: Short Time (16:20)
    f: Short Date Time (20 April 2021 16:20)
    R: Relative (2 months ago)
    """
    if not dt:
        return "Unknown"
    timestamp = int(dt.timestamp())
    return f"<t:{timestamp}:{style}>"
