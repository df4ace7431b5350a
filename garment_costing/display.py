"""Display formatting shared by the wizard preview, the printable sheet and the share card."""

import math
import re
from datetime import datetime
from typing import Optional

from .config import settings
from .formulas import round2

EMPTY = "—"


def format_money(amount, currency: Optional[str] = None) -> str:
    """'$2.56' style — rounded with round2, always two decimals."""
    symbol = currency or settings.DEFAULT_CURRENCY
    return f"{symbol}{round2(amount or 0):.2f}"


def format_plain(value, decimals: int = 2) -> str:
    """Fixed-decimal number, or an em dash for None / non-finite values."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return EMPTY
    if not math.isfinite(number):
        return EMPTY
    return f"{number:.{decimals}f}"


def format_optional(value, decimals: int = 2) -> str:
    return EMPTY if value is None else format_plain(value, decimals)


def format_date(value: datetime) -> str:
    """'Mar 04, 2026, 09:15' — matches the list and print views."""
    if not isinstance(value, datetime):
        return str(value or "")
    return value.strftime("%b %d, %Y, %H:%M")


def sanitize_filename(name: str) -> str:
    """Safe download filename stem: word chars and dashes only, max 60 chars."""
    return re.sub(r"[^\w\-]+", "_", str(name or "costing"), flags=re.ASCII)[:60]
