import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union


def coerce_number(value: Any) -> Optional[float]:
    """Numeric text -> float. Unparseable, empty or non-finite values -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(" ", "")
        if not text:
            return None
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_instant(value: Any) -> Optional[Union[datetime, date]]:
    """
    ISO date ('2025-03-01') -> date, ISO datetime -> datetime.
    Malformed input -> None.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def coerce_identifier(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None
