"""Study session records and progress helpers."""
import math
import threading
import time
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from cfa_planner.models import StudySession

_id_lock = threading.Lock()
_last_id = 0


def new_session_id() -> str:
    """Return a unique, strictly increasing id based on the nanosecond clock."""
    global _last_id
    with _id_lock:
        candidate = time.time_ns()
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
    return str(candidate)


def round_hours(value: float) -> float:
    """Round to 2 decimal places, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def parse_session_date(value) -> str:
    """Normalize a date or ISO date string to YYYY-MM-DD. Raises ValueError on bad input."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        raise ValueError(f"Invalid session date: {value!r}")
    return date.fromisoformat(value.strip()).isoformat()


def make_session(topic_id: str, session_date, hours: float, notes: str | None = None) -> dict:
    if isinstance(hours, bool) or not isinstance(hours, (int, float)):
        raise ValueError(f"Hours must be a number, got {hours!r}")
    if not hours > 0 or not math.isfinite(hours):
        raise ValueError("Hours spent must be a positive number")
    session = StudySession(
        id=new_session_id(),
        topic_id=topic_id,
        date=parse_session_date(session_date),
        hours_spent=float(hours),
        notes=notes,
    )
    return session.to_dict()


def total_hours(sessions: list[dict]) -> float:
    return sum(s.get("hoursSpent", 0) for s in sessions)


def session_history(sessions: list[dict]) -> list[dict]:
    """Most recent first. The stored list is left untouched."""
    return list(reversed(sessions))


def clamp_progress(value) -> int:
    """Clamp a mastery value into 0-100 and round it to an integer."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Progress must be a number, got {value!r}")
    return int(Decimal(str(min(100, max(0, value)))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
