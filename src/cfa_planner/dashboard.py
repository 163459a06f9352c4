"""Dashboard statistics derived from the current state."""
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from cfa_planner.catalog import REGISTRATION_DEADLINES, load_topics
from cfa_planner.models import CATEGORIES


def get_mastery_label(score: float) -> str:
    if score >= 80:
        return "READY"
    elif score >= 65:
        return "LIKELY"
    elif score >= 50:
        return "NEEDS WORK"
    return "NOT READY"


def get_mastery_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def _round(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _mean_progress(progress: dict, topics) -> int:
    topics = list(topics)
    if not topics:
        return 0
    return _round(sum(progress.get(t.id, 0) for t in topics) / len(topics))


def overall_mastery(progress: dict, topics=None) -> int:
    """Rounded mean mastery across the catalog."""
    return _mean_progress(progress, load_topics() if topics is None else topics)


def category_mastery(progress: dict, category: str, topics=None) -> int:
    topics = load_topics() if topics is None else topics
    return _mean_progress(progress, [t for t in topics if t.category == category])


def category_breakdown(progress: dict, topics=None) -> list[dict]:
    results = []
    for category in CATEGORIES:
        score = category_mastery(progress, category, topics)
        results.append({
            "category": category,
            "score": score,
            "label": get_mastery_label(score),
        })
    return results


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def days_remaining(exam_date, today=None) -> int:
    """Whole days from today's midnight to the exam's midnight; never negative."""
    exam = _as_date(exam_date)
    start = _as_date(today) if today is not None else date.today()
    return max(0, (exam - start).days)


def chart_series(progress: dict, topics=None) -> list[dict]:
    topics = load_topics() if topics is None else topics
    return [
        {
            "name": t.id[:3].upper(),
            "progress": progress.get(t.id, 0),
            "weight": (t.weight_min + t.weight_max) / 2,
        }
        for t in topics
    ]


def registration_status(today=None) -> dict:
    today = _as_date(today) if today is not None else date.today()
    early_bird = REGISTRATION_DEADLINES["early_bird"]
    standard = REGISTRATION_DEADLINES["standard"]
    if today <= early_bird:
        return {"window": "early_bird", "closes": early_bird, "open": True}
    elif today <= standard:
        return {"window": "standard", "closes": standard, "open": True}
    return {"window": "closed", "closes": standard, "open": False}


def weakest_topic(progress: dict, topics=None):
    topics = list(load_topics() if topics is None else topics)
    if not topics:
        return None
    return min(topics, key=lambda t: progress.get(t.id, 0))


def get_study_stats(store) -> dict:
    return {
        "overall_hours": store.overall_hours,
        "logged_hours": round(store.total_logged_hours(), 2),
        "sessions_logged": store.session_count(),
        "topics_studied": sum(1 for tid in store.topic_ids if store.sessions(tid)),
    }
