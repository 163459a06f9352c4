"""Persisted user state: defaults, merge-on-load, and serialization."""
import logging
import math

from cfa_planner.models import UserState
from cfa_planner.plan import PlanValidationError, parse_plan
from cfa_planner.study import clamp_progress, round_hours

logger = logging.getLogger(__name__)

KNOWN_FIELDS = ("topicProgress", "overallHours", "sessions", "reviewNotes", "savedPlan")


def default_state(topic_ids) -> UserState:
    return UserState(
        topic_progress={tid: 0 for tid in topic_ids},
        overall_hours=0.0,
        sessions={tid: [] for tid in topic_ids},
        review_notes={tid: "" for tid in topic_ids},
        saved_plan=None,
    )


def _is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _coerce_progress(value):
    if not _is_finite_number(value):
        return None
    return clamp_progress(value)


def _is_valid_session(session) -> bool:
    return (
        isinstance(session, dict)
        and isinstance(session.get("date"), str)
        and _is_finite_number(session.get("hoursSpent"))
        and session["hoursSpent"] > 0
    )


def _coerce_sessions(value):
    if not isinstance(value, list):
        return None
    kept = [s for s in value if _is_valid_session(s)]
    if len(kept) != len(value):
        logger.warning("Dropped %d malformed session(s) from saved state", len(value) - len(kept))
    return kept


def _coerce_note(value):
    return value if isinstance(value, str) else None


def _merge_map(raw, defaults: dict, field: str, coerce) -> dict:
    """Overlay a persisted per-topic map on its defaults.

    A map with the wrong shape falls back to the defaults wholesale. Each entry
    goes through coerce; None keeps the default. Entries for topics outside the
    catalog are kept.
    """
    if raw is None:
        return dict(defaults)
    if not isinstance(raw, dict):
        logger.warning("Ignoring malformed %s in saved state", field)
        return dict(defaults)
    merged = dict(defaults)
    for topic_id, value in raw.items():
        coerced = coerce(value)
        if coerced is None:
            logger.warning("Ignoring malformed %s entry for %r", field, topic_id)
            continue
        merged[topic_id] = coerced
    return merged


def merge_state(raw, topic_ids) -> UserState:
    """Shallow-merge a parsed blob onto defaults. Never raises on parseable input."""
    state = default_state(topic_ids)
    if not isinstance(raw, dict):
        logger.warning("Saved state is not an object; using defaults")
        return state

    state.topic_progress = _merge_map(raw.get("topicProgress"), state.topic_progress, "topicProgress", _coerce_progress)
    state.sessions = _merge_map(raw.get("sessions"), state.sessions, "sessions", _coerce_sessions)
    state.review_notes = _merge_map(raw.get("reviewNotes"), state.review_notes, "reviewNotes", _coerce_note)

    hours = raw.get("overallHours")
    if _is_finite_number(hours) and hours >= 0:
        state.overall_hours = round_hours(hours)
    elif hours is not None:
        logger.warning("Ignoring malformed overallHours in saved state")

    plan = raw.get("savedPlan")
    if plan is not None:
        try:
            state.saved_plan = parse_plan(plan).to_blob()
        except PlanValidationError:
            logger.warning("Ignoring malformed savedPlan in saved state")

    state.extras = {k: v for k, v in raw.items() if k not in KNOWN_FIELDS}
    return state


def state_to_blob(state: UserState) -> dict:
    blob = dict(state.extras)
    blob.update({
        "topicProgress": state.topic_progress,
        "overallHours": state.overall_hours,
        "sessions": state.sessions,
        "reviewNotes": state.review_notes,
        "savedPlan": state.saved_plan,
    })
    return blob
