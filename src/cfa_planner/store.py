"""Owner of the persisted user state and its mutation API."""
import copy
import json
import logging
import math

from cfa_planner.catalog import UnknownTopicError
from cfa_planner.db import read_value, write_value
from cfa_planner.models import UserState
from cfa_planner.plan import StudyPlan
from cfa_planner.state import default_state, merge_state, state_to_blob
from cfa_planner.study import (
    clamp_progress, make_session, round_hours, session_history, total_hours,
)

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "cfa_progress"


class StateLoadError(Exception):
    """Saved state exists but cannot be parsed. Nothing is overwritten."""


class StudyStore:
    """Single owner of UserState.

    Every accepted mutation re-serializes the whole state and writes it before
    returning, so later reads in this process always see it.
    """

    def __init__(self, db_path: str, topic_ids, key: str = DEFAULT_STATE_KEY):
        self.db_path = db_path
        self.key = key
        self.topic_ids = list(topic_ids)
        self.state: UserState = default_state(self.topic_ids)

    @classmethod
    def open(cls, db_path: str, topic_ids, key: str = DEFAULT_STATE_KEY) -> "StudyStore":
        store = cls(db_path, topic_ids, key)
        store.load()
        return store

    def load(self) -> UserState:
        raw = read_value(self.db_path, self.key)
        if raw is None:
            logger.info("No saved state under %r; starting fresh", self.key)
            self.state = default_state(self.topic_ids)
            return self.state
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Saved state under %r is corrupt: %s", self.key, e)
            raise StateLoadError(f"Saved progress could not be read: {e}") from e
        self.state = merge_state(parsed, self.topic_ids)
        return self.state

    def _apply(self, mutate) -> None:
        """Run mutate on a copy of the state, persist it, then swap it in."""
        candidate = copy.deepcopy(self.state)
        mutate(candidate)
        write_value(self.db_path, self.key, json.dumps(state_to_blob(candidate)))
        self.state = candidate

    def _check_topic(self, topic_id: str) -> None:
        if topic_id not in self.topic_ids:
            raise UnknownTopicError(topic_id)

    # progress -------------------------------------------------------------
    def set_progress(self, topic_id: str, value) -> int:
        """Overwrite a topic's mastery. Out-of-range values are clamped to 0-100."""
        self._check_topic(topic_id)
        clamped = clamp_progress(value)

        def mutate(state):
            state.topic_progress[topic_id] = clamped

        self._apply(mutate)
        return clamped

    def progress(self, topic_id: str) -> int:
        self._check_topic(topic_id)
        return self.state.topic_progress.get(topic_id, 0)

    def progress_map(self) -> dict:
        return {tid: self.state.topic_progress.get(tid, 0) for tid in self.topic_ids}

    # overall hours --------------------------------------------------------
    def set_overall_hours(self, hours) -> float:
        if isinstance(hours, bool) or not isinstance(hours, (int, float)):
            raise ValueError(f"Overall hours must be a number, got {hours!r}")
        if not (hours >= 0 and math.isfinite(hours)):
            raise ValueError("Overall hours cannot be negative")
        rounded = round_hours(hours)

        def mutate(state):
            state.overall_hours = rounded

        self._apply(mutate)
        return self.state.overall_hours

    @property
    def overall_hours(self) -> float:
        return self.state.overall_hours

    # review notes ---------------------------------------------------------
    def set_review_note(self, topic_id: str, text: str) -> None:
        self._check_topic(topic_id)
        if not isinstance(text, str):
            raise ValueError("Review note must be text")

        def mutate(state):
            state.review_notes[topic_id] = text

        self._apply(mutate)

    def review_note(self, topic_id: str) -> str:
        self._check_topic(topic_id)
        return self.state.review_notes.get(topic_id, "")

    # sessions -------------------------------------------------------------
    def add_session(self, topic_id: str, session_date, hours: float, notes: str | None = None) -> list[dict]:
        """Append a session and advance overall hours by the same amount."""
        self._check_topic(topic_id)
        session = make_session(topic_id, session_date, hours, notes)

        def mutate(state):
            state.sessions[topic_id] = state.sessions.get(topic_id, []) + [session]
            state.overall_hours = round_hours(state.overall_hours + session["hoursSpent"])

        self._apply(mutate)
        logger.info("Logged %.2fh for %s", session["hoursSpent"], topic_id)
        return self.sessions(topic_id)

    def sessions(self, topic_id: str) -> list[dict]:
        self._check_topic(topic_id)
        return list(self.state.sessions.get(topic_id, []))

    def session_history(self, topic_id: str) -> list[dict]:
        return session_history(self.sessions(topic_id))

    def total_hours(self, topic_id: str) -> float:
        return total_hours(self.sessions(topic_id))

    def total_logged_hours(self) -> float:
        return sum(self.total_hours(tid) for tid in self.topic_ids)

    def session_count(self) -> int:
        return sum(len(self.sessions(tid)) for tid in self.topic_ids)

    # plan -----------------------------------------------------------------
    def save_plan(self, plan: StudyPlan) -> None:
        blob = plan.to_blob()

        def mutate(state):
            state.saved_plan = blob

        self._apply(mutate)

    def current_plan(self) -> StudyPlan | None:
        if self.state.saved_plan is None:
            return None
        return StudyPlan.model_validate(self.state.saved_plan)
