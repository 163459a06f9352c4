import pytest

from cfa_planner.catalog import topic_ids
from cfa_planner.db import init_db
from cfa_planner.store import StudyStore


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def store(tmp_db):
    """A freshly loaded store over the full topic catalog."""
    init_db(tmp_db)
    return StudyStore.open(tmp_db, topic_ids())


def _plan_payload(weeks: int = 8, strategy: str = "Front-load ethics.") -> dict:
    return {
        "strategy": strategy,
        "weeklyBreakdown": [
            {
                "week": i,
                "topic": f"Topic {i}",
                "focusArea": f"Focus {i}",
                "dailyTasks": [f"Week {i} day {d}" for d in range(1, 8)],
            }
            for i in range(1, weeks + 1)
        ],
        "tips": ["Do practice questions", "Review ethics daily", "Sleep well"],
    }


@pytest.fixture
def plan_payload():
    return _plan_payload()


@pytest.fixture
def make_plan_payload():
    """Factory for gateway-shaped plan payloads."""
    return _plan_payload
