"""Static reference data: exam topics, practice questions, and flashcards."""
import json
from datetime import date
from functools import lru_cache
from pathlib import Path

from cfa_planner.models import DIFFICULTIES, Flashcard, Question, Topic

CONTENT_DIR = Path(__file__).parent / "content"

# November 2026 exam window (estimated start)
TARGET_EXAM_DATE = date(2026, 11, 17)

REGISTRATION_DEADLINES = {
    "early_bird": date(2026, 5, 12),
    "standard": date(2026, 8, 11),
}

SORT_OPTIONS = ("name", "difficulty", "weight", "estimated")
FILTER_OPTIONS = ("All",) + tuple(reversed(DIFFICULTIES))

DIFFICULTY_RANK = {name: rank for rank, name in enumerate(DIFFICULTIES, 1)}


class UnknownTopicError(KeyError):
    """Raised when a topic id is not part of the catalog."""


def _load(name: str) -> dict:
    return json.loads((CONTENT_DIR / name).read_text())


@lru_cache
def load_topics() -> tuple[Topic, ...]:
    """Load the topic catalog from topics.json, in curriculum order."""
    data = _load("topics.json")
    return tuple(Topic(**t) for t in data["topics"])


@lru_cache
def load_questions() -> tuple[Question, ...]:
    data = _load("questions.json")
    return tuple(
        Question(
            id=q["id"],
            topic_id=q["topic_id"],
            text=q["text"],
            options=tuple(q["options"]),
            correct_index=q["correct_index"],
            explanation=q.get("explanation", ""),
        )
        for q in data["questions"]
    )


@lru_cache
def load_flashcards() -> tuple[Flashcard, ...]:
    data = _load("flashcards.json")
    return tuple(Flashcard(**c) for c in data["flashcards"])


def topic_ids() -> list[str]:
    return [t.id for t in load_topics()]


def get_topic(topic_id: str) -> Topic:
    for topic in load_topics():
        if topic.id == topic_id:
            return topic
    raise UnknownTopicError(topic_id)


def topics_in_category(category: str, topics=None) -> list[Topic]:
    topics = load_topics() if topics is None else topics
    return [t for t in topics if t.category == category]


def filter_topics(topics, difficulty: str = "All") -> list[Topic]:
    """Keep topics whose difficulty matches exactly; "All" passes everything through."""
    if difficulty == "All":
        return list(topics)
    return [t for t in topics if t.difficulty == difficulty]


def sort_topics(topics, sort_by: str = "name") -> list[Topic]:
    """Sort topics for listing. Python's sort is stable, so ties keep input order."""
    if sort_by == "name":
        return sorted(topics, key=lambda t: t.name.lower())
    elif sort_by == "difficulty":
        return sorted(topics, key=lambda t: DIFFICULTY_RANK[t.difficulty], reverse=True)
    elif sort_by == "weight":
        return sorted(topics, key=lambda t: t.weight_max, reverse=True)
    elif sort_by == "estimated":
        return sorted(topics, key=lambda t: t.estimated_hours, reverse=True)
    raise ValueError(f"Unknown sort option: {sort_by}")


def list_topics(sort_by: str = "name", difficulty: str = "All", topics=None) -> list[Topic]:
    topics = load_topics() if topics is None else topics
    return sort_topics(filter_topics(topics, difficulty), sort_by)
