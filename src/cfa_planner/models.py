"""Data classes for the planner domain model."""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

CATEGORIES = ("Ethics", "Investment Tools", "Asset Classes", "Portfolio Management")
DIFFICULTIES = ("Low", "Medium", "High")


@dataclass(frozen=True)
class Topic:
    id: str
    name: str
    category: str
    weight_min: float
    weight_max: float
    difficulty: str
    estimated_hours: int
    description: str = ""


@dataclass(frozen=True)
class Question:
    id: str
    topic_id: str
    text: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str = ""


@dataclass(frozen=True)
class Flashcard:
    id: str
    topic_id: str
    front: str
    back: str


@dataclass
class StudySession:
    id: str
    topic_id: str
    date: str
    hours_spent: float
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        record = {
            "id": self.id,
            "topicId": self.topic_id,
            "date": self.date,
            "hoursSpent": self.hours_spent,
        }
        if self.notes is not None:
            record["notes"] = self.notes
        return record


@dataclass
class StudySettings:
    start_date: date
    exam_date: date
    hours_per_week: int = 15
    has_background: bool = False


@dataclass
class UserState:
    topic_progress: dict = field(default_factory=dict)
    overall_hours: float = 0.0
    sessions: dict = field(default_factory=dict)
    review_notes: dict = field(default_factory=dict)
    saved_plan: Optional[dict] = None
    extras: dict = field(default_factory=dict)
