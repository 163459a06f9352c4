"""Tests for data model classes."""
from datetime import date

from cfa_planner.models import Flashcard, Question, StudySession, StudySettings, Topic, UserState


def test_topic_default_description():
    t = Topic(id="ethics", name="Ethics", category="Ethics", weight_min=15, weight_max=20,
              difficulty="High", estimated_hours=40)
    assert t.description == ""
    assert t.weight_max == 20


def test_question_creation():
    q = Question(id="q1", topic_id="quant", text="2+2?", options=("3", "4", "5"), correct_index=1)
    assert q.options[q.correct_index] == "4"
    assert q.explanation == ""


def test_flashcard_creation():
    f = Flashcard(id="f1", topic_id="econ", front="GDP?", back="Output")
    assert f.front == "GDP?"


def test_session_to_dict_uses_wire_names():
    s = StudySession(id="1", topic_id="fra", date="2026-10-01", hours_spent=1.5, notes="ratios")
    assert s.to_dict() == {
        "id": "1", "topicId": "fra", "date": "2026-10-01", "hoursSpent": 1.5, "notes": "ratios",
    }


def test_session_to_dict_omits_missing_notes():
    s = StudySession(id="1", topic_id="fra", date="2026-10-01", hours_spent=1.5)
    assert "notes" not in s.to_dict()


def test_study_settings_defaults():
    s = StudySettings(start_date=date(2026, 1, 1), exam_date=date(2026, 11, 17))
    assert s.hours_per_week == 15
    assert s.has_background is False


def test_user_state_defaults_are_independent():
    a = UserState()
    b = UserState()
    a.topic_progress["ethics"] = 50
    assert b.topic_progress == {}
    assert a.saved_plan is None
    assert a.overall_hours == 0.0
