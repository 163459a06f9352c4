"""Practice quiz over the static question bank. Results are not persisted."""
import random

from cfa_planner.catalog import load_questions
from cfa_planner.models import Question


def get_quiz_questions(count: int | None = None, topic_id: str | None = None, rng=None) -> list[Question]:
    questions = [q for q in load_questions() if topic_id is None or q.topic_id == topic_id]
    rng = rng or random
    if count is None or count >= len(questions):
        return rng.sample(questions, len(questions))
    return rng.sample(questions, count)


def check_answer(question: Question, answer_index: int) -> bool:
    return answer_index == question.correct_index


def quiz_score(correct: int, total: int) -> float:
    """Score as percentage."""
    if total == 0:
        return 0.0
    return round((correct / total) * 100, 1)
