"""Flashcard drill over the static card deck. Nothing is persisted."""
from cfa_planner.catalog import load_flashcards
from cfa_planner.models import Flashcard


def get_flashcards(topic_id: str | None = None) -> list[Flashcard]:
    return [c for c in load_flashcards() if topic_id is None or c.topic_id == topic_id]


def card_at(cards: list[Flashcard], index: int) -> Flashcard | None:
    """Cycle through the deck; past the end wraps back to the first card."""
    if not cards:
        return None
    return cards[index % len(cards)]
