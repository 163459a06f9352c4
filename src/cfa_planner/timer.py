"""Per-topic study stopwatch."""
import logging
import time
from datetime import date
from typing import Callable, Optional

from cfa_planner.study import round_hours

logger = logging.getLogger(__name__)

MIN_LOGGED_HOURS = 0.01


def elapsed_to_hours(seconds: int) -> float:
    """Convert elapsed seconds to loggable hours.

    Anything that rounds to 0.01h or less but did run is logged as the 0.01h
    floor; a timer that never ticked yields 0.
    """
    hours = round_hours(seconds / 3600)
    if hours > MIN_LOGGED_HOURS:
        return hours
    if seconds > 0:
        return MIN_LOGGED_HOURS
    return 0.0


def format_elapsed(seconds: int) -> str:
    h, rem = divmod(int(seconds), 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


class TopicTimer:
    """Stopwatch scoped to a single topic.

    The elapsed counter advances once per whole second of the injected clock
    while running and resets only on stop. Use it as a context manager so the
    timer is released on every exit path, including interrupts.
    """

    def __init__(self, topic_id: str, clock: Callable[[], float] = time.monotonic):
        self.topic_id = topic_id
        self._clock = clock
        self._started_at: Optional[float] = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return 0
        return max(0, int(self._clock() - self._started_at))

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("Timer has been released")
        if self.running:
            return
        self._started_at = self._clock()
        logger.debug("Timer started for %s", self.topic_id)

    def stop(self, today: Optional[date] = None) -> Optional[dict]:
        """Halt the timer and return a pre-filled candidate session, or None for a zero-length run."""
        seconds = self.elapsed_seconds
        self._started_at = None
        hours = elapsed_to_hours(seconds)
        logger.debug("Timer stopped for %s after %ss", self.topic_id, seconds)
        if hours <= 0:
            return None
        return {
            "topicId": self.topic_id,
            "date": (today or date.today()).isoformat(),
            "hoursSpent": hours,
            "notes": "",
        }

    def close(self) -> None:
        """Release the timer without producing a session."""
        self._started_at = None
        self._closed = True

    def __enter__(self) -> "TopicTimer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
