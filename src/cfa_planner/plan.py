"""Generated study plan schema and the in-memory daily task checklist."""
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

PLAN_WEEKS = 8
DAYS_PER_WEEK = 7


class PlanValidationError(ValueError):
    """Raised when a gateway payload does not have a usable plan shape."""


class WeekPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    week: int
    topic: str
    focus_area: str = Field(alias="focusArea")
    daily_tasks: list[str] = Field(alias="dailyTasks")


class StudyPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    strategy: str = ""
    weekly_breakdown: list[WeekPlan] = Field(alias="weeklyBreakdown")
    tips: list[str] = Field(default_factory=list)

    def to_blob(self) -> dict:
        return self.model_dump(by_alias=True)


def parse_plan(payload) -> StudyPlan:
    """Validate a raw gateway payload. Only a non-empty week breakdown is required."""
    if not isinstance(payload, dict):
        raise PlanValidationError("Plan payload is not an object")
    weeks = payload.get("weeklyBreakdown")
    if not isinstance(weeks, list) or not weeks:
        raise PlanValidationError("Plan has no weekly breakdown")
    try:
        plan = StudyPlan.model_validate(payload)
    except ValidationError as e:
        raise PlanValidationError(str(e)) from e
    if len(plan.weekly_breakdown) != PLAN_WEEKS:
        logger.warning("Plan has %d weeks, expected %d", len(plan.weekly_breakdown), PLAN_WEEKS)
    for week in plan.weekly_breakdown:
        if len(week.daily_tasks) != DAYS_PER_WEEK:
            logger.warning("Week %s has %d daily tasks", week.week, len(week.daily_tasks))
    return plan


class TaskChecklist:
    """Completion flags for plan tasks keyed by (week_index, day_index). Never persisted."""

    def __init__(self):
        self._done: set[tuple[int, int]] = set()

    def toggle(self, week_index: int, day_index: int) -> bool:
        key = (week_index, day_index)
        if key in self._done:
            self._done.remove(key)
            return False
        self._done.add(key)
        return True

    def is_done(self, week_index: int, day_index: int) -> bool:
        return (week_index, day_index) in self._done

    def completed_count(self, week_index: int | None = None) -> int:
        if week_index is None:
            return len(self._done)
        return sum(1 for w, _ in self._done if w == week_index)

    def clear(self) -> None:
        self._done.clear()
