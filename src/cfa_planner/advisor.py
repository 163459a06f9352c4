"""AI planner: plan generation and concept lookups with in-flight guards."""
import logging
from datetime import date

from cfa_planner.catalog import TARGET_EXAM_DATE
from cfa_planner.gateway import GatewayError
from cfa_planner.models import StudySettings
from cfa_planner.plan import PlanValidationError, StudyPlan, TaskChecklist, parse_plan

logger = logging.getLogger(__name__)

EXPLANATION_CONTEXT = "General CFA Concepts"

INVALID_PLAN_MESSAGE = "The AI could not generate a valid structure. Please try again."
PLAN_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again in a moment."
TUTOR_UNAVAILABLE_MESSAGE = "Tutor service is currently unavailable."
NO_EXPLANATION_MESSAGE = "I couldn't find a clear explanation for that concept."


def default_study_settings(today: date | None = None) -> StudySettings:
    return StudySettings(
        start_date=today or date.today(),
        exam_date=TARGET_EXAM_DATE,
        hours_per_week=15,
        has_background=False,
    )


class Advisor:
    """Runs gateway requests for the planner view.

    Plan generation and concept lookup each allow one request in flight. There
    is no cancellation: whichever accepted response resolves last is kept.
    """

    def __init__(self, store, gateway, topics):
        self.store = store
        self.gateway = gateway
        self.topics = list(topics)
        self.checklist = TaskChecklist()
        self.generating = False
        self.explaining = False
        self.error: str | None = None

    async def generate_plan(self, settings: StudySettings) -> StudyPlan | None:
        if self.generating:
            logger.info("Plan request ignored; one is already in flight")
            return None
        self.generating = True
        self.error = None
        try:
            payload = await self.gateway.generate_plan(settings, self.topics)
            plan = parse_plan(payload)
        except PlanValidationError as e:
            logger.warning("Rejected generated plan: %s", e)
            self.error = INVALID_PLAN_MESSAGE
            return None
        except GatewayError as e:
            logger.warning("Plan generation failed: %s", e)
            self.error = PLAN_UNAVAILABLE_MESSAGE
            return None
        finally:
            self.generating = False
        self.store.save_plan(plan)
        self.checklist.clear()
        logger.info("Accepted plan with %d weeks", len(plan.weekly_breakdown))
        return plan

    async def explain(self, query: str) -> str | None:
        query = query.strip()
        if not query or self.explaining:
            return None
        self.explaining = True
        try:
            text = await self.gateway.explain(EXPLANATION_CONTEXT, query)
        except GatewayError as e:
            logger.warning("Explanation failed: %s", e)
            return TUTOR_UNAVAILABLE_MESSAGE
        finally:
            self.explaining = False
        return text or NO_EXPLANATION_MESSAGE
