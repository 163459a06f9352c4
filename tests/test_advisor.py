"""Tests for plan acceptance and the in-flight request guards."""
import asyncio
from datetime import date

from cfa_planner.advisor import (
    EXPLANATION_CONTEXT, INVALID_PLAN_MESSAGE, NO_EXPLANATION_MESSAGE, PLAN_UNAVAILABLE_MESSAGE,
    TUTOR_UNAVAILABLE_MESSAGE, Advisor, default_study_settings,
)
from cfa_planner.catalog import TARGET_EXAM_DATE, load_topics
from cfa_planner.gateway import GatewayError
from cfa_planner.plan import parse_plan


class FakeGateway:
    def __init__(self, plans=None, explanation="", error=None, delay=0):
        self.plans = list(plans or [])
        self.explanation = explanation
        self.error = error
        self.delay = delay
        self.plan_calls = 0
        self.explain_calls = []

    async def generate_plan(self, settings, topics):
        self.plan_calls += 1
        payload = self.plans.pop(0) if self.plans else None
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return payload

    async def explain(self, topic_label, query):
        self.explain_calls.append((topic_label, query))
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.explanation


def make_advisor(store, gateway):
    return Advisor(store, gateway, load_topics())


def test_default_study_settings():
    settings = default_study_settings(today=date(2026, 10, 19))
    assert settings.start_date == date(2026, 10, 19)
    assert settings.exam_date == TARGET_EXAM_DATE
    assert settings.hours_per_week == 15
    assert settings.has_background is False


def test_accepts_well_formed_plan(store, plan_payload):
    advisor = make_advisor(store, FakeGateway(plans=[plan_payload]))
    plan = asyncio.run(advisor.generate_plan(default_study_settings()))
    assert plan is not None
    assert advisor.error is None
    assert store.current_plan() == plan
    assert len(store.current_plan().weekly_breakdown) == 8


def test_new_plan_replaces_prior(store, make_plan_payload):
    store.save_plan(parse_plan(make_plan_payload(strategy="Old")))
    advisor = make_advisor(store, FakeGateway(plans=[make_plan_payload(strategy="New")]))
    advisor.checklist.toggle(0, 0)
    asyncio.run(advisor.generate_plan(default_study_settings()))
    assert store.current_plan().strategy == "New"
    assert advisor.checklist.completed_count() == 0


def test_empty_breakdown_rejected(store, make_plan_payload):
    store.save_plan(parse_plan(make_plan_payload(strategy="Keep me")))
    bad = {"strategy": "x", "weeklyBreakdown": [], "tips": []}
    advisor = make_advisor(store, FakeGateway(plans=[bad]))
    assert asyncio.run(advisor.generate_plan(default_study_settings())) is None
    assert advisor.error == INVALID_PLAN_MESSAGE
    assert store.current_plan().strategy == "Keep me"
    assert advisor.generating is False


def test_gateway_failure_reported(store):
    advisor = make_advisor(store, FakeGateway(error=GatewayError("timeout")))
    assert asyncio.run(advisor.generate_plan(default_study_settings())) is None
    assert advisor.error == PLAN_UNAVAILABLE_MESSAGE
    assert store.current_plan() is None
    assert advisor.generating is False


def test_error_cleared_on_retry(store, plan_payload):
    gateway = FakeGateway(error=GatewayError("down"))
    advisor = make_advisor(store, gateway)
    asyncio.run(advisor.generate_plan(default_study_settings()))
    assert advisor.error == PLAN_UNAVAILABLE_MESSAGE
    gateway.error = None
    gateway.plans = [plan_payload]
    assert asyncio.run(advisor.generate_plan(default_study_settings())) is not None
    assert advisor.error is None


def test_duplicate_plan_request_refused(store, plan_payload, make_plan_payload):
    gateway = FakeGateway(plans=[plan_payload, make_plan_payload(strategy="Second")], delay=0.01)
    advisor = make_advisor(store, gateway)

    async def run_both():
        return await asyncio.gather(
            advisor.generate_plan(default_study_settings()),
            advisor.generate_plan(default_study_settings()),
        )

    first, second = asyncio.run(run_both())
    assert first is not None
    assert second is None
    assert gateway.plan_calls == 1


def test_plan_and_explain_flags_are_independent(store, plan_payload):
    gateway = FakeGateway(plans=[plan_payload], explanation="Duration is...", delay=0.01)
    advisor = make_advisor(store, gateway)

    async def run_both():
        return await asyncio.gather(
            advisor.generate_plan(default_study_settings()),
            advisor.explain("What is duration?"),
        )

    plan, text = asyncio.run(run_both())
    assert plan is not None
    assert text == "Duration is..."


def test_explain_uses_general_context(store):
    gateway = FakeGateway(explanation="**CV** is sigma over mean.")
    advisor = make_advisor(store, gateway)
    assert asyncio.run(advisor.explain("  coefficient of variation ")) == "**CV** is sigma over mean."
    assert gateway.explain_calls == [(EXPLANATION_CONTEXT, "coefficient of variation")]


def test_explain_empty_query_skipped(store):
    gateway = FakeGateway(explanation="unused")
    advisor = make_advisor(store, gateway)
    assert asyncio.run(advisor.explain("   ")) is None
    assert gateway.explain_calls == []


def test_explain_failure_message(store):
    advisor = make_advisor(store, FakeGateway(error=GatewayError("down")))
    assert asyncio.run(advisor.explain("beta")) == TUTOR_UNAVAILABLE_MESSAGE
    assert advisor.explaining is False


def test_explain_empty_answer(store):
    advisor = make_advisor(store, FakeGateway(explanation=""))
    assert asyncio.run(advisor.explain("beta")) == NO_EXPLANATION_MESSAGE


def test_duplicate_explain_refused(store):
    gateway = FakeGateway(explanation="answer", delay=0.01)
    advisor = make_advisor(store, gateway)

    async def run_both():
        return await asyncio.gather(advisor.explain("beta"), advisor.explain("alpha"))

    first, second = asyncio.run(run_both())
    assert first == "answer"
    assert second is None
    assert len(gateway.explain_calls) == 1
