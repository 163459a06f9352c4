"""Gemini client for study plan generation and concept explanations."""
import json
import logging
import re
from typing import Any

import google.generativeai as genai
from rich.markup import escape

from cfa_planner.models import StudySettings, Topic

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"

_BOLD = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)


class GatewayError(RuntimeError):
    """The AI service could not be reached or returned nothing usable."""


def build_plan_prompt(settings: StudySettings, topics) -> str:
    catalog = ", ".join(
        f"{t.name} (Difficulty: {t.difficulty}, Weight: {t.weight_min:g}-{t.weight_max:g}%)"
        for t in topics
    )
    return f"""I am a CFA Level 1 candidate.
Study Start Date: {settings.start_date.isoformat()}
Target Exam Date: {settings.exam_date.isoformat()} (November 2026 Window)
Available Hours Per Week: {settings.hours_per_week}
Financial Background: {"Yes" if settings.has_background else "No"}

Current Topics and Weights: {catalog}

Generate a high-level strategic study plan for the next 8 weeks.
Return a JSON object with:
1. "strategy": A 2-sentence overall strategy based on my profile.
2. "weeklyBreakdown": An array of 8 week objects. Each week object must contain:
   - "week": Number (1-8)
   - "topic": The main topic(s) for that week.
   - "focusArea": Specific sub-concepts to master.
   - "dailyTasks": An array of EXACTLY 7 clear, actionable tasks (one for each day of the week).
3. "tips": An array of 3 specific study tips for this candidate."""


def build_explanation_prompt(topic_label: str, query: str) -> str:
    return (
        f'As a CFA tutor, explain this concept for Level 1: "{query}" in the context of '
        f"{topic_label}. Keep it concise and exam-focused. Use bullet points if helpful."
    )


def extract_json(text: str) -> Any:
    """Parse a JSON object out of model output, tolerating surrounding prose."""
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if not match:
            raise
        return json.loads(match.group(0))


def render_emphasis(text: str) -> str:
    """Turn **bold** markers into rich markup, escaping everything else."""
    return _BOLD.sub(r"[bold]\1[/bold]", escape(text))


class GeminiGateway:
    def __init__(self, api_key: str | None = None, model_name: str = DEFAULT_MODEL, model=None):
        self.model_name = model_name
        if model is not None:
            self.model = model
        elif api_key:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(model_name)
        else:
            self.model = None

    @property
    def configured(self) -> bool:
        return self.model is not None

    async def _generate(self, prompt: str, **kwargs) -> str:
        if self.model is None:
            raise GatewayError("GEMINI_API_KEY is not set")
        try:
            response = await self.model.generate_content_async(prompt, **kwargs)
            text = response.text
        except Exception as e:
            logger.error("Gemini request failed: %s", e)
            raise GatewayError(str(e)) from e
        if not text:
            raise GatewayError("Empty response from AI")
        return text

    async def generate_plan(self, settings: StudySettings, topics: list[Topic]) -> dict:
        logger.info("Requesting study plan from %s", self.model_name)
        text = await self._generate(
            build_plan_prompt(settings, topics),
            generation_config=genai.GenerationConfig(response_mime_type="application/json"),
        )
        try:
            return extract_json(text)
        except json.JSONDecodeError as e:
            logger.error("Gemini plan response was not JSON: %s", e)
            raise GatewayError("AI response was not valid JSON") from e

    async def explain(self, topic_label: str, query: str) -> str:
        logger.info("Requesting explanation for %r", query[:100])
        return await self._generate(build_explanation_prompt(topic_label, query))
