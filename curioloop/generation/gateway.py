"""
Content Generation Gateway.

Wraps the generation provider behind five typed operations:
1. generate_diagnostic_quiz - calibration quiz for a new path
2. evaluate_and_plan        - diagnostic results -> LearningPlan
3. generate_chapter         - reading material + quiz for one chapter
4. adapt_plan               - narrative feedback after a chapter quiz
5. extract_context          - text summary of an uploaded image

Every JSON operation follows the same contract: build instruction + schema,
make exactly one provider call, strip optional code fencing, parse, fill
default fields, validate with the pydantic model. Any failure along the way
is raised as GenerationError; a reply is never partially accepted.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from curioloop.config import Settings, get_settings
from curioloop.core.errors import GenerationError
from curioloop.core.models import (
    AdaptiveUpdate,
    Chapter,
    ChapterContent,
    DiagnosticQuiz,
    DiagnosticResult,
    LearningPlan,
    Level,
)
from curioloop.generation import prompts, schemas
from curioloop.generation.provider import GenerationProvider, GenerationRequest
from curioloop.progression.progression import reset_unlock_state

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```", re.IGNORECASE)


def extract_json(text: str) -> Any:
    """
    Parse a JSON reply that may be wrapped in markdown code fencing.

    Raises:
        ValueError: if no JSON document can be parsed from the text
    """
    match = _FENCED_JSON.search(text)
    if match:
        candidate = match.group(1)
    else:
        candidate = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE)

    candidate = candidate.strip()
    if not candidate:
        raise ValueError("empty reply")
    return json.loads(candidate)


class GenerationGateway:
    """Typed, validated access to the generation provider."""

    def __init__(self, provider: GenerationProvider, settings: Settings | None = None):
        self.provider = provider
        self.settings = settings or get_settings()

    # =========================================================================
    # Plumbing
    # =========================================================================

    async def _send(self, request: GenerationRequest) -> str:
        logger.debug(f"Generation request: {request.operation} ({request.model_class})")
        try:
            return await self.provider.generate(request)
        except GenerationError:
            raise
        except Exception as e:
            logger.warning(f"Provider call failed for {request.operation}: {e}")
            raise GenerationError(request.operation, f"provider call failed: {e}") from e

    async def _request_model(
        self,
        request: GenerationRequest,
        model: type[ModelT],
        defaults: dict[str, Any] | None = None,
    ) -> ModelT:
        text = await self._send(request)

        try:
            data = extract_json(text)
        except ValueError as e:
            logger.warning(f"Unparseable reply for {request.operation}: {e}")
            raise GenerationError(request.operation, f"reply is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise GenerationError(request.operation, f"expected a JSON object, got {type(data).__name__}")

        for key, value in (defaults or {}).items():
            if data.get(key) is None:
                data[key] = value

        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Schema mismatch for {request.operation}: {e.error_count()} error(s)")
            raise GenerationError(request.operation, f"reply failed validation: {e}") from e

    # =========================================================================
    # Operations
    # =========================================================================

    async def generate_diagnostic_quiz(
        self,
        topic: str,
        level: Level | str,
        context: str | None = None,
    ) -> DiagnosticQuiz:
        """Request a short multiple-choice quiz to calibrate the plan."""
        level_label = level.value if isinstance(level, Level) else level
        request = GenerationRequest(
            operation="generate_diagnostic_quiz",
            model_class="fast",
            instruction=prompts.diagnostic_prompt(
                topic,
                level_label,
                self.settings.diagnostic_question_count,
                context,
            ),
            schema=schemas.DIAGNOSTIC_QUIZ_SCHEMA,
            system_instruction=prompts.SYSTEM_PROMPT,
        )
        return await self._request_model(request, DiagnosticQuiz, defaults={"topic": topic})

    async def evaluate_and_plan(
        self,
        topic: str,
        results: list[DiagnosticResult],
        goal: str,
    ) -> LearningPlan:
        """
        Turn diagnostic results into a learning plan.

        The first chapter is always returned unlocked and the rest locked,
        whatever status the provider reported.
        """
        request = GenerationRequest(
            operation="evaluate_and_plan",
            model_class="reasoning",
            instruction=prompts.plan_prompt(
                topic,
                goal,
                [r.model_dump(by_alias=True) for r in results],
                self.settings.plan_chapter_count,
            ),
            schema=schemas.LEARNING_PLAN_SCHEMA,
            temperature=self.settings.planning_temperature,
        )
        plan = await self._request_model(request, LearningPlan)
        return reset_unlock_state(plan)

    async def generate_chapter(self, topic: str, chapter: Chapter, style: str) -> ChapterContent:
        """
        Request reading material for a chapter in the given style.

        Resource links are requested as search URLs / canonical pages but not
        checked here.
        """
        request = GenerationRequest(
            operation="generate_chapter",
            model_class="fast",
            instruction=prompts.chapter_prompt(
                topic,
                chapter.chapter_id,
                chapter.title,
                chapter.objective,
                style,
                self.settings.chapter_quiz_question_count,
            ),
            schema=schemas.CHAPTER_CONTENT_SCHEMA,
        )
        return await self._request_model(
            request,
            ChapterContent,
            defaults={"chapter_id": chapter.chapter_id, "title": chapter.title},
        )

    async def adapt_plan(self, plan: LearningPlan, chapter_id: int, score: int) -> AdaptiveUpdate:
        """Request feedback and difficulty hints after a chapter quiz."""
        request = GenerationRequest(
            operation="adapt_plan",
            model_class="reasoning",
            instruction=prompts.adapt_prompt(chapter_id, score, [c.title for c in plan.chapters]),
            schema=schemas.ADAPTIVE_UPDATE_SCHEMA,
        )
        return await self._request_model(
            request,
            AdaptiveUpdate,
            defaults={"chapter_id": chapter_id, "chapter_score": score},
        )

    async def extract_context(self, image: bytes, mime_type: str = "image/jpeg") -> str:
        """Summarize key concepts from an image of study material."""
        request = GenerationRequest(
            operation="extract_context",
            model_class="multimodal",
            instruction=prompts.EXTRACT_PROMPT,
            image=image,
            image_mime=mime_type,
        )
        text = await self._send(request)
        return (text or "").strip()
