"""
Generation provider boundary.

The gateway talks to the outside world through a single call:
``await provider.generate(GenerationRequest) -> str``. GeminiProvider is the
production implementation; tests plug in scripted fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from loguru import logger

from curioloop.config import Settings, get_settings
from curioloop.core.errors import GenerationError

ModelClass = Literal["fast", "reasoning", "multimodal"]


@dataclass
class GenerationRequest:
    """One request/response round trip to the provider."""

    operation: str
    model_class: ModelClass
    instruction: str
    schema: dict[str, Any] | None = None  # None = free text reply
    system_instruction: str | None = None
    temperature: float | None = None
    image: bytes | None = None
    image_mime: str = "image/jpeg"


class GenerationProvider(Protocol):
    """Anything that can turn a GenerationRequest into reply text."""

    async def generate(self, request: GenerationRequest) -> str: ...


class GeminiProvider:
    """
    Google Gemini provider backed by ``google-generativeai``.

    Models are resolved per request from the settings' model classes, and
    one GenerativeModel is cached per (model, system instruction) pair.
    """

    def __init__(self, settings: Settings | None = None, api_key: str | None = None):
        self.settings = settings or get_settings()
        self.api_key = api_key or self.settings.gemini_api_key
        self._models: dict[tuple[str, str | None], Any] = {}
        self._configured = False

        if not self.api_key:
            logger.warning("No Gemini API key - generation calls will fail")

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    def _model(self, model_name: str, system_instruction: str | None):
        """Lazy-load a Gemini model."""
        import google.generativeai as genai

        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True

        key = (model_name, system_instruction)
        if key not in self._models:
            self._models[key] = genai.GenerativeModel(
                model_name=model_name,
                system_instruction=system_instruction,
            )
        return self._models[key]

    async def generate(self, request: GenerationRequest) -> str:
        if not self.is_available:
            raise GenerationError(request.operation, "Gemini API key not configured")

        model_name = self.settings.model_for(request.model_class)
        model = self._model(model_name, request.system_instruction)

        generation_config: dict[str, Any] = {}
        if request.schema is not None:
            generation_config["response_mime_type"] = "application/json"
            generation_config["response_schema"] = request.schema
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature

        contents: list[Any] = []
        if request.image is not None:
            contents.append({"mime_type": request.image_mime, "data": request.image})
        contents.append(request.instruction)

        logger.debug(f"Gemini {model_name} <- {request.operation}")
        response = await model.generate_content_async(
            contents,
            generation_config=generation_config or None,
        )
        return response.text or ""
