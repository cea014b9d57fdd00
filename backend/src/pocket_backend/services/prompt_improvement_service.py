from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ValidationError

from ..core.config import settings
from ..core.errors import PromptImprovementError, PromptImprovementRefusedError
from ..core.prompts import PromptStore
from ..integrations.openai_client import OpenAICompatibleClient
from ..schemas.prompts import PromptImprovementResponse


log = logging.getLogger("pocket.services.prompt_improvement")

SYSTEM_PROMPT_KEY = "prompt_improvement_system"
NO_INSTRUCTION = "No specific instructions provided."

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class _ModelReply(BaseModel):
    thoughts: str | None = None
    improved_content: str
    explanation: str

    @classmethod
    def from_reply(cls, data: dict[str, Any]) -> "_ModelReply":
        payload = dict(data)
        if "_thoughts" in payload:
            payload["thoughts"] = payload.pop("_thoughts")
        return cls.model_validate(payload)


def _unwrap(text: str) -> str:
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1) if match else stripped


class PromptImprovementService:
    """Ask the LLM for a rewritten prompt and validate the JSON it returns."""

    def __init__(self, *, client: OpenAICompatibleClient, store: PromptStore, model: str | None = None):
        self.client = client
        self.store = store
        self.model = model or settings.prompts_improvement_model

    def improve(self, *, content: str, instruction: str | None = None) -> PromptImprovementResponse:
        guidance = (instruction or "").strip() or NO_INSTRUCTION
        system_message = self.store.render(SYSTEM_PROMPT_KEY, {"instruction": guidance})
        text = self.client.complete_text(
            model=self.model,
            messages=[
                {"role": "system", "content": system_message},
                {"role": "user", "content": content},
            ],
            response_format={"type": "json_object"},
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        reply = self._parse_reply(text)
        log.info(
            "Prompt improved (model=%s, in=%d chars, out=%d chars)",
            self.model,
            len(content),
            len(reply.improved_content),
        )
        return PromptImprovementResponse(
            improved_content=reply.improved_content,
            explanation=reply.explanation,
        )

    def _parse_reply(self, text: str) -> _ModelReply:
        try:
            data = json.loads(_unwrap(text))
        except json.JSONDecodeError as exc:
            log.error("AI response is not valid JSON: %s", exc)
            raise PromptImprovementError("Invalid AI response structure: not valid JSON") from exc
        if not isinstance(data, dict):
            raise PromptImprovementError("Invalid AI response structure: expected a JSON object")
        if "error" in data and "improved_content" not in data:
            log.warning("AI refused to improve prompt: %s", data.get("error"))
            raise PromptImprovementRefusedError(str(data.get("error") or "Prompt was rejected"))
        try:
            return _ModelReply.from_reply(data)
        except ValidationError as exc:
            log.error("AI response validation failed: %s", exc.errors())
            raise PromptImprovementError(f"Invalid AI response structure: {exc.error_count()} error(s)") from exc
