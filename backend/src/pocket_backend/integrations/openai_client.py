from __future__ import annotations

from functools import lru_cache
import logging
from typing import Any, Dict, List, Optional

import httpx
from ..core.config import settings


class LLMBackendError(RuntimeError):
    """Raised when the OpenAI-compatible backend cannot satisfy a request.

    ``kind`` is one of ``unreachable``, ``auth``, ``rate_limit``, ``bad_request``,
    ``upstream`` or ``invalid_response``.
    """

    def __init__(self, message: str, *, kind: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


log = logging.getLogger("pocket.integrations.openai")


def _classify_status(status_code: int) -> str:
    if status_code in (401, 403):
        return "auth"
    if status_code == 429:
        return "rate_limit"
    if status_code == 400:
        return "bad_request"
    return "upstream"


class OpenAICompatibleClient:
    """Minimal OpenAI-compatible client for chat completions.

    Works with OpenRouter and any provider exposing the same schema.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        timeout_s: float = 30.0,
        referer: Optional[str] = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.referer = referer
        verify_ssl = bool(settings.llm_verify_ssl)
        if not verify_ssl:
            log.warning(
                "LLM SSL verification disabled (LLM_VERIFY_SSL=%r). "
                "Use this setting only in controlled environments.",
                settings.llm_verify_ssl,
            )
        self.client = httpx.Client(timeout=timeout_s, verify=verify_ssl, transport=transport)

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise LLMBackendError("LLM API key is not configured.", kind="auth")
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        return headers

    def chat_completions(self, *, model: str, messages: List[Dict[str, str]], **params: Any) -> Dict[str, Any]:
        url = f"{self.base_url}/chat/completions"
        headers = self._headers()
        payload: Dict[str, Any] = {"model": model, "messages": messages}
        payload.update(params)
        log.debug("POST %s model=%s", url, model)
        try:
            resp = self.client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
        except httpx.ConnectError as exc:
            log.error("LLM backend unreachable at %s: %s", url, exc)
            raise LLMBackendError(
                f"Unable to reach the LLM backend ({self.base_url}).", kind="unreachable"
            ) from exc
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            code = exc.response.status_code
            log.error("LLM backend returned %s for %s: %s", code, url, body)
            raise LLMBackendError(
                f"The LLM backend returned status {code}.",
                kind=_classify_status(code),
                status_code=code,
            ) from exc
        except httpx.HTTPError as exc:
            log.error("LLM backend request failed for %s: %s", url, exc)
            raise LLMBackendError("LLM backend request failed.", kind="unreachable") from exc
        try:
            return resp.json()
        except ValueError as exc:
            log.error("LLM backend returned a non-JSON body for %s", url)
            raise LLMBackendError("LLM backend returned an invalid body.", kind="invalid_response") from exc

    def complete_text(self, *, model: str, messages: List[Dict[str, str]], **params: Any) -> str:
        """Return the first choice's message content."""
        data = self.chat_completions(model=model, messages=messages, **params)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            log.error("LLM response missing choices[0].message.content: %r", data)
            raise LLMBackendError("LLM response has no message content.", kind="invalid_response") from exc
        if not isinstance(content, str) or not content.strip():
            raise LLMBackendError("LLM response has no message content.", kind="invalid_response")
        return content

    def close(self) -> None:
        self.client.close()


@lru_cache
def get_llm_client() -> OpenAICompatibleClient:
    return OpenAICompatibleClient(
        base_url=settings.openai_base_url,
        api_key=settings.openai_api_key,
        timeout_s=float(settings.openai_timeout_s),
        referer=settings.app_referer,
    )
