# src/clippy_tasks/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

_BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"AuthenticationError", "PermissionDeniedError", "UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"RateLimitError", "TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {"APIConnectionError", "APITimeoutError", "ConnectTimeout", "ReadTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible servers answer 404 for unknown models.
    return isinstance(exc, openai.NotFoundError) or exc.__class__.__name__ == "NotFoundError"


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set CLIPPY_OPENAI_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set CLIPPY_LLM_MODELS in .env."
    return msg


class OpenAICompatibleLLMClient:
    """
    JSON chat completions against an OpenAI-compatible endpoint.

    Behavior:
    - tries models in the configured order;
    - 404 (model not available) -> skip that model for an hour, try next;
    - rate limit / network issues -> try next;
    - auth issues -> fail fast (no retries across models).
    Automatic SDK retries are disabled so fallback is quick.
    """

    def __init__(self, settings: Any) -> None:
        api_key = getattr(settings, "openai_api_key", None)
        base_url = str(getattr(settings, "openai_base_url", "") or "")
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set CLIPPY_OPENAI_API_KEY in your .env.")

        self._models: List[str] = [m.strip() for m in (getattr(settings, "llm_models", []) or []) if m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set CLIPPY_LLM_MODELS in your .env.")

        self._headers: Dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        connect_s = float(getattr(settings, "llm_connect_timeout_seconds", 5.0))
        read_s = float(getattr(settings, "llm_read_timeout_seconds", 90.0))
        self._timeout = httpx.Timeout(connect=connect_s, read=read_s, write=30.0, pool=connect_s)

        self._client = OpenAI(
            base_url=base_url or None,
            api_key=str(api_key),
            timeout=self._timeout,
            max_retries=0,
        )
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    @property
    def models(self) -> list[str]:
        return list(self._models)

    def complete_json(self, messages: list[ChatMessage], system_prompt: str) -> str:
        """Return the raw text of the first model that answers with content."""
        last_error: Optional[Exception] = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            try:
                resp = self._client.chat.completions.create(
                    model=model,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    response_format={"type": "json_object"},
                    extra_headers=self._headers or None,
                    timeout=self._timeout,
                )
                content = resp.choices[0].message.content if resp.choices else None
                if content and content.strip():
                    logger.info("LLM: answer from model=%s (%.2fs)", model, time.monotonic() - t0)
                    return content
                last_error = RuntimeError(f"Model returned no content: {model}")

            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError("LLM authentication failed. Check CLIPPY_OPENAI_API_KEY.") from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
