"""OpenRouter implementation of LLMProvider."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator

import httpx

from finchat.config import Settings
from finchat.llm.base import LLMError, LLMProvider
from finchat.models import LLMStepFinish, LLMStreamChunk, LLMTextDelta, LLMToolCall

_LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 3
_RETRY_BACKOFF_SECONDS = [5, 15, 45]


class OpenRouterProvider(LLMProvider):
    """LLM provider using OpenRouter's OpenAI-compatible streaming chat endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[LLMStreamChunk]:
        payload: dict[str, Any] = {
            "model": self._settings.openrouter_model,
            "messages": messages,
            "stream": True,
        }
        if tools:
            payload["tools"] = tools

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._settings.openrouter_base_url, timeout=timeout) as client:
            for attempt in range(_MAX_RETRIES + 1):
                async with client.stream(
                    "POST",
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._settings.openrouter_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                ) as response:
                    if response.status_code != 429 or attempt >= _MAX_RETRIES:
                        response.raise_for_status()
                        async for chunk in _parse_sse(response):
                            yield chunk
                        return
                wait = _RETRY_BACKOFF_SECONDS[attempt]
                _LOGGER.warning(
                    "OpenRouter rate limited (429), retrying in %ds (attempt %d/%d)",
                    wait,
                    attempt + 1,
                    _MAX_RETRIES,
                )
                await asyncio.sleep(wait)


async def _parse_sse(response: httpx.Response) -> AsyncIterator[LLMStreamChunk]:
    calls: dict[int, dict[str, Any]] = {}
    finish_reason: str | None = None

    async for line in response.aiter_lines():
        line = line.strip()
        # Blank keep-alives and ": OPENROUTER PROCESSING" comments.
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            break
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError:
            _LOGGER.warning("Skipping undecodable stream line: %r", data[:200])
            continue

        if chunk.get("error"):
            error = chunk["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LLMError(message or "Model stream failed")

        choices = chunk.get("choices") or []
        if not choices:
            continue
        choice = choices[0]
        delta = choice.get("delta") or {}
        if content := delta.get("content"):
            yield LLMTextDelta(text=content)
        for fragment in delta.get("tool_calls") or []:
            entry = calls.setdefault(fragment.get("index", 0), {"id": None, "name": "", "arguments": ""})
            if fragment.get("id"):
                entry["id"] = fragment["id"]
            function_data = fragment.get("function") or {}
            if function_data.get("name") and not entry["name"]:
                entry["name"] = function_data["name"]
            if function_data.get("arguments"):
                entry["arguments"] += function_data["arguments"]
        if choice.get("finish_reason"):
            finish_reason = choice["finish_reason"]

    tool_calls = [
        LLMToolCall(
            name=entry["name"],
            arguments=_safe_json_loads(entry["arguments"] or "{}"),
            call_id=entry["id"] or f"call_{uuid.uuid4().hex[:12]}",
        )
        for _, entry in sorted(calls.items())
    ]
    _LOGGER.info("LLM step finished: finish_reason=%r tool_calls=%r", finish_reason, [c.name for c in tool_calls])
    yield LLMStepFinish(finish_reason=finish_reason, tool_calls=tool_calls)


def _safe_json_loads(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
