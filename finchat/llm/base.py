"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from finchat.models import LLMStreamChunk


class LLMError(RuntimeError):
    """Upstream model failure reported inside an otherwise healthy stream."""


class LLMProvider(ABC):
    """Abstract streaming model provider used by the chat runtime."""

    @abstractmethod
    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[LLMStreamChunk]:
        """Stream one model step: text deltas, then a single step-finish chunk."""
