"""Crypto Fear & Greed index tool."""

from __future__ import annotations

from typing import Any

from finchat.models import FearGreedIndex, ToolResult
from finchat.providers.fear_greed import fetch_fear_greed_index
from finchat.tools.base import Tool


def format_fear_greed(index: FearGreedIndex) -> str:
    return (
        f"Crypto Fear & Greed Index: {index.value}/100 ({index.classification}). "
        "This indicates the current market sentiment - lower values suggest fear "
        "(potential buying opportunity), higher values suggest greed (potential caution)."
    )


class GetFearGreedIndexTool(Tool):
    name = "getFearGreedIndex"
    description = (
        "Get the current Fear & Greed Index for the crypto market. "
        "Use this to gauge overall market sentiment."
    )

    async def run(self, **kwargs: Any) -> ToolResult:
        index = await fetch_fear_greed_index()
        if index is None:
            return ToolResult(success=False, message="Unable to fetch Fear & Greed Index.")
        return ToolResult(success=True, data=index, message=format_fear_greed(index))
