"""Market news and sentiment tool."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from finchat.models import NewsItem, ToolResult
from finchat.providers.alpha_vantage import fetch_market_news
from finchat.tools.base import Tool


class MarketNewsArgs(BaseModel):
    tickers: str | None = Field(
        default=None,
        description="Optional: Comma-separated stock symbols to filter news (e.g., AAPL,MSFT)",
    )


def format_market_news(items: list[NewsItem]) -> str:
    entries = [
        f"{i}. **{n.title}** ({n.source}) - Sentiment: {n.sentiment}\n   {n.summary}"
        for i, n in enumerate(items, start=1)
    ]
    return "Latest Market News:\n\n" + "\n\n".join(entries)


class GetMarketNewsTool(Tool):
    name = "getMarketNews"
    description = (
        "Get the latest financial market news and sentiment. Optionally filter by stock symbols."
    )
    args_model = MarketNewsArgs

    def __init__(self, api_key: str = "demo") -> None:
        self._api_key = api_key

    async def run(self, **kwargs: Any) -> ToolResult:
        tickers = (kwargs.get("tickers") or "").strip() or None
        items = await fetch_market_news(tickers, api_key=self._api_key)
        if not items:
            return ToolResult(success=False, message="Unable to fetch market news at this time.")
        return ToolResult(success=True, data=items, message=format_market_news(items))
