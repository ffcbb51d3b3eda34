"""Aggregate market overview: sentiment index plus the top three coins."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from finchat.models import CryptoPrice, FearGreedIndex, ToolResult
from finchat.providers.coingecko import fetch_top_cryptos
from finchat.providers.fear_greed import fetch_fear_greed_index
from finchat.tools.base import Tool
from finchat.tools.formatting import grouped

LOGGER = logging.getLogger(__name__)

OVERVIEW_TOP_N = 3


def format_market_overview(
    sentiment: FearGreedIndex | None,
    top_cryptos: list[CryptoPrice],
) -> str:
    overview = "📊 **Market Overview**\n\n"
    if sentiment is not None:
        overview += f"**Crypto Market Sentiment:** {sentiment.classification} ({sentiment.value}/100)\n\n"
    if top_cryptos:
        overview += f"**Top {OVERVIEW_TOP_N} Cryptocurrencies:**\n"
        for i, coin in enumerate(top_cryptos, start=1):
            icon = "📈" if coin.price_change_percentage_24h >= 0 else "📉"
            overview += (
                f"{i}. {coin.name}: ${grouped(coin.current_price)} {icon} "
                f"{coin.price_change_percentage_24h:.2f}%\n"
            )
    if sentiment is None and not top_cryptos:
        overview += "No market data is available right now.\n"
    return overview


class GetMarketOverviewTool(Tool):
    """Composite tool; succeeds with whatever subset of data arrives."""

    name = "getMarketOverview"
    description = (
        "Get a comprehensive market overview including major indices sentiment. "
        "Use this for general market condition questions."
    )

    async def run(self, **kwargs: Any) -> ToolResult:
        sentiment, top_cryptos = await asyncio.gather(
            fetch_fear_greed_index(),
            fetch_top_cryptos(OVERVIEW_TOP_N),
            return_exceptions=True,
        )
        if isinstance(sentiment, BaseException):
            LOGGER.error("Overview sentiment lookup failed: %s", sentiment)
            sentiment = None
        if isinstance(top_cryptos, BaseException):
            LOGGER.error("Overview top cryptos lookup failed: %s", top_cryptos)
            top_cryptos = []

        return ToolResult(
            success=True,
            data={"sentiment": sentiment, "top_cryptos": top_cryptos},
            message=format_market_overview(sentiment, top_cryptos),
        )
