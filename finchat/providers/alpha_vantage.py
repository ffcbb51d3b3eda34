"""Alpha Vantage adapters: equity quotes and news sentiment."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from finchat.models import NewsItem, StockQuote

LOGGER = logging.getLogger(__name__)

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
NEWS_LIMIT = 5
SUMMARY_MAX_CHARS = 200


async def fetch_stock_quote(symbol: str, api_key: str = "demo") -> StockQuote | None:
    """Return the latest quote for ``symbol`` or None when unavailable."""

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                ALPHA_VANTAGE_URL,
                params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": api_key or "demo"},
            )
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("Error fetching stock quote for %s: %s", symbol, exc)
        return None

    quote = data.get("Global Quote") if isinstance(data, dict) else None
    if not quote:
        LOGGER.warning("No quote returned for %s", symbol)
        return None

    try:
        return StockQuote(
            symbol=quote["01. symbol"],
            price=float(quote["05. price"]),
            change=float(quote["09. change"]),
            change_percent=_parse_percent(quote["10. change percent"]),
            high=float(quote["03. high"]),
            low=float(quote["04. low"]),
            volume=int(quote["06. volume"]),
            latest_trading_day=quote.get("07. latest trading day", ""),
        )
    except (KeyError, TypeError, ValueError) as exc:
        LOGGER.error("Malformed quote payload for %s: %s", symbol, exc)
        return None


async def fetch_market_news(tickers: str | None = None, api_key: str = "demo") -> list[NewsItem]:
    """Return up to five recent news items, optionally filtered by tickers."""

    params = {"function": "NEWS_SENTIMENT", "apikey": api_key or "demo"}
    if tickers:
        params["tickers"] = tickers

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(ALPHA_VANTAGE_URL, params=params)
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("Error fetching market news: %s", exc)
        return []

    feed = data.get("feed") if isinstance(data, dict) else None
    if not isinstance(feed, list):
        return []

    items: list[NewsItem] = []
    for entry in feed[:NEWS_LIMIT]:
        if not isinstance(entry, dict):
            continue
        items.append(
            NewsItem(
                title=str(entry.get("title", "")),
                summary=_truncate(entry.get("summary")),
                source=str(entry.get("source", "")),
                url=str(entry.get("url", "")),
                published_at=str(entry.get("time_published", "")),
                sentiment=str(entry.get("overall_sentiment_label", "")),
            )
        )
    return items


def _parse_percent(raw: Any) -> float:
    return float(str(raw).strip().rstrip("%"))


def _truncate(summary: Any) -> str:
    return f"{str(summary or '')[:SUMMARY_MAX_CHARS]}..."
