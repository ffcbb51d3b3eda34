"""CoinGecko adapters (no API key required)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from finchat.models import CryptoPrice

LOGGER = logging.getLogger(__name__)

COINGECKO_MARKETS_URL = "https://api.coingecko.com/api/v3/coins/markets"


async def fetch_crypto_price(coin_id: str) -> CryptoPrice | None:
    """Return the market record for one coin id (e.g. ``bitcoin``)."""

    rows = await _fetch_markets({"ids": coin_id, "per_page": 1})
    if not rows:
        return None
    return rows[0]


async def fetch_top_cryptos(limit: int = 10) -> list[CryptoPrice]:
    """Return the top ``limit`` coins ordered by market cap."""

    return await _fetch_markets({"per_page": limit})


async def _fetch_markets(extra: dict[str, Any]) -> list[CryptoPrice]:
    params: dict[str, Any] = {
        "vs_currency": "usd",
        **extra,
        "order": "market_cap_desc",
        "page": 1,
        "sparkline": "false",
        "price_change_percentage": "24h",
    }
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(COINGECKO_MARKETS_URL, params=params)
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("Error fetching crypto markets %s: %s", extra, exc)
        return []

    if not isinstance(data, list):
        LOGGER.warning("Unexpected CoinGecko payload for %s: %r", extra, data)
        return []

    rows: list[CryptoPrice] = []
    for entry in data:
        row = _to_crypto_price(entry)
        if row is not None:
            rows.append(row)
    return rows


def _to_crypto_price(entry: Any) -> CryptoPrice | None:
    try:
        return CryptoPrice(
            id=str(entry["id"]),
            symbol=str(entry["symbol"] or ""),
            name=str(entry["name"] or ""),
            current_price=float(entry["current_price"]),
            price_change_percentage_24h=float(entry.get("price_change_percentage_24h") or 0.0),
            market_cap=float(entry.get("market_cap") or 0.0),
            total_volume=float(entry.get("total_volume") or 0.0),
            price_change_24h=_optional_float(entry.get("price_change_24h")),
            high_24h=_optional_float(entry.get("high_24h")),
            low_24h=_optional_float(entry.get("low_24h")),
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        LOGGER.warning("Skipping malformed CoinGecko row: %r", entry)
        return None


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)
