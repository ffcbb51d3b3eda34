"""alternative.me Fear & Greed index adapter."""

from __future__ import annotations

import logging

import httpx

from finchat.models import FearGreedIndex

LOGGER = logging.getLogger(__name__)

FEAR_GREED_URL = "https://api.alternative.me/fng/"


async def fetch_fear_greed_index() -> FearGreedIndex | None:
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(FEAR_GREED_URL)
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("Error fetching fear & greed index: %s", exc)
        return None

    entries = data.get("data") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries:
        return None

    latest = entries[0]
    try:
        return FearGreedIndex(
            value=int(latest["value"]),
            classification=str(latest["value_classification"]),
            timestamp=str(latest.get("timestamp", "")),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        LOGGER.error("Malformed fear & greed payload: %s", exc)
        return None
