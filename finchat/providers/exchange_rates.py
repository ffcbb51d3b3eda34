"""ExchangeRate-API adapter for forex rates."""

from __future__ import annotations

import logging

import httpx

from finchat.models import ForexRate

LOGGER = logging.getLogger(__name__)

EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest"


async def fetch_forex_rate(base: str, target: str) -> ForexRate | None:
    """Return the latest ``base``/``target`` rate or None when not quoted."""

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{EXCHANGE_RATE_URL}/{base}")
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("Error fetching forex rate %s/%s: %s", base, target, exc)
        return None

    rates = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(rates, dict) or not rates.get(target):
        return None

    try:
        rate = float(rates[target])
    except (TypeError, ValueError):
        LOGGER.error("Malformed rate for %s/%s: %r", base, target, rates[target])
        return None
    return ForexRate(base=base, target=target, rate=rate, last_updated=str(data.get("date", "")))
