"""Currency exchange rate tool."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from finchat.models import ForexRate, ToolResult
from finchat.providers.exchange_rates import fetch_forex_rate
from finchat.tools.base import Tool


class ForexRateArgs(BaseModel):
    baseCurrency: str = Field(..., min_length=1, description="The base currency code (e.g., USD, EUR, GBP)")  # noqa: N815
    targetCurrency: str = Field(..., min_length=1, description="The target currency code (e.g., EUR, JPY, INR)")  # noqa: N815


def format_forex_rate(rate: ForexRate) -> str:
    return f"Exchange Rate: 1 {rate.base} = {rate.rate:.4f} {rate.target} (Last updated: {rate.last_updated})"


class GetForexRateTool(Tool):
    name = "getForexRate"
    description = (
        "Get the exchange rate between two currencies. Use this for forex/currency conversion questions."
    )
    args_model = ForexRateArgs

    async def run(self, **kwargs: Any) -> ToolResult:
        base = str(kwargs["baseCurrency"]).strip()
        target = str(kwargs["targetCurrency"]).strip()
        rate = await fetch_forex_rate(base.upper(), target.upper())
        if rate is None:
            return ToolResult(success=False, message=f"Unable to fetch exchange rate for {base}/{target}.")
        return ToolResult(success=True, data=rate, message=format_forex_rate(rate))
