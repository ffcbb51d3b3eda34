"""Equity quote tool backed by Alpha Vantage."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from finchat.models import StockQuote, ToolResult
from finchat.providers.alpha_vantage import fetch_stock_quote
from finchat.tools.base import Tool
from finchat.tools.formatting import signed


class StockQuoteArgs(BaseModel):
    symbol: str = Field(..., min_length=1, description="The stock ticker symbol (e.g., AAPL, GOOGL, MSFT)")


def format_stock_quote(quote: StockQuote) -> str:
    return (
        f"Stock data for {quote.symbol}: Price ${quote.price:.2f}, "
        f"Change: {signed(quote.change)} ({signed(quote.change_percent)}%), "
        f"Day Range: ${quote.low:.2f} - ${quote.high:.2f}, "
        f"Volume: {quote.volume:,}"
    )


class GetStockQuoteTool(Tool):
    """Real-time equity quote."""

    name = "getStockQuote"
    description = (
        "Get real-time stock quote for a given stock symbol (e.g., AAPL, GOOGL, MSFT, TSLA). "
        "Use this when the user asks about a specific stock price or wants stock information."
    )
    args_model = StockQuoteArgs

    def __init__(self, api_key: str = "demo") -> None:
        self._api_key = api_key

    async def run(self, **kwargs: Any) -> ToolResult:
        symbol = str(kwargs["symbol"]).strip()
        quote = await fetch_stock_quote(symbol.upper(), api_key=self._api_key)
        if quote is None:
            return ToolResult(
                success=False,
                message=(
                    f"Unable to fetch stock data for {symbol}. The symbol might be invalid "
                    "or the API limit may have been reached."
                ),
            )
        return ToolResult(success=True, data=quote, message=format_stock_quote(quote))
