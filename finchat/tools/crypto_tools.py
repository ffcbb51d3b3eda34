"""Cryptocurrency tools backed by CoinGecko."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from finchat.models import CryptoPrice, ToolResult
from finchat.providers.coingecko import fetch_crypto_price, fetch_top_cryptos
from finchat.tools.base import Tool
from finchat.tools.formatting import billions, grouped, signed


class CryptoPriceArgs(BaseModel):
    coinId: str = Field(  # noqa: N815
        ...,
        min_length=1,
        description="The cryptocurrency ID (e.g., bitcoin, ethereum, solana, cardano, dogecoin)",
    )


class TopCryptosArgs(BaseModel):
    limit: int = Field(default=10, ge=1, le=20, description="Number of top cryptos to return (1-20)")


def format_crypto_price(coin: CryptoPrice) -> str:
    return (
        f"{coin.name} ({coin.symbol.upper()}): Price ${grouped(coin.current_price)}, "
        f"24h Change: {signed(coin.price_change_percentage_24h)}%, "
        f"Market Cap: ${billions(coin.market_cap)}B, "
        f"24h Volume: ${billions(coin.total_volume)}B"
    )


def format_top_cryptos(coins: list[CryptoPrice], limit: int) -> str:
    lines = [
        f"{i}. {c.name} ({c.symbol.upper()}): ${grouped(c.current_price)} "
        f"({signed(c.price_change_percentage_24h)}%)"
        for i, c in enumerate(coins, start=1)
    ]
    return f"Top {limit} Cryptocurrencies by Market Cap:\n" + "\n".join(lines)


class GetCryptoPriceTool(Tool):
    """Price and market data for a single coin."""

    name = "getCryptoPrice"
    description = (
        "Get real-time cryptocurrency price for a given coin (e.g., bitcoin, ethereum, solana). "
        "Use this when the user asks about crypto prices."
    )
    args_model = CryptoPriceArgs

    async def run(self, **kwargs: Any) -> ToolResult:
        coin_id = str(kwargs["coinId"]).strip()
        coin = await fetch_crypto_price(coin_id.lower())
        if coin is None:
            return ToolResult(
                success=False,
                message=f"Unable to fetch crypto data for {coin_id}. Please check the coin name.",
            )
        return ToolResult(success=True, data=coin, message=format_crypto_price(coin))


class GetTopCryptosTool(Tool):
    """Top coins by market cap."""

    name = "getTopCryptos"
    description = (
        "Get the top cryptocurrencies by market cap. Use this when the user wants to see the "
        "overall crypto market or top performing coins."
    )
    args_model = TopCryptosArgs

    async def run(self, **kwargs: Any) -> ToolResult:
        limit = int(kwargs.get("limit", 10))
        coins = await fetch_top_cryptos(limit)
        if not coins:
            return ToolResult(success=False, message="Unable to fetch top cryptocurrencies.")
        return ToolResult(success=True, data=coins, message=format_top_cryptos(coins, limit))
