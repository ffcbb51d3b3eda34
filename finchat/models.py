"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True)
class StockQuote:
    """Equity quote normalized from the Alpha Vantage GLOBAL_QUOTE payload."""

    symbol: str
    price: float
    change: float
    change_percent: float
    high: float
    low: float
    volume: int
    latest_trading_day: str


@dataclass(slots=True)
class CryptoPrice:
    """Per-coin market record as reported by CoinGecko."""

    id: str
    symbol: str
    name: str
    current_price: float
    price_change_percentage_24h: float
    market_cap: float
    total_volume: float
    price_change_24h: float | None = None
    high_24h: float | None = None
    low_24h: float | None = None


@dataclass(slots=True)
class ForexRate:
    base: str
    target: str
    rate: float
    last_updated: str


@dataclass(slots=True)
class NewsItem:
    title: str
    summary: str
    source: str
    url: str
    published_at: str
    sentiment: str


@dataclass(slots=True)
class FearGreedIndex:
    """Crypto market sentiment index, 0 (extreme fear) to 100 (extreme greed)."""

    value: int
    classification: str
    timestamp: str


@dataclass(slots=True)
class ToolResult:
    """Outcome of one tool invocation, handed back to the model and the client."""

    success: bool
    message: str
    data: Any = None

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("ToolResult.message must not be empty")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = _jsonable(self.data)
        return payload


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None


@dataclass(slots=True)
class LLMTextDelta:
    """Incremental assistant text emitted while a model step streams."""

    text: str


@dataclass(slots=True)
class LLMStepFinish:
    """End of one streamed model step, with any tool calls it requested."""

    finish_reason: str | None
    tool_calls: list[LLMToolCall] = field(default_factory=list)


LLMStreamChunk = LLMTextDelta | LLMStepFinish


def _jsonable(value: Any) -> Any:
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if hasattr(value, "__dataclass_fields__"):
        return asdict(value)
    return value
