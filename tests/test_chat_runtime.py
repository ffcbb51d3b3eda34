from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from finchat.chat_runtime import SYSTEM_PROMPT, ChatRuntime, TurnState
from finchat.llm.base import LLMError, LLMProvider
from finchat.main import build_tool_registry
from finchat.models import LLMStepFinish, LLMTextDelta, LLMToolCall, StockQuote, ToolResult
from finchat.schemas import ConversationMessage, TextPart
from finchat.tools.base import Tool
from finchat.tools.registry import ToolRegistry
from finchat.transcript import TOOL_DATA_PREFIX, MessageAssembler, render_message_text


class ScriptedProvider(LLMProvider):
    """Replays one scripted list of chunks per model step."""

    def __init__(self, steps: list[list[Any]]) -> None:
        self._steps = list(steps)
        self.calls: list[dict[str, Any]] = []

    async def stream(self, messages, tools=None):  # noqa: ANN001, ANN201
        self.calls.append({"messages": list(messages), "tools": tools})
        for chunk in self._steps.pop(0):
            if isinstance(chunk, BaseException):
                raise chunk
            if isinstance(chunk, float):
                await asyncio.sleep(chunk)
                continue
            yield chunk


def _user(text: str) -> ConversationMessage:
    return ConversationMessage(id="u1", role="user", parts=[TextPart(text=text)])


def _quote() -> StockQuote:
    return StockQuote("AAPL", 150.25, 1.5, 1.01, 151.0, 148.0, 50_000_000, "2024-05-17")


async def _collect(turn) -> list[Any]:  # noqa: ANN001
    return [event async for event in turn.events()]


def _types(events: list[Any]) -> list[str]:
    return [event.type for event in events]


@pytest.mark.asyncio
async def test_text_only_turn():
    llm = ScriptedProvider([[LLMTextDelta("Hello"), LLMTextDelta(" there"), LLMStepFinish("stop")]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    turn = runtime.start_turn([_user("hi")])
    assert turn.state is TurnState.READY

    events = await _collect(turn)

    assert _types(events) == ["start", "text-delta", "text-delta", "finish"]
    assert events[0].message_id == turn.message_id
    assert turn.state is TurnState.READY
    sent = llm.calls[0]["messages"]
    assert sent[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert sent[1] == {"role": "user", "content": "hi"}
    assert len(llm.calls[0]["tools"]) == 7


@pytest.mark.asyncio
async def test_tool_call_round_trip():
    llm = ScriptedProvider(
        [
            [LLMStepFinish("tool_calls", [LLMToolCall("getStockQuote", {"symbol": "AAPL"}, call_id="c1")])],
            [LLMTextDelta("AAPL trades at $150.25."), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())

    with patch("finchat.tools.stock_quote_tool.fetch_stock_quote", new=AsyncMock(return_value=_quote())):
        events = await _collect(runtime.start_turn([_user("Price of AAPL?")]))

    assert _types(events) == ["start", "tool-input-available", "tool-output-available", "text-delta", "finish"]
    assert events[1].tool_call_id == "c1"
    assert events[1].input == {"symbol": "AAPL"}
    assert events[2].tool_call_id == "c1"
    assert events[2].output["success"] is True
    assert events[2].output["message"].startswith("Stock data for AAPL")

    second = llm.calls[1]["messages"]
    assert second[-2]["role"] == "assistant"
    assert second[-2]["tool_calls"][0]["id"] == "c1"
    assert second[-2]["tool_calls"][0]["function"]["name"] == "getStockQuote"
    assert second[-1]["role"] == "tool"
    assert second[-1]["tool_call_id"] == "c1"
    assert second[-1]["content"].startswith(TOOL_DATA_PREFIX)


@pytest.mark.asyncio
async def test_adapter_failure_is_reported_as_unsuccessful_output():
    llm = ScriptedProvider(
        [
            [LLMStepFinish("tool_calls", [LLMToolCall("getStockQuote", {"symbol": "ZZZZ"}, call_id="c1")])],
            [LLMTextDelta("Sorry."), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())

    with patch("finchat.tools.stock_quote_tool.fetch_stock_quote", new=AsyncMock(return_value=None)):
        events = await _collect(runtime.start_turn([_user("ZZZZ?")]))

    output = events[2]
    assert output.type == "tool-output-available"
    assert output.output["success"] is False
    assert "Unable to fetch stock data for ZZZZ" in output.output["message"]


@pytest.mark.asyncio
async def test_invalid_arguments_surface_as_tool_error():
    llm = ScriptedProvider(
        [
            [LLMStepFinish("tool_calls", [LLMToolCall("getTopCryptos", {"limit": 25}, call_id="c1")])],
            [LLMTextDelta("I can show at most 20."), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())

    with patch("finchat.tools.crypto_tools.fetch_top_cryptos", new=AsyncMock()) as fetch:
        events = await _collect(runtime.start_turn([_user("top 25 coins")]))

    fetch.assert_not_called()
    assert _types(events) == ["start", "tool-input-available", "tool-output-error", "text-delta", "finish"]
    assert "limit" in events[2].error_text
    assert "Error: Invalid input for tool getTopCryptos" in llm.calls[1]["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_unknown_tool_surfaces_as_tool_error():
    llm = ScriptedProvider(
        [
            [LLMStepFinish("tool_calls", [LLMToolCall("getWeather", {}, call_id="c1")])],
            [LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())

    events = await _collect(runtime.start_turn([_user("weather?")]))

    assert events[2].type == "tool-output-error"
    assert events[2].error_text == "Unknown tool: getWeather"


class BarrierTool(Tool):
    """Completes only once every expected invocation has started."""

    name = "barrier"
    description = "test tool"

    def __init__(self, expected: int) -> None:
        self._expected = expected
        self._started = 0
        self._all_started = asyncio.Event()

    async def run(self, **kwargs: Any) -> ToolResult:
        self._started += 1
        if self._started >= self._expected:
            self._all_started.set()
        await self._all_started.wait()
        return ToolResult(success=True, message=f"done {self._started}")


@pytest.mark.asyncio
async def test_tool_calls_in_one_step_run_concurrently():
    registry = ToolRegistry()
    registry.register(BarrierTool(expected=2))
    llm = ScriptedProvider(
        [
            [
                LLMStepFinish(
                    "tool_calls",
                    [LLMToolCall("barrier", {}, call_id="a"), LLMToolCall("barrier", {}, call_id="b")],
                )
            ],
            [LLMTextDelta("ok"), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=registry)

    events = await asyncio.wait_for(_collect(runtime.start_turn([_user("go")])), timeout=2)

    outputs = [e for e in events if e.type == "tool-output-available"]
    assert [e.tool_call_id for e in outputs] == ["a", "b"]


@pytest.mark.asyncio
async def test_upstream_error_after_text_emits_single_error_event():
    llm = ScriptedProvider([[LLMTextDelta("Partial"), LLMError("provider overloaded")]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    turn = runtime.start_turn([_user("hi")])

    events = await _collect(turn)

    assert _types(events) == ["start", "text-delta", "error"]
    assert events[-1].error_text == "provider overloaded"
    assert turn.state is TurnState.ERROR


@pytest.mark.asyncio
async def test_http_error_is_described_without_internals():
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    error = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(500, request=request))
    llm = ScriptedProvider([[error]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())

    events = await _collect(runtime.start_turn([_user("hi")]))

    assert _types(events) == ["start", "error"]
    assert events[-1].error_text == "Model request failed (HTTP 500)."


@pytest.mark.asyncio
async def test_turn_exceeding_max_duration_errors():
    llm = ScriptedProvider([[LLMTextDelta("thinking"), 1.0, LLMTextDelta("late")]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry(), max_duration_seconds=0.05)
    turn = runtime.start_turn([_user("hi")])

    events = await _collect(turn)

    assert _types(events) == ["start", "text-delta", "error"]
    assert "maximum duration" in events[-1].error_text
    assert turn.state is TurnState.ERROR


@pytest.mark.asyncio
async def test_cancel_mid_stream_stops_output():
    llm = ScriptedProvider(
        [[LLMTextDelta("one"), LLMTextDelta("two"), LLMTextDelta("three"), LLMStepFinish("stop")]]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    turn = runtime.start_turn([_user("count")])

    seen = []
    async for event in turn.events():
        seen.append(event)
        if event.type == "text-delta":
            assert turn.state is TurnState.STREAMING
            turn.cancel()

    assert _types(seen) == ["start", "text-delta"]
    assert seen[1].delta == "one"
    assert turn.state is TurnState.CANCELLED


@pytest.mark.asyncio
async def test_cancel_before_start_emits_nothing():
    llm = ScriptedProvider([[LLMTextDelta("never")]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    turn = runtime.start_turn([_user("hi")])
    turn.cancel()

    assert await _collect(turn) == []
    assert llm.calls == []
    assert turn.state is TurnState.CANCELLED


@pytest.mark.asyncio
async def test_cancel_after_finish_is_a_no_op():
    llm = ScriptedProvider([[LLMTextDelta("done"), LLMStepFinish("stop")]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    turn = runtime.start_turn([_user("hi")])
    await _collect(turn)

    turn.cancel()

    assert turn.state is TurnState.READY


@pytest.mark.asyncio
async def test_stops_after_max_steps():
    call = LLMToolCall("getFearGreedIndex", {}, call_id="c")
    llm = ScriptedProvider([[LLMStepFinish("tool_calls", [call])], [LLMStepFinish("tool_calls", [call])]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry(), max_steps=2)

    with patch("finchat.tools.sentiment_tool.fetch_fear_greed_index", new=AsyncMock(return_value=None)):
        events = await _collect(runtime.start_turn([_user("sentiment")]))

    assert len(llm.calls) == 2
    assert events[-1].type == "finish"


@pytest.mark.asyncio
async def test_events_can_only_be_consumed_once():
    llm = ScriptedProvider([[LLMStepFinish("stop")]])
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    turn = runtime.start_turn([_user("hi")])
    await _collect(turn)

    with pytest.raises(RuntimeError):
        await _collect(turn)


@pytest.mark.asyncio
async def test_events_rebuild_final_message():
    llm = ScriptedProvider(
        [
            [
                LLMTextDelta("Let me check. "),
                LLMStepFinish("tool_calls", [LLMToolCall("getStockQuote", {"symbol": "AAPL"}, call_id="c1")]),
            ],
            [LLMTextDelta("AAPL is "), LLMTextDelta("up today."), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())
    assembler = MessageAssembler()

    with patch("finchat.tools.stock_quote_tool.fetch_stock_quote", new=AsyncMock(return_value=_quote())):
        async for event in runtime.start_turn([_user("AAPL?")]).events():
            assembler.apply(event)

    message = assembler.message
    assert [p.type for p in message.parts] == ["text", "tool-invocation", "text"]
    assert message.parts[0].text == "Let me check. "
    assert message.parts[1].state == "completed"
    assert message.parts[2].text == "AAPL is up today."
    rendered = render_message_text(message)
    assert "Stock data for AAPL: Price $150.25" in rendered
    assert rendered.endswith("AAPL is up today.")


class ExplodingTool(Tool):
    name = "exploding"
    description = "test tool"

    async def run(self, **kwargs: Any) -> ToolResult:
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_unexpected_tool_exception_becomes_failed_result():
    registry = ToolRegistry()
    registry.register(ExplodingTool())
    llm = ScriptedProvider(
        [
            [LLMStepFinish("tool_calls", [LLMToolCall("exploding", {}, call_id="c1")])],
            [LLMTextDelta("Sorry, that lookup failed."), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=registry)
    turn = runtime.start_turn([_user("go")])

    events = await _collect(turn)

    assert _types(events) == ["start", "tool-input-available", "tool-output-available", "text-delta", "finish"]
    assert events[2].output == {"success": False, "message": "Unable to run exploding."}
    assert turn.state is TurnState.READY
    tool_reply = llm.calls[1]["messages"][-1]
    assert tool_reply["role"] == "tool"
    assert "Unable to run exploding." in tool_reply["content"]


@pytest.mark.asyncio
async def test_crypto_price_with_null_symbol_does_not_break_turn():
    response = MagicMock()
    response.json.return_value = [{"id": "x", "symbol": None, "name": "X", "current_price": 1.0}]
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.get = AsyncMock(return_value=response)
    llm = ScriptedProvider(
        [
            [LLMStepFinish("tool_calls", [LLMToolCall("getCryptoPrice", {"coinId": "x"}, call_id="c1")])],
            [LLMTextDelta("X is at $1."), LLMStepFinish("stop")],
        ]
    )
    runtime = ChatRuntime(llm=llm, tool_registry=build_tool_registry())

    with patch("finchat.providers.coingecko.httpx.AsyncClient", return_value=client):
        events = await _collect(runtime.start_turn([_user("price of x")]))

    assert _types(events)[-1] == "finish"
    output = next(e for e in events if e.type == "tool-output-available").output
    assert output["success"] is True
    assert output["message"].startswith("X (): Price $1")
