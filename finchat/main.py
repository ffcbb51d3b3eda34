"""Application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from finchat.chat_runtime import ChatRuntime
from finchat.config import Settings, load_settings
from finchat.llm.openrouter import OpenRouterProvider
from finchat.mail.resend import ResendTransport
from finchat.mail.service import EmailService
from finchat.mail.smtp import SmtpTransport
from finchat.schemas import ChatRequest
from finchat.tools.crypto_tools import GetCryptoPriceTool, GetTopCryptosTool
from finchat.tools.forex_tool import GetForexRateTool
from finchat.tools.news_tool import GetMarketNewsTool
from finchat.tools.overview_tool import GetMarketOverviewTool
from finchat.tools.registry import ToolRegistry
from finchat.tools.sentiment_tool import GetFearGreedIndexTool
from finchat.tools.stock_quote_tool import GetStockQuoteTool

logging.basicConfig(level=logging.INFO)
LOGGER = logging.getLogger(__name__)


def build_tool_registry(alpha_vantage_api_key: str = "demo") -> ToolRegistry:
    tools = ToolRegistry()
    tools.register(GetStockQuoteTool(api_key=alpha_vantage_api_key))
    tools.register(GetCryptoPriceTool())
    tools.register(GetTopCryptosTool())
    tools.register(GetForexRateTool())
    tools.register(GetMarketNewsTool(api_key=alpha_vantage_api_key))
    tools.register(GetFearGreedIndexTool())
    tools.register(GetMarketOverviewTool())
    return tools


def build_email_service(settings: Settings) -> EmailService:
    primary = ResendTransport(
        api_key=settings.resend_api_key,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
    )
    secondary = SmtpTransport(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.email_user,
        password=settings.email_password,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
    )
    return EmailService(primary=primary, secondary=secondary, app_url=settings.public_app_url)


def build_runtime(settings: Settings) -> ChatRuntime:
    return ChatRuntime(
        llm=OpenRouterProvider(settings),
        tool_registry=build_tool_registry(settings.alpha_vantage_api_key),
        max_steps=settings.chat_max_steps,
        max_duration_seconds=settings.chat_max_duration_seconds,
    )


def create_app(
    settings: Settings | None = None,
    runtime: ChatRuntime | None = None,
    email_service: EmailService | None = None,
) -> FastAPI:
    """Build the app; collaborators not passed in are constructed at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        resolved = settings
        if runtime is None or email_service is None:
            resolved = resolved or load_settings()
        app.state.runtime = runtime or build_runtime(resolved)
        app.state.email_service = email_service or build_email_service(resolved)
        LOGGER.info("Registered tools: %s", ", ".join(app.state.runtime.tool_registry.names()))
        try:
            yield
        finally:
            await app.state.email_service.close()
            LOGGER.info("finchat shutdown complete")

    app = FastAPI(
        title="finchat",
        description="Streaming financial assistant chat with real-time market data tools",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/chat")
    async def chat(req: ChatRequest, request: Request) -> StreamingResponse:
        turn = request.app.state.runtime.start_turn(req.messages)

        async def generate() -> AsyncIterator[str]:
            try:
                async for event in turn.events():
                    yield f"data: {event.model_dump_json()}\n\n"
                yield "data: [DONE]\n\n"
            finally:
                # Client disconnects close the generator mid-stream.
                turn.cancel()

        return StreamingResponse(
            generate(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    return app


def main() -> None:
    """Run the API with uvicorn."""

    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
