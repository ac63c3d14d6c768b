"""FastAPI application exposing the agent team over SSE."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from researchAgent.agents.stream import RunContext
from researchAgent.config import Settings, get_settings
from researchAgent.runtime import Runtime, build_runtime
from researchAgent.server.adapters import StreamAdapter, ChatCompletionsAdapter, ThreadChatAdapter
from researchAgent.server.models import ChatCompletionsRequest, ChatStreamRequest
from researchAgent.server.sse import format_sse_json
from researchAgent.utils.error_handler import ResearchAgentError

LOGGER = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}

SETUP_MESSAGE = (
    "No model is configured, so the assistant cannot answer yet. Export the "
    "credentials in your shell, for example:\n"
    "export OPENAI_API_KEY=<your key> OPENAI_MODEL=gpt-4o\n"
    "or, for Ark:\n"
    "export MODEL_TYPE=ark ARK_API_KEY=<your key> ARK_MODEL=ep-xxx "
    "ARK_BASE_URL=https://ark.cn-beijing.volces.com/api/v3\n"
    "then restart the backend."
)

router = APIRouter()


def _runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _sse_response(adapter: StreamAdapter, ctx: RunContext) -> StreamingResponse:
    async def body() -> AsyncIterator[str]:
        try:
            async for frame in adapter.frames():
                yield frame
        finally:
            # Client gone or stream done: stop the whole agent tree
            ctx.cancel()

    return StreamingResponse(body(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/v1/chat/completions")
async def chat_completions(body: ChatCompletionsRequest, request: Request):
    query = body.last_user_query()
    if not query:
        return _bad_request("no user message found")

    try:
        runner = _runtime(request).build_runner()
    except ResearchAgentError as e:
        LOGGER.error(f"Failed to build agents: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    ctx = runner.context()
    return _sse_response(ChatCompletionsAdapter(runner.query(ctx, query)), ctx)


@router.post("/api/chat/stream")
async def chat_stream(body: ChatStreamRequest, request: Request):
    runtime = _runtime(request)
    query = body.last_user_query()
    if not query and not body.interrupt_feedback:
        return _bad_request("no user message found")

    thread_id = body.thread_id or f"thread_{time.time_ns()}"

    if not runtime.has_credentials():
        frame = format_sse_json("message_chunk", {
            "id": f"run-coordinator-{time.time_ns()}",
            "thread_id": thread_id,
            "agent": "coordinator",
            "role": "assistant",
            "content": SETUP_MESSAGE,
        })
        return StreamingResponse(iter([frame]), media_type="text/event-stream", headers=SSE_HEADERS)

    try:
        runner = runtime.build_runner()
    except ResearchAgentError as e:
        LOGGER.error(f"Failed to build agents: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    ctx = runner.context(thread_id)
    if body.interrupt_feedback and runner.load_suspended(thread_id) is not None:
        events = runner.resume(ctx, body.interrupt_feedback, query)
    elif query:
        events = runner.query(ctx, query)
    else:
        return _bad_request(f"no interrupted run for thread {thread_id}")

    return _sse_response(ThreadChatAdapter(events, thread_id), ctx)


@router.get("/api/config")
async def config(request: Request):
    models = _runtime(request).settings.models
    return {
        "rag": {"provider": ""},
        "models": {"basic": models.basic_model_names(), "reasoning": []},
    }


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _bad_request(str(exc.errors()))


def create_app(runtime: Optional[Runtime] = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        runtime: Prebuilt runtime (tests); when omitted it is built at startup
            and shut down with the app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = runtime is None
        app.state.runtime = runtime if runtime is not None else await build_runtime()
        try:
            yield
        finally:
            if owned:
                await app.state.runtime.shutdown()

    app = FastAPI(title="researchAgent", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.include_router(router)
    return app


def run_server(settings: Optional[Settings] = None) -> None:
    """Serve the app with uvicorn (blocking)."""
    settings = settings or get_settings()
    LOGGER.info(f"Starting server on http://{settings.server.host}:{settings.server.port}")
    uvicorn.run(
        "researchAgent.server.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        log_level=settings.observability.log_level.lower(),
    )


__all__ = ["create_app", "run_server", "router", "SETUP_MESSAGE"]
