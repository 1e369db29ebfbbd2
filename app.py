#!/usr/bin/env python3
"""
API Simulator - local stand-in for a hosted completion API
FastAPI application reproducing rate-limit headers, injected faults and SSE streaming
"""

from datetime import datetime, UTC
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Config, get_config
from simulator.logging_utils import configure_logging, get_logger, log_extra
from simulator.models import ChatCompletionRequest, ResponsesRequest
from simulator.observability import elapsed, metrics_router, record_request, request_timer
from simulator.orchestrator import CHAT, RESPONSES, Result, Simulator, StreamResult
from simulator.streaming import stream_sse

# Initialize logger
logger = get_logger(__name__)


def _to_response(result: Result, request: Request, endpoint: str, start: float) -> Response:
    record_request(endpoint, result.status_code, elapsed(start))

    if isinstance(result, StreamResult):
        body = stream_sse(
            result.events,
            protocol=result.protocol,
            chunk_delay=result.chunk_delay,
            is_disconnected=request.is_disconnected,
        )
        headers = {**result.headers, "Cache-Control": "no-cache"}
        return StreamingResponse(body, media_type="text/event-stream", headers=headers)

    if result.status_code == 204:
        # 204 carries no payload on the wire
        return Response(status_code=204, headers=result.headers, media_type="application/json")

    return JSONResponse(result.body, status_code=result.status_code, headers=result.headers)


def create_app(config: Optional[Config] = None, simulator: Optional[Simulator] = None) -> FastAPI:
    """Build the FastAPI app around one simulator (one quota scope)."""
    config = config or get_config()
    configure_logging(config.LOG_LEVEL)
    simulator = simulator or Simulator(config)

    app = FastAPI(
        title="API Simulator",
        description="Completion API simulator with rate limits, fault injection and streaming",
        version="1.0.0"
    )
    app.state.simulator = simulator
    app.include_router(metrics_router)

    @app.post(config.CHAT_COMPLETIONS_PATH)
    async def chat_completions(payload: ChatCompletionRequest, request: Request):
        """Chat completion, JSON or SSE deltas"""
        start = request_timer()
        result = await simulator.handle_chat(payload)
        return _to_response(result, request, CHAT, start)

    @app.post(config.RESPONSES_PATH)
    async def responses(payload: ResponsesRequest, request: Request):
        """Responses API, JSON or SSE lifecycle events"""
        start = request_timer()
        result = await simulator.handle_responses(payload)
        return _to_response(result, request, RESPONSES, start)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {"ok": True, "timestamp": datetime.now(UTC).isoformat()}

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.warning("Path not found", extra=log_extra(path=request.url.path))
            return PlainTextResponse("Not Found", status_code=404)
        return await http_exception_handler(request, exc)

    @app.on_event("startup")
    async def startup_event():
        """Load the tokenizer vocabulary and log the active simulation settings"""
        simulator.tokenizer.warm_up()
        logger.info(
            "API simulator ready",
            extra=log_extra(
                chat_path=config.CHAT_COMPLETIONS_PATH,
                responses_path=config.RESPONSES_PATH,
                response_length=str(config.RESPONSE_LENGTH),
                error_code=config.ERROR_CODE,
                error_rate=config.ERROR_RATE,
                slowdown=str(config.SLOWDOWN),
                rpm=config.RPM,
                tpm=config.TPM,
            ),
        )

    return app


app = create_app()

if __name__ == "__main__":
    config = get_config()
    logger.info(f"API simulator running on http://{config.ADDRESS}:{config.PORT}")
    uvicorn.run(
        app,
        host=config.ADDRESS,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower()
    )
