"""FastAPI app creation, CORS, and routes."""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from toolrelay.channel import ToolChannel
from toolrelay.llm.types import Message
from toolrelay.orchestrator.core import ConversationLoop
from toolrelay.server.models import (
    ErrorResponse,
    QueryRequest,
    QueryResponse,
    ToolCallRequest,
    ToolCallResponse,
    ToolInfoModel,
)

logger = logging.getLogger(__name__)

INVALID_QUERY = "Invalid or missing query parameter"
QUERY_FAILED = "Failed to process query"


def create_app(
    loop: ConversationLoop,
    channel: Optional[ToolChannel] = None,
    cors_origins: Optional[list[str]] = None,
) -> FastAPI:
    """
    Build the API around one conversation loop.

    The loop's registry and model client are shared by all requests; each
    request gets its own message list.
    """
    api = FastAPI(title="toolrelay")
    api.state.loop = loop
    api.state.channel = channel or ToolChannel(loop.registry)

    api.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @api.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
        message = INVALID_QUERY if request.url.path == "/chatbot" else "Invalid request body"
        return JSONResponse(status_code=400, content={"error": message})

    @api.post(
        "/chatbot",
        response_model=QueryResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def chatbot(req: QueryRequest, request: Request):
        if not req.query or not req.query.strip():
            return JSONResponse(status_code=400, content=ErrorResponse(error=INVALID_QUERY).model_dump())
        loop: ConversationLoop = request.app.state.loop
        try:
            answer = await loop.run([Message.user(req.query)])
        except Exception:
            logger.exception("Error processing chatbot query")
            return JSONResponse(status_code=500, content=ErrorResponse(error=QUERY_FAILED).model_dump())
        return QueryResponse(response=answer)

    @api.get("/tools", response_model=list[ToolInfoModel])
    async def list_tools(request: Request):
        channel: ToolChannel = request.app.state.channel
        return [t.to_dict() for t in await channel.list_tools()]

    @api.post("/tools/call", response_model=ToolCallResponse)
    async def call_tool(req: ToolCallRequest, request: Request):
        channel: ToolChannel = request.app.state.channel
        result = await channel.call_tool(req.name, req.arguments)
        return result.to_dict()

    @api.get("/health")
    async def health():
        return {"status": "ok"}

    return api
