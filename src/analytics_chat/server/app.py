"""
HTTP gateway in front of the analytics backend.

Exposes the chat, session, history and export endpoints with a fixed status
vocabulary (200/400/408/503/500) regardless of what the backend answered.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import BaseModel

from analytics_chat.errors import (
    ErrorEnvelope,
    ErrorKind,
    FullResultDownloadError,
    SERVICE_UNAVAILABLE_MESSAGE,
    explanation_for,
    http_status_for,
)
from analytics_chat.export import ExportPassThrough, ExportService
from analytics_chat.gateway import TransportGateway
from analytics_chat.identity import UserIdentity

QUERY_PATH = "/api/chat/query"
SESSIONS_PATH = "/api/chat/sessions"


class ExportRequest(BaseModel):
    question: str | None = None
    format: str = "csv"
    session_id: str | None = None
    user_id: str | None = None


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _query_error_body(error: ErrorEnvelope) -> dict:
    if error.kind == ErrorKind.SERVICE_UNAVAILABLE:
        title = SERVICE_UNAVAILABLE_MESSAGE
    elif error.kind == ErrorKind.TIMEOUT:
        title = "Request timeout"
    elif error.kind == ErrorKind.NETWORK_UNAVAILABLE:
        title = "Service unavailable"
    elif error.kind == ErrorKind.VALIDATION:
        title = error.message
    else:
        title = "Failed to process your question"
    return {
        "success": False,
        "error": title,
        "explanation": explanation_for(error.kind),
        "timestamp": _timestamp(),
    }


def _export_error_body(error: ErrorEnvelope) -> dict:
    if error.kind == ErrorKind.VALIDATION:
        return {"error": error.message}
    if error.kind == ErrorKind.SERVICE_UNAVAILABLE:
        return {
            "error": SERVICE_UNAVAILABLE_MESSAGE,
            "message": "Cannot export data while the AI service is down. Please try again later.",
        }
    if error.kind == ErrorKind.TIMEOUT:
        return {
            "error": "Export timeout",
            "message": "The export request is taking too long. Please try a simpler query.",
        }
    if error.kind == ErrorKind.NETWORK_UNAVAILABLE:
        return {
            "error": "Service unavailable",
            "message": "Unable to connect to the analytics service for export.",
        }
    return {"error": "Failed to export query results", "message": error.message}


async def _read_json(request: Request) -> dict | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def create_app(gateway: TransportGateway, export_service: ExportService | None = None) -> FastAPI:
    exports = export_service or ExportService(gateway)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Gateway forwarding to {gateway.base_url} (timeout {gateway.timeout_seconds:g}s)")
        yield
        await gateway.aclose()

    app = FastAPI(
        title="Analytics Chat Gateway",
        description="Bounded-time proxy for the conversational analytics backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.gateway = gateway

    @app.post(QUERY_PATH)
    async def chat_query(request: Request):
        body = await _read_json(request)
        if body is None:
            error = ErrorEnvelope.validation("Request body must be a JSON object")
            return JSONResponse(_query_error_body(error), status_code=http_status_for(error))

        result = await gateway.forward(QUERY_PATH, "POST", body=body)
        if not result.ok:
            logger.error(f"Error processing chat query: {result.error.message}")
            return JSONResponse(_query_error_body(result.error), status_code=http_status_for(result.error))
        return JSONResponse(result.data)

    @app.post("/api/chat/export")
    async def chat_export(payload: ExportRequest):
        try:
            reply = await exports.request_export(
                payload.question or "",
                payload.session_id,
                UserIdentity(payload.user_id or ""),
                format_name=payload.format,
            )
        except FullResultDownloadError as ex:
            logger.error(f"Error exporting query results: {ex.error.message}")
            return JSONResponse(_export_error_body(ex.error), status_code=http_status_for(ex.error))

        if isinstance(reply, ExportPassThrough):
            return JSONResponse(reply.data)
        return Response(
            content=reply.content,
            media_type=reply.media_type,
            headers={"Content-Disposition": f'attachment; filename="{reply.filename}"'},
        )

    @app.post(SESSIONS_PATH)
    async def create_session(request: Request):
        body = await _read_json(request)
        result = await gateway.forward(SESSIONS_PATH, "POST", body=body or {})
        if not result.ok:
            logger.error(f"Error creating chat session: {result.error.message}")
            return JSONResponse(
                {
                    "error": "Failed to create chat session",
                    "message": "Unable to create a new chat session. Please try again.",
                },
                status_code=http_status_for(result.error),
            )
        return JSONResponse(result.data)

    @app.get(SESSIONS_PATH)
    async def list_sessions(request: Request):
        result = await gateway.forward(SESSIONS_PATH, "GET", query_params=dict(request.query_params))
        if not result.ok:
            logger.error(f"Error fetching chat sessions: {result.error.message}")
            return JSONResponse(
                {"error": "Failed to fetch chat sessions", "sessions": []},
                status_code=http_status_for(result.error),
            )
        return JSONResponse(result.data)

    @app.get(SESSIONS_PATH + "/{session_id}/history")
    async def session_history(session_id: str, request: Request):
        result = await gateway.forward(
            f"/api/chat/history/{session_id}",
            "GET",
            query_params=dict(request.query_params),
        )
        if not result.ok:
            logger.error(f"Error fetching session history: {result.error.message}")
            return JSONResponse(
                {"error": "Failed to fetch session history", "history": []},
                status_code=http_status_for(result.error),
            )
        return JSONResponse(result.data)

    async def _pass_through(path: str, request: Request, failure_body: dict) -> JSONResponse:
        result = await gateway.forward(path, "GET", query_params=dict(request.query_params))
        if not result.ok:
            logger.error(f"Error fetching {path}: {result.error.message}")
            return JSONResponse(failure_body, status_code=http_status_for(result.error))
        return JSONResponse(result.data)

    @app.get("/api/stats")
    async def stats(request: Request):
        return await _pass_through("/api/stats", request, {"error": "Failed to fetch statistics"})

    @app.get("/api/category-spend")
    async def category_spend(request: Request):
        return await _pass_through(
            "/api/category-spend", request, {"error": "Failed to fetch category spend data"}
        )

    @app.get("/api/vendor-analytics/{report:path}")
    async def vendor_analytics(report: str, request: Request):
        return await _pass_through(
            f"/api/vendor-analytics/{report}",
            request,
            {"success": False, "error": f"Failed to fetch {report.replace('-', ' ')} data", "data": []},
        )

    return app
