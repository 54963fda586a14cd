from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from uuid import uuid4

from loguru import logger

from analytics_chat.errors import ErrorEnvelope, ErrorKind, error_message_for, explanation_for
from analytics_chat.gateway import GatewayResult, TransportGateway
from analytics_chat.identity import UserIdentity
from analytics_chat.models import Failed, Message, Rows, normalize_result_payload

QUERY_PATH = "/api/chat/query"
DEFAULT_FALLBACK_CONTENT = "I found some results for your query."


class QueryDispatcher:
    """Sends one question to the backend and turns the outcome into an assistant message.

    ``ask`` always returns a message; transport and backend failures are folded
    into the message's ``error`` fields. After every turn the optional
    ``on_turn_completed`` hook is scheduled in the background so the session
    list can pick up new counts without delaying the reply.
    """

    def __init__(
        self,
        gateway: TransportGateway,
        *,
        on_turn_completed: Callable[[UserIdentity], Awaitable[None]] | None = None,
    ) -> None:
        self._gateway = gateway
        self._on_turn_completed = on_turn_completed
        self._background_tasks: set[asyncio.Task] = set()

    async def ask(
        self,
        question: str,
        identity: UserIdentity,
        *,
        session_id: str | None = None,
        fallback_content: str = DEFAULT_FALLBACK_CONTENT,
    ) -> Message:
        body: dict = {"question": question, "user_id": identity.user_id}
        if session_id:
            body["session_id"] = session_id

        try:
            result = await self._gateway.forward(QUERY_PATH, "POST", body=body)
            message = self._interpret(result, fallback_content)
        except Exception as ex:
            logger.error(f"Unhandled error while dispatching question: {ex}")
            message = self._error_message(ErrorEnvelope.unknown(str(ex) or type(ex).__name__))
        finally:
            self._schedule_turn_completed(identity)

        message.question = question
        return message

    async def drain(self) -> None:
        """Wait for background refreshes still in flight (used on shutdown and in tests)."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def _interpret(self, result: GatewayResult, fallback_content: str) -> Message:
        if not result.ok:
            return self._error_message(result.error)

        data = result.data
        if not isinstance(data, dict):
            logger.error(f"Unexpected query response shape: {type(data).__name__}")
            return self._error_message(ErrorEnvelope.unknown("Invalid response from the analytics service"))

        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        query_record_id = metadata.get("query_id")
        if query_record_id is not None:
            query_record_id = str(query_record_id)

        if data.get("success") is False and data.get("error"):
            error = str(data["error"])
            return Message(
                id=uuid4().hex,
                role="assistant",
                content=data.get("explanation") or error_message_for(error, result.status_code),
                error=error,
                error_kind=ErrorKind.UNKNOWN,
                http_status=result.status_code,
                query_record_id=query_record_id,
            )

        payload = normalize_result_payload(data.get("results"))
        rows = payload.rows if isinstance(payload, Rows) else None
        error = data.get("error") or (payload.error if isinstance(payload, Failed) else None)
        return Message(
            id=uuid4().hex,
            role="assistant",
            content=data.get("explanation") or data.get("response") or fallback_content,
            generated_query_text=data.get("sql_query"),
            rows=rows,
            error=str(error) if error else None,
            query_record_id=query_record_id,
            result_row_count=len(rows) if rows is not None else None,
        )

    def _error_message(self, error: ErrorEnvelope) -> Message:
        return Message(
            id=uuid4().hex,
            role="assistant",
            content=explanation_for(error.kind),
            error=error.message,
            error_kind=error.kind,
            http_status=error.http_status,
        )

    def _schedule_turn_completed(self, identity: UserIdentity) -> None:
        if self._on_turn_completed is None:
            return
        task = asyncio.create_task(self._run_turn_completed(identity))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _run_turn_completed(self, identity: UserIdentity) -> None:
        try:
            await self._on_turn_completed(identity)
        except Exception as ex:
            logger.warning(f"Post-query session refresh failed: {ex}")
