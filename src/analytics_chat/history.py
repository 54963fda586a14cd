from __future__ import annotations

from loguru import logger

from analytics_chat.gateway import TransportGateway
from analytics_chat.models import HISTORICAL, Message, QueryRecord

DEFAULT_HISTORY_LIMIT = 50
HISTORICAL_FALLBACK_CONTENT = "Query executed successfully."


def expand_record(record: QueryRecord) -> tuple[Message, Message]:
    """Turn one persisted query into its user/assistant message pair."""
    user_message = Message(
        id=f"user-{record.id}",
        role="user",
        content=record.question,
        timestamp=record.created_at,
        query_record_id=record.id,
        is_historical=True,
    )
    assistant_message = Message(
        id=f"assistant-{record.id}",
        role="assistant",
        content=record.explanation or HISTORICAL_FALLBACK_CONTENT,
        timestamp=record.created_at,
        generated_query_text=record.generated_query_text,
        rows=HISTORICAL if record.result_row_count > 0 else None,
        error=record.execution_error,
        query_record_id=record.id,
        result_row_count=record.result_row_count,
        is_historical=True,
        question=record.question,
    )
    return user_message, assistant_message


class HistoryReconciler:
    def __init__(self, gateway: TransportGateway, *, limit: int = DEFAULT_HISTORY_LIMIT):
        self._gateway = gateway
        self._limit = max(1, limit)

    async def load_history(self, session_id: str, limit: int | None = None) -> list[Message]:
        result = await self._gateway.forward(
            f"/api/chat/history/{session_id}",
            "GET",
            query_params={"limit": limit or self._limit},
        )
        if not result.ok:
            logger.error(f"Failed to load session history for {session_id}: {result.error.message}")
            return []

        raw_history = result.data.get("history") if isinstance(result.data, dict) else None
        if not isinstance(raw_history, list):
            logger.error(f"History response for {session_id} had no history list")
            return []

        pairs: list[tuple[Message, Message]] = []
        for item in raw_history:
            try:
                record = QueryRecord.from_api(item)
            except (KeyError, TypeError, ValueError, AttributeError) as ex:
                logger.warning(f"Skipping malformed history record in {session_id}: {ex}")
                continue
            pairs.append(expand_record(record))

        # Backend returns newest first. Reverse whole pairs, not single messages,
        # so each question stays ahead of its own answer.
        messages = [message for pair in reversed(pairs) for message in pair]
        logger.info(f"Loaded {len(pairs)} historical queries for session {session_id}")
        return messages
