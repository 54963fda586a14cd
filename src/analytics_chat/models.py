from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from analytics_chat.errors import ErrorKind

Row = dict[str, Any]
RowSet = list[Row]


class HistoricalMarker(Enum):
    """Placeholder for rows that existed when a past query ran but are not retained."""

    HISTORICAL = "historical"


HISTORICAL = HistoricalMarker.HISTORICAL


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return utc_now()
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return utc_now()


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


@dataclass
class Session:
    id: str
    display_name: str
    is_active: bool
    created_at: datetime
    last_used_at: datetime
    query_count: int | None = None

    @classmethod
    def from_api(cls, data: dict) -> Session:
        created_at = parse_timestamp(_pick(data, "createdAt", "created_at"))
        query_count = _pick(data, "queryCount", "query_count")
        return cls(
            id=str(data["id"]),
            display_name=str(_pick(data, "sessionName", "title", "displayName", "session_name", default="")),
            is_active=bool(_pick(data, "isActive", "is_active", default=False)),
            created_at=created_at,
            last_used_at=parse_timestamp(_pick(data, "lastUsedAt", "last_used_at", default=created_at)),
            query_count=int(query_count) if query_count is not None else None,
        )


@dataclass(frozen=True)
class QueryRecord:
    id: str
    session_id: str | None
    question: str
    generated_query_text: str | None
    explanation: str | None
    result_row_count: int
    execution_error: str | None
    created_at: datetime

    @classmethod
    def from_api(cls, data: dict) -> QueryRecord:
        return cls(
            id=str(data["id"]),
            session_id=_pick(data, "sessionId", "session_id"),
            question=str(_pick(data, "question", default="")),
            generated_query_text=_pick(data, "generatedSql", "generated_sql", "sqlQuery", "sql_query"),
            explanation=_pick(data, "explanation"),
            result_row_count=int(_pick(data, "resultRowCount", "result_row_count", default=0)),
            execution_error=_pick(data, "executionError", "execution_error"),
            created_at=parse_timestamp(_pick(data, "createdAt", "created_at")),
        )


@dataclass
class Message:
    id: str
    role: str
    content: str
    timestamp: datetime = field(default_factory=utc_now)
    generated_query_text: str | None = None
    rows: RowSet | HistoricalMarker | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    http_status: int | None = None
    query_record_id: str | None = None
    result_row_count: int | None = None
    is_historical: bool = False
    question: str | None = None

    def __post_init__(self) -> None:
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Unknown message role: {self.role!r}")
        if self.rows is not None and not isinstance(self.rows, (list, HistoricalMarker)):
            raise TypeError(f"rows must be a row set or the historical marker, got {type(self.rows).__name__}")

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(id=uuid4().hex, role="user", content=content)

    @property
    def has_rows(self) -> bool:
        return isinstance(self.rows, list) and len(self.rows) > 0

    @property
    def is_historical_result(self) -> bool:
        return self.rows is HISTORICAL


@dataclass(frozen=True)
class Rows:
    rows: RowSet


@dataclass(frozen=True)
class Failed:
    error: str


@dataclass(frozen=True)
class Absent:
    pass


ResultPayload = Rows | Failed | Absent


def _as_row_set(value: object) -> RowSet | None:
    if not isinstance(value, list):
        return None
    return [row for row in value if isinstance(row, dict)]


def normalize_result_payload(raw: object) -> ResultPayload:
    """Collapse the backend's ``results`` field into one tagged shape.

    The backend sends either a bare list of rows or a ``{success, data, error}``
    envelope; CSV exports send a string, which carries no rows.
    """
    if isinstance(raw, list):
        return Rows(_as_row_set(raw) or [])
    if not isinstance(raw, dict):
        return Absent()
    success = raw.get("success")
    if success is False:
        return Failed(str(raw.get("error") or "Query execution failed"))
    if success:
        rows = _as_row_set(raw.get("data"))
        if rows is not None:
            return Rows(rows)
    return Absent()
