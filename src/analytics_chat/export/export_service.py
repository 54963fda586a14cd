from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from analytics_chat.errors import ErrorEnvelope, FullResultDownloadError
from analytics_chat.export.delimited_exporter import DelimitedTextExporter
from analytics_chat.export.exporter import TabularExporter
from analytics_chat.export.spreadsheet_exporter import SpreadsheetExporter
from analytics_chat.gateway import TransportGateway
from analytics_chat.identity import UserIdentity
from analytics_chat.models import RowSet

QUERY_PATH = "/api/chat/query"


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    filename: str
    media_type: str
    format_name: str
    fell_back: bool = False


@dataclass(frozen=True)
class FullResultDownload:
    content: bytes
    filename: str
    media_type: str = "text/csv"


@dataclass(frozen=True)
class ExportPassThrough:
    """A 2xx export reply that carried no CSV text; returned to HTTP callers as-is."""

    data: Any


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def export_basename(question: str | None = None, query_record_id: str | None = None) -> str:
    if not question:
        return f"query-results-{_epoch_millis()}"
    slug = re.sub(r"[^a-zA-Z0-9]", "-", question[:30])
    return f"query-{query_record_id or _epoch_millis()}-{slug}"


def full_result_filename() -> str:
    return f"query-results-{_epoch_millis()}.csv"


class ExportService:
    """Exports in-memory row sets and drives the full, unpaged result download.

    The in-memory export only covers the rows held by the message (which may be
    a first page); ``download_full_result`` asks the backend to regenerate the
    complete result instead.
    """

    def __init__(
        self,
        gateway: TransportGateway,
        *,
        delimited: TabularExporter | None = None,
        spreadsheet: TabularExporter | None = None,
    ) -> None:
        self._gateway = gateway
        self._delimited = delimited or DelimitedTextExporter()
        self._spreadsheet = spreadsheet or SpreadsheetExporter()

    def to_delimited_text(self, rows: RowSet) -> bytes:
        return self._delimited.export(rows)

    def to_spreadsheet(self, rows: RowSet) -> bytes:
        return self._export_with_fallback(rows, self._spreadsheet)[0]

    def export(self, rows: RowSet, format_name: str, base_name: str | None = None) -> ExportFile:
        fmt = format_name.strip().lower()
        if fmt in ("xlsx", "excel", "spreadsheet"):
            exporter = self._spreadsheet
        elif fmt in ("csv", "delimited"):
            exporter = self._delimited
        else:
            raise ValueError(f"Unknown export format: {format_name!r}. Supported: 'csv', 'xlsx'")

        content, used = self._export_with_fallback(rows, exporter)
        stem = base_name or export_basename()
        return ExportFile(
            content=content,
            filename=f"{stem}.{used.extension}",
            media_type=used.media_type,
            format_name=used.format_name,
            fell_back=used is not exporter,
        )

    def _export_with_fallback(self, rows: RowSet, exporter: TabularExporter) -> tuple[bytes, TabularExporter]:
        if exporter is self._delimited:
            return self._delimited.export(rows), self._delimited
        try:
            if not exporter.is_available():
                raise RuntimeError(f"{exporter.format_name} export is not available")
            return exporter.export(rows), exporter
        except Exception as ex:
            logger.error(f"Failed to export to {exporter.format_name}: {ex}")
            return self._delimited.export(rows), self._delimited

    async def request_export(
        self,
        question: str,
        session_id: str | None,
        identity: UserIdentity,
        *,
        format_name: str = "csv",
    ) -> FullResultDownload | ExportPassThrough:
        """Ask the backend to regenerate the result in ``format_name``.

        A CSV reply (plain text, or JSON whose ``results`` is a string) becomes a
        ``FullResultDownload``. Any other 2xx JSON reply comes back unchanged as
        an ``ExportPassThrough``. Transport failures and malformed JSON raise
        ``FullResultDownloadError``.
        """
        if not (question or "").strip():
            raise FullResultDownloadError(ErrorEnvelope.validation("Question is required"))

        body: dict = {
            "question": question,
            "format": format_name,
            "include_explanation": False,
            "execute_query": True,
        }
        if identity.user_id:
            body["user_id"] = identity.user_id
        if session_id:
            body["session_id"] = session_id

        result = await self._gateway.forward(QUERY_PATH, "POST", body=body, raw=True)
        if not result.ok:
            logger.error(f"Export request failed: {result.error.message}")
            raise FullResultDownloadError(result.error)

        content = result.content or b""
        wants_csv = format_name.lower() == "csv"
        if "json" not in result.content_type.lower():
            if wants_csv:
                return self._download(content)
            logger.error(f"Export request for {format_name} returned {result.content_type or 'no content-type'}")
            raise FullResultDownloadError(ErrorEnvelope.unknown("Invalid response from the analytics service"))

        try:
            data = json.loads(content)
        except ValueError as ex:
            logger.error(f"Export request returned malformed JSON: {ex}")
            raise FullResultDownloadError(ErrorEnvelope.unknown("Invalid response from the analytics service"))

        results = data.get("results") if isinstance(data, dict) else None
        if wants_csv and isinstance(results, str):
            return self._download(results.encode("utf-8"))
        return ExportPassThrough(data)

    async def download_full_result(
        self,
        question: str,
        session_id: str | None,
        identity: UserIdentity,
    ) -> FullResultDownload:
        """Like ``request_export`` for CSV, but anything other than CSV text is an error."""
        reply = await self.request_export(question, session_id, identity)
        if isinstance(reply, FullResultDownload):
            return reply

        data = reply.data
        if isinstance(data, dict) and data.get("success") is False:
            error = str(data.get("error") or "Failed to export query results")
            logger.error(f"Backend refused full result export: {error}")
            raise FullResultDownloadError(ErrorEnvelope.unknown(error))
        results = data.get("results") if isinstance(data, dict) else data
        logger.error(f"Full result export returned {type(results).__name__} instead of delimited text")
        raise FullResultDownloadError(ErrorEnvelope.unknown("The analytics service did not return CSV data"))

    def _download(self, content: bytes) -> FullResultDownload:
        download = FullResultDownload(content=content, filename=full_result_filename())
        logger.info(f"Downloaded full result ({len(content):,} bytes) as {download.filename}")
        return download
