from __future__ import annotations

import re
from datetime import datetime

from analytics_chat.models import Message, RowSet
from analytics_chat.rendering.markdown import (
    Block,
    Bold,
    Code,
    Inline,
    Italic,
    ListBlock,
    Paragraph,
    Spacer,
    parse_markdown,
)

_BOLD = "\033[1m"
_ITALIC = "\033[3m"
_CODE = "\033[36m"
_DIM = "\033[2m"
_ERROR = "\033[31m"
_RESET = "\033[0m"

_CURRENCY_HINTS = ("amount", "spend", "total")
_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_MAX_CELL_WIDTH = 30


def humanize_column(column: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), column.replace("_", " "))


def format_cell(column: str, value: object) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if any(hint in column.lower() for hint in _CURRENCY_HINTS):
            return f"${value:,.0f}"
        return str(value)
    if isinstance(value, str) and _DATE_PREFIX.match(value):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return value
        return f"{parsed:%b} {parsed.day}, {parsed.year}"
    return str(value)


def _truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


class TerminalRenderer:
    def __init__(self, *, line_prefix: str = "", ansi: bool = True, display_row_limit: int = 10):
        self._line_prefix = line_prefix
        self._ansi = ansi
        self._display_row_limit = max(1, display_row_limit)

    def _style(self, text: str, code: str) -> str:
        if not self._ansi:
            return text
        return f"{code}{text}{_RESET}"

    def render_inlines(self, inlines: list[Inline]) -> str:
        parts: list[str] = []
        for node in inlines:
            if isinstance(node, Bold):
                parts.append(self._style(node.text, _BOLD))
            elif isinstance(node, Italic):
                parts.append(self._style(node.text, _ITALIC))
            elif isinstance(node, Code):
                parts.append(self._style(node.text, _CODE) if self._ansi else f"`{node.text}`")
            else:
                parts.append(node.text)
        return "".join(parts)

    def render_blocks(self, blocks: list[Block]) -> list[str]:
        lines: list[str] = []
        for block in blocks:
            if isinstance(block, Paragraph):
                lines.append(self.render_inlines(block.inlines))
            elif isinstance(block, ListBlock):
                for item in block.items:
                    marker = item.number if block.ordered and item.number else "•"
                    lines.append(f"  {marker} {self.render_inlines(item.inlines)}")
            elif isinstance(block, Spacer):
                lines.append("")
        return lines

    def render_markdown(self, text: str) -> list[str]:
        return self.render_blocks(parse_markdown(text))

    def render_message(self, message: Message, *, number: int | None = None) -> list[str]:
        label = f"[{number}] " if number is not None else ""
        if message.role == "user":
            return [f"you> {label}{message.content}"]

        body = self.render_markdown(message.content) or [""]
        lines = [f"{self._line_prefix}{label}{body[0]}"]
        lines.extend(f"{self._line_prefix}{line}" if line else "" for line in body[1:])

        if message.generated_query_text:
            lines.append(f"{self._line_prefix}{self._style('SQL:', _DIM)} {message.generated_query_text}")
        if message.error:
            lines.append(f"{self._line_prefix}{self._style('Error: ' + message.error, _ERROR)}")
        if message.is_historical_result:
            lines.extend(self.render_historical(message))
        elif isinstance(message.rows, list):
            lines.extend(self.render_table(message.rows))
        return lines

    def render_historical(self, message: Message) -> list[str]:
        count = message.result_row_count or 0
        return [
            f"{self._line_prefix}Historical query results ({count} rows returned)",
            f"{self._line_prefix}This query was executed previously and returned {count} rows. "
            "Results are not stored for historical queries; use /rerun to see current results.",
        ]

    def render_table(self, rows: RowSet) -> list[str]:
        if not rows or not rows[0]:
            return [f"{self._line_prefix}No results found."]

        columns = list(rows[0].keys())
        shown = rows[: self._display_row_limit]
        headers = [humanize_column(c) for c in columns]
        cells = [[_truncate(format_cell(c, row.get(c)), _MAX_CELL_WIDTH) for c in columns] for row in shown]
        widths = [max(len(headers[i]), *(len(r[i]) for r in cells)) for i in range(len(columns))]

        def fmt_row(values: list[str]) -> str:
            return " | ".join(v.ljust(widths[i]) for i, v in enumerate(values)).rstrip()

        lines = [f"{self._line_prefix}{len(rows)} rows", f"{self._line_prefix}{fmt_row(headers)}"]
        lines.append(f"{self._line_prefix}{'-+-'.join('-' * w for w in widths)}")
        lines.extend(f"{self._line_prefix}{fmt_row(r)}" for r in cells)
        if len(rows) > self._display_row_limit:
            lines.append(f"{self._line_prefix}Showing first {self._display_row_limit} of {len(rows)} results")
        return lines
