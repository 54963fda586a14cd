from typing import Protocol, runtime_checkable

from analytics_chat.models import RowSet


@runtime_checkable
class TabularExporter(Protocol):
    @property
    def format_name(self) -> str: ...

    @property
    def extension(self) -> str: ...

    @property
    def media_type(self) -> str: ...

    def is_available(self) -> bool: ...

    def export(self, rows: RowSet) -> bytes:
        """Serialize rows; columns come from the first row's keys. Raises on failure."""
        ...


def column_names(rows: RowSet) -> list[str]:
    if not rows:
        return []
    return list(rows[0].keys())
