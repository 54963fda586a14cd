import csv
import io

from analytics_chat.export.exporter import column_names
from analytics_chat.models import RowSet


class DelimitedTextExporter:
    def __init__(self, delimiter: str = ",", encoding: str = "utf-8"):
        self._delimiter = delimiter
        self._encoding = encoding

    @property
    def format_name(self) -> str:
        return "csv"

    @property
    def extension(self) -> str:
        return "csv"

    @property
    def media_type(self) -> str:
        return "text/csv"

    def is_available(self) -> bool:
        return True

    def export(self, rows: RowSet) -> bytes:
        if not rows:
            return b""

        columns = column_names(rows)
        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter=self._delimiter,
            quotechar='"',
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\n",
        )
        writer.writerow(columns)
        for row in rows:
            writer.writerow(["" if row.get(column) is None else row.get(column) for column in columns])

        text = buffer.getvalue()
        if text.endswith("\n"):
            text = text[:-1]
        return text.encode(self._encoding)


def parse_delimited_text(content: bytes | str, delimiter: str = ",", encoding: str = "utf-8") -> list[dict[str, str]]:
    """Read delimited text back into rows keyed by the header line (values stay strings)."""
    text = content.decode(encoding) if isinstance(content, bytes) else content
    if not text:
        return []
    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    return [dict(row) for row in reader]
