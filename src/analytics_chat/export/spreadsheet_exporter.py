import importlib.util
import io

from analytics_chat.export.exporter import column_names
from analytics_chat.models import RowSet

_WIDTH_SAMPLE_ROWS = 100


class SpreadsheetExporter:
    """Single-sheet workbook export. openpyxl is imported on first use, not at start-up."""

    def __init__(self, sheet_name: str = "Results"):
        self._sheet_name = sheet_name

    @property
    def format_name(self) -> str:
        return "xlsx"

    @property
    def extension(self) -> str:
        return "xlsx"

    @property
    def media_type(self) -> str:
        return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    def is_available(self) -> bool:
        return importlib.util.find_spec("openpyxl") is not None

    def export(self, rows: RowSet) -> bytes:
        from openpyxl import Workbook
        from openpyxl.utils import get_column_letter

        columns = column_names(rows)
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = self._sheet_name

        sheet.append(columns)
        for row in rows:
            sheet.append([row.get(column) for column in columns])

        for index, width in enumerate(column_widths(rows), start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()


def column_widths(rows: RowSet) -> list[int]:
    """Width per column: the longer of the header and the first rows' stringified cells."""
    sample = rows[:_WIDTH_SAMPLE_ROWS]
    widths: list[int] = []
    for column in column_names(rows):
        cell_lengths = [len("" if row.get(column) is None else str(row.get(column))) for row in sample]
        widths.append(max([len(column), *cell_lengths]))
    return widths
