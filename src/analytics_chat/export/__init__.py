from analytics_chat.export.delimited_exporter import DelimitedTextExporter, parse_delimited_text
from analytics_chat.export.export_service import (
    ExportFile,
    ExportPassThrough,
    ExportService,
    FullResultDownload,
    export_basename,
    full_result_filename,
)
from analytics_chat.export.exporter import TabularExporter
from analytics_chat.export.spreadsheet_exporter import SpreadsheetExporter

__all__ = [
    "DelimitedTextExporter",
    "ExportFile",
    "ExportPassThrough",
    "ExportService",
    "FullResultDownload",
    "SpreadsheetExporter",
    "TabularExporter",
    "export_basename",
    "full_result_filename",
    "parse_delimited_text",
]
