import unittest

from analytics_chat.models import HISTORICAL, Message
from analytics_chat.rendering import TerminalRenderer
from analytics_chat.rendering.terminal_renderer import format_cell, humanize_column


def _assistant(**kwargs) -> Message:
    return Message(id="a1", role="assistant", **kwargs)


class CellFormattingTests(unittest.TestCase):
    def test_currency_columns(self) -> None:
        self.assertEqual("$1,234,000", format_cell("total_spend", 1234000))
        self.assertEqual("$1,235", format_cell("Amount", 1234.6))

    def test_other_numbers_are_plain(self) -> None:
        self.assertEqual("42", format_cell("vendor_count", 42))

    def test_dates_are_readable(self) -> None:
        self.assertEqual("Jan 15, 2024", format_cell("created_at", "2024-01-15"))
        self.assertEqual("Mar 3, 2024", format_cell("created_at", "2024-03-03T10:30:00"))

    def test_missing_values_render_as_dash(self) -> None:
        self.assertEqual("-", format_cell("vendor", None))
        self.assertEqual("-", format_cell("vendor", ""))

    def test_humanize_column(self) -> None:
        self.assertEqual("Total Spend", humanize_column("total_spend"))


class TerminalRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.renderer = TerminalRenderer(line_prefix="> ", ansi=False, display_row_limit=10)

    def test_user_message_with_number(self) -> None:
        lines = self.renderer.render_message(Message.user("Top vendors?"), number=3)

        self.assertEqual(["you> [3] Top vendors?"], lines)

    def test_assistant_message_with_sql_and_table(self) -> None:
        message = _assistant(
            content="Total spend is **$1,234,000**",
            generated_query_text="SELECT SUM(amount) AS total FROM spend",
            rows=[{"total": 1234000}],
        )

        lines = self.renderer.render_message(message, number=2)

        self.assertEqual("> [2] Total spend is $1,234,000", lines[0])
        self.assertIn("> SQL: SELECT SUM(amount) AS total FROM spend", lines)
        self.assertIn("> 1 rows", lines)
        self.assertIn("> Total", lines)
        self.assertIn("> $1,234,000", lines)

    def test_error_line(self) -> None:
        message = _assistant(content="Something went wrong", error="AI service is currently unavailable")

        lines = self.renderer.render_message(message)

        self.assertIn("> Error: AI service is currently unavailable", lines)

    def test_historical_result_shows_notice_not_table(self) -> None:
        message = _assistant(content="Earlier answer", rows=HISTORICAL, result_row_count=7, is_historical=True)

        lines = self.renderer.render_message(message)

        self.assertIn("> Historical query results (7 rows returned)", lines)
        self.assertFalse(any("No results found." in line for line in lines))

    def test_empty_result_set(self) -> None:
        self.assertEqual(["> No results found."], self.renderer.render_table([]))

    def test_table_is_truncated_to_display_limit(self) -> None:
        rows = [{"index": i} for i in range(25)]

        lines = self.renderer.render_table(rows)

        self.assertEqual("> 25 rows", lines[0])
        self.assertEqual("> Showing first 10 of 25 results", lines[-1])
        # count line, header, separator, ten rows, footer
        self.assertEqual(14, len(lines))

    def test_lists_render_with_markers(self) -> None:
        lines = self.renderer.render_markdown("1. Acme\n- Beta")

        self.assertEqual(["  1. Acme", "  • Beta"], lines)

    def test_ansi_styles_bold(self) -> None:
        renderer = TerminalRenderer(ansi=True)

        self.assertEqual(["\033[1mbold\033[0m"], renderer.render_markdown("**bold**"))

    def test_plain_mode_keeps_code_backticks(self) -> None:
        self.assertEqual(["use `vendors`"], self.renderer.render_markdown("use `vendors`"))


if __name__ == "__main__":
    unittest.main()
