import asyncio
import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

import httpx

from analytics_chat.chat_shell import ChatShell
from analytics_chat.conversation import Conversation
from analytics_chat.dispatcher import QueryDispatcher
from analytics_chat.export import ExportService
from analytics_chat.gateway import TransportGateway
from analytics_chat.history import HistoryReconciler
from analytics_chat.identity import UserIdentity
from analytics_chat.sessions import SessionManager

SESSION = {"id": "session-0001", "sessionName": "Review", "isActive": True, "createdAt": "2024-01-15T10:00:00Z"}
HISTORY = [
    {"id": "q1", "question": "Top vendors?", "resultRowCount": 4, "createdAt": "2024-01-10T09:00:00Z"},
]


def _backend(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/chat/sessions" and request.method == "POST":
        return httpx.Response(200, json={"success": True, "session": SESSION})
    if path == "/api/chat/sessions":
        return httpx.Response(200, json={"success": True, "sessions": [SESSION]})
    if path.startswith("/api/chat/history/"):
        return httpx.Response(200, json={"success": True, "history": HISTORY})
    body = json.loads(request.content)
    if body.get("format") == "csv":
        return httpx.Response(200, json={"success": True, "results": "vendor,spend\nAcme,1200\nBeta,900"})
    return httpx.Response(
        200,
        json={
            "success": True,
            "explanation": "Top vendor is **Acme**",
            "sql_query": "SELECT vendor, spend FROM spend",
            "results": {"success": True, "data": [{"vendor": "Acme", "spend": 1200}]},
            "metadata": {"query_id": 77},
        },
    )


class ChatShellTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.export_dir = Path(self._tmp.name) / "exports"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *inputs: str) -> str:
        async def run():
            gateway = TransportGateway(
                "http://backend.test",
                timeout_seconds=5,
                transport=httpx.MockTransport(_backend),
            )
            sessions = SessionManager(gateway)
            conversation = Conversation(
                identity=UserIdentity("analyst-7"),
                dispatcher=QueryDispatcher(gateway),
                sessions=sessions,
                history=HistoryReconciler(gateway),
            )
            shell = ChatShell(
                conversation=conversation,
                sessions=sessions,
                export_service=ExportService(gateway),
                export_directory=str(self.export_dir),
                ansi=False,
            )
            try:
                await shell.start()
                for text in inputs:
                    await shell.run(text)
            finally:
                await gateway.aclose()

        out = io.StringIO()
        with redirect_stdout(out):
            asyncio.run(run())
        return out.getvalue()

    def test_start_shows_session_and_history(self) -> None:
        output = self._run()

        self.assertIn("Current session: Review [session-] (id=session-0001", output)
        self.assertIn("you> [1] Top vendors?", output)
        self.assertIn("Historical query results (4 rows returned)", output)

    def test_question_prints_answer_and_table(self) -> None:
        output = self._run("Who is the top vendor?")

        self.assertIn("assistant> [4] Top vendor is Acme", output)
        self.assertIn("SQL: SELECT vendor, spend FROM spend", output)
        self.assertIn("$1,200", output)

    def test_export_writes_csv_of_latest_answer(self) -> None:
        output = self._run("Who is the top vendor?", "/export csv")

        files = list(self.export_dir.glob("*.csv"))
        self.assertEqual(1, len(files))
        self.assertTrue(files[0].name.startswith("query-77-Who-is-the-top-vendor-"))
        self.assertEqual(b"vendor,spend\nAcme,1200", files[0].read_bytes())
        self.assertIn("Exported 1 rows to", output)

    def test_export_of_historical_answer_is_refused(self) -> None:
        output = self._run("/export csv 2")

        self.assertIn("No result rows to export", output)
        self.assertFalse(self.export_dir.exists())

    def test_rerun_adds_new_turn(self) -> None:
        output = self._run("/rerun 2")

        self.assertIn("you> Re-executing: Top vendors?", output)
        self.assertIn("assistant> [4] Top vendor is Acme", output)

    def test_download_writes_full_result(self) -> None:
        output = self._run("/download 2")

        files = list(self.export_dir.glob("query-results-*.csv"))
        self.assertEqual(1, len(files))
        self.assertIn("Downloaded complete results (2 rows)", output)

    def test_session_list_marks_active(self) -> None:
        output = self._run("/session list")

        self.assertIn("assistant> * 1. Review [session-]", output)

    def test_unknown_command(self) -> None:
        output = self._run("/nope")

        self.assertIn("Unknown local command: /nope", output)


if __name__ == "__main__":
    unittest.main()
