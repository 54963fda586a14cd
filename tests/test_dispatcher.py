import asyncio
import json
import unittest
from unittest.mock import AsyncMock

import httpx

from analytics_chat.dispatcher import QueryDispatcher
from analytics_chat.errors import ErrorKind, explanation_for
from analytics_chat.gateway import TransportGateway
from analytics_chat.identity import UserIdentity

QUESTION = "What's the total spend in the last 90 days?"
IDENTITY = UserIdentity("analyst-7")


def _respond(handler, *, on_turn_completed=None, timeout: float = 5.0, session_id: str | None = "s-1"):
    gateway = TransportGateway(
        "http://backend.test",
        timeout_seconds=timeout,
        transport=httpx.MockTransport(handler),
    )
    dispatcher = QueryDispatcher(gateway, on_turn_completed=on_turn_completed)

    async def run():
        try:
            message = await dispatcher.ask(QUESTION, IDENTITY, session_id=session_id)
            await dispatcher.drain()
            return message
        finally:
            await gateway.aclose()

    return asyncio.run(run())


class QueryDispatcherTests(unittest.TestCase):
    def test_successful_answer_with_rows(self) -> None:
        payload = {
            "success": True,
            "explanation": "Total spend is $1,234,000",
            "results": {"success": True, "data": [{"total": 1234000}]},
        }
        message = _respond(lambda request: httpx.Response(200, json=payload))

        self.assertEqual("assistant", message.role)
        self.assertEqual("Total spend is $1,234,000", message.content)
        self.assertEqual([{"total": 1234000}], message.rows)
        self.assertIsNone(message.error)
        self.assertEqual(QUESTION, message.question)
        self.assertFalse(message.is_historical)

    def test_request_carries_question_identity_and_session(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        _respond(handler)

        self.assertEqual({"question": QUESTION, "user_id": "analyst-7", "session_id": "s-1"}, seen[0])

    def test_session_id_omitted_without_active_session(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        _respond(handler, session_id=None)

        self.assertNotIn("session_id", seen[0])

    def test_backend_503_yields_service_unavailable_message(self) -> None:
        message = _respond(lambda request: httpx.Response(503, text="maintenance"))

        self.assertEqual("AI service is currently unavailable", message.error)
        self.assertEqual(503, message.http_status)
        self.assertEqual(ErrorKind.SERVICE_UNAVAILABLE, message.error_kind)
        self.assertIsNone(message.rows)
        self.assertEqual(explanation_for(ErrorKind.SERVICE_UNAVAILABLE), message.content)

    def test_timeout_still_produces_assistant_message(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(2)
            return httpx.Response(200, json={"success": True})

        message = _respond(handler, timeout=0.05)

        self.assertEqual("assistant", message.role)
        self.assertEqual(ErrorKind.TIMEOUT, message.error_kind)
        self.assertIn("taking longer than expected", message.content)
        self.assertIsNone(message.rows)

    def test_network_failure_uses_connection_copy(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        message = _respond(handler)

        self.assertEqual(ErrorKind.NETWORK_UNAVAILABLE, message.error_kind)
        self.assertIn("Unable to connect to the analytics service", message.content)

    def test_soft_failure_prefers_backend_explanation(self) -> None:
        payload = {"success": False, "error": "Could not translate question", "explanation": "Try naming a vendor."}
        message = _respond(lambda request: httpx.Response(200, json=payload))

        self.assertEqual("Could not translate question", message.error)
        self.assertEqual("Try naming a vendor.", message.content)
        self.assertEqual(ErrorKind.UNKNOWN, message.error_kind)
        self.assertIsNone(message.rows)

    def test_soft_failure_without_explanation_generates_copy(self) -> None:
        payload = {"success": False, "error": "Upstream timeout while executing"}
        message = _respond(lambda request: httpx.Response(200, json=payload))

        self.assertEqual("Upstream timeout while executing", message.error)
        self.assertIn("timed out", message.content)

    def test_failed_result_envelope_surfaces_its_error(self) -> None:
        payload = {
            "success": True,
            "explanation": "Here is the query I ran.",
            "sql_query": "SELECT 1",
            "results": {"success": False, "error": "relation does not exist"},
            "metadata": {"query_id": 42},
        }
        message = _respond(lambda request: httpx.Response(200, json=payload))

        self.assertEqual("relation does not exist", message.error)
        self.assertEqual("SELECT 1", message.generated_query_text)
        self.assertIsNone(message.rows)
        self.assertEqual("42", message.query_record_id)

    def test_bare_row_list_is_accepted(self) -> None:
        payload = {"success": True, "results": [{"vendor": "Acme", "spend": 10}]}
        message = _respond(lambda request: httpx.Response(200, json=payload))

        self.assertEqual([{"vendor": "Acme", "spend": 10}], message.rows)
        self.assertEqual("I found some results for your query.", message.content)
        self.assertEqual(1, message.result_row_count)

    def test_turn_completion_hook_runs_after_failures_too(self) -> None:
        on_turn_completed = AsyncMock()

        _respond(lambda request: httpx.Response(500), on_turn_completed=on_turn_completed)

        on_turn_completed.assert_awaited_once_with(IDENTITY)

    def test_failing_hook_does_not_affect_message(self) -> None:
        on_turn_completed = AsyncMock(side_effect=RuntimeError("session list unavailable"))

        payload = {"success": True, "explanation": "Done", "results": {"success": True, "data": []}}
        message = _respond(lambda request: httpx.Response(200, json=payload), on_turn_completed=on_turn_completed)

        self.assertEqual("Done", message.content)
        self.assertEqual([], message.rows)
        self.assertIsNone(message.error)


if __name__ == "__main__":
    unittest.main()
