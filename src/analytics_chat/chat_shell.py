from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from analytics_chat.commands.router import CommandRouter
from analytics_chat.conversation import Conversation
from analytics_chat.errors import FullResultDownloadError, TurnInProgressError
from analytics_chat.export import ExportService, export_basename, parse_delimited_text
from analytics_chat.models import Message
from analytics_chat.rendering import TerminalRenderer
from analytics_chat.services.session_controller import SessionController
from analytics_chat.sessions import SessionManager


class ChatShell:
    """Terminal front end for a ``Conversation``: turns, local commands and exports."""

    _LINE_PREFIX = "assistant> "

    def __init__(
        self,
        *,
        conversation: Conversation,
        sessions: SessionManager,
        export_service: ExportService,
        export_directory: str = "exports",
        ansi: bool = True,
        display_row_limit: int = 10,
    ) -> None:
        self._conversation = conversation
        self._sessions = sessions
        self._export_service = export_service
        self._export_directory = Path(export_directory)
        self._renderer = TerminalRenderer(
            line_prefix=self._LINE_PREFIX,
            ansi=ansi,
            display_row_limit=display_row_limit,
        )
        self._session_controller = SessionController(line_prefix=self._LINE_PREFIX)
        self._run_lock = asyncio.Lock()
        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_session=self._handle_session_command,
            on_history=self._handle_history_command,
            on_rerun=self._handle_rerun_command,
            on_export=self._handle_export_command,
            on_download=self._handle_download_command,
            on_unknown=self._on_unknown_command,
        )

    async def start(self) -> None:
        session = await self._conversation.start()
        print(self._session_controller.format_current_session(session))
        self._print_timeline()

    async def run(self, user_input: str) -> None:
        if self._run_lock.locked():
            print(f"{self._LINE_PREFIX}Still working on the previous question; please wait.")
            return
        async with self._run_lock:
            if await self._command_router.try_handle(user_input):
                return
            await self._ask(user_input)

    async def _ask(self, question: str) -> None:
        try:
            reply = await self._conversation.send(question)
        except TurnInProgressError as ex:
            print(f"{self._LINE_PREFIX}{ex}")
            return
        if reply is not None:
            self._print_message(reply)

    def _print_message(self, message: Message) -> None:
        number = self._number_of(message)
        for line in self._renderer.render_message(message, number=number):
            print(line)

    def _print_timeline(self) -> None:
        for number, message in enumerate(self._conversation.messages, start=1):
            for line in self._renderer.render_message(message, number=number):
                print(line)

    def _number_of(self, message: Message) -> int | None:
        for number, candidate in enumerate(self._conversation.messages, start=1):
            if candidate is message:
                return number
        return None

    def _resolve_assistant_message(self, argument: str | None) -> Message | None:
        messages = self._conversation.messages
        if argument:
            try:
                number = int(argument)
            except ValueError:
                return None
            if 1 <= number <= len(messages) and messages[number - 1].role == "assistant":
                return messages[number - 1]
            return None
        for message in reversed(messages):
            if message.role == "assistant":
                return message
        return None

    async def _on_help(self) -> None:
        print(f"{self._LINE_PREFIX}Available commands:")
        print(f"{self._LINE_PREFIX}- /help")
        print(f"{self._LINE_PREFIX}- /session")
        print(f"{self._LINE_PREFIX}- /session new [title]")
        print(f"{self._LINE_PREFIX}- /session list [limit]")
        print(f"{self._LINE_PREFIX}- /session switch <number-or-id>")
        print(f"{self._LINE_PREFIX}- /history")
        print(f"{self._LINE_PREFIX}- /rerun <message-number>")
        print(f"{self._LINE_PREFIX}- /export <csv|xlsx> [message-number]")
        print(f"{self._LINE_PREFIX}- /download [message-number]")

    def _on_unknown_command(self, trimmed: str) -> None:
        print(f"{self._LINE_PREFIX}Unknown local command: {trimmed}")

    async def _handle_session_command(self, command: str) -> None:
        parts = command.split()
        identity = self._conversation.identity

        if len(parts) == 1:
            print(self._session_controller.format_current_session(self._sessions.active_session))
            return

        sub = parts[1]
        if sub == "new":
            title = command.split(maxsplit=2)[2] if len(parts) > 2 else None
            session = await self._conversation.new_session(title)
            if session is None:
                print(f"{self._LINE_PREFIX}Unable to create a new chat session. Please try again.")
                return
            print(f"{self._LINE_PREFIX}Started new session: {session.display_name} [{self._session_controller.short_id(session.id)}]")
            return

        if sub == "list":
            limit = None
            if len(parts) >= 3:
                try:
                    limit = int(parts[2])
                except ValueError:
                    print(f"{self._LINE_PREFIX}Usage: /session list [limit]")
                    return
            sessions = await self._sessions.list_sessions(identity, limit)
            if not sessions:
                print(f"{self._LINE_PREFIX}No sessions found.")
                return
            print(f"{self._LINE_PREFIX}Recent sessions:")
            for index, session in enumerate(sessions, start=1):
                print(
                    self._session_controller.format_session_list_entry(
                        index, session, active_session_id=self._sessions.active_session_id
                    )
                )
            return

        if sub == "switch":
            if len(parts) < 3:
                print(f"{self._LINE_PREFIX}Usage: /session switch <number-or-id>")
                return
            if not self._sessions.sessions:
                await self._sessions.list_sessions(identity)
            session = self._sessions.find_session(parts[2])
            if session is None:
                print(f"{self._LINE_PREFIX}Session not found: {parts[2]}")
                return
            messages = await self._conversation.switch_session(session)
            for line in self._session_controller.format_loaded_lines(session, len(messages)):
                print(line)
            self._print_timeline()
            return

        print(f"{self._LINE_PREFIX}Usage: /session [new [title]|list [limit]|switch <number-or-id>]")

    async def _handle_history_command(self, command: str) -> None:
        if self._sessions.active_session is None:
            print(f"{self._LINE_PREFIX}No active session.")
            return
        await self._conversation.reload_history()
        self._print_timeline()

    async def _handle_rerun_command(self, command: str) -> None:
        parts = command.split()
        message = self._resolve_assistant_message(parts[1] if len(parts) > 1 else None)
        if message is None or not message.question:
            print(f"{self._LINE_PREFIX}Usage: /rerun <message-number> (an answer with a known question)")
            return
        print(f"you> Re-executing: {message.question}")
        try:
            reply = await self._conversation.re_execute(message.question, message.query_record_id)
        except TurnInProgressError as ex:
            print(f"{self._LINE_PREFIX}{ex}")
            return
        if reply is not None:
            self._print_message(reply)

    async def _handle_export_command(self, command: str) -> None:
        parts = command.split()
        if len(parts) < 2 or parts[1].lower() not in ("csv", "xlsx"):
            print(f"{self._LINE_PREFIX}Usage: /export <csv|xlsx> [message-number]")
            return
        message = self._resolve_assistant_message(parts[2] if len(parts) > 2 else None)
        if message is None or not message.has_rows:
            print(f"{self._LINE_PREFIX}No result rows to export. Historical results must be re-executed first.")
            return

        export_file = self._export_service.export(
            message.rows,
            parts[1],
            export_basename(message.question, message.query_record_id),
        )
        path = self._write_file(export_file.filename, export_file.content)
        note = " (spreadsheet export unavailable, saved as CSV)" if export_file.fell_back else ""
        print(f"{self._LINE_PREFIX}Exported {len(message.rows)} rows to {path}{note}")

    async def _handle_download_command(self, command: str) -> None:
        parts = command.split()
        message = self._resolve_assistant_message(parts[1] if len(parts) > 1 else None)
        if message is None or not message.question:
            print(f"{self._LINE_PREFIX}Usage: /download [message-number]")
            return
        try:
            download = await self._export_service.download_full_result(
                message.question,
                self._sessions.active_session_id,
                self._conversation.identity,
            )
        except FullResultDownloadError as ex:
            print(f"{self._LINE_PREFIX}Full download failed: {ex.error.message}")
            return

        path = self._write_file(download.filename, download.content)
        row_count = len(parse_delimited_text(download.content))
        print(f"{self._LINE_PREFIX}Downloaded complete results ({row_count} rows) to {path}")

    def _write_file(self, filename: str, content: bytes) -> Path:
        self._export_directory.mkdir(parents=True, exist_ok=True)
        path = self._export_directory / filename
        path.write_bytes(content)
        logger.info(f"Wrote {len(content):,} bytes to {path}")
        return path
