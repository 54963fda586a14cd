from __future__ import annotations

from dataclasses import dataclass

from analytics_chat.app_config import AppConfig
from analytics_chat.chat_shell import ChatShell
from analytics_chat.conversation import Conversation
from analytics_chat.dispatcher import QueryDispatcher
from analytics_chat.export import ExportService
from analytics_chat.gateway import TransportGateway
from analytics_chat.history import HistoryReconciler
from analytics_chat.identity import IdentityProvider, StaticIdentityProvider
from analytics_chat.logging_config import setup_logging
from analytics_chat.sessions import SessionManager


@dataclass
class AppRuntime:
    shell: ChatShell
    conversation: Conversation
    gateway: TransportGateway
    dispatcher: QueryDispatcher
    log_descriptions: list[str]

    async def close(self) -> None:
        await self.dispatcher.drain()
        await self.gateway.aclose()


def bootstrap_runtime(app: AppConfig, identity_provider: IdentityProvider | None = None) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    identity = (identity_provider or StaticIdentityProvider(app.user_id)).current_identity()
    gateway = TransportGateway(app.api_base_url, timeout_seconds=app.request_timeout_seconds)
    sessions = SessionManager(gateway, list_limit=app.session_list_limit)
    history = HistoryReconciler(gateway, limit=app.history_limit)
    dispatcher = QueryDispatcher(gateway, on_turn_completed=sessions.refresh)
    conversation = Conversation(
        identity=identity,
        dispatcher=dispatcher,
        sessions=sessions,
        history=history,
    )
    shell = ChatShell(
        conversation=conversation,
        sessions=sessions,
        export_service=ExportService(gateway),
        export_directory=app.export_directory,
        ansi=app.ansi_output,
        display_row_limit=app.display_row_limit,
    )

    return AppRuntime(
        shell=shell,
        conversation=conversation,
        gateway=gateway,
        dispatcher=dispatcher,
        log_descriptions=log_descriptions,
    )
