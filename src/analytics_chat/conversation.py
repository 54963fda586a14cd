from __future__ import annotations

from datetime import datetime

from loguru import logger

from analytics_chat.dispatcher import QueryDispatcher
from analytics_chat.errors import TurnInProgressError
from analytics_chat.history import HistoryReconciler
from analytics_chat.identity import UserIdentity
from analytics_chat.models import Message, Session
from analytics_chat.sessions import SessionManager

RERUN_PREFIX = "Re-executing: "
RERUN_FALLBACK_CONTENT = "I found some results for your re-executed query."


class Conversation:
    """Owns the message timeline for one identity.

    The timeline only grows during interactive turns; it is replaced wholesale
    when a session is (re)loaded from history. One turn may be in flight at a
    time: a second submission is rejected instead of queued.
    """

    def __init__(
        self,
        *,
        identity: UserIdentity,
        dispatcher: QueryDispatcher,
        sessions: SessionManager,
        history: HistoryReconciler,
    ) -> None:
        self._identity = identity
        self._dispatcher = dispatcher
        self._sessions = sessions
        self._history = history
        self._messages: list[Message] = []
        self._turn_in_flight = False

    @property
    def identity(self) -> UserIdentity:
        return self._identity

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def is_busy(self) -> bool:
        return self._turn_in_flight

    @property
    def active_session(self) -> Session | None:
        return self._sessions.active_session

    async def start(self) -> Session | None:
        title = f"Chat Session {datetime.now().strftime('%m/%d/%Y')}"
        session = await self._sessions.create_session(self._identity, title)
        await self._sessions.list_sessions(self._identity)
        if session is not None:
            await self._load(session.id)
        return session

    async def new_session(self, title: str | None = None) -> Session | None:
        title = (title or "").strip() or f"New Chat {datetime.now().strftime('%I:%M:%S %p')}"
        session = await self._sessions.create_session(self._identity, title)
        if session is None:
            return None
        self._messages = []
        await self._sessions.list_sessions(self._identity)
        return session

    async def switch_session(self, session: Session) -> list[Message]:
        self._sessions.switch_session(session)
        await self._load(session.id)
        return self.messages

    async def reload_history(self) -> list[Message]:
        session_id = self._sessions.active_session_id
        if session_id is None:
            return self.messages
        await self._load(session_id)
        return self.messages

    async def send(self, question: str) -> Message | None:
        question = question.strip()
        if not question:
            return None
        return await self._run_turn(Message.user(question), question)

    async def re_execute(self, question: str, query_record_id: str | None = None) -> Message | None:
        """Run a historical question again as a new turn; the original messages stay untouched."""
        question = (question or "").strip()
        if not question:
            return None
        if query_record_id:
            logger.info(f"Re-executing query {query_record_id}")
        return await self._run_turn(
            Message.user(f"{RERUN_PREFIX}{question}"),
            question,
            fallback_content=RERUN_FALLBACK_CONTENT,
        )

    async def _run_turn(self, user_message: Message, question: str, **ask_kwargs) -> Message:
        if self._turn_in_flight:
            raise TurnInProgressError("A question is already being processed; wait for its answer.")
        self._turn_in_flight = True
        try:
            self._messages.append(user_message)
            reply = await self._dispatcher.ask(
                question,
                self._identity,
                session_id=self._sessions.active_session_id,
                **ask_kwargs,
            )
            self._messages.append(reply)
            return reply
        finally:
            self._turn_in_flight = False

    async def _load(self, session_id: str) -> None:
        self._messages = await self._history.load_history(session_id)
