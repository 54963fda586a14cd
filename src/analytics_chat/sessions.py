from __future__ import annotations

from loguru import logger

from analytics_chat.gateway import TransportGateway
from analytics_chat.identity import UserIdentity
from analytics_chat.models import Session

DEFAULT_SESSION_LIST_LIMIT = 10


class SessionManager:
    """Creates, lists and switches chat sessions owned by the backend.

    Keeps a cached copy of the session list and the active session. Every
    failure degrades to "no session" or an empty list and is only logged.
    """

    def __init__(self, gateway: TransportGateway, *, list_limit: int = DEFAULT_SESSION_LIST_LIMIT):
        self._gateway = gateway
        self._list_limit = max(1, list_limit)
        self._sessions: list[Session] = []
        self._active: Session | None = None

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def active_session(self) -> Session | None:
        return self._active

    @property
    def active_session_id(self) -> str | None:
        return self._active.id if self._active is not None else None

    async def create_session(self, identity: UserIdentity, title: str) -> Session | None:
        result = await self._gateway.forward(
            "/api/chat/sessions",
            "POST",
            body={"userId": identity.user_id, "title": title},
        )
        if not result.ok:
            logger.error(f"Failed to create chat session: {result.error.message}")
            return None

        payload = result.data.get("session") if isinstance(result.data, dict) else None
        if not isinstance(payload, dict):
            logger.error(f"Create session response had no session: {result.data!r}")
            return None
        try:
            session = Session.from_api(payload)
        except (KeyError, TypeError, ValueError) as ex:
            logger.error(f"Malformed session in create response: {ex}")
            return None

        self._active = session
        logger.info(f"Created chat session {session.id} ({session.display_name})")
        return session

    async def list_sessions(self, identity: UserIdentity, limit: int | None = None) -> list[Session]:
        result = await self._gateway.forward(
            "/api/chat/sessions",
            "GET",
            query_params={"user_id": identity.user_id, "limit": limit or self._list_limit},
        )
        if not result.ok:
            logger.warning(f"Failed to load sessions: {result.error.message}")
            return []

        raw_sessions = result.data.get("sessions") if isinstance(result.data, dict) else None
        sessions: list[Session] = []
        for item in raw_sessions or []:
            if not isinstance(item, dict):
                continue
            try:
                sessions.append(Session.from_api(item))
            except (KeyError, TypeError, ValueError) as ex:
                logger.warning(f"Skipping malformed session entry: {ex}")
        self._sessions = sessions
        return list(sessions)

    async def refresh(self, identity: UserIdentity) -> None:
        sessions = await self.list_sessions(identity)
        logger.debug(f"Session list refreshed ({len(sessions)} sessions)")

    def switch_session(self, session: Session) -> None:
        self._active = session
        logger.info(f"Switched to session {session.id} ({session.display_name})")

    def find_session(self, identifier: str) -> Session | None:
        """Resolve a session from the cached list by 1-based position, id or id prefix."""
        needle = identifier.strip()
        if not needle:
            return None
        if needle.isdigit():
            index = int(needle)
            if 1 <= index <= len(self._sessions):
                return self._sessions[index - 1]
        for session in self._sessions:
            if session.id == needle:
                return session
        matches = [s for s in self._sessions if s.id.startswith(needle)]
        if len(matches) == 1:
            return matches[0]
        return None
