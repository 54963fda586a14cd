from __future__ import annotations

from analytics_chat.models import Session


class SessionController:
    def __init__(self, *, line_prefix: str, short_id_len: int = 8):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    def format_session_list_entry(self, index: int, session: Session, *, active_session_id: str | None) -> str:
        marker = "*" if session.id == active_session_id else " "
        title = session.display_name or session.id
        count = f", queries={session.query_count}" if session.query_count is not None else ""
        return (
            f"{self._line_prefix}{marker} {index}. {title} [{self.short_id(session.id)}] "
            f"(last used={session.last_used_at:%Y-%m-%d %H:%M}{count})"
        )

    def format_current_session(self, session: Session | None) -> str:
        if session is None:
            return f"{self._line_prefix}Current session: none (queries are sent without a session)"
        return (
            f"{self._line_prefix}Current session: {session.display_name or session.id} "
            f"[{self.short_id(session.id)}] (id={session.id}, created={session.created_at:%Y-%m-%d %H:%M})"
        )

    def format_loaded_lines(self, session: Session, message_count: int) -> list[str]:
        queries = message_count // 2
        lines = [f"{self._line_prefix}Switched to {session.display_name or session.id} [{self.short_id(session.id)}]"]
        if queries:
            lines.append(f"{self._line_prefix}- Loaded {queries} previous quer{'y' if queries == 1 else 'ies'}")
        else:
            lines.append(f"{self._line_prefix}- No previous queries in this session")
        return lines
