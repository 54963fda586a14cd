from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_session: Callable[[str], Awaitable[None]],
        on_history: Callable[[str], Awaitable[None]],
        on_rerun: Callable[[str], Awaitable[None]],
        on_export: Callable[[str], Awaitable[None]],
        on_download: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_session = on_session
        self._on_history = on_history
        self._on_rerun = on_rerun
        self._on_export = on_export
        self._on_download = on_download
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command = trimmed.split(maxsplit=1)[0]
        if command == "/help":
            await self._on_help()
            return True
        if command == "/session":
            await self._on_session(trimmed)
            return True
        if command == "/history":
            await self._on_history(trimmed)
            return True
        if command == "/rerun":
            await self._on_rerun(trimmed)
            return True
        if command == "/export":
            await self._on_export(trimmed)
            return True
        if command == "/download":
            await self._on_download(trimmed)
            return True

        self._on_unknown(trimmed)
        return True
