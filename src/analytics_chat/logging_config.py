import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

_CONSOLE_FORMAT = (
    "<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    " - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"


@dataclass(frozen=True)
class LogSink:
    """One loguru sink parsed from a ``LogConsumers`` entry."""

    kind: str
    level: str | None = None
    path: str | None = None
    rotation: str = "10 MB"
    retention: int = 3

    def resolve_level(self, default_level: str) -> str:
        return (self.level or default_level).upper()

    def describe(self, default_level: str) -> str:
        level = self.resolve_level(default_level)
        if self.kind == "file":
            return f"file ({self.path}, {level})"
        return f"console (stderr, {level})"


# Answers go to stdout in the REPL, so its console sink only carries warnings.
REPL_LOG_SINKS = (
    LogSink("console", level="WARNING"),
    LogSink("file", path="analytics-chat.log"),
)

GATEWAY_LOG_SINKS = (
    LogSink("console"),
    LogSink("file", path="analytics-chat-gateway.log"),
)


def parse_log_sinks(consumers: list[dict[str, Any]]) -> list[LogSink]:
    sinks: list[LogSink] = []
    for entry in consumers:
        kind = str(entry.get("type", "")).lower()
        if kind == "console":
            sinks.append(LogSink("console", level=entry.get("level")))
        elif kind == "file":
            sinks.append(
                LogSink(
                    "file",
                    level=entry.get("level"),
                    path=str(entry.get("path") or "analytics-chat.log"),
                    rotation=str(entry.get("rotation", "10 MB")),
                    retention=int(entry.get("retention", 3)),
                )
            )
        else:
            logger.warning(f"Unknown log consumer type: {entry.get('type')!r}")
    return sinks


def _register(sink: LogSink, level: str) -> None:
    if sink.kind == "file":
        Path(sink.path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            sink.path,
            level=level,
            format=_FILE_FORMAT,
            rotation=sink.rotation,
            retention=sink.retention,
        )
    else:
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    defaults: tuple[LogSink, ...] = REPL_LOG_SINKS,
) -> list[str]:
    """Replace loguru's sinks with the configured ones, or ``defaults`` when none are configured.

    Returns a description of each registered sink.
    """
    logger.remove()

    sinks = parse_log_sinks(consumers) if consumers is not None else list(defaults)
    descriptions: list[str] = []
    for sink in sinks:
        _register(sink, sink.resolve_level(level))
        descriptions.append(sink.describe(level))
    return descriptions
