from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_API_BASE_URL = "http://localhost:4000"


@dataclass
class AppConfig:
    api_base_url: str
    request_timeout_seconds: float
    user_id: str | None
    history_limit: int
    session_list_limit: int
    display_row_limit: int
    export_directory: str
    ansi_output: bool
    gateway_host: str
    gateway_port: int
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def parse_app_config(config: dict, environ: dict[str, str] | None = None) -> AppConfig:
    """Build the runtime config. ``API_BASE_URL`` and ``CHAT_USER_ID`` in the environment win over config.json."""
    env = os.environ if environ is None else environ
    api_base_url = env.get("API_BASE_URL") or config.get("ApiBaseUrl") or DEFAULT_API_BASE_URL
    user_id = str(env.get("CHAT_USER_ID") or config.get("UserId") or "").strip() or None
    return AppConfig(
        api_base_url=str(api_base_url).rstrip("/"),
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 45)),
        user_id=user_id,
        history_limit=int(config.get("HistoryLimit", 50)),
        session_list_limit=int(config.get("SessionListLimit", 10)),
        display_row_limit=int(config.get("DisplayRowLimit", 10)),
        export_directory=str(config.get("ExportDirectory", "exports")),
        ansi_output=_to_bool(config.get("AnsiOutput", True), default=True),
        gateway_host=str(config.get("GatewayHost", "127.0.0.1")),
        gateway_port=int(config.get("GatewayPort", 3000)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )
