from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from codex_persistent_mcp.runner import DEFAULT_TIMEOUT_MS, clamp_timeout_ms

DEFAULT_ORIGIN = "codex-persistent-mcp"


@dataclass
class AppConfig:
    codex_bin: str = "codex"
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    origin: str = DEFAULT_ORIGIN
    role_card_enabled: bool = True
    codex_home: str = str(Path.home() / ".codex")
    history_path: str = str(Path.home() / ".codex" / "history.jsonl")
    register_in_history: bool = True
    repo_session_binding: bool = False
    reply_language: str = "Chinese"
    log_level: str = "INFO"
    log_consumers: list | None = None


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


def _to_int(value: object, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_app_config(config: dict, environ: Mapping[str, str] | None = None) -> AppConfig:
    env = os.environ if environ is None else environ

    def setting(env_var: str, key: str, default: object = None) -> object:
        value = env.get(env_var)
        if value is not None and value != "":
            return value
        return config.get(key, default)

    codex_home = str(Path(str(setting("CODEX_HOME", "CodexHome", Path.home() / ".codex"))).expanduser())
    history_path = setting("CODEX_PERSISTENT_MCP_CODEX_HISTORY_PATH", "HistoryPath")

    return AppConfig(
        codex_bin=str(setting("CODEX_BIN", "CodexBin", "codex")),
        default_timeout_ms=clamp_timeout_ms(
            _to_int(setting("CODEX_PERSISTENT_MCP_TIMEOUT_MS", "TimeoutMs"), DEFAULT_TIMEOUT_MS)
        ),
        origin=str(setting("CODEX_PERSISTENT_MCP_ORIGIN", "Origin", DEFAULT_ORIGIN)),
        role_card_enabled=_to_bool(setting("CODEX_PERSISTENT_MCP_ROLE_CARD", "RoleCard"), default=True),
        codex_home=codex_home,
        history_path=str(Path(str(history_path)).expanduser()) if history_path else str(Path(codex_home) / "history.jsonl"),
        register_in_history=_to_bool(
            setting("CODEX_PERSISTENT_MCP_REGISTER_IN_CODEX_HISTORY", "RegisterInHistory"),
            default=True,
        ),
        repo_session_binding=_to_bool(setting("CODEX_PERSISTENT_MCP_REPO_SESSION", "RepoSession"), default=False),
        reply_language=str(setting("CODEX_PERSISTENT_MCP_REPLY_LANGUAGE", "ReplyLanguage", "Chinese")),
        log_level=str(setting("CODEX_PERSISTENT_MCP_LOG_LEVEL", "LogLevel", "INFO")).upper(),
        log_consumers=config.get("LogConsumers"),
    )


def load_app_config() -> AppConfig:
    return parse_app_config(load_json_config())
