from __future__ import annotations

import json
import re
import time
from pathlib import Path

from loguru import logger

from codex_persistent_mcp.best_effort import best_effort

MAX_SCAN_BYTES = 5_000_000
EXCERPT_CHARS = 140

_WHITESPACE = re.compile(r"\s+")
_LABEL_PREFIXES = {
    "codex_chat": "MCP chat",
    "codex_plan": "MCP plan",
    "codex_guard_plan": "MCP plan",
    "codex_review": "MCP review",
    "codex_guard_final": "MCP review",
}


def history_label(tool_name: str, prompt: str) -> str:
    prefix = _LABEL_PREFIXES.get(tool_name, f"MCP {tool_name}")
    excerpt = _WHITESPACE.sub(" ", prompt).strip()[:EXCERPT_CHARS]
    return f"{prefix}: {excerpt}" if excerpt else prefix


class HistoryIndexer:
    """Appends one line per session to codex's ``history.jsonl``.

    Dedup is by session id: once per process (in memory), and by a plain
    substring check of the log when it is small enough to read.
    """

    def __init__(self, path: str | Path, *, enabled: bool = True):
        self._path = Path(path).expanduser()
        self._enabled = enabled
        self._recorded: set[str] = set()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record(self, session_id: str, text: str) -> bool:
        if not self._enabled or session_id in self._recorded:
            return False
        return bool(self._append(session_id, text))

    @best_effort("history registration", default=False)
    def _append(self, session_id: str, text: str) -> bool:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        if self._already_listed(session_id):
            self._recorded.add(session_id)
            return False

        entry = {"session_id": session_id, "ts": int(time.time()), "text": text}
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        self._recorded.add(session_id)
        logger.debug(f"Registered session {session_id} in {self._path}")
        return True

    def _already_listed(self, session_id: str) -> bool:
        try:
            if self._path.stat().st_size > MAX_SCAN_BYTES:
                return False
            return session_id in self._path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return False
