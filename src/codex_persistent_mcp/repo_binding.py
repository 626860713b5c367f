from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from codex_persistent_mcp.best_effort import best_effort
from codex_persistent_mcp.fileio import atomic_write_text

BINDING_DIR = ".claude"
BINDING_FILE = "codex_session.json"


def binding_path(cwd: str | Path) -> Path:
    return Path(cwd) / BINDING_DIR / BINDING_FILE


@best_effort("repo session lookup")
def read_repo_session_id(cwd: str) -> str | None:
    parsed = json.loads(binding_path(cwd).read_text(encoding="utf-8"))
    session_id = parsed.get("session_id") if isinstance(parsed, dict) else None
    return session_id if isinstance(session_id, str) and session_id else None


@best_effort("repo session write", default=False)
def write_repo_session_id(cwd: str, session_id: str) -> bool:
    path = binding_path(cwd)
    path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict = {}
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            existing = parsed
    except (OSError, json.JSONDecodeError):
        pass

    updated = {
        **existing,
        "session_id": session_id,
        "updated_at": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }
    atomic_write_text(path, json.dumps(updated, indent=2) + "\n")
    return True
