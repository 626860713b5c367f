from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from codex_persistent_mcp.best_effort import best_effort
from codex_persistent_mcp.fileio import atomic_write_bytes

EXEC_ORIGINATOR = "codex_exec"
EXEC_SOURCE = "exec"
CLI_ORIGINATOR = "codex_cli_rs"
CLI_SOURCE = "cli"


@dataclass(frozen=True)
class SessionMeta:
    session_id: str | None
    cwd: str | None
    originator: str | None
    source: str | None


def _non_empty_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


def parse_session_meta(line: str) -> SessionMeta | None:
    """Parse a transcript header line; ``None`` when it is not a ``session_meta`` record."""
    text = line.strip()
    if not text:
        return None
    record = json.loads(text)
    if not isinstance(record, dict) or record.get("type") != "session_meta":
        return None
    payload = record.get("payload")
    if not isinstance(payload, dict):
        payload = {}
    return SessionMeta(
        session_id=_non_empty_str(payload.get("id")),
        cwd=_non_empty_str(payload.get("cwd")),
        originator=_non_empty_str(payload.get("originator")),
        source=_non_empty_str(payload.get("source")),
    )


def read_session_meta(path: Path) -> SessionMeta | None:
    with open(path, "rb") as f:
        first_line = f.readline()
    return parse_session_meta(first_line.decode("utf-8"))


def promote_transcript(path: Path, session_id: str) -> bool:
    """Rewrite an exec-created transcript header so ``codex resume`` lists it.

    Only the first line changes; every following byte is written back as-is.
    Returns ``False`` without touching the file when it is not eligible.
    """
    raw = path.read_bytes()
    newline = raw.find(b"\n")
    if newline == -1:
        return False
    header = raw[:newline].decode("utf-8").rstrip()
    rest = raw[newline + 1 :]

    record = json.loads(header)
    if not isinstance(record, dict) or record.get("type") != "session_meta":
        return False
    payload = record.get("payload")
    if not isinstance(payload, dict):
        return False
    if payload.get("id") != session_id:
        return False
    if payload.get("originator") != EXEC_ORIGINATOR or payload.get("source") != EXEC_SOURCE:
        return False

    updated = {**record, "payload": {**payload, "originator": CLI_ORIGINATOR, "source": CLI_SOURCE}}
    new_header = json.dumps(updated, ensure_ascii=False, separators=(",", ":"))
    if "\n" in new_header:
        return False

    atomic_write_bytes(path, new_header.encode("utf-8") + b"\n" + rest)
    return True


class SessionStore:
    """Read-mostly view over codex's date-partitioned transcript store.

    Layout: ``<codex_home>/sessions/YYYY/MM/DD/<name containing id>.jsonl``.
    The store belongs to codex; the only write is the header promotion.
    """

    def __init__(self, codex_home: str | Path):
        self._sessions_root = Path(codex_home).expanduser() / "sessions"
        self._cwd_by_session: dict[str, str] = {}
        self._promoted: set[str] = set()

    @property
    def sessions_root(self) -> Path:
        return self._sessions_root

    def cached_cwd(self, session_id: str) -> str | None:
        return self._cwd_by_session.get(session_id)

    def bind_cwd(self, session_id: str, cwd: str) -> None:
        self._cwd_by_session[session_id] = cwd

    def find_transcript(self, session_id: str) -> Path | None:
        """Most recently modified ``.jsonl`` file whose name contains ``session_id``."""
        if not self._sessions_root.is_dir():
            return None
        best_path: Path | None = None
        best_mtime = -1.0
        for day_dir in self._iter_day_dirs():
            for path in day_dir.iterdir():
                if not path.is_file() or not path.name.endswith(".jsonl") or session_id not in path.name:
                    continue
                try:
                    mtime = path.stat().st_mtime
                except OSError:
                    mtime = 0.0
                if mtime > best_mtime:
                    best_mtime = mtime
                    best_path = path
        return best_path

    @best_effort("working directory inference")
    def infer_cwd(self, session_id: str) -> str | None:
        cached = self._cwd_by_session.get(session_id)
        if cached:
            return cached
        path = self.find_transcript(session_id)
        if path is None:
            return None
        meta = read_session_meta(path)
        if meta is None or meta.cwd is None:
            return None
        self._cwd_by_session[session_id] = meta.cwd
        logger.debug(f"Inferred cwd for session {session_id}: {meta.cwd}")
        return meta.cwd

    def promote(self, session_id: str) -> bool:
        """Promote at most once per session id per process, whatever the outcome."""
        if session_id in self._promoted:
            return False
        self._promoted.add(session_id)
        return bool(self._promote(session_id))

    @best_effort("session promotion", default=False)
    def _promote(self, session_id: str) -> bool:
        path = self.find_transcript(session_id)
        if path is None:
            return False
        promoted = promote_transcript(path, session_id)
        if promoted:
            logger.debug(f"Promoted exec session {session_id} for codex resume ({path.name})")
        return promoted

    def _iter_day_dirs(self):
        for year in sorted(self._subdirs(self._sessions_root)):
            for month in sorted(self._subdirs(year)):
                yield from sorted(self._subdirs(month))

    @staticmethod
    def _subdirs(path: Path) -> list[Path]:
        return [p for p in path.iterdir() if p.is_dir()]
