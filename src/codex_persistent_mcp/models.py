from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CallRequest:
    prompt: str
    session_id: str | None = None
    working_dir: str | None = None
    model: str | None = None
    reasoning_effort: str | None = None
    timeout_ms: int | None = None


@dataclass(frozen=True)
class CallResult:
    session_id: str
    reply: str
    usage: Any | None = None
