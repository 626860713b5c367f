"""Codex ``--json`` event records and the fold that reduces them to a result."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from codex_persistent_mcp.errors import ProtocolError
from codex_persistent_mcp.models import CallResult


@dataclass(frozen=True)
class SessionStarted:
    session_id: str


@dataclass(frozen=True)
class MessageCompleted:
    text: str


@dataclass(frozen=True)
class TurnCompleted:
    usage: Any


AgentEvent = SessionStarted | MessageCompleted | TurnCompleted


def parse_event(record: Any) -> AgentEvent | None:
    """Map one decoded JSON value to an event; unrecognized records give ``None``."""
    if not isinstance(record, dict):
        return None
    event_type = record.get("type")
    if event_type == "thread.started":
        thread_id = record.get("thread_id")
        if isinstance(thread_id, str) and thread_id:
            return SessionStarted(thread_id)
    elif event_type == "item.completed":
        item = record.get("item")
        if isinstance(item, dict) and item.get("type") == "agent_message" and isinstance(item.get("text"), str):
            return MessageCompleted(item["text"])
    elif event_type == "turn.completed":
        usage = record.get("usage")
        if usage:
            return TurnCompleted(usage)
    return None


@dataclass(frozen=True)
class RunState:
    session_id: str | None = None
    messages: tuple[str, ...] = field(default_factory=tuple)
    usage: Any | None = None


def reduce_event(state: RunState, event: AgentEvent | None) -> RunState:
    # First session id wins; last usage wins; every non-blank message is kept.
    if isinstance(event, SessionStarted):
        if state.session_id is None:
            return RunState(event.session_id, state.messages, state.usage)
    elif isinstance(event, MessageCompleted):
        if event.text.strip():
            return RunState(state.session_id, (*state.messages, event.text), state.usage)
    elif isinstance(event, TurnCompleted):
        return RunState(state.session_id, state.messages, event.usage)
    return state


def reduce_records(records: Iterable[Any], state: RunState | None = None) -> RunState:
    state = state or RunState()
    for record in records:
        state = reduce_event(state, parse_event(record))
    return state


def to_result(state: RunState) -> CallResult:
    """Finish a clean run. The last message is the answer; earlier ones are progress."""
    if state.session_id is None:
        raise ProtocolError("no session id detected in codex output")
    if not state.messages:
        raise ProtocolError("no reply produced by codex")
    return CallResult(session_id=state.session_id, reply=state.messages[-1], usage=state.usage)
