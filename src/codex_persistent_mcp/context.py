from __future__ import annotations

CONTEXT_BEGIN = "<<<MCP_CONTEXT_BEGIN>>>"
CONTEXT_END = "<<<MCP_CONTEXT_END>>>"
ROLE_CARD_BEGIN = "<<<ROLE_CARD_BEGIN>>>"
ROLE_CARD_END = "<<<ROLE_CARD_END>>>"

_CHAT_RESPONSIBILITY = (
    "You are advising the calling AI agent (not the end user). "
    "If you need user input, list the minimum questions for the agent to ask the user "
    "(do not ask the user directly). "
    "If you disagree or suspect a misunderstanding, state it and name the differing assumption."
)
_PLAN_RESPONSIBILITY = (
    "Review a proposed plan for missing requirements, risks, unclear questions, and suggested tests. "
    "If you suspect misunderstanding, call it out and propose the minimum clarifying questions "
    "for the agent to ask the user."
)
_REVIEW_RESPONSIBILITY = (
    "Review final change summary for correctness, regressions, missing coverage, and rollback concerns. "
    "Distinguish blockers vs suggestions and keep feedback concise. "
    "If you need user input, list the minimum questions for the agent to ask the user."
)

_RESPONSIBILITIES = {
    "codex_chat": _CHAT_RESPONSIBILITY,
    "codex_plan": _PLAN_RESPONSIBILITY,
    "codex_guard_plan": _PLAN_RESPONSIBILITY,
    "codex_review": _REVIEW_RESPONSIBILITY,
    "codex_guard_final": _REVIEW_RESPONSIBILITY,
}


def tool_responsibility(tool_name: str) -> str:
    return _RESPONSIBILITIES.get(tool_name, "Handle the request appropriately.")


def role_card_text() -> str:
    return "\n".join(
        [
            ROLE_CARD_BEGIN,
            "This session may include messages from a human user (via `codex resume`) "
            "and from an AI agent (via MCP).",
            f"If the message includes an `{CONTEXT_BEGIN}` block, you are advising the calling AI agent "
            "(not the end user).",
            "If you need user input, list the minimum questions for the agent to ask the user "
            "(do not ask the user directly).",
            "If the message has no MCP context block, treat it as coming from the human user.",
            "Keep responses concise and practical; avoid endless critique loops.",
            ROLE_CARD_END,
        ]
    )


def inject_context_header(origin: str, tool_name: str, user_text: str, *, include_role_card: bool) -> str:
    header = "\n".join(
        [
            CONTEXT_BEGIN,
            f"origin={origin}",
            f"tool={tool_name}",
            "audience=ai_agent",
            f"responsibility={tool_responsibility(tool_name)}",
            "sender=ai_agent",
            CONTEXT_END,
        ]
    )
    if include_role_card:
        return f"{header}\n\n{role_card_text()}\n\n{user_text}"
    return f"{header}\n\n{user_text}"


class RoleCardTracker:
    """Remembers which sessions have already been sent the role card."""

    def __init__(self, *, enabled: bool = True):
        self._enabled = enabled
        self._sent: set[str] = set()

    def claim(self, session_id: str | None) -> bool:
        """Whether this call should carry the role card; marks known sessions as sent."""
        if not self._enabled:
            return False
        if not session_id:
            # New session: the id is only known once codex reports it.
            return True
        if session_id in self._sent:
            return False
        self._sent.add(session_id)
        return True

    def mark_sent(self, session_id: str) -> None:
        self._sent.add(session_id)

    def was_sent(self, session_id: str) -> bool:
        return session_id in self._sent
