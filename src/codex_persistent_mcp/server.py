from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from codex_persistent_mcp.runner import MAX_TIMEOUT_MS, MIN_TIMEOUT_MS
from codex_persistent_mcp.service import SESSION_ID_PATTERN, CodexBridge

SERVER_NAME = "codex-persistent-mcp"

SessionId = Annotated[str | None, Field(pattern=SESSION_ID_PATTERN, description="Existing Codex session id (UUID).")]
WorkingDir = Annotated[
    str | None,
    Field(
        min_length=1,
        description="Working root passed to Codex (-C). Required for new sessions; optional when resuming via session_id.",
    ),
]
Model = Annotated[str | None, Field(description="Optional Codex model override.")]
ReasoningEffort = Annotated[
    str | None,
    Field(
        min_length=1,
        description="Optional per-request override for model_reasoning_effort (e.g. low, medium, high).",
    ),
]
TimeoutMs = Annotated[
    int | None,
    Field(ge=MIN_TIMEOUT_MS, le=MAX_TIMEOUT_MS, description="Execution timeout in milliseconds."),
]

_PLAN_TOOLS = {
    "codex_plan": "Ask Codex to review a proposed plan (missing items, risks, questions, tests).",
    "codex_guard_plan": "Ask Codex to critique a proposed plan (missing items, risks, questions, tests).",
}
_REVIEW_TOOLS = {
    "codex_review": "Ask Codex to review final changes (correctness, regressions, missing coverage).",
    "codex_guard_final": "Ask Codex to review final changes (correctness, regressions, missing coverage).",
}


def create_server(bridge: CodexBridge) -> FastMCP:
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(
        name="codex_chat",
        description="Chat with Codex CLI using a real persisted session that can be resumed via `codex resume <session_id>`.",
    )
    async def codex_chat(
        prompt: Annotated[str, Field(min_length=1, description="User message to send to Codex.")],
        session_id: SessionId = None,
        working_dir: WorkingDir = None,
        model: Model = None,
        reasoning_effort: ReasoningEffort = None,
        timeout_ms: TimeoutMs = None,
    ) -> dict[str, Any]:
        return await bridge.chat(
            prompt,
            session_id=session_id,
            working_dir=working_dir,
            model=model,
            reasoning_effort=reasoning_effort,
            timeout_ms=timeout_ms,
        )

    for tool_name, description in _PLAN_TOOLS.items():
        _register_plan_tool(mcp, bridge, tool_name, description)
    for tool_name, description in _REVIEW_TOOLS.items():
        _register_review_tool(mcp, bridge, tool_name, description)

    return mcp


def _register_plan_tool(mcp: FastMCP, bridge: CodexBridge, tool_name: str, description: str) -> None:
    async def plan_review(
        requirements: Annotated[str, Field(min_length=1, description="User requirements / acceptance criteria.")],
        plan: Annotated[str, Field(min_length=1, description="Proposed plan to critique.")],
        constraints: Annotated[
            str | None, Field(description="Optional constraints (tech, time, safety).")
        ] = None,
        session_id: SessionId = None,
        working_dir: WorkingDir = None,
        model: Model = None,
        reasoning_effort: ReasoningEffort = None,
        timeout_ms: TimeoutMs = None,
    ) -> dict[str, Any]:
        return await bridge.plan_review(
            requirements,
            plan,
            constraints=constraints,
            session_id=session_id,
            working_dir=working_dir,
            model=model,
            reasoning_effort=reasoning_effort,
            timeout_ms=timeout_ms,
            tool_name=tool_name,
        )

    mcp.tool(name=tool_name, description=description)(plan_review)


def _register_review_tool(mcp: FastMCP, bridge: CodexBridge, tool_name: str, description: str) -> None:
    async def final_review(
        change_summary: Annotated[str, Field(min_length=1, description="What changed and why.")],
        test_results: Annotated[str | None, Field(description="Test results or commands run.")] = None,
        open_questions: Annotated[
            str | None, Field(description="Anything uncertain that needs a decision.")
        ] = None,
        session_id: SessionId = None,
        working_dir: WorkingDir = None,
        model: Model = None,
        reasoning_effort: ReasoningEffort = None,
        timeout_ms: TimeoutMs = None,
    ) -> dict[str, Any]:
        return await bridge.final_review(
            change_summary,
            test_results=test_results,
            open_questions=open_questions,
            session_id=session_id,
            working_dir=working_dir,
            model=model,
            reasoning_effort=reasoning_effort,
            timeout_ms=timeout_ms,
            tool_name=tool_name,
        )

    mcp.tool(name=tool_name, description=description)(final_review)
