from __future__ import annotations

import re
from dataclasses import replace
from typing import Any

from loguru import logger

from codex_persistent_mcp.app_config import AppConfig
from codex_persistent_mcp.context import RoleCardTracker, inject_context_header
from codex_persistent_mcp.errors import InvalidInputError, MissingInputError
from codex_persistent_mcp.history import HistoryIndexer, history_label
from codex_persistent_mcp.models import CallRequest, CallResult
from codex_persistent_mcp.prompts import build_final_prompt, build_plan_prompt, resume_hint
from codex_persistent_mcp.repo_binding import read_repo_session_id, write_repo_session_id
from codex_persistent_mcp.runner import MAX_TIMEOUT_MS, MIN_TIMEOUT_MS, CodexRunner
from codex_persistent_mcp.session_queue import SessionQueue
from codex_persistent_mcp.session_store import SessionStore

SESSION_ID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

_SESSION_ID_RE = re.compile(SESSION_ID_PATTERN)


def is_session_id(value: object) -> bool:
    """Hyphenated UUID text, the form codex uses in transcript file names."""
    return isinstance(value, str) and _SESSION_ID_RE.fullmatch(value) is not None


def _check_session_id(session_id: str | None) -> None:
    if session_id is not None and not is_session_id(session_id):
        raise InvalidInputError(f"Invalid `session_id`: {session_id!r} is not a UUID.")


def _check_text(name: str, value: str | None) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidInputError(f"Missing required input: `{name}` must be a non-empty string.")


def validate_request(request: CallRequest) -> None:
    _check_session_id(request.session_id)
    _check_text("prompt", request.prompt)
    if request.timeout_ms is not None:
        if isinstance(request.timeout_ms, bool) or not isinstance(request.timeout_ms, int):
            raise InvalidInputError("`timeout_ms` must be an integer.")
        if not MIN_TIMEOUT_MS <= request.timeout_ms <= MAX_TIMEOUT_MS:
            raise InvalidInputError(f"`timeout_ms` must be between {MIN_TIMEOUT_MS} and {MAX_TIMEOUT_MS}.")
    if request.working_dir is not None and not request.working_dir:
        raise InvalidInputError("`working_dir` must not be empty.")


class CodexBridge:
    """Forwards tool calls to codex while keeping each session's calls in order."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        runner: CodexRunner | None = None,
        store: SessionStore | None = None,
        history: HistoryIndexer | None = None,
        queue: SessionQueue | None = None,
    ):
        self._config = config or AppConfig()
        self._runner = runner or CodexRunner(self._config.codex_bin, self._config.default_timeout_ms)
        self._store = store or SessionStore(self._config.codex_home)
        self._history = history or HistoryIndexer(self._config.history_path, enabled=self._config.register_in_history)
        self._queue = queue or SessionQueue()
        self._role_cards = RoleCardTracker(enabled=self._config.role_card_enabled)

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def role_cards(self) -> RoleCardTracker:
        return self._role_cards

    async def chat(
        self,
        prompt: str,
        *,
        session_id: str | None = None,
        working_dir: str | None = None,
        model: str | None = None,
        reasoning_effort: str | None = None,
        timeout_ms: int | None = None,
        tool_name: str = "codex_chat",
    ) -> dict[str, Any]:
        request = CallRequest(
            prompt=prompt,
            session_id=session_id,
            working_dir=working_dir,
            model=model,
            reasoning_effort=reasoning_effort,
            timeout_ms=timeout_ms,
        )
        return self._payload(await self.submit(tool_name, request), "reply")

    async def plan_review(
        self,
        requirements: str,
        plan: str,
        *,
        constraints: str | None = None,
        session_id: str | None = None,
        working_dir: str | None = None,
        model: str | None = None,
        reasoning_effort: str | None = None,
        timeout_ms: int | None = None,
        tool_name: str = "codex_plan",
    ) -> dict[str, Any]:
        _check_text("requirements", requirements)
        _check_text("plan", plan)
        request = CallRequest(
            prompt=build_plan_prompt(requirements, plan, constraints, language=self._config.reply_language),
            session_id=session_id,
            working_dir=working_dir,
            model=model,
            reasoning_effort=reasoning_effort,
            timeout_ms=timeout_ms,
        )
        return self._payload(await self.submit(tool_name, request), "critique")

    async def final_review(
        self,
        change_summary: str,
        *,
        test_results: str | None = None,
        open_questions: str | None = None,
        session_id: str | None = None,
        working_dir: str | None = None,
        model: str | None = None,
        reasoning_effort: str | None = None,
        timeout_ms: int | None = None,
        tool_name: str = "codex_review",
    ) -> dict[str, Any]:
        _check_text("change_summary", change_summary)
        request = CallRequest(
            prompt=build_final_prompt(
                change_summary,
                test_results,
                open_questions,
                language=self._config.reply_language,
            ),
            session_id=session_id,
            working_dir=working_dir,
            model=model,
            reasoning_effort=reasoning_effort,
            timeout_ms=timeout_ms,
        )
        return self._payload(await self.submit(tool_name, request), "review")

    async def submit(self, tool_name: str, request: CallRequest) -> CallResult:
        validate_request(request)
        session_id = request.session_id
        if not session_id and request.working_dir and self._config.repo_session_binding:
            session_id = self._repo_session_id(request.working_dir)
        request = replace(request, session_id=session_id or None)
        return await self._queue.run(request.session_id, lambda: self._run_once(tool_name, request))

    @staticmethod
    def _repo_session_id(working_dir: str) -> str | None:
        bound = read_repo_session_id(working_dir)
        if bound is None:
            return None
        if not is_session_id(bound):
            logger.debug(f"Ignoring malformed repo-bound session id {bound!r} in {working_dir}")
            return None
        logger.debug(f"Using repo-bound session {bound} for {working_dir}")
        return bound

    def resolve_working_dir(self, session_id: str | None, working_dir: str | None) -> str:
        if not session_id:
            if not working_dir:
                raise MissingInputError(
                    "Missing required input: `working_dir` is required when starting a new session."
                )
            return working_dir

        known = self._store.cached_cwd(session_id)
        if known:
            return known
        if working_dir:
            self._store.bind_cwd(session_id, working_dir)
            return working_dir
        inferred = self._store.infer_cwd(session_id)
        if inferred:
            return inferred
        raise MissingInputError(
            "Missing required input: `working_dir` could not be inferred for this `session_id`. "
            "Pass `working_dir` once (repo root) to bind it."
        )

    async def _run_once(self, tool_name: str, request: CallRequest) -> CallResult:
        with logger.contextualize(session=request.session_id or "new"):
            return await self._run_logged(tool_name, request)

    async def _run_logged(self, tool_name: str, request: CallRequest) -> CallResult:
        cwd = self.resolve_working_dir(request.session_id, request.working_dir)
        include_role_card = self._role_cards.claim(request.session_id)
        outbound = replace(
            request,
            working_dir=cwd,
            prompt=inject_context_header(
                self._config.origin,
                tool_name,
                request.prompt,
                include_role_card=include_role_card,
            ),
        )
        logger.info(f"{tool_name}: cwd={cwd}")
        result = await self._runner.run(outbound)
        with logger.contextualize(session=result.session_id):
            self._after_success(tool_name, request.prompt, cwd, result, include_role_card)
        return result

    def _after_success(
        self,
        tool_name: str,
        prompt: str,
        cwd: str,
        result: CallResult,
        include_role_card: bool,
    ) -> None:
        if include_role_card:
            self._role_cards.mark_sent(result.session_id)
        self._store.bind_cwd(result.session_id, cwd)
        self._history.record(result.session_id, history_label(tool_name, prompt))
        self._store.promote(result.session_id)
        if self._config.repo_session_binding:
            write_repo_session_id(cwd, result.session_id)

    @staticmethod
    def _payload(result: CallResult, reply_key: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "session_id": result.session_id,
            reply_key: result.reply,
            "resume_hint": resume_hint(result.session_id),
        }
        if result.usage is not None:
            payload["usage"] = result.usage
        return payload
