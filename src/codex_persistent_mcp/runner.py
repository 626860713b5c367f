from __future__ import annotations

import asyncio
import contextlib
import subprocess
import time

from loguru import logger

from codex_persistent_mcp.errors import InvocationError
from codex_persistent_mcp.events import RunState, reduce_records, to_result
from codex_persistent_mcp.models import CallRequest, CallResult
from codex_persistent_mcp.stream_decoder import JsonLineDecoder

DEFAULT_TIMEOUT_MS = 120_000
MIN_TIMEOUT_MS = 1_000
MAX_TIMEOUT_MS = 600_000

_READ_CHUNK = 64 * 1024
_REAP_TIMEOUT = 5.0


def clamp_timeout_ms(timeout_ms: int) -> int:
    return max(MIN_TIMEOUT_MS, min(MAX_TIMEOUT_MS, int(timeout_ms)))


def toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_codex_args(
    *,
    cwd: str,
    prompt: str,
    session_id: str | None = None,
    model: str | None = None,
    reasoning_effort: str | None = None,
) -> list[str]:
    args = ["exec", "--skip-git-repo-check", "--json", "-C", cwd]
    if model:
        args.extend(["-m", model])
    if reasoning_effort:
        args.extend(["-c", f"model_reasoning_effort={toml_string(reasoning_effort)}"])
    if session_id:
        return [*args, "resume", session_id, prompt]
    return [*args, prompt]


class CodexRunner:
    """Runs one ``codex exec --json`` invocation and reduces its event stream."""

    def __init__(self, codex_bin: str = "codex", default_timeout_ms: int = DEFAULT_TIMEOUT_MS):
        self._codex_bin = codex_bin
        self._default_timeout_ms = clamp_timeout_ms(default_timeout_ms)

    @property
    def codex_bin(self) -> str:
        return self._codex_bin

    async def run(self, request: CallRequest) -> CallResult:
        """Run codex for a request whose working directory and prompt are final."""
        if not request.working_dir:
            raise ValueError("CodexRunner.run requires a resolved working directory")
        timeout_ms = clamp_timeout_ms(request.timeout_ms or self._default_timeout_ms)
        args = build_codex_args(
            cwd=request.working_dir,
            prompt=request.prompt,
            session_id=request.session_id,
            model=request.model,
            reasoning_effort=request.reasoning_effort,
        )

        logger.debug(
            "Spawning codex | session={session} | cwd={cwd} | timeout_ms={timeout}",
            session=request.session_id or "new",
            cwd=request.working_dir,
            timeout=timeout_ms,
        )
        started = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                self._codex_bin,
                *args,
                stdin=subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as ex:
            raise InvocationError(f"failed to start codex: {ex}") from ex

        stderr = bytearray()
        try:
            state, returncode = await asyncio.wait_for(
                self._communicate(proc, stderr),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            await self._kill(proc)
            details = stderr.decode(errors="replace").strip()
            message = f"codex timed out after {timeout_ms} ms"
            logger.warning(message)
            raise InvocationError(f"{message}\n{details}" if details else message) from None
        except BaseException:
            # Cancelled by the caller: the child must be gone before the session is released.
            logger.debug(f"codex call interrupted, killing process {proc.pid}")
            await self._kill(proc)
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "codex finished | exit={code} | elapsed_ms={elapsed:.0f} | messages={count}",
            code=returncode,
            elapsed=elapsed_ms,
            count=len(state.messages),
        )

        if returncode != 0:
            details = stderr.decode(errors="replace").strip() or f"codex exited with code {returncode}"
            logger.warning(f"codex failed (exit {returncode}): {details[:500]}")
            raise InvocationError(details)

        return to_result(state)

    async def _communicate(self, proc: asyncio.subprocess.Process, stderr: bytearray) -> tuple[RunState, int]:
        state, _ = await asyncio.gather(
            self._read_events(proc.stdout),
            self._read_stderr(proc.stderr, stderr),
        )
        returncode = await proc.wait()
        return state, returncode

    @staticmethod
    async def _read_events(stream: asyncio.StreamReader | None) -> RunState:
        state = RunState()
        if stream is None:
            return state
        decoder = JsonLineDecoder()
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            state = reduce_records(decoder.feed(chunk), state)
        return reduce_records(decoder.flush(), state)

    @staticmethod
    async def _read_stderr(stream: asyncio.StreamReader | None, sink: bytearray) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            sink.extend(chunk)

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        try:
            await asyncio.wait_for(proc.wait(), timeout=_REAP_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"codex process {proc.pid} did not exit after kill")
