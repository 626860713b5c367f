import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

DEFAULT_LOG_FILE = "codex-persistent-mcp.log"

# Records logged outside a tool call carry this in place of a session id.
NO_SESSION = "-"

_CONSOLE_FORMAT = "{time:HH:mm:ss.SSS} | {level:<8} | session={extra[session]} | {name}:{line} - {message}"
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | pid={process} | session={extra[session]} | "
    "{name}:{function}:{line} - {message}"
)


@runtime_checkable
class LogConsumer(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class ConsoleLogConsumer:
    """Plain-text sink on stderr.

    stdout carries the MCP stdio transport, so a ``stream`` other than
    ``stderr`` is refused rather than corrupting the protocol.
    """

    def __init__(self, stream: str = "stderr"):
        if stream != "stderr":
            raise ValueError(f"console log consumer must write to stderr, not {stream!r}")

    def register(self, level: str) -> None:
        logger.add(
            sys.stderr,
            level=level,
            colorize=False,
            backtrace=False,
            diagnose=False,
            format=_CONSOLE_FORMAT,
        )

    def describe(self, level: str) -> str:
        return f"console (stderr, {level})"


class FileLogConsumer:
    def __init__(
        self,
        path: str = DEFAULT_LOG_FILE,
        rotation: str = "5 MB",
        retention: int = 3,
        log_dir: str | Path | None = None,
    ):
        resolved = Path(path).expanduser()
        if not resolved.is_absolute() and log_dir is not None:
            resolved = Path(log_dir).expanduser() / resolved
        self._path = resolved
        self._rotation = rotation
        self._retention = retention

    @property
    def path(self) -> Path:
        return self._path

    def register(self, level: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self._path),
            level=level,
            format=_FILE_FORMAT,
            rotation=self._rotation,
            retention=self._retention,
            encoding="utf-8",
            diagnose=False,
        )

    def describe(self, level: str) -> str:
        return f"file ({self._path}, {level})"


_CONSUMER_TYPES: dict[str, type] = {
    "console": ConsoleLogConsumer,
    "file": FileLogConsumer,
}

_DEFAULT_CONSUMERS = [{"type": "console"}]


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    log_dir: str | Path | None = None,
) -> list[str]:
    """Replace loguru's sinks with the configured consumers and describe them.

    Relative ``file`` paths resolve under ``log_dir`` (``<CODEX_HOME>/log`` when
    started from the command line). Every record carries a ``session`` field,
    bound per call by the service.
    """
    logger.remove()
    logger.configure(extra={"session": NO_SESSION})

    if consumers is None:
        consumers = _DEFAULT_CONSUMERS

    descriptions: list[str] = []
    skipped: list[str] = []
    for config in consumers:
        sink_type = config.get("type", "")
        cls = _CONSUMER_TYPES.get(sink_type)
        if cls is None:
            skipped.append(f"unknown log consumer type {sink_type!r}")
            continue

        kwargs = {k: v for k, v in config.items() if k not in ("type", "level")}
        if cls is FileLogConsumer:
            kwargs.setdefault("log_dir", log_dir)
        sink_level = str(config.get("level", level)).upper()

        try:
            consumer = cls(**kwargs)
        except (TypeError, ValueError) as ex:
            skipped.append(f"{sink_type} log consumer: {ex}")
            continue
        consumer.register(sink_level)
        descriptions.append(consumer.describe(sink_level))

    # Reported once the surviving sinks exist, so the warnings are not lost.
    for reason in skipped:
        logger.warning(f"Skipped {reason}")

    return descriptions
