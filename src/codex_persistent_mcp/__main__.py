import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from codex_persistent_mcp import __version__
from codex_persistent_mcp.app_config import load_app_config
from codex_persistent_mcp.logging_config import setup_logging
from codex_persistent_mcp.server import SERVER_NAME, create_server
from codex_persistent_mcp.service import CodexBridge


def main() -> None:
    load_dotenv()

    app = load_app_config()
    log_descriptions = setup_logging(
        level=app.log_level,
        consumers=app.log_consumers,
        log_dir=Path(app.codex_home) / "log",
    )

    server = create_server(CodexBridge(app))

    logger.info(f"{SERVER_NAME} {__version__} running (cwd: {Path.cwd()})")
    logger.info(f"Codex binary: {app.codex_bin} | CODEX_HOME: {app.codex_home}")
    if app.register_in_history:
        logger.info(f"History registration: {app.history_path}")
    if app.repo_session_binding:
        logger.info("Repo session binding: enabled")
    if log_descriptions:
        logger.info(f"Logging: {', '.join(log_descriptions)}")

    try:
        server.run(transport="stdio")
    except KeyboardInterrupt:
        pass
    except Exception as ex:
        logger.error(f"Server error: {ex}")
        sys.exit(1)


if __name__ == "__main__":
    main()
