"""ScholarMate entry point.

Integrated mode (default) serves the API and the NiceGUI chat page from one
uvicorn process on PORT (8000). RUN_MODE=separate starts the API through its
factory on port 8000 and the chat page on port 8080 as two child processes.
"""

import logging
import os
import subprocess
import sys
import time

from dotenv import load_dotenv
from fastapi import FastAPI

from scholarmate.agent.config import ChatConfig, get_chat_config
from scholarmate.api.app import create_app

logger = logging.getLogger(__name__)

API_FACTORY = "scholarmate.api.app:create_app"
UI_MODULE = "scholarmate.ui.chat_page"


def configure_logging() -> None:
    """Send application logs to stdout at LOG_LEVEL (default INFO)."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_app(config: ChatConfig | None = None) -> FastAPI:
    """Create the API and mount the chat page on it.

    The configuration is read once here and shared by the whole app.
    """
    from nicegui import ui

    from scholarmate.ui import chat_page  # noqa: F401 - registers "/"

    config = config or get_chat_config()
    app = create_app(config=config)
    ui.run_with(
        app,
        title="ScholarMate",
        favicon="🎓",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "scholarmate-secret"),
    )
    logger.info(
        f"Chat model {config.model_name}, search grounding "
        f"{'on' if config.enable_search else 'off'}"
    )
    return app


def run_integrated() -> None:
    import uvicorn

    app = build_app()
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Chat UI on http://localhost:{port}/, API docs on /docs")
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def separate_commands() -> list[list[str]]:
    """Child process command lines for the API and the chat page."""
    api = [
        sys.executable, "-m", "uvicorn", API_FACTORY, "--factory",
        "--host", os.getenv("HOST", "0.0.0.0"), "--port", "8000",
    ]
    return [api, [sys.executable, "-m", UI_MODULE]]


def run_separate() -> None:
    """Run the API and the chat page as two processes until either exits."""
    logger.info("API on http://localhost:8000, chat UI on http://localhost:8080")
    procs = [subprocess.Popen(cmd) for cmd in separate_commands()]
    try:
        while all(proc.poll() is None for proc in procs):
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down servers...")
    finally:
        for proc in procs:
            proc.terminate()
        for proc in procs:
            proc.wait()


def main() -> None:
    """Entry point for the `scholarmate` script. RUN_MODE picks the layout."""
    load_dotenv()
    configure_logging()
    mode = os.getenv("RUN_MODE", "integrated").lower()
    logger.info(f"Starting ScholarMate in {mode} mode")

    if mode == "separate":
        run_separate()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
