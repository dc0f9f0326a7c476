"""
Logging configuration for the assistant backend.

Console output is always on; ``LOG_FILE`` adds a rotating file. Handlers
are registered under fixed names so ``create_app`` can be called repeatedly
(tests build one app per client) without duplicating output.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

CONSOLE_HANDLER = "todo_assistant.console"
FILE_HANDLER = "todo_assistant.file"

# Libraries below log every request/statement at INFO or DEBUG
QUIET_LOGGERS = (
    # LLM client stack
    "openai",
    "httpx",
    "httpcore",
    "langchain",
    "langchain_openai",
    "langsmith",
    # Storage
    "aiosqlite",
    # Per-request access lines, the routers log what matters
    "uvicorn.access",
)


def _named_handler(root: logging.Logger, name: str) -> Optional[logging.Handler]:
    for handler in root.handlers:
        if handler.get_name() == name:
            return handler
    return None


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure root logging.

    Repeated calls update the level and add the file handler if it is
    missing, but never install a second console handler.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(log_format)

    if _named_handler(root, CONSOLE_HANDLER) is None:
        console = logging.StreamHandler(sys.stdout)
        console.set_name(CONSOLE_HANDLER)
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_file and _named_handler(root, FILE_HANDLER) is None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.set_name(FILE_HANDLER)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        logging.getLogger(__name__).info(f"Logging to file: {log_path.absolute()}")

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
