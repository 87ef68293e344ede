"""
Logging setup and request-scoped loggers.
"""

import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that tags every record with a planning request id."""

    def process(self, msg, kwargs):
        request_id = self.extra.get("request_id", "-")
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("request_id", request_id)
        kwargs["extra"] = extra
        return f"[req={request_id}] {msg}", kwargs


def new_request_id() -> str:
    """Short random id for correlating log lines of one request."""
    return uuid.uuid4().hex[:8]


def get_request_logger(name: str, request_id: Optional[str] = None) -> RequestLoggerAdapter:
    return RequestLoggerAdapter(
        logging.getLogger(name), {"request_id": request_id or new_request_id()}
    )


def get_log_dir() -> Path:
    """Platform-specific log directory."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Logs" / "RailConnect"
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home())) / "RailConnect" / "logs"
    return Path.home() / ".local" / "share" / "railconnect" / "logs"


def setup_logging(level: str = "INFO", log_to_file: bool = True, log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Setup application logging with file and console output.

    Args:
        level: Root log level name
        log_to_file: Also write to railconnect.log in the log directory
        log_dir: Override for the log directory

    Returns:
        Path of the log file, or None when only console logging is used
    """
    handlers = [logging.StreamHandler()]
    log_file = None

    if log_to_file:
        directory = log_dir or get_log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / "railconnect.log"
        handlers.append(logging.FileHandler(str(log_file)))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    # Transport chatter stays quieter than planning decisions
    logging.getLogger("railconnect.api").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    return log_file
