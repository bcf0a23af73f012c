import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

_FORMAT = "[%(asctime)s] [%(name)s] %(message)s"


def _build_file_handler(log_path: str) -> RotatingFileHandler:
    file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(_FORMAT, "%Y-%m-%d %H:%M:%S"))
    file_handler.setLevel(logging.DEBUG)
    file_handler.name = "acta_file"
    return file_handler


def _build_stream_handler(level: str) -> logging.StreamHandler:
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(_FORMAT, "%H:%M:%S"))
    stream_handler.setLevel(level)
    stream_handler.name = "acta_stream"
    return stream_handler


def _replace_handlers(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    logger.handlers = []
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False


def configure_logging(log_dir: Optional[str] = None, level: str = "INFO") -> Optional[str]:
    """Route application and uvicorn logs to stderr and, optionally, a rotating file.

    Returns the log file path when a file handler was installed.
    """
    handlers: list[logging.Handler] = [_build_stream_handler(level)]
    log_path = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_path = os.path.join(log_dir, f"acta_{timestamp}.log")
        handlers.append(_build_file_handler(log_path))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    _replace_handlers(root_logger, handlers)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.setLevel(logging.INFO)
        _replace_handlers(uv_logger, handlers)

    root_logger.info("Logging initialized: %s", log_path or "stderr")
    return log_path
