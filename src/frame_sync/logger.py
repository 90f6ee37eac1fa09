import json
import logging
import os
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"
_TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
_FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"

# Loggers that are chatty at INFO and only useful when debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg.

    Records logged with ``extra={"request_id": ...}`` carry it through as
    ``request_id``; tracebacks land in ``exc``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(debug_format: str, pattern: str) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    return logging.Formatter(pattern, datefmt=_DATEFMT)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """
    Configure logging for the given execution mode.

    Args:
        mode: "mcp" logs to a file only (stdout carries JSON-RPC);
            "cli" and "http" log to stderr.
        debug: Force DEBUG regardless of LOG_LEVEL.
        log_file: Log file path (overrides LOG_FILE). In cli/http mode the
            file is written in addition to stderr.
        debug_format: "text" or "json".

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR.
                   Default: WARNING for mcp mode, INFO otherwise.
        LOG_FILE: Log file for mcp mode. Default: /tmp/frame-sync-server.log
    """
    default_level = "WARNING" if mode == "mcp" else "INFO"
    env_level = os.getenv("LOG_LEVEL", default_level).upper()
    log_level = (
        logging.DEBUG if debug else getattr(logging, env_level, logging.INFO)
    )

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        target = log_file or os.getenv("LOG_FILE", "/tmp/frame-sync-server.log")
        file_handler = logging.FileHandler(target, mode="a")
        file_handler.setFormatter(_formatter(debug_format, _TEXT_FORMAT))
        handlers.append(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_formatter(debug_format, _TEXT_FORMAT))
        handlers.append(stderr_handler)
        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(_formatter(debug_format, _FILE_FORMAT))
            handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    if log_level != logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
