"""
Logging setup for Unsalted Truth.

Console output goes through rich; an optional file sink writes one JSON
object per line so feed loads, translations, and analyses can be grepped
by their ``event`` field. Model replies have their own logger
(``unsalted_truth.llm``) because they are large and may need redaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from ..config import LoggingConfig


ROOT_LOGGER = "unsalted_truth"
LLM_LOGGER = "unsalted_truth.llm"

_URL_RE = re.compile(r"https?://\S+")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the package logger from ``cfg`` and return it."""
    level = _level_from_string(cfg.level)
    logger = _reset_logger(ROOT_LOGGER, level)

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(_with_level(console, level))

    if cfg.file:
        if cfg.format == "jsonl":
            formatter: logging.Formatter = JsonlFormatter()
        else:
            formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        logger.addHandler(_file_handler(_resolve(log_dir, cfg.filename), formatter, level))

    return logger


def setup_llm_logger(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger | None:
    """Return the model-reply logger, or None when reply logging is off."""
    if not cfg.llm_log_enabled:
        return None
    level = _level_from_string(cfg.level)
    logger = _reset_logger(LLM_LOGGER, level)
    logger.addHandler(_file_handler(_resolve(log_dir, cfg.llm_log_file), JsonlFormatter(), level))
    return logger


def log_event(logger: logging.Logger | None, message: str, **fields: Any) -> None:
    if logger is None:
        return
    logger.info(message, extra=fields)


def redact_text(text: str, mode: str) -> str:
    """Apply a redaction mode to model text before it is logged or traced."""
    if mode == "redact_content":
        return ""
    if mode == "redact_urls_authors":
        return _URL_RE.sub("[REDACTED_URL]", text)
    return text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


def sanitize_text(text: str, mode: str, max_chars: int = 20000) -> str:
    return truncate_text(redact_text(text, mode), max_chars)


class JsonlFormatter(logging.Formatter):
    """Format records as single-line JSON, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _reset_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    return logger


def _file_handler(path: Path, formatter: logging.Formatter, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(formatter)
    return _with_level(handler, level)


def _with_level(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    return handler


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def _resolve(log_dir: Path | None, filename: str) -> Path:
    path = Path(filename)
    if log_dir is None or path.is_absolute():
        return path
    return log_dir / path
