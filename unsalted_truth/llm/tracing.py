"""
Optional Langfuse tracing of generation calls.

Each provider call is recorded as a Langfuse *generation* carrying the
model name, the (redacted) prompt, and the reply or error. With tracing
disabled, missing credentials, or the ``tracing`` extra not installed, every
helper here is a no-op and callers never need to check.
"""

from __future__ import annotations

from contextlib import contextmanager
import json
import logging
import os
from typing import Any, Iterator

from ..config import LangfuseConfig
from ..utils.logging import sanitize_text

logger = logging.getLogger(__name__)

_CLIENT: Any | None = None
_CFG = LangfuseConfig()


def setup_langfuse(cfg: LangfuseConfig) -> None:
    """Create the Langfuse client when tracing is enabled and configured."""
    global _CLIENT, _CFG  # noqa: PLW0603
    _CFG = cfg
    _CLIENT = None
    if not cfg.enabled:
        return

    public_key = cfg.public_key or os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = cfg.secret_key or os.getenv("LANGFUSE_SECRET_KEY")
    if not public_key or not secret_key:
        logger.warning("Langfuse tracing enabled but keys are missing; tracing disabled")
        return

    try:
        from langfuse import Langfuse  # type: ignore
    except ImportError:
        logger.warning("Langfuse tracing enabled but the langfuse package is not installed")
        return

    _CLIENT = Langfuse(
        public_key=public_key,
        secret_key=secret_key,
        host=cfg.host or os.getenv("LANGFUSE_HOST"),
        environment=cfg.environment or os.getenv("LANGFUSE_ENVIRONMENT"),
        release=cfg.release or os.getenv("LANGFUSE_RELEASE"),
    )


def get_tracer() -> Any | None:
    return _CLIENT


class GenerationTrace:
    """Handle for one traced generation call."""

    def __init__(self, observation: Any | None = None) -> None:
        self._observation = observation

    @property
    def active(self) -> bool:
        return self._observation is not None

    def succeed(self, output: Any) -> None:
        self._update(output=_payload(output))

    def fail(self, exc: Exception) -> None:
        self._update(level="ERROR", status_message=f"{type(exc).__name__}: {exc}")

    def _update(self, **fields: Any) -> None:
        if self._observation is None:
            return
        try:
            self._observation.update(**fields)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Langfuse update failed: %s", exc)


@contextmanager
def trace_generation(name: str, model: str, prompt: str, **metadata: Any) -> Iterator[GenerationTrace]:
    """Record a generation call for the duration of the block.

    Args:
        name: Observation name, e.g. ``gemini.llm_translate_chunk``
        model: Model identifier sent to the provider
        prompt: Prompt text, redacted and truncated per config
        **metadata: Scalar attributes attached to the observation
    """
    client = _CLIENT
    if client is None:
        yield GenerationTrace()
        return

    try:
        manager = client.start_as_current_generation(
            name=name,
            model=model,
            input=_payload(prompt),
            metadata={key: _scalar(value) for key, value in metadata.items() if value is not None},
        )
        observation = manager.__enter__()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Langfuse generation could not start: %s", exc)
        yield GenerationTrace()
        return

    try:
        yield GenerationTrace(observation)
    finally:
        try:
            manager.__exit__(None, None, None)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Langfuse generation could not end: %s", exc)


def flush() -> None:
    """Send pending observations; call before the process exits."""
    if _CLIENT is None:
        return
    try:
        _CLIENT.flush()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Langfuse flush failed: %s", exc)


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=True, default=str)
    return sanitize_text(text, _CFG.redaction, _CFG.max_text_chars)


def _scalar(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
