"""
Logging utilities for the registration workflow.

Structured records carry their context under `record.data`, with signer keys
and other secrets masked before they reach a handler.

Usage:
    from sardis_rwa.logging_utils import get_logger

    logger = get_logger(__name__)

    with logger.context(operation="register_watch", serial="RLX-116500-ABC123"):
        logger.info("Submitting on-chain registration", gas_limit=500000)
"""
from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

MASK_PATTERN = "***"

SENSITIVE_FIELDS = frozenset({
    "private_key",
    "privateKey",
    "private_keys",
    "transmitter_private_key",
    "attestor_private_keys",
    "api_key",
    "oracle_api_key",
    "secret",
    "password",
    "authorization",
})


def mask_value(value: str, show_chars: int = 4) -> str:
    """Mask a sensitive value, showing first/last characters."""
    if not value or len(value) <= show_chars * 2:
        return MASK_PATTERN
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def is_sensitive_key(key: str) -> bool:
    key_lower = key.lower().replace("-", "_")
    return key in SENSITIVE_FIELDS or key_lower in SENSITIVE_FIELDS or any(
        sensitive in key_lower for sensitive in ("secret", "password", "private_key", "api_key")
    )


def mask_sensitive_data(data: Any, _depth: int = 0, _max_depth: int = 10) -> Any:
    """Recursively mask sensitive values in dicts and lists."""
    if _depth > _max_depth:
        return data

    if isinstance(data, dict):
        return {
            key: MASK_PATTERN if is_sensitive_key(str(key))
            else mask_sensitive_data(value, _depth + 1, _max_depth)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, _depth + 1, _max_depth) for item in data)
    return data


@dataclass
class RunContext:
    """Context for one workflow invocation."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    extra: Dict[str, Any] = field(default_factory=dict)

    def elapsed_ms(self) -> float:
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "run_id": self.run_id,
            "operation": self.operation,
            "elapsed_ms": self.elapsed_ms(),
        }
        if self.extra:
            result.update(mask_sensitive_data(self.extra))
        return result


_run_context_var: ContextVar[Optional[RunContext]] = ContextVar("rwa_run_context", default=None)


class StructuredLogger:
    """Logger wrapper that adds structured context and masking.

    The run context lives in a ContextVar, so concurrent invocations on
    separate tasks never see each other's context.
    """

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def current_context(self) -> Optional[RunContext]:
        return _run_context_var.get()

    @contextmanager
    def context(
        self,
        operation: str,
        run_id: Optional[str] = None,
        **extra: Any,
    ) -> Iterator[RunContext]:
        ctx = RunContext(
            run_id=run_id or str(uuid.uuid4()),
            operation=operation,
            extra=extra,
        )
        token = _run_context_var.set(ctx)
        try:
            yield ctx
        finally:
            _run_context_var.reset(token)

    def _build_extra(self, **kwargs: Any) -> Dict[str, Any]:
        extra = mask_sensitive_data(kwargs)
        if self.current_context:
            extra.update(self.current_context.to_dict())
        return extra

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, extra={"data": self._build_extra(**kwargs)})

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, extra={"data": self._build_extra(**kwargs)})

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, extra={"data": self._build_extra(**kwargs)})

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, extra={"data": self._build_extra(**kwargs)})


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "data") and record.data:
            log_data["data"] = record.data

        return json.dumps(log_data, default=str)


def configure_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """Configure root logging for the workflow process."""
    handler = logging.StreamHandler()
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    logging.basicConfig(level=level, handlers=[handler], force=True)


__all__ = [
    "mask_value",
    "mask_sensitive_data",
    "is_sensitive_key",
    "RunContext",
    "StructuredLogger",
    "get_logger",
    "JsonFormatter",
    "configure_logging",
]
