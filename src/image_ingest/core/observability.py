"""Structured logging helpers shared by the engine and the backends."""

import time
import uuid
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from enum import Enum

from .logging_config import get_logger


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_metadata(self, **kwargs) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Structured logger with context support."""

    def __init__(self, name: str, level: Optional[int] = None):
        self._logger = get_logger(name)
        if level is not None:
            self._logger.setLevel(level)

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        **kwargs,
    ):
        exc_info = kwargs.pop("exc_info", False)

        if context:
            formatted_message = f"[{context.correlation_id}] {message}"
            if context.operation:
                formatted_message = f"[{context.operation}] {formatted_message}"

            if context.metadata or kwargs:
                metadata_str = ", ".join(
                    f"{k}={v}" for k, v in {**context.metadata, **kwargs}.items()
                )
                formatted_message = f"{formatted_message} ({metadata_str})"
        elif kwargs:
            metadata_str = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted_message = f"{message} ({metadata_str})"
        else:
            formatted_message = message

        getattr(self._logger, level.value.lower())(formatted_message, exc_info=exc_info)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log info message."""
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        """Log error message."""
        self._log(LogLevel.ERROR, message, context, **kwargs)


@dataclass
class StageTiming:
    """Elapsed time of one ingestion stage."""

    stage: str
    start_time: float
    end_time: float = 0.0

    def stop(self) -> "StageTiming":
        self.end_time = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000


def start_stage(stage: str) -> StageTiming:
    """Start timing a stage; call ``stop()`` on the result when it ends."""
    return StageTiming(stage=stage, start_time=time.perf_counter())

