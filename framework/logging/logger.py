import sys
from pathlib import Path
from contextvars import ContextVar
from typing import Optional
from loguru import logger
from framework.config import settings

# Trace id of the current unit of work / caller, shared across awaits
_current_trace_id: ContextVar[Optional[str]] = ContextVar("current_trace_id", default=None)

LOG_DIR = Path(settings.LOG_DIR)

class LogConfig:
    """Global logging configuration using Loguru."""
    @classmethod
    def setup_logging(cls, level: Optional[str] = None):
        level = level or settings.LOG_LEVEL
        LOG_DIR.mkdir(exist_ok=True)
        logger.remove()

        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            diagnose=True,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<magenta>Trace:{extra[trace_id]}</magenta> - <level>{message}</level>"
            ),
            level=level,
        )

        logger.add(
            LOG_DIR / "data_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            enqueue=True,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | Trace:{extra[trace_id]} - {message}",
            level="DEBUG",
        )

        logger.add(
            LOG_DIR / "error_{time:YYYY-MM-DD}.log",
            level="ERROR",
            rotation="100 MB",
            enqueue=True,
        )

        logger.configure(extra={"trace_id": "system"})


def bind_trace_id(trace_id: Optional[str]):
    """Set the trace id picked up by get_logger(); returns the token for reset."""
    return _current_trace_id.set(trace_id)


def get_logger(name: str = None, trace_id: Optional[str] = None):
    """Get logger instance; trace_id defaults to the one bound in the current context."""
    trace_id = trace_id or _current_trace_id.get() or "unknown"

    if name:
        return logger.bind(name=name, trace_id=trace_id)
    else:
        return logger.bind(trace_id=trace_id)
