"""Structured logging configuration using structlog.

Provides correlation IDs for tracing an analysis run down to the image and
object being processed, tags every event with the run's quantization levels
and patch size, and configurable output formats (JSON for batch jobs,
colored console for interactive use).
"""

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from btcstats.config import settings

# Context variables for correlation IDs
_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_image_id: ContextVar[int | None] = ContextVar("image_id", default=None)
_object_id: ContextVar[int | None] = ContextVar("object_id", default=None)

# Analysis parameters of the current run
_n_levels: ContextVar[int | None] = ContextVar("n_levels", default=None)
_patch_size: ContextVar[tuple[int, int] | None] = ContextVar("patch_size", default=None)


def set_correlation_context(
    run_id: str | None = None,
    image_id: int | None = None,
    object_id: int | None = None,
    n_levels: int | None = None,
    patch_size: tuple[int, int] | None = None,
) -> None:
    """Set correlation IDs for the current context.

    Args:
        run_id: Unique identifier for the analysis run
        image_id: 1-based index of the image within the image set
        object_id: Object label currently being analyzed
        n_levels: Quantization levels of the run
        patch_size: (height, width) of the analysis patches
    """
    if run_id is not None:
        _run_id.set(run_id)
    if image_id is not None:
        _image_id.set(image_id)
    if object_id is not None:
        _object_id.set(object_id)
    if n_levels is not None:
        _n_levels.set(n_levels)
    if patch_size is not None:
        _patch_size.set(patch_size)


def clear_correlation_context() -> None:
    """Clear all correlation context variables."""
    _run_id.set(None)
    _image_id.set(None)
    _object_id.set(None)
    _n_levels.set(None)
    _patch_size.set(None)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to add correlation IDs to log events."""
    _ = logger, method_name  # Required by structlog processor signature
    run_id = _run_id.get()
    image_id = _image_id.get()
    object_id = _object_id.get()
    n_levels = _n_levels.get()
    patch_size = _patch_size.get()

    if run_id is not None:
        event_dict["run_id"] = run_id
    if image_id is not None:
        event_dict["image_id"] = image_id
    if object_id is not None:
        event_dict["object_id"] = object_id
    # Explicit event values take precedence over the run parameters
    if n_levels is not None:
        event_dict.setdefault("n_levels", n_levels)
    if patch_size is not None:
        event_dict.setdefault("patch_size", f"{patch_size[0]}x{patch_size[1]}")

    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog with the specified settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.LOG_LEVEL.
        log_format: Output format ("console" or "json").
                    Defaults to settings.LOG_FORMAT.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_correlation_ids,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to match
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
