#!/usr/bin/env python3
"""
Diagnostic logging helpers for the Interception Engine.

The engine never configures handlers or transports. Every component takes an
optional injected ``logging.Logger``; when none is given it falls back to a
child of the package logger returned by ``get_logger``.

Structured events carry their payload in ``record.event`` and
``record.fields`` so that a structured handler (JSON, Seq, ...) can forward
them without parsing the message text.
"""

from __future__ import annotations

import logging
from typing import Any, Optional


LOGGER_NAME = "interception_engine"

# Component names used across the package
SOLVER = "solver"
TRAJECTORY = "trajectory"
GUIDANCE = "guidance"
BLAST = "blast"
SIMULATOR = "simulator"
GENETIC = "genetic"
OPTIMIZER = "optimizer"


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get the package logger or one of its component children.

    Args:
        component: Component name (e.g. ``"solver"``), or None for the root
            package logger.

    Returns:
        Logger named ``interception_engine[.component]``.
    """
    if not component:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


def _format_fields(fields: dict[str, Any]) -> str:
    parts = []
    for key, value in fields.items():
        if isinstance(value, float):
            parts.append(f"{key}={value:.3f}")
        else:
            parts.append(f"{key}={value}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any
) -> None:
    """
    Emit a structured diagnostic event.

    The rendered message is ``"<event> key=value ..."``; the raw values are
    attached to the record as ``event`` and ``fields``.

    Args:
        logger: Logger to emit through.
        level: Standard logging level.
        event: Short event name, e.g. ``"solution_found"``.
        **fields: Event payload.
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(
        level,
        "%s %s",
        event,
        _format_fields(fields),
        extra={"event": event, "fields": dict(fields)}
    )
