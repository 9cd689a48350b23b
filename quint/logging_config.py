"""Logging setup for quint.

Two sinks, both under ``<data dir>/logs``:
- ``local-YYYY-MM-DD.log``: the ``quint`` logger hierarchy
- ``gate-events-YYYY-MM-DD.log``: one line per gate decision or phase change

Nothing is written to disk until ``setup_quint_logging`` has run; before
that, gate events go nowhere.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from quint.utils import get_quint_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
GATE_LOG_FORMAT = "%(asctime)s | %(message)s"
GATE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Gate events have their own file and do not reach the main log
GATE_LOGGER = "quint.gate"


def _log_dir() -> Path:
    log_dir = get_quint_home() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def _add_file_handler(
    logger: logging.Logger, log_file: Path, formatter: logging.Formatter
) -> bool:
    """Attach a file handler unless one for ``log_file`` is already there."""
    for h in logger.handlers:
        if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file:
            return False
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return True


def setup_quint_logging(project: str = "default", level: Optional[str] = None) -> logging.Logger:
    """Configure the ``quint`` logger and the gate event log with daily files.

    Args:
        project: Project label, recorded in the first log line
        level: Level name; falls back to ``QUINT_LOG_LEVEL`` then INFO

    Returns:
        The configured ``quint`` logger
    """
    level_name = (level or os.environ.get("QUINT_LOG_LEVEL") or "INFO").upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logger = logging.getLogger("quint")
    logger.setLevel(log_level)
    log_dir = _log_dir()

    added = _add_file_handler(
        logger, log_dir / f"local-{_today()}.log", logging.Formatter(LOG_FORMAT)
    )

    gate_logger = logging.getLogger(GATE_LOGGER)
    gate_logger.setLevel(logging.INFO)
    gate_logger.propagate = False
    _add_file_handler(
        gate_logger,
        log_dir / f"gate-events-{_today()}.log",
        logging.Formatter(GATE_LOG_FORMAT, datefmt=GATE_DATE_FORMAT),
    )

    if log_level == logging.DEBUG:
        has_console = any(
            isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
            for h in logger.handlers
        )
        if not has_console:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(console)

    if added:
        logger.info(f"quint logging started for project={project}")
    return logger


def log_gate_event(event_type: str, details: str, project: str = "default") -> None:
    """Record one line in the gate event log."""
    logging.getLogger(GATE_LOGGER).info(f"{event_type} | project={project} | {details}")


def log_permit(project: str, tool: str, phase: str) -> None:
    log_gate_event("permit", f"tool={tool}, phase={phase}", project=project)


def log_reject(project: str, tool: str, condition: str) -> None:
    log_gate_event("reject", f"tool={tool}, condition={condition}", project=project)


def log_transition(
    project: str, from_phase: str, to_phase: str, tool: Optional[str] = None
) -> None:
    details = f"from={from_phase}, to={to_phase}"
    if tool:
        details += f", tool={tool}"
    log_gate_event("transition", details, project=project)
