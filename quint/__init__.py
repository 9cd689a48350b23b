"""
quint - phase-gated reasoning cycle for AI agents.

Hypotheses move L0 -> L1 -> L2 through propose, verify and test; audit and
decide close the cycle with a decision record.
"""

from .fpf import FSM, PreconditionChecker, Tools
from .protocols import PreconditionError

try:
    from importlib.metadata import version

    __version__ = version("quint-code")
except Exception:
    __version__ = "0.0.0"

__all__ = ["Tools", "FSM", "PreconditionChecker", "PreconditionError"]
