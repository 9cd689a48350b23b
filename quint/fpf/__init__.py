"""First-principles reasoning cycle: phases, gates and tool effects."""

from quint.fpf.fsm import FSM, State
from quint.fpf.preconditions import PreconditionChecker
from quint.fpf.tools import SearchResults, Tools

__all__ = [
    "FSM",
    "State",
    "PreconditionChecker",
    "SearchResults",
    "Tools",
]
