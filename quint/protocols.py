"""
quint interface contracts
=========================

The capability interfaces the gating engine consumes, and the error
taxonomy shared by every layer.

Components:
- LayerStore:  the structured store as seen by the engine (holon lookup,
               per-layer counts). SQLiteStore is the shipped implementation.
- LayerSource: one backing answer to "which layer is holon X in?". The
               filesystem tiers and the store each provide one; the resolver
               composes them in order.

Error handling philosophy:
- Invalid arguments raise ValueError
- Store failures raise StorageError
- A rejected tool call raises PreconditionError, exactly one per call
- A holon missing from every layer source raises HolonNotFoundError
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from quint.types import Holon, LayerCount

# =============================================================================
# ERRORS
# =============================================================================


class QuintError(Exception):
    """Base class for quint errors."""


class StorageError(QuintError):
    """The structured store failed to answer."""


class HolonNotFoundError(QuintError):
    """No layer source has a record for the holon."""

    def __init__(self, holon_id: str):
        self.holon_id = holon_id
        super().__init__(f"holon {holon_id} not found")


class PreconditionError(QuintError):
    """A tool call was rejected before any effect ran.

    Carries the tool name, what condition failed and what to do next. The
    string form is surfaced to the calling agent verbatim.
    """

    def __init__(self, tool: str, condition: str, suggestion: str):
        self.tool = tool
        self.condition = condition
        self.suggestion = suggestion
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"Precondition failed for {self.tool}: {self.condition}. "
            f"Suggestion: {self.suggestion}"
        )

    def to_dict(self) -> dict:
        return {"tool": self.tool, "condition": self.condition, "suggestion": self.suggestion}


# =============================================================================
# PROTOCOLS
# =============================================================================


@runtime_checkable
class LayerStore(Protocol):
    """What the engine needs from the structured store."""

    def get_holon(self, holon_id: str) -> Optional[Holon]:
        """Return the holon, or None if the store has no such record.

        Raises StorageError if the store cannot be queried.
        """
        ...

    def count_holons_by_layer(self, scope: str = "default") -> List[LayerCount]:
        """Return per-layer holon counts for a context scope."""
        ...


@runtime_checkable
class LayerSource(Protocol):
    """One backing implementation of layer lookup."""

    name: str

    def layer_of(self, holon_id: str) -> Optional[str]:
        """Return the layer currently holding the holon, or None."""
        ...
