"""
Shared knowledge-base types for quint.

These are the vocabulary between the gating engine, the store, the flat
file tiers and the outer surfaces (MCP, CLI). The store persists them, the
engine only reads them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

# === Shared Utility Functions ===


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


# === Enums ===


class Phase(str, Enum):
    """Stage of the overall reasoning cycle."""

    IDLE = "IDLE"
    ABDUCTION = "ABDUCTION"
    DEDUCTION = "DEDUCTION"
    INDUCTION = "INDUCTION"
    AUDIT = "AUDIT"
    DECISION = "DECISION"
    OPERATION = "OPERATION"  # post-decision steady state

    def __str__(self) -> str:
        return self.value


class Layer(str, Enum):
    """Confidence tier of a holon.

    The declaration order is also the lookup order of the filesystem tiers.
    """

    L0 = "L0"  # proposed, unverified
    L1 = "L1"  # passed a deductive check
    L2 = "L2"  # passed an inductive check
    INVALID = "invalid"  # failed verification, testing or audit

    def __str__(self) -> str:
        return self.value


# Filesystem tiers are checked in this order when resolving a layer.
TIER_ORDER = (Layer.L0, Layer.L1, Layer.L2, Layer.INVALID)


class HolonType(str, Enum):
    """Record type: proposal or finalized outcome."""

    HYPOTHESIS = "hypothesis"
    DECISION = "decision"


class HolonKind(str, Enum):
    """Category of a hypothesis. Required at creation."""

    SYSTEM = "system"  # technical hypothesis
    EPISTEME = "episteme"  # knowledge claim


VALID_KIND_VALUES = frozenset(k.value for k in HolonKind)


class Verdict(str, Enum):
    """Outcome of a verify or test step."""

    PASS = "PASS"
    FAIL = "FAIL"
    REFINE = "REFINE"


VALID_VERDICT_VALUES = frozenset(v.value for v in Verdict)


class EvidenceType(str, Enum):
    """Where a piece of evidence came from."""

    VERIFICATION = "verification"
    INTERNAL = "internal"
    EXTERNAL = "external"
    AUDIT = "audit"


# === Records ===


@dataclass
class Holon:
    """A unit of proposed or validated knowledge."""

    id: str
    title: str
    type: str = HolonType.HYPOTHESIS.value
    kind: str = HolonKind.SYSTEM.value
    layer: str = Layer.L0.value
    content: str = ""
    context_id: str = "default"
    scope: str = ""
    rationale: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Evidence:
    """A verification, test or audit result attached to a holon."""

    id: str
    holon_id: str
    type: str
    content: str = ""
    verdict: str = ""
    valid_until: Optional[str] = None  # YYYY-MM-DD, advisory
    created_at: Optional[str] = None


@dataclass
class DecisionRecord:
    """Finalized outcome referencing the winning holon."""

    id: str
    winner_id: str
    title: str
    context: str = ""
    decision: str = ""
    rationale: str = ""
    consequences: str = ""
    created_at: Optional[str] = None


@dataclass(frozen=True)
class LayerCount:
    """Number of holons currently at a layer."""

    layer: str
    count: int
