"""Tool roles and phase gates.

Both tables are read-only and built once at import.

Roles carry no enforcement power. They only feed diagnostics, e.g. the
"expected Abductor or Deductor" hint attached to a phase-gate rejection.

Phase gates cover the propose -> verify -> test -> audit -> decide core
only. Every other tool is unrestricted by having no entry; existence and
layer preconditions are what guard them.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from quint.types import Phase


class Role(str, Enum):
    INITIALIZER = "Initializer"
    ABDUCTOR = "Abductor"
    DEDUCTOR = "Deductor"
    INDUCTOR = "Inductor"
    AUDITOR = "Auditor"
    DECIDER = "Decider"
    OBSERVER = "Observer"
    MAINTAINER = "Maintainer"

    def __str__(self) -> str:
        return self.value


# Tool names
TOOL_INIT = "quint_init"
TOOL_RECORD_CONTEXT = "quint_record_context"
TOOL_PROPOSE = "quint_propose"
TOOL_VERIFY = "quint_verify"
TOOL_TEST = "quint_test"
TOOL_AUDIT = "quint_audit"
TOOL_DECIDE = "quint_decide"
TOOL_RESET = "quint_reset"
TOOL_CHECK_DECAY = "quint_check_decay"
TOOL_ACTUALIZE = "quint_actualize"
TOOL_STATUS = "quint_status"
TOOL_CALCULATE_R = "quint_calculate_r"
TOOL_AUDIT_TREE = "quint_audit_tree"
TOOL_SEARCH = "quint_search"

TOOL_ROLE: Mapping[str, Role] = MappingProxyType(
    {
        # Initialization
        TOOL_INIT: Role.INITIALIZER,
        TOOL_RECORD_CONTEXT: Role.INITIALIZER,
        # Reasoning cycle
        TOOL_PROPOSE: Role.ABDUCTOR,
        TOOL_VERIFY: Role.DEDUCTOR,
        TOOL_TEST: Role.INDUCTOR,
        TOOL_AUDIT: Role.AUDITOR,
        TOOL_DECIDE: Role.DECIDER,
        # Maintenance
        TOOL_RESET: Role.MAINTAINER,
        TOOL_CHECK_DECAY: Role.MAINTAINER,
        TOOL_ACTUALIZE: Role.MAINTAINER,
        # Read-only
        TOOL_STATUS: Role.OBSERVER,
        TOOL_CALCULATE_R: Role.OBSERVER,
        TOOL_AUDIT_TREE: Role.OBSERVER,
        TOOL_SEARCH: Role.OBSERVER,
    }
)

TOOL_PHASE_GATE: Mapping[str, FrozenSet[Phase]] = MappingProxyType(
    {
        # Regression from later phases back to proposing is allowed;
        # AUDIT and DECISION block it while a decision is being finalized.
        TOOL_PROPOSE: frozenset(
            {Phase.IDLE, Phase.ABDUCTION, Phase.DEDUCTION, Phase.INDUCTION}
        ),
        TOOL_VERIFY: frozenset({Phase.ABDUCTION, Phase.DEDUCTION}),
        # L2 refresh bypasses this gate in the precondition checker
        TOOL_TEST: frozenset({Phase.DEDUCTION, Phase.INDUCTION}),
        TOOL_AUDIT: frozenset({Phase.INDUCTION, Phase.AUDIT}),
        TOOL_DECIDE: frozenset({Phase.AUDIT, Phase.DECISION}),
    }
)

_EXPECTED_ROLE: Mapping[Phase, str] = MappingProxyType(
    {
        Phase.IDLE: "Initializer or Abductor",
        Phase.ABDUCTION: "Abductor or Deductor",
        Phase.DEDUCTION: "Deductor or Inductor",
        Phase.INDUCTION: "Inductor or Auditor",
        Phase.AUDIT: "Auditor or Decider",
        Phase.DECISION: "Decider",
        Phase.OPERATION: "Decider",
    }
)

# Canonical phase order, used to render allowed sets deterministically
_PHASE_ORDER = list(Phase)


def get_role_for_tool(tool_name: str) -> Role:
    """Return the role for a tool. Unknown tools are read-only Observers."""
    return TOOL_ROLE.get(tool_name, Role.OBSERVER)


def get_allowed_phases(tool_name: str) -> Optional[FrozenSet[Phase]]:
    """Return the phases a tool may run in, or None for no restriction."""
    return TOOL_PHASE_GATE.get(tool_name)


def is_phase_allowed(tool_name: str, current_phase: Phase) -> bool:
    allowed = get_allowed_phases(tool_name)
    if allowed is None:
        return True
    return current_phase in allowed


def get_expected_role(phase: Phase) -> str:
    """Human-readable roles expected to act in a phase."""
    return _EXPECTED_ROLE.get(phase, "Unknown")


def format_phases(phases) -> str:
    """Render a phase set in cycle order, e.g. ``[ABDUCTION, DEDUCTION]``."""
    ordered = [p.value for p in _PHASE_ORDER if p in phases]
    return "[" + ", ".join(ordered) + "]"
