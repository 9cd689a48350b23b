"""Phase commands for quint CLI."""

from typing import TYPE_CHECKING

from quint.fpf import roles
from quint.logging_config import log_transition
from quint.types import Phase

if TYPE_CHECKING:
    from quint.fpf.tools import Tools

VALID_PHASES = [p.value for p in Phase]


def cmd_phase(args, t: "Tools"):
    """Show, set or reset the reasoning-cycle phase."""
    action = getattr(args, "phase_action", None) or "show"

    if action == "show":
        phase = t.fsm.get_phase()
        print(f"Phase: {phase}")
        print(f"Expects: {roles.get_expected_role(phase)}")
        for tool, allowed in roles.TOOL_PHASE_GATE.items():
            mark = "✓" if phase in allowed else "✗"
            print(f"  {mark} {tool}")

    elif action == "set":
        name = args.phase.upper()
        if name not in VALID_PHASES:
            raise ValueError(f"phase must be one of {VALID_PHASES}, got '{args.phase}'")
        previous = t.fsm.transition(Phase(name), tool="cli")
        log_transition(t.project, previous.value, name, tool="cli")
        print(f"✓ Phase: {previous} -> {name}")

    elif action == "reset":
        t.reset()
        print(f"✓ Phase reset to {t.fsm.get_phase()}")
