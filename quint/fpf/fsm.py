"""Reasoning-cycle phase state.

The current phase is persisted to ``.quint/state.json``. When the FSM is
bound to a file, every ``get_phase()`` re-reads it so gate decisions always
see the latest committed phase.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from quint.fpf import roles
from quint.types import Phase, utc_now

logger = logging.getLogger(__name__)

# Phase entered after a tool's effect completes
PHASE_AFTER_TOOL: Mapping[str, Phase] = MappingProxyType(
    {
        roles.TOOL_PROPOSE: Phase.ABDUCTION,
        roles.TOOL_VERIFY: Phase.DEDUCTION,
        roles.TOOL_TEST: Phase.INDUCTION,
        roles.TOOL_AUDIT: Phase.AUDIT,
        roles.TOOL_DECIDE: Phase.DECISION,
        roles.TOOL_RESET: Phase.IDLE,
    }
)


@dataclass
class State:
    phase: Phase = Phase.IDLE
    updated_at: Optional[str] = None
    last_tool: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["phase"] = self.phase.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "State":
        try:
            phase = Phase(data.get("phase", Phase.IDLE.value))
        except ValueError:
            logger.warning(f"Unknown phase {data.get('phase')!r} in state file, using IDLE")
            phase = Phase.IDLE
        return cls(
            phase=phase,
            updated_at=data.get("updated_at"),
            last_tool=data.get("last_tool"),
        )


class FSM:
    """Phase holder, optionally persisted to a JSON state file."""

    def __init__(self, state: Optional[State] = None, state_path: Optional[Path] = None):
        self.state = state or State()
        self.state_path = Path(state_path) if state_path else None

    @classmethod
    def load(cls, state_path: Path) -> "FSM":
        fsm = cls(state_path=state_path)
        fsm.reload()
        return fsm

    def reload(self) -> None:
        if self.state_path is None or not self.state_path.exists():
            return
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read phase state from {self.state_path}: {e}")
            return
        self.state = State.from_dict(data)

    def save(self) -> None:
        if self.state_path is None:
            return
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.state_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(self.state.to_dict(), indent=2), encoding="utf-8")
        tmp_path.replace(self.state_path)

    def get_phase(self) -> Phase:
        self.reload()
        return self.state.phase

    def transition(self, phase: Phase, tool: Optional[str] = None) -> Phase:
        """Move to ``phase`` and persist. Returns the previous phase."""
        previous = self.get_phase()
        self.state = State(phase=phase, updated_at=utc_now(), last_tool=tool)
        self.save()
        if previous != phase:
            logger.info(f"Phase {previous} -> {phase}" + (f" ({tool})" if tool else ""))
        return previous

    def advance_after(self, tool_name: str) -> Optional[Phase]:
        """Enter the phase that follows a completed tool, if it has one."""
        target = PHASE_AFTER_TOOL.get(tool_name)
        if target is None:
            return None
        self.transition(target, tool=tool_name)
        return target

    def reset(self) -> None:
        self.transition(Phase.IDLE, tool=roles.TOOL_RESET)
