"""Init command for quint CLI."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quint.fpf.tools import Tools


def cmd_init(args, t: "Tools"):
    """Create the .quint layout, phase state and database."""
    fpf_dir = t.init_project()
    print(f"✓ Initialized quint at {fpf_dir}")
    print(f"  Phase: {t.fsm.get_phase()}")
