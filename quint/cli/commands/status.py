"""Status command for quint CLI."""

from typing import TYPE_CHECKING

from quint.cli.commands.helpers import print_json

if TYPE_CHECKING:
    from quint.fpf.tools import Tools


def cmd_status(args, t: "Tools"):
    """Show phase, expected role and per-layer counts."""
    status = t.status()
    if getattr(args, "json", False):
        print_json(status)
        return

    if not status["initialized"]:
        print(f"No .quint directory under {status['root']}. Run `quint init` first.")
        return

    print(f"Quint Status ({status['root']})")
    print("=" * 40)
    print(f"Phase:     {status['phase']} (expects {status['expected_role']})")
    if status["last_tool"]:
        print(f"Last tool: {status['last_tool']}")
    print()
    print("Layer      Files   DB")
    store = status["store"] or {}
    for layer, n in status["tiers"].items():
        db = store.get(layer, 0) if status["store"] is not None else "-"
        print(f"  {layer:<8} {n:>5}   {db}")
    print()
    print(f"Decisions: {status['decisions']}")
    print(f"Context:   {'Yes' if status['context_recorded'] else 'No'}")
