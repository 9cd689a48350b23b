"""Maintenance commands for quint CLI: decay check and actualize."""

from typing import TYPE_CHECKING

from quint.cli.commands.helpers import print_json

if TYPE_CHECKING:
    from quint.fpf.tools import Tools


def cmd_decay(args, t: "Tools"):
    """List expired evidence on L2 hypotheses."""
    expired = t.check_decay()
    if getattr(args, "json", False):
        print_json([e.__dict__ for e in expired])
        return
    if not expired:
        print("✓ No expired evidence")
        return
    print(f"⚠ {len(expired)} expired evidence record(s):")
    for e in expired:
        print(f"  {e.holon_id}: {e.type} {e.verdict} (valid until {e.valid_until})")


def cmd_actualize(args, t: "Tools"):
    """Reconcile the database with the knowledge tier files."""
    if t.store is None:
        print("No database. Run `quint init` first.")
        return
    changes = t.actualize()
    if not changes:
        print("✓ Database already matches the knowledge files")
        return
    for change in changes:
        print(f"  {change}")
    print(f"✓ {len(changes)} change(s) applied")
