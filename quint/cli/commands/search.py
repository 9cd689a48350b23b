"""Search command for quint CLI."""

from typing import TYPE_CHECKING

from quint.cli.commands.helpers import print_json, validate_input
from quint.fpf import roles

if TYPE_CHECKING:
    from quint.fpf.tools import Tools


def cmd_search(args, t: "Tools"):
    """Search hypotheses and decision records."""
    query = validate_input(args.query, "query", 500)
    params = {
        "query": query,
        "layer_filter": args.layer or "",
        "scope": args.scope or "",
        "limit": args.limit,
    }
    results = t.run(roles.TOOL_SEARCH, params)

    if getattr(args, "json", False):
        print_json(
            {
                "holons": [h.__dict__ for h in results.holons],
                "decisions": [d.__dict__ for d in results.decisions],
            }
        )
        return

    if results.is_empty():
        print(f"No results for '{query}'")
        return

    for h in results.holons:
        print(f"[{h.layer}] {h.id}: {h.title}")
    for d in results.decisions:
        print(f"[decision] {d.id}: {d.title} (winner: {d.winner_id})")
