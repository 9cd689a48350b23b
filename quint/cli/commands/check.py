"""Precondition dry-run for quint CLI."""

from typing import TYPE_CHECKING

from quint.cli.commands.helpers import validate_input
from quint.fpf import roles

if TYPE_CHECKING:
    from quint.fpf.tools import Tools


def cmd_check(args, t: "Tools"):
    """Check whether a tool call would pass its preconditions.

    Nothing is executed. A rejection raises PreconditionError, which
    main() reports with exit status 1.
    """
    tool = args.tool if args.tool.startswith("quint_") else f"quint_{args.tool}"
    if tool not in roles.TOOL_ROLE:
        raise ValueError(f"Unknown tool: {args.tool}")

    params = {key: validate_input(val, key) for key, val in (args.param or [])}
    t.check_preconditions(tool, params)

    phase = t.fsm.get_phase()
    print(f"✓ {tool} permitted in phase {phase} (role: {roles.get_role_for_tool(tool)})")
