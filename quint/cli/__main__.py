"""
quint CLI - command-line access to the phase-gated reasoning cycle.

Usage:
    quint [--root R] init
    quint [--root R] status [--json]
    quint [--root R] phase [show | set PHASE | reset]
    quint [--root R] check TOOL [-p key=value]...
    quint [--root R] search QUERY [--layer L] [--scope S] [--limit N] [--json]
    quint [--root R] decay [--json]
    quint [--root R] actualize
    quint [--root R] mcp
"""

import argparse
import logging
import sys

from quint.cli.commands import (
    cmd_actualize,
    cmd_check,
    cmd_decay,
    cmd_init,
    cmd_mcp,
    cmd_phase,
    cmd_search,
    cmd_status,
)
from quint.cli.commands.helpers import parse_param, validate_input
from quint.fpf.tools import Tools
from quint.logging_config import setup_quint_logging
from quint.protocols import QuintError
from quint.types import TIER_ORDER
from quint.utils import resolve_project_root

# Set up logging: the terminal only shows warnings; setup_quint_logging adds the file log
_console = logging.StreamHandler()
_console.setLevel(logging.WARNING)
logging.basicConfig(level=logging.WARNING, handlers=[_console])
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quint",
        description="Phase-gated reasoning cycle for AI-assisted engineering",
    )
    parser.add_argument(
        "--root", "-r", help="Project root (default: $QUINT_ROOT, git root, or cwd)", default=None
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # init
    subparsers.add_parser("init", help="Initialize the .quint directory")

    # status
    p_status = subparsers.add_parser("status", help="Show phase and layer counts")
    p_status.add_argument("--json", "-j", action="store_true")

    # phase
    p_phase = subparsers.add_parser("phase", help="Show or change the reasoning phase")
    phase_sub = p_phase.add_subparsers(dest="phase_action")
    phase_sub.add_parser("show", help="Show the current phase and permitted tools")
    phase_set = phase_sub.add_parser("set", help="Force the phase")
    phase_set.add_argument("phase", help="Target phase, e.g. DEDUCTION")
    phase_sub.add_parser("reset", help="Return to IDLE")

    # check
    p_check = subparsers.add_parser("check", help="Dry-run a tool's preconditions")
    p_check.add_argument("tool", help="Tool name, e.g. quint_verify or verify")
    p_check.add_argument(
        "--param",
        "-p",
        action="append",
        type=parse_param,
        help="Tool argument as key=value (repeatable)",
    )

    # search
    p_search = subparsers.add_parser("search", help="Search hypotheses and decisions")
    p_search.add_argument("query")
    p_search.add_argument("--layer", "-l", choices=[layer.value for layer in TIER_ORDER])
    p_search.add_argument("--scope", "-s", help="holons or decisions (default: both)")
    p_search.add_argument("--limit", "-n", type=int, default=10)
    p_search.add_argument("--json", "-j", action="store_true")

    # decay
    p_decay = subparsers.add_parser("decay", help="List expired L2 evidence")
    p_decay.add_argument("--json", "-j", action="store_true")

    # actualize
    subparsers.add_parser("actualize", help="Reconcile the database with the knowledge files")

    # mcp
    subparsers.add_parser("mcp", help="Start the MCP server (stdio)")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "mcp":
        cmd_mcp(args)
        return

    # Resolve project: explicit > env var > git root > cwd
    try:
        explicit = validate_input(args.root, "root", 4096) if args.root else None
        root = resolve_project_root(explicit)
        setup_quint_logging(project=root.name)
        t = Tools.open(root)
    except (ValueError, TypeError, QuintError) as e:
        logger.error(f"Failed to open quint project: {e}")
        sys.exit(1)

    # Dispatch with error handling
    try:
        if args.command == "init":
            cmd_init(args, t)
        elif args.command == "status":
            cmd_status(args, t)
        elif args.command == "phase":
            cmd_phase(args, t)
        elif args.command == "check":
            cmd_check(args, t)
        elif args.command == "search":
            cmd_search(args, t)
        elif args.command == "decay":
            cmd_decay(args, t)
        elif args.command == "actualize":
            cmd_actualize(args, t)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except QuintError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
