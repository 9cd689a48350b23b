"""CLI command modules for quint.

Each module holds related command handlers called from __main__.py.
"""

from quint.cli.commands.check import cmd_check
from quint.cli.commands.init import cmd_init
from quint.cli.commands.maintenance import cmd_actualize, cmd_decay
from quint.cli.commands.mcp import cmd_mcp
from quint.cli.commands.phase import cmd_phase
from quint.cli.commands.search import cmd_search
from quint.cli.commands.status import cmd_status

__all__ = [
    "cmd_actualize",
    "cmd_check",
    "cmd_decay",
    "cmd_init",
    "cmd_mcp",
    "cmd_phase",
    "cmd_search",
    "cmd_status",
]
