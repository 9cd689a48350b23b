"""MCP server command for quint CLI."""

import logging
import sys

logger = logging.getLogger(__name__)


def cmd_mcp(args):
    """Start MCP server."""
    try:
        from quint.mcp.server import main as mcp_main
    except ImportError as e:
        logger.error("MCP dependencies not installed. Run: pip install quint-code")
        logger.error(f"Error: {e}")
        sys.exit(1)
    mcp_main(root=args.root)
