"""
quint MCP Server - phase-gated reasoning tools for MCP clients.

This exposes the quint reasoning cycle (propose, verify, test, audit,
decide) and its read-only and maintenance tools over the Model Context
Protocol.

Every call goes through the same pipeline:
1. Input validation and sanitization (shape only)
2. Precondition check: phase gate plus tool-specific rules
3. Tool handler

A rejected precondition is returned to the agent verbatim, since its text
says what failed and what to do next.

Usage:
    quint mcp  # Start MCP server (stdio transport)
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
)

from quint.fpf.tools import Tools
from quint.logging_config import setup_quint_logging
from quint.mcp.handlers import HANDLERS, VALIDATORS
from quint.mcp.tool_definitions import TOOLS
from quint.protocols import PreconditionError, StorageError
from quint.utils import resolve_project_root

logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = Server("quint")

# Project root for this MCP session
_mcp_root: Optional[Path] = None


def set_project_root(root: Path) -> None:
    """Set the project root for this MCP session."""
    global _mcp_root
    _mcp_root = Path(root)
    # Clear cached instance so next get_tools uses the new root
    if hasattr(get_tools, "_instance"):
        delattr(get_tools, "_instance")


def get_tools() -> Tools:
    """Get or create the Tools instance."""
    if not hasattr(get_tools, "_instance"):
        root = _mcp_root or resolve_project_root()
        get_tools._instance = Tools.open(root)  # type: ignore[attr-defined]
    return get_tools._instance  # type: ignore[attr-defined]


# =============================================================================
# INPUT VALIDATION & SANITIZATION
# =============================================================================


def validate_tool_input(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and sanitize MCP tool inputs."""
    try:
        if not isinstance(name, str):
            raise ValueError(f"tool name must be a string, got {type(name).__name__}")
        if not name:
            raise ValueError("tool name must not be empty")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValueError(f"arguments must be an object, got {type(arguments).__name__}")

        validator = VALIDATORS.get(name)
        if validator is None:
            raise ValueError(f"Unknown tool: {name}")
        return validator(arguments)

    except (ValueError, TypeError) as e:
        logger.warning(f"Input validation failed for tool {name}: {e}")
        raise ValueError(f"Invalid input: {str(e)}")


def handle_tool_error(e: Exception, tool_name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Handle tool errors securely."""
    if isinstance(e, PreconditionError):
        # Already logged by the gate; the agent needs the full text
        return [TextContent(type="text", text=str(e))]

    elif isinstance(e, ValueError):
        logger.warning(f"Invalid input for tool {tool_name}: {e}")
        text = str(e)
        if not text.startswith("Invalid input:"):
            text = f"Invalid input: {text}"
        return [TextContent(type="text", text=text)]

    elif isinstance(e, PermissionError):
        logger.warning(f"Permission denied for tool {tool_name}")
        return [TextContent(type="text", text="Access denied")]

    elif isinstance(e, FileNotFoundError):
        logger.warning(f"Resource not found for tool {tool_name}")
        return [TextContent(type="text", text="Resource not found")]

    elif isinstance(e, StorageError):
        logger.error(f"Storage error for tool {tool_name}: {e}")
        return [TextContent(type="text", text="Storage temporarily unavailable")]

    else:
        # Unknown error - log full details but return generic message
        argument_keys = list(arguments.keys()) if isinstance(arguments, dict) else []
        logger.error(
            f"Internal error in tool {tool_name}",
            extra={
                "tool_name": tool_name,
                "arguments_keys": argument_keys,
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
            exc_info=True,
        )
        return [TextContent(type="text", text="Internal server error")]


# =============================================================================
# MCP PROTOCOL HANDLERS
# =============================================================================


@mcp.list_tools()
async def list_tools() -> list[Tool]:
    """List available quint tools."""
    return list(TOOLS)


@mcp.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls: validate, gate, then run the handler."""
    try:
        sanitized_args = validate_tool_input(name, arguments)
        t = get_tools()
        t.check_preconditions(name, sanitized_args)

        handler = HANDLERS.get(name)
        if handler is not None:
            result = handler(sanitized_args, t)
            return [TextContent(type="text", text=result)]

        # Should not reach here due to validation, but handle gracefully
        logger.error(f"Unexpected tool name after validation: {name}")
        return [TextContent(type="text", text=f"Tool '{name}' is not available")]

    except Exception as e:
        return handle_tool_error(e, name, arguments)


async def run_server():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await mcp.run(
            read_stream,
            write_stream,
            mcp.create_initialization_options(),
        )


def main(root: Optional[str] = None):
    """Entry point for MCP server.

    Project root resolution (in order):
    1. Explicit root argument
    2. QUINT_ROOT environment variable
    3. Git root of the current directory, else the current directory
    """
    resolved = resolve_project_root(root)
    setup_quint_logging(project=resolved.name)
    set_project_root(resolved)
    logger.info(f"Starting quint MCP server for {resolved}")
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
