"""Handler registry for MCP tools.

Merges HANDLERS and VALIDATORS from all sub-modules into unified dicts.
"""

from typing import Callable, Dict

from quint.mcp.handlers.cycle import HANDLERS as _CYCLE_H
from quint.mcp.handlers.cycle import VALIDATORS as _CYCLE_V
from quint.mcp.handlers.knowledge import HANDLERS as _KNOWLEDGE_H
from quint.mcp.handlers.knowledge import VALIDATORS as _KNOWLEDGE_V

HANDLERS: Dict[str, Callable] = {
    **_CYCLE_H,
    **_KNOWLEDGE_H,
}

VALIDATORS: Dict[str, Callable] = {
    **_CYCLE_V,
    **_KNOWLEDGE_V,
}
