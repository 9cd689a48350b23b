"""MCP tool schema definitions for quint.

Each Tool() defines the name, description, and JSON Schema for one MCP tool.
Validators and handlers live in quint.mcp.handlers.

Schemas list no required properties: missing arguments are reported by the
precondition checker, which also says what to do about them.
"""

from mcp.types import Tool

from quint.fpf import roles
from quint.types import TIER_ORDER, HolonKind, Verdict

VALID_KINDS = [k.value for k in HolonKind]
VALID_VERDICTS = [v.value for v in Verdict]
VALID_LAYERS = [layer.value for layer in TIER_ORDER]
VALID_TEST_TYPES = ["internal", "external"]


def _string(description: str, **extra) -> dict:
    return {"type": "string", "description": description, **extra}


TOOLS = [
    Tool(
        name=roles.TOOL_INIT,
        description="Initialize the .quint directory: knowledge tiers, decision records, phase state and database. Safe to re-run.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name=roles.TOOL_RECORD_CONTEXT,
        description="Record the bounded context (vocabulary and invariants) the reasoning cycle works within.",
        inputSchema={
            "type": "object",
            "properties": {
                "vocabulary": _string("Key terms and their definitions"),
                "invariants": _string("System rules and constraints that must hold"),
            },
        },
    ),
    Tool(
        name=roles.TOOL_PROPOSE,
        description="Propose a new hypothesis (abduction). Creates an L0 holon. Allowed in IDLE, ABDUCTION, DEDUCTION and INDUCTION.",
        inputSchema={
            "type": "object",
            "properties": {
                "title": _string("Short descriptive title; also used to derive the holon ID"),
                "content": _string("The hypothesis in detail"),
                "kind": _string(
                    "'system' for technical hypotheses, 'episteme' for knowledge claims",
                    enum=VALID_KINDS,
                ),
                "scope": _string("Where the hypothesis applies"),
                "rationale": _string("Why this hypothesis is worth considering"),
            },
        },
    ),
    Tool(
        name=roles.TOOL_VERIFY,
        description="Record a deductive check of an L0 hypothesis (deduction). PASS promotes to L1, FAIL invalidates, REFINE keeps it in L0.",
        inputSchema={
            "type": "object",
            "properties": {
                "hypothesis_id": _string("ID of the L0 hypothesis"),
                "checks_json": _string("Checks performed, as JSON or free text"),
                "verdict": _string("Verification outcome", enum=VALID_VERDICTS),
            },
        },
    ),
    Tool(
        name=roles.TOOL_TEST,
        description="Record an inductive test of an L1 hypothesis (induction). PASS promotes to L2. L2 hypotheses can be re-tested in any phase to refresh their evidence.",
        inputSchema={
            "type": "object",
            "properties": {
                "hypothesis_id": _string("ID of the L1 or L2 hypothesis"),
                "test_type": _string(
                    "'internal' (valid 90 days) or 'external' (valid 60 days)",
                    enum=VALID_TEST_TYPES,
                ),
                "result": _string("What the test showed"),
                "verdict": _string("Test outcome", enum=VALID_VERDICTS),
            },
        },
    ),
    Tool(
        name=roles.TOOL_AUDIT,
        description="Record risks for a validated (L2) hypothesis before deciding.",
        inputSchema={
            "type": "object",
            "properties": {
                "hypothesis_id": _string("ID of the L2 hypothesis"),
                "risks": _string("Known risks, assumptions and weak spots"),
            },
        },
    ),
    Tool(
        name=roles.TOOL_DECIDE,
        description="Finalize a decision record (DRR) naming the winning hypothesis. Requires at least one L2 hypothesis.",
        inputSchema={
            "type": "object",
            "properties": {
                "winner_id": _string("ID of the winning hypothesis"),
                "title": _string("Decision title"),
                "context": _string("Problem context"),
                "decision": _string("What was decided"),
                "rationale": _string("Why the winner was chosen"),
                "consequences": _string("Expected consequences and follow-ups"),
            },
        },
    ),
    Tool(
        name=roles.TOOL_RESET,
        description="Return the reasoning cycle to IDLE. Knowledge and decisions are kept.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name=roles.TOOL_CHECK_DECAY,
        description="List evidence on L2 hypotheses whose validity window has ended.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name=roles.TOOL_ACTUALIZE,
        description="Reconcile the database with the knowledge tier files. Files are authoritative.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name=roles.TOOL_STATUS,
        description="Show the current phase, expected role and holon counts per layer.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name=roles.TOOL_CALCULATE_R,
        description="Calculate the effective reliability (R_eff) of a holon from its evidence, using the weakest link.",
        inputSchema={
            "type": "object",
            "properties": {"holon_id": _string("ID of the holon")},
        },
    ),
    Tool(
        name=roles.TOOL_AUDIT_TREE,
        description="Show a holon's evidence and decisions as a tree with reliability scores.",
        inputSchema={
            "type": "object",
            "properties": {"holon_id": _string("ID of the holon")},
        },
    ),
    Tool(
        name=roles.TOOL_SEARCH,
        description="Search hypotheses and decision records by text.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": _string("Search terms"),
                "layer_filter": _string("Only holons in this layer", enum=VALID_LAYERS),
                "scope": _string(
                    "'holons' or 'decisions' to search one kind; anything else searches both"
                ),
                "limit": {
                    "type": "integer",
                    "description": "Maximum results per kind (default: 10)",
                    "default": 10,
                    "minimum": 1,
                    "maximum": 100,
                },
            },
        },
    ),
]
