"""Handlers for read-only and maintenance tools: status, R, audit tree, search, decay, actualize."""

from typing import Any, Dict

from quint.fpf.tools import Tools
from quint.mcp.sanitize import sanitize_string, validate_enum, validate_number
from quint.mcp.tool_definitions import VALID_LAYERS
from quint.utils import validate_holon_id

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def _validate_no_args(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {}


def validate_holon_ref(arguments: Dict[str, Any]) -> Dict[str, Any]:
    holon_id = sanitize_string(arguments.get("holon_id"), "holon_id", 200, required=False)
    if holon_id:
        validate_holon_id(holon_id, "holon_id")
    return {"holon_id": holon_id}


def validate_quint_search(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["query"] = sanitize_string(arguments.get("query"), "query", 500, required=False)
    sanitized["layer_filter"] = validate_enum(
        arguments.get("layer_filter"), "layer_filter", VALID_LAYERS, ""
    )
    sanitized["scope"] = sanitize_string(arguments.get("scope"), "scope", 100, required=False)
    sanitized["limit"] = int(validate_number(arguments.get("limit"), "limit", 1, 100, 10))
    return sanitized


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_quint_status(args: Dict[str, Any], t: Tools) -> str:
    status = t.status()
    tiers = status["tiers"]
    lines = [
        f"Quint Status ({status['root']})",
        "=====================================",
        f"Phase:     {status['phase']} (expects {status['expected_role']})",
        f"L0:        {tiers['L0']}",
        f"L1:        {tiers['L1']}",
        f"L2:        {tiers['L2']}",
        f"Invalid:   {tiers['invalid']}",
        f"Decisions: {status['decisions']}",
        f"Context:   {'Yes' if status['context_recorded'] else 'No'}",
    ]
    if status["store"] is None:
        lines.append("Database:  not initialized")
    return "\n".join(lines)


def handle_quint_calculate_r(args: Dict[str, Any], t: Tools) -> str:
    return t.calculate_r(args["holon_id"]).summary()


def handle_quint_audit_tree(args: Dict[str, Any], t: Tools) -> str:
    return t.audit_tree(args["holon_id"])


def handle_quint_search(args: Dict[str, Any], t: Tools) -> str:
    results = t.search(
        args["query"],
        layer_filter=args.get("layer_filter", ""),
        scope=args.get("scope", ""),
        limit=args.get("limit", 10),
    )
    if results.is_empty():
        return f"No results for '{args['query']}'"
    lines = [f"Found {len(results.holons) + len(results.decisions)} result(s):\n"]
    for h in results.holons:
        lines.append(f"- [{h.layer}] {h.id}: {h.title}")
    for d in results.decisions:
        lines.append(f"- [decision] {d.id}: {d.title} (winner: {d.winner_id})")
    return "\n".join(lines)


def handle_quint_check_decay(args: Dict[str, Any], t: Tools) -> str:
    expired = t.check_decay()
    if not expired:
        return "No expired evidence on L2 hypotheses."
    lines = [f"{len(expired)} expired evidence record(s):"]
    for e in expired:
        lines.append(f"- {e.holon_id}: {e.type} {e.verdict} (valid until {e.valid_until})")
    lines.append("Re-run quint_test on these hypotheses to refresh their evidence.")
    return "\n".join(lines)


def handle_quint_actualize(args: Dict[str, Any], t: Tools) -> str:
    changes = t.actualize()
    if not changes:
        return "Database already matches the knowledge files."
    return "Actualized:\n" + "\n".join(f"- {c}" for c in changes)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

HANDLERS = {
    "quint_status": handle_quint_status,
    "quint_calculate_r": handle_quint_calculate_r,
    "quint_audit_tree": handle_quint_audit_tree,
    "quint_search": handle_quint_search,
    "quint_check_decay": handle_quint_check_decay,
    "quint_actualize": handle_quint_actualize,
}

VALIDATORS = {
    "quint_status": _validate_no_args,
    "quint_calculate_r": validate_holon_ref,
    "quint_audit_tree": validate_holon_ref,
    "quint_search": validate_quint_search,
    "quint_check_decay": _validate_no_args,
    "quint_actualize": _validate_no_args,
}
