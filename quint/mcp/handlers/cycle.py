"""Handlers for the reasoning-cycle tools, from init through decide, plus reset."""

from typing import Any, Dict

from quint.fpf.tools import Tools
from quint.mcp.sanitize import sanitize_string
from quint.utils import validate_holon_id

ID_MAX_LENGTH = 200
TITLE_MAX_LENGTH = 500
TEXT_MAX_LENGTH = 20000

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def _optional(arguments: Dict[str, Any], name: str, max_length: int) -> str:
    return sanitize_string(arguments.get(name), name, max_length, required=False)


def _holon_ref(arguments: Dict[str, Any], name: str) -> str:
    """Optional holon id; when present it must not leave the knowledge tiers."""
    value = _optional(arguments, name, ID_MAX_LENGTH)
    if value:
        validate_holon_id(value, name)
    return value


def validate_quint_init(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {}


def validate_quint_record_context(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "vocabulary": _optional(arguments, "vocabulary", TEXT_MAX_LENGTH),
        "invariants": _optional(arguments, "invariants", TEXT_MAX_LENGTH),
    }


def validate_quint_propose(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": _optional(arguments, "title", TITLE_MAX_LENGTH),
        "content": _optional(arguments, "content", TEXT_MAX_LENGTH),
        "kind": _optional(arguments, "kind", 50),
        "scope": _optional(arguments, "scope", 1000),
        "rationale": _optional(arguments, "rationale", TEXT_MAX_LENGTH),
    }


def validate_quint_verify(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "hypothesis_id": _holon_ref(arguments, "hypothesis_id"),
        "checks_json": _optional(arguments, "checks_json", TEXT_MAX_LENGTH),
        "verdict": _optional(arguments, "verdict", 20),
    }


def validate_quint_test(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "hypothesis_id": _holon_ref(arguments, "hypothesis_id"),
        "test_type": _optional(arguments, "test_type", 50),
        "result": _optional(arguments, "result", TEXT_MAX_LENGTH),
        "verdict": _optional(arguments, "verdict", 20),
    }


def validate_quint_audit(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "hypothesis_id": _holon_ref(arguments, "hypothesis_id"),
        "risks": _optional(arguments, "risks", TEXT_MAX_LENGTH),
    }


def validate_quint_decide(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "winner_id": _holon_ref(arguments, "winner_id"),
        "title": _optional(arguments, "title", TITLE_MAX_LENGTH),
        "context": _optional(arguments, "context", TEXT_MAX_LENGTH),
        "decision": _optional(arguments, "decision", TEXT_MAX_LENGTH),
        "rationale": _optional(arguments, "rationale", TEXT_MAX_LENGTH),
        "consequences": _optional(arguments, "consequences", TEXT_MAX_LENGTH),
    }


def validate_quint_reset(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_quint_init(args: Dict[str, Any], t: Tools) -> str:
    fpf_dir = t.init_project()
    return f"Initialized quint at {fpf_dir} (phase: {t.fsm.get_phase()})"


def handle_quint_record_context(args: Dict[str, Any], t: Tools) -> str:
    path = t.record_context(args["vocabulary"], args["invariants"])
    return f"Bounded context recorded in {path}"


def handle_quint_propose(args: Dict[str, Any], t: Tools) -> str:
    holon = t.propose_hypothesis(
        title=args["title"],
        content=args["content"],
        kind=args["kind"],
        scope=args.get("scope", ""),
        rationale=args.get("rationale", ""),
    )
    return f"Hypothesis proposed: {holon.id} [L0] {holon.title}\nPhase: {t.fsm.get_phase()}"


def handle_quint_verify(args: Dict[str, Any], t: Tools) -> str:
    layer = t.verify_hypothesis(
        args["hypothesis_id"], args["verdict"], checks_json=args.get("checks_json", "")
    )
    return (
        f"Verification {args['verdict']}: {args['hypothesis_id']} is now in {layer}\n"
        f"Phase: {t.fsm.get_phase()}"
    )


def handle_quint_test(args: Dict[str, Any], t: Tools) -> str:
    layer = t.test_hypothesis(
        args["hypothesis_id"],
        args["verdict"],
        test_type=args.get("test_type", ""),
        result=args.get("result", ""),
    )
    return (
        f"Test {args['verdict']}: {args['hypothesis_id']} is now in {layer}\n"
        f"Phase: {t.fsm.get_phase()}"
    )


def handle_quint_audit(args: Dict[str, Any], t: Tools) -> str:
    t.audit_hypothesis(args["hypothesis_id"], args.get("risks", ""))
    return f"Audit recorded for {args['hypothesis_id']}\nPhase: {t.fsm.get_phase()}"


def handle_quint_decide(args: Dict[str, Any], t: Tools) -> str:
    record = t.finalize_decision(
        args["winner_id"],
        args["title"],
        context=args.get("context", ""),
        decision=args.get("decision", ""),
        rationale=args.get("rationale", ""),
        consequences=args.get("consequences", ""),
    )
    return f"Decision recorded: {record.id} (winner: {record.winner_id})"


def handle_quint_reset(args: Dict[str, Any], t: Tools) -> str:
    t.reset()
    return f"Reasoning cycle reset. Phase: {t.fsm.get_phase()}"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

HANDLERS = {
    "quint_init": handle_quint_init,
    "quint_record_context": handle_quint_record_context,
    "quint_propose": handle_quint_propose,
    "quint_verify": handle_quint_verify,
    "quint_test": handle_quint_test,
    "quint_audit": handle_quint_audit,
    "quint_decide": handle_quint_decide,
    "quint_reset": handle_quint_reset,
}

VALIDATORS = {
    "quint_init": validate_quint_init,
    "quint_record_context": validate_quint_record_context,
    "quint_propose": validate_quint_propose,
    "quint_verify": validate_quint_verify,
    "quint_test": validate_quint_test,
    "quint_audit": validate_quint_audit,
    "quint_decide": validate_quint_decide,
    "quint_reset": validate_quint_reset,
}
