"""Tests for quint.fpf.preconditions - phase gates and per-tool semantic checks."""

from unittest.mock import Mock

import pytest

from quint.fpf import roles
from quint.fpf.fsm import FSM
from quint.fpf.preconditions import PreconditionChecker
from quint.protocols import PreconditionError, StorageError
from quint.types import Holon, Layer, LayerCount, Phase

VALID_PROPOSAL = {"title": "Use SQLite", "content": "Store holons in SQLite", "kind": "system"}


def _rejects(checker, tool, args) -> PreconditionError:
    with pytest.raises(PreconditionError) as exc_info:
        checker.check_preconditions(tool, args)
    return exc_info.value


def _gated_cases():
    for tool, allowed in roles.TOOL_PHASE_GATE.items():
        for phase in Phase:
            yield tool, phase, phase in allowed


class TestPhaseGate:
    """The phase gate runs before any semantic check."""

    def test_propose_allowed_in_idle(self, checker):
        assert checker.check_preconditions(roles.TOOL_PROPOSE, VALID_PROPOSAL) is None

    def test_propose_blocked_in_audit(self, checker, fsm):
        fsm.transition(Phase.AUDIT)
        err = _rejects(checker, roles.TOOL_PROPOSE, VALID_PROPOSAL)
        assert err.tool == roles.TOOL_PROPOSE
        assert err.condition == "current phase is AUDIT"
        assert "Allowed phases: [IDLE, ABDUCTION, DEDUCTION, INDUCTION]" in err.suggestion
        assert "Auditor or Decider" in err.suggestion

    def test_verify_blocked_in_idle(self, checker, holon_file):
        holon_file("hypo-1", Layer.L0)
        err = _rejects(
            checker, roles.TOOL_VERIFY, {"hypothesis_id": "hypo-1", "verdict": "PASS"}
        )
        assert err.condition == "current phase is IDLE"
        assert "[ABDUCTION, DEDUCTION]" in err.suggestion
        assert "Initializer or Abductor" in err.suggestion

    @pytest.mark.parametrize("tool,phase,allowed", list(_gated_cases()))
    def test_gate_matches_table(self, checker, fsm, tool, phase, allowed):
        """Empty args: a disallowed phase reports the phase, never a missing field."""
        fsm.transition(phase)
        try:
            checker.check_preconditions(tool, {})
        except PreconditionError as e:
            assert e.condition.startswith("current phase is") is (not allowed)
        else:
            assert allowed

    @pytest.mark.parametrize("phase", list(Phase))
    @pytest.mark.parametrize(
        "tool,args",
        [
            (roles.TOOL_INIT, {}),
            (roles.TOOL_STATUS, {}),
            (roles.TOOL_RESET, {}),
            (roles.TOOL_CHECK_DECAY, {}),
            (roles.TOOL_ACTUALIZE, {}),
            (roles.TOOL_SEARCH, {"query": "sqlite"}),
            (roles.TOOL_RECORD_CONTEXT, {"vocabulary": "v", "invariants": "i"}),
        ],
    )
    def test_ungated_tools_permitted_in_every_phase(self, checker, fsm, tool, args, phase):
        fsm.transition(phase)
        assert checker.check_preconditions(tool, args) is None

    def test_unknown_tool_passes(self, checker, fsm):
        fsm.transition(Phase.DECISION)
        assert checker.check_preconditions("quint_something_new", None) is None

    def test_gate_sees_phase_written_by_another_process(self, checker, fpf_dir):
        other = FSM.load(fpf_dir / "state.json")
        other.transition(Phase.AUDIT)

        err = _rejects(checker, roles.TOOL_PROPOSE, VALID_PROPOSAL)
        assert err.condition == "current phase is AUDIT"

    def test_repeated_check_same_outcome(self, checker, holon_file):
        holon_file("raw", Layer.L0)
        args = {"hypothesis_id": "raw", "verdict": "PASS"}
        first = _rejects(checker, roles.TOOL_TEST, args)
        second = _rejects(checker, roles.TOOL_TEST, args)
        assert str(first) == str(second)

    def test_check_does_not_change_phase(self, checker, fsm):
        fsm.transition(Phase.INDUCTION)
        checker.check_preconditions(roles.TOOL_PROPOSE, VALID_PROPOSAL)
        assert fsm.get_phase() == Phase.INDUCTION


class TestL2RefreshBypass:
    """quint_test on an L2 holon skips the phase gate."""

    def test_l2_file_bypasses_gate_in_idle(self, checker, holon_file):
        holon_file("proven", Layer.L2)
        args = {"hypothesis_id": "proven", "verdict": "PASS", "test_type": "internal"}
        assert checker.check_preconditions(roles.TOOL_TEST, args) is None

    @pytest.mark.parametrize("phase", [Phase.IDLE, Phase.AUDIT, Phase.DECISION, Phase.OPERATION])
    def test_l2_store_row_bypasses_gate(self, store_checker, store, fsm, phase):
        store.create_holon(Holon(id="stored", title="Stored", layer=Layer.L2.value))
        fsm.transition(phase)
        args = {"hypothesis_id": "stored", "verdict": "REFINE"}
        assert store_checker.check_preconditions(roles.TOOL_TEST, args) is None

    def test_l1_does_not_bypass(self, checker, holon_file):
        holon_file("pending", Layer.L1)
        err = _rejects(checker, roles.TOOL_TEST, {"hypothesis_id": "pending", "verdict": "PASS"})
        assert err.condition == "current phase is IDLE"

    def test_refresh_still_requires_verdict(self, checker, holon_file):
        holon_file("proven", Layer.L2)
        err = _rejects(checker, roles.TOOL_TEST, {"hypothesis_id": "proven", "verdict": "OK"})
        assert err.condition == "verdict must be PASS, FAIL, or REFINE"

    def test_filesystem_layer_wins_over_store(self, store_checker, store, holon_file):
        holon_file("split", Layer.L1)
        store.create_holon(Holon(id="split", title="Split", layer=Layer.L2.value))
        err = _rejects(
            store_checker, roles.TOOL_TEST, {"hypothesis_id": "split", "verdict": "PASS"}
        )
        assert err.condition == "current phase is IDLE"

    def test_missing_id_does_not_bypass(self, checker):
        err = _rejects(checker, roles.TOOL_TEST, {"verdict": "PASS"})
        assert err.condition == "current phase is IDLE"


class TestRecordContextPreconditions:
    def test_valid(self, checker):
        args = {"vocabulary": "holon: unit of knowledge", "invariants": "ids are unique"}
        assert checker.check_preconditions(roles.TOOL_RECORD_CONTEXT, args) is None

    def test_missing_vocabulary(self, checker):
        err = _rejects(checker, roles.TOOL_RECORD_CONTEXT, {"invariants": "x"})
        assert err.condition == "vocabulary is required"

    def test_missing_invariants(self, checker):
        err = _rejects(checker, roles.TOOL_RECORD_CONTEXT, {"vocabulary": "x"})
        assert err.condition == "invariants is required"


class TestProposePreconditions:
    def test_valid_proposal(self, checker):
        assert checker.check_preconditions(roles.TOOL_PROPOSE, VALID_PROPOSAL) is None

    def test_episteme_kind(self, checker):
        args = dict(VALID_PROPOSAL, kind="episteme")
        assert checker.check_preconditions(roles.TOOL_PROPOSE, args) is None

    def test_missing_title(self, checker):
        args = {"content": "c", "kind": "system"}
        err = _rejects(checker, roles.TOOL_PROPOSE, args)
        assert err.condition == "title is required"

    def test_missing_content(self, checker):
        args = {"title": "t", "kind": "system"}
        err = _rejects(checker, roles.TOOL_PROPOSE, args)
        assert err.condition == "content is required"

    def test_invalid_kind(self, checker):
        args = dict(VALID_PROPOSAL, kind="invalid")
        err = _rejects(checker, roles.TOOL_PROPOSE, args)
        assert err.condition == "kind must be 'system' or 'episteme'"

    def test_missing_kind(self, checker):
        args = {"title": "t", "content": "c"}
        err = _rejects(checker, roles.TOOL_PROPOSE, args)
        assert err.condition == "kind must be 'system' or 'episteme'"

    def test_first_violation_only(self, checker):
        err = _rejects(checker, roles.TOOL_PROPOSE, {})
        assert err.condition == "title is required"

    def test_none_args_treated_as_empty(self, checker):
        err = _rejects(checker, roles.TOOL_PROPOSE, None)
        assert err.condition == "title is required"


class TestVerifyPreconditions:
    @pytest.fixture(autouse=True)
    def in_abduction(self, fsm):
        fsm.transition(Phase.ABDUCTION)

    def test_valid_with_l0_file(self, checker, holon_file):
        holon_file("hypo-1", Layer.L0)
        args = {"hypothesis_id": "hypo-1", "verdict": "PASS"}
        assert checker.check_preconditions(roles.TOOL_VERIFY, args) is None

    def test_missing_hypothesis_id(self, checker):
        err = _rejects(checker, roles.TOOL_VERIFY, {"verdict": "PASS"})
        assert err.condition == "hypothesis_id is required"

    def test_nonexistent_hypothesis(self, checker):
        err = _rejects(checker, roles.TOOL_VERIFY, {"hypothesis_id": "nope", "verdict": "PASS"})
        assert err.condition == "hypothesis 'nope' not found in L0"
        assert "quint_propose" in err.suggestion

    def test_l1_hypothesis_is_not_in_l0(self, checker, holon_file):
        holon_file("done", Layer.L1)
        err = _rejects(checker, roles.TOOL_VERIFY, {"hypothesis_id": "done", "verdict": "PASS"})
        assert err.condition == "hypothesis 'done' not found in L0"

    def test_invalid_verdict(self, checker, holon_file):
        holon_file("hypo-1", Layer.L0)
        err = _rejects(
            checker, roles.TOOL_VERIFY, {"hypothesis_id": "hypo-1", "verdict": "MAYBE"}
        )
        assert err.condition == "verdict must be PASS, FAIL, or REFINE"

    def test_verdict_is_case_sensitive(self, checker, holon_file):
        holon_file("hypo-1", Layer.L0)
        err = _rejects(checker, roles.TOOL_VERIFY, {"hypothesis_id": "hypo-1", "verdict": "pass"})
        assert err.condition == "verdict must be PASS, FAIL, or REFINE"


class TestTestPreconditions:
    @pytest.fixture(autouse=True)
    def in_deduction(self, fsm):
        fsm.transition(Phase.DEDUCTION)

    def test_valid_with_l1_file(self, checker, holon_file):
        holon_file("hypo-1", Layer.L1)
        args = {"hypothesis_id": "hypo-1", "test_type": "internal", "verdict": "PASS"}
        assert checker.check_preconditions(roles.TOOL_TEST, args) is None

    def test_still_in_l0(self, checker, holon_file):
        holon_file("raw", Layer.L0)
        err = _rejects(checker, roles.TOOL_TEST, {"hypothesis_id": "raw", "verdict": "PASS"})
        assert err.condition == "hypothesis 'raw' is still in L0"
        assert "quint_verify" in err.suggestion

    def test_missing_hypothesis_id(self, checker):
        err = _rejects(checker, roles.TOOL_TEST, {"verdict": "PASS"})
        assert err.condition == "hypothesis_id is required"

    def test_not_found(self, checker):
        err = _rejects(checker, roles.TOOL_TEST, {"hypothesis_id": "ghost", "verdict": "PASS"})
        assert err.condition == "hypothesis 'ghost' not found in L1 or L2"

    def test_invalid_hypothesis_not_testable(self, checker, holon_file):
        holon_file("dead", Layer.INVALID)
        err = _rejects(checker, roles.TOOL_TEST, {"hypothesis_id": "dead", "verdict": "PASS"})
        assert err.condition == "hypothesis 'dead' not found in L1 or L2"

    def test_store_only_l1_passes(self, store_checker, store):
        store.create_holon(Holon(id="row-only", title="Row", layer=Layer.L1.value))
        args = {"hypothesis_id": "row-only", "verdict": "FAIL"}
        assert store_checker.check_preconditions(roles.TOOL_TEST, args) is None

    def test_invalid_verdict(self, checker, holon_file):
        holon_file("hypo-1", Layer.L1)
        err = _rejects(checker, roles.TOOL_TEST, {"hypothesis_id": "hypo-1", "verdict": ""})
        assert err.condition == "verdict must be PASS, FAIL, or REFINE"


class TestAuditPreconditions:
    @pytest.fixture(autouse=True)
    def in_induction(self, fsm):
        fsm.transition(Phase.INDUCTION)

    def test_missing_hypothesis_id(self, checker):
        err = _rejects(checker, roles.TOOL_AUDIT, {"risks": "r"})
        assert err.condition == "hypothesis_id is required"

    def test_without_store_only_id_is_checked(self, checker):
        assert checker.check_preconditions(roles.TOOL_AUDIT, {"hypothesis_id": "any"}) is None

    def test_not_in_store(self, store_checker):
        err = _rejects(store_checker, roles.TOOL_AUDIT, {"hypothesis_id": "ghost"})
        assert err.condition == "hypothesis 'ghost' not found"

    def test_not_l2(self, store_checker, store):
        store.create_holon(Holon(id="mid", title="Mid", layer=Layer.L1.value))
        err = _rejects(store_checker, roles.TOOL_AUDIT, {"hypothesis_id": "mid"})
        assert err.condition == "hypothesis 'mid' is in L1, not L2"

    def test_l2_passes(self, store_checker, store):
        store.create_holon(Holon(id="top", title="Top", layer=Layer.L2.value))
        assert store_checker.check_preconditions(roles.TOOL_AUDIT, {"hypothesis_id": "top"}) is None


class TestDecidePreconditions:
    @pytest.fixture(autouse=True)
    def in_decision(self, fsm):
        fsm.transition(Phase.DECISION)

    def test_missing_winner_id(self, checker):
        err = _rejects(checker, roles.TOOL_DECIDE, {"title": "Decision"})
        assert err.condition == "winner_id is required"

    def test_missing_title(self, checker):
        err = _rejects(checker, roles.TOOL_DECIDE, {"winner_id": "hypo-1"})
        assert err.condition == "title is required"

    def test_without_store_not_blocking(self, checker):
        args = {"winner_id": "hypo-1", "title": "Decision"}
        assert checker.check_preconditions(roles.TOOL_DECIDE, args) is None

    def test_no_l2_hypotheses(self, store_checker, store):
        store.create_holon(Holon(id="only-l1", title="L1", layer=Layer.L1.value))
        err = _rejects(store_checker, roles.TOOL_DECIDE, {"winner_id": "x", "title": "Decision"})
        assert err.condition == "no L2 hypotheses found"

    def test_with_l2_hypothesis(self, store_checker, store):
        store.create_holon(Holon(id="winner", title="Winner", layer=Layer.L2.value))
        args = {"winner_id": "winner", "title": "Decision"}
        assert store_checker.check_preconditions(roles.TOOL_DECIDE, args) is None

    def test_l2_in_other_context_not_counted(self, store_checker, store):
        store.create_holon(
            Holon(id="elsewhere", title="E", layer=Layer.L2.value, context_id="other")
        )
        err = _rejects(store_checker, roles.TOOL_DECIDE, {"winner_id": "x", "title": "Decision"})
        assert err.condition == "no L2 hypotheses found"

    def test_count_failure_treated_as_zero(self, fsm, knowledge_dir):
        broken = Mock()
        broken.count_holons_by_layer.side_effect = StorageError("database is locked")
        checker = PreconditionChecker(fsm, knowledge_dir, broken)
        err = _rejects(checker, roles.TOOL_DECIDE, {"winner_id": "x", "title": "Decision"})
        assert err.condition == "no L2 hypotheses found"

    def test_count_uses_l2_entry(self, fsm, knowledge_dir):
        fake = Mock()
        fake.get_holon.return_value = None
        fake.count_holons_by_layer.return_value = [
            LayerCount(layer="L0", count=3),
            LayerCount(layer="L2", count=1),
        ]
        checker = PreconditionChecker(fsm, knowledge_dir, fake)
        args = {"winner_id": "x", "title": "Decision"}
        assert checker.check_preconditions(roles.TOOL_DECIDE, args) is None
        fake.count_holons_by_layer.assert_called_once_with("default")


class TestCalculateRPreconditions:
    def test_requires_store(self, checker):
        err = _rejects(checker, roles.TOOL_CALCULATE_R, {})
        assert err.condition == "database not initialized"
        assert "quint_init" in err.suggestion

    def test_missing_holon_id(self, store_checker):
        err = _rejects(store_checker, roles.TOOL_CALCULATE_R, {})
        assert err.condition == "holon_id is required"

    def test_nonexistent_holon(self, store_checker):
        err = _rejects(store_checker, roles.TOOL_CALCULATE_R, {"holon_id": "ghost"})
        assert err.condition == "holon 'ghost' not found"

    def test_existing_holon(self, store_checker, store):
        store.create_holon(Holon(id="h", title="H"))
        assert store_checker.check_preconditions(roles.TOOL_CALCULATE_R, {"holon_id": "h"}) is None

    def test_lookup_failure_treated_as_missing(self, fsm, knowledge_dir):
        broken = Mock()
        broken.get_holon.side_effect = StorageError("disk I/O error")
        checker = PreconditionChecker(fsm, knowledge_dir, broken)
        err = _rejects(checker, roles.TOOL_CALCULATE_R, {"holon_id": "h"})
        assert err.condition == "holon 'h' not found"


class TestAuditTreePreconditions:
    def test_requires_store(self, checker):
        err = _rejects(checker, roles.TOOL_AUDIT_TREE, {"holon_id": "h"})
        assert err.condition == "database not initialized"

    def test_missing_holon_id(self, store_checker):
        err = _rejects(store_checker, roles.TOOL_AUDIT_TREE, {})
        assert err.condition == "holon_id is required"

    def test_nonexistent_holon_passes(self, store_checker):
        assert store_checker.check_preconditions(roles.TOOL_AUDIT_TREE, {"holon_id": "x"}) is None


class TestSearchPreconditions:
    def test_valid(self, checker):
        assert checker.check_preconditions(roles.TOOL_SEARCH, {"query": "sqlite"}) is None

    def test_with_filters(self, checker):
        args = {"query": "sqlite", "layer_filter": "L2", "scope": "holons", "limit": "5"}
        assert checker.check_preconditions(roles.TOOL_SEARCH, args) is None

    def test_missing_query(self, checker):
        err = _rejects(checker, roles.TOOL_SEARCH, {})
        assert err.condition == "query is required"

    def test_whitespace_query(self, checker):
        err = _rejects(checker, roles.TOOL_SEARCH, {"query": "   "})
        assert err.condition == "query is required"


class TestPreconditionError:
    def test_format(self):
        err = PreconditionError("quint_test", "some condition", "some suggestion")
        assert str(err) == (
            "Precondition failed for quint_test: some condition. Suggestion: some suggestion"
        )

    def test_fields_and_dict(self):
        err = PreconditionError("quint_verify", "c", "s")
        assert err.tool == "quint_verify"
        assert err.to_dict() == {"tool": "quint_verify", "condition": "c", "suggestion": "s"}

    def test_rejection_message_names_tool(self, checker):
        err = _rejects(checker, roles.TOOL_PROPOSE, {"content": "c", "kind": "system"})
        text = str(err)
        assert text.startswith("Precondition failed for quint_propose: title is required.")
        assert "Suggestion: " in text
