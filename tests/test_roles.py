"""Tests for quint.fpf.roles - role table and phase-gate table."""

from types import MappingProxyType

import pytest

from quint.fpf import roles
from quint.fpf.roles import Role
from quint.types import Phase


class TestGetRoleForTool:
    @pytest.mark.parametrize(
        "tool,expected",
        [
            ("quint_init", Role.INITIALIZER),
            ("quint_record_context", Role.INITIALIZER),
            ("quint_propose", Role.ABDUCTOR),
            ("quint_verify", Role.DEDUCTOR),
            ("quint_test", Role.INDUCTOR),
            ("quint_audit", Role.AUDITOR),
            ("quint_decide", Role.DECIDER),
            ("quint_reset", Role.MAINTAINER),
            ("quint_check_decay", Role.MAINTAINER),
            ("quint_actualize", Role.MAINTAINER),
            ("quint_status", Role.OBSERVER),
            ("quint_calculate_r", Role.OBSERVER),
            ("quint_audit_tree", Role.OBSERVER),
            ("quint_search", Role.OBSERVER),
        ],
    )
    def test_known_tools(self, tool, expected):
        assert roles.get_role_for_tool(tool) == expected

    def test_unknown_tool_is_observer(self):
        assert roles.get_role_for_tool("unknown_tool") == Role.OBSERVER

    def test_role_str(self):
        assert str(Role.ABDUCTOR) == "Abductor"


class TestGetAllowedPhases:
    def test_only_core_tools_gated(self):
        assert set(roles.TOOL_PHASE_GATE) == {
            "quint_propose",
            "quint_verify",
            "quint_test",
            "quint_audit",
            "quint_decide",
        }

    @pytest.mark.parametrize(
        "tool,expected",
        [
            ("quint_propose", {Phase.IDLE, Phase.ABDUCTION, Phase.DEDUCTION, Phase.INDUCTION}),
            ("quint_verify", {Phase.ABDUCTION, Phase.DEDUCTION}),
            ("quint_test", {Phase.DEDUCTION, Phase.INDUCTION}),
            ("quint_audit", {Phase.INDUCTION, Phase.AUDIT}),
            ("quint_decide", {Phase.AUDIT, Phase.DECISION}),
        ],
    )
    def test_gated_tools(self, tool, expected):
        assert roles.get_allowed_phases(tool) == expected

    @pytest.mark.parametrize(
        "tool",
        ["quint_init", "quint_record_context", "quint_status", "quint_calculate_r", "quint_reset"],
    )
    def test_unrestricted_tools(self, tool):
        assert roles.get_allowed_phases(tool) is None

    def test_tables_are_read_only(self):
        assert isinstance(roles.TOOL_PHASE_GATE, MappingProxyType)
        assert isinstance(roles.TOOL_ROLE, MappingProxyType)
        with pytest.raises(TypeError):
            roles.TOOL_PHASE_GATE["quint_init"] = frozenset({Phase.IDLE})


class TestIsPhaseAllowed:
    @pytest.mark.parametrize(
        "tool,phase,allowed",
        [
            ("quint_propose", Phase.IDLE, True),
            ("quint_propose", Phase.INDUCTION, True),
            ("quint_propose", Phase.AUDIT, False),
            ("quint_propose", Phase.DECISION, False),
            ("quint_verify", Phase.IDLE, False),
            ("quint_verify", Phase.ABDUCTION, True),
            ("quint_verify", Phase.INDUCTION, False),
            ("quint_test", Phase.DEDUCTION, True),
            ("quint_test", Phase.AUDIT, False),
            ("quint_audit", Phase.INDUCTION, True),
            ("quint_audit", Phase.DECISION, False),
            ("quint_decide", Phase.AUDIT, True),
            ("quint_decide", Phase.INDUCTION, False),
            ("quint_decide", Phase.OPERATION, False),
        ],
    )
    def test_gate(self, tool, phase, allowed):
        assert roles.is_phase_allowed(tool, phase) is allowed

    @pytest.mark.parametrize("phase", list(Phase))
    def test_ungated_allowed_everywhere(self, phase):
        assert roles.is_phase_allowed("quint_init", phase)
        assert roles.is_phase_allowed("not_a_tool", phase)


class TestExpectedRole:
    @pytest.mark.parametrize(
        "phase,expected",
        [
            (Phase.IDLE, "Initializer or Abductor"),
            (Phase.ABDUCTION, "Abductor or Deductor"),
            (Phase.DEDUCTION, "Deductor or Inductor"),
            (Phase.INDUCTION, "Inductor or Auditor"),
            (Phase.AUDIT, "Auditor or Decider"),
            (Phase.DECISION, "Decider"),
            (Phase.OPERATION, "Decider"),
        ],
    )
    def test_expected_role(self, phase, expected):
        assert roles.get_expected_role(phase) == expected

    def test_unknown_phase(self):
        assert roles.get_expected_role("NOT_A_PHASE") == "Unknown"


class TestFormatPhases:
    def test_cycle_order(self):
        phases = frozenset({Phase.DEDUCTION, Phase.ABDUCTION})
        assert roles.format_phases(phases) == "[ABDUCTION, DEDUCTION]"

    def test_empty(self):
        assert roles.format_phases(frozenset()) == "[]"
