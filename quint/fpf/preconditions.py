"""Precondition checks for quint tools.

Every tool call passes through ``PreconditionChecker.check_preconditions``
before any effect runs. The check is a pure function of the tool name, its
arguments, the current phase and the current knowledge base: nothing is
cached between calls.

Order of evaluation:
1. L2 refresh bypass (quint_test only): re-testing a holon already at L2
   skips the phase gate and goes straight to the semantic checks.
2. Phase gate, for tools listed in ``TOOL_PHASE_GATE``.
3. Tool-specific semantic checks. Unknown tools pass unchecked.

The first violated rule raises a PreconditionError; nothing is accumulated.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from quint.fpf import roles
from quint.fpf.arguments import (
    AuditArgs,
    DecideArgs,
    HolonRefArgs,
    ProposeArgs,
    RecordContextArgs,
    SearchArgs,
    TestArgs,
    ToolArguments,
    VerifyArgs,
    parse_arguments,
)
from quint.fpf.fsm import FSM
from quint.fpf.layers import FilesystemLayerSource, LayerResolver, StoreLayerSource
from quint.protocols import LayerStore, PreconditionError, StorageError
from quint.types import VALID_KIND_VALUES, VALID_VERDICT_VALUES, Layer

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "default"


def _require(value: str, tool: str, field_name: str, suggestion: str) -> None:
    if not value:
        raise PreconditionError(tool, f"{field_name} is required", suggestion)


def _require_verdict(verdict: str, tool: str, suggestion: str) -> None:
    if verdict not in VALID_VERDICT_VALUES:
        raise PreconditionError(tool, "verdict must be PASS, FAIL, or REFINE", suggestion)


class PreconditionChecker:
    """Gate and validate tool calls against the current knowledge base.

    Args:
        fsm: Source of the current phase
        knowledge_dir: Root of the ``L0/L1/L2/invalid`` tiers
        store: Structured store, or None when no database is configured.
            Store-backed checks then either degrade (decide) or fail fast
            (calculate_r, audit_tree).
    """

    def __init__(self, fsm: FSM, knowledge_dir: Path, store: Optional[LayerStore] = None):
        self.fsm = fsm
        self.store = store
        self.filesystem = FilesystemLayerSource(knowledge_dir)
        self.resolver = LayerResolver.for_project(knowledge_dir, store)

        self._checks: Dict[str, Callable[[ToolArguments], None]] = {
            roles.TOOL_INIT: self._check_init,
            roles.TOOL_RECORD_CONTEXT: self._check_record_context,
            roles.TOOL_PROPOSE: self._check_propose,
            roles.TOOL_VERIFY: self._check_verify,
            roles.TOOL_TEST: self._check_test,
            roles.TOOL_AUDIT: self._check_audit,
            roles.TOOL_DECIDE: self._check_decide,
            roles.TOOL_CALCULATE_R: self._check_calculate_r,
            roles.TOOL_AUDIT_TREE: self._check_audit_tree,
            roles.TOOL_SEARCH: self._check_search,
        }

    # === Entry point ===

    def check_preconditions(self, tool_name: str, args: Optional[Mapping[str, object]]) -> None:
        """Permit the call or raise PreconditionError.

        Absent argument keys are treated as empty values.
        """
        typed = parse_arguments(tool_name, args)

        if tool_name == roles.TOOL_TEST and self._is_l2_refresh(typed):
            logger.debug(f"{tool_name}: L2 refresh, phase gate bypassed")
            self._check_test(typed)
            return

        self.check_phase_gate(tool_name)

        check = self._checks.get(tool_name)
        if check is not None:
            check(typed)
        logger.debug(f"Preconditions passed for {tool_name}")

    def check_phase_gate(self, tool_name: str) -> None:
        allowed = roles.get_allowed_phases(tool_name)
        if allowed is None:
            return

        current = self.fsm.get_phase()
        if current in allowed:
            return

        raise PreconditionError(
            tool_name,
            f"current phase is {current}",
            f"Allowed phases: {roles.format_phases(allowed)}. "
            f"Phase {current} expects {roles.get_expected_role(current)}",
        )

    def _is_l2_refresh(self, args: Optional[ToolArguments]) -> bool:
        hypothesis_id = getattr(args, "hypothesis_id", "")
        if not hypothesis_id:
            return False
        return self.resolver.find(hypothesis_id) == Layer.L2.value

    # === Tool-specific checks ===

    def _check_init(self, args: ToolArguments) -> None:
        # quint_init has no required parameters
        return None

    def _check_record_context(self, args: RecordContextArgs) -> None:
        tool = roles.TOOL_RECORD_CONTEXT
        _require(args.vocabulary, tool, "vocabulary", "Provide key terms and their definitions")
        _require(args.invariants, tool, "invariants", "Provide system rules and constraints")

    def _check_propose(self, args: ProposeArgs) -> None:
        tool = roles.TOOL_PROPOSE
        _require(args.title, tool, "title", "Provide a descriptive title for the hypothesis")
        _require(args.content, tool, "content", "Describe the hypothesis in detail")
        if args.kind not in VALID_KIND_VALUES:
            raise PreconditionError(
                tool,
                "kind must be 'system' or 'episteme'",
                "Use 'system' for technical hypotheses, 'episteme' for knowledge claims",
            )

    def _check_verify(self, args: VerifyArgs) -> None:
        tool = roles.TOOL_VERIFY
        hypothesis_id = args.hypothesis_id
        _require(hypothesis_id, tool, "hypothesis_id", "Specify which hypothesis to verify")

        # verify only ever acts on L0 material, so look there directly
        if not self.filesystem.has_record(Layer.L0, hypothesis_id):
            raise PreconditionError(
                tool,
                f"hypothesis '{hypothesis_id}' not found in L0",
                "Run quint_propose first to create a hypothesis, or check the hypothesis ID",
            )

        _require_verdict(args.verdict, tool, "Specify the verification outcome")

    def _check_test(self, args: TestArgs) -> None:
        tool = roles.TOOL_TEST
        hypothesis_id = args.hypothesis_id
        _require(hypothesis_id, tool, "hypothesis_id", "Specify which hypothesis to test")

        if self.filesystem.has_record(Layer.L0, hypothesis_id):
            raise PreconditionError(
                tool,
                f"hypothesis '{hypothesis_id}' is still in L0",
                "Run quint_verify first to promote the hypothesis to L1 before testing",
            )

        if not self._exists_in_l1_or_l2(hypothesis_id):
            raise PreconditionError(
                tool,
                f"hypothesis '{hypothesis_id}' not found in L1 or L2",
                "Ensure hypothesis exists and has been verified (L0 -> L1) first. "
                "L2 hypotheses can also be tested to refresh evidence.",
            )

        _require_verdict(args.verdict, tool, "Specify the test outcome")

    def _exists_in_l1_or_l2(self, hypothesis_id: str) -> bool:
        if self.filesystem.has_record(Layer.L1, hypothesis_id):
            return True
        if self.filesystem.has_record(Layer.L2, hypothesis_id):
            return True
        if self.store is None:
            return False
        layer = StoreLayerSource(self.store).layer_of(hypothesis_id)
        return layer in (Layer.L1.value, Layer.L2.value)

    def _check_audit(self, args: AuditArgs) -> None:
        tool = roles.TOOL_AUDIT
        hypothesis_id = args.hypothesis_id
        _require(hypothesis_id, tool, "hypothesis_id", "Specify which hypothesis to audit")

        if self.store is None:
            return

        layer = StoreLayerSource(self.store).layer_of(hypothesis_id)
        if layer is None:
            raise PreconditionError(
                tool,
                f"hypothesis '{hypothesis_id}' not found",
                "Ensure hypothesis exists in the database",
            )
        if layer != Layer.L2.value:
            raise PreconditionError(
                tool,
                f"hypothesis '{hypothesis_id}' is in {layer}, not L2",
                "Only L2 (validated) hypotheses can be audited for final decision",
            )

    def _check_decide(self, args: DecideArgs) -> None:
        tool = roles.TOOL_DECIDE
        _require(args.winner_id, tool, "winner_id", "Specify the winning hypothesis ID")
        _require(args.title, tool, "title", "Provide a title for the decision record")

        # Without a store there is nothing to count; not blocking.
        if self.store is None:
            return

        if self._count_l2(DEFAULT_SCOPE) == 0:
            raise PreconditionError(
                tool,
                "no L2 hypotheses found",
                "Complete the reasoning cycle: propose (L0) -> verify (L1) -> test (L2) "
                "before deciding",
            )

    def _count_l2(self, scope: str) -> int:
        try:
            counts = self.store.count_holons_by_layer(scope)
        except StorageError as e:
            logger.debug(f"Layer count failed, treating as empty: {e}")
            return 0
        for c in counts:
            if c.layer == Layer.L2.value:
                return c.count
        return 0

    def _require_store(self, tool: str) -> None:
        if self.store is None:
            raise PreconditionError(
                tool,
                "database not initialized",
                "Run quint_init to initialize the project first",
            )

    def _check_calculate_r(self, args: HolonRefArgs) -> None:
        tool = roles.TOOL_CALCULATE_R
        self._require_store(tool)
        _require(args.holon_id, tool, "holon_id", "Specify which holon to calculate R for")

        if StoreLayerSource(self.store).layer_of(args.holon_id) is None:
            raise PreconditionError(
                tool,
                f"holon '{args.holon_id}' not found",
                "Ensure the holon exists in the database",
            )

    def _check_audit_tree(self, args: HolonRefArgs) -> None:
        tool = roles.TOOL_AUDIT_TREE
        self._require_store(tool)
        # No existence check: the tree itself reports a missing node.
        _require(
            args.holon_id,
            tool,
            "holon_id",
            "Specify which holon to visualize the audit tree for",
        )

    def _check_search(self, args: SearchArgs) -> None:
        if not args.query.strip():
            raise PreconditionError(
                roles.TOOL_SEARCH,
                "query is required",
                "Provide search terms, optionally with layer_filter or scope",
            )
