"""Tools - the reasoning-cycle operations behind every quint surface.

A ``Tools`` instance binds a phase FSM, a project root and an optional
structured store. ``run()`` gates a call through the precondition checker
and then applies the tool's effect; the MCP dispatcher performs the same
two steps separately so it can format each tool's result.

Effect methods assume their preconditions already passed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from quint.fpf import roles
from quint.fpf.arguments import parse_arguments
from quint.fpf.fsm import FSM
from quint.fpf.layers import FilesystemLayerSource, LayerResolver
from quint.fpf.preconditions import PreconditionChecker
from quint.fpf.reliability import ReliabilityCalculator, ReliabilityReport
from quint.fpf.validity import DATE_FORMAT, compute_valid_until
from quint.logging_config import log_permit, log_reject, log_transition
from quint.protocols import PreconditionError, QuintError
from quint.storage import flat_files
from quint.storage.sqlite import SQLiteStore
from quint.types import (
    TIER_ORDER,
    DecisionRecord,
    Evidence,
    EvidenceType,
    Holon,
    Layer,
    Verdict,
    utc_now,
)
from quint.utils import get_db_path, get_fpf_dir, slugify

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 100

# Search scopes narrowing which record kinds are searched
SCOPE_HOLONS = ("holons", "hypotheses")
SCOPE_DECISIONS = ("decisions",)


@dataclass
class SearchResults:
    holons: List[Holon] = field(default_factory=list)
    decisions: List[DecisionRecord] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.holons and not self.decisions


class Tools:
    """Reasoning-cycle operations over one project's ``.quint`` directory.

    Args:
        fsm: Phase holder, normally bound to ``.quint/state.json``
        root: Project root containing ``.quint``
        store: Structured store, or None before ``init_project`` created one
    """

    def __init__(self, fsm: FSM, root: Path, store: Optional[SQLiteStore] = None):
        self.fsm = fsm
        self.root = Path(root)
        self.store = store
        self.project = self.root.name or "default"
        self.reliability = ReliabilityCalculator()

    @classmethod
    def open(cls, root: Path) -> "Tools":
        """Bind to a project, attaching the store only if its database exists."""
        root = Path(root)
        fpf_dir = get_fpf_dir(root)
        fsm = FSM.load(fpf_dir / "state.json")
        db_path = get_db_path(root)
        store = SQLiteStore(db_path) if db_path.exists() else None
        return cls(fsm, root, store)

    # === Paths ===

    @property
    def fpf_dir(self) -> Path:
        return get_fpf_dir(self.root)

    @property
    def knowledge_dir(self) -> Path:
        return self.fpf_dir / "knowledge"

    @property
    def decisions_dir(self) -> Path:
        return self.fpf_dir / "decisions"

    @property
    def context_path(self) -> Path:
        return self.fpf_dir / "context.md"

    @property
    def state_path(self) -> Path:
        return self.fpf_dir / "state.json"

    # === Gate ===

    @property
    def checker(self) -> PreconditionChecker:
        # Rebuilt per call so a store attached by init is seen immediately
        return PreconditionChecker(self.fsm, self.knowledge_dir, self.store)

    @property
    def filesystem(self) -> FilesystemLayerSource:
        return FilesystemLayerSource(self.knowledge_dir)

    @property
    def resolver(self) -> LayerResolver:
        return LayerResolver.for_project(self.knowledge_dir, self.store)

    def check_preconditions(self, tool_name: str, args: Optional[Mapping[str, object]]) -> None:
        """Gate a call; the rejection is logged and re-raised."""
        try:
            self.checker.check_preconditions(tool_name, args)
        except PreconditionError as e:
            logger.warning(str(e))
            log_reject(self.project, tool_name, e.condition)
            raise
        log_permit(self.project, tool_name, self.fsm.get_phase().value)

    def run(self, tool_name: str, args: Optional[Mapping[str, object]] = None) -> Any:
        """Check preconditions, then apply the tool's effect.

        Raises:
            PreconditionError: The call was rejected; nothing changed
            ValueError: Unknown tool name
        """
        effect = self._effects().get(tool_name)
        if effect is None:
            raise ValueError(f"Unknown tool: {tool_name}")
        self.check_preconditions(tool_name, args)
        typed = parse_arguments(tool_name, args)
        return effect(typed)

    def _effects(self) -> Dict[str, Any]:
        return {
            roles.TOOL_INIT: lambda a: self.init_project(),
            roles.TOOL_RECORD_CONTEXT: lambda a: self.record_context(
                a.vocabulary, a.invariants
            ),
            roles.TOOL_PROPOSE: lambda a: self.propose_hypothesis(
                a.title, a.content, a.kind, scope=a.scope, rationale=a.rationale
            ),
            roles.TOOL_VERIFY: lambda a: self.verify_hypothesis(
                a.hypothesis_id, a.verdict, checks_json=a.checks_json
            ),
            roles.TOOL_TEST: lambda a: self.test_hypothesis(
                a.hypothesis_id, a.verdict, test_type=a.test_type, result=a.result
            ),
            roles.TOOL_AUDIT: lambda a: self.audit_hypothesis(a.hypothesis_id, a.risks),
            roles.TOOL_DECIDE: lambda a: self.finalize_decision(
                a.winner_id,
                a.title,
                context=a.context,
                decision=a.decision,
                rationale=a.rationale,
                consequences=a.consequences,
            ),
            roles.TOOL_CALCULATE_R: lambda a: self.calculate_r(a.holon_id),
            roles.TOOL_AUDIT_TREE: lambda a: self.audit_tree(a.holon_id),
            roles.TOOL_SEARCH: lambda a: self.search(
                a.query, layer_filter=a.layer_filter, scope=a.scope, limit=a.limit
            ),
            roles.TOOL_STATUS: lambda a: self.status(),
            roles.TOOL_CHECK_DECAY: lambda a: self.check_decay(),
            roles.TOOL_ACTUALIZE: lambda a: self.actualize(),
            roles.TOOL_RESET: lambda a: self.reset(),
        }

    def _advance(self, tool_name: str) -> None:
        previous = self.fsm.get_phase()
        current = self.fsm.advance_after(tool_name)
        if current is not None:
            log_transition(self.project, previous.value, current.value, tool=tool_name)

    # === Initialization ===

    def init_project(self) -> Path:
        """Create the ``.quint`` layout, phase state and database.

        Safe to re-run: existing knowledge and phase are kept.
        """
        flat_files.ensure_tiers(self.knowledge_dir)
        self.decisions_dir.mkdir(parents=True, exist_ok=True)
        if not self.state_path.exists():
            self.fsm.state_path = self.state_path
            self.fsm.save()
        if self.store is None:
            self.store = SQLiteStore(get_db_path(self.root))
        logger.info(f"Initialized quint project at {self.fpf_dir}")
        return self.fpf_dir

    def record_context(self, vocabulary: str, invariants: str) -> Path:
        flat_files.write_context_file(self.context_path, vocabulary, invariants, utc_now())
        if self.store is not None:
            self.store.save_context(vocabulary, invariants)
        logger.info("Recorded bounded context")
        return self.context_path

    # === Reasoning cycle ===

    def _unique_holon_id(self, base: str) -> str:
        resolver = self.resolver
        candidate = base
        n = 2
        while resolver.find(candidate) is not None:
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    def propose_hypothesis(
        self,
        title: str,
        content: str,
        kind: str,
        scope: str = "",
        rationale: str = "",
    ) -> Holon:
        """Record a new L0 hypothesis as a tier file and a store row."""
        now = utc_now()
        holon = Holon(
            id=self._unique_holon_id(slugify(title)),
            title=title,
            kind=kind,
            layer=Layer.L0.value,
            content=content,
            scope=scope,
            rationale=rationale,
            created_at=now,
            updated_at=now,
        )
        flat_files.write_holon_file(self.knowledge_dir, holon)
        if self.store is not None:
            self.store.create_holon(holon)
        logger.info(f"Proposed {holon.id} ({holon.kind}) at L0")
        self._advance(roles.TOOL_PROPOSE)
        return holon

    def _relayer(self, holon_id: str, current: Layer, target: Layer) -> None:
        """Move a holon between layers in both representations."""
        if target == current:
            return
        if self.filesystem.has_record(current, holon_id):
            flat_files.move_holon_file(self.knowledge_dir, holon_id, current, target)
        if self.store is not None and not self.store.update_holon_layer(
            holon_id, target.value
        ):
            logger.warning(f"{holon_id} has no store row; only its file was moved")

    def _record_evidence(self, evidence: Evidence) -> Evidence:
        if self.store is not None:
            evidence.id = self.store.add_evidence(evidence)
        layer = self.filesystem.layer_of(evidence.holon_id)
        if layer is not None:
            path = flat_files.holon_path(self.knowledge_dir, Layer(layer), evidence.holon_id)
            flat_files.append_evidence(path, evidence)
        return evidence

    def verify_hypothesis(self, hypothesis_id: str, verdict: str, checks_json: str = "") -> Layer:
        """Deductive check of an L0 hypothesis.

        PASS promotes to L1, FAIL moves to invalid, REFINE leaves it in L0.
        Returns the layer the hypothesis ends up in.
        """
        target = {
            Verdict.PASS.value: Layer.L1,
            Verdict.FAIL.value: Layer.INVALID,
        }.get(verdict, Layer.L0)
        self._relayer(hypothesis_id, Layer.L0, target)
        self._record_evidence(
            Evidence(
                id="",
                holon_id=hypothesis_id,
                type=EvidenceType.VERIFICATION.value,
                content=checks_json,
                verdict=verdict,
                created_at=utc_now(),
            )
        )
        logger.info(f"Verified {hypothesis_id}: {verdict} -> {target.value}")
        self._advance(roles.TOOL_VERIFY)
        return target

    def test_hypothesis(
        self,
        hypothesis_id: str,
        verdict: str,
        test_type: str = "",
        result: str = "",
    ) -> Layer:
        """Inductive check of an L1 hypothesis, or a refresh of an L2 one.

        PASS promotes to (or keeps at) L2, FAIL moves to invalid, REFINE
        keeps the current layer. A refresh leaves the phase unchanged.
        Returns the layer the hypothesis ends up in.
        """
        current = Layer(self.resolver.resolve(hypothesis_id))
        refresh = current == Layer.L2
        target = {
            Verdict.PASS.value: Layer.L2,
            Verdict.FAIL.value: Layer.INVALID,
        }.get(verdict, current)
        self._relayer(hypothesis_id, current, target)

        evidence_type = (
            EvidenceType.EXTERNAL.value
            if test_type == EvidenceType.EXTERNAL.value
            else EvidenceType.INTERNAL.value
        )
        evidence = self._record_evidence(
            Evidence(
                id="",
                holon_id=hypothesis_id,
                type=evidence_type,
                content=result,
                verdict=verdict,
                valid_until=compute_valid_until(test_type),
                created_at=utc_now(),
            )
        )
        logger.info(
            f"Tested {hypothesis_id} ({evidence_type}): {verdict} -> {target.value}, "
            f"valid until {evidence.valid_until}"
        )
        if refresh:
            logger.info(f"{hypothesis_id} evidence refreshed at L2; phase unchanged")
        else:
            self._advance(roles.TOOL_TEST)
        return target

    def audit_hypothesis(self, hypothesis_id: str, risks: str) -> Evidence:
        """Attach an audit (risk) note to a validated hypothesis."""
        evidence = self._record_evidence(
            Evidence(
                id="",
                holon_id=hypothesis_id,
                type=EvidenceType.AUDIT.value,
                content=risks,
                created_at=utc_now(),
            )
        )
        logger.info(f"Audited {hypothesis_id}")
        self._advance(roles.TOOL_AUDIT)
        return evidence

    def finalize_decision(
        self,
        winner_id: str,
        title: str,
        context: str = "",
        decision: str = "",
        rationale: str = "",
        consequences: str = "",
    ) -> DecisionRecord:
        """Write a decision record (DRR) naming the winning hypothesis."""
        now = datetime.now(timezone.utc)
        base = f"DRR-{now.strftime('%Y%m%d')}-{slugify(title)}"
        record_id = base
        n = 2
        while (self.decisions_dir / f"{record_id}.md").exists():
            record_id = f"{base}-{n}"
            n += 1

        record = DecisionRecord(
            id=record_id,
            winner_id=winner_id,
            title=title,
            context=context,
            decision=decision,
            rationale=rationale,
            consequences=consequences,
            created_at=now.isoformat(),
        )
        flat_files.write_decision_file(self.decisions_dir, record)
        if self.store is not None:
            self.store.save_decision(record)
        logger.info(f"Decision {record.id} recorded (winner {winner_id})")
        self._advance(roles.TOOL_DECIDE)
        return record

    # === Read-only ===

    def _require_store(self) -> SQLiteStore:
        if self.store is None:
            raise QuintError("database not initialized; run quint_init first")
        return self.store

    def calculate_r(self, holon_id: str, today: Optional[date] = None) -> ReliabilityReport:
        store = self._require_store()
        holon = store.get_holon(holon_id)
        layer = self.resolver.find(holon_id) or (holon.layer if holon else "unknown")
        return self.reliability.calculate(holon_id, layer, store.get_evidence(holon_id), today)

    def audit_tree(self, holon_id: str, today: Optional[date] = None) -> str:
        """Plain-text tree of a holon with its evidence and decisions."""
        store = self._require_store()
        holon = store.get_holon(holon_id)
        layer = self.resolver.find(holon_id)
        if holon is None and layer is None:
            return f"{holon_id} [missing]"

        if holon is not None:
            title = holon.title
        else:
            path = flat_files.holon_path(self.knowledge_dir, Layer(layer), holon_id)
            title = flat_files.read_title(path) or holon_id

        report = self.calculate_r(holon_id, today)
        scored = {f.evidence_id: f for f in report.factors}
        branches = []
        for e in store.get_evidence(holon_id):
            f = scored.get(e.id)
            if f is None and e.verdict:
                branches.append(f"{e.type} {e.verdict} (superseded)")
                continue
            if f is None:
                summary = e.content.strip().splitlines()[0] if e.content.strip() else "-"
                branches.append(f"{e.type}: {summary}")
                continue
            line = f"{f.type} {f.verdict} R={f.score:.2f}"
            if f.expired:
                line += " (expired)"
            branches.append(line)
        for d in store.get_decisions():
            if d.winner_id == holon_id:
                branches.append(f"decision {d.id}: {d.title}")

        lines = [f"{holon_id} [{report.layer}] {title} R_eff={report.r_eff:.2f}"]
        if not branches:
            lines.append("└── (no evidence)")
        for i, branch in enumerate(branches):
            connector = "└──" if i == len(branches) - 1 else "├──"
            lines.append(f"{connector} {branch}")
        return "\n".join(lines)

    def search(
        self,
        query: str,
        layer_filter: str = "",
        scope: str = "",
        limit: Any = DEFAULT_SEARCH_LIMIT,
    ) -> SearchResults:
        """Text search over holons and decision records.

        ``scope`` narrows the record kinds ("holons" or "decisions"); any
        other value searches both. ``layer_filter`` applies to holons.
        Without a store the knowledge tier files are scanned instead.
        """
        n = _parse_limit(limit)
        scope = (scope or "").strip().lower()
        results = SearchResults()
        want_holons = scope not in SCOPE_DECISIONS
        want_decisions = scope not in SCOPE_HOLONS

        if self.store is None:
            if want_holons:
                results.holons = self._scan_tiers(query, layer_filter or None, n)
            return results

        if want_holons:
            results.holons = self.store.search_holons(query, layer=layer_filter or None, limit=n)
        if want_decisions:
            results.decisions = self.store.search_decisions(query, limit=n)
        logger.debug(
            f"Search {query!r}: {len(results.holons)} holons, {len(results.decisions)} decisions"
        )
        return results

    def _scan_tiers(self, query: str, layer: Optional[str], limit: int) -> List[Holon]:
        needle = query.strip().lower()
        found = []
        for tier in TIER_ORDER:
            if layer and tier.value != layer:
                continue
            for holon_id in flat_files.list_tier(self.knowledge_dir, tier):
                path = flat_files.holon_path(self.knowledge_dir, tier, holon_id)
                try:
                    text = path.read_text(encoding="utf-8")
                except OSError as e:
                    logger.warning(f"Skipping unreadable {path}: {e}")
                    continue
                if needle in text.lower():
                    title = flat_files.read_title(path) or holon_id
                    found.append(Holon(id=holon_id, title=title, layer=tier.value))
                if len(found) >= limit:
                    return found
        return found

    def status(self) -> Dict[str, Any]:
        phase = self.fsm.get_phase()
        tiers = {
            tier.value: len(flat_files.list_tier(self.knowledge_dir, tier)) for tier in TIER_ORDER
        }
        store_counts = None
        if self.store is not None:
            store_counts = {c.layer: c.count for c in self.store.count_holons_by_layer()}
        decisions = (
            len(list(self.decisions_dir.glob("*.md"))) if self.decisions_dir.is_dir() else 0
        )
        return {
            "root": str(self.root),
            "initialized": self.fpf_dir.is_dir(),
            "phase": phase.value,
            "expected_role": roles.get_expected_role(phase),
            "last_tool": self.fsm.state.last_tool,
            "tiers": tiers,
            "store": store_counts,
            "decisions": decisions,
            "context_recorded": self._context_recorded(),
        }

    def _context_recorded(self) -> bool:
        if self.context_path.exists():
            return True
        return self.store is not None and self.store.get_context() is not None

    # === Maintenance ===

    def check_decay(self, today: Optional[date] = None) -> List[Evidence]:
        """L2 evidence whose validity window has ended."""
        if self.store is None:
            logger.debug("No store; nothing to check for decay")
            return []
        cutoff = (today or date.today()).strftime(DATE_FORMAT)
        expired = self.store.expired_evidence(cutoff)
        if expired:
            logger.info(f"{len(expired)} expired evidence record(s) on L2 holons")
        return expired

    def actualize(self) -> List[str]:
        """Bring store layers in line with the tier files.

        The filesystem wins. Rows missing from the store are created from
        the file's heading. Returns one line per change made.
        """
        if self.store is None:
            logger.debug("No store; nothing to actualize")
            return []

        changes = []
        seen = set()
        for tier in TIER_ORDER:
            for holon_id in flat_files.list_tier(self.knowledge_dir, tier):
                if holon_id in seen:
                    logger.warning(f"{holon_id} has files in more than one tier; keeping first")
                    continue
                seen.add(holon_id)

                holon = self.store.get_holon(holon_id)
                if holon is None:
                    path = flat_files.holon_path(self.knowledge_dir, tier, holon_id)
                    title = flat_files.read_title(path) or holon_id
                    self.store.create_holon(Holon(id=holon_id, title=title, layer=tier.value))
                    changes.append(f"{holon_id}: created at {tier.value}")
                elif holon.layer != tier.value:
                    self.store.update_holon_layer(holon_id, tier.value)
                    changes.append(f"{holon_id}: {holon.layer} -> {tier.value}")

        for change in changes:
            logger.info(f"Actualized {change}")
        return changes

    def reset(self) -> None:
        """Return to IDLE. Knowledge is untouched."""
        self._advance(roles.TOOL_RESET)


def _parse_limit(limit: Any) -> int:
    try:
        n = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_SEARCH_LIMIT
    if n <= 0:
        return DEFAULT_SEARCH_LIMIT
    return min(n, MAX_SEARCH_LIMIT)
