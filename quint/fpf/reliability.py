"""Reliability (R) scores for holons.

The default calculator applies the weakest-link rule: a holon is only as
reliable as its least reliable piece of evidence. Expired evidence counts
for half. Only the latest test result counts: an earlier internal or
external test is superseded by a later one. Evidence without a verdict is
ignored, and a holon with no scored evidence gets 0.0.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from quint.fpf.validity import is_expired
from quint.types import Evidence, EvidenceType, Verdict

VERDICT_SCORES = {
    Verdict.PASS.value: 1.0,
    Verdict.REFINE.value: 0.5,
    Verdict.FAIL.value: 0.0,
}
EXPIRED_PENALTY = 0.5

TEST_EVIDENCE_TYPES = frozenset({EvidenceType.INTERNAL.value, EvidenceType.EXTERNAL.value})


@dataclass
class EvidenceFactor:
    evidence_id: str
    type: str
    verdict: str
    score: float
    expired: bool = False


@dataclass
class ReliabilityReport:
    holon_id: str
    layer: str
    r_eff: float
    factors: List[EvidenceFactor] = field(default_factory=list)

    @property
    def weakest(self) -> Optional[EvidenceFactor]:
        if not self.factors:
            return None
        return min(self.factors, key=lambda f: f.score)

    def summary(self) -> str:
        lines = [f"R_eff({self.holon_id}) = {self.r_eff:.2f} [{self.layer}]"]
        weakest = self.weakest
        if weakest is None:
            lines.append("  no evidence recorded")
        else:
            lines.append(
                f"  weakest link: {weakest.type} {weakest.verdict} ({weakest.score:.2f})"
                + (" expired" if weakest.expired else "")
            )
        return "\n".join(lines)


def current_evidence(evidence: List[Evidence]) -> List[Evidence]:
    """Drop test results superseded by a later test of the same holon.

    Tests are ordered by ``created_at``, then by position in ``evidence``.
    """
    tests = [(i, e) for i, e in enumerate(evidence) if e.type in TEST_EVIDENCE_TYPES]
    if len(tests) < 2:
        return list(evidence)
    _, latest = max(tests, key=lambda pair: (pair[1].created_at or "", pair[0]))
    return [e for e in evidence if e.type not in TEST_EVIDENCE_TYPES or e is latest]


class ReliabilityCalculator:
    """Weakest-link reliability over a holon's evidence."""

    def score_evidence(self, evidence: Evidence, today: Optional[date] = None) -> EvidenceFactor:
        score = VERDICT_SCORES.get(evidence.verdict, 0.0)
        expired = is_expired(evidence.valid_until, today)
        if expired:
            score *= EXPIRED_PENALTY
        return EvidenceFactor(
            evidence_id=evidence.id,
            type=evidence.type,
            verdict=evidence.verdict,
            score=score,
            expired=expired,
        )

    def calculate(
        self,
        holon_id: str,
        layer: str,
        evidence: List[Evidence],
        today: Optional[date] = None,
    ) -> ReliabilityReport:
        # Notes without a verdict (audit risks) carry no reliability signal
        factors = [self.score_evidence(e, today) for e in current_evidence(evidence) if e.verdict]
        r_eff = min((f.score for f in factors), default=0.0)
        return ReliabilityReport(holon_id=holon_id, layer=layer, r_eff=r_eff, factors=factors)
