"""Markdown knowledge tiers for quint.

Free functions that keep the human-readable side of the knowledge base:
one ``<id>.md`` file per holon inside the directory of its current layer,
decision records under ``decisions/``, and the bounded context in
``context.md``. A holon's layer is wherever its file currently lives, so
promotion is a move between tier directories.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from quint.types import TIER_ORDER, DecisionRecord, Evidence, Holon, Layer
from quint.utils import validate_holon_id

logger = logging.getLogger(__name__)


def ensure_tiers(knowledge_dir: Path) -> None:
    for layer in TIER_ORDER:
        (knowledge_dir / layer.value).mkdir(parents=True, exist_ok=True)


def holon_path(knowledge_dir: Path, layer: Layer, holon_id: str) -> Path:
    """Path of a holon file in a tier.

    Raises:
        ValueError: ``holon_id`` would leave the tier directory
    """
    validate_holon_id(holon_id)
    return knowledge_dir / layer.value / f"{holon_id}.md"


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    os.chmod(path, 0o600)


def render_holon(holon: Holon) -> str:
    lines = [
        f"# {holon.title}",
        "",
        f"- id: {holon.id}",
        f"- kind: {holon.kind}",
        f"- layer: {holon.layer}",
    ]
    if holon.scope:
        lines.append(f"- scope: {holon.scope}")
    if holon.created_at:
        lines.append(f"- created: {holon.created_at}")
    lines += ["", "## Content", holon.content, ""]
    if holon.rationale:
        lines += ["## Rationale", holon.rationale, ""]
    return "\n".join(lines)


def write_holon_file(knowledge_dir: Path, holon: Holon) -> Path:
    """Write a holon into the tier named by ``holon.layer``."""
    path = holon_path(knowledge_dir, Layer(holon.layer), holon.id)
    _write(path, render_holon(holon))
    return path


def move_holon_file(knowledge_dir: Path, holon_id: str, from_layer: Layer, to_layer: Layer) -> Path:
    """Move a holon's file between tiers.

    Raises:
        FileNotFoundError: The holon has no file in ``from_layer``
    """
    source = holon_path(knowledge_dir, from_layer, holon_id)
    target = holon_path(knowledge_dir, to_layer, holon_id)
    if source == target:
        return target
    if not source.exists():
        raise FileNotFoundError(f"{holon_id} has no file in {from_layer.value}")
    target.parent.mkdir(parents=True, exist_ok=True)
    source.replace(target)
    _set_layer_line(target, to_layer)
    logger.info(f"Moved {holon_id}: {from_layer.value} -> {to_layer.value}")
    return target


def _set_layer_line(path: Path, layer: Layer) -> None:
    lines = path.read_text(encoding="utf-8").split("\n")
    for i, line in enumerate(lines):
        if line.startswith("- layer: "):
            lines[i] = f"- layer: {layer.value}"
            break
    _write(path, "\n".join(lines))


def append_evidence(path: Path, evidence: Evidence) -> None:
    lines = ["", f"## Evidence: {evidence.type} ({evidence.verdict or 'n/a'})"]
    if evidence.created_at:
        lines.append(f"_Recorded: {evidence.created_at}_")
    if evidence.valid_until:
        lines.append(f"_Valid until: {evidence.valid_until}_")
    if evidence.content:
        lines.append(evidence.content)
    with open(path, "a", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def read_title(path: Path) -> Optional[str]:
    """First ``# `` heading of a markdown file, if any."""
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                if line.startswith("# "):
                    return line[2:].strip()
    except OSError as e:
        logger.warning(f"Failed to read {path}: {e}")
    return None


def list_tier(knowledge_dir: Path, layer: Layer) -> List[str]:
    tier = knowledge_dir / layer.value
    if not tier.is_dir():
        return []
    return sorted(p.stem for p in tier.glob("*.md"))


def write_decision_file(decisions_dir: Path, record: DecisionRecord) -> Path:
    """Write a decision record (DRR) as markdown."""
    lines = [
        f"# {record.title}",
        "",
        f"- id: {record.id}",
        f"- winner: {record.winner_id}",
    ]
    if record.created_at:
        lines.append(f"- date: {record.created_at}")
    lines.append("")
    for heading, body in (
        ("Context", record.context),
        ("Decision", record.decision),
        ("Rationale", record.rationale),
        ("Consequences", record.consequences),
    ):
        if body:
            lines += [f"## {heading}", body, ""]
    path = decisions_dir / f"{record.id}.md"
    _write(path, "\n".join(lines))
    return path


def write_context_file(path: Path, vocabulary: str, invariants: str, now: str) -> None:
    lines = [
        "# Bounded Context",
        f"_Last updated: {now}_",
        "",
        "## Vocabulary",
        vocabulary,
        "",
        "## Invariants",
        invariants,
        "",
    ]
    _write(path, "\n".join(lines))
