"""Layer lookup for holons.

A holon can be represented twice: as a markdown file in one of the
knowledge tiers (human-readable, directly editable) and as a row in the
structured store (queryable, used for aggregate checks). Each
representation is a LayerSource; LayerResolver asks them in order and the
first answer wins, so the filesystem is authoritative when both exist.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from quint.protocols import HolonNotFoundError, LayerSource, LayerStore, StorageError
from quint.types import TIER_ORDER, Layer
from quint.utils import validate_holon_id

logger = logging.getLogger(__name__)


class FilesystemLayerSource:
    """Layer lookup against ``<knowledge>/<layer>/<id>.md`` files.

    Only existence is checked, never content.
    """

    name = "filesystem"

    def __init__(self, knowledge_dir: Path):
        self.knowledge_dir = Path(knowledge_dir)

    def record_path(self, layer: Layer, holon_id: str) -> Path:
        validate_holon_id(holon_id)
        return self.knowledge_dir / layer.value / f"{holon_id}.md"

    def has_record(self, layer: Layer, holon_id: str) -> bool:
        if not holon_id:
            return False
        return self.record_path(layer, holon_id).is_file()

    def layer_of(self, holon_id: str) -> Optional[str]:
        for layer in TIER_ORDER:
            if self.has_record(layer, holon_id):
                return layer.value
        return None


class StoreLayerSource:
    """Layer lookup against the structured store.

    A store failure is reported as "not found": callers see one uniform
    miss whether the row is absent or the query failed.
    """

    name = "store"

    def __init__(self, store: LayerStore):
        self.store = store

    def layer_of(self, holon_id: str) -> Optional[str]:
        if not holon_id:
            return None
        try:
            holon = self.store.get_holon(holon_id)
        except StorageError as e:
            logger.debug(f"Store lookup for {holon_id} failed, treating as missing: {e}")
            return None
        if holon is None:
            return None
        return holon.layer


class LayerResolver:
    """Ordered fallback over layer sources."""

    def __init__(self, sources: Sequence[LayerSource]):
        self.sources = list(sources)

    @classmethod
    def for_project(
        cls, knowledge_dir: Path, store: Optional[LayerStore] = None
    ) -> "LayerResolver":
        """Filesystem first, then the store when one is configured."""
        sources: List[LayerSource] = [FilesystemLayerSource(knowledge_dir)]
        if store is not None:
            sources.append(StoreLayerSource(store))
        return cls(sources)

    def find(self, holon_id: str) -> Optional[str]:
        """Return the holon's layer, or None if no source knows it."""
        for source in self.sources:
            layer = source.layer_of(holon_id)
            if layer is not None:
                logger.debug(f"Resolved {holon_id} to {layer} via {source.name}")
                return layer
        return None

    def resolve(self, holon_id: str) -> str:
        """Return the holon's layer.

        Raises:
            HolonNotFoundError: No source has a record for the holon
        """
        layer = self.find(holon_id)
        if layer is None:
            raise HolonNotFoundError(holon_id)
        return layer
