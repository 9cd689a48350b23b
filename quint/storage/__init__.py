"""quint storage backends.

Local-first structured store (SQLite) plus the markdown knowledge tiers
in ``flat_files``.
"""

from .sqlite import SQLiteStore

__all__ = [
    "SQLiteStore",
]
