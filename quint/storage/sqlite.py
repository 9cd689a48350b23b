"""SQLite-based structured store for quint.

Features:
- Zero-config local storage at ``.quint/quint.db``
- Implements the LayerStore protocol consumed by the precondition engine
- Per-operation connections; every sqlite3 failure surfaces as StorageError
"""

import contextlib
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from quint.protocols import StorageError
from quint.storage.schema import init_db
from quint.types import DecisionRecord, Evidence, Holon, HolonType, Layer, LayerCount, utc_now

logger = logging.getLogger(__name__)

_HOLON_COLUMNS = (
    "id, type, kind, layer, title, content, context_id, scope, rationale, created_at, updated_at"
)


class SQLiteStore:
    """Local structured store for holons, evidence and decision records."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Open a connection. Prefer ``_connect()``, which also closes it."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
        except sqlite3.Error as e:
            conn.close()
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        return conn

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager that handles transactions AND closes connection.

        - Transaction commit on success
        - Transaction rollback on exception
        - Connection close in all cases
        - sqlite3 errors re-raised as StorageError
        """
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            init_db(conn, self.db_path)

    def _row_to_holon(self, row: sqlite3.Row) -> Holon:
        return Holon(
            id=row["id"],
            type=row["type"],
            kind=row["kind"],
            layer=row["layer"],
            title=row["title"],
            content=row["content"] or "",
            context_id=row["context_id"],
            scope=row["scope"] or "",
            rationale=row["rationale"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_evidence(self, row: sqlite3.Row) -> Evidence:
        return Evidence(
            id=row["id"],
            holon_id=row["holon_id"],
            type=row["type"],
            content=row["content"] or "",
            verdict=row["verdict"] or "",
            valid_until=row["valid_until"],
            created_at=row["created_at"],
        )

    def _row_to_decision(self, row: sqlite3.Row) -> DecisionRecord:
        return DecisionRecord(
            id=row["id"],
            winner_id=row["winner_id"],
            title=row["title"],
            context=row["context"] or "",
            decision=row["decision"] or "",
            rationale=row["rationale"] or "",
            consequences=row["consequences"] or "",
            created_at=row["created_at"],
        )

    # === Holons ===

    def create_holon(self, holon: Holon) -> str:
        """Insert a new holon. Duplicate ids raise StorageError."""
        now = utc_now()
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO holons ({_HOLON_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    holon.id,
                    holon.type,
                    holon.kind,
                    holon.layer,
                    holon.title,
                    holon.content,
                    holon.context_id,
                    holon.scope,
                    holon.rationale,
                    holon.created_at or now,
                    now,
                ),
            )
        logger.debug(f"Created holon {holon.id} at {holon.layer}")
        return holon.id

    def get_holon(self, holon_id: str) -> Optional[Holon]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_HOLON_COLUMNS} FROM holons WHERE id = ?", (holon_id,)
            ).fetchone()
        return self._row_to_holon(row) if row else None

    def update_holon_layer(self, holon_id: str, layer: str) -> bool:
        """Move a holon to a layer. Returns False if the holon does not exist."""
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE holons SET layer = ?, updated_at = ? WHERE id = ?",
                (layer, utc_now(), holon_id),
            )
            updated = cur.rowcount > 0
        if updated:
            logger.debug(f"Holon {holon_id} moved to {layer}")
        return updated

    def count_holons_by_layer(self, scope: str = "default") -> List[LayerCount]:
        """Per-layer counts of hypotheses in a context scope."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT layer, COUNT(*) AS n FROM holons
                   WHERE context_id = ? AND type = ?
                   GROUP BY layer ORDER BY layer""",
                (scope, HolonType.HYPOTHESIS.value),
            ).fetchall()
        return [LayerCount(layer=r["layer"], count=r["n"]) for r in rows]

    def search_holons(
        self, query: str, layer: Optional[str] = None, limit: int = 10
    ) -> List[Holon]:
        """Case-insensitive substring search over title, content and rationale."""
        pattern = f"%{query.strip()}%"
        sql = (
            f"SELECT {_HOLON_COLUMNS} FROM holons "
            "WHERE (title LIKE ? OR content LIKE ? OR rationale LIKE ?)"
        )
        params: List[Any] = [pattern, pattern, pattern]
        if layer:
            sql += " AND layer = ?"
            params.append(layer)
        sql += " ORDER BY updated_at DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_holon(r) for r in rows]

    # === Evidence ===

    def add_evidence(self, evidence: Evidence) -> str:
        evidence_id = evidence.id or str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO evidence
                   (id, holon_id, type, content, verdict, valid_until, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    evidence_id,
                    evidence.holon_id,
                    evidence.type,
                    evidence.content,
                    evidence.verdict,
                    evidence.valid_until,
                    evidence.created_at or utc_now(),
                ),
            )
        return evidence_id

    def get_evidence(self, holon_id: str) -> List[Evidence]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM evidence WHERE holon_id = ? ORDER BY created_at",
                (holon_id,),
            ).fetchall()
        return [self._row_to_evidence(r) for r in rows]

    def expired_evidence(self, today: str) -> List[Evidence]:
        """Evidence on L2 holons whose validity window ended before ``today``.

        Only each holon's latest windowed evidence is considered, so a
        refreshing test clears the older, expired results.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT e.* FROM evidence e JOIN holons h ON h.id = e.holon_id
                   WHERE h.layer = ? AND e.valid_until IS NOT NULL AND e.valid_until < ?
                     AND e.created_at = (
                         SELECT MAX(latest.created_at) FROM evidence latest
                         WHERE latest.holon_id = e.holon_id
                           AND latest.valid_until IS NOT NULL
                     )
                   ORDER BY e.valid_until""",
                (Layer.L2.value, today),
            ).fetchall()
        return [self._row_to_evidence(r) for r in rows]

    # === Decisions ===

    def save_decision(self, record: DecisionRecord) -> str:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO decisions
                   (id, winner_id, title, context, decision, rationale, consequences, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.winner_id,
                    record.title,
                    record.context,
                    record.decision,
                    record.rationale,
                    record.consequences,
                    record.created_at or utc_now(),
                ),
            )
        logger.debug(f"Saved decision {record.id} (winner {record.winner_id})")
        return record.id

    def get_decisions(self, limit: int = 100) -> List[DecisionRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM decisions ORDER BY created_at DESC LIMIT ?", (limit,)
            ).fetchall()
        return [self._row_to_decision(r) for r in rows]

    def search_decisions(self, query: str, limit: int = 10) -> List[DecisionRecord]:
        pattern = f"%{query.strip()}%"
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT * FROM decisions
                   WHERE title LIKE ? OR decision LIKE ? OR rationale LIKE ?
                   ORDER BY created_at DESC LIMIT ?""",
                (pattern, pattern, pattern, limit),
            ).fetchall()
        return [self._row_to_decision(r) for r in rows]

    # === Bounded context ===

    def save_context(self, vocabulary: str, invariants: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO project_context (vocabulary, invariants, created_at) VALUES (?, ?, ?)",
                (vocabulary, invariants, utc_now()),
            )

    def get_context(self) -> Optional[Dict[str, str]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT vocabulary, invariants, created_at FROM project_context "
                "ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return dict(row) if row else None
