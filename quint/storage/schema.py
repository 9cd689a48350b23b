"""Database schema and migration logic for quint SQLite storage.

Contains:
- Schema DDL (SCHEMA)
- Schema version tracking (SCHEMA_VERSION)
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Database initialization (init_db)
- Schema migration (migrate_schema)
"""

import logging
import os
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 2  # v2: holons.scope column

# Allowed table names for SQL queries (security: prevents SQL injection via table names)
ALLOWED_TABLES = frozenset(
    {
        "schema_version",
        "holons",
        "evidence",
        "decisions",
        "project_context",
    }
)


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Holons (hypotheses moving through L0 -> L1 -> L2)
CREATE TABLE IF NOT EXISTS holons (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL DEFAULT 'hypothesis',   -- hypothesis | decision
    kind TEXT NOT NULL DEFAULT 'system',       -- system | episteme
    layer TEXT NOT NULL DEFAULT 'L0',          -- L0 | L1 | L2 | invalid
    title TEXT NOT NULL,
    content TEXT,
    context_id TEXT NOT NULL DEFAULT 'default',
    scope TEXT,
    rationale TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_holons_layer ON holons(layer);
CREATE INDEX IF NOT EXISTS idx_holons_context ON holons(context_id);

-- Evidence attached to holons (verification, test, audit results)
CREATE TABLE IF NOT EXISTS evidence (
    id TEXT PRIMARY KEY,
    holon_id TEXT NOT NULL,
    type TEXT NOT NULL,          -- verification | internal | external | audit
    content TEXT,
    verdict TEXT,
    valid_until TEXT,            -- YYYY-MM-DD, advisory
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_evidence_holon ON evidence(holon_id);
CREATE INDEX IF NOT EXISTS idx_evidence_valid_until ON evidence(valid_until);

-- Decision records
CREATE TABLE IF NOT EXISTS decisions (
    id TEXT PRIMARY KEY,
    winner_id TEXT NOT NULL,
    title TEXT NOT NULL,
    context TEXT,
    decision TEXT,
    rationale TEXT,
    consequences TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_decisions_winner ON decisions(winner_id);

-- Bounded context (vocabulary + invariants), latest row wins
CREATE TABLE IF NOT EXISTS project_context (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vocabulary TEXT NOT NULL,
    invariants TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


def init_db(conn: sqlite3.Connection, db_path: Path) -> None:
    """Initialize the database schema.

    Args:
        conn: Database connection.
        db_path: Path to the database file (for permissions).
    """
    # First, run migrations if needed (before executing full schema)
    migrate_schema(conn)

    # CREATE TABLE IF NOT EXISTS is safe to re-run
    conn.executescript(SCHEMA)

    row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    else:
        conn.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))

    conn.commit()

    # Set secure file permissions (owner read/write only)
    try:
        os.chmod(db_path, 0o600)
    except OSError as e:
        logger.warning(f"Could not set secure permissions: {e}")


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Run schema migrations for existing databases.

    Handles adding new columns to existing tables.
    """
    tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    table_names = {t[0] for t in tables}

    if "holons" not in table_names:
        # Fresh database, no migration needed
        return

    def get_columns(table: str) -> set:
        validate_table_name(table)  # defense-in-depth
        cols = conn.execute(f"PRAGMA table_info({table})").fetchall()
        return {c[1] for c in cols}

    migrations = []
    if "scope" not in get_columns("holons"):
        migrations.append("ALTER TABLE holons ADD COLUMN scope TEXT")

    for migration in migrations:
        try:
            conn.execute(migration)
            logger.info(f"Migration: {migration}")
        except sqlite3.OperationalError as e:
            if "duplicate column" not in str(e).lower():
                logger.warning(f"Migration failed: {e}")
