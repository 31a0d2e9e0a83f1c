"""
FAIRPLAY — Database Abstraction Layer

Dual-mode: SQLite for local dev and tests, PostgreSQL for production.
Auto-detects based on the DATABASE_URL environment variable.

Usage:
    from config.database import get_standalone_db, init_db

    db = get_standalone_db()
    init_db(db)
    rows = db.execute("SELECT * FROM seed_pairs WHERE owner_id = %s", [owner_id]).fetchall()
    db.close()

    # Transaction scope: commit on success, rollback on error
    with get_standalone_db() as db:
        db.execute("UPDATE seed_pairs SET client_seed = ? WHERE id = ?", (seed, pair_id))
"""

import logging
import os
import sqlite3

logger = logging.getLogger("fairplay.db")

# ── Detect database mode ──
DATABASE_URL = os.getenv("DATABASE_URL", "")
USE_POSTGRES = DATABASE_URL.startswith("postgres")

if USE_POSTGRES:
    try:
        import psycopg
        from psycopg.rows import dict_row
        from psycopg_pool import ConnectionPool
        HAS_PSYCOPG = True
    except ImportError:
        logger.warning("DATABASE_URL is set but psycopg3 not installed — falling back to SQLite")
        HAS_PSYCOPG = False
        USE_POSTGRES = False
else:
    HAS_PSYCOPG = False

# ── SQLite fallback path ──
SQLITE_PATH = os.getenv("DB_PATH", "fairplay.db")

PG_POOL_MIN = int(os.getenv("DB_POOL_MIN", "2"))
PG_POOL_MAX = int(os.getenv("DB_POOL_MAX", "20"))

# Errors worth retrying for a single atomic statement (lock contention, dropped link)
TRANSIENT_ERRORS = (sqlite3.OperationalError,)
if HAS_PSYCOPG:
    TRANSIENT_ERRORS = TRANSIENT_ERRORS + (psycopg.OperationalError,)

# Integrity violations (e.g. a duplicate (pair_id, nonce) bet row)
INTEGRITY_ERRORS = (sqlite3.IntegrityError,)
if HAS_PSYCOPG:
    INTEGRITY_ERRORS = INTEGRITY_ERRORS + (psycopg.IntegrityError,)

# ── Connection pool (PostgreSQL only) ──
_pg_pool = None


def _get_pg_pool():
    """Lazy-init PostgreSQL connection pool."""
    global _pg_pool
    if _pg_pool is None and USE_POSTGRES and HAS_PSYCOPG:
        conninfo = DATABASE_URL
        # psycopg wants postgresql://
        if conninfo.startswith("postgres://"):
            conninfo = conninfo.replace("postgres://", "postgresql://", 1)
        _pg_pool = ConnectionPool(
            conninfo=conninfo,
            min_size=PG_POOL_MIN,
            max_size=PG_POOL_MAX,
            max_idle=300,
            kwargs={"row_factory": dict_row, "autocommit": False},
        )
        logger.info(f"PostgreSQL pool initialized (min={PG_POOL_MIN}, max={PG_POOL_MAX})")
    return _pg_pool


def _sqlite_dict_factory(cursor, row):
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def _open_sqlite(path=None):
    """Open a raw SQLite connection."""
    conn = sqlite3.connect(path or SQLITE_PATH, timeout=10, check_same_thread=False)
    conn.row_factory = _sqlite_dict_factory
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


# ═══════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════

class DatabaseConnection:
    """Unified wrapper around SQLite or PostgreSQL connections.

    - Accepts ? or %s placeholders, converted for the active backend
    - Returns list[dict] from queries
    - Supports .execute(), .fetchone(), .fetchall(), .commit(), .close()
    """

    def __init__(self, conn, is_pg=False, pool=None):
        self._conn = conn
        self._is_pg = is_pg
        self._pool = pool
        self._cursor = None

    @property
    def is_pg(self) -> bool:
        return self._is_pg

    def _adapt_sql(self, sql):
        if self._is_pg:
            return sql.replace("?", "%s")
        return sql.replace("%s", "?")

    def execute(self, sql, params=None):
        """Execute a query. Returns self for chaining."""
        self._cursor = self._conn.execute(self._adapt_sql(sql), params or [])
        return self

    def executescript(self, sql):
        """Execute multiple statements. For PG, splits on semicolons."""
        if self._is_pg:
            for stmt in sql.split(";"):
                stmt = stmt.strip()
                if stmt:
                    self._conn.execute(stmt)
        else:
            self._conn.executescript(sql)
        return self

    def fetchone(self):
        """Fetch one row as dict, or None."""
        if self._cursor is None:
            return None
        row = self._cursor.fetchone()
        return dict(row) if row is not None else None

    def fetchall(self):
        """Fetch all rows as list[dict]."""
        if self._cursor is None:
            return []
        return [dict(r) for r in self._cursor.fetchall()]

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    def close(self):
        if self._pool is not None:
            self._pool.putconn(self._conn)
        else:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type:
                self.rollback()
            else:
                self.commit()
        finally:
            self.close()


def connect_sqlite(path) -> DatabaseConnection:
    """Standalone SQLite connection to an explicit file (tests, CLI)."""
    return DatabaseConnection(_open_sqlite(str(path)), is_pg=False)


def get_standalone_db():
    """New connection for the configured backend. Caller MUST close it."""
    if USE_POSTGRES and HAS_PSYCOPG:
        pool = _get_pg_pool()
        return DatabaseConnection(pool.getconn(), is_pg=True, pool=pool)
    return DatabaseConnection(_open_sqlite(), is_pg=False)


# ═══════════════════════════════════════════════════════════════
# Schema
# ═══════════════════════════════════════════════════════════════

# SQL that works for BOTH SQLite and PostgreSQL.
# DOUBLE PRECISION keeps raw outcomes bit-exact on PG (REAL is 4 bytes there).
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS seed_pairs (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    server_seed TEXT NOT NULL,
    server_seed_hash TEXT NOT NULL UNIQUE,
    client_seed TEXT NOT NULL,
    nonce BIGINT NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'active',
    created_at DOUBLE PRECISION NOT NULL,
    retired_at DOUBLE PRECISION
);

CREATE INDEX IF NOT EXISTS idx_seed_pairs_owner ON seed_pairs(owner_id, status);

-- At most one ACTIVE pair per owner (swap moves the old row to rotating first)
CREATE UNIQUE INDEX IF NOT EXISTS uq_seed_pairs_active_owner
    ON seed_pairs(owner_id) WHERE status = 'active';

CREATE TABLE IF NOT EXISTS client_seed_history (
    pair_id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    client_seed TEXT NOT NULL,
    from_nonce BIGINT NOT NULL,
    changed_at DOUBLE PRECISION NOT NULL,
    PRIMARY KEY (pair_id, seq),
    FOREIGN KEY (pair_id) REFERENCES seed_pairs(id)
);

CREATE TABLE IF NOT EXISTS bets (
    id TEXT PRIMARY KEY,
    pair_id TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    game_type TEXT NOT NULL,
    server_seed_hash TEXT NOT NULL,
    client_seed TEXT NOT NULL,
    nonce BIGINT NOT NULL,
    target DOUBLE PRECISION,
    raw_outcome DOUBLE PRECISION NOT NULL,
    won INTEGER NOT NULL,
    multiplier DOUBLE PRECISION NOT NULL,
    bet_amount TEXT NOT NULL,
    payout TEXT NOT NULL,
    detail TEXT,
    created_at DOUBLE PRECISION NOT NULL,
    UNIQUE (pair_id, nonce),
    FOREIGN KEY (pair_id) REFERENCES seed_pairs(id)
);

CREATE INDEX IF NOT EXISTS idx_bets_pair ON bets(pair_id);
CREATE INDEX IF NOT EXISTS idx_bets_owner ON bets(owner_id)
"""


def init_db(db=None):
    """Initialize the database schema."""
    own = db is None
    db = db or get_standalone_db()
    try:
        db.executescript(SCHEMA_SQL)
        db.commit()
        mode = "PostgreSQL" if db.is_pg else "SQLite"
        logger.info(f"Database initialized ({mode})")
    finally:
        if own:
            db.close()
