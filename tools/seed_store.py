"""
FAIRPLAY — Seed Pair Repositories

Injected storage for seed pairs. The store owns the two operations that need
real concurrency control:

    increment_nonce  — fetch-and-increment, only while the pair is ACTIVE
    swap             — ACTIVE -> ROTATING -> RETIRED plus insert of the successor

Both run under the same lock (memory) or row lock / transaction (SQL), so a
nonce is never issued against a pair whose plaintext has been revealed.

Usage:
    from tools.seed_store import InMemorySeedStore, SqlSeedStore
    store = InMemorySeedStore()
    store = SqlSeedStore(connect=lambda: connect_sqlite("fair.db"))
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from config.database import INTEGRITY_ERRORS
from tools.fair_errors import (
    NonceConflictError, PairNotActiveError, PairNotFoundError,
)
from tools.seed_pair import ClientSeedChange, NonceTicket, PairStatus, SeedPair


class SeedStore(ABC):
    """Repository interface used by SeedPairManager."""

    @abstractmethod
    def add(self, pair: SeedPair) -> None: ...

    @abstractmethod
    def get(self, pair_id: str) -> SeedPair: ...

    @abstractmethod
    def active_for(self, owner_id: str) -> Optional[SeedPair]: ...

    @abstractmethod
    def find_by_hash(self, server_seed_hash: str) -> Optional[SeedPair]: ...

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> list: ...

    @abstractmethod
    def increment_nonce(self, pair_id: str) -> NonceTicket: ...

    @abstractmethod
    def update_client_seed(self, pair_id: str, client_seed: str) -> ClientSeedChange: ...

    @abstractmethod
    def swap(self, pair_id: str, successor: SeedPair,
             carry_client_seed: bool = False) -> SeedPair:
        """Retire `pair_id` and activate `successor` atomically. Returns the retired pair.

        With carry_client_seed the successor starts from the client seed the
        old pair holds at the moment of the swap.
        """
        ...


# ═══════════════════════════════════════════════════════════════
# In-memory
# ═══════════════════════════════════════════════════════════════

class InMemorySeedStore(SeedStore):
    """Process-local store; pairs are indexed by id, owner and hash."""

    def __init__(self):
        self._lock = threading.RLock()
        self._pairs: dict = {}
        self._active: dict = {}      # owner_id -> pair_id
        self._by_hash: dict = {}
        self._last_issued: dict = {}  # pair_id -> last nonce handed out

    def add(self, pair: SeedPair) -> None:
        with self._lock:
            if pair.owner_id in self._active and pair.is_active:
                raise ValueError(
                    f"owner {pair.owner_id} already has active pair {self._active[pair.owner_id]}"
                )
            self._pairs[pair.pair_id] = pair
            self._by_hash[pair.server_seed_hash] = pair.pair_id
            if pair.is_active:
                self._active[pair.owner_id] = pair.pair_id

    def get(self, pair_id: str) -> SeedPair:
        with self._lock:
            pair = self._pairs.get(pair_id)
        if pair is None:
            raise PairNotFoundError(f"no seed pair {pair_id}")
        return pair

    def active_for(self, owner_id: str) -> Optional[SeedPair]:
        with self._lock:
            pair_id = self._active.get(owner_id)
            return self._pairs[pair_id] if pair_id else None

    def find_by_hash(self, server_seed_hash: str) -> Optional[SeedPair]:
        with self._lock:
            pair_id = self._by_hash.get(server_seed_hash)
            return self._pairs[pair_id] if pair_id else None

    def list_for_owner(self, owner_id: str) -> list:
        with self._lock:
            pairs = [p for p in self._pairs.values() if p.owner_id == owner_id]
        return sorted(pairs, key=lambda p: p.created_at)

    def increment_nonce(self, pair_id: str) -> NonceTicket:
        with self._lock:
            pair = self.get(pair_id)
            if not pair.is_active:
                raise PairNotActiveError(f"pair {pair_id} is {pair.status.value}")
            issued = pair.nonce
            last = self._last_issued.get(pair_id, -1)
            if issued <= last:
                raise NonceConflictError(
                    f"pair {pair_id}: nonce {issued} not above last issued {last}"
                )
            pair.nonce = issued + 1
            self._last_issued[pair_id] = issued
            return NonceTicket(pair_id, issued, pair.client_seed, pair.server_seed_hash)

    def update_client_seed(self, pair_id: str, client_seed: str) -> ClientSeedChange:
        with self._lock:
            pair = self.get(pair_id)
            if not pair.is_active:
                raise PairNotActiveError(f"pair {pair_id} is {pair.status.value}")
            change = ClientSeedChange(client_seed, pair.nonce, time.time())
            pair.client_seed = client_seed
            pair.client_seed_history.append(change)
            return change

    def swap(self, pair_id: str, successor: SeedPair,
             carry_client_seed: bool = False) -> SeedPair:
        with self._lock:
            pair = self.get(pair_id)
            if not pair.is_active:
                raise PairNotActiveError(f"pair {pair_id} is {pair.status.value}")
            if carry_client_seed:
                successor.restart_client_seed(pair.client_seed)
            pair.status = PairStatus.ROTATING
            self._active.pop(pair.owner_id, None)
            try:
                self.add(successor)
            except Exception:
                pair.status = PairStatus.ACTIVE
                self._active[pair.owner_id] = pair.pair_id
                raise
            pair.status = PairStatus.RETIRED
            pair.retired_at = time.time()
            return pair


# ═══════════════════════════════════════════════════════════════
# SQL (SQLite / PostgreSQL through config.database)
# ═══════════════════════════════════════════════════════════════

_PAIR_COLUMNS = (
    "id, owner_id, server_seed, server_seed_hash, client_seed, nonce, "
    "status, created_at, retired_at"
)


class SqlSeedStore(SeedStore):
    """Store backed by the seed_pairs / client_seed_history tables.

    `connect` returns a fresh DatabaseConnection per operation, so each call
    is its own transaction and the store is safe to share across threads.
    """

    def __init__(self, connect: Callable = None):
        if connect is None:
            from config.database import get_standalone_db
            connect = get_standalone_db
        self._connect = connect

    def _history(self, db, pair_id: str) -> list:
        rows = db.execute(
            "SELECT client_seed, from_nonce, changed_at FROM client_seed_history "
            "WHERE pair_id = ? ORDER BY seq", (pair_id,)
        ).fetchall()
        return [ClientSeedChange(r["client_seed"], r["from_nonce"], r["changed_at"]) for r in rows]

    def _row_to_pair(self, db, row) -> SeedPair:
        return SeedPair(
            pair_id=row["id"],
            owner_id=row["owner_id"],
            server_seed_hash=row["server_seed_hash"],
            client_seed=row["client_seed"],
            _server_seed=row["server_seed"],
            nonce=row["nonce"],
            status=PairStatus(row["status"]),
            created_at=row["created_at"],
            retired_at=row["retired_at"],
            client_seed_history=self._history(db, row["id"]),
        )

    def _insert(self, db, pair: SeedPair) -> None:
        db.execute(
            f"INSERT INTO seed_pairs ({_PAIR_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?)",
            (pair.pair_id, pair.owner_id, pair._server_seed, pair.server_seed_hash,
             pair.client_seed, pair.nonce, pair.status.value, pair.created_at,
             pair.retired_at),
        )
        for seq, change in enumerate(pair.client_seed_history):
            db.execute(
                "INSERT INTO client_seed_history (pair_id, seq, client_seed, from_nonce, changed_at) "
                "VALUES (?,?,?,?,?)",
                (pair.pair_id, seq, change.client_seed, change.from_nonce,
                 change.changed_at or pair.created_at),
            )

    def add(self, pair: SeedPair) -> None:
        try:
            with self._connect() as db:
                self._insert(db, pair)
        except INTEGRITY_ERRORS as e:
            # uq_seed_pairs_active_owner: the owner already has an active pair
            raise ValueError(f"owner {pair.owner_id} already has an active pair") from e

    def get(self, pair_id: str) -> SeedPair:
        with self._connect() as db:
            row = db.execute(
                f"SELECT {_PAIR_COLUMNS} FROM seed_pairs WHERE id = ?", (pair_id,)
            ).fetchone()
            if row is None:
                raise PairNotFoundError(f"no seed pair {pair_id}")
            return self._row_to_pair(db, row)

    def active_for(self, owner_id: str) -> Optional[SeedPair]:
        with self._connect() as db:
            row = db.execute(
                f"SELECT {_PAIR_COLUMNS} FROM seed_pairs WHERE owner_id = ? AND status = 'active' "
                "ORDER BY created_at DESC LIMIT 1", (owner_id,)
            ).fetchone()
            return self._row_to_pair(db, row) if row else None

    def find_by_hash(self, server_seed_hash: str) -> Optional[SeedPair]:
        with self._connect() as db:
            row = db.execute(
                f"SELECT {_PAIR_COLUMNS} FROM seed_pairs WHERE server_seed_hash = ?",
                (server_seed_hash,)
            ).fetchone()
            return self._row_to_pair(db, row) if row else None

    def list_for_owner(self, owner_id: str) -> list:
        with self._connect() as db:
            rows = db.execute(
                f"SELECT {_PAIR_COLUMNS} FROM seed_pairs WHERE owner_id = ? ORDER BY created_at",
                (owner_id,)
            ).fetchall()
            return [self._row_to_pair(db, r) for r in rows]

    def _status_of(self, db, pair_id: str) -> str:
        row = db.execute("SELECT status FROM seed_pairs WHERE id = ?", (pair_id,)).fetchone()
        if row is None:
            raise PairNotFoundError(f"no seed pair {pair_id}")
        return row["status"]

    def increment_nonce(self, pair_id: str) -> NonceTicket:
        # One statement: the row lock makes fetch-and-increment atomic and
        # the status predicate refuses pairs that are rotating or retired.
        with self._connect() as db:
            rows = db.execute(
                "UPDATE seed_pairs SET nonce = nonce + 1 WHERE id = ? AND status = 'active' "
                "RETURNING nonce - 1 AS issued, client_seed, server_seed_hash",
                (pair_id,)
            ).fetchall()
            row = rows[0] if rows else None
            if row is None:
                status = self._status_of(db, pair_id)
                raise PairNotActiveError(f"pair {pair_id} is {status}")
            return NonceTicket(pair_id, row["issued"], row["client_seed"], row["server_seed_hash"])

    def update_client_seed(self, pair_id: str, client_seed: str) -> ClientSeedChange:
        with self._connect() as db:
            rows = db.execute(
                "UPDATE seed_pairs SET client_seed = ? WHERE id = ? AND status = 'active' "
                "RETURNING nonce", (client_seed, pair_id)
            ).fetchall()
            row = rows[0] if rows else None
            if row is None:
                status = self._status_of(db, pair_id)
                raise PairNotActiveError(f"pair {pair_id} is {status}")
            seq = db.execute(
                "SELECT COUNT(*) AS n FROM client_seed_history WHERE pair_id = ?", (pair_id,)
            ).fetchone()["n"]
            change = ClientSeedChange(client_seed, row["nonce"], time.time())
            db.execute(
                "INSERT INTO client_seed_history (pair_id, seq, client_seed, from_nonce, changed_at) "
                "VALUES (?,?,?,?,?)",
                (pair_id, seq, client_seed, change.from_nonce, change.changed_at),
            )
            return change

    def swap(self, pair_id: str, successor: SeedPair,
             carry_client_seed: bool = False) -> SeedPair:
        with self._connect() as db:
            # The row lock taken here also freezes client_seed for the carry-over
            locked = db.execute(
                "UPDATE seed_pairs SET status = 'rotating' WHERE id = ? AND status = 'active' "
                "RETURNING client_seed",
                (pair_id,)
            ).fetchall()
            if len(locked) != 1:
                status = self._status_of(db, pair_id)
                raise PairNotActiveError(f"pair {pair_id} is {status}")
            if carry_client_seed:
                successor.restart_client_seed(locked[0]["client_seed"])
            self._insert(db, successor)
            db.execute(
                "UPDATE seed_pairs SET status = 'retired', retired_at = ? WHERE id = ?",
                (time.time(), pair_id)
            )
            row = db.execute(
                f"SELECT {_PAIR_COLUMNS} FROM seed_pairs WHERE id = ?", (pair_id,)
            ).fetchone()
            return self._row_to_pair(db, row)
