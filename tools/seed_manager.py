"""
FAIRPLAY — Seed Pair Manager

Lifecycle of seed pairs and nonce issuance on top of an injected SeedStore.

Usage:
    from tools.seed_manager import SeedPairManager
    from tools.seed_store import InMemorySeedStore

    manager = SeedPairManager(InMemorySeedStore())
    pair = manager.create_pair("user-1", client_seed="lucky")
    print(pair.server_seed_hash)          # publish before play
    nonce = manager.next_nonce(pair)      # 0, 1, 2, ...
    retired, current = manager.rotate(pair)
    print(retired.server_seed)            # revealed only now
"""

from __future__ import annotations

import logging
import time
import uuid

from config.database import TRANSIENT_ERRORS
from config.settings import FairConfig
from tools.fair_errors import InvalidSeedError, NonceStorageError
from tools.provably_fair import (
    generate_outcome, hash_server_seed, new_client_seed, new_server_seed,
)
from tools.seed_pair import ClientSeedChange, NonceTicket, SeedPair
from tools.seed_store import InMemorySeedStore, SeedStore

logger = logging.getLogger("fairplay.seeds")


def validate_client_seed(client_seed, max_length: int = None) -> str:
    """Client seeds are non-empty printable strings up to max_length chars."""
    max_length = max_length or FairConfig.CLIENT_SEED_MAX_LENGTH
    message = f"Client seed must be 1-{max_length} printable characters."
    if not isinstance(client_seed, str) or not client_seed.strip():
        raise InvalidSeedError("client seed is empty", user_message=message)
    if len(client_seed) > max_length:
        raise InvalidSeedError(
            f"client seed is {len(client_seed)} chars, max {max_length}", user_message=message
        )
    if not client_seed.isprintable():
        raise InvalidSeedError("client seed has non-printable characters", user_message=message)
    return client_seed


class SeedPairManager:
    """Creates, rotates and issues nonces for seed pairs."""

    def __init__(self, store: SeedStore = None):
        self.store = store or InMemorySeedStore()

    # ── Creation / lookup ─────────────────────────────────────

    def _new_pair(self, owner_id: str, client_seed: str = None) -> SeedPair:
        if client_seed is None:
            client_seed = new_client_seed()
        else:
            validate_client_seed(client_seed)
        server_seed = new_server_seed()
        return SeedPair(
            pair_id=uuid.uuid4().hex[:16],
            owner_id=owner_id,
            server_seed_hash=hash_server_seed(server_seed),
            client_seed=client_seed,
            _server_seed=server_seed,
        )

    def create_pair(self, owner_id: str, client_seed: str = None) -> SeedPair:
        """Fresh pair with nonce 0. The server seed hash is the public commitment."""
        pair = self._new_pair(owner_id, client_seed)
        self.store.add(pair)
        logger.info(f"Seed pair {pair.pair_id} created for {owner_id} "
                    f"(hash {pair.server_seed_hash[:12]}…)")
        return pair

    def get_pair(self, pair_id: str) -> SeedPair:
        return self.store.get(pair_id)

    def active_pair(self, owner_id: str):
        return self.store.active_for(owner_id)

    def ensure_active_pair(self, owner_id: str, client_seed: str = None) -> SeedPair:
        pair = self.store.active_for(owner_id)
        if pair is not None:
            return pair
        try:
            return self.create_pair(owner_id, client_seed)
        except ValueError:
            # Another caller created the owner's first pair in the meantime
            pair = self.store.active_for(owner_id)
            if pair is None:
                raise
            return pair

    def list_pairs(self, owner_id: str) -> list:
        return self.store.list_for_owner(owner_id)

    # ── Nonces ────────────────────────────────────────────────

    def issue_nonce(self, pair: SeedPair) -> NonceTicket:
        """Atomically take the next nonce with the client seed in force for it.

        Only transient storage errors are retried, and only the increment
        itself. PairNotActiveError and NonceConflictError propagate.
        """
        attempts = max(1, FairConfig.NONCE_RETRY_LIMIT)
        for attempt in range(1, attempts + 1):
            try:
                ticket = self.store.increment_nonce(pair.pair_id)
                break
            except TRANSIENT_ERRORS as e:
                logger.warning(f"Nonce increment on {pair.pair_id} failed "
                               f"(attempt {attempt}/{attempts}): {e}")
                if attempt == attempts:
                    raise NonceStorageError(
                        f"nonce increment on {pair.pair_id} failed after {attempts} attempts"
                    ) from e
                time.sleep(FairConfig.NONCE_RETRY_BACKOFF * attempt)
        if pair.nonce <= ticket.nonce:
            pair.nonce = ticket.nonce + 1
        return ticket

    def next_nonce(self, pair: SeedPair) -> int:
        return self.issue_nonce(pair).nonce

    def outcome_for(self, ticket: NonceTicket) -> float:
        """Outcome for an issued ticket. Reads the sealed seed inside the trust boundary."""
        pair = self.store.get(ticket.pair_id)
        return generate_outcome(pair._server_seed, ticket.client_seed, ticket.nonce)

    # ── Rotation / client seed ────────────────────────────────

    def rotate(self, pair: SeedPair, client_seed: str = None) -> tuple:
        """Retire `pair` (revealing its plaintext) and activate a successor.

        The successor keeps the current client seed unless a new one is given.
        Returns (retired_pair, new_pair).
        """
        carry = client_seed is None
        successor = self._new_pair(pair.owner_id, client_seed)
        # The store copies the old pair's client seed under its own lock
        retired = self.store.swap(pair.pair_id, successor, carry_client_seed=carry)
        if retired is not pair:
            pair.status = retired.status
            pair.retired_at = retired.retired_at
            pair.nonce = retired.nonce
        logger.info(f"Seed pair {retired.pair_id} retired after {retired.nonce} bets; "
                    f"{successor.pair_id} now active for {successor.owner_id}")
        return retired, successor

    def set_client_seed(self, pair: SeedPair, new_seed: str) -> ClientSeedChange:
        """Change the client seed without resetting the nonce.

        The change applies from the next unissued nonce and is kept in the
        pair's history for verification.
        """
        validate_client_seed(new_seed)
        change = self.store.update_client_seed(pair.pair_id, new_seed)
        pair.client_seed = new_seed
        if not pair.client_seed_history or pair.client_seed_history[-1] is not change:
            pair.client_seed_history.append(change)
        logger.info(f"Client seed changed on {pair.pair_id} from nonce {change.from_nonce}")
        return change

    def client_seed_at(self, pair: SeedPair, nonce: int) -> str:
        return self.store.get(pair.pair_id).client_seed_at(nonce)
