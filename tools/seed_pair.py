"""
FAIRPLAY — Seed Pair Data Structures

A SeedPair is the commitment unit: the server seed hash is published before
play, the plaintext stays private until the pair is rotated (RETIRED).

    ACTIVE (nonce increasing) -> ROTATING (swap in progress) -> RETIRED (read-only)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tools.fair_errors import SeedNotRevealedError
from tools.provably_fair import hash_server_seed


class PairStatus(str, Enum):
    ACTIVE   = "active"
    ROTATING = "rotating"
    RETIRED  = "retired"


@dataclass(frozen=True)
class ClientSeedChange:
    """Client seed in force from `from_nonce` onward (until the next change)."""
    client_seed: str
    from_nonce: int
    changed_at: float = 0.0


@dataclass(frozen=True)
class NonceTicket:
    """A nonce issued atomically together with the client seed active for it."""
    pair_id: str
    nonce: int
    client_seed: str
    server_seed_hash: str


@dataclass
class SeedPair:
    """Server/client seed pair with its nonce counter."""
    pair_id: str
    owner_id: str
    server_seed_hash: str     # SHA-256 of the plaintext (shared upfront)
    client_seed: str          # Player-provided or auto-generated
    _server_seed: str = field(repr=False, compare=False)  # secret until retired
    nonce: int = 0            # next nonce to issue
    status: PairStatus = PairStatus.ACTIVE
    created_at: float = 0
    retired_at: Optional[float] = None
    client_seed_history: list = field(default_factory=list)

    def __post_init__(self):
        self.status = PairStatus(self.status)
        if not self.created_at:
            self.created_at = time.time()
        if hash_server_seed(self._server_seed) != self.server_seed_hash:
            raise ValueError(f"server seed does not match commitment for pair {self.pair_id}")
        if not self.client_seed_history:
            self.client_seed_history = [
                ClientSeedChange(self.client_seed, 0, self.created_at)
            ]

    @property
    def is_active(self) -> bool:
        return self.status == PairStatus.ACTIVE

    @property
    def is_retired(self) -> bool:
        return self.status == PairStatus.RETIRED

    @property
    def server_seed(self) -> str:
        """Plaintext server seed; only readable once the pair is retired."""
        if not self.is_retired:
            raise SeedNotRevealedError(
                f"pair {self.pair_id} is {self.status.value}; plaintext is sealed"
            )
        return self._server_seed

    def restart_client_seed(self, client_seed: str) -> None:
        """Reset a not-yet-used pair to `client_seed` from nonce 0."""
        self.client_seed = client_seed
        self.client_seed_history = [ClientSeedChange(client_seed, 0, self.created_at)]

    def reveal_server_seed(self) -> str:
        return self.server_seed

    def client_seed_at(self, nonce: int) -> str:
        """Client seed that was in force when `nonce` was issued."""
        current = self.client_seed_history[0].client_seed
        for change in self.client_seed_history:
            if change.from_nonce <= nonce:
                current = change.client_seed
            else:
                break
        return current

    def public_view(self) -> dict:
        """What a player may see. Plaintext appears only after retirement."""
        view = {
            "pair_id": self.pair_id,
            "owner_id": self.owner_id,
            "server_seed_hash": self.server_seed_hash,
            "client_seed": self.client_seed,
            "nonce": self.nonce,
            "status": self.status.value,
            "created_at": self.created_at,
            "retired_at": self.retired_at,
            "client_seed_history": [
                {"client_seed": c.client_seed, "from_nonce": c.from_nonce}
                for c in self.client_seed_history
            ],
        }
        if self.is_retired:
            view["server_seed"] = self._server_seed
        return view
