"""
FAIRPLAY — Bet Handler

Boundary between a bet-placement caller and the provably-fair core:

    BetRequest -> active seed pair -> nonce ticket -> outcome -> game resolver
               -> payout -> immutable BetOutcome (recorded once)

Core errors are raised below this module and recovered here: `handle()`
turns them into {"ok": False, "error": code, "message": ...}.

Usage:
    from tools.bet_handler import BetHandler
    handler = BetHandler(SeedPairManager())
    resp = handler.handle({"owner_id": "u1", "game_type": "dice",
                           "bet_amount": "0.001", "target": 50})
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional

from pydantic import ValidationError

from config.database import INTEGRITY_ERRORS
from config.game_schema import BetRequest, GameConfig, default_game_config
from config.settings import FairConfig
from sim_engine.rmg import get_resolver
from tools.fair_errors import (
    FairnessError, NonceConflictError, PairNotActiveError,
)
from tools.multiplier import payout as compute_payout
from tools.seed_manager import SeedPairManager

logger = logging.getLogger("fairplay.bets")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BetOutcome:
    """One resolved bet with everything needed to audit it later."""
    bet_id: str
    pair_id: str
    owner_id: str
    game_type: str
    server_seed_hash: str
    client_seed: str
    nonce: int
    target: Optional[float]
    raw_outcome: float
    won: bool
    multiplier: float
    bet_amount: Decimal
    payout: Decimal
    detail: dict = field(default_factory=dict, compare=False)
    timestamp: float = 0.0

    def to_record(self) -> dict:
        """Persisted / API shape consumed by collaborators."""
        return {
            "betId": self.bet_id,
            "pairId": self.pair_id,
            "gameType": self.game_type,
            "serverSeedHash": self.server_seed_hash,
            "clientSeed": self.client_seed,
            "nonce": self.nonce,
            "rawOutcome": self.raw_outcome,
            "target": self.target,
            "multiplier": self.multiplier,
            "won": self.won,
            "betAmount": format(self.bet_amount, "f"),
            "payout": format(self.payout, "f"),
            "detail": self.detail,
            "timestamp": self.timestamp,
        }


# ═══════════════════════════════════════════════════════════════
# Bet stores
# ═══════════════════════════════════════════════════════════════

class InMemoryBetStore:
    """Append-only bet log keyed by (pair_id, nonce)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._bets: dict = {}
        self._by_nonce: dict = {}

    def add(self, bet: BetOutcome) -> None:
        with self._lock:
            key = (bet.pair_id, bet.nonce)
            if key in self._by_nonce:
                raise NonceConflictError(f"nonce {bet.nonce} already used on pair {bet.pair_id}")
            self._bets[bet.bet_id] = bet
            self._by_nonce[key] = bet.bet_id

    def get(self, bet_id: str) -> Optional[BetOutcome]:
        return self._bets.get(bet_id)

    def for_pair(self, pair_id: str) -> list:
        with self._lock:
            bets = [b for b in self._bets.values() if b.pair_id == pair_id]
        return sorted(bets, key=lambda b: b.nonce)


class SqlBetStore:
    """Bet log in the `bets` table. UNIQUE(pair_id, nonce) is the last guard."""

    def __init__(self, connect: Callable = None):
        if connect is None:
            from config.database import get_standalone_db
            connect = get_standalone_db
        self._connect = connect

    def add(self, bet: BetOutcome) -> None:
        try:
            with self._connect() as db:
                db.execute(
                    "INSERT INTO bets (id, pair_id, owner_id, game_type, server_seed_hash, "
                    "client_seed, nonce, target, raw_outcome, won, multiplier, bet_amount, "
                    "payout, detail, created_at) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)",
                    (bet.bet_id, bet.pair_id, bet.owner_id, bet.game_type, bet.server_seed_hash,
                     bet.client_seed, bet.nonce, bet.target, bet.raw_outcome, int(bet.won),
                     bet.multiplier, format(bet.bet_amount, "f"), format(bet.payout, "f"),
                     json.dumps(bet.detail), bet.timestamp),
                )
        except INTEGRITY_ERRORS as e:
            raise NonceConflictError(
                f"nonce {bet.nonce} already used on pair {bet.pair_id}"
            ) from e

    @staticmethod
    def _row_to_bet(row) -> BetOutcome:
        return BetOutcome(
            bet_id=row["id"],
            pair_id=row["pair_id"],
            owner_id=row["owner_id"],
            game_type=row["game_type"],
            server_seed_hash=row["server_seed_hash"],
            client_seed=row["client_seed"],
            nonce=row["nonce"],
            target=row["target"],
            raw_outcome=row["raw_outcome"],
            won=bool(row["won"]),
            multiplier=row["multiplier"],
            bet_amount=Decimal(row["bet_amount"]),
            payout=Decimal(row["payout"]),
            detail=json.loads(row["detail"]) if row["detail"] else {},
            timestamp=row["created_at"],
        )

    def get(self, bet_id: str) -> Optional[BetOutcome]:
        with self._connect() as db:
            row = db.execute("SELECT * FROM bets WHERE id = ?", (bet_id,)).fetchone()
        return self._row_to_bet(row) if row else None

    def for_pair(self, pair_id: str) -> list:
        with self._connect() as db:
            rows = db.execute(
                "SELECT * FROM bets WHERE pair_id = ? ORDER BY nonce", (pair_id,)
            ).fetchall()
        return [self._row_to_bet(r) for r in rows]


# ═══════════════════════════════════════════════════════════════
# Handler
# ═══════════════════════════════════════════════════════════════

def game_config_for(request: BetRequest) -> GameConfig:
    return default_game_config(request.game_type, risk=request.risk, rows=request.rows)


def resolver_params(request: BetRequest) -> dict:
    return {"target": request.target, "selection": request.selection}


class BetHandler:
    """Places bets against the owner's active seed pair."""

    def __init__(self, manager: SeedPairManager = None, bet_store=None,
                 configs: dict = None):
        self.manager = manager or SeedPairManager()
        self.bet_store = bet_store if bet_store is not None else InMemoryBetStore()
        self.configs = configs or {}

    def _config(self, request: BetRequest) -> GameConfig:
        custom = self.configs.get(request.game_type.value)
        return custom if custom is not None else game_config_for(request)

    def _take_ticket(self, owner_id: str):
        """Nonce on the active pair; re-resolve the pair if a rotation won the race."""
        attempts = max(1, FairConfig.PAIR_SWAP_RETRIES + 1)
        for attempt in range(1, attempts + 1):
            pair = self.manager.ensure_active_pair(owner_id)
            try:
                return self.manager.issue_nonce(pair)
            except PairNotActiveError:
                if attempt == attempts:
                    raise
                logger.info(f"Pair {pair.pair_id} rotated mid-bet; retrying on successor")

    def place_bet(self, request: BetRequest) -> BetOutcome:
        if not isinstance(request, BetRequest):
            request = BetRequest.model_validate(request)
        config = self._config(request)
        resolver = get_resolver(request.game_type)
        params = resolver_params(request)

        # Reject bad parameters before a nonce is spent
        resolver.validate(config, **params)

        ticket = self._take_ticket(request.owner_id)
        raw_outcome = self.manager.outcome_for(ticket)
        result = resolver.resolve(raw_outcome, config, **params)
        amount = Decimal(request.bet_amount)

        bet = BetOutcome(
            bet_id=uuid.uuid4().hex[:16],
            pair_id=ticket.pair_id,
            owner_id=request.owner_id,
            game_type=request.game_type.value,
            server_seed_hash=ticket.server_seed_hash,
            client_seed=ticket.client_seed,
            nonce=ticket.nonce,
            target=request.target,
            raw_outcome=raw_outcome,
            won=result.won,
            multiplier=result.multiplier,
            bet_amount=amount,
            payout=compute_payout(amount, result.multiplier),
            detail=dict(result.detail, **config.audit_fields()),
            timestamp=time.time(),
        )
        self.bet_store.add(bet)
        logger.info(f"Bet {bet.bet_id} {bet.game_type} pair={bet.pair_id} nonce={bet.nonce} "
                    f"outcome={bet.raw_outcome:.6f} won={bet.won} payout={bet.payout}")
        return bet

    def handle(self, payload: dict) -> dict:
        """Boundary entry point: never raises for player-caused errors."""
        try:
            request = BetRequest.model_validate(payload)
            bet = self.place_bet(request)
        except ValidationError as e:
            errors = "; ".join(err.get("msg", "") for err in e.errors())
            return {"ok": False, "error": "invalid_request", "message": errors}
        except NonceConflictError as e:
            logger.error(f"Nonce conflict, bet aborted: {e}")
            return e.to_dict()
        except FairnessError as e:
            logger.warning(f"Bet rejected ({e.code}): {e}")
            return e.to_dict()
        return {"ok": True, "bet": bet.to_record()}
