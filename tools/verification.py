"""
FAIRPLAY — Verification Service

Independent recomputation of recorded bets once their seed pair is retired.

    1. SHA-256(server_seed) == server_seed_hash         (commitment held)
    2. outcome(server_seed, client_seed, nonce) == rawOutcome   (exact, zero tolerance)
    3. game resolver(rawOutcome, table) reproduces won / multiplier / payout

Usage:
    from tools.verification import VerificationService
    svc = VerificationService(store)
    result = svc.verify(revealed_seed, "player1", 0, 29.483925201930106)
    assert result.matches
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from config.game_schema import config_from_detail
from sim_engine.rmg import get_resolver
from tools.fair_errors import SeedNotRevealedError
from tools.multiplier import payout as compute_payout
from tools.provably_fair import generate_outcome, hash_server_seed
from tools.seed_pair import SeedPair

logger = logging.getLogger("fairplay.verify")


@dataclass(frozen=True)
class VerificationResult:
    matches: bool
    recomputed_outcome: float


@dataclass
class RecordCheck:
    """Field-by-field check of one bet record."""
    bet_id: str
    nonce: int
    checks: dict = field(default_factory=dict)
    recomputed: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(self.checks.values())

    def to_dict(self) -> dict:
        return {"bet_id": self.bet_id, "nonce": self.nonce, "ok": self.ok,
                "checks": self.checks, "recomputed": self.recomputed}


def verify_server_seed(server_seed: str, expected_hash: str) -> bool:
    """Verify the server seed matches the hash shared before play."""
    return hash_server_seed(server_seed) == expected_hash.lower().removeprefix("0x")


def _field(record, snake: str, camel: str):
    """Records come as BetOutcome objects or camelCase / snake_case dicts."""
    if isinstance(record, dict):
        return record[camel] if camel in record else record.get(snake)
    return getattr(record, snake)


class VerificationService:
    """Recomputes outcomes. With a store, refuses seeds of still-active pairs."""

    def __init__(self, store=None):
        self.store = store

    def _check_revealed(self, server_seed: str) -> None:
        if self.store is None:
            return
        pair = self.store.find_by_hash(hash_server_seed(server_seed))
        if pair is not None and not pair.is_retired:
            raise SeedNotRevealedError(f"pair {pair.pair_id} is {pair.status.value}")

    def verify(self, revealed_server_seed: str, client_seed: str, nonce: int,
               expected_outcome: float) -> VerificationResult:
        self._check_revealed(revealed_server_seed)
        recomputed = generate_outcome(revealed_server_seed, client_seed, nonce)
        matches = recomputed == expected_outcome
        if not matches:
            logger.warning(f"Outcome mismatch at nonce {nonce}: "
                           f"expected {expected_outcome!r}, recomputed {recomputed!r}")
        return VerificationResult(matches=matches, recomputed_outcome=recomputed)

    def verify_pair(self, pair: SeedPair, nonce: int,
                    expected_outcome: float) -> VerificationResult:
        """Verify a nonce of a pair using the client seed in force at that nonce."""
        server_seed = pair.server_seed  # raises SeedNotRevealedError unless retired
        return self.verify(server_seed, pair.client_seed_at(nonce), nonce, expected_outcome)

    def verify_record(self, record, revealed_server_seed: str) -> RecordCheck:
        """Re-derive a persisted bet and compare every auditable field."""
        self._check_revealed(revealed_server_seed)
        nonce = _field(record, "nonce", "nonce")
        client_seed = _field(record, "client_seed", "clientSeed")
        game_type = _field(record, "game_type", "gameType")
        detail = _field(record, "detail", "detail") or {}
        expected_outcome = _field(record, "raw_outcome", "rawOutcome")

        check = RecordCheck(bet_id=_field(record, "bet_id", "betId") or "", nonce=nonce)
        check.checks["server_seed_hash"] = verify_server_seed(
            revealed_server_seed, _field(record, "server_seed_hash", "serverSeedHash")
        )
        outcome = generate_outcome(revealed_server_seed, client_seed, nonce)
        check.recomputed["raw_outcome"] = outcome
        check.checks["raw_outcome"] = outcome == expected_outcome

        if game_type:
            config = config_from_detail(game_type, detail)
            result = get_resolver(game_type).resolve(
                outcome, config,
                target=_field(record, "target", "target"),
                selection=detail.get("selection"),
            )
            check.recomputed.update(won=result.won, multiplier=result.multiplier)
            check.checks["won"] = result.won == _field(record, "won", "won")
            check.checks["multiplier"] = result.multiplier == _field(record, "multiplier", "multiplier")

            amount = _field(record, "bet_amount", "betAmount")
            recorded_payout = _field(record, "payout", "payout")
            if amount is not None and recorded_payout is not None:
                payout = compute_payout(Decimal(str(amount)), result.multiplier)
                check.recomputed["payout"] = format(payout, "f")
                check.checks["payout"] = payout == Decimal(str(recorded_payout))

        if not check.ok:
            logger.warning(f"Record {check.bet_id} failed verification: {check.checks}")
        return check

    def audit_log(self, pair: SeedPair, records: list) -> dict:
        """Full audit report for a retired pair and its bets."""
        server_seed = pair.server_seed
        checks = [self.verify_record(r, server_seed) for r in records]
        return {
            "pair_id": pair.pair_id,
            "server_seed": server_seed,
            "server_seed_hash": pair.server_seed_hash,
            "commitment_ok": verify_server_seed(server_seed, pair.server_seed_hash),
            "client_seed_history": pair.public_view()["client_seed_history"],
            "total_bets": len(records),
            "all_ok": all(c.ok for c in checks),
            "bets": [c.to_dict() for c in checks],
            "verification_instructions": {
                "step_1": "Verify: SHA-256(server_seed) == server_seed_hash",
                "step_2": "For each bet: HMAC-SHA256(server_seed, client_seed + ':' + nonce)",
                "step_3": "Take the first 4 bytes big-endian, divide by 2^32, multiply by 100",
                "step_4": "Apply the game's versioned table to the outcome",
            },
        }
