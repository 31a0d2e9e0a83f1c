#!/usr/bin/env python3
"""
FAIRPLAY — Unit & Integration Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestVerification  # run specific class

Test categories:
  TestOutcomeGenerator — HMAC derivation, pinned fixture, determinism, range
  TestMultiplierEngine — house edge math, roll-under boundaries, payout truncation
  TestSeedPairManager  — creation, client seed rules, nonces, rotation finality
  TestVerification     — round trip, sealed seeds, record checks, audit log
  TestBetHandler       — end-to-end bets, boundary error mapping
  TestSqlStores        — SQLite-backed seed and bet stores
"""

import math
import sqlite3
import sys
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.database import connect_sqlite, init_db
from config.game_schema import default_game_config
from config.settings import FairConfig
from tools.bet_handler import BetHandler, InMemoryBetStore, SqlBetStore
from tools.fair_errors import (
    InvalidSeedError, InvalidTargetError, NonceConflictError, NonceStorageError,
    PairNotActiveError, SeedNotRevealedError,
)
from tools.multiplier import multiplier_for_target, payout, resolve, win_chance
from tools.provably_fair import (
    build_message, derive_hash, generate_outcome, hash_server_seed, hash_to_outcome,
    new_server_seed,
)
from tools.seed_manager import SeedPairManager, validate_client_seed
from tools.seed_pair import NonceTicket, PairStatus
from tools.seed_store import InMemorySeedStore, SqlSeedStore
from tools.verification import VerificationService, verify_server_seed

# Pinned regression fixture: serverSeed="abc123", clientSeed="player1"
FIXTURE_DIGEST = "4b7a95d1999ec49d625472247e26cd5d181f04b674d8f98ce663ea26f5deb9cd"
FIXTURE_SEED_HASH = "6ca13d52ca70c883e0f0bb101e425a89e8624de51db2d2392593af6a84118090"
FIXTURE_UINT32 = 1266324945          # 0x4b7a95d1
FIXTURE_OUTCOME = 29.483925201930106


# ============================================================
# Outcome Generator
# ============================================================

class TestOutcomeGenerator(unittest.TestCase):

    def test_pinned_digest(self):
        """HMAC-SHA256(abc123, 'player1:0') matches the pinned digest."""
        self.assertEqual(derive_hash("abc123", "player1", 0), FIXTURE_DIGEST)

    def test_pinned_outcome(self):
        outcome = generate_outcome("abc123", "player1", 0)
        self.assertEqual(outcome, (FIXTURE_UINT32 / 2 ** 32) * 100)
        self.assertAlmostEqual(outcome, FIXTURE_OUTCOME, places=12)

    def test_following_nonces(self):
        self.assertAlmostEqual(generate_outcome("abc123", "player1", 1), 1.7130623105913401, places=12)
        self.assertAlmostEqual(generate_outcome("abc123", "player1", 2), 11.510522151365876, places=12)

    def test_hex_and_byte_paths_agree(self):
        for nonce in range(50):
            digest = derive_hash("seed", "client", nonce)
            self.assertEqual(hash_to_outcome(digest), generate_outcome("seed", "client", nonce))

    def test_deterministic(self):
        a = generate_outcome("s3rv3r", "cl13nt", 42)
        b = generate_outcome("s3rv3r", "cl13nt", 42)
        self.assertEqual(a, b)

    def test_message_format(self):
        self.assertEqual(build_message("player1", 0), b"player1:0")
        self.assertEqual(build_message("p:x", 10), b"p:x:10")
        self.assertEqual(build_message("ünï", 3), "ünï:3".encode("utf-8"))

    def test_range(self):
        for nonce in range(500):
            outcome = generate_outcome("range-check", "c", nonce)
            self.assertGreaterEqual(outcome, 0.0)
            self.assertLess(outcome, 100.0)
        self.assertLess((0xFFFFFFFF / 2 ** 32) * 100, 100.0)

    def test_bad_nonce(self):
        for bad in (-1, 1.5, "3", True, None):
            with self.assertRaises(ValueError):
                generate_outcome("s", "c", bad)

    def test_seed_hash_and_entropy(self):
        self.assertEqual(hash_server_seed("abc123"), FIXTURE_SEED_HASH)
        seed = new_server_seed()
        self.assertEqual(len(seed), FairConfig.SERVER_SEED_BYTES * 2)
        self.assertNotEqual(seed, new_server_seed())
        with self.assertRaises(ValueError):
            new_server_seed(16)


# ============================================================
# Multiplier Engine
# ============================================================

class TestMultiplierEngine(unittest.TestCase):

    def test_target_50_one_percent(self):
        self.assertAlmostEqual(multiplier_for_target(50, 0.01), 1.98, places=12)

    def test_multiplier_times_target(self):
        for target in (0.01, 1, 2.5, 33.33, 50, 75.5, 98, 99.99):
            for edge in (0.0, 0.01, 0.03):
                self.assertAlmostEqual(
                    multiplier_for_target(target, edge) * target, 100 - edge * 100, places=9
                )

    def test_smaller_target_pays_more(self):
        self.assertGreater(multiplier_for_target(10, 0.01), multiplier_for_target(90, 0.01))

    def test_invalid_targets(self):
        for bad in (0, -5, 100, 150, math.nan, "abc", None):
            with self.assertRaises(InvalidTargetError):
                multiplier_for_target(bad, 0.01)

    def test_roll_under(self):
        self.assertTrue(resolve(49.9999, 50).won)
        self.assertFalse(resolve(50.0001, 50).won)
        self.assertFalse(resolve(50.0, 50).won)
        self.assertEqual(win_chance(25), 25.0)

    def test_payout_truncates(self):
        self.assertEqual(payout("0.001", 1.98), Decimal("0.00198"))
        self.assertEqual(format(payout("0.001", 1.98), "f"), "0.00198000")
        self.assertEqual(payout("0.123456789", 1), Decimal("0.12345678"))
        self.assertEqual(payout(1, 1.999999999), Decimal("1.99999999"))
        # 0.5 at the 9th place would round half-even up; truncation keeps it down
        self.assertEqual(payout("0.000000015", 1), Decimal("0.00000001"))

    def test_payout_rejects_negative(self):
        with self.assertRaises(ValueError):
            payout("-1", 2)


# ============================================================
# SeedPair Manager
# ============================================================

class TestSeedPairManager(unittest.TestCase):

    def setUp(self):
        self.manager = SeedPairManager(InMemorySeedStore())

    def test_create_pair(self):
        pair = self.manager.create_pair("alice", client_seed="lucky")
        self.assertEqual(pair.nonce, 0)
        self.assertEqual(pair.client_seed, "lucky")
        self.assertEqual(pair.status, PairStatus.ACTIVE)
        self.assertEqual(len(pair.server_seed_hash), 64)

    def test_generated_client_seed(self):
        pair = self.manager.create_pair("bob")
        self.assertEqual(len(pair.client_seed), FairConfig.CLIENT_SEED_BYTES * 2)

    def test_invalid_client_seeds(self):
        for bad in ("", "   ", "x" * (FairConfig.CLIENT_SEED_MAX_LENGTH + 1), "tab\tseed", 123):
            with self.assertRaises(InvalidSeedError):
                validate_client_seed(bad)
        with self.assertRaises(InvalidSeedError):
            self.manager.create_pair("carol", client_seed="")
        self.assertEqual(validate_client_seed("x" * FairConfig.CLIENT_SEED_MAX_LENGTH),
                         "x" * FairConfig.CLIENT_SEED_MAX_LENGTH)

    def test_plaintext_sealed_while_active(self):
        pair = self.manager.create_pair("dave")
        with self.assertRaises(SeedNotRevealedError):
            _ = pair.server_seed
        with self.assertRaises(SeedNotRevealedError):
            pair.reveal_server_seed()
        self.assertNotIn("server_seed", pair.public_view())
        self.assertNotIn(pair._server_seed, repr(pair))

    def test_nonces_increase(self):
        pair = self.manager.create_pair("erin")
        self.assertEqual([self.manager.next_nonce(pair) for _ in range(5)], [0, 1, 2, 3, 4])
        self.assertEqual(pair.nonce, 5)

    def test_rotation_finality(self):
        pair = self.manager.create_pair("frank", client_seed="keep-me")
        self.manager.next_nonce(pair)
        retired, current = self.manager.rotate(pair)
        self.assertIs(retired, pair)
        self.assertEqual(retired.status, PairStatus.RETIRED)
        self.assertIsNotNone(retired.retired_at)
        self.assertEqual(hash_server_seed(retired.server_seed), retired.server_seed_hash)
        self.assertIn("server_seed", retired.public_view())

        with self.assertRaises(PairNotActiveError):
            self.manager.next_nonce(retired)
        with self.assertRaises(PairNotActiveError):
            self.manager.rotate(retired)
        with self.assertRaises(PairNotActiveError):
            self.manager.set_client_seed(retired, "late")

        self.assertEqual(current.nonce, 0)
        self.assertEqual(current.client_seed, "keep-me")
        self.assertNotEqual(current.server_seed_hash, retired.server_seed_hash)
        self.assertIs(self.manager.active_pair("frank"), current)
        self.assertEqual(len(self.manager.list_pairs("frank")), 2)

    def test_client_seed_change_keeps_nonce(self):
        pair = self.manager.create_pair("gina", client_seed="first")
        self.manager.next_nonce(pair)
        self.manager.next_nonce(pair)
        change = self.manager.set_client_seed(pair, "second")
        self.assertEqual(change.from_nonce, 2)
        self.assertEqual(pair.nonce, 2)
        self.assertEqual(self.manager.next_nonce(pair), 2)
        self.assertEqual(pair.client_seed_at(0), "first")
        self.assertEqual(pair.client_seed_at(1), "first")
        self.assertEqual(pair.client_seed_at(2), "second")
        self.assertEqual(len(pair.client_seed_history), 2)

    def test_ticket_carries_client_seed(self):
        pair = self.manager.create_pair("hank", client_seed="one")
        t0 = self.manager.issue_nonce(pair)
        self.manager.set_client_seed(pair, "two")
        t1 = self.manager.issue_nonce(pair)
        self.assertEqual((t0.nonce, t0.client_seed), (0, "one"))
        self.assertEqual((t1.nonce, t1.client_seed), (1, "two"))

    def test_transient_errors_retry_increment_only(self):
        pair = self.manager.create_pair("ivy")
        ticket = NonceTicket(pair.pair_id, 0, pair.client_seed, pair.server_seed_hash)
        with patch.object(FairConfig, "NONCE_RETRY_BACKOFF", 0), \
             patch.object(self.manager.store, "increment_nonce",
                          side_effect=[sqlite3.OperationalError("database is locked"), ticket]) as inc:
            self.assertEqual(self.manager.next_nonce(pair), 0)
            self.assertEqual(inc.call_count, 2)

    def test_transient_errors_exhausted(self):
        pair = self.manager.create_pair("jack")
        with patch.object(FairConfig, "NONCE_RETRY_BACKOFF", 0), \
             patch.object(self.manager.store, "increment_nonce",
                          side_effect=sqlite3.OperationalError("database is locked")) as inc:
            with self.assertRaises(NonceStorageError):
                self.manager.next_nonce(pair)
            self.assertEqual(inc.call_count, FairConfig.NONCE_RETRY_LIMIT)

    def test_conflict_is_not_retried(self):
        pair = self.manager.create_pair("kim")
        with patch.object(self.manager.store, "increment_nonce",
                          side_effect=NonceConflictError("dup")) as inc:
            with self.assertRaises(NonceConflictError):
                self.manager.next_nonce(pair)
            self.assertEqual(inc.call_count, 1)

    def test_tampered_commitment_rejected(self):
        pair = self.manager.create_pair("lee")
        with self.assertRaises(ValueError):
            type(pair)(pair_id="x", owner_id="lee", server_seed_hash=pair.server_seed_hash,
                       client_seed="c", _server_seed="not-the-seed")

    def test_rotate_validates_new_client_seed(self):
        pair = self.manager.create_pair("mia", client_seed="kept")
        with self.assertRaises(InvalidSeedError):
            self.manager.rotate(pair, client_seed="")
        self.assertTrue(pair.is_active)
        _, current = self.manager.rotate(pair, client_seed="brand-new")
        self.assertEqual(current.client_seed, "brand-new")

    def test_swap_carries_seed_held_at_swap_time(self):
        pair = self.manager.create_pair("ned", client_seed="before")
        successor = self.manager._new_pair("ned", "stale")
        self.manager.set_client_seed(pair, "during")
        self.manager.store.swap(pair.pair_id, successor, carry_client_seed=True)
        self.assertEqual(successor.client_seed, "during")
        self.assertEqual(successor.client_seed_at(0), "during")
        self.assertEqual(len(successor.client_seed_history), 1)


# ============================================================
# Verification Service
# ============================================================

class TestVerification(unittest.TestCase):

    def setUp(self):
        self.store = InMemorySeedStore()
        self.manager = SeedPairManager(self.store)
        self.handler = BetHandler(self.manager)
        self.service = VerificationService(self.store)

    def test_plain_round_trip(self):
        outcome = generate_outcome("abc123", "player1", 0)
        result = VerificationService().verify("abc123", "player1", 0, outcome)
        self.assertTrue(result.matches)
        self.assertEqual(result.recomputed_outcome, FIXTURE_OUTCOME)

    def test_zero_tolerance(self):
        outcome = generate_outcome("abc123", "player1", 0)
        result = VerificationService().verify("abc123", "player1", 0, outcome + 1e-12)
        self.assertFalse(result.matches)

    def test_round_trip_after_rotation(self):
        bet = self.handler.place_bet({"owner_id": "amy", "game_type": "dice",
                                      "bet_amount": "1", "target": 50})
        pair = self.manager.get_pair(bet.pair_id)
        retired, _ = self.manager.rotate(pair)
        result = self.service.verify(retired.server_seed, bet.client_seed, bet.nonce, bet.raw_outcome)
        self.assertTrue(result.matches)
        self.assertTrue(self.service.verify_pair(retired, bet.nonce, bet.raw_outcome).matches)

    def test_active_seed_refused(self):
        pair = self.manager.create_pair("ben")
        with self.assertRaises(SeedNotRevealedError):
            self.service.verify(pair._server_seed, pair.client_seed, 0, 1.0)
        with self.assertRaises(SeedNotRevealedError):
            self.service.verify_pair(pair, 0, 1.0)

    def test_client_seed_history_is_auditable(self):
        first = self.handler.place_bet({"owner_id": "cat", "game_type": "dice",
                                        "bet_amount": "1", "target": 60})
        pair = self.manager.get_pair(first.pair_id)
        self.manager.set_client_seed(pair, "changed")
        second = self.handler.place_bet({"owner_id": "cat", "game_type": "dice",
                                         "bet_amount": "1", "target": 60})
        self.assertEqual(second.client_seed, "changed")
        retired, _ = self.manager.rotate(pair)
        self.assertTrue(self.service.verify_pair(retired, first.nonce, first.raw_outcome).matches)
        self.assertTrue(self.service.verify_pair(retired, second.nonce, second.raw_outcome).matches)

    def test_verify_record_and_tampering(self):
        bets = [
            self.handler.place_bet({"owner_id": "dan", "game_type": "dice",
                                    "bet_amount": "0.5", "target": 40}),
            self.handler.place_bet({"owner_id": "dan", "game_type": "plinko",
                                    "bet_amount": "2", "risk": "high", "rows": 8}),
            self.handler.place_bet({"owner_id": "dan", "game_type": "slots", "bet_amount": "1"}),
            self.handler.place_bet({"owner_id": "dan", "game_type": "roulette",
                                    "bet_amount": "1", "selection": "straight:7"}),
        ]
        retired, _ = self.manager.rotate(self.manager.get_pair(bets[0].pair_id))
        seed = retired.server_seed
        for bet in bets:
            self.assertTrue(self.service.verify_record(bet, seed).ok, bet.game_type)
            self.assertTrue(self.service.verify_record(bet.to_record(), seed).ok, bet.game_type)

        tampered = dict(bets[0].to_record(), payout="999")
        check = self.service.verify_record(tampered, seed)
        self.assertFalse(check.ok)
        self.assertFalse(check.checks["payout"])
        self.assertTrue(check.checks["raw_outcome"])

        wrong_seed = self.service.verify_record(bets[0], "f" * 64)
        self.assertFalse(wrong_seed.checks["server_seed_hash"])
        self.assertFalse(wrong_seed.checks["raw_outcome"])

    def test_audit_log(self):
        for _ in range(3):
            self.handler.place_bet({"owner_id": "eve", "game_type": "dice",
                                    "bet_amount": "1", "target": 25})
        pair = self.manager.active_pair("eve")
        retired, _ = self.manager.rotate(pair)
        report = self.service.audit_log(retired, self.handler.bet_store.for_pair(retired.pair_id))
        self.assertTrue(report["commitment_ok"])
        self.assertTrue(report["all_ok"])
        self.assertEqual(report["total_bets"], 3)
        self.assertEqual([b["nonce"] for b in report["bets"]], [0, 1, 2])

    def test_server_seed_check(self):
        self.assertTrue(verify_server_seed("abc123", FIXTURE_SEED_HASH))
        self.assertTrue(verify_server_seed("abc123", "0x" + FIXTURE_SEED_HASH.upper()))
        self.assertFalse(verify_server_seed("abc124", FIXTURE_SEED_HASH))

    def test_custom_house_edge_is_auditable(self):
        handler = BetHandler(self.manager, configs={
            "dice": default_game_config("dice", house_edge_fraction=0.02),
        })
        bets = [handler.place_bet({"owner_id": "fay", "game_type": "dice",
                                   "bet_amount": "1", "target": 60}) for _ in range(20)]
        winners = [b for b in bets if b.won]
        for b in winners:
            self.assertAlmostEqual(b.multiplier, 98 / 60, places=12)
        self.assertEqual(bets[0].detail["house_edge_fraction"], 0.02)

        retired, _ = self.manager.rotate(self.manager.get_pair(bets[0].pair_id))
        report = self.service.audit_log(retired, handler.bet_store.for_pair(retired.pair_id))
        self.assertTrue(report["all_ok"], [c["checks"] for c in report["bets"] if not c["ok"]])
        for bet in bets:
            self.assertTrue(self.service.verify_record(bet.to_record(), retired.server_seed).ok)


# ============================================================
# Bet Handler
# ============================================================

class TestBetHandler(unittest.TestCase):

    def setUp(self):
        self.manager = SeedPairManager()
        self.handler = BetHandler(self.manager)

    def test_dice_bet_record_shape(self):
        resp = self.handler.handle({"owner_id": "u1", "game_type": "dice",
                                    "bet_amount": "0.001", "target": 50})
        self.assertTrue(resp["ok"])
        rec = resp["bet"]
        for key in ("serverSeedHash", "clientSeed", "nonce", "rawOutcome", "target",
                    "multiplier", "won", "payout", "timestamp"):
            self.assertIn(key, rec)
        self.assertEqual(rec["nonce"], 0)
        if rec["won"]:
            self.assertEqual(rec["payout"], "0.00198000")
        else:
            self.assertEqual(rec["payout"], "0.00000000")

    def test_outcome_matches_generator(self):
        pair = self.manager.create_pair("u2", client_seed="fixed")
        bet = self.handler.place_bet({"owner_id": "u2", "game_type": "dice",
                                      "bet_amount": "1", "target": 50})
        self.assertEqual(bet.raw_outcome, generate_outcome(pair._server_seed, "fixed", 0))
        self.assertEqual(bet.won, bet.raw_outcome < 50)

    def test_invalid_target_does_not_consume_nonce(self):
        pair = self.manager.create_pair("u3")
        for target in (0, 100, 99.5, 0.5):
            resp = self.handler.handle({"owner_id": "u3", "game_type": "dice",
                                        "bet_amount": "1", "target": target})
            self.assertFalse(resp["ok"])
            self.assertEqual(resp["error"], "invalid_target")
        self.assertEqual(pair.nonce, 0)

    def test_invalid_requests(self):
        bad = [
            {"owner_id": "u4", "game_type": "dice", "bet_amount": "1"},
            {"owner_id": "u4", "game_type": "dice", "bet_amount": "-1", "target": 50},
            {"owner_id": "u4", "game_type": "keno", "bet_amount": "1"},
            {"owner_id": "u4", "game_type": "roulette", "bet_amount": "1"},
        ]
        for payload in bad:
            resp = self.handler.handle(payload)
            self.assertFalse(resp["ok"])
            self.assertEqual(resp["error"], "invalid_request")

    def test_bad_roulette_selection(self):
        resp = self.handler.handle({"owner_id": "u5", "game_type": "roulette",
                                    "bet_amount": "1", "selection": "straight:40"})
        self.assertEqual(resp["error"], "invalid_target")

    def test_records_are_immutable(self):
        bet = self.handler.place_bet({"owner_id": "u6", "game_type": "slots", "bet_amount": "1"})
        with self.assertRaises(Exception):
            bet.won = not bet.won

    def test_duplicate_nonce_is_fatal(self):
        store = InMemoryBetStore()
        bet = self.handler.place_bet({"owner_id": "u7", "game_type": "slots", "bet_amount": "1"})
        store.add(bet)
        with self.assertRaises(NonceConflictError):
            store.add(bet)

    def test_nonce_conflict_maps_to_user_message(self):
        with patch.object(self.handler.bet_store, "add", side_effect=NonceConflictError("dup")):
            resp = self.handler.handle({"owner_id": "u8", "game_type": "slots", "bet_amount": "1"})
        self.assertEqual(resp["error"], "nonce_conflict")
        self.assertIn("aborted", resp["message"])


# ============================================================
# SQL stores (SQLite file)
# ============================================================

class TestSqlStores(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "fair.db"
        db = connect_sqlite(self.path)
        init_db(db)
        db.close()
        connect = lambda: connect_sqlite(self.path)
        self.store = SqlSeedStore(connect)
        self.manager = SeedPairManager(self.store)
        self.handler = BetHandler(self.manager, SqlBetStore(connect))

    def tearDown(self):
        self.tmp.cleanup()

    def test_pair_round_trip(self):
        pair = self.manager.create_pair("sql-1", client_seed="abc")
        loaded = self.store.get(pair.pair_id)
        self.assertEqual(loaded.server_seed_hash, pair.server_seed_hash)
        self.assertEqual(loaded.client_seed, "abc")
        self.assertEqual(self.store.active_for("sql-1").pair_id, pair.pair_id)
        self.assertEqual(self.store.find_by_hash(pair.server_seed_hash).pair_id, pair.pair_id)

    def test_nonces_and_rotation(self):
        pair = self.manager.create_pair("sql-2", client_seed="one")
        self.assertEqual([self.manager.next_nonce(pair) for _ in range(3)], [0, 1, 2])
        self.manager.set_client_seed(pair, "two")
        self.assertEqual(self.store.get(pair.pair_id).client_seed_at(3), "two")
        retired, current = self.manager.rotate(pair)
        self.assertEqual(retired.status, PairStatus.RETIRED)
        self.assertEqual(pair.status, PairStatus.RETIRED)
        self.assertEqual(retired.nonce, 3)
        self.assertEqual(hash_server_seed(retired.server_seed), retired.server_seed_hash)
        with self.assertRaises(PairNotActiveError):
            self.manager.next_nonce(pair)
        self.assertEqual(self.store.active_for("sql-2").pair_id, current.pair_id)
        self.assertEqual(current.client_seed, "two")

    def test_bets_persist_and_verify(self):
        self.manager.create_pair("sql-3")
        for target in (20, 50, 80):
            self.handler.place_bet({"owner_id": "sql-3", "game_type": "dice",
                                    "bet_amount": "0.25", "target": target})
        pair = self.manager.active_pair("sql-3")
        retired, _ = self.manager.rotate(pair)
        bets = self.handler.bet_store.for_pair(retired.pair_id)
        self.assertEqual([b.nonce for b in bets], [0, 1, 2])
        report = VerificationService(self.store).audit_log(retired, bets)
        self.assertTrue(report["all_ok"])

    def test_duplicate_bet_row_is_conflict(self):
        bet = self.handler.place_bet({"owner_id": "sql-4", "game_type": "slots", "bet_amount": "1"})
        with self.assertRaises(NonceConflictError):
            self.handler.bet_store.add(bet)

    def test_one_active_pair_per_owner(self):
        first = self.manager.create_pair("sql-5")
        with self.assertRaises(ValueError):
            self.manager.create_pair("sql-5")
        self.assertEqual(self.manager.ensure_active_pair("sql-5").pair_id, first.pair_id)
        self.assertEqual(len(self.manager.list_pairs("sql-5")), 1)
        # A retired pair does not block its successor
        _, current = self.manager.rotate(first)
        self.assertEqual(self.store.active_for("sql-5").pair_id, current.pair_id)

    def test_swap_carries_seed_held_at_swap_time(self):
        pair = self.manager.create_pair("sql-6", client_seed="before")
        successor = self.manager._new_pair("sql-6", "stale")
        self.manager.set_client_seed(pair, "during")
        self.store.swap(pair.pair_id, successor, carry_client_seed=True)
        stored = self.store.get(successor.pair_id)
        self.assertEqual(stored.client_seed, "during")
        self.assertEqual(stored.client_seed_at(0), "during")


if __name__ == "__main__":
    unittest.main()
