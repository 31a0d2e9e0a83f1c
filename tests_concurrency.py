#!/usr/bin/env python3
"""
Tests for nonce issuance under concurrency

Validates:
1.  N parallel next_nonce calls on one pair yield exactly {0..N-1}
2.  Parallel bets never share a (pair, nonce) and each outcome matches its ticket
3.  A rotation racing live bets never issues a nonce after the reveal
4.  Parallel first bets for a new owner converge on one active pair
5.  SqlSeedStore fetch-and-increment is atomic across connections
6.  SqlSeedStore keeps one active pair per owner under racing first bets
7.  SqlSeedStore refuses nonces once the pair is retired
"""

import sys
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.database import connect_sqlite, init_db
from tools.bet_handler import BetHandler, SqlBetStore
from tools.fair_errors import PairNotActiveError
from tools.provably_fair import generate_outcome
from tools.seed_manager import SeedPairManager
from tools.seed_store import InMemorySeedStore, SqlSeedStore


def _sqlite_connect(tmpdir):
    path = Path(tmpdir) / "concurrency.db"
    db = connect_sqlite(path)
    init_db(db)
    db.close()
    return lambda: connect_sqlite(path)


# ============================================================
# Tests
# ============================================================

def test_parallel_nonces_are_unique_and_contiguous():
    """200 threads racing next_nonce get every nonce exactly once."""
    manager = SeedPairManager(InMemorySeedStore())
    pair = manager.create_pair("race-1")
    n = 200

    with ThreadPoolExecutor(max_workers=32) as pool:
        nonces = list(pool.map(lambda _: manager.next_nonce(pair), range(n)))

    assert sorted(nonces) == list(range(n)), "nonces skipped or duplicated"
    assert manager.get_pair(pair.pair_id).nonce == n
    print(f"✅ {n} parallel nonces: exactly {{0..{n - 1}}}")


def test_parallel_bets_have_distinct_nonces():
    manager = SeedPairManager(InMemorySeedStore())
    handler = BetHandler(manager)
    pair = manager.create_pair("race-2", client_seed="steady")
    n = 100

    def bet(_):
        return handler.place_bet({"owner_id": "race-2", "game_type": "dice",
                                  "bet_amount": "0.01", "target": 50})

    with ThreadPoolExecutor(max_workers=16) as pool:
        bets = list(pool.map(bet, range(n)))

    assert sorted(b.nonce for b in bets) == list(range(n))
    for b in bets:
        assert b.raw_outcome == generate_outcome(pair._server_seed, "steady", b.nonce)
    assert len(handler.bet_store.for_pair(pair.pair_id)) == n
    print(f"✅ {n} parallel bets: distinct nonces, outcomes match their tickets")


def test_rotation_racing_bets():
    """Bets in flight during a rotation land on either pair, never after the reveal."""
    manager = SeedPairManager(InMemorySeedStore())
    handler = BetHandler(manager)
    first = manager.create_pair("race-3")
    start = threading.Barrier(9)
    results = []
    results_lock = threading.Lock()

    def bettor():
        start.wait()
        for _ in range(25):
            bet = handler.place_bet({"owner_id": "race-3", "game_type": "dice",
                                     "bet_amount": "1", "target": 50})
            with results_lock:
                results.append(bet)

    threads = [threading.Thread(target=bettor) for _ in range(8)]
    for t in threads:
        t.start()
    start.wait()
    retired, successor = manager.rotate(first)
    for t in threads:
        t.join()

    assert len(results) == 200
    on_old = sorted(b.nonce for b in results if b.pair_id == retired.pair_id)
    on_new = sorted(b.nonce for b in results if b.pair_id == successor.pair_id)
    assert len(on_old) + len(on_new) == 200
    assert on_old == list(range(retired.nonce)), "nonce issued on retired pair after reveal"
    assert on_new == list(range(len(on_new)))

    for b in results:
        if b.pair_id == retired.pair_id:
            assert b.raw_outcome == generate_outcome(retired.server_seed, b.client_seed, b.nonce)

    try:
        manager.next_nonce(retired)
        raise AssertionError("retired pair issued a nonce")
    except PairNotActiveError:
        pass
    print(f"✅ Rotation race: {len(on_old)} bets before reveal, {len(on_new)} on successor")


def test_parallel_first_bets_share_one_pair():
    manager = SeedPairManager(InMemorySeedStore())
    handler = BetHandler(manager)

    def bet(_):
        return handler.place_bet({"owner_id": "race-4", "game_type": "slots", "bet_amount": "1"})

    with ThreadPoolExecutor(max_workers=8) as pool:
        bets = list(pool.map(bet, range(40)))

    assert len({b.pair_id for b in bets}) == 1
    assert len(manager.list_pairs("race-4")) == 1
    print("✅ Parallel first bets: one active pair created")


def test_sql_parallel_nonces():
    with tempfile.TemporaryDirectory() as tmp:
        manager = SeedPairManager(SqlSeedStore(_sqlite_connect(tmp)))
        pair = manager.create_pair("sql-race")
        n = 60

        with ThreadPoolExecutor(max_workers=8) as pool:
            nonces = list(pool.map(lambda _: manager.next_nonce(pair), range(n)))

        assert sorted(nonces) == list(range(n))
        assert manager.get_pair(pair.pair_id).nonce == n
    print(f"✅ SQLite: {n} parallel nonces unique and contiguous")


def test_sql_parallel_first_bets_share_one_pair():
    """Racing first bets on SQLite converge on one active pair per owner."""
    with tempfile.TemporaryDirectory() as tmp:
        connect = _sqlite_connect(tmp)
        manager = SeedPairManager(SqlSeedStore(connect))
        handler = BetHandler(manager, SqlBetStore(connect))
        start = threading.Barrier(8)

        def bet(_):
            start.wait()
            return handler.place_bet({"owner_id": "sql-first", "game_type": "slots",
                                      "bet_amount": "1"})

        with ThreadPoolExecutor(max_workers=8) as pool:
            bets = list(pool.map(bet, range(8)))

        pairs = manager.list_pairs("sql-first")
        assert len(pairs) == 1, f"{len(pairs)} pairs created"
        assert len({b.pair_id for b in bets}) == 1
        assert sorted(b.nonce for b in bets) == list(range(8))
    print("✅ SQLite: parallel first bets share one active pair")


def test_sql_retired_pair_refuses_nonces():
    with tempfile.TemporaryDirectory() as tmp:
        connect = _sqlite_connect(tmp)
        manager = SeedPairManager(SqlSeedStore(connect))
        handler = BetHandler(manager, SqlBetStore(connect))
        pair = manager.create_pair("sql-rot")
        for _ in range(3):
            handler.place_bet({"owner_id": "sql-rot", "game_type": "dice",
                               "bet_amount": "1", "target": 30})
        retired, successor = manager.rotate(pair)

        try:
            manager.next_nonce(pair)
            raise AssertionError("retired pair issued a nonce")
        except PairNotActiveError:
            pass

        bet = handler.place_bet({"owner_id": "sql-rot", "game_type": "dice",
                                 "bet_amount": "1", "target": 30})
        assert bet.pair_id == successor.pair_id
        assert bet.nonce == 0
        assert retired.nonce == 3
    print("✅ SQLite: retired pair refuses nonces, next bet lands on successor")


if __name__ == "__main__":
    tests = [
        test_parallel_nonces_are_unique_and_contiguous,
        test_parallel_bets_have_distinct_nonces,
        test_rotation_racing_bets,
        test_parallel_first_bets_share_one_pair,
        test_sql_parallel_nonces,
        test_sql_parallel_first_bets_share_one_pair,
        test_sql_retired_pair_refuses_nonces,
    ]

    print(f"\n{'='*60}")
    print(f"Nonce Concurrency Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1
        print()

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
