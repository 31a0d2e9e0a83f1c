#!/usr/bin/env python3
"""
Tests for the game resolvers

Validates:
1.  Resolver registry lookup by string and enum
2.  Dice roll-under with the table's target bounds
3.  Slots reels are a deterministic function of the outcome (slots-v1)
4.  Plinko inverse binomial CDF bucket boundaries (plinko-v1)
5.  Roulette pocket mapping and selections (roulette-eu-v1)
6.  Pinned theoretical RTP per table (never above 1) and Monte Carlo agreement
7.  Game config validation
"""

import math
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from config.game_schema import GameConfig, GameType, default_game_config
from sim_engine.rmg import GAME_TYPES, get_resolver
from sim_engine.rmg.plinko import PLINKO_MULTIPLIERS, bucket_for_outcome
from sim_engine.rmg.roulette import parse_selection, pocket_for_outcome
from sim_engine.rmg.slots import evaluate_reels, reel_symbol
from tools.fair_errors import InvalidTargetError


def _raises(exc, fn, *args, **kwargs):
    try:
        fn(*args, **kwargs)
    except exc:
        return True
    return False


# ============================================================
# Tests
# ============================================================

def test_registry():
    assert set(GAME_TYPES) == {"dice", "slots", "plinko", "roulette"}
    for gt in GameType:
        assert get_resolver(gt).game_type == gt.value
    assert get_resolver("DICE").game_type == "dice"
    assert _raises(ValueError, get_resolver, "keno")
    print(f"✅ Resolver registry: {GAME_TYPES}")


def test_dice():
    dice = get_resolver("dice")
    cfg = default_game_config("dice")

    win = dice.resolve(49.99, cfg, target=50)
    assert win.won and math.isclose(win.multiplier, 1.98)
    loss = dice.resolve(50.0, cfg, target=50)
    assert not loss.won and loss.multiplier == 0.0
    assert math.isclose(loss.detail["payout_multiplier"], 1.98)

    assert _raises(InvalidTargetError, dice.validate, cfg, target=None)
    assert _raises(InvalidTargetError, dice.validate, cfg, target=0.5)
    assert _raises(InvalidTargetError, dice.validate, cfg, target=99.5)
    assert _raises(InvalidTargetError, dice.validate, cfg, target=100)
    dice.validate(cfg, target=1)
    dice.validate(cfg, target=99)
    print("✅ Dice: roll-under, 1.98x at 50, bounds [1, 99] enforced")


def test_slots_reels():
    # outcome 0 -> every reel position 0 -> cherry x3
    assert [reel_symbol(0.0, i) for i in range(3)] == ["cherry"] * 3
    # outcome 1 -> positions 13, 26, 39 -> cherry, lemon, lemon
    assert [reel_symbol(1.0, i) for i in range(3)] == ["cherry", "lemon", "lemon"]
    # outcome 50 -> positions 50, 0, 50 -> orange, cherry, orange
    assert [reel_symbol(50.0, i) for i in range(3)] == ["orange", "cherry", "orange"]

    assert evaluate_reels(["seven"] * 3) == (20.0, "three")
    assert evaluate_reels(["cherry", "lemon", "lemon"]) == (1.5, "pair")
    assert evaluate_reels(["orange", "cherry", "orange"]) == (0.0, None)

    slots = get_resolver("slots")
    cfg = default_game_config("slots")
    r = slots.resolve(1.0, cfg)
    assert r.won and r.multiplier == 1.5 and r.detail["match"] == "pair"
    assert slots.resolve(0.0, cfg).multiplier == 2.0
    assert not slots.resolve(50.0, cfg).won
    assert slots.resolve(42.4242, cfg) == slots.resolve(42.4242, cfg)
    print("✅ Slots: deterministic reels, three-of-a-kind and pair payouts")


def test_plinko_buckets():
    # 12 rows: cumulative path counts 1, 13, 79, 299, 794, 1586, 2510, ...
    assert bucket_for_outcome(0.0, 12) == 0
    assert bucket_for_outcome(100 / 4096 * 0.999, 12) == 0
    assert bucket_for_outcome(100 / 4096, 12) == 1       # boundary belongs to the next bucket
    assert bucket_for_outcome(50.0, 12) == 6
    assert bucket_for_outcome(99.99, 12) == 12
    assert bucket_for_outcome(99.9999999, 12) == 12

    for rows in (8, 12, 16):
        buckets = [bucket_for_outcome(x / 10, rows) for x in range(1000)]
        assert buckets == sorted(buckets), "bucket must be monotonic in outcome"
        assert buckets[0] == 0
        assert bucket_for_outcome(99.9999999, rows) == rows
        assert len(PLINKO_MULTIPLIERS[rows]["low"]) == rows + 1

    plinko = get_resolver("plinko")
    cfg = default_game_config("plinko", rows=12, risk="low")
    centre = plinko.resolve(50.0, cfg)
    assert centre.multiplier == 0.5 and not centre.won
    edge = plinko.resolve(0.0, cfg)
    assert edge.multiplier == 10.0 and edge.won
    assert edge.detail["rows"] == 12 and edge.detail["risk"] == "low"
    print("✅ Plinko: binomial buckets exact at boundaries, monotonic for 8/12/16 rows")


def test_roulette():
    assert pocket_for_outcome(0.0) == 0
    assert pocket_for_outcome(50.0) == 18
    assert pocket_for_outcome(99.9999) == 36

    assert parse_selection("Red") == ("red", None)
    assert parse_selection("straight:17") == ("straight", 17)
    for bad in ("", "blue", "straight:37", "dozen:0", "column:4", "straight:x", "red:1"):
        assert _raises(InvalidTargetError, parse_selection, bad), bad

    roulette = get_resolver("roulette")
    cfg = default_game_config("roulette")
    zero = roulette.resolve(0.0, cfg, selection="red")
    assert not zero.won and zero.detail["pocket"] == 0
    assert roulette.resolve(0.0, cfg, selection="straight:0").multiplier == 36.0
    for selection in ("red", "even", "low", "dozen:2"):
        r = roulette.resolve(50.0, cfg, selection=selection)
        assert r.won, selection
    assert roulette.resolve(50.0, cfg, selection="dozen:2").multiplier == 3.0
    assert not roulette.resolve(50.0, cfg, selection="black").won
    print("✅ Roulette: single-zero pockets, even-money / dozen / straight selections")


# Exact plinko-v1 RTP: sum(C(rows, k) * multiplier[k]) / 2**rows
PLINKO_V1_RTP = {
    (8, "low"): 253.4 / 256,
    (8, "medium"): 253.2 / 256,
    (8, "high"): 253.6 / 256,
    (12, "low"): 4054.2 / 4096,
    (12, "medium"): 4054.6 / 4096,
    (12, "high"): 4059.8 / 4096,
    (16, "low"): 64879.8 / 65536,
    (16, "medium"): 64873.0 / 65536,
    (16, "high"): 64865.2 / 65536,
}
SLOTS_V1_RTP = 0.8741625


def test_theoretical_rtp():
    dice_rtp = get_resolver("dice").compute_rtp(default_game_config("dice"))
    assert math.isclose(dice_rtp, 0.99)

    plinko = get_resolver("plinko")
    for (rows, risk), expected in PLINKO_V1_RTP.items():
        value = plinko.compute_rtp(default_game_config("plinko", rows=rows, risk=risk))
        assert value < 1.0, f"plinko {rows}/{risk} pays the player: {value}"
        assert math.isclose(value, expected, rel_tol=1e-12), (rows, risk, value)

    roulette = get_resolver("roulette")
    cfg = default_game_config("roulette")
    assert math.isclose(roulette.compute_rtp(cfg, selection="red"), 36 / 37)
    assert math.isclose(roulette.compute_rtp(cfg, selection="straight:5"), 36 / 37)

    slots_rtp = get_resolver("slots").compute_rtp(default_game_config("slots"))
    assert slots_rtp < 1.0, f"slots pays the player: {slots_rtp}"
    assert math.isclose(slots_rtp, SLOTS_V1_RTP, abs_tol=1e-6), slots_rtp
    print(f"✅ RTP pinned: dice={dice_rtp:.4f}, plinko 9 tables < 1, "
          f"roulette={36 / 37:.4f}, slots={slots_rtp:.7f}")


def test_slots_house_edge_matches_table():
    cfg = default_game_config("slots")
    assert math.isclose(cfg.house_edge_fraction, 1 - SLOTS_V1_RTP, abs_tol=1e-9)
    meta = get_resolver("slots").get_metadata(cfg)
    assert meta["table_version"] == "slots-v1"
    assert math.isclose(meta["house_edge"], 1 - SLOTS_V1_RTP, abs_tol=1e-9)
    print(f"✅ Slots metadata reports the table edge: {meta['house_edge']:.4%}")


def test_monte_carlo_agrees():
    dice = get_resolver("dice")
    sim = dice.simulate(default_game_config("dice"), rounds=50_000, seed=7, target=50)
    assert abs(sim.rtp_measured - 0.99) < 0.03, sim.to_dict()
    assert abs(sim.hit_rate - 0.5) < 0.02

    plinko = get_resolver("plinko")
    cfg = default_game_config("plinko")
    sim = plinko.simulate(cfg, rounds=50_000, seed=7)
    low, high = sim.confidence_95
    assert low - 0.01 <= sim.rtp_theoretical <= high + 0.01, sim.to_dict()
    assert sim.to_dict()["game_type"] == "plinko"
    print(f"✅ Monte Carlo: dice≈{0.99:.2f}, plinko measured {sim.rtp_measured:.4f} "
          f"vs theoretical {sim.rtp_theoretical:.4f}")


def test_game_config_validation():
    assert _raises(ValidationError, GameConfig, game_type="dice", min_target=0)
    assert _raises(ValidationError, GameConfig, game_type="dice", min_target=60, max_target=40)
    assert _raises(ValidationError, GameConfig, game_type="dice", house_edge_fraction=0.6)
    assert _raises(ValidationError, GameConfig, game_type="plinko", rows=10)
    assert default_game_config("roulette").table_version == "roulette-eu-v1"
    assert default_game_config("plinko", rows=None).rows == 12
    print("✅ GameConfig: bounds, house edge and plinko rows validated")


if __name__ == "__main__":
    tests = [
        test_registry,
        test_dice,
        test_slots_reels,
        test_plinko_buckets,
        test_roulette,
        test_theoretical_rtp,
        test_slots_house_edge_matches_table,
        test_monte_carlo_agrees,
        test_game_config_validation,
    ]

    print(f"\n{'='*60}")
    print(f"Game Resolver Tests — {len(tests)} tests")
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
