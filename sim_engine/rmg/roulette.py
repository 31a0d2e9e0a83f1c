"""Roulette — single-zero wheel (table roulette-eu-v1)."""
from config.game_schema import GameConfig
from sim_engine.rmg.base import BaseGameResolver, GameResult
from tools.fair_errors import InvalidTargetError

TABLE_VERSION = "roulette-eu-v1"
POCKETS = 37
RED = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})

EVEN_MONEY = {
    "red":   lambda n: n in RED,
    "black": lambda n: n != 0 and n not in RED,
    "odd":   lambda n: n % 2 == 1,
    "even":  lambda n: n != 0 and n % 2 == 0,
    "low":   lambda n: 1 <= n <= 18,
    "high":  lambda n: 19 <= n <= 36,
}


def pocket_for_outcome(outcome: float) -> int:
    return min(int(outcome * POCKETS / 100), POCKETS - 1)


def parse_selection(selection: str) -> tuple:
    """'red' -> ('red', None); 'straight:17' -> ('straight', 17)."""
    if not selection:
        raise InvalidTargetError("roulette bets require a selection")
    kind, _, arg = selection.strip().lower().partition(":")
    if kind in EVEN_MONEY and not arg:
        return kind, None
    limits = {"straight": (0, 36), "dozen": (1, 3), "column": (1, 3)}
    if kind not in limits or not arg.isdigit():
        raise InvalidTargetError(f"unknown roulette selection {selection!r}")
    value = int(arg)
    lo, hi = limits[kind]
    if not lo <= value <= hi:
        raise InvalidTargetError(f"{kind} must be between {lo} and {hi}")
    return kind, value


def selection_wins(kind: str, value, pocket: int) -> bool:
    if kind in EVEN_MONEY:
        return EVEN_MONEY[kind](pocket)
    if kind == "straight":
        return pocket == value
    if pocket == 0:
        return False
    if kind == "dozen":
        return (pocket - 1) // 12 + 1 == value
    return (pocket - 1) % 3 + 1 == value  # column


def payout_multiplier(kind: str) -> float:
    if kind == "straight":
        return 36.0
    if kind in ("dozen", "column"):
        return 3.0
    return 2.0


class RouletteResolver(BaseGameResolver):
    game_type = "roulette"
    display_name = "Roulette"

    def validate(self, config: GameConfig, selection: str = None, **kw) -> None:
        parse_selection(selection)

    def resolve(self, outcome: float, config: GameConfig, selection: str = None,
                **kw) -> GameResult:
        kind, value = parse_selection(selection)
        pocket = pocket_for_outcome(outcome)
        won = selection_wins(kind, value, pocket)
        return GameResult(
            won=won,
            multiplier=payout_multiplier(kind) if won else 0.0,
            detail={"pocket": pocket, "selection": selection, "table_version": TABLE_VERSION},
        )

    def compute_rtp(self, config: GameConfig, selection: str = "red", **kw) -> float:
        kind, value = parse_selection(selection)
        hits = sum(1 for n in range(POCKETS) if selection_wins(kind, value, n))
        return hits * payout_multiplier(kind) / POCKETS
