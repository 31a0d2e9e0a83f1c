"""Slots — three reels derived from a single outcome (table slots-v1)."""
from config.game_schema import GameConfig
from sim_engine.rmg.base import BaseGameResolver, GameResult

TABLE_VERSION = "slots-v1"
REELS = 3

# (name, cumulative threshold on 0-100, three-of-a-kind multiplier)
SYMBOLS = [
    ("cherry",  25,  2),
    ("lemon",   45,  3),
    ("orange",  63,  4),
    ("grape",   78,  5),
    ("diamond", 88,  8),
    ("star",    95, 10),
    ("seven",  100, 20),
]
PAIR_FACTOR = 0.5
PAYTABLE = {name: mult for name, _, mult in SYMBOLS}


def reel_symbol(outcome: float, reel_index: int) -> str:
    """Deterministic symbol for one reel."""
    position = (outcome * (reel_index + 1) * 13) % 100
    for name, threshold, _ in SYMBOLS:
        if position < threshold:
            return name
    return SYMBOLS[-1][0]


def evaluate_reels(reels: list) -> tuple:
    """Returns (multiplier, match) where match is 'three', 'pair' or None."""
    if reels[0] == reels[1] == reels[2]:
        return float(PAYTABLE[reels[0]]), "three"
    if reels[0] == reels[1] or reels[1] == reels[2]:
        return PAYTABLE[reels[1]] * PAIR_FACTOR, "pair"
    return 0.0, None


class SlotsResolver(BaseGameResolver):
    game_type = "slots"
    display_name = "Slots"

    def resolve(self, outcome: float, config: GameConfig, **kw) -> GameResult:
        reels = [reel_symbol(outcome, i) for i in range(REELS)]
        multiplier, match = evaluate_reels(reels)
        return GameResult(
            won=multiplier > 0,
            multiplier=multiplier,
            detail={"reels": reels, "match": match, "table_version": TABLE_VERSION},
        )

    def compute_rtp(self, config: GameConfig, steps: int = 200_000, **kw) -> float:
        """RTP by midpoint integration over the outcome range.

        Reels share one outcome, so the reel symbols are not independent and
        a closed form does not apply.
        """
        width = 100 / steps
        total = 0.0
        for i in range(steps):
            reels = [reel_symbol((i + 0.5) * width, r) for r in range(REELS)]
            total += evaluate_reels(reels)[0]
        return total / steps
