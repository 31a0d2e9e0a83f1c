"""Plinko — binomial bucket selection across pegs (table plinko-v1)."""
import math

from config.game_schema import GameConfig
from sim_engine.rmg.base import BaseGameResolver, GameResult

TABLE_VERSION = "plinko-v1"

# Bucket multipliers by row count and risk level. Changing any value
# requires a new TABLE_VERSION, old bets are verified against their version.
PLINKO_MULTIPLIERS = {
    8: {
        "low":    [5.6, 2.1, 1.1, 1.0, 0.5, 1.0, 1.1, 2.1, 5.6],
        "medium": [13, 3, 1.3, 0.7, 0.4, 0.7, 1.3, 3, 13],
        "high":   [29, 4, 1.5, 0.3, 0.2, 0.3, 1.5, 4, 29],
    },
    12: {
        "low":    [10, 3, 1.6, 1.4, 1.1, 1.0, 0.5, 1.0, 1.1, 1.4, 1.6, 3, 10],
        "medium": [33, 11, 4, 2, 1.1, 0.6, 0.3, 0.6, 1.1, 2, 4, 11, 33],
        "high":   [170, 24, 8.1, 2, 0.7, 0.2, 0.2, 0.2, 0.7, 2, 8.1, 24, 170],
    },
    16: {
        "low":    [16, 9, 2, 1.4, 1.4, 1.2, 1.1, 1.0, 0.5, 1.0, 1.1, 1.2, 1.4, 1.4, 2, 9, 16],
        "medium": [110, 41, 10, 5, 3, 1.5, 1, 0.5, 0.3, 0.5, 1, 1.5, 3, 5, 10, 41, 110],
        "high":   [1000, 130, 26, 9, 4, 2, 0.2, 0.2, 0.2, 0.2, 0.2, 2, 4, 9, 26, 130, 1000],
    },
}


def bucket_for_outcome(outcome: float, rows: int) -> int:
    """Inverse binomial CDF of outcome/100 over `rows` pegs.

    Compares outcome * 2**rows against 100 * cumulative path counts so the
    boundary test is exact (scaling by a power of two is lossless).
    """
    scaled = outcome * (1 << rows)
    cumulative = 0
    for k in range(rows + 1):
        cumulative += math.comb(rows, k)
        if scaled < 100 * cumulative:
            return k
    return rows


class PlinkoResolver(BaseGameResolver):
    game_type = "plinko"
    display_name = "Plinko"

    def table(self, config: GameConfig) -> list:
        return PLINKO_MULTIPLIERS[config.rows][config.risk.value]

    def resolve(self, outcome: float, config: GameConfig, **kw) -> GameResult:
        bucket = bucket_for_outcome(outcome, config.rows)
        multiplier = float(self.table(config)[bucket])
        return GameResult(
            won=multiplier >= 1.0,
            multiplier=multiplier,
            detail={
                "bucket": bucket,
                "rows": config.rows,
                "risk": config.risk.value,
                "table_version": TABLE_VERSION,
            },
        )

    def compute_rtp(self, config: GameConfig, **kw) -> float:
        """Exact RTP from binomial probabilities."""
        n = config.rows
        mults = self.table(config)
        return sum(math.comb(n, k) / (2 ** n) * mults[k] for k in range(n + 1))
