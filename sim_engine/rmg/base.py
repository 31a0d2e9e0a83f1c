"""
FAIRPLAY — Base Game Resolver

Abstract base for per-game outcome resolvers. A resolver is a pure function
of (outcome, GameConfig) plus the game's static, versioned tables.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from config.game_schema import GameConfig


@dataclass(frozen=True)
class GameResult:
    """Resolved result of one round."""
    won: bool
    multiplier: float          # 0 on a loss
    detail: dict = field(default_factory=dict)


@dataclass
class SimResult:
    """Monte Carlo check of a resolver's return-to-player."""
    game_type: str
    rounds: int
    rtp_theoretical: float
    rtp_measured: float
    hit_rate: float  # share of rounds with won=True
    max_multiplier_hit: float
    confidence_95: tuple = (0.0, 0.0)
    distribution: dict = field(default_factory=dict)

    @property
    def house_edge_measured(self) -> float:
        return 1 - self.rtp_measured

    def to_dict(self) -> dict:
        return {
            "game_type": self.game_type,
            "rounds": self.rounds,
            "rtp_theoretical": round(self.rtp_theoretical, 6),
            "rtp_measured": round(self.rtp_measured, 6),
            "house_edge_measured": round(self.house_edge_measured, 6),
            "hit_rate": round(self.hit_rate, 4),
            "max_multiplier_hit": round(self.max_multiplier_hit, 2),
            "confidence_95": [round(x, 6) for x in self.confidence_95],
            "distribution": self.distribution,
        }


class BaseGameResolver(ABC):
    """Abstract base for all game resolvers."""

    game_type: str = "base"
    display_name: str = "Base Game"

    @abstractmethod
    def resolve(self, outcome: float, config: GameConfig, **params) -> GameResult:
        """Map an outcome in [0, 100) to a result."""
        ...

    @abstractmethod
    def compute_rtp(self, config: GameConfig, **params) -> float:
        """Theoretical return-to-player as a fraction."""
        ...

    def validate(self, config: GameConfig, **params) -> None:
        """Reject bad bet parameters before a nonce is spent."""

    def simulate(self, config: GameConfig, rounds: int = 100_000, seed: int = 42,
                 **params) -> SimResult:
        """Run a Monte Carlo simulation with uniform outcomes."""
        rng = random.Random(seed)

        total_returned = 0.0
        total_sq = 0.0
        wins = 0
        max_mult = 0.0
        buckets = {}

        for _ in range(rounds):
            result = self.resolve(rng.random() * 100, config, **params)
            mult = result.multiplier
            total_returned += mult
            total_sq += mult * mult
            if result.won:
                wins += 1
            max_mult = max(max_mult, mult)

            if mult == 0:
                bucket = "0x"
            elif mult < 1:
                bucket = "0-1x"
            elif mult < 2:
                bucket = "1-2x"
            elif mult < 10:
                bucket = "2-10x"
            else:
                bucket = "10x+"
            buckets[bucket] = buckets.get(bucket, 0) + 1

        rtp = total_returned / rounds if rounds else 0.0
        variance = max(0.0, total_sq / rounds - rtp * rtp) if rounds else 0.0
        std_err = math.sqrt(variance / rounds) if rounds else 0.0

        return SimResult(
            game_type=self.game_type,
            rounds=rounds,
            rtp_theoretical=self.compute_rtp(config, **params),
            rtp_measured=rtp,
            hit_rate=wins / rounds if rounds else 0.0,
            max_multiplier_hit=max_mult,
            confidence_95=(rtp - 1.96 * std_err, rtp + 1.96 * std_err),
            distribution={k: round(v / rounds, 4) for k, v in sorted(buckets.items())},
        )

    def get_metadata(self, config: GameConfig = None) -> dict:
        meta = {"game_type": self.game_type, "display_name": self.display_name}
        if config is not None:
            meta["table_version"] = config.table_version
            meta["house_edge"] = config.house_edge_fraction
        return meta
