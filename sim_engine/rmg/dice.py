"""Dice — roll under a player-chosen target."""
from config.game_schema import GameConfig
from sim_engine.rmg.base import BaseGameResolver, GameResult
from tools.fair_errors import InvalidTargetError
from tools.multiplier import multiplier_for_target, resolve


class DiceResolver(BaseGameResolver):
    game_type = "dice"
    display_name = "Dice"

    def validate(self, config: GameConfig, target: float = None, **kw) -> None:
        if target is None:
            raise InvalidTargetError("dice bets require a target")
        # (0, 100) is checked by the multiplier engine; the table may be narrower
        multiplier_for_target(target, config.house_edge_fraction)
        if not (config.min_target <= target <= config.max_target):
            raise InvalidTargetError(
                f"target {target} outside [{config.min_target}, {config.max_target}]"
            )

    def resolve(self, outcome: float, config: GameConfig, target: float = None,
                **kw) -> GameResult:
        self.validate(config, target=target)
        multiplier = multiplier_for_target(target, config.house_edge_fraction)
        won = resolve(outcome, target).won
        return GameResult(
            won=won,
            multiplier=multiplier if won else 0.0,
            detail={"target": target, "roll": outcome, "payout_multiplier": multiplier},
        )

    def compute_rtp(self, config: GameConfig, **kw) -> float:
        return 1.0 - config.house_edge_fraction
