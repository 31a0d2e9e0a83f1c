"""
FAIRPLAY — Multiplier Engine

House-edge math for roll-under games and the payout decimal policy.

    multiplier = (100 - house_edge * 100) / target      target in (0, 100)
    won        = outcome < target
    payout     = bet_amount * multiplier, truncated to PAYOUT_DECIMALS
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN

from config.settings import FairConfig
from tools.fair_errors import InvalidTargetError


@dataclass(frozen=True)
class RollResult:
    won: bool


def _check_target(target) -> float:
    try:
        target = float(target)
    except (TypeError, ValueError):
        raise InvalidTargetError(f"target must be a number, got {target!r}")
    if math.isnan(target) or target <= 0 or target >= 100:
        raise InvalidTargetError(f"target must be in (0, 100), got {target}")
    return target


def multiplier_for_target(target: float, house_edge: float = None) -> float:
    """Payout multiplier for a roll-under target. Smaller target pays more."""
    target = _check_target(target)
    if house_edge is None:
        house_edge = FairConfig.HOUSE_EDGE
    return (100 - house_edge * 100) / target


def win_chance(target: float) -> float:
    """Win probability in percent for a roll-under target."""
    return _check_target(target)


def resolve(outcome: float, target: float) -> RollResult:
    return RollResult(won=outcome < target)


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # shortest repr, so 1.98 stays 1.98 and not its binary expansion
        return Decimal(repr(value))
    return Decimal(str(value))


def payout(bet_amount, multiplier, decimals: int = None) -> Decimal:
    """bet_amount * multiplier truncated toward zero (never rounds up)."""
    amount = _to_decimal(bet_amount)
    mult = _to_decimal(multiplier)
    if amount < 0 or mult < 0:
        raise ValueError("bet amount and multiplier must be non-negative")
    if decimals is None:
        quantum = Decimal(FairConfig.payout_quantum())
    else:
        quantum = Decimal(1).scaleb(-decimals)
    return (amount * mult).quantize(quantum, rounding=ROUND_DOWN)
