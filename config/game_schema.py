"""
FAIRPLAY — Game Configuration Schema

Pydantic models describing per-game parameters (house edge, target bounds,
static table versions) and the inbound bet request consumed by the bet
handler.

Usage:
    from config.game_schema import GameType, default_game_config, BetRequest
    cfg = default_game_config(GameType.DICE)
    req = BetRequest(owner_id="u1", game_type="dice", bet_amount="0.001", target=50)
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config.settings import FairConfig


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class GameType(str, Enum):
    DICE     = "dice"
    SLOTS    = "slots"
    PLINKO   = "plinko"
    ROULETTE = "roulette"


class PlinkoRisk(str, Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"


PLINKO_ROWS = (8, 12, 16)

# 1 - RTP of the slots-v1 reel table (0.8741625). The table fixes the edge,
# house_edge_fraction is informational for slots.
SLOTS_V1_HOUSE_EDGE = 0.1258375

# GameConfig fields copied into every bet record so audits rebuild the same config
AUDIT_FIELDS = ("house_edge_fraction", "min_target", "max_target", "table_version", "rows", "risk")


# ═══════════════════════════════════════════════════════════════
# Models
# ═══════════════════════════════════════════════════════════════

class GameConfig(BaseModel):
    """Static parameters for one game type."""
    game_type: GameType
    house_edge_fraction: float = Field(FairConfig.HOUSE_EDGE, ge=0.0, lt=0.5)
    min_target: float = 1.0
    max_target: float = 99.0
    table_version: str = "v1"

    # Plinko
    rows: int = 12
    risk: PlinkoRisk = PlinkoRisk.LOW

    @field_validator("rows")
    @classmethod
    def check_rows(cls, v):
        if v not in PLINKO_ROWS:
            raise ValueError(f"rows must be one of {PLINKO_ROWS}")
        return v

    @model_validator(mode="after")
    def check_bounds(self):
        if not (0.0 < self.min_target <= self.max_target < 100.0):
            raise ValueError("target bounds must satisfy 0 < min_target <= max_target < 100")
        return self

    def audit_fields(self) -> dict:
        """JSON-safe snapshot of the fields that decide a result."""
        return self.model_dump(mode="json", include=set(AUDIT_FIELDS))


class BetRequest(BaseModel):
    """Inbound bet from the placement handler."""
    owner_id: str = Field(min_length=1)
    game_type: GameType
    bet_amount: Decimal = Field(gt=0)
    target: Optional[float] = None          # dice roll-under threshold
    risk: Optional[PlinkoRisk] = None       # plinko override
    rows: Optional[int] = None              # plinko override
    selection: Optional[str] = None         # roulette bet, e.g. "red", "straight:17"

    @model_validator(mode="after")
    def check_game_params(self):
        if self.game_type == GameType.DICE and self.target is None:
            raise ValueError("dice bets require a target")
        if self.game_type == GameType.ROULETTE and not self.selection:
            raise ValueError("roulette bets require a selection")
        return self


def default_game_config(game_type, **overrides) -> GameConfig:
    """Default config for a game type, with optional field overrides."""
    game_type = GameType(game_type)
    base = {
        GameType.DICE:     {"min_target": 1.0, "max_target": 99.0, "table_version": "dice-v1"},
        GameType.SLOTS:    {"table_version": "slots-v1", "house_edge_fraction": SLOTS_V1_HOUSE_EDGE},
        GameType.PLINKO:   {"table_version": "plinko-v1", "rows": 12, "risk": PlinkoRisk.LOW},
        GameType.ROULETTE: {"table_version": "roulette-eu-v1", "house_edge_fraction": 1 / 37},
    }[game_type]
    base.update({k: v for k, v in overrides.items() if v is not None})
    return GameConfig(game_type=game_type, **base)


def config_from_detail(game_type, detail: dict) -> GameConfig:
    """Rebuild the config a bet was resolved under from its recorded detail.

    Records without the snapshot fall back to the game's defaults.
    """
    detail = detail or {}
    return default_game_config(game_type, **{k: detail.get(k) for k in AUDIT_FIELDS})
