"""
FAIRPLAY — Game Resolvers

Pure outcome -> result mappings for each game type. All of them consume the
same provably-fair outcome in [0, 100) from tools.provably_fair.

Usage:
    from sim_engine.rmg import get_resolver
    from config.game_schema import default_game_config
    resolver = get_resolver("plinko")
    result = resolver.resolve(42.5, default_game_config("plinko"))
"""

from sim_engine.rmg.dice import DiceResolver
from sim_engine.rmg.slots import SlotsResolver
from sim_engine.rmg.plinko import PlinkoResolver
from sim_engine.rmg.roulette import RouletteResolver

GAME_RESOLVERS = {
    "dice": DiceResolver,
    "slots": SlotsResolver,
    "plinko": PlinkoResolver,
    "roulette": RouletteResolver,
}

GAME_TYPES = list(GAME_RESOLVERS.keys())


def get_resolver(game_type):
    """Get the resolver for a game type."""
    key = getattr(game_type, "value", game_type)
    cls = GAME_RESOLVERS.get(str(key).lower())
    if cls is None:
        raise ValueError(f"Unknown game type: {game_type}. Available: {GAME_TYPES}")
    return cls()
