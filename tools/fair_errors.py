"""
FAIRPLAY — Error Taxonomy

Every error raised by the provably-fair core derives from FairnessError and
carries a stable `code` plus a message that is safe to show to a player.
They are raised in the core and recovered only at the boundary
(tools.bet_handler.BetHandler.handle, tools.fair_cli).
"""


class FairnessError(Exception):
    """Base class for all provably-fair core errors."""

    code = "fairness_error"
    user_message = "The bet could not be processed."

    def __init__(self, message: str = "", user_message: str = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code, "message": self.user_message}


class InvalidSeedError(FairnessError):
    code = "invalid_seed"
    user_message = "Client seed must be 1-64 printable characters."


class InvalidTargetError(FairnessError):
    code = "invalid_target"
    user_message = "Target is outside the allowed range for this game."


class SeedNotRevealedError(FairnessError):
    code = "seed_not_revealed"
    user_message = "This server seed is still active. Rotate your seed pair to reveal it."


class NonceConflictError(FairnessError):
    """Two bets were about to share a nonce. Fatal, never retried."""
    code = "nonce_conflict"
    user_message = "The bet was aborted to protect round integrity. Please try again."


class PairNotActiveError(FairnessError):
    code = "pair_not_active"
    user_message = "This seed pair has been rotated and no longer accepts bets."


class PairNotFoundError(FairnessError):
    code = "pair_not_found"
    user_message = "Seed pair not found."


class NonceStorageError(FairnessError):
    code = "nonce_storage"
    user_message = "The bet could not be recorded right now. Please try again."
