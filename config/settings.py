"""
FAIRPLAY - Configuration & Logging

All tunables come from the environment (optionally a .env file).
House edge, seed sizes and the payout decimal policy live here so the
outcome math and the bet handler read one source of truth.
"""

import logging
import os
from dotenv import load_dotenv

load_dotenv()


# ============================================================
# Provably-fair core
# ============================================================

class FairConfig:

    # --- Math ---
    HOUSE_EDGE = float(os.getenv("FAIR_HOUSE_EDGE", "0.01"))          # 1% = 0.01
    PAYOUT_DECIMALS = int(os.getenv("FAIR_PAYOUT_DECIMALS", "8"))     # truncate, never round up

    # --- Seeds ---
    # 32 bytes = 256 bits of entropy; anything lower is refused at startup of a pair
    SERVER_SEED_BYTES = int(os.getenv("FAIR_SERVER_SEED_BYTES", "32"))
    MIN_SERVER_SEED_BYTES = 32
    CLIENT_SEED_MAX_LENGTH = int(os.getenv("FAIR_CLIENT_SEED_MAX_LENGTH", "64"))
    CLIENT_SEED_BYTES = 16

    # --- Nonce issuance ---
    NONCE_RETRY_LIMIT = int(os.getenv("FAIR_NONCE_RETRY_LIMIT", "3"))  # transient storage errors only
    NONCE_RETRY_BACKOFF = float(os.getenv("FAIR_NONCE_RETRY_BACKOFF", "0.01"))
    PAIR_SWAP_RETRIES = int(os.getenv("FAIR_PAIR_SWAP_RETRIES", "2"))  # bet raced a rotation

    # --- Logging ---
    LOG_LEVEL = os.getenv("FAIR_LOG_LEVEL", "INFO").upper()

    @classmethod
    def payout_quantum(cls) -> str:
        """Decimal exponent string for the payout policy, e.g. '0.00000001'."""
        if cls.PAYOUT_DECIMALS <= 0:
            return "1"
        return "0." + "0" * (cls.PAYOUT_DECIMALS - 1) + "1"


# ============================================================
# Logging
# ============================================================

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = None) -> logging.Logger:
    """Attach one stdout handler to the `fairplay` logger tree (idempotent)."""
    logger = logging.getLogger("fairplay")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
    logger.setLevel(level or FairConfig.LOG_LEVEL)
    return logger
