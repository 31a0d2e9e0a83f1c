"""
FAIRPLAY — Provably Fair Outcome Generator

Server-seed + client-seed + nonce derivation of a bet outcome in [0, 100).

Algorithm (fixed, every verifier must reproduce it bit for bit):
    message  = client_seed + ":" + str(nonce)          # UTF-8, base-10 nonce, no padding
    digest   = HMAC-SHA256(key=server_seed (UTF-8), message)
    value    = first 4 bytes of digest, big-endian uint32  (== first 8 hex chars)
    outcome  = (value / 2**32) * 100                    # IEEE-754 double

Commitment:
    server_seed_hash = SHA-256(server_seed (UTF-8)), hex, published before play.

Usage:
    from tools.provably_fair import generate_outcome, hash_server_seed
    outcome = generate_outcome("abc123", "player1", 0)
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from config.settings import FairConfig

ENCODING = "utf-8"
DELIMITER = ":"
UINT32_RANGE = 0x100000000  # 2^32
OUTCOME_SCALE = 100


def _check_nonce(nonce) -> int:
    if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
        raise ValueError(f"nonce must be a non-negative int, got {nonce!r}")
    return nonce


def build_message(client_seed: str, nonce: int) -> bytes:
    """The exact HMAC message bytes for a round."""
    return f"{client_seed}{DELIMITER}{_check_nonce(nonce)}".encode(ENCODING)


def derive_hash(server_seed: str, client_seed: str, nonce: int) -> str:
    """Compute HMAC-SHA256(server_seed, client_seed:nonce) as hex."""
    return hmac.new(
        server_seed.encode(ENCODING),
        build_message(client_seed, nonce),
        hashlib.sha256,
    ).hexdigest()


def hash_to_outcome(hex_hash: str) -> float:
    """First 8 hex chars -> float in [0, 100)."""
    int_val = int(hex_hash[:8], 16)
    return (int_val / UINT32_RANGE) * OUTCOME_SCALE


def generate_outcome(server_seed: str, client_seed: str, nonce: int) -> float:
    """Deterministic outcome for one round. Pure; no state, no retries."""
    digest = hmac.new(
        server_seed.encode(ENCODING),
        build_message(client_seed, nonce),
        hashlib.sha256,
    ).digest()
    int_val = int.from_bytes(digest[:4], "big")
    return (int_val / UINT32_RANGE) * OUTCOME_SCALE


# ── Seed material ─────────────────────────────────────────────

def hash_server_seed(server_seed: str) -> str:
    """SHA-256 commitment of a server seed."""
    return hashlib.sha256(server_seed.encode(ENCODING)).hexdigest()


def new_server_seed(n_bytes: int = None) -> str:
    """Fresh hex server seed from the OS CSPRNG (>= 256 bits)."""
    n_bytes = n_bytes or FairConfig.SERVER_SEED_BYTES
    if n_bytes < FairConfig.MIN_SERVER_SEED_BYTES:
        raise ValueError(
            f"server seed needs at least {FairConfig.MIN_SERVER_SEED_BYTES} bytes, got {n_bytes}"
        )
    return secrets.token_bytes(n_bytes).hex()


def new_client_seed() -> str:
    return secrets.token_hex(FairConfig.CLIENT_SEED_BYTES)


# ═══════════════════════════════════════════════════════════════
# JS snippet — for client-side verification
# ═══════════════════════════════════════════════════════════════

def generate_verification_js() -> str:
    """JavaScript that reproduces the derivation in a browser.

    Shipped to players so they can check rounds without trusting us.
    """
    return '''
// ═══ PROVABLY FAIR VERIFICATION (FAIRPLAY) ═══
// outcome = uint32_be(HMAC-SHA256(serverSeed, clientSeed + ":" + nonce)[0..4]) / 2^32 * 100

async function deriveOutcome(serverSeed, clientSeed, nonce) {
    const enc = new TextEncoder();
    const key = await crypto.subtle.importKey(
        'raw', enc.encode(serverSeed), {name: 'HMAC', hash: 'SHA-256'}, false, ['sign']
    );
    const sig = new Uint8Array(await crypto.subtle.sign('HMAC', key, enc.encode(clientSeed + ':' + nonce)));
    const value = new DataView(sig.buffer).getUint32(0, false);
    return (value / 4294967296) * 100;
}

async function verifyServerSeed(serverSeed, expectedHash) {
    const enc = new TextEncoder();
    const hash = await crypto.subtle.digest('SHA-256', enc.encode(serverSeed));
    const hex = Array.from(new Uint8Array(hash)).map(b => b.toString(16).padStart(2,'0')).join('');
    return hex === expectedHash;
}

async function verifyOutcome(serverSeed, clientSeed, nonce, expectedOutcome) {
    return (await deriveOutcome(serverSeed, clientSeed, nonce)) === expectedOutcome;
}
'''
