#!/usr/bin/env python3
"""
FAIRPLAY — Provably Fair CLI

Usage:
    python -m tools.fair_cli hash --server-seed abc123
    python -m tools.fair_cli roll --server-seed abc123 --client-seed player1 --nonce 0 --target 50
    python -m tools.fair_cli verify --server-seed abc123 --client-seed player1 --nonce 0 \
        --expected 29.483925201930106 [--hash <published sha256>]
    python -m tools.fair_cli demo --bets 5
    python -m tools.fair_cli js
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import FairConfig, configure_logging
from tools.bet_handler import BetHandler
from tools.fair_errors import FairnessError
from tools.multiplier import multiplier_for_target, payout, resolve
from tools.provably_fair import (
    derive_hash, generate_outcome, generate_verification_js, hash_server_seed,
)
from tools.seed_manager import SeedPairManager
from tools.verification import VerificationService, verify_server_seed

console = Console()


def cmd_hash(args) -> int:
    console.print(hash_server_seed(args.server_seed))
    return 0


def cmd_roll(args) -> int:
    outcome = generate_outcome(args.server_seed, args.client_seed, args.nonce)
    table = Table(title="Round")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("HMAC-SHA256", derive_hash(args.server_seed, args.client_seed, args.nonce))
    table.add_row("Outcome", repr(outcome))
    if args.target is not None:
        mult = multiplier_for_target(args.target, args.house_edge)
        won = resolve(outcome, args.target).won
        table.add_row("Target", f"roll under {args.target}")
        table.add_row("Multiplier", f"{mult:.4f}x")
        table.add_row("Result", "[green]WIN[/green]" if won else "[red]LOSS[/red]")
        if args.amount:
            table.add_row("Payout", format(payout(args.amount, mult if won else 0.0), "f"))
    console.print(table)
    return 0


def cmd_verify(args) -> int:
    ok = True
    if args.hash:
        seed_ok = verify_server_seed(args.server_seed, args.hash)
        ok = ok and seed_ok
        console.print(f"Server seed hash: {'✅ PASS' if seed_ok else '❌ FAIL'}")
    result = VerificationService().verify(
        args.server_seed, args.client_seed, args.nonce, args.expected
    )
    ok = ok and result.matches
    console.print(f"Recomputed outcome: {result.recomputed_outcome!r}")
    console.print(f"Outcome: {'✅ PASS' if result.matches else '❌ FAIL'}")
    return 0 if ok else 1


def cmd_demo(args) -> int:
    manager = SeedPairManager()
    handler = BetHandler(manager)
    pair = manager.create_pair("demo", client_seed=args.client_seed)
    console.print(Panel(
        f"Server seed hash: {pair.server_seed_hash}\nClient seed: {pair.client_seed}",
        title="Committed seed pair",
    ))

    bets = [handler.place_bet({"owner_id": "demo", "game_type": "dice",
                               "bet_amount": args.amount, "target": args.target})
            for _ in range(args.bets)]

    table = Table(title=f"Dice — roll under {args.target}")
    for col in ("Nonce", "Outcome", "Won", "Multiplier", "Payout"):
        table.add_column(col)
    for b in bets:
        table.add_row(str(b.nonce), f"{b.raw_outcome:.6f}", "✅" if b.won else "—",
                      f"{b.multiplier:.4f}", format(b.payout, "f"))
    console.print(table)

    retired, current = manager.rotate(pair)
    console.print(f"\nRotated. Revealed server seed: [bold]{retired.server_seed}[/bold]")
    console.print(f"New commitment: {current.server_seed_hash}")

    report = VerificationService(manager.store).audit_log(
        retired, handler.bet_store.for_pair(retired.pair_id)
    )
    console.print(f"Audit: {'✅ all bets verified' if report['all_ok'] else '❌ mismatch'}")
    return 0 if report["all_ok"] else 1


def cmd_js(args) -> int:
    print(generate_verification_js())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provably fair outcome tools")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("hash", help="SHA-256 commitment of a server seed")
    p.add_argument("--server-seed", required=True)
    p.set_defaults(func=cmd_hash)

    for name, func in (("roll", cmd_roll), ("verify", cmd_verify)):
        p = sub.add_parser(name)
        p.add_argument("--server-seed", required=True)
        p.add_argument("--client-seed", required=True)
        p.add_argument("--nonce", type=int, required=True)
        p.set_defaults(func=func)
        if name == "roll":
            p.add_argument("--target", type=float, default=None)
            p.add_argument("--house-edge", type=float, default=FairConfig.HOUSE_EDGE)
            p.add_argument("--amount", type=str, default=None)
        else:
            p.add_argument("--expected", type=float, required=True)
            p.add_argument("--hash", type=str, default=None, help="Published server seed hash")

    p = sub.add_parser("demo", help="Commit, bet, rotate and audit in memory")
    p.add_argument("--bets", type=int, default=5)
    p.add_argument("--target", type=float, default=50.0)
    p.add_argument("--amount", type=str, default="0.001")
    p.add_argument("--client-seed", type=str, default=None)
    p.set_defaults(func=cmd_demo)

    p = sub.add_parser("js", help="Print the browser verification snippet")
    p.set_defaults(func=cmd_js)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.func(args)
    except (FairnessError, ValueError) as e:
        message = e.user_message if isinstance(e, FairnessError) else str(e)
        console.print(f"[red]❌ {message}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
