#!/usr/bin/env python3
"""Print the payable airdrop CSV (Address,Amount) for the current leaderboard.

Uses the live treasury balance unless --balance is given. Intended for an
operator shell or a scheduler, e.g.:

  python scripts/export_airdrop.py --balance 2500 > airdrop.csv
"""

import argparse
import sys
from decimal import Decimal, InvalidOperation

from app import app
from leaderboard import compute_leaderboard
from rewards import build_csv, compute_shares, payable_shares
from treasury import TreasuryError, get_treasury_balance


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--balance", help="treasury balance to distribute (default: live balance)")
    args = parser.parse_args(argv)

    if args.balance is not None:
        try:
            balance = Decimal(args.balance)
        except InvalidOperation:
            parser.error(f"invalid balance: {args.balance}")
    else:
        try:
            balance = get_treasury_balance()
        except TreasuryError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

    with app.app_context():
        distribution = compute_shares(compute_leaderboard(), balance)

    rows = payable_shares(distribution)
    print(build_csv(rows))
    print(
        f"{len(rows)} payable of {len(distribution.editors)} editors, "
        f"total points {distribution.total_points}",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
