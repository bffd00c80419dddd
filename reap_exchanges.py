#!/usr/bin/env python3
"""
Delete abandoned exchanges from a Klefki SQLite database.

The server already reaps expired exchanges in the background while
``EXCHANGE_TTL_SECONDS`` is positive.  This script performs a single
pass, e.g. from cron when the background reaper is disabled.  It never
reads or prints key material.

Usage:
    python reap_exchanges.py --db ./klefki.db --max-age 3600
"""

import argparse
import os
import sqlite3
import sys

from klefki.app.services.exchange_store import ExchangeStore


def main() -> None:
    ap = argparse.ArgumentParser(description="Delete Klefki exchanges older than a given age.")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file (e.g., ./klefki.db)")
    ap.add_argument(
        "--max-age",
        type=float,
        required=True,
        help="Delete exchanges created more than this many seconds ago",
    )
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        sys.exit(1)
    if args.max_age < 0:
        print("[!] --max-age must not be negative.", file=sys.stderr)
        sys.exit(1)

    store = ExchangeStore(os.path.abspath(args.db))
    try:
        reaped = store.reap_expired(args.max_age)
    except sqlite3.Error as e:
        print(f"[!] Reaping failed: {e}", file=sys.stderr)
        sys.exit(2)
    print(f"[+] Deleted {reaped} expired exchange(s); {store.count()} remaining")


if __name__ == "__main__":
    main()
