"""Print an access token for the exchange API.

Usage:
    python create_token.py alice --days 30

The token is signed with ``SECRET_KEY`` and bound to ``JWT_AUDIENCE``,
so both must match the server's environment.
"""

import argparse

from klefki.app.core.security import create_access_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Mint a Klefki access token.")
    ap.add_argument("subject", help="Token subject, e.g. the user name")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days (default 365)")
    args = ap.parse_args()
    print(create_access_token({"sub": args.subject}, expires_delta=args.days * 24 * 60 * 60))


if __name__ == "__main__":
    main()
