"""Script to mint a session token for local testing."""

import argparse
import sys

sys.path.insert(0, ".")

from digest_api.auth.security import create_session_token
from digest_api.config import get_settings


def main():
    """Create a session JWT usable as the session cookie."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email", help="Email address to put in the token")
    parser.add_argument("--days", type=int, default=None, help="Token lifetime in days")
    args = parser.parse_args()

    settings = get_settings()
    if not settings.session_secret:
        print("SESSION_SECRET is not set; session cookies are disabled.")
        sys.exit(1)

    token = create_session_token(
        settings.session_secret,
        subject=f"local:{args.email}",
        email=args.email,
        provider="local",
        ttl_days=args.days or settings.session_ttl_days,
    )

    print("\n" + "=" * 60)
    print("SESSION TOKEN CREATED")
    print("=" * 60)
    print(f"\nCookie:  {settings.session_cookie_name}={token}")
    print(f"\ncurl -b '{settings.session_cookie_name}={token}' http://localhost:4000/auth/me")
    print("=" * 60)


if __name__ == "__main__":
    main()
