#!/usr/bin/env python3
"""
Issue a password reset link for a user from the command line.

Goes through the same reset token store as ``POST /api/users/forgotpassword``,
so the link replaces any earlier one for that user and expires after the
configured window. Useful when email delivery is disabled.

Usage:
    python -m goal_tracker.reset_password --list
    python -m goal_tracker.reset_password user@example.com
    python -m goal_tracker.reset_password user@example.com --base-url https://goals.example.com
"""

import sys
import argparse
from typing import List, Optional
from sqlmodel import Session, select
from goal_tracker.config import Settings, logger
from goal_tracker.models import User, create_database_engine
from goal_tracker.reset_tokens import issue_reset_token

DEFAULT_BASE_URL = "http://localhost:5000"


def reset_link(base_url: str, raw_token: str) -> str:
    return f"{base_url.rstrip('/')}/api/users/resetpassword/{raw_token}"


def issue_reset_link(email: str, base_url: str = DEFAULT_BASE_URL,
                     settings: Optional[Settings] = None) -> Optional[str]:
    """Return a fresh reset link for ``email``, or None when no such user exists."""
    settings = settings or Settings.from_env()
    engine = create_database_engine(settings.DATABASE_URL)
    try:
        with Session(engine) as session:
            user = session.exec(select(User).where(User.email == email)).first()
            if not user:
                logger.warning(f"No user with email {email}")
                return None
            return reset_link(base_url, issue_reset_token(session, user.id))
    finally:
        engine.dispose()


def list_users(settings: Optional[Settings] = None) -> List[User]:
    settings = settings or Settings.from_env()
    engine = create_database_engine(settings.DATABASE_URL)
    try:
        with Session(engine) as session:
            return list(session.exec(select(User).order_by(User.created_at)).all())
    finally:
        engine.dispose()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Issue Goal Tracker password reset links")
    parser.add_argument("email", nargs="?", help="Email of the account to reset")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL,
                        help=f"Public URL of the API (default: {DEFAULT_BASE_URL})")
    parser.add_argument("--list", action="store_true", help="List registered users")
    args = parser.parse_args(argv)

    if args.list:
        for user in list_users():
            print(f"{user.id}\t{user.email}\t{user.name}")
        return 0

    if not args.email:
        parser.error("an email address is required unless --list is given")

    link = issue_reset_link(args.email, args.base_url)
    if link is None:
        print(f"User with email '{args.email}' not found.", file=sys.stderr)
        return 1
    print(link)
    return 0


if __name__ == "__main__":
    sys.exit(main())
