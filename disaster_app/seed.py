"""
Create (or promote) an admin account.

Admins can't register through the web form, so the first one is made here:

    python -m disaster_app.seed admin@example.org "Relief Coordinator" --password s3cret

An existing account with that email is promoted to Admin and keeps its
password unless --password is given.
"""
import argparse
import getpass
import logging
import sys
from typing import Optional

from pydantic import validate_email
from sqlmodel import Session, select

from .db import create_db_and_tables, engine
from .logging_config import setup_logging
from .models import ROLE_ADMIN, User
from .routers.auth import hash_password

logger = logging.getLogger(__name__)


def _find_user(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def create_admin(session: Session, email: str, full_name: str, password: Optional[str]) -> User:
    # Same normalisation as the web forms, so the admin can log in with it
    _, email = validate_email(email)
    user = _find_user(session, email)

    if user is None:
        if not password:
            raise ValueError("A password is required to create a new admin")
        user = User(
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            role=ROLE_ADMIN,
        )
        logger.info("Creating admin %s", email)
    else:
        user.role = ROLE_ADMIN
        if password:
            user.password_hash = hash_password(password)
        logger.info("Promoting %s to admin", email)

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin account.")
    parser.add_argument("email")
    parser.add_argument("full_name")
    parser.add_argument("--password", help="prompted for when omitted")
    args = parser.parse_args(argv)

    setup_logging()
    create_db_and_tables()

    with Session(engine) as session:
        password = args.password
        try:
            _, email = validate_email(args.email)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        # Existing accounts keep their password, so only a new one needs a prompt
        if not password and _find_user(session, email) is None:
            password = getpass.getpass("Password: ")

        try:
            user = create_admin(session, args.email, args.full_name, password)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1

    print(f"{user.email} is now an admin (id {user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
