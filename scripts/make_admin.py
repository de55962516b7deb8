#!/usr/bin/env python3

"""
Grant platform administrator rights to a user.
Administrators approve and reject pods.

Usage: python scripts/make_admin.py <username> [--revoke]
"""

import os
import sys
import argparse
import logging

# Add parent directory to path to import podhub modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session

from podhub.db import base  # noqa: F401
from podhub.db.session import SessionLocal
from podhub.modules.user_management.services.user import get_user_by_username

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def set_admin(db: Session, username: str, is_admin: bool = True) -> bool:
    """Returns False when the user does not exist"""
    user = get_user_by_username(db, username)
    if not user:
        logger.error(f"User {username} not found")
        return False

    if bool(user.is_admin) == is_admin:
        logger.info(f"User {username} already {'is' if is_admin else 'is not'} an admin")
        return True

    user.is_admin = is_admin
    db.add(user)
    db.commit()
    logger.info(f"{'Granted' if is_admin else 'Revoked'} admin rights for {username}")
    return True

def main():
    parser = argparse.ArgumentParser(description="Grant or revoke administrator rights")
    parser.add_argument("username", help="Username of the account")
    parser.add_argument("--revoke", action="store_true", help="Revoke instead of grant")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        if not set_admin(db, args.username, not args.revoke):
            sys.exit(1)
    finally:
        db.close()

if __name__ == "__main__":
    main()
