"""
Create a trainer account that can sign in through POST /api/auth/login.

Usage:
    python create_trainer.py coach@example.com
    TRAINER_PASSWORD=secret python create_trainer.py coach@example.com
"""

import argparse
import getpass
import os
import sys

from app.database import create_tables, is_sqlite
from app.errors import LedgerError
from app.models import Student, HistoryEntry, MeasurementEntry, Trainer  # noqa: F401
from app.logging_config import setup_logging
from app.services.auth import AuthService


def main():
    parser = argparse.ArgumentParser(description="Register a trainer account")
    parser.add_argument("email", help="Login email")
    args = parser.parse_args()

    setup_logging()
    if is_sqlite():
        create_tables()

    password = os.getenv("TRAINER_PASSWORD") or getpass.getpass("Password: ")
    try:
        trainer_id = AuthService().register_trainer(args.email, password)
    except LedgerError as exc:
        print(f"Error: {exc.message}")
        sys.exit(1)

    print(f"✅ Trainer created: {args.email} ({trainer_id})")


if __name__ == "__main__":
    main()
