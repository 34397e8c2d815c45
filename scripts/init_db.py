"""
CLI helper to create the users/hobbies tables and optionally seed the
default login.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hobbyboard.config import get_settings
from hobbyboard.db import SqlRecordStore, seed_default_user
from hobbyboard.errors import PersistenceError

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create hobbyboard tables")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL or the DB_* settings)",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Insert the greg/admin user if it is missing",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    url = args.database_url or get_settings().sqlalchemy_url()
    store = SqlRecordStore(url)
    try:
        store.create_schema()
        logger.info("Tables ready")
        if args.seed:
            seed_default_user(store)
    except PersistenceError as exc:
        logger.error("Database setup failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
