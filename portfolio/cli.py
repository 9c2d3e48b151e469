"""
Maintenance commands for a deployed portfolio database.

    portfolio-admin seed [--author-id ID]
    portfolio-admin purge-sessions
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from portfolio.auth import SqlSessionStore
from portfolio.config import get_settings
from portfolio.db import PostgresDbClient
from portfolio.seed import SAMPLE_AUTHOR_ID, seed_sample_projects

logger = logging.getLogger(__name__)


def _open_db(database_url: Optional[str]) -> PostgresDbClient:
    url = database_url or get_settings().database_url
    if not url:
        raise SystemExit("DATABASE_URL is not set; pass --database-url")
    return PostgresDbClient(url)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Portfolio CMS maintenance")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL; defaults to DATABASE_URL",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed", help="Create the sample case studies")
    seed.add_argument(
        "--author-id",
        default=SAMPLE_AUTHOR_ID,
        help="User id recorded as the author of the sample projects",
    )
    commands.add_parser("purge-sessions", help="Delete expired login sessions")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    db = _open_db(args.database_url)
    try:
        if args.command == "seed":
            created = seed_sample_projects(db, author_id=args.author_id or None)
            logger.info("Created %d projects", created)
        else:
            purged = SqlSessionStore(db).purge_expired()
            logger.info("Purged %d expired sessions", purged)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
