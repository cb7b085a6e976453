#!/usr/bin/env python3
"""
Seed PaperMate demo data.

Usage:
  python -m papermate.scripts.seed_papermate [--strict] [--create-schema]

Safe to re-run: masters are upserted and each document group is skipped
once its table holds rows.
"""

from __future__ import annotations

import argparse
import logging
import os

from papermate.config import get_settings
from papermate.database import create_db_engine, create_schema, create_session_factory
from papermate.errors import PaperMateError
from papermate.seed import run_seed

logger = logging.getLogger("papermate.seed")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed PaperMate demo masters, orders and ledger rows.")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when a document group is only partly seeded instead of skipping it.",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before seeding (local databases only).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    engine = create_db_engine(settings)
    try:
        if args.create_schema:
            create_schema(engine)
        db = create_session_factory(engine)()
        try:
            report = run_seed(
                db,
                strict=args.strict,
                warehouse=settings.default_warehouse,
            )
        except PaperMateError as exc:
            logger.error("Seed aborted: %s", exc.message)
            raise SystemExit(1)
        finally:
            db.close()
    finally:
        engine.dispose()

    print(f"Products: {len(report.products)}  Parties: {len(report.parties)}")
    for group, ids in report.created.items():
        print(f"Created {group}: {ids}")
    if report.skipped_groups:
        print(f"Skipped (already seeded): {', '.join(report.skipped_groups)}")
    if report.partial_groups:
        print(f"WARNING partial groups: {', '.join(report.partial_groups)}")
    print(f"Inventory ledger rows: {report.txn_count}")


if __name__ == "__main__":
    main()
