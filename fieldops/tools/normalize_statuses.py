"""Rewrite tickets still carrying the retired 'overdue' status.

Usage:
    python -m fieldops.tools.normalize_statuses
    python -m fieldops.tools.normalize_statuses --dry-run  # report only
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from fieldops.adapters.persistence.database import async_session_factory, engine
from fieldops.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlTicketRepository,
)
from fieldops.adapters.persistence.unit_of_work import SqlUnitOfWork
from fieldops.application.use_cases.normalize_legacy_status import NormalizeLegacyStatusUseCase

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def normalize(dry_run: bool = False) -> dict[str, int]:
    async with async_session_factory() as session:
        uc = NormalizeLegacyStatusUseCase(
            uow=SqlUnitOfWork(session),
            ticket_repo=SqlTicketRepository(session),
            assignment_repo=SqlAssignmentRepository(session),
        )
        moved = await uc.execute(dry_run=dry_run)
    await engine.dispose()
    return moved


def main():
    parser = argparse.ArgumentParser(description="Normalize legacy 'overdue' ticket statuses")
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Count affected tickets without writing",
    )
    args = parser.parse_args()

    moved = asyncio.run(normalize(dry_run=args.dry_run))
    logger.info(
        "%s: %d → assigned, %d → open",
        "Would move" if args.dry_run else "Moved",
        moved["assigned"], moved["open"],
    )


if __name__ == "__main__":
    main()
