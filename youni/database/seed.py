"""
youni/database/seed.py

One-off data steps run after the O*NET import, never from a request path.

- ``backfill_riasec_codes`` classifies every occupation that has no cached
  ``riasec_code`` yet.  Re-running it is a no-op unless ``force=True``.
- ``reindex_occupations`` rebuilds the Qdrant search index from the
  ``occupations`` table.

Usage
-----
python -m youni.database.seed                 # fill missing RIASEC codes
python -m youni.database.seed --force         # recompute every code
python -m youni.database.seed --reindex       # also rebuild the search index
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from youni.agents.riasec_classifier import classify_occupation
from youni.database.connection import Base, SessionLocal, engine
from youni.database.models import Occupation

logger = logging.getLogger(__name__)


@dataclass
class BackfillReport:
    total: int = 0
    updated: int = 0
    skipped: int = 0


def backfill_riasec_codes(db: Session, force: bool = False) -> BackfillReport:
    """
    Compute and cache ``riasec_code`` for occupations that lack one.

    A failure on one occupation is logged and counted as skipped; the rest
    of the batch still commits.
    """
    query = db.query(Occupation)
    if not force:
        query = query.filter(Occupation.riasec_code.is_(None))
    occupations = query.order_by(Occupation.code).all()

    report = BackfillReport(total=len(occupations))
    if not occupations:
        logger.info("RIASEC backfill: nothing to do.")
        return report

    for occ in occupations:
        try:
            code = classify_occupation(occ.interests, occ.title, occ.description)
        except (TypeError, ValueError) as exc:
            logger.error("RIASEC backfill failed for occupation %s: %s", occ.code, exc)
            report.skipped += 1
            continue
        occ.riasec_code = code
        report.updated += 1
        logger.debug("RIASEC code for %s: %s", occ.code, code)

    db.commit()
    logger.info(
        "RIASEC backfill: %d updated, %d skipped of %d.",
        report.updated, report.skipped, report.total,
    )
    return report


def reindex_occupations(db: Session) -> int:
    """Rebuild the semantic search index from every stored occupation."""
    from youni.rag import get_vector_store

    store = get_vector_store(recreate=True)
    return store.index_occupations(db.query(Occupation).all())


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="AI Youni data seed steps")
    parser.add_argument("--force", action="store_true", help="recompute every RIASEC code")
    parser.add_argument("--reindex", action="store_true", help="rebuild the occupation search index")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        backfill_riasec_codes(db, force=args.force)
        if args.reindex:
            count = reindex_occupations(db)
            logger.info("Indexed %d occupations.", count)
    finally:
        db.close()


if __name__ == "__main__":
    main()
