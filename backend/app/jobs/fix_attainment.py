# app/jobs/fix_attainment.py
#
# Repairs attainment_percentage for every unit that has rows without one.
#   python -m app.jobs.fix_attainment

import sys

import structlog

from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services import backfill_service
from app.services.metric_store import MetricStore

logger = structlog.get_logger(__name__)


def run() -> int:
    db = SessionLocal()
    try:
        store = MetricStore(db)
        units = store.list_units_missing_attainment()
        logger.info("fix_attainment_started", units=len(units))

        failed = 0
        for unit_id in units:
            result = backfill_service.repair_missing_attainment(db, unit_id, store=store)
            failed += result.failed
        logger.info("fix_attainment_finished", units=len(units), failed=failed)
        return 1 if failed else 0
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    sys.exit(run())
