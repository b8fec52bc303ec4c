"""
Daily cleanup of finished fests and events.
Fests whose closing date was yesterday are deleted together with their events,
registrations and files; standalone events whose end date was yesterday are
deleted with their registrations and files.
Run once a day shortly after midnight via cron, e.g. `1 0 * * * python cleanup.py`,
or trigger it through POST /api/cleanup.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from database import SessionLocal, settings
from models import Event, Fest
from services.event_service import delete_event_rows, event_files
from storage import FEST_IMAGES_BUCKET, ObjectStorage, get_storage, purge_files

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    fests_deleted: int = 0
    events_deleted: int = 0
    files_attempted: int = 0


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.CLEANUP_TIMEZONE)).date()


def run_cleanup(db: Session, storage: ObjectStorage, today: Optional[date] = None) -> CleanupResult:
    """Delete everything that finished the day before ``today``.

    Rows are deleted if they still exist, so running concurrently with a
    user-initiated delete of the same record is harmless.
    """
    yesterday = ((today or local_today()) - timedelta(days=1)).isoformat()
    result = CleanupResult()

    expired_fests = db.query(Fest).filter(Fest.closing_date == yesterday).all()
    fest_ids = [fest.fest_id for fest in expired_fests]
    files = [(fest.fest_image_url, FEST_IMAGES_BUCKET) for fest in expired_fests]

    fest_events = db.query(Event).filter(Event.fest.in_(fest_ids)).all() if fest_ids else []
    standalone_events = (
        db.query(Event)
        .filter(Event.end_date == yesterday, Event.fest.is_(None))
        .all()
    )
    events = fest_events + standalone_events
    for event in events:
        files.extend(event_files(event))

    result.events_deleted = delete_event_rows(db, [event.event_id for event in events])
    if fest_ids:
        result.fests_deleted = (
            db.query(Fest).filter(Fest.fest_id.in_(fest_ids)).delete(synchronize_session=False)
        )
    db.commit()

    result.files_attempted = purge_files(storage, files)
    logger.info(
        f"Cleanup for {yesterday}: {result.fests_deleted} fest(s), "
        f"{result.events_deleted} event(s), {result.files_attempted} file(s)"
    )
    return result


def main():
    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        run_cleanup(db, get_storage())
    except Exception:
        db.rollback()
        logger.exception("Major error during cleanup")
        raise
    finally:
        db.close()
    logger.info("Daily cleanup finished.")


if __name__ == "__main__":
    main()
