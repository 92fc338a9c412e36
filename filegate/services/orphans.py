from datetime import datetime, timezone
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filegate.logging_config import logger
from filegate.models.orphaned_blob_model import OrphanedBlob


class OrphanLedger:
    """Blobs left without a FileRecord, kept for offline reconciliation."""

    def __init__(self, db: Session):
        self.db = db

    def record(self, storage_key: str, reason: str) -> None:
        # Called on failure paths: never raises, the log line is the fallback record.
        logger.error("Orphaned blob %s left in object storage: %s", storage_key, reason)
        try:
            existing = self.db.query(OrphanedBlob).filter(OrphanedBlob.storage_key == storage_key).first()
            if existing is None:
                self.db.add(OrphanedBlob(storage_key=storage_key, reason=reason))
                self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Could not record orphaned blob %s (%s); reconcile from logs",
                         storage_key, exc.__class__.__name__)

    def pending(self, limit: int = 100) -> List[OrphanedBlob]:
        return self.db.query(OrphanedBlob).order_by(OrphanedBlob.id).limit(limit).all()

    def resolve(self, entry: OrphanedBlob) -> None:
        self.db.delete(entry)
        self.db.commit()

    def mark_attempt(self, entry: OrphanedBlob) -> None:
        entry.attempts = (entry.attempts or 0) + 1
        entry.last_attempt_at = datetime.now(timezone.utc)
        self.db.commit()
