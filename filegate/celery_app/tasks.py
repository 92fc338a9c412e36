from filegate.celery_app.config import celery_app, settings
from filegate.database import SessionLocal
from filegate.errors import StorageFailure
from filegate.logging_config import logger
from filegate.services.object_storage import get_shared_storage
from filegate.services.orphans import OrphanLedger
from filegate.services.revocation import RevocationList


@celery_app.task
def reconcile_orphaned_blobs(limit: int = 100, db=None, storage=None):
    """Delete blobs recorded in the orphan ledger; failures stay for the next run."""
    own_session = db is None
    if own_session:
        db = SessionLocal()
    storage = storage or get_shared_storage(settings)
    ledger = OrphanLedger(db)
    removed = 0
    try:
        for entry in ledger.pending(limit):
            try:
                storage.delete(entry.storage_key)
            except StorageFailure as exc:
                ledger.mark_attempt(entry)
                logger.warning("Orphaned blob %s still not deleted (attempt %d): %s",
                               entry.storage_key, entry.attempts, exc.detail)
                continue
            ledger.resolve(entry)
            removed += 1
        if removed:
            logger.info("Reconciled %d orphaned blobs", removed)
        return removed
    finally:
        if own_session:
            db.close()


@celery_app.task
def purge_expired_revocations(db=None):
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        purged = RevocationList(db).purge_expired()
        logger.info("Purged %d expired revoked tokens", purged)
        return purged
    finally:
        if own_session:
            db.close()
