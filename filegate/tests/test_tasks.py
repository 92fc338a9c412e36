from datetime import datetime, timedelta, timezone

from filegate.celery_app.tasks import purge_expired_revocations, reconcile_orphaned_blobs
from filegate.errors import StorageFailure
from filegate.models.orphaned_blob_model import OrphanedBlob
from filegate.models.revoked_token_model import RevokedToken
from filegate.models.user_model import User
from filegate.services.orphans import OrphanLedger
from filegate.tests.conftest import stored_keys


class UndeletableStorage:
    def __init__(self, inner, stuck):
        self.inner = inner
        self.stuck = set(stuck)

    def delete(self, key):
        if key in self.stuck:
            raise StorageFailure("Failed to delete file from storage")
        self.inner.delete(key)


def test_reconcile_removes_orphaned_blobs(db_session, storage):
    ledger = OrphanLedger(db_session)
    for key in ("a.txt", "b.txt"):
        storage.put(key, b"left behind")
        ledger.record(key, "metadata creation failed after upload")
    storage.put("kept.txt", b"still referenced")

    removed = reconcile_orphaned_blobs(db=db_session, storage=storage)

    assert removed == 2
    assert db_session.query(OrphanedBlob).count() == 0
    assert stored_keys(storage) == ["kept.txt"]


def test_reconcile_keeps_entries_that_still_fail(db_session, storage):
    ledger = OrphanLedger(db_session)
    for key in ("a.txt", "b.txt"):
        storage.put(key, b"left behind")
        ledger.record(key, "blob delete failed")

    removed = reconcile_orphaned_blobs(db=db_session, storage=UndeletableStorage(storage, ["b.txt"]))

    assert removed == 1
    entry = db_session.query(OrphanedBlob).one()
    assert entry.storage_key == "b.txt"
    assert entry.attempts == 1
    assert entry.last_attempt_at is not None
    assert stored_keys(storage) == ["b.txt"]

    reconcile_orphaned_blobs(db=db_session, storage=UndeletableStorage(storage, ["b.txt"]))
    assert db_session.query(OrphanedBlob).one().attempts == 2


def test_record_same_key_twice(db_session):
    ledger = OrphanLedger(db_session)
    ledger.record("dup.txt", "first")
    ledger.record("dup.txt", "second")

    assert db_session.query(OrphanedBlob).count() == 1


def test_purge_expired_revocations(db_session):
    user = User(name="A", email="a@example.com", third_party_id="g-a")
    db_session.add(user)
    db_session.commit()
    now = datetime.now(timezone.utc)
    db_session.add_all([
        RevokedToken(jti="old", user_id=user.id, expires_at=now - timedelta(hours=1)),
        RevokedToken(jti="live", user_id=user.id, expires_at=now + timedelta(hours=1)),
    ])
    db_session.commit()

    assert purge_expired_revocations(db=db_session) == 1
    assert [t.jti for t in db_session.query(RevokedToken).all()] == ["live"]
