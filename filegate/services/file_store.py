from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filegate.errors import NotFound, StoreUnavailable
from filegate.models.file_model import UserFile


@dataclass(frozen=True)
class FileMetadata:
    filename: str
    size: int
    content_type: str
    upload_time: Optional[datetime] = None


class FileMetadataStore:
    """
    Durable FileRecord storage.

    get_by_id does not check ownership; the gateway does.
    list_by_owner always filters on owner_id.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, owner_id: int, storage_key: str, metadata: FileMetadata) -> UserFile:
        record = UserFile(
            owner_id=owner_id,
            storage_key=storage_key,
            filename=metadata.filename,
            size=metadata.size,
            content_type=metadata.content_type,
            upload_time=metadata.upload_time or datetime.now(timezone.utc),
        )
        self.db.add(record)
        try:
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable("Failed to save file metadata") from exc
        return record

    def list_by_owner(self, owner_id: int) -> List[UserFile]:
        try:
            return (
                self.db.query(UserFile)
                .filter(UserFile.owner_id == owner_id)
                .order_by(UserFile.upload_time, UserFile.id)
                .all()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable("Failed to retrieve files") from exc

    def get_by_id(self, file_id: int) -> UserFile:
        try:
            record = self.db.get(UserFile, file_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        if record is None:
            raise NotFound("File not found")
        return record

    def delete_by_id(self, file_id: int) -> UserFile:
        record = self.get_by_id(file_id)
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        return record
