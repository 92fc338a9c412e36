from sqlalchemy import Column, Integer, String, DateTime, func

from filegate.database import Base


class OrphanedBlob(Base):
    """A stored blob that no FileRecord references and that could not be deleted."""

    __tablename__ = "orphaned_blobs"

    id = Column(Integer, primary_key=True, index=True)
    storage_key = Column(String, unique=True, nullable=False)
    reason = Column(String, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
