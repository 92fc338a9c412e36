from sqlalchemy import Column, Integer, String, DateTime, func, BIGINT, ForeignKey
from sqlalchemy.orm import relationship

from filegate.database import Base


class UserFile(Base):
    __tablename__ = "user_files"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    storage_key = Column(String, unique=True, nullable=False)
    filename = Column(String, nullable=False)
    size = Column(BIGINT, nullable=False)
    content_type = Column(String, nullable=False, default="application/octet-stream")
    upload_time = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="user_files")
