from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship

from filegate.database import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    third_party_id = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    user_files = relationship("UserFile", back_populates="owner")
    revoked_tokens = relationship("RevokedToken", back_populates="user")
