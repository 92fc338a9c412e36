from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from filegate.errors import StoreUnavailable
from filegate.models.revoked_token_model import RevokedToken
from filegate.services.session_tokens import SessionClaims


class RevocationList:
    """Server-side set of revoked session token ids (jti)."""

    def __init__(self, db: Session):
        self.db = db

    def is_revoked(self, jti: str) -> bool:
        try:
            return self.db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first() is not None
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc

    def revoke(self, claims: SessionClaims) -> bool:
        """Returns False when the token was already revoked."""
        if self.is_revoked(claims.jti):
            return False
        self.db.add(RevokedToken(jti=claims.jti, user_id=claims.user_id, expires_at=claims.expires_at))
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent logout of the same token
            self.db.rollback()
            return False
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        return True

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        try:
            deleted = self.db.query(RevokedToken).filter(RevokedToken.expires_at < now).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        return deleted
