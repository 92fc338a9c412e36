from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from filegate.errors import IdentityConflict, NotFound, StoreUnavailable
from filegate.logging_config import logger
from filegate.models.user_model import User


class UserDirectory:
    """
    Maps identity-provider subjects onto local users.

    The unique constraint on users.third_party_id arbitrates concurrent first
    logins: whoever loses the insert race reads back the winner's row.
    """

    def __init__(self, db: Session):
        self.db = db

    def _by_subject(self, subject: str):
        return self.db.query(User).filter(User.third_party_id == subject).first()

    def find_or_create(self, subject: str, name: str, email: str) -> User:
        email = email.strip().lower()
        try:
            user = self._by_subject(subject)
            if user is not None:
                return user

            new_user = User(name=name, email=email, third_party_id=subject)
            self.db.add(new_user)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                user = self._by_subject(subject)
                if user is not None:
                    return user
                logger.warning("Login for subject %s rejected: email already bound to another identity", subject)
                raise IdentityConflict()

            self.db.refresh(new_user)
            logger.info("Created user id=%s for subject %s", new_user.id, subject)
            return new_user
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("User directory unavailable: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    def get_by_id(self, user_id: int) -> User:
        try:
            user = self.db.get(User, user_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        if user is None:
            raise NotFound("User not found")
        return user

    def touch_login(self, user: User, name: str) -> User:
        user.last_login = datetime.now(timezone.utc)
        if name and name != user.name:
            user.name = name
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreUnavailable() from exc
        return user
