"""
Authorization gateway.

Every file operation passes through here. A gateway is built per request from
that request's database session, so authorization is re-derived from the
presented credential each time and nothing about a session is cached in the
process.
"""
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from filegate.config import Settings
from filegate.errors import (
    BadRequest,
    FilegateError,
    Forbidden,
    NotFound,
    PayloadTooLarge,
    RevokedToken,
    StorageFailure,
    Unauthorized,
    UnknownUser,
)
from filegate.logging_config import logger
from filegate.models.file_model import UserFile
from filegate.models.user_model import User
from filegate.services.file_store import FileMetadata, FileMetadataStore
from filegate.services.identity import IdentityVerifier
from filegate.services.object_storage import ObjectStorage
from filegate.services.orphans import OrphanLedger
from filegate.services.retry import retry_call
from filegate.services.revocation import RevocationList
from filegate.services.session_tokens import SessionClaims, SessionTokenService
from filegate.services.user_directory import UserDirectory

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_at: datetime
    user: User


@dataclass(frozen=True)
class Download:
    record: UserFile
    data: bytes


def new_storage_key(filename: str) -> str:
    extension = os.path.splitext(filename)[1].lower()
    return f"{uuid4().hex}{extension}"


class AuthorizationGateway:
    """
    Built per request. The identity verifier is handed to login() only, and
    storage is set only for the file routes.
    """

    def __init__(self, db: Session, tokens: SessionTokenService, settings: Settings,
                 storage: Optional[ObjectStorage] = None):
        self.tokens = tokens
        self.storage = storage
        self.settings = settings
        self.users = UserDirectory(db)
        self.files = FileMetadataStore(db)
        self.revocations = RevocationList(db)
        self.orphans = OrphanLedger(db)

    def _retry(self, fn, *args, **kwargs):
        return retry_call(fn, *args, attempts=self.settings.retry_attempts,
                          delay=self.settings.retry_delay_seconds, **kwargs)

    # Identity -> session

    def login(self, assertion: str, verifier: IdentityVerifier) -> LoginResult:
        identity = self._retry(verifier.verify, assertion)
        user = self._retry(self.users.find_or_create, identity.subject, identity.name, identity.email)
        self._retry(self.users.touch_login, user, identity.name)
        issued = self.tokens.issue(user.id)
        logger.info("User id=%s logged in", user.id)
        return LoginResult(token=issued.token, expires_at=issued.expires_at, user=user)

    def _claims(self, token: Optional[str]) -> SessionClaims:
        if not token:
            raise Unauthorized()
        claims = self.tokens.validate(token)
        if self.revocations.is_revoked(claims.jti):
            raise RevokedToken()
        return claims

    def authenticate(self, token: Optional[str]) -> User:
        try:
            claims = self._claims(token)
        except Unauthorized as exc:
            logger.info("Rejected credential: %s", exc.detail)
            raise
        try:
            return self.users.get_by_id(claims.user_id)
        except NotFound as exc:
            logger.warning("Credential for missing user id=%s", claims.user_id)
            raise UnknownUser() from exc

    def logout(self, token: Optional[str]) -> bool:
        claims = self._claims(token)
        revoked = self.revocations.revoke(claims)
        logger.info("User id=%s logged out", claims.user_id)
        return revoked

    # Files

    def upload(self, user: User, filename: Optional[str], data: bytes,
               content_type: Optional[str] = None) -> UserFile:
        filename = os.path.basename((filename or "").replace("\\", "/")).strip()
        if not filename:
            raise BadRequest("No file found in request")
        if len(data) > self.settings.max_upload_size:
            raise PayloadTooLarge()

        content_type = content_type or DEFAULT_CONTENT_TYPE
        storage_key = new_storage_key(filename)
        self._retry(self.storage.put, storage_key, data, content_type)

        metadata = FileMetadata(filename=filename, size=len(data), content_type=content_type)
        try:
            record = self.files.create(user.id, storage_key, metadata)
        except FilegateError:
            self._compensate(storage_key, "metadata creation failed after upload")
            raise
        logger.info("User id=%s uploaded file id=%s (%d bytes)", user.id, record.id, record.size)
        return record

    def _compensate(self, storage_key: str, reason: str) -> None:
        try:
            self.storage.delete(storage_key)
        except StorageFailure:
            self.orphans.record(storage_key, reason)

    def list_files(self, user: User) -> List[UserFile]:
        return self.files.list_by_owner(user.id)

    def _owned(self, user: User, file_id: int) -> UserFile:
        record = self.files.get_by_id(file_id)
        if record.owner_id != user.id:
            logger.warning("User id=%s denied access to file id=%s", user.id, file_id)
            raise Forbidden()
        return record

    def download(self, user: User, file_id: int) -> Download:
        record = self._owned(user, file_id)
        data = self._retry(self.storage.get, record.storage_key)
        return Download(record=record, data=data)

    def delete(self, user: User, file_id: int) -> None:
        record = self._owned(user, file_id)
        record_id, storage_key = record.id, record.storage_key
        # Record goes first so no record ever points at a missing blob.
        self.files.delete_by_id(record_id)
        self._compensate(storage_key, f"blob delete failed for removed file id={record_id}")
        logger.info("User id=%s deleted file id=%s", user.id, record_id)
