from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from filegate.config import Settings, get_settings
from filegate.database import get_db
from filegate.models.user_model import User
from filegate.services.gateway import AuthorizationGateway
from filegate.services.identity import IdentityVerifier
from filegate.services.object_storage import ObjectStorage, get_shared_storage
from filegate.services.session_tokens import SessionTokenService

# auto_error=False: a missing header is reported as our own 401, not FastAPI's default.
oauth2_scheme = HTTPBearer(auto_error=False)

_verifier: Optional[IdentityVerifier] = None


def get_identity_verifier(settings: Settings = Depends(get_settings)) -> IdentityVerifier:
    # One verifier per process so the provider key cache is shared between requests.
    global _verifier
    if _verifier is None:
        _verifier = IdentityVerifier(
            audience=settings.identity_audience,
            issuers=settings.identity_issuers,
            jwks_url=settings.identity_jwks_url,
            cache_seconds=settings.identity_jwks_cache_seconds,
            min_refresh_seconds=settings.identity_jwks_min_refresh_seconds,
            timeout=settings.identity_http_timeout,
        )
    return _verifier


def get_token_service(settings: Settings = Depends(get_settings)) -> SessionTokenService:
    return SessionTokenService(
        secret=settings.session_secret,
        ttl_seconds=settings.session_ttl_seconds,
        algorithm=settings.session_algorithm,
    )


def get_object_storage(settings: Settings = Depends(get_settings)) -> ObjectStorage:
    return get_shared_storage(settings)


def get_session_gateway(
    db: Session = Depends(get_db),
    tokens: SessionTokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> AuthorizationGateway:
    # Login, logout and /me: no identity verifier or object storage is built.
    return AuthorizationGateway(db=db, tokens=tokens, settings=settings)


def get_gateway(
    db: Session = Depends(get_db),
    tokens: SessionTokenService = Depends(get_token_service),
    storage: ObjectStorage = Depends(get_object_storage),
    settings: Settings = Depends(get_settings),
) -> AuthorizationGateway:
    return AuthorizationGateway(db=db, tokens=tokens, settings=settings, storage=storage)


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)) -> Optional[str]:
    if credentials is None:
        return None
    return credentials.credentials


def get_current_user(token: Optional[str] = Depends(get_bearer_token),
                     gateway: AuthorizationGateway = Depends(get_session_gateway)) -> User:
    return gateway.authenticate(token)
