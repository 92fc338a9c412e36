from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4

from jose import JWTError, jwt

from filegate.errors import ExpiredToken, InvalidToken


@dataclass(frozen=True)
class IssuedToken:
    token: str
    jti: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    jti: str
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionTokenService:
    """Issues and validates signed, time-bounded session tokens."""

    def __init__(self, secret: Optional[str], ttl_seconds: int = 86400, algorithm: str = "HS256",
                 clock: Callable[[], datetime] = _utcnow):
        if not secret:
            raise ValueError("SESSION_SECRET is not configured")
        self._secret = secret
        self.ttl = timedelta(seconds=ttl_seconds)
        self.algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: int) -> IssuedToken:
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self.ttl
        jti = uuid4().hex
        to_encode = {
            "sub": str(user_id),
            "jti": jti,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(to_encode, self._secret, algorithm=self.algorithm)
        return IssuedToken(token=token, jti=jti, issued_at=issued_at, expires_at=expires_at)

    def validate(self, token: str) -> SessionClaims:
        if not token:
            raise InvalidToken()
        try:
            # Expiry is checked below against our own clock, after the signature.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "require_exp": True,
                    "require_iat": True,
                    "require_sub": True,
                    "require_jti": True,
                },
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        try:
            user_id = int(payload["sub"])
            expires_at = int(payload["exp"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken() from exc

        if int(self._clock().timestamp()) > expires_at:
            raise ExpiredToken()

        return SessionClaims(
            user_id=user_id,
            jti=str(payload["jti"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
