"""
Verification of identity-provider ID tokens.

The provider (Google Sign-In by default) signs ID tokens with RS256 and publishes
its public keys as a JWKS document. Keys are cached for a bounded interval; an
unknown key id forces one refresh, at most once per min_refresh_seconds.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from filegate.errors import InvalidAssertion, ProviderUnavailable
from filegate.logging_config import logger

ALGORITHMS = ["RS256"]


@dataclass(frozen=True)
class VerifiedIdentity:
    subject: str
    name: str
    email: str


def fetch_jwks(jwks_url: str, timeout: float = 10.0) -> Dict[str, Any]:
    try:
        r = requests.get(jwks_url, timeout=timeout)
        r.raise_for_status()
        data = r.json()
    except (requests.RequestException, ValueError) as exc:
        raise ProviderUnavailable(f"Could not fetch identity provider keys ({exc.__class__.__name__})") from exc
    if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
        raise ProviderUnavailable("Identity provider returned an invalid key set")
    return data


class IdentityVerifier:
    def __init__(
        self,
        audience: str,
        issuers: List[str],
        jwks_url: str = "",
        cache_seconds: int = 3600,
        min_refresh_seconds: int = 60,
        timeout: float = 10.0,
        fetch_keys: Optional[Callable[[], Dict[str, Any]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not audience:
            raise ValueError("Identity audience is not configured")
        self.audience = audience
        self.issuers = list(issuers)
        self.cache_seconds = cache_seconds
        self.min_refresh_seconds = min_refresh_seconds
        self._fetch_keys = fetch_keys or (lambda: fetch_jwks(jwks_url, timeout))
        self._clock = clock
        self._keys: Optional[List[Dict[str, Any]]] = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def _signing_keys(self, force: bool = False) -> List[Dict[str, Any]]:
        with self._lock:
            now = self._clock()
            age = now - self._fetched_at
            if self._keys is not None:
                if not force and age < self.cache_seconds:
                    return self._keys
                if force and age < self.min_refresh_seconds:
                    return self._keys
            try:
                jwks = self._fetch_keys()
            except ProviderUnavailable:
                if self._keys is None:
                    raise
                logger.warning("Identity provider key refresh failed, using cached keys")
                # Try again after the minimum refresh interval, not on every request.
                self._fetched_at = now - self.cache_seconds + self.min_refresh_seconds
                return self._keys
            self._keys = [k for k in jwks.get("keys", []) if isinstance(k, dict)]
            self._fetched_at = now
            return self._keys

    def _find_key(self, kid: str) -> Dict[str, Any]:
        for force in (False, True):
            for key in self._signing_keys(force=force):
                if str(key.get("kid") or "") == kid:
                    return key
        raise InvalidAssertion("Identity assertion signed with an unknown key")

    def verify(self, assertion: str) -> VerifiedIdentity:
        if not assertion:
            raise InvalidAssertion("Missing identity assertion")
        try:
            header = jwt.get_unverified_header(assertion)
        except JWTError as exc:
            raise InvalidAssertion("Malformed identity assertion") from exc

        kid = str(header.get("kid") or "")
        if not kid:
            raise InvalidAssertion("Identity assertion missing key id")
        key = self._find_key(kid)

        try:
            claims = jwt.decode(
                assertion,
                key,
                algorithms=ALGORITHMS,
                audience=self.audience,
                issuer=self.issuers or None,
                options={
                    "require_exp": True,
                    "require_aud": True,
                    "require_sub": True,
                    "verify_at_hash": False,
                },
            )
        except ExpiredSignatureError as exc:
            raise InvalidAssertion("Identity assertion expired") from exc
        except JWTClaimsError as exc:
            raise InvalidAssertion(f"Identity assertion rejected: {exc}") from exc
        except JWTError as exc:
            raise InvalidAssertion("Identity assertion signature mismatch") from exc

        subject = str(claims.get("sub") or "").strip()
        email = str(claims.get("email") or "").strip().lower()
        if not subject or not email:
            raise InvalidAssertion("Identity assertion missing subject or email")

        email_verified = claims.get("email_verified")
        if email_verified is not None and email_verified not in (True, "true"):
            raise InvalidAssertion("Email not verified")

        name = str(claims.get("name") or "").strip() or email
        return VerifiedIdentity(subject=subject, name=name, email=email)
