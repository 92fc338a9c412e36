import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["IDENTITY_AUDIENCE"] = "test-client-id.apps.googleusercontent.com"
os.environ["RETRY_DELAY_SECONDS"] = "0"
os.environ["MAX_UPLOAD_SIZE"] = "65536"

import time
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwk, jwt
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker

from filegate.config import get_settings
from filegate.database import Base, get_db, init_db
from filegate.dependencies import get_identity_verifier, get_object_storage
from filegate.main import app
from filegate.services.gateway import AuthorizationGateway
from filegate.services.identity import IdentityVerifier
from filegate.services.object_storage import LocalObjectStorage
from filegate.services.session_tokens import SessionTokenService

AUDIENCE = "test-client-id.apps.googleusercontent.com"
ISSUER = "https://accounts.google.com"

DATABASE_URL = "sqlite://"

engine = create_engine(DATABASE_URL,
                       connect_args={
                           "check_same_thread": False,
                       },
                       poolclass=StaticPool)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def override_get_db():
    database = TestingSessionLocal()
    try:
        yield database
    finally:
        database.close()


app.dependency_overrides[get_db] = override_get_db


class IdentityProvider:
    """Stand-in for the identity provider: signs ID tokens and serves its JWKS."""

    def __init__(self, kid: str = "test-key"):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        public_jwk = jwk.construct(public_pem, "RS256").to_dict()
        public_jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
        self.kid = kid
        self.jwks = {"keys": [public_jwk]}
        self.fetches = 0

    def fetch_keys(self):
        self.fetches += 1
        return self.jwks

    def assertion(self, subject="g-123", email="user@example.com", name="Test User",
                  audience=AUDIENCE, issuer=ISSUER, expires_in=3600, kid=None, **extra):
        now = int(time.time())
        claims = {
            "iss": issuer,
            "aud": audience,
            "sub": subject,
            "email": email,
            "email_verified": True,
            "name": name,
            "iat": now,
            "exp": now + expires_in,
        }
        claims.update(extra)
        return jwt.encode(claims, self.private_pem, algorithm="RS256", headers={"kid": kid or self.kid})

    def verifier(self, **kwargs):
        return IdentityVerifier(audience=AUDIENCE, issuers=[ISSUER, "accounts.google.com"],
                                fetch_keys=self.fetch_keys, **kwargs)


@pytest.fixture(scope="session")
def identity_provider():
    return IdentityProvider()


@pytest.fixture
def verifier(identity_provider):
    return identity_provider.verifier()


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(base_dir=str(tmp_path / "blobs"))


@pytest.fixture
def token_service():
    settings = get_settings()
    return SessionTokenService(secret=settings.session_secret, ttl_seconds=settings.session_ttl_seconds)


@pytest.fixture(autouse=True)
def setup_and_teardown():
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def override_collaborators(verifier, storage):
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_object_storage] = lambda: storage
    yield
    app.dependency_overrides.pop(get_identity_verifier, None)
    app.dependency_overrides.pop(get_object_storage, None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway(db_session, token_service, storage):
    return AuthorizationGateway(db=db_session, tokens=token_service, settings=get_settings(), storage=storage)


@pytest.fixture
def login(client, identity_provider):
    def _login(subject="g-123", email="user@example.com", name="Test User"):
        response = client.post("/login", json={"identity_assertion": identity_provider.assertion(
            subject=subject, email=email, name=name)})
        assert response.status_code == 200, response.text
        body = response.json()
        return body["token"], body["user"]

    return _login


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def stored_keys(storage):
    base = Path(storage.base_dir)
    return sorted(str(p.relative_to(base)) for p in base.rglob("*") if p.is_file())
