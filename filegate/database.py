import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker, declarative_base

from filegate.config import get_settings

DATABASE_URL = get_settings().database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

db = sa.create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=db, autocommit=False, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def init_db(bind=None):
    from filegate.models import file_model, orphaned_blob_model, revoked_token_model, user_model  # noqa: F401

    Base.metadata.create_all(bind=bind or db)


def get_db():
    database = SessionLocal()
    try:
        yield database
    finally:
        database.close()
