import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from filegate.database import init_db
from filegate.errors import IdentityConflict, NotFound
from filegate.models.user_model import User
from filegate.services.retry import retry_call
from filegate.services.user_directory import UserDirectory


@pytest.fixture
def directory(db_session):
    return UserDirectory(db_session)


def test_find_or_create_is_idempotent(directory, db_session):
    first = directory.find_or_create("g-1", "Jane", "Jane@Example.com")
    second = directory.find_or_create("g-1", "Jane", "jane@example.com")

    assert first.id == second.id
    assert first.email == "jane@example.com"
    assert db_session.query(User).count() == 1


def test_distinct_subjects_get_distinct_users(directory):
    a = directory.find_or_create("g-1", "A", "a@example.com")
    b = directory.find_or_create("g-2", "B", "b@example.com")
    assert a.id != b.id


def test_email_bound_to_other_subject(directory, db_session):
    directory.find_or_create("g-1", "A", "shared@example.com")

    with pytest.raises(IdentityConflict):
        directory.find_or_create("g-2", "B", "shared@example.com")
    assert db_session.query(User).count() == 1


def test_get_by_id(directory):
    created = directory.find_or_create("g-1", "A", "a@example.com")

    assert directory.get_by_id(created.id).third_party_id == "g-1"
    with pytest.raises(NotFound):
        directory.get_by_id(created.id + 100)


def test_touch_login_refreshes_name(directory):
    user = directory.find_or_create("g-1", "Old", "a@example.com")
    assert user.last_login is None

    directory.touch_login(user, "New")

    assert directory.get_by_id(user.id).name == "New"
    assert user.last_login is not None


def test_concurrent_first_logins_create_one_user(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'users.db'}",
                           connect_args={"check_same_thread": False, "timeout": 30})
    init_db(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

    workers = 8
    barrier = threading.Barrier(workers)
    ids = []
    errors = []
    lock = threading.Lock()

    def first_login():
        session = Session()
        try:
            barrier.wait()
            user = retry_call(UserDirectory(session).find_or_create, "g-race", "Racer", "racer@example.com",
                              attempts=5, delay=0.05)
            with lock:
                ids.append(user.id)
        except Exception as exc:
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=first_login) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(ids) == workers
    assert len(set(ids)) == 1

    check = Session()
    try:
        assert check.query(User).filter(User.third_party_id == "g-race").count() == 1
    finally:
        check.close()
    engine.dispose()
