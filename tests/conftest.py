"""
Shared fixtures.

Every facade contract test receives ``repository``, which runs once against
the JSON file store (in a temporary directory) and once against MongoDB
(through mongomock). A fake clock that ticks one second per reading keeps
orderings deterministic on both backends.
"""

import os
from datetime import datetime, timedelta, timezone as dt_timezone

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bhabo.settings.test")
django.setup()

import mongomock  # noqa: E402
import pytest  # noqa: E402
from django.contrib.auth.hashers import make_password  # noqa: E402
from django.core import mail  # noqa: E402
from django.test import override_settings  # noqa: E402

from core.repositories import LocalFileRepository, MongoRepository  # noqa: E402

DEFAULT_PASSWORD = "correct-horse"


class FakeClock:
    """Advances by ``step`` every time it is read."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=dt_timezone.utc)
        self.step = step

    def __call__(self):
        self.current += self.step
        return self.current

    def advance(self, delta):
        self.current += delta


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def local_repository(tmp_path, clock):
    return LocalFileRepository(tmp_path / "database", clock=clock)


@pytest.fixture
def mongo_database():
    return mongomock.MongoClient(tz_aware=True)["bhabo_test"]


@pytest.fixture
def mongo_repository(mongo_database, clock):
    return MongoRepository(mongo_database, clock=clock)


@pytest.fixture(params=["local", "mongo"])
def repository(request):
    return request.getfixturevalue(f"{request.param}_repository")


@pytest.fixture
def make_user(repository):
    """Store a verified user; keyword arguments override the defaults."""

    def factory(username, **fields):
        record = {
            "username": username,
            "firstName": username.capitalize(),
            "lastName": "Tester",
            "email": f"{username}@example.com",
            "birthday": datetime(2000, 5, 17, tzinfo=dt_timezone.utc),
            "gender": "Other",
            "password": make_password(DEFAULT_PASSWORD),
            "isVerified": True,
        }
        record.update(fields)
        return repository.save_user(record)

    return factory


@pytest.fixture
def media_root(tmp_path):
    root = tmp_path / "media"
    (root / "images").mkdir(parents=True)
    with override_settings(MEDIA_ROOT=str(root)):
        yield root


@pytest.fixture
def outbox():
    """The locmem mail outbox, emptied for this test."""
    mail.outbox = []
    return mail.outbox
