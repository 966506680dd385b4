# tests/conftest.py
from datetime import datetime, timedelta

import pytest

from freightflow_auth.database import Database
from freightflow_auth.notifier import NotificationSender
from freightflow_auth.security import PasswordHasher, ResetTokenIssuer
from freightflow_auth.service import AuthService
from freightflow_auth.store import CredentialStore

RESET_BASE_URL = "http://localhost:5500/pages/reset-password.html"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender(NotificationSender):
    def __init__(self):
        self.fail = False
        self.outbox = []

    def send(self, to_address, subject, link):
        if self.fail:
            return False
        self.outbox.append((to_address, subject, link))
        return True

    @property
    def last_token(self):
        return self.outbox[-1][2].split("token=", 1)[1]


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path}/auth.db")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def store(database):
    return CredentialStore(database)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 1, 1, 12, 0, 0))


@pytest.fixture
def hasher():
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def service(store, hasher, clock, sender):
    return AuthService(
        store=store,
        hasher=hasher,
        issuer=ResetTokenIssuer(clock=clock),
        sender=sender,
        reset_link_base_url=RESET_BASE_URL,
        clock=clock,
    )
