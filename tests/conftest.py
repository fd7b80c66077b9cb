from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from auth import DuplicateEmailError, TokenService, UserRecord, hash_password
from config import Settings
from donations import DonationStore
from main import create_app

SECRET = "foodshare-test-secret-0123456789abcdef"


class InMemoryUsers:
    """User directory keeping records in a dict, counting writes"""

    def __init__(self):
        self.records = {}
        self.writes = 0

    def find_by_email(self, email):
        return self.records.get(email)

    def create(self, name, email, password, user_type):
        self.writes += 1
        if email in self.records:
            raise DuplicateEmailError(email)
        record = UserRecord(
            id=str(ObjectId()),
            name=name,
            email=email,
            password_hash=hash_password(password),
            user_type=user_type,
        )
        self.records[email] = record
        return record


@pytest.fixture
def settings():
    return Settings(jwt_secret=SECRET, token_ttl=timedelta(hours=1))


@pytest.fixture
def users():
    return InMemoryUsers()


@pytest.fixture
def tokens(settings):
    return TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.token_ttl)


@pytest.fixture
def donation_collection():
    return MagicMock()


@pytest.fixture
def client(settings, users, donation_collection):
    app = create_app(settings, users=users, donations=DonationStore(donation_collection))
    return TestClient(app)
