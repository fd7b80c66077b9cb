import warnings
from datetime import timedelta

import jwt

from config import DEV_SECRET, Settings


def test_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    monkeypatch.setenv("DATABASE_URL", "mongodb://localhost:27017")
    monkeypatch.setenv("DATABASE_NAME", "foodshare")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.jwt_secret == "s3cret"
    assert settings.jwt_algorithm == "HS256"
    assert settings.token_ttl == timedelta(hours=1)
    assert settings.database_name == "foodshare"
    assert settings.log_level == "DEBUG"


def test_missing_secret_falls_back(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    assert Settings.from_env().jwt_secret == DEV_SECRET


def test_dev_secret_is_long_enough_to_sign_quietly():
    assert len(DEV_SECRET.encode("utf-8")) >= 32
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        token = jwt.encode({"id": "1"}, DEV_SECRET, algorithm="HS256")
    assert jwt.decode(token, DEV_SECRET, algorithms=["HS256"]) == {"id": "1"}
