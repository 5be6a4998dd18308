from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import jwt

from rally_roster.utils.jwt_utils import JwtWrapper

SECRET = "test-secret-key-that-is-long-enough-for-hs256"


def secrets_table_with(secret: str = SECRET) -> Mock:
    secrets_table = Mock()
    secrets_table.get_jwt_secret_key.return_value = secret
    return secrets_table


def make_token(claims: dict, secret: str = SECRET, expires_in: timedelta = timedelta(hours=1)) -> str:
    return jwt.encode({**claims, "exp": datetime.now(timezone.utc) + expires_in}, secret, algorithm="HS256")


def test_verify_token_with_role():
    payload = JwtWrapper().verify_token(make_token({"sub": "U1", "role": "parent"}), secrets_table_with())

    assert payload is not None
    assert payload["sub"] == "U1"
    assert payload["role"] == "parent"


def test_verify_token_without_role():
    payload = JwtWrapper().verify_token(make_token({"sub": "U1"}), secrets_table_with())

    assert payload is not None
    assert "role" not in payload


def test_verify_token_expired():
    token = make_token({"sub": "U1"}, expires_in=timedelta(minutes=-5))

    assert JwtWrapper().verify_token(token, secrets_table_with()) is None


def test_verify_token_bad_signature():
    token = make_token({"sub": "U1"}, secret="some-other-secret-that-is-long-enough")

    assert JwtWrapper().verify_token(token, secrets_table_with()) is None


def test_verify_token_missing_secret():
    secrets_table = Mock()
    secrets_table.get_jwt_secret_key.side_effect = KeyError("JWT_SECRET")

    assert JwtWrapper().verify_token("whatever", secrets_table) is None
