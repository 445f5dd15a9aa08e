from datetime import timedelta

import jwt
import pytest

from hardware_store.core.errors import TokenExpiredError, TokenInvalidError
from hardware_store.core.security import TokenService, extract_token_from_header
from hardware_store.models.user import Role


def test_issue_and_verify(tokens):
    token = tokens.issue(7, "manager", Role.MANAGER)
    claims = tokens.verify(token)
    assert claims.user_id == 7
    assert claims.username == "manager"
    assert claims.role == "MANAGER"


def test_payload_carries_issuer_and_audience(tokens):
    payload = jwt.decode(tokens.issue(1, "a", "MANAGER"), options={"verify_signature": False})
    assert payload["iss"] == "hardware-store-api"
    assert payload["aud"] == "hardware-store-client"
    assert payload["sub"] == "1"


def test_expired_token(tokens):
    expired = TokenService(tokens.secret, timedelta(seconds=-1))
    token = expired.issue(1, "a", "MANAGER")
    with pytest.raises(TokenExpiredError):
        tokens.verify(token)


def test_wrong_secret(tokens):
    token = TokenService("another-secret").issue(1, "a", "MANAGER")
    with pytest.raises(TokenInvalidError):
        tokens.verify(token)


def test_wrong_audience(tokens):
    token = TokenService(tokens.secret, audience="someone-else").issue(1, "a", "MANAGER")
    with pytest.raises(TokenInvalidError):
        tokens.verify(token)


def test_tampered_token(tokens):
    token = tokens.issue(1, "a", "PURCHASE_OFFICER")
    header, payload, signature = token.split(".")
    with pytest.raises(TokenInvalidError):
        tokens.verify(f"{header}.{payload}.{signature[::-1]}")


def test_missing_subject(tokens):
    token = jwt.encode(
        {"username": "a", "role": "MANAGER", "exp": 9999999999, "iss": tokens.issuer, "aud": tokens.audience},
        tokens.secret,
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalidError):
        tokens.verify(token)


def test_garbage_token(tokens):
    with pytest.raises(TokenInvalidError):
        tokens.verify("not.a.token")


@pytest.mark.parametrize("header,expected", [
    ("Bearer abc", "abc"),
    (None, None),
    ("", None),
    ("Bearer", None),
    ("bearer abc", None),
    ("Basic abc", None),
    ("Bearer abc def", None),
])
def test_extract_token_from_header(header, expected):
    assert extract_token_from_header(header) == expected
