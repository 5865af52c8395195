from datetime import datetime, timedelta, timezone

import jwt
import pytest

from dealroom.auth import SessionValidator
from dealroom.errors import AuthenticationError

from conftest import SECRET


def _raw(claims: dict, key: str = SECRET) -> str:
    return jwt.encode(claims, key, algorithm="HS256")


def _exp(minutes: int = 60) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


def test_valid_token_yields_identity(validator):
    token = validator.issue_token(7, "INVESTOR", name="Ada", email="ada@example.com")
    identity = validator.validate(token)
    assert identity.id == 7
    assert identity.role == "INVESTOR"
    assert identity.name == "Ada"
    assert identity.email == "ada@example.com"
    assert identity.expires_at > datetime.now(timezone.utc)


def test_bearer_prefix_is_accepted(validator):
    token = validator.issue_token(9, "FOUNDER")
    assert validator.validate(f"Bearer {token}").id == 9


@pytest.mark.parametrize("token", [None, "", "   "])
def test_missing_token(validator, token):
    with pytest.raises(AuthenticationError) as exc:
        validator.validate(token)
    assert exc.value.code == "token_missing"


def test_expired_token(validator):
    token = validator.issue_token(7, "INVESTOR", ttl=timedelta(seconds=-5))
    with pytest.raises(AuthenticationError) as exc:
        validator.validate(token)
    assert exc.value.code == "token_expired"


def test_wrong_signature(validator):
    other = SessionValidator("a-completely-different-secret-key-value")
    with pytest.raises(AuthenticationError) as exc:
        validator.validate(other.issue_token(7, "INVESTOR"))
    assert exc.value.code == "token_invalid"


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "INVESTOR"},
        {"id": "7", "role": "INVESTOR"},
        {"id": 7, "role": "HACKER"},
        {"id": 7},
    ],
)
def test_malformed_claims(validator, claims):
    with pytest.raises(AuthenticationError):
        validator.validate(_raw({**claims, "exp": _exp()}))


def test_token_without_expiry_is_rejected(validator):
    with pytest.raises(AuthenticationError):
        validator.validate(_raw({"id": 7, "role": "INVESTOR"}))


def test_garbage(validator):
    with pytest.raises(AuthenticationError):
        validator.validate("not-a-jwt")


def test_issue_token_rejects_unknown_role(validator):
    with pytest.raises(ValueError):
        validator.issue_token(1, "GUEST")
