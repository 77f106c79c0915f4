from datetime import datetime, timedelta, timezone

import jwt
import pytest

from backend.app.deps import _extract_bearer_token, get_caller, require_owner, require_shop_access
from backend.app.errors import AuthorizationError
from backend.app.security import (
    AuthConfig,
    Caller,
    decode_access_token,
    hash_password,
    issue_access_token,
    verify_password,
)
from fastapi import HTTPException

CFG = AuthConfig(secret="test-secret-with-enough-length-0123456789")
USER = {
    "id": "9e2a44a4-0000-4000-8000-000000000001",
    "shop_id": "3f1c0d55-0000-4000-8000-0000000000aa",
    "name": "Asha",
    "email": "asha@example.test",
    "role": "biller",
}


def test_password_hash_roundtrip():
    h = hash_password("s3cret")
    assert h.startswith("$2")
    assert verify_password("s3cret", h) is True
    assert verify_password("wrong", h) is False
    assert verify_password("s3cret", None) is False


def test_auth_config_fails_fast_without_secret(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(RuntimeError) as exc_info:
        AuthConfig.from_env()
    assert "JWT_SECRET" in str(exc_info.value)


def test_auth_config_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", " abc ")
    monkeypatch.setenv("JWT_TTL_DAYS", "not-a-number")
    cfg = AuthConfig.from_env()
    assert cfg.secret == "abc"
    assert cfg.algorithm == "HS256"
    assert cfg.ttl_days == 7


def test_token_roundtrip_maps_claims_to_caller():
    caller = decode_access_token(CFG, issue_access_token(CFG, USER))
    assert caller == Caller(
        user_id=USER["id"],
        name="Asha",
        role="biller",
        shop_id=USER["shop_id"],
        email="asha@example.test",
    )
    assert caller.is_owner is False


def test_expired_or_foreign_tokens_are_rejected():
    old = datetime.now(timezone.utc) - timedelta(days=30)
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(CFG, issue_access_token(CFG, USER, now=old))
    other = AuthConfig(secret="another-secret-with-enough-length-987654")
    with pytest.raises(jwt.InvalidSignatureError):
        decode_access_token(other, issue_access_token(CFG, USER))


def test_token_with_unknown_role_is_rejected():
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(CFG, issue_access_token(CFG, dict(USER, role="admin")))


def test_bearer_extraction():
    assert _extract_bearer_token("Bearer abc.def") == "abc.def"
    for bad in (None, "", "Basic xyz", "Bearer "):
        with pytest.raises(HTTPException) as exc_info:
            _extract_bearer_token(bad)
        assert exc_info.value.status_code == 401


def test_get_caller_maps_invalid_tokens_to_401():
    with pytest.raises(HTTPException) as exc_info:
        get_caller(authorization="Bearer not-a-jwt", cfg=CFG)
    assert exc_info.value.status_code == 401
    token = issue_access_token(CFG, USER)
    assert get_caller(authorization=f"Bearer {token}", cfg=CFG).shop_id == USER["shop_id"]


def test_shop_access_uses_token_shop_not_path():
    caller = decode_access_token(CFG, issue_access_token(CFG, USER))
    assert require_shop_access(shop_id=USER["shop_id"].upper(), caller=caller) is caller
    with pytest.raises(AuthorizationError) as exc_info:
        require_shop_access(shop_id="11111111-1111-1111-1111-111111111111", caller=caller)
    assert exc_info.value.status_code == 403


def test_require_owner():
    biller = Caller(user_id="u", name="B", role="biller", shop_id="s")
    owner = Caller(user_id="u", name="O", role="owner", shop_id="s")
    assert require_owner(caller=owner) is owner
    with pytest.raises(AuthorizationError):
        require_owner(caller=biller)
