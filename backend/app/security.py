import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_TTL_DAYS_DEFAULT = 7
CALLER_ROLES = {"owner", "biller"}


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return _pwd_context.verify(password, hashed)


def needs_rehash(hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return _pwd_context.needs_update(hashed)


@dataclass(frozen=True)
class AuthConfig:
    secret: str
    algorithm: str = "HS256"
    ttl_days: int = TOKEN_TTL_DAYS_DEFAULT

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """
        Build the signing config once at startup. A missing secret is a deployment error:
        refuse to start rather than failing every request later.
        """
        secret = (os.getenv("JWT_SECRET") or "").strip()
        if not secret:
            raise RuntimeError("JWT_SECRET is not configured")
        algorithm = (os.getenv("JWT_ALGORITHM") or "HS256").strip() or "HS256"
        try:
            ttl_days = int((os.getenv("JWT_TTL_DAYS") or "").strip() or TOKEN_TTL_DAYS_DEFAULT)
        except ValueError:
            ttl_days = TOKEN_TTL_DAYS_DEFAULT
        return cls(secret=secret, algorithm=algorithm, ttl_days=max(1, ttl_days))


@dataclass(frozen=True)
class Caller:
    user_id: str
    name: str
    role: str
    shop_id: str
    email: Optional[str] = None

    @property
    def is_owner(self) -> bool:
        return self.role == "owner"


def issue_access_token(cfg: AuthConfig, user: dict, *, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user["id"]),
        "name": user.get("name") or "",
        "email": user.get("email"),
        "role": user.get("role") or "biller",
        "shop_id": str(user["shop_id"]),
        "iat": now,
        "exp": now + timedelta(days=cfg.ttl_days),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.algorithm)


def decode_access_token(cfg: AuthConfig, token: str) -> Caller:
    """
    Verify signature/expiry and map the claims onto a Caller.
    Raises jwt.InvalidTokenError (or a subclass) for anything unusable.
    """
    claims = jwt.decode(
        token,
        cfg.secret,
        algorithms=[cfg.algorithm],
        options={"require": ["exp", "sub"]},
    )
    shop_id = str(claims.get("shop_id") or "").strip()
    if not shop_id:
        raise jwt.InvalidTokenError("token has no shop_id")
    role = str(claims.get("role") or "").strip().lower()
    if role not in CALLER_ROLES:
        raise jwt.InvalidTokenError("token has an unknown role")
    return Caller(
        user_id=str(claims["sub"]),
        name=str(claims.get("name") or "").strip(),
        role=role,
        shop_id=shop_id,
        email=claims.get("email"),
    )
