from fastapi import Header, HTTPException, Depends, Request
from typing import Optional
import jwt

from .errors import AuthorizationError
from .security import AuthConfig, Caller, decode_access_token


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    raise HTTPException(status_code=401, detail="authorization token not found or invalid")


def get_auth_config(request: Request) -> AuthConfig:
    # Installed once by the startup hook in main.py.
    cfg = getattr(request.app.state, "auth_config", None)
    if cfg is None:
        raise RuntimeError("auth config not initialized")
    return cfg


def get_caller(
    authorization: Optional[str] = Header(None),
    cfg: AuthConfig = Depends(get_auth_config),
) -> Caller:
    token = _extract_bearer_token(authorization)
    try:
        return decode_access_token(cfg, token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid or expired token")


def require_shop_access(shop_id: str, caller: Caller = Depends(get_caller)) -> Caller:
    """
    Shop-scoped routes take `{shop_id}` from the path, but the only shop a caller can
    act on is the one in their token.
    """
    if (shop_id or "").strip().lower() != caller.shop_id.strip().lower():
        raise AuthorizationError("access denied to this shop's resources")
    return caller


def require_owner(caller: Caller = Depends(require_shop_access)) -> Caller:
    if not caller.is_owner:
        raise AuthorizationError("owner role required")
    return caller
