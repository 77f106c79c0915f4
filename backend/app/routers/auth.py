from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from ..db import get_admin_conn
from ..deps import get_auth_config, get_caller
from ..logs import json_log
from ..security import AuthConfig, Caller, hash_password, issue_access_token, needs_rehash, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


@router.post("/login")
def login(data: LoginIn, cfg: AuthConfig = Depends(get_auth_config)):
    email = (data.email or "").strip().lower()
    if not email or not data.password:
        raise HTTPException(status_code=400, detail="email and password are required")
    # Use the admin connection: there is no shop context until we know who this is.
    with get_admin_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, shop_id, name, email, role, hashed_password, is_active
                FROM users
                WHERE email = %s
                """,
                (email,),
            )
            user = cur.fetchone()
            if not user or not user["is_active"]:
                raise HTTPException(status_code=401, detail="invalid credentials")
            if not verify_password(data.password, user["hashed_password"]):
                raise HTTPException(status_code=401, detail="invalid credentials")

            if needs_rehash(user["hashed_password"]):
                cur.execute(
                    """
                    UPDATE users
                    SET hashed_password = %s
                    WHERE id = %s
                    """,
                    (hash_password(data.password), user["id"]),
                )

    token = issue_access_token(cfg, user)
    json_log("info", "auth.login", user_id=str(user["id"]), shop_id=str(user["shop_id"]), role=user["role"])
    return {
        "token": token,
        "user": {
            "id": str(user["id"]),
            "name": user["name"],
            "email": user["email"],
            "role": user["role"],
            "shop_id": str(user["shop_id"]),
        },
    }


@router.get("/me")
def me(caller: Caller = Depends(get_caller)):
    return {
        "user_id": caller.user_id,
        "name": caller.name,
        "email": caller.email,
        "role": caller.role,
        "shop_id": caller.shop_id,
    }
