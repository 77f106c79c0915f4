#!/usr/bin/env python3
import os
import secrets
import sys

import psycopg
from psycopg.rows import dict_row

from backend.app.security import hash_password


def _truthy(v: str) -> bool:
    return (v or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _generate_password() -> str:
    # URL-safe and copy/paste friendly.
    return secrets.token_urlsafe(16)


def main() -> int:
    if not _truthy(os.getenv("BOOTSTRAP_SHOP", "")):
        return 0

    db_url = os.getenv("DATABASE_URL_ADMIN") or os.getenv("DATABASE_URL")
    if not db_url:
        print("bootstrap_shop: missing DATABASE_URL", file=sys.stderr)
        return 2

    shop_name = (os.getenv("BOOTSTRAP_SHOP_NAME") or "").strip()
    if not shop_name:
        print("bootstrap_shop: BOOTSTRAP_SHOP_NAME is empty", file=sys.stderr)
        return 2
    address = (os.getenv("BOOTSTRAP_SHOP_ADDRESS") or "").strip() or None

    email = os.getenv("BOOTSTRAP_OWNER_EMAIL", "owner@triact.local").strip().lower()
    if not email:
        print("bootstrap_shop: BOOTSTRAP_OWNER_EMAIL is empty", file=sys.stderr)
        return 2
    owner_name = (os.getenv("BOOTSTRAP_OWNER_NAME") or "").strip() or "Owner"

    password = os.getenv("BOOTSTRAP_OWNER_PASSWORD")
    generated_password = False
    if not password:
        password = _generate_password()
        generated_password = True

    with psycopg.connect(db_url, row_factory=dict_row) as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                cur.execute("SELECT id FROM users WHERE email = %s", (email,))
                if cur.fetchone():
                    # Idempotent: the owner (and so the shop) already exists.
                    return 0

                cur.execute(
                    """
                    INSERT INTO shops (id, shop_name, address)
                    VALUES (gen_random_uuid(), %s, %s)
                    RETURNING id
                    """,
                    (shop_name, address),
                )
                shop_id = cur.fetchone()["id"]

                cur.execute(
                    """
                    INSERT INTO users (id, shop_id, name, email, hashed_password, role, is_active)
                    VALUES (gen_random_uuid(), %s, %s, %s, %s, 'owner', true)
                    """,
                    (shop_id, owner_name, email, hash_password(password)),
                )

    print("BOOTSTRAP_SHOP_CREATED")
    print(f"shop_id: {shop_id}")
    print(f"email: {email}")
    if generated_password:
        print(f"password: {password}")
    else:
        print("password: (provided via BOOTSTRAP_OWNER_PASSWORD)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
