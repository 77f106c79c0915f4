import os
from psycopg.rows import dict_row
from contextlib import contextmanager

# psycopg3 connection pooling lives in a separate package.
from psycopg_pool import ConnectionPool

DATABASE_URL_ADMIN = os.getenv("DATABASE_URL_ADMIN") or os.getenv("DATABASE_URL") or "postgresql://localhost/triact"
DATABASE_URL = os.getenv("APP_DATABASE_URL") or os.getenv("DATABASE_URL") or "postgresql://localhost/triact"

def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default

# Pool sizing defaults are conservative for local/dev. Override in prod via env:
# - DB_POOL_MIN_SIZE / DB_POOL_MAX_SIZE
# - DB_ADMIN_POOL_MIN_SIZE / DB_ADMIN_POOL_MAX_SIZE
_POOL_MIN = _env_int("DB_POOL_MIN_SIZE", 1)
_POOL_MAX = _env_int("DB_POOL_MAX_SIZE", 10)
_ADMIN_POOL_MIN = _env_int("DB_ADMIN_POOL_MIN_SIZE", 1)
_ADMIN_POOL_MAX = _env_int("DB_ADMIN_POOL_MAX_SIZE", 5)

# One pool for the app role (row-level security applies), one for the admin role
# (login needs to look users up before any shop context exists).
# Pools open lazily so importing the app does not require a reachable database.
_pool = ConnectionPool(
    conninfo=DATABASE_URL,
    min_size=_POOL_MIN,
    max_size=_POOL_MAX,
    kwargs={"row_factory": dict_row},
    open=False,
)

_admin_pool = ConnectionPool(
    conninfo=DATABASE_URL_ADMIN,
    min_size=_ADMIN_POOL_MIN,
    max_size=_ADMIN_POOL_MAX,
    kwargs={"row_factory": dict_row},
    open=False,
)

@contextmanager
def _pooled_conn(pool: ConnectionPool):
    # Preserve the semantics of `with get_conn() as conn:`:
    # - commit on success
    # - rollback on exception
    # - return connection to pool
    if pool.closed:
        pool.open()
    with pool.connection() as conn:
        with conn:
            yield conn


def get_conn():
    return _pooled_conn(_pool)

def get_admin_conn():
    return _pooled_conn(_admin_pool)


def close_pools() -> None:
    # Best-effort shutdown hook (e.g. uvicorn shutdown).
    try:
        _pool.close()
    except Exception:
        pass
    try:
        _admin_pool.close()
    except Exception:
        pass


def set_shop_context(conn, shop_id: str):
    with conn.cursor() as cur:
        # `SET ... = %s` is not valid when using the extended query protocol (psycopg sends $1).
        # Use set_config() to safely parameterize the value.
        # set_config(name text, value text, is_local boolean)
        cur.execute(
            "SELECT set_config('app.current_shop_id', %s::text, true)",
            (shop_id,),
        )


def set_transaction_timeouts(cur, *, lock_timeout_ms: int, statement_timeout_ms: int):
    # Transaction-local; released on commit/rollback.
    cur.execute(
        "SELECT set_config('lock_timeout', %s, true), set_config('statement_timeout', %s, true)",
        (f"{int(lock_timeout_ms)}ms", f"{int(statement_timeout_ms)}ms"),
    )
