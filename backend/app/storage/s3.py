import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.config import Config


@dataclass(frozen=True)
class S3Config:
    endpoint_url: str
    access_key_id: str
    secret_access_key: str
    bucket: str
    region: str
    use_ssl: bool
    public_base_url: str
    connect_timeout: float
    read_timeout: float
    object_acl: Optional[str]


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_s3_config() -> Optional[S3Config]:
    endpoint = (os.environ.get("S3_ENDPOINT_URL") or "").strip()
    access = (os.environ.get("S3_ACCESS_KEY_ID") or "").strip()
    secret = (os.environ.get("S3_SECRET_ACCESS_KEY") or "").strip()
    bucket = (os.environ.get("S3_BUCKET") or "").strip()
    region = (os.environ.get("S3_REGION") or "us-east-1").strip() or "us-east-1"
    use_ssl_raw = (os.environ.get("S3_USE_SSL") or "").strip().lower()
    use_ssl = use_ssl_raw not in {"0", "false", "no"}

    if not endpoint or not access or not secret or not bucket:
        return None
    # Objects are served publicly (CDN or bucket policy). Default to path-style bucket URLs.
    public_base = (os.environ.get("S3_PUBLIC_BASE_URL") or "").strip() or f"{endpoint.rstrip('/')}/{bucket}"
    return S3Config(
        endpoint_url=endpoint,
        access_key_id=access,
        secret_access_key=secret,
        bucket=bucket,
        region=region,
        use_ssl=use_ssl,
        public_base_url=public_base.rstrip("/"),
        connect_timeout=max(0.5, _env_float("S3_CONNECT_TIMEOUT", 5.0)),
        read_timeout=max(1.0, _env_float("S3_READ_TIMEOUT", 20.0)),
        # e.g. "public-read" for buckets that still use ACLs; most serve via bucket policy.
        object_acl=(os.environ.get("S3_OBJECT_ACL") or "").strip() or None,
    )


def _client(cfg: S3Config):
    # Force v4 signatures so MinIO works consistently. Calls run inside an open DB
    # transaction, so bound them and keep transport retries to a single extra attempt.
    bc = Config(
        signature_version="s3v4",
        s3={"addressing_style": "path"},
        connect_timeout=cfg.connect_timeout,
        read_timeout=cfg.read_timeout,
        retries={"max_attempts": 2, "mode": "standard"},
    )
    return boto3.client(
        "s3",
        endpoint_url=cfg.endpoint_url,
        aws_access_key_id=cfg.access_key_id,
        aws_secret_access_key=cfg.secret_access_key,
        region_name=cfg.region,
        use_ssl=cfg.use_ssl,
        config=bc,
    )


def public_url(cfg: S3Config, key: str) -> str:
    return f"{cfg.public_base_url}/{quote(key, safe='/')}"


def put_bytes(*, key: str, data: bytes, content_type: str) -> str:
    """
    Upload `data` under `key` and return its public address.
    Overwrites an existing object with the same key, so re-uploading an order's
    invoice always resolves to the same address.
    """
    cfg = get_s3_config()
    if not cfg:
        raise RuntimeError("S3 not configured")
    c = _client(cfg)
    params = {
        "Bucket": cfg.bucket,
        "Key": key,
        "Body": data or b"",
        "ContentType": content_type or "application/octet-stream",
    }
    if cfg.object_acl:
        params["ACL"] = cfg.object_acl
    c.put_object(**params)
    return public_url(cfg, key)


def delete_object(*, key: str) -> None:
    cfg = get_s3_config()
    if not cfg:
        raise RuntimeError("S3 not configured")
    c = _client(cfg)
    c.delete_object(Bucket=cfg.bucket, Key=key)
