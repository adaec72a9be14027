from __future__ import annotations

from dataclasses import dataclass

import boto3
from botocore.exceptions import ClientError


_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass
class S3Config:
    endpoint: str | None
    access_key: str
    secret_key: str
    bucket: str
    region: str | None = None


def client(cfg: S3Config):
    sess = boto3.session.Session()
    return sess.client(
        "s3",
        endpoint_url=cfg.endpoint,
        aws_access_key_id=cfg.access_key,
        aws_secret_access_key=cfg.secret_key,
        region_name=cfg.region,
    )


def upload_bytes(cfg: S3Config, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
    s3 = client(cfg)
    s3.put_object(Bucket=cfg.bucket, Key=key, Body=data, ContentType=content_type)


def download_bytes(cfg: S3Config, key: str) -> tuple[bytes, str | None] | None:
    """Fetch an object body and its stored content type.

    Returns None when the key does not exist; every other client error propagates.
    """
    s3 = client(cfg)
    try:
        obj = s3.get_object(Bucket=cfg.bucket, Key=key)
    except ClientError as exc:
        code = str(exc.response.get("Error", {}).get("Code", ""))
        if code in _NOT_FOUND_CODES:
            return None
        raise
    body = obj["Body"]
    try:
        data = body.read()
    finally:
        body.close()
    return data, obj.get("ContentType")


def check_bucket(cfg: S3Config) -> None:
    client(cfg).head_bucket(Bucket=cfg.bucket)
