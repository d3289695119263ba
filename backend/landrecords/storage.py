"""S3-compatible object storage for plot photos and scanned PDFs."""
from __future__ import annotations

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request

from .config import Settings, settings
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStore:
    def __init__(self, client, bucket: str):
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "ObjectStore":
        kwargs: dict = {
            "region_name": cfg.aws_region,
            "config": Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        }
        if cfg.s3_endpoint_url:
            # MinIO / Supabase / R2 style endpoints
            kwargs["endpoint_url"] = cfg.s3_endpoint_url
        # Without explicit keys boto3 falls back to the instance role / env chain
        if cfg.aws_access_key_id and cfg.aws_secret_access_key:
            kwargs["aws_access_key_id"] = cfg.aws_access_key_id
            kwargs["aws_secret_access_key"] = cfg.aws_secret_access_key
        client = boto3.client("s3", **kwargs)
        logger.info("Object store ready (bucket=%s)", cfg.s3_bucket)
        return cls(client, cfg.s3_bucket)

    def list_objects(self, prefix: str) -> list[str]:
        """All object keys under ``prefix``."""
        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for obj in page.get("Contents", []) or []:
                    keys.append(obj["Key"])
        except (BotoCoreError, ClientError) as e:
            raise UpstreamFailure(f"Listing {prefix} failed: {e}") from e
        return keys

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_CODES:
                return False
            raise UpstreamFailure(f"Lookup of {key} failed: {e}") from e
        except BotoCoreError as e:
            raise UpstreamFailure(f"Lookup of {key} failed: {e}") from e

    def sign_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=int(ttl_seconds),
            )
        except (BotoCoreError, ClientError) as e:
            raise UpstreamFailure(f"Signing {key} failed: {e}") from e


def get_store(request: Request) -> ObjectStore:
    return request.app.state.store
