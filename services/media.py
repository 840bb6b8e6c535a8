"""
Media uploader backed by S3 (boto3).

upload() takes a local file path and returns the public URL of the stored
object, or None when anything goes wrong. The local file is removed in every
case, so callers never have to clean up after a handoff.
"""
from __future__ import annotations

import logging
import mimetypes
import os
import uuid
from typing import Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class S3MediaUploader:
    def __init__(self, bucket: str, region: str = "us-east-1", base_url: str | None = None,
                 prefix: str = "media", client=None, **client_kwargs):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix.strip("/")
        self.base_url = (base_url or f"https://{bucket}.s3.{region}.amazonaws.com").rstrip("/")
        self.client = client or boto3.client("s3", region_name=region, **client_kwargs)

    @classmethod
    def from_config(cls, config) -> "S3MediaUploader":
        client_kwargs = {}
        if config.get("AWS_ACCESS_KEY_ID") and config.get("AWS_SECRET_ACCESS_KEY"):
            client_kwargs["aws_access_key_id"] = config["AWS_ACCESS_KEY_ID"]
            client_kwargs["aws_secret_access_key"] = config["AWS_SECRET_ACCESS_KEY"]
        return cls(
            bucket=config["S3_BUCKET"],
            region=config.get("AWS_REGION") or "us-east-1",
            base_url=config.get("MEDIA_BASE_URL") or None,
            prefix=config.get("MEDIA_PREFIX", "media"),
            **client_kwargs,
        )

    def object_key(self, local_path: str) -> str:
        _, ext = os.path.splitext(local_path)
        return f"{self.prefix}/{uuid.uuid4().hex}{ext.lower()}"

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def upload(self, local_path: Optional[str]) -> Optional[str]:
        if not local_path:
            return None
        try:
            key = self.object_key(local_path)
            content_type = mimetypes.guess_type(local_path)[0] or "application/octet-stream"
            self.client.upload_file(local_path, self.bucket, key, ExtraArgs={"ContentType": content_type})
            url = self.url_for(key)
            logger.info("Uploaded media object %s", key)
            return url
        except (Boto3Error, BotoCoreError, ClientError, OSError) as exc:
            logger.warning("Media upload failed for %s: %s", os.path.basename(local_path), exc)
            return None
        finally:
            _discard(local_path)


def _discard(path: str) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as exc:
        logger.warning("Could not remove temporary upload %s: %s", path, exc)
