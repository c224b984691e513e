"""녹화 파일이 저장된 S3 호환 오브젝트 스토리지 클라이언트입니다."""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.utils.errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageObject:
    key: str
    size: int
    last_modified: Optional[datetime]


class S3StorageClient:
    def __init__(self, bucket: Optional[str] = None, region: Optional[str] = None, client=None):
        self.bucket = bucket if bucket is not None else settings.AWS_S3_BUCKET_NAME
        self.region = region or settings.AWS_REGION
        self._client = client

    def _s3(self):
        if not self.bucket:
            raise ProviderError("녹화 저장소(AWS_S3_BUCKET_NAME)가 설정되지 않았습니다.")
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            )
        return self._client

    def list_objects(self, prefix: str) -> list[StorageObject]:
        objects = []
        try:
            paginator = self._s3().get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    last_modified = item.get("LastModified")
                    if isinstance(last_modified, datetime) and last_modified.tzinfo is not None:
                        last_modified = last_modified.replace(tzinfo=None) - last_modified.utcoffset()
                    objects.append(
                        StorageObject(key=item["Key"], size=int(item.get("Size") or 0), last_modified=last_modified)
                    )
        except (BotoCoreError, ClientError) as exc:
            raise ProviderError(f"녹화 저장소 조회 실패({prefix}): {exc}") from exc
        logger.debug("[storage] listed %s object(s) under %s", len(objects), prefix)
        return objects

    def sign(self, key: str, ttl_seconds: Optional[int] = None) -> str:
        try:
            return self._s3().generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=settings.clamp_signed_url_ttl(ttl_seconds),
            )
        except (BotoCoreError, ClientError) as exc:
            raise ProviderError(f"녹화 URL 서명 실패({key}): {exc}") from exc

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        """이 버킷을 가리키는 원본 URL 이면 오브젝트 키를, 아니면 None 을 반환합니다."""
        if not url or not self.bucket:
            return None
        parsed = urlparse(url)
        host = (parsed.netloc or "").lower()
        path = unquote(parsed.path or "").lstrip("/")
        bucket = self.bucket.lower()
        if host.startswith(f"{bucket}.s3.") or host == f"{bucket}.s3.amazonaws.com":
            return path or None
        if host.startswith("s3.") or host == "s3.amazonaws.com":
            head, _, rest = path.partition("/")
            if head.lower() == bucket and rest:
                return rest
        return None


@lru_cache(maxsize=1)
def get_storage_client() -> S3StorageClient:
    return S3StorageClient()
