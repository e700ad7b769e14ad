"""ImageVault - Object Store Adapter

对象存储适配层：单一 bucket 内的对象写入、读取与删除。
仅由 ArtifactPipeline 调用（启动时的 ensure_bucket 除外）。

错误处理约定：
- botocore 的所有异常都包装为 StoreError / StoreWriteError
- 不做额外重试，重试策略由 botocore 自身配置负责
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote, urlsplit

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from imagevault.core.config import Settings
from imagevault.core.errors import StoreError, StoreWriteError

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}
# 单次 PUT 上限 5 GB，大文件走分片上传
_MULTIPART_THRESHOLD = 64 * 1024 * 1024


def _is_missing(exc: ClientError) -> bool:
    code = str(exc.response.get("Error", {}).get("Code", ""))
    return code in _MISSING_CODES


class ObjectStore(ABC):
    """对象存储抽象

    locator（对外 url）与对象 key 的互相转换在此统一实现，
    元数据中只保存 locator。
    """

    def __init__(self, bucket: str, public_base_url: str):
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

    def locator_for(self, key: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(key)}"

    @staticmethod
    def key_from_locator(locator: str) -> str:
        """从 locator 中取出对象 key（url 路径最后一段）"""
        path = urlsplit(locator).path
        key = unquote(path.rsplit("/", 1)[-1])
        if not key:
            raise StoreError("Malformed storage locator")
        return key

    @abstractmethod
    def ensure_bucket(self) -> None:
        """bucket 不存在时创建（幂等）"""

    @abstractmethod
    def put_file(self, key: str, path: Path, content_type: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def get_bytes(self, key: str) -> bytes:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...


class S3ObjectStore(ObjectStore):
    """S3 / MinIO 实现

    Usage::

        store = S3ObjectStore(
            bucket="docker-images",
            endpoint_url="http://localhost:9000",
            access_key="minioadmin",
            secret_key="minioadmin",
        )
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region_name: str = "us-east-1",
        public_base_url: Optional[str] = None,
        client=None,
        transfer_config: Optional[TransferConfig] = None,
    ):
        super().__init__(bucket, public_base_url or endpoint_url)
        self._endpoint_url = endpoint_url
        self._access_key = access_key
        self._secret_key = secret_key
        self._region_name = region_name
        self._client = client
        self._transfer_config = transfer_config or TransferConfig(multipart_threshold=_MULTIPART_THRESHOLD)

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore":
        return cls(
            bucket=settings.BUCKET_NAME,
            endpoint_url=settings.minio_endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            region_name=settings.MINIO_REGION,
            public_base_url=settings.public_base_url,
        )

    @property
    def client(self):
        # 延迟创建，进程内复用（boto3 client 线程安全）
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self._endpoint_url,
                aws_access_key_id=self._access_key,
                aws_secret_access_key=self._secret_key,
                region_name=self._region_name,
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        return self._client

    def ensure_bucket(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return
        except ClientError as e:
            if not _is_missing(e):
                raise StoreError("Object store unreachable") from e
        except BotoCoreError as e:
            raise StoreError("Object store unreachable") from e

        kwargs = {"Bucket": self.bucket}
        if self._region_name != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region_name}
        try:
            self.client.create_bucket(**kwargs)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            # 并发启动时可能被其他实例抢先创建
            if code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                raise StoreError("Failed to create bucket") from e
        except BotoCoreError as e:
            raise StoreError("Failed to create bucket") from e
        logger.info("Bucket '%s' created.", self.bucket)

    def put_file(self, key: str, path: Path, content_type: Optional[str] = None) -> None:
        """写入对象；超过阈值的文件由 boto3 自动切换为分片上传"""
        extra = {"ContentType": content_type} if content_type else None
        try:
            self.client.upload_file(str(path), self.bucket, key, ExtraArgs=extra, Config=self._transfer_config)
        except (BotoCoreError, ClientError, S3UploadFailedError) as e:
            raise StoreWriteError() from e
        logger.info("Stored object %s/%s", self.bucket, key)

    def get_bytes(self, key: str) -> bytes:
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise StoreError("Failed to read object") from e

    def remove(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StoreError("Failed to delete image") from e
        logger.info("Removed object %s/%s", self.bucket, key)

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StoreError("Failed to stat object") from e
        except BotoCoreError as e:
            raise StoreError("Failed to stat object") from e
