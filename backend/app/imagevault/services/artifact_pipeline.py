"""ImageVault - Artifact Pipeline

制品写入与删除编排：对象存储与元数据表的一致性由这里保证。

顺序约定：
- 写入：先落对象，再插元数据行；对象写失败则不碰元数据
- 删除：先删对象，再删元数据行；对象删失败则保留行
- 元数据插入失败时允许遗留孤儿对象（记录 ERROR 日志），不允许悬空行
"""
from __future__ import annotations

import logging
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import BinaryIO, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from imagevault.core.errors import (
    BulkDeleteError,
    InternalError,
    NotFoundError,
    StoreError,
    StoreWriteError,
    ValidationError,
)
from imagevault.core.identity import Identity
from imagevault.database.artifact_models import NAME_MAX_LENGTH, Artifact
from imagevault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

_COPY_CHUNK = 1024 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_NAME_IN_KEY = 128


def sanitize_name(display_name: str) -> str:
    """把原始文件名转换为可放进对象 key 的片段"""
    base = display_name.replace("\\", "/").rsplit("/", 1)[-1]
    # 只去掉开头的点，保留扩展名
    safe = _UNSAFE_CHARS.sub("_", base).lstrip(".")[:_MAX_NAME_IN_KEY]
    if not safe.strip("_."):
        return "artifact"
    return safe


def generate_object_key(display_name: str) -> str:
    """时间戳 + 随机串 + 文件名，保证 key 不复用"""
    return f"docker-{int(time.time() * 1000)}-{uuid4().hex[:12]}-{sanitize_name(display_name)}"


class ArtifactPipeline:
    """制品写入/删除服务"""

    def __init__(self, store: ObjectStore, upload_dir: str = "uploads"):
        self.store = store
        self.upload_dir = Path(upload_dir)

    # ========== 写入 ==========

    def ingest(
        self,
        db: Session,
        stream: BinaryIO,
        display_name: Optional[str],
        identity: Identity,
        content_type: Optional[str] = None,
    ) -> Artifact:
        """
        写入一个制品

        Args:
            db: 数据库会话
            stream: 上传内容
            display_name: 原始文件名
            identity: 网关输出的调用方身份
            content_type: MIME 类型（可选）

        Returns:
            新建的 Artifact 行

        Raises:
            ValidationError: 未提供文件名或文件名过长
            StoreWriteError: 对象写入失败（未写元数据）
            InternalError: 元数据写入失败（对象已成为孤儿）
        """
        if not display_name or not display_name.strip():
            raise ValidationError("No file uploaded")
        if len(display_name) > NAME_MAX_LENGTH:
            raise ValidationError(f"File name must be at most {NAME_MAX_LENGTH} characters")

        # 暂存目录在首次写入时创建
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        staging = tempfile.NamedTemporaryFile(dir=self.upload_dir, prefix="staging-", delete=False)
        staging_path = Path(staging.name)
        try:
            with staging:
                shutil.copyfileobj(stream, staging, _COPY_CHUNK)
            size = staging_path.stat().st_size

            key = generate_object_key(display_name)
            try:
                self.store.put_file(key, staging_path, content_type)
            except StoreWriteError:
                logger.warning(f"Object write failed for {key}, metadata untouched")
                raise
            except StoreError as e:
                raise StoreWriteError() from e

            artifact = Artifact(
                name=display_name,
                url=self.store.locator_for(key),
                content_type=content_type,
                size=size,
                uploaded_by=identity.uploaded_by,
            )
            try:
                db.add(artifact)
                db.commit()
                db.refresh(artifact)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Metadata insert failed, object {key} left orphaned: {e}")
                raise InternalError("Image upload failed") from e

            logger.info(f"Artifact {artifact.id} ingested as {key} ({size} bytes) by {artifact.uploaded_by}")
            return artifact
        finally:
            self._release_staging(staging_path)

    @staticmethod
    def _release_staging(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove staging file {path}: {e}")

    # ========== 查询 ==========

    def list(self, db: Session) -> list[Artifact]:
        """按上传时间倒序，同一时间后插入者在前"""
        return (
            db.query(Artifact)
            .order_by(Artifact.uploaded_at.desc(), Artifact.id.desc())
            .all()
        )

    def get(self, db: Session, artifact_id: int) -> Artifact:
        artifact = db.query(Artifact).filter(Artifact.id == artifact_id).first()
        if artifact is None:
            raise NotFoundError("Image not found")
        return artifact

    def read_content(self, db: Session, artifact_id: int) -> bytes:
        """读取制品内容（按 locator 回查对象）"""
        artifact = self.get(db, artifact_id)
        return self.store.get_bytes(self.store.key_from_locator(artifact.url))

    # ========== 删除 ==========

    def delete(self, db: Session, artifact_id: int) -> None:
        """
        删除制品：先删对象，再删元数据行

        同一 id 的并发删除由行锁 + compare-and-delete 串行化，
        后到者得到 NotFoundError。

        Raises:
            NotFoundError: 行不存在
            StoreError: 对象删除失败（行保留）
        """
        artifact = (
            db.query(Artifact)
            .filter(Artifact.id == artifact_id)
            .with_for_update()
            .first()
        )
        if artifact is None:
            db.rollback()
            raise NotFoundError("Image not found")

        key = self.store.key_from_locator(artifact.url)
        try:
            self.store.remove(key)
        except StoreError:
            db.rollback()
            logger.error(f"Object removal failed for artifact {artifact_id} ({key}), row retained")
            raise

        deleted = db.query(Artifact).filter(Artifact.id == artifact_id).delete(synchronize_session=False)
        if deleted != 1:
            db.rollback()
            raise NotFoundError("Image not found")
        db.commit()
        logger.info(f"Artifact {artifact_id} deleted ({key})")

    def delete_all(self, db: Session) -> int:
        """
        逐个删除全部制品（新到旧），遇到第一个失败即中止

        已处理的制品对象与行均已删除；失败项及其后的制品保持原样。

        Returns:
            删除的数量

        Raises:
            BulkDeleteError: 某项对象删除失败
        """
        artifact_ids = [row.id for row in self.list(db)]
        deleted_count = 0

        for artifact_id in artifact_ids:
            try:
                self.delete(db, artifact_id)
            except NotFoundError:
                # 已被并发请求删除
                continue
            except StoreError as e:
                logger.error(
                    f"Bulk delete aborted at artifact {artifact_id} "
                    f"after {deleted_count} of {len(artifact_ids)} deleted"
                )
                raise BulkDeleteError(deleted_count=deleted_count, failed_id=artifact_id) from e
            deleted_count += 1

        return deleted_count
