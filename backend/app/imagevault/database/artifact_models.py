"""ImageVault - Artifact Models

镜像制品元数据模型
"""
from datetime import datetime, timezone
from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from imagevault.database.config import Base

# 原始文件名上限（与 name 列长度一致）
NAME_MAX_LENGTH = 255


class Artifact(Base):
    """制品元数据

    url 指向对象存储中的对象，对象 key 为 url 最后一段。
    行的创建与删除只由 ArtifactPipeline 执行。
    """
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    url = Column(String(1024), nullable=False)
    content_type = Column(String(100), nullable=True)
    size = Column(BigInteger, nullable=True)
    uploaded_by = Column(String(100), nullable=False)
    uploaded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )
