"""ImageVault - Token Models

自动化令牌存储模型
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime

from imagevault.database.config import Base


class AutomationToken(Base):
    """自动化令牌模型

    长期有效（默认 10 年），按 token_id 单独撤销。
    删除记录即撤销：认证网关对自动化令牌会回查本表。
    """
    __tablename__ = "automation_tokens"

    token_id = Column(String(36), primary_key=True)
    token = Column(Text, nullable=False)
    created_by = Column(String(100), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
