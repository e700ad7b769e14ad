"""ImageVault - Token Lifecycle Service

自动化令牌的签发、列举与撤销，独立于登录会话。
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from imagevault.core.config import Settings
from imagevault.core.errors import NotFoundError
from imagevault.core.identity import Identity
from imagevault.database.token_models import AutomationToken
from imagevault.services.auth_service import AuthService

logger = logging.getLogger(__name__)


def add_years(value: datetime, years: int) -> datetime:
    """按日历年累加（2 月 29 日回退到 28 日）"""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


class TokenLifecycleManager:
    """自动化令牌生命周期管理"""

    def __init__(self, settings: Settings, auth_service: AuthService):
        self.settings = settings
        self.auth_service = auth_service

    def issue(self, db: Session, identity: Identity) -> AutomationToken:
        """签发并持久化一个新的自动化令牌"""
        now = datetime.now(timezone.utc)
        # JWT exp 只精确到秒，持久化时间与之保持一致
        expires_at = add_years(now, self.settings.AUTOMATION_TOKEN_TTL_YEARS).replace(microsecond=0)
        token_id = str(uuid.uuid4())

        record = AutomationToken(
            token_id=token_id,
            token=self.auth_service.create_automation_token(token_id, expires_at),
            created_by=identity.uploaded_by,
            expires_at=expires_at,
            created_at=now,
        )
        db.add(record)
        db.commit()
        db.refresh(record)

        logger.info(f"Automation token {token_id} issued by {record.created_by}")
        return record

    def revoke(self, db: Session, token_id: str) -> None:
        """删除令牌记录，网关随即拒绝该令牌

        Raises:
            NotFoundError: token_id 不存在
        """
        deleted = db.query(AutomationToken).filter(
            AutomationToken.token_id == token_id
        ).delete(synchronize_session=False)
        db.commit()

        if deleted == 0:
            raise NotFoundError("Token not found")
        logger.info(f"Automation token {token_id} revoked")

    def list(self, db: Session) -> list[AutomationToken]:
        """列出全部令牌（包含令牌原文，仅对已认证调用方开放）"""
        return (
            db.query(AutomationToken)
            .order_by(AutomationToken.created_at.asc(), AutomationToken.token_id.asc())
            .all()
        )

    def cleanup_expired(self, db: Session) -> int:
        """清理已过期的令牌记录

        Returns:
            删除的数量
        """
        now = datetime.now(timezone.utc)
        deleted = db.query(AutomationToken).filter(
            AutomationToken.expires_at < now
        ).delete(synchronize_session=False)
        db.commit()

        if deleted:
            logger.info(f"Cleaned up {deleted} expired automation tokens")
        return deleted
