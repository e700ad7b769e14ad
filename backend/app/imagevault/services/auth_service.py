"""ImageVault - Auth Service

认证服务：密码校验、令牌签发与统一鉴权网关。

两类令牌（同一 JWT 密钥签名，typ 字段区分）：
- session: 登录签发，1 小时过期，无状态，不可撤销
- automation: 长期有效，签名 + 过期 + 持久化记录三重校验，删除记录即撤销
"""
import hmac
import logging
import uuid as uuid_module
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from uuid import UUID

import bcrypt
import jwt
from jwt.exceptions import InvalidTokenError
from sqlalchemy.orm import Session

from imagevault.core.config import Settings
from imagevault.core.errors import (
    InvalidCredential,
    InvalidCredentials,
    MissingCredential,
    ValidationError,
)
from imagevault.core.identity import (
    AUTOMATION,
    AutomationCredential,
    AutomationIdentity,
    Credential,
    Identity,
    SessionCredential,
    SessionIdentity,
)
from imagevault.database.token_models import AutomationToken
from imagevault.database.user_models import User

logger = logging.getLogger(__name__)

TOKEN_TYPE_SESSION = "session"
TOKEN_TYPE_AUTOMATION = "automation"

# bcrypt 只处理前 72 字节
_BCRYPT_MAX_BYTES = 72


def _as_utc(value: datetime) -> datetime:
    # SQLite 读回的时间不带时区
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    """认证服务"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._dummy_hash: Optional[str] = None

    # ========== 密码 ==========

    def hash_password(self, password: str) -> str:
        """bcrypt 哈希（cost factor 来自配置）"""
        raw = password.encode("utf-8")
        if len(raw) > _BCRYPT_MAX_BYTES:
            raise ValidationError("Password must be at most 72 bytes")
        salt = bcrypt.gensalt(rounds=self.settings.PASSWORD_HASH_ROUNDS)
        return bcrypt.hashpw(raw, salt).decode("utf-8")

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """验证密码（bcrypt.checkpw 内部为常量时间比较）"""
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # 哈希格式非法或密码超长
            return False

    def _timing_guard_hash(self) -> str:
        """未知邮箱时用于对齐耗时的占位哈希（首次使用时生成）"""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash_password("imagevault-timing-guard")
        return self._dummy_hash

    # ========== 登录 ==========

    def authenticate_user(self, db: Session, email: str, password: str) -> User:
        """按邮箱认证用户

        邮箱不存在与密码错误返回同一错误，且都执行一次 bcrypt 校验。
        """
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            self.verify_password(password, self._timing_guard_hash())
            logger.info("Login failed: unknown email")
            raise InvalidCredentials()
        if not self.verify_password(password, user.password_hash):
            logger.info(f"Login failed: bad password for user {user.id}")
            raise InvalidCredentials()
        return user

    def login(self, db: Session, email: str, password: str) -> str:
        """登录并返回会话令牌"""
        user = self.authenticate_user(db, email, password)
        token = self.create_session_token(user)
        logger.info(f"User {user.id} logged in")
        return token

    # ========== JWT 签发 ==========

    def _encode(self, payload: Dict[str, Any]) -> str:
        return jwt.encode(payload, self.settings.JWT_SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def create_session_token(self, user: User, now: Optional[datetime] = None) -> str:
        """创建会话令牌

        Args:
            user: 用户对象
            now: 签发时间（测试用，默认当前时间）

        Returns:
            JWT 令牌字符串
        """
        now = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user.id),
            "email": user.email,
            "typ": TOKEN_TYPE_SESSION,
            "iat": now,
            "exp": now + timedelta(hours=self.settings.SESSION_TOKEN_TTL_HOURS),
            "jti": str(uuid_module.uuid4()),
        }
        return self._encode(payload)

    def create_automation_token(self, token_id: str, expires_at: datetime) -> str:
        """创建自动化令牌，jti 即持久化记录的 token_id"""
        payload: Dict[str, Any] = {
            "role": AUTOMATION,
            "typ": TOKEN_TYPE_AUTOMATION,
            "jti": token_id,
            "iat": datetime.now(timezone.utc),
            "exp": expires_at,
        }
        return self._encode(payload)

    # ========== 校验 ==========

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """解码并验证签名与过期时间，失败返回 None"""
        try:
            return jwt.decode(
                token,
                self.settings.JWT_SECRET_KEY,
                algorithms=[self.settings.JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except InvalidTokenError:
            return None

    def parse_credential(self, token: str) -> Credential:
        """解码令牌为凭证变体

        Raises:
            InvalidCredential: 签名、过期或声明不完整
        """
        payload = self.decode_token(token)
        if payload is None:
            raise InvalidCredential()

        issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        token_type = payload.get("typ")

        if token_type == TOKEN_TYPE_SESSION:
            try:
                user_id = UUID(payload["sub"])
                email = payload["email"]
            except (KeyError, ValueError, TypeError):
                raise InvalidCredential()
            if not email:
                raise InvalidCredential()
            return SessionCredential(user_id=user_id, email=email, issued_at=issued_at, expires_at=expires_at)

        if token_type == TOKEN_TYPE_AUTOMATION and payload.get("role") == AUTOMATION:
            token_id = payload.get("jti")
            if not token_id:
                raise InvalidCredential()
            return AutomationCredential(token_id=token_id, issued_at=issued_at, expires_at=expires_at)

        raise InvalidCredential()

    def authorize(self, db: Session, token: Optional[str]) -> Identity:
        """统一鉴权网关

        Args:
            db: 数据库会话（自动化令牌回查用）
            token: 原始 bearer token

        Returns:
            SessionIdentity 或 AutomationIdentity

        Raises:
            MissingCredential: 未提供令牌
            InvalidCredential: 签名/过期失败，或自动化令牌已撤销
        """
        if not token:
            raise MissingCredential()

        credential = self.parse_credential(token)

        if isinstance(credential, SessionCredential):
            return SessionIdentity(user_id=credential.user_id, email=credential.email)

        record = db.query(AutomationToken).filter(
            AutomationToken.token_id == credential.token_id
        ).first()
        if record is None:
            logger.warning(f"Rejected revoked automation token {credential.token_id}")
            raise InvalidCredential()
        if not hmac.compare_digest(record.token.encode("utf-8"), token.encode("utf-8")):
            raise InvalidCredential()
        if _as_utc(record.expires_at) <= datetime.now(timezone.utc):
            raise InvalidCredential()
        return AutomationIdentity(token_id=credential.token_id)
