"""ImageVault - Identity & Credential Types

认证网关输出的身份，以及令牌解码后的凭证。

- 凭证（Credential）：令牌解码结果，分会话令牌与自动化令牌两种，校验规则不同
- 身份（Identity）：网关校验通过后交给下游的调用方身份
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union
from uuid import UUID

AUTOMATION = "automation"


@dataclass(frozen=True)
class SessionCredential:
    """会话令牌：只校验签名与过期时间"""
    user_id: UUID
    email: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AutomationCredential:
    """自动化令牌：签名、过期之外还需持久化记录仍存在"""
    token_id: str
    issued_at: datetime
    expires_at: datetime


Credential = Union[SessionCredential, AutomationCredential]


@dataclass(frozen=True)
class SessionIdentity:
    user_id: UUID
    email: str

    @property
    def uploaded_by(self) -> str:
        return self.email


@dataclass(frozen=True)
class AutomationIdentity:
    token_id: str

    @property
    def uploaded_by(self) -> str:
        return AUTOMATION


Identity = Union[SessionIdentity, AutomationIdentity]
