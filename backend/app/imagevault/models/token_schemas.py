"""ImageVault - Token Schemas

自动化令牌 Pydantic 模型。列表接口会返回令牌原文，仅对已认证调用方开放。
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class AutomationTokenResponse(BaseModel):
    token_id: str
    token: str
    created_by: Optional[str] = None
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenIssueResponse(BaseModel):
    message: str = "Token generated and stored successfully"
    token: AutomationTokenResponse


class TokenListResponse(BaseModel):
    message: str = "All tokens retrieved successfully"
    tokens: list[AutomationTokenResponse]
