"""ImageVault - User Schemas

用户与登录 Pydantic 模型
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    """用户登录"""
    email: str
    password: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str


class UserResponse(BaseModel):
    """用户资料（不包含密码哈希）"""
    id: UUID
    username: str
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileResponse(BaseModel):
    message: str = "Profile retrieved successfully"
    profile: UserResponse
