"""ImageVault - 认证依赖

提供服务实例获取与 get_current_identity 鉴权依赖。
服务实例在 create_app() 中创建一次，挂在 app.state 上。
"""
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from imagevault.core.identity import Identity
from imagevault.database.config import get_db
from imagevault.services.artifact_pipeline import ArtifactPipeline
from imagevault.services.auth_service import AuthService
from imagevault.services.token_service import TokenLifecycleManager


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_artifact_pipeline(request: Request) -> ArtifactPipeline:
    return request.app.state.artifact_pipeline


def get_token_manager(request: Request) -> TokenLifecycleManager:
    return request.app.state.token_manager


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """Authorization header 直接携带令牌；兼容带 Bearer 前缀的客户端"""
    if authorization is None:
        return None
    token = authorization.strip()
    if token[:7].lower() == "bearer ":
        token = token[7:].strip()
    return token or None


def get_current_identity(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> Identity:
    """从 Authorization header 解析调用方身份

    Raises:
        MissingCredential: 401 未提供令牌
        InvalidCredential: 400 令牌无效、过期或已撤销
    """
    return auth_service.authorize(db, extract_token(authorization))
