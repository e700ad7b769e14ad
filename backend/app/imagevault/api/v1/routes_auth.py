"""ImageVault - 认证相关路由

登录与个人资料。
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from imagevault.api.deps.auth_deps import get_auth_service, get_current_identity
from imagevault.core.errors import NotFoundError
from imagevault.core.identity import Identity, SessionIdentity
from imagevault.database.config import get_db
from imagevault.database.user_models import User
from imagevault.models.user_schemas import LoginRequest, LoginResponse, ProfileResponse, UserResponse
from imagevault.services.auth_service import AuthService


router = APIRouter(tags=["auth"])


@router.post("/auth/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """用户登录，返回 1 小时有效的会话令牌"""
    token = auth_service.login(db, credentials.email, credentials.password)
    return LoginResponse(token=token)


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """获取当前登录用户资料（自动化令牌没有对应用户）"""
    if not isinstance(identity, SessionIdentity):
        raise NotFoundError("User not found")

    user = db.query(User).filter(User.id == identity.user_id).first()
    if not user:
        raise NotFoundError("User not found")

    return ProfileResponse(profile=UserResponse.model_validate(user))
