"""ImageVault - Automation Token Routes

自动化令牌签发、撤销与列举
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from imagevault.api.deps.auth_deps import get_current_identity, get_token_manager
from imagevault.core.identity import Identity
from imagevault.database.config import get_db
from imagevault.models.artifact_schemas import MessageResponse
from imagevault.models.token_schemas import (
    AutomationTokenResponse,
    TokenIssueResponse,
    TokenListResponse,
)
from imagevault.services.token_service import TokenLifecycleManager

router = APIRouter(tags=["tokens"])


@router.post("/generate-token", response_model=TokenIssueResponse)
def generate_token(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    manager: TokenLifecycleManager = Depends(get_token_manager),
):
    """签发 10 年有效的自动化令牌"""
    record = manager.issue(db, identity)
    return TokenIssueResponse(token=AutomationTokenResponse.model_validate(record))


@router.delete("/delete-token/{token_id}", response_model=MessageResponse)
def delete_token(
    token_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    manager: TokenLifecycleManager = Depends(get_token_manager),
):
    """撤销自动化令牌"""
    manager.revoke(db, token_id)
    return MessageResponse(message="Token deleted successfully")


@router.get("/get-all-tokens", response_model=TokenListResponse)
def get_all_tokens(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    manager: TokenLifecycleManager = Depends(get_token_manager),
):
    """列出全部自动化令牌"""
    records = manager.list(db)
    return TokenListResponse(tokens=[AutomationTokenResponse.model_validate(r) for r in records])
