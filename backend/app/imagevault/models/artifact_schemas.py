"""ImageVault - Artifact Schemas"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class ArtifactResponse(BaseModel):
    id: int
    name: str
    url: str
    content_type: Optional[str] = None
    size: Optional[int] = None
    uploaded_by: str
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UploadResponse(BaseModel):
    message: str = "Image uploaded successfully"
    image: ArtifactResponse


class ArtifactDetailResponse(BaseModel):
    image: ArtifactResponse


class ArtifactListResponse(BaseModel):
    images: list[ArtifactResponse]


class MessageResponse(BaseModel):
    message: str


class BulkDeleteResponse(BaseModel):
    """批量删除响应"""
    message: str
    deleted_count: int = 0
