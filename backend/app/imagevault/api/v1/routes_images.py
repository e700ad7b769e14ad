"""ImageVault - Image Routes

镜像制品上传、查询与删除 API 路由
"""
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from imagevault.api.deps.auth_deps import get_artifact_pipeline, get_current_identity
from imagevault.core.identity import Identity
from imagevault.database.config import get_db
from imagevault.models.artifact_schemas import (
    ArtifactDetailResponse,
    ArtifactListResponse,
    ArtifactResponse,
    BulkDeleteResponse,
    MessageResponse,
    UploadResponse,
)
from imagevault.services.artifact_pipeline import ArtifactPipeline

router = APIRouter(tags=["images"])


@router.post("/upload", response_model=UploadResponse)
def upload_image(
    file: UploadFile = File(...),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    pipeline: ArtifactPipeline = Depends(get_artifact_pipeline),
):
    """
    上传镜像文件

    同步路由在线程池中执行，客户端断开不会中断写入流程。
    """
    artifact = pipeline.ingest(
        db,
        file.file,
        file.filename,
        identity,
        content_type=file.content_type,
    )
    return UploadResponse(image=ArtifactResponse.model_validate(artifact))


@router.get("/images", response_model=ArtifactListResponse)
def list_images(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    pipeline: ArtifactPipeline = Depends(get_artifact_pipeline),
):
    """制品列表（新到旧）"""
    artifacts = pipeline.list(db)
    return ArtifactListResponse(images=[ArtifactResponse.model_validate(a) for a in artifacts])


@router.get("/images/{image_id}", response_model=ArtifactDetailResponse)
def get_image(
    image_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    pipeline: ArtifactPipeline = Depends(get_artifact_pipeline),
):
    """获取制品详情"""
    artifact = pipeline.get(db, image_id)
    return ArtifactDetailResponse(image=ArtifactResponse.model_validate(artifact))


@router.delete("/images/{image_id}", response_model=MessageResponse)
def delete_image(
    image_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    pipeline: ArtifactPipeline = Depends(get_artifact_pipeline),
):
    """删除制品（先删对象，再删记录）"""
    pipeline.delete(db, image_id)
    return MessageResponse(message="Image deleted successfully")


@router.delete("/delete-all-images", response_model=BulkDeleteResponse)
def delete_all_images(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    pipeline: ArtifactPipeline = Depends(get_artifact_pipeline),
):
    """删除全部制品，遇到第一个失败即中止"""
    deleted_count = pipeline.delete_all(db)
    if deleted_count == 0:
        return BulkDeleteResponse(message="No images found to delete.")
    return BulkDeleteResponse(message="All images deleted successfully.", deleted_count=deleted_count)
