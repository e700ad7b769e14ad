from fastapi import APIRouter

from imagevault.api.v1.routes_auth import router as auth_router
from imagevault.api.v1.routes_images import router as images_router
from imagevault.api.v1.routes_tokens import router as tokens_router

# 路由保持与既有客户端一致，挂在根路径下
router = APIRouter()

router.include_router(auth_router)
router.include_router(images_router)
router.include_router(tokens_router)
