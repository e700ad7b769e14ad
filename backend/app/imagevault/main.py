"""ImageVault - Application Entry

应用工厂：进程级依赖（配置、对象存储客户端、各服务）在这里创建一次，
挂到 app.state 上供路由依赖获取。
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from imagevault.api.v1.routes import router as v1_router
from imagevault.core.config import Settings, settings as default_settings
from imagevault.core.errors import INTERNAL_ERROR, VALIDATION_ERROR, RegistryError, make_error
from imagevault.database.config import build_engine, build_session_factory, init_db
from imagevault.logging_config import setup_logging
from imagevault.services.artifact_pipeline import ArtifactPipeline
from imagevault.services.auth_service import AuthService
from imagevault.services.token_service import TokenLifecycleManager
from imagevault.storage.object_store import ObjectStore, S3ObjectStore

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """统一错误响应：{"error": ..., "kind": ...}，不泄露堆栈"""

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.kind}", exc_info=exc.__cause__)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=make_error(VALIDATION_ERROR))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=make_error(INTERNAL_ERROR))


def create_app(
    settings: Optional[Settings] = None,
    object_store: Optional[ObjectStore] = None,
) -> FastAPI:
    settings = settings or default_settings
    store = object_store or S3ObjectStore.from_settings(settings)
    engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        if settings.AUTO_CREATE_TABLES:
            init_db(bind=app.state.engine)
        # 接收上传前确保 bucket 存在
        store.ensure_bucket()
        logger.info(f"ImageVault ready (bucket={store.bucket})")
        yield
        app.state.engine.dispose()

    app = FastAPI(title="ImageVault", lifespan=lifespan)

    auth_service = AuthService(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.object_store = store
    app.state.auth_service = auth_service
    app.state.token_manager = TokenLifecycleManager(settings, auth_service)
    app.state.artifact_pipeline = ArtifactPipeline(store, upload_dir=settings.UPLOAD_DIR)

    register_exception_handlers(app)
    app.include_router(v1_router)

    @app.get("/health", response_class=PlainTextResponse, include_in_schema=False)
    def health():
        return "Server is running!"

    return app


app = create_app()
