"""
ImageVault 测试配置

统一管理测试数据库、内存对象存储替身与应用实例。
"""
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from imagevault.core.config import Settings
from imagevault.core.errors import StoreError, StoreWriteError
from imagevault.core.identity import AutomationIdentity, SessionIdentity
from imagevault.database.config import Base
from imagevault.database import artifact_models  # noqa: F401 - 注册制品模型
from imagevault.database import token_models  # noqa: F401 - 注册 Token 模型
from imagevault.database import user_models  # noqa: F401 - 注册用户模型
from imagevault.database.user_models import User
from imagevault.main import create_app
from imagevault.services.artifact_pipeline import ArtifactPipeline
from imagevault.services.auth_service import AuthService
from imagevault.services.token_service import TokenLifecycleManager
from imagevault.storage.object_store import ObjectStore

# 使用文件数据库进行测试（内存数据库有连接隔离问题）
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_EMAIL = "a@b.com"
TEST_PASSWORD = "pw1"


class InMemoryObjectStore(ObjectStore):
    """内存对象存储替身，可按需注入写入/删除失败"""

    def __init__(self):
        super().__init__(bucket="docker-images", public_base_url="http://minio.local:9000")
        self.objects: dict[str, bytes] = {}
        self.ensure_calls = 0
        self.fail_put = False
        self.fail_remove_keys: set[str] = set()

    def ensure_bucket(self) -> None:
        self.ensure_calls += 1

    def put_file(self, key: str, path: Path, content_type: Optional[str] = None) -> None:
        if self.fail_put:
            raise StoreWriteError()
        self.objects[key] = Path(path).read_bytes()

    def get_bytes(self, key: str) -> bytes:
        if key not in self.objects:
            raise StoreError("Failed to read object")
        return self.objects[key]

    def remove(self, key: str) -> None:
        if key in self.fail_remove_keys:
            raise StoreError("Failed to delete image")
        self.objects.pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self.objects


@pytest.fixture(autouse=True)
def setup_database():
    """每个测试前创建所有表，测试后清理"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """提供数据库会话"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def test_settings(tmp_path):
    """测试配置：测试库、低 bcrypt 成本、临时目录、不自动建表"""
    return Settings(
        DB_URL=SQLALCHEMY_DATABASE_URL,
        JWT_SECRET_KEY="test-secret-key",
        PASSWORD_HASH_ROUNDS=4,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_DIR=str(tmp_path / "logs"),
        AUTO_CREATE_TABLES=False,
    )


@pytest.fixture
def object_store():
    return InMemoryObjectStore()


@pytest.fixture
def app(test_settings, object_store):
    application = create_app(settings=test_settings, object_store=object_store)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    """提供测试客户端"""
    return TestClient(app)


@pytest.fixture
def auth_service(app) -> AuthService:
    return app.state.auth_service


@pytest.fixture
def token_manager(app) -> TokenLifecycleManager:
    return app.state.token_manager


@pytest.fixture
def pipeline(app) -> ArtifactPipeline:
    return app.state.artifact_pipeline


@pytest.fixture
def upload_dir(test_settings) -> Path:
    return Path(test_settings.UPLOAD_DIR)


@pytest.fixture
def user(db, auth_service) -> User:
    """已预置的测试用户 a@b.com / pw1"""
    user = User(
        username="alice",
        email=TEST_EMAIL,
        password_hash=auth_service.hash_password(TEST_PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def session_identity(user) -> SessionIdentity:
    return SessionIdentity(user_id=user.id, email=user.email)


@pytest.fixture
def automation_identity() -> AutomationIdentity:
    return AutomationIdentity(token_id="fixture-token")


@pytest.fixture
def session_token(auth_service, user) -> str:
    return auth_service.create_session_token(user)


@pytest.fixture
def auth_headers(session_token) -> dict:
    """原始令牌直接放在 Authorization header 中"""
    return {"Authorization": session_token}
