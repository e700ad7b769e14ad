"""ImageVault - Database Configuration

数据库连接配置

应用内的 engine / Session 工厂由 create_app() 按注入的配置创建并挂在 app.state 上；
模块级 engine / SessionLocal 按全局配置创建，供 CLI 使用。
"""
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from imagevault.core.config import settings

# 创建 Base 类
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """按 URL 创建引擎（连接池由 SQLAlchemy 管理）"""
    is_sqlite = database_url.startswith("sqlite")
    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=not is_sqlite,
        # SQLite 特殊配置
        connect_args={"check_same_thread": False} if is_sqlite else {}
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


DATABASE_URL = settings.database_url

engine = build_engine(DATABASE_URL)

SessionLocal = build_session_factory(engine)


def get_db(request: Request):
    """获取数据库会话（依赖注入，使用当前应用的 Session 工厂）"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """创建所有表（不负责迁移）"""
    from imagevault.database import artifact_models, token_models, user_models  # noqa: F401 - 注册模型

    Base.metadata.create_all(bind=bind or engine)
