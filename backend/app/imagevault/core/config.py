from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IV_", env_file=".env", extra="ignore")

    ENV: str = Field(default="dev")

    # 关系库：优先 DB_URL，其次由 POSTGRES_* 拼接，最后回退 SQLite
    DB_URL: str | None = Field(default=None)
    POSTGRES_HOST: str | None = Field(default=None)
    POSTGRES_PORT: int = Field(default=5432)
    POSTGRES_DB: str = Field(default="imagevault")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="")
    AUTO_CREATE_TABLES: bool = Field(default=True)

    # 令牌签名
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = Field(default="HS256")
    SESSION_TOKEN_TTL_HOURS: int = Field(default=1, ge=1)
    AUTOMATION_TOKEN_TTL_YEARS: int = Field(default=10, ge=1)

    # 密码哈希（bcrypt cost factor，可按部署机器调节）
    PASSWORD_HASH_ALGORITHM: Literal["bcrypt"] = Field(default="bcrypt")
    PASSWORD_HASH_ROUNDS: int = Field(default=12, ge=4, le=31)

    # 对象存储（MinIO / S3 兼容）
    MINIO_HOST: str = Field(default="localhost")
    MINIO_PORT: int = Field(default=9000)
    MINIO_ACCESS_KEY: str = Field(default="minioadmin")
    MINIO_SECRET_KEY: str = Field(default="minioadmin")
    MINIO_SECURE: bool = Field(default=False)
    MINIO_REGION: str = Field(default="us-east-1")
    MINIO_PUBLIC_URL: str | None = Field(default=None)
    BUCKET_NAME: str = Field(default="docker-images")

    UPLOAD_DIR: str = Field(default="./uploads")

    LOG_DIR: str = Field(default="logs")
    LOG_LEVEL: str = Field(default="INFO")

    @property
    def database_url(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        if self.POSTGRES_HOST:
            return (
                f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        return "sqlite:///./imagevault.db"

    @property
    def minio_endpoint(self) -> str:
        scheme = "https" if self.MINIO_SECURE else "http"
        return f"{scheme}://{self.MINIO_HOST}:{self.MINIO_PORT}"

    @property
    def public_base_url(self) -> str:
        """对外可见的对象地址前缀（默认与 endpoint 相同）"""
        return (self.MINIO_PUBLIC_URL or self.minio_endpoint).rstrip("/")


settings = Settings()
