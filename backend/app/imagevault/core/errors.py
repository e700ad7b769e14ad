"""ImageVault - Error Taxonomy

业务错误类型定义。每个错误携带机器可读的 kind、HTTP 状态码与默认提示，
由 main.py 中的异常处理器统一渲染为 {"error": ..., "kind": ...}。
"""

from __future__ import annotations

from typing import Any


# ==================== 错误类型标识 ====================

AUTH_ERROR = "auth_error"
MISSING_CREDENTIAL = "missing_credential"
INVALID_CREDENTIAL = "invalid_credential"
INVALID_CREDENTIALS = "invalid_credentials"
NOT_FOUND = "not_found"
STORE_ERROR = "store_error"
STORE_WRITE_ERROR = "store_write_error"
BULK_DELETE_ERROR = "bulk_delete_error"
VALIDATION_ERROR = "validation_error"
INTERNAL_ERROR = "internal_error"


# ==================== 默认错误消息 ====================

ERROR_MESSAGES = {
    AUTH_ERROR: "Authentication failed",
    MISSING_CREDENTIAL: "Access denied",
    INVALID_CREDENTIAL: "Invalid token",
    INVALID_CREDENTIALS: "Invalid email or password",
    NOT_FOUND: "Not found",
    STORE_ERROR: "Object store operation failed",
    STORE_WRITE_ERROR: "Image upload failed",
    BULK_DELETE_ERROR: "Failed to delete images",
    VALIDATION_ERROR: "Invalid request",
    INTERNAL_ERROR: "Internal server error",
}


class RegistryError(Exception):
    """所有业务错误的基类"""

    kind: str = INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str | None = None, **extra: Any):
        self.message = message or ERROR_MESSAGES.get(self.kind, "Unknown error")
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """渲染为响应体（不包含堆栈或内部细节）"""
        body: dict[str, Any] = {"error": self.message, "kind": self.kind}
        body.update(self.extra)
        return body


class AuthError(RegistryError):
    kind = AUTH_ERROR
    status_code = 401


class MissingCredential(AuthError):
    """请求未携带凭证"""
    kind = MISSING_CREDENTIAL
    status_code = 401


class InvalidCredential(AuthError):
    """凭证签名、过期或撤销校验失败"""
    kind = INVALID_CREDENTIAL
    status_code = 400


class InvalidCredentials(AuthError):
    """登录失败：邮箱不存在与密码错误返回同一错误"""
    kind = INVALID_CREDENTIALS
    status_code = 400


class NotFoundError(RegistryError):
    kind = NOT_FOUND
    status_code = 404


class StoreError(RegistryError):
    """对象存储不可达或操作失败"""
    kind = STORE_ERROR
    status_code = 500


class StoreWriteError(StoreError):
    kind = STORE_WRITE_ERROR


class BulkDeleteError(StoreError):
    """批量删除在某一项失败后中止"""
    kind = BULK_DELETE_ERROR

    def __init__(self, message: str | None = None, *, deleted_count: int, failed_id: int):
        super().__init__(message, deleted_count=deleted_count, failed_id=failed_id)
        self.deleted_count = deleted_count
        self.failed_id = failed_id


class ValidationError(RegistryError):
    kind = VALIDATION_ERROR
    status_code = 400


class InternalError(RegistryError):
    kind = INTERNAL_ERROR
    status_code = 500


def make_error(kind: str, message: str | None = None) -> dict[str, Any]:
    """为非 RegistryError 的异常构建统一错误体"""
    return {
        "error": message or ERROR_MESSAGES.get(kind, "Unknown error"),
        "kind": kind,
    }
