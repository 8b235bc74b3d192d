"""通用响应模型"""
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """错误详情"""

    code: str = Field(..., description="错误码")
    message: str = Field(..., description="错误信息")
    details: dict[str, Any] | None = Field(default=None, description="详细信息")


class APIResponse(BaseModel, Generic[T]):
    """统一 API 响应格式"""

    success: bool = Field(..., description="是否成功")
    data: T | None = Field(default=None, description="响应数据")
    error: ErrorDetail | None = Field(default=None, description="错误信息")
    message: str | None = Field(default=None, description="提示信息")

    @classmethod
    def ok(cls, data: T | None = None, message: str | None = None) -> "APIResponse[T]":
        """成功响应"""
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "APIResponse[None]":
        """失败响应"""
        return cls(
            success=False,
            error=ErrorDetail(code=code, message=message, details=details),
        )


class HealthStatus(BaseModel):
    """健康检查结果"""

    status: str = Field(..., description="整体状态")
    application: str = Field(..., description="应用名称")
    environment: str = Field(..., description="部署环境")
    config_server: list[dict[str, Any]] = Field(default_factory=list, description="远程配置源状态")
