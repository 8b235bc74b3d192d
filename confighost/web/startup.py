"""
默认 Web 管道
- CORS (配置项 cors:origins，逗号分隔)
- 全局异常处理
- 健康检查
"""
import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from confighost.configuration.base import Configuration
from confighost.configuration.config_server import ConfigServerSource
from confighost.hosting.environment import HostingEnvironment
from confighost.models import APIResponse, HealthStatus
from confighost.web.deps import get_environment

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health", response_model=APIResponse[HealthStatus])
async def health_check(
    request: Request,
    environment: HostingEnvironment = Depends(get_environment),
):
    """健康检查"""
    host = getattr(request.app.state, "host", None)
    reports = []
    if host is not None:
        reports = [s.status_report() for s in host.sources if isinstance(s, ConfigServerSource)]

    # 配置中心不可用时服务仍可运行，只标记为降级
    status = "degraded" if any(r["status"] == "failed" for r in reports) else "healthy"
    return APIResponse.ok(
        data=HealthStatus(
            status=status,
            application=environment.application_name,
            environment=environment.environment_name,
            config_server=reports,
        )
    )


def _cors_origins(configuration: Configuration) -> list[str]:
    raw = configuration.get("cors:origins", "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def configure(app: FastAPI) -> None:
    """注册路由与中间件"""
    configuration: Configuration = app.state.configuration

    origins = _cors_origins(configuration)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    debug = configuration.get("debug", "false").lower() == "true"

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """全局异常处理"""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        body = APIResponse.fail(
            code="INTERNAL_ERROR",
            message=str(exc) if debug else "服务器内部错误",
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    app.include_router(router)
