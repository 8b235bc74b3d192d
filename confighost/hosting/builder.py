"""
宿主构建器

默认构建顺序：
1. 宿主配置（HostSettings + 命令行中的 environment/applicationName/contentRoot）
2. 应用配置：appsettings.json -> appsettings.{Environment}.json -> 环境变量 -> 命令行
3. 依次执行 configure_app_configuration 注册的回调（可追加配置源）
4. 创建 FastAPI 应用并调用 Web 管道注册函数
"""
from collections.abc import Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import FastAPI

from confighost.configuration.base import Configuration, ConfigurationBuilder
from confighost.configuration.sources import (
    CommandLineSource,
    EnvironmentVariablesSource,
    JsonFileSource,
    MemorySource,
)
from confighost.core.config import HostSettings, get_settings
from confighost.core.exceptions import HostBuildError
from confighost.core.logging import setup_logging
from confighost.hosting.environment import HostingEnvironment
from confighost.hosting.host import Host

logger = structlog.get_logger()

# 宿主配置键
ENVIRONMENT_KEY = "environment"
APPLICATION_NAME_KEY = "applicationName"
CONTENT_ROOT_KEY = "contentRoot"

HOST_SWITCH_MAPPINGS = {
    "-e": ENVIRONMENT_KEY,
    "--env": ENVIRONMENT_KEY,
}


@dataclass
class HostBuilderContext:
    """构建期上下文，传递给配置回调"""

    hosting_environment: HostingEnvironment
    configuration: Configuration
    properties: dict[str, Any] = field(default_factory=dict)


HostConfigurationCallback = Callable[[ConfigurationBuilder], None]
AppConfigurationCallback = Callable[[HostBuilderContext, ConfigurationBuilder], None]
WebPipeline = Callable[[FastAPI], None]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    environment: HostingEnvironment = app.state.environment
    logger.info(
        "Application started",
        application=environment.application_name,
        environment=environment.environment_name,
    )

    yield

    logger.info("Application shutting down")


class HostBuilder:
    """宿主构建器"""

    def __init__(self, args: Sequence[str] | None = None, settings: HostSettings | None = None):
        self.args = list(args or [])
        self.settings = settings
        self.properties: dict[str, Any] = {}
        self._host_configuration_callbacks: list[HostConfigurationCallback] = []
        self._app_configuration_callbacks: list[AppConfigurationCallback] = []
        self._web_pipeline: WebPipeline | None = None
        self._configure_logging = False
        self._built = False

    @classmethod
    def create_default(
        cls, args: Sequence[str] | None = None, settings: HostSettings | None = None
    ) -> "HostBuilder":
        """带默认配置源和日志的构建器"""
        builder = cls(args, settings)
        args = builder.args

        def add_host_command_line(config: ConfigurationBuilder) -> None:
            if args:
                config.add(CommandLineSource(args, HOST_SWITCH_MAPPINGS))

        def add_default_sources(context: HostBuilderContext, config: ConfigurationBuilder) -> None:
            env = context.hosting_environment
            config.add(JsonFileSource("appsettings.json", optional=True, base_path=env.content_root))
            if env.environment_name:
                config.add(
                    JsonFileSource(
                        f"appsettings.{env.environment_name}.json",
                        optional=True,
                        base_path=env.content_root,
                    )
                )
            config.add(EnvironmentVariablesSource())
            if args:
                config.add(CommandLineSource(args))

        builder.configure_host_configuration(add_host_command_line)
        builder.configure_app_configuration(add_default_sources)
        builder._configure_logging = True
        return builder

    def configure_host_configuration(self, callback: HostConfigurationCallback) -> "HostBuilder":
        self._host_configuration_callbacks.append(callback)
        return self

    def configure_app_configuration(self, callback: AppConfigurationCallback) -> "HostBuilder":
        self._app_configuration_callbacks.append(callback)
        return self

    def configure_web_host(self, register_web_pipeline: WebPipeline) -> "HostBuilder":
        """注册 Web 管道（路由、中间件），重复调用时以最后一次为准"""
        self._web_pipeline = register_web_pipeline
        return self

    def _build_host_configuration(self, settings: HostSettings) -> Configuration:
        config = ConfigurationBuilder()
        config.add(
            MemorySource(
                {
                    ENVIRONMENT_KEY: settings.ENVIRONMENT,
                    APPLICATION_NAME_KEY: settings.APPLICATION_NAME,
                    CONTENT_ROOT_KEY: settings.CONTENT_ROOT,
                },
                name="host-settings",
            )
        )
        for callback in self._host_configuration_callbacks:
            callback(config)
        return config.build()

    def build(self) -> Host:
        if self._built:
            raise HostBuildError("宿主只能构建一次")
        self._built = True

        settings = self.settings or get_settings()
        if self._configure_logging:
            setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

        host_configuration = self._build_host_configuration(settings)
        environment = HostingEnvironment(
            environment_name=host_configuration.get(ENVIRONMENT_KEY, ""),
            application_name=host_configuration.get(APPLICATION_NAME_KEY, settings.APPLICATION_NAME),
            content_root=host_configuration.get(CONTENT_ROOT_KEY, settings.CONTENT_ROOT),
        )
        context = HostBuilderContext(environment, host_configuration, self.properties)

        # 宿主配置作为应用配置的第一个配置源
        app_config = ConfigurationBuilder()
        app_config.add(MemorySource(dict(host_configuration), name="host"))
        for callback in self._app_configuration_callbacks:
            callback(context, app_config)
        configuration = app_config.build()
        context.configuration = configuration

        app = FastAPI(
            title=environment.application_name,
            docs_url="/docs" if environment.is_development() else None,
            redoc_url=None,
            openapi_url="/openapi.json" if environment.is_development() else None,
            lifespan=lifespan,
        )
        app.state.configuration = configuration
        app.state.environment = environment

        if self._web_pipeline is not None:
            self._web_pipeline(app)

        host = Host(app, configuration, environment, settings, sources=app_config.sources)
        app.state.host = host

        logger.info(
            "Host built",
            environment=environment.environment_name,
            sources=[p.name for p in configuration.providers],
        )
        return host
