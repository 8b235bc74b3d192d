"""
远程配置中心客户端 (Spring Cloud Config 兼容)

客户端自身的参数从此前已加载的配置中读取，节点为 spring:cloud:config，
例如 appsettings.json 或环境变量 SPRING__CLOUD__CONFIG__URI。
"""
import re
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from confighost.configuration.base import KEY_DELIMITER, Configuration, ConfigurationBuilder, ConfigurationSource
from confighost.configuration.sources import stringify
from confighost.core.exceptions import ConfigServerError
from confighost.hosting.environment import HostingEnvironment

logger = structlog.get_logger()

CONFIG_SECTION = "spring:cloud:config"
APPLICATION_NAME_KEY = "spring:application:name"
DEFAULT_URI = "http://localhost:8888"
DEFAULT_PROFILE = "default"

# 配置键 -> 模型字段
_CLIENT_KEYS = {
    "enabled": "enabled",
    "uri": "uri",
    "name": "name",
    "env": "environment",
    "label": "label",
    "username": "username",
    "password": "password",
    "token": "token",
    "timeout": "timeout",
    "validateCertificates": "validate_certificates",
    "failFast": "fail_fast",
}
_RETRY_KEYS = {
    "enabled": "enabled",
    "initialInterval": "initial_interval",
    "maxInterval": "max_interval",
    "multiplier": "multiplier",
    "maxAttempts": "max_attempts",
}


class ConfigServerRetrySettings(BaseModel):
    """重试策略（仅在 fail_fast 开启时生效）"""

    enabled: bool = False
    initial_interval: int = Field(default=1000, ge=0, description="毫秒")
    max_interval: int = Field(default=2000, ge=0, description="毫秒")
    multiplier: float = Field(default=1.1, ge=1.0)
    max_attempts: int = Field(default=6, ge=1)


class ConfigServerClientSettings(BaseModel):
    """配置中心客户端参数"""

    enabled: bool = True
    uri: str = DEFAULT_URI
    name: str = ""
    environment: str = DEFAULT_PROFILE
    label: str | None = None
    username: str | None = None
    password: str | None = None
    token: str | None = None
    timeout: int = Field(default=6000, ge=0, description="毫秒")
    validate_certificates: bool = True
    fail_fast: bool = False
    retry: ConfigServerRetrySettings = Field(default_factory=ConfigServerRetrySettings)

    @property
    def uris(self) -> list[str]:
        """支持逗号分隔的多个地址，按顺序尝试"""
        return [u.strip() for u in self.uri.split(",") if u.strip()]

    @classmethod
    def from_configuration(
        cls, configuration: Configuration, environment: HostingEnvironment
    ) -> "ConfigServerClientSettings":
        """从已加载的配置中解析客户端参数"""
        section = configuration.get_section(CONFIG_SECTION)
        values: dict[str, Any] = {
            field: section.get(key) for key, field in _CLIENT_KEYS.items() if section.get(key) is not None
        }
        retry_section = section.get_section("retry")
        values["retry"] = {
            field: retry_section.get(key) for key, field in _RETRY_KEYS.items() if retry_section.get(key) is not None
        }

        if not values.get("name"):
            values["name"] = configuration.get(APPLICATION_NAME_KEY) or environment.application_name
        if not values.get("environment"):
            values["environment"] = environment.environment_name or DEFAULT_PROFILE
        if not values.get("label"):
            values.pop("label", None)
        return cls.model_validate(values)


class PropertySource(BaseModel):
    """配置中心返回的单个属性源"""

    name: str
    source: dict[str, Any] = Field(default_factory=dict)


class ConfigEnvironment(BaseModel):
    """配置中心 /{name}/{profile}/{label} 的响应体"""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    profiles: list[str] = Field(default_factory=list)
    label: str | None = None
    version: str | None = None
    state: str | None = None
    property_sources: list[PropertySource] = Field(default_factory=list, alias="propertySources")


def convert_key(key: str) -> str:
    """'a.b[0].c' -> 'a:b:0:c'"""
    return re.sub(r"\[(\d+)\]", r".\1", key).replace(".", KEY_DELIMITER)


def _split_credentials(uri: str) -> tuple[str, tuple[str, str] | None]:
    """从地址中剥离 userinfo，返回 (地址, 认证信息)"""
    parts = urlsplit(uri)
    if not parts.username:
        return uri.rstrip("/"), None
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    stripped = urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    return stripped.rstrip("/"), (parts.username, parts.password or "")


class ConfigServerSource(ConfigurationSource):
    """远程配置源"""

    name = "config-server"

    def __init__(
        self,
        environment: HostingEnvironment,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.environment = environment
        self.transport = transport
        self._sleep = sleep
        self.settings: ConfigServerClientSettings | None = None
        self.status = "pending"
        self.result: ConfigEnvironment | None = None
        self.last_error: ConfigServerError | None = None

    def build_path(self, settings: ConfigServerClientSettings) -> str:
        segments = [settings.name, settings.environment]
        if settings.label:
            # Spring 约定：标签中的 '/' 以 '(_)' 表示
            segments.append(settings.label.replace("/", "(_)"))
        return "/" + "/".join(quote(s, safe="(),") for s in segments)

    def load(self, upstream: Configuration) -> dict[str, str]:
        settings = ConfigServerClientSettings.from_configuration(upstream, self.environment)
        self.settings = settings

        if not settings.enabled:
            self.status = "disabled"
            logger.info("Config server client disabled")
            return {}

        try:
            result = self._fetch(settings)
        except ConfigServerError as exc:
            self.status = "failed"
            self.last_error = exc
            if settings.fail_fast:
                logger.error("Config server unreachable, aborting startup", uri=exc.uri, error=str(exc))
                raise
            logger.warning(
                "Could not locate config server, continuing without remote configuration",
                uri=exc.uri,
                error=str(exc),
            )
            return {}

        if result is None:
            self.status = "not_found"
            logger.info(
                "No remote configuration found",
                name=settings.name,
                profile=settings.environment,
                label=settings.label,
            )
            return {}

        self.status = "loaded"
        self.result = result
        data = self.to_configuration_data(result)
        logger.info(
            "Loaded remote configuration",
            name=result.name,
            profiles=result.profiles,
            sources=[s.name for s in result.property_sources],
            keys=len(data),
        )
        return data

    @staticmethod
    def to_configuration_data(result: ConfigEnvironment) -> dict[str, str]:
        """展开属性源，排在前面的属性源优先"""
        data: dict[str, str] = {}
        for property_source in reversed(result.property_sources):
            for key, value in property_source.source.items():
                data[convert_key(key)] = stringify(value)
        if result.state:
            data[f"{CONFIG_SECTION}:client:state"] = result.state
        if result.version:
            data[f"{CONFIG_SECTION}:client:version"] = result.version
        return data

    def _fetch(self, settings: ConfigServerClientSettings) -> ConfigEnvironment | None:
        retry = settings.retry
        attempts = retry.max_attempts if settings.fail_fast and retry.enabled else 1
        interval = retry.initial_interval

        with httpx.Client(
            timeout=settings.timeout / 1000 if settings.timeout else None,
            verify=settings.validate_certificates,
            transport=self.transport,
        ) as client:
            for attempt in range(1, attempts + 1):
                try:
                    return self._fetch_once(client, settings)
                except ConfigServerError as exc:
                    if attempt >= attempts:
                        raise
                    logger.warning(
                        "Config server request failed, retrying",
                        attempt=attempt,
                        max_attempts=attempts,
                        delay_ms=interval,
                        error=str(exc),
                    )
                    self._sleep(interval / 1000)
                    interval = min(int(interval * retry.multiplier), retry.max_interval)
        return None

    def _fetch_once(
        self, client: httpx.Client, settings: ConfigServerClientSettings
    ) -> ConfigEnvironment | None:
        path = self.build_path(settings)
        headers = {"Accept": "application/json"}
        if settings.token:
            headers["X-Config-Token"] = settings.token

        last_error: ConfigServerError | None = None
        for uri in settings.uris:
            base, auth = _split_credentials(uri)
            if auth is None and settings.username:
                auth = (settings.username, settings.password or "")
            url = base + path

            try:
                response = client.get(url, headers=headers, auth=auth)
            except httpx.HTTPError as exc:
                last_error = ConfigServerError(f"无法连接配置中心: {exc}", uri=base)
                logger.debug("Config server request error", url=url, error=str(exc))
                continue

            if response.status_code == 404:
                return None
            if response.status_code >= 400:
                last_error = ConfigServerError(
                    f"配置中心返回错误状态码 {response.status_code}",
                    uri=base,
                    status_code=response.status_code,
                )
                continue

            try:
                return ConfigEnvironment.model_validate(response.json())
            except (ValueError, ValidationError) as exc:
                last_error = ConfigServerError(f"配置中心响应格式无效: {exc}", uri=base)
                continue

        if last_error is None:
            last_error = ConfigServerError("未配置任何配置中心地址")
        raise last_error

    def status_report(self) -> dict[str, Any]:
        """供健康检查使用的状态摘要"""
        report: dict[str, Any] = {"status": self.status}
        if self.settings is not None:
            report["uri"] = [_split_credentials(u)[0] for u in self.settings.uris]
            report["name"] = self.settings.name
            report["profile"] = self.settings.environment
        if self.result is not None:
            report["property_sources"] = [s.name for s in self.result.property_sources]
            report["version"] = self.result.version
        if self.last_error is not None:
            report["error"] = str(self.last_error)
        return report


def add_config_server(
    builder: ConfigurationBuilder,
    environment: HostingEnvironment,
    *,
    transport: httpx.BaseTransport | None = None,
) -> ConfigurationBuilder:
    """追加远程配置源（放在最后，优先级最高）"""
    builder.add(ConfigServerSource(environment, transport=transport))
    return builder
