"""
宿主运行时
持有配置、环境和 Web 应用，负责阻塞运行直到收到关闭信号
"""
import threading
from collections.abc import Sequence
from urllib.parse import urlsplit

import structlog
import uvicorn
from fastapi import FastAPI

from confighost.configuration.base import Configuration, ConfigurationSource
from confighost.core.config import HostSettings
from confighost.hosting.environment import HostingEnvironment

logger = structlog.get_logger()


class Host:
    """已构建的宿主"""

    def __init__(
        self,
        app: FastAPI,
        configuration: Configuration,
        environment: HostingEnvironment,
        settings: HostSettings,
        sources: Sequence[ConfigurationSource] = (),
    ):
        self.app = app
        self.configuration = configuration
        self.environment = environment
        self.settings = settings
        self.sources = tuple(sources)
        self._server: uvicorn.Server | None = None
        self._stop_requested = threading.Event()

    def bind_address(self) -> tuple[str, int]:
        """监听地址：优先读取配置项 urls (取第一个)，否则使用宿主默认值"""
        urls = self.configuration.get("urls")
        if urls:
            first = urls.split(";")[0].strip()
            parts = urlsplit(first)
            host = parts.hostname or self.settings.HOST
            if host in ("*", "+"):
                host = "0.0.0.0"
            return host, parts.port if parts.port is not None else self.settings.PORT
        return self.settings.HOST, self.settings.PORT

    def create_server(self) -> uvicorn.Server:
        host, port = self.bind_address()
        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level=self.settings.LOG_LEVEL.lower(),
            log_config=None,
            timeout_graceful_shutdown=self.settings.SHUTDOWN_TIMEOUT,
        )
        return uvicorn.Server(config)

    @property
    def started(self) -> bool:
        """服务器正在监听且未收到关闭请求"""
        server = self._server
        return bool(server is not None and server.started and not server.should_exit)

    def run(self) -> None:
        """阻塞运行，直到收到 SIGINT/SIGTERM 或调用 stop()"""
        self._server = self.create_server()
        if self._stop_requested.is_set():
            self._server.should_exit = True

        host, port = self.bind_address()
        logger.info(
            "Starting host",
            environment=self.environment.environment_name,
            host=host,
            port=port,
        )
        try:
            self._server.run()
        finally:
            self._server = None
        logger.info("Host stopped")

    def stop(self) -> None:
        """请求有序关闭，可在任意线程调用"""
        self._stop_requested.set()
        server = self._server
        if server is not None:
            server.should_exit = True
