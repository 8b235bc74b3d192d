"""异常定义"""


class ConfigHostError(Exception):
    """所有宿主相关异常的基类"""


class HostBuildError(ConfigHostError):
    """宿主构建失败"""


class ConfigServerError(ConfigHostError):
    """远程配置中心访问失败"""

    def __init__(self, message: str, uri: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.uri = uri
        self.status_code = status_code
