"""API 依赖注入"""
from fastapi import Request

from confighost.configuration.base import Configuration
from confighost.hosting.environment import HostingEnvironment


def get_configuration(request: Request) -> Configuration:
    """获取宿主构建时生成的配置（只读）"""
    return request.app.state.configuration


def get_environment(request: Request) -> HostingEnvironment:
    """获取宿主环境"""
    return request.app.state.environment
