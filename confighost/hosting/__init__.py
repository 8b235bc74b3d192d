"""Hosting module"""
from confighost.hosting.builder import HostBuilder, HostBuilderContext
from confighost.hosting.environment import HostingEnvironment
from confighost.hosting.host import Host

__all__ = [
    "Host",
    "HostBuilder",
    "HostBuilderContext",
    "HostingEnvironment",
]
