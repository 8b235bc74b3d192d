"""Core module"""
from confighost.core.config import HostSettings, get_settings
from confighost.core.exceptions import ConfigHostError, ConfigServerError, HostBuildError
from confighost.core.logging import setup_logging

__all__ = [
    "HostSettings",
    "get_settings",
    "setup_logging",
    "ConfigHostError",
    "ConfigServerError",
    "HostBuildError",
]
