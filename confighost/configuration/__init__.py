"""Configuration module"""
from confighost.configuration.base import (
    Configuration,
    ConfigurationBuilder,
    ConfigurationProvider,
    ConfigurationSource,
)
from confighost.configuration.sources import (
    CommandLineSource,
    EnvironmentVariablesSource,
    JsonFileSource,
    MemorySource,
)
from confighost.configuration.config_server import (
    ConfigServerClientSettings,
    ConfigServerSource,
    add_config_server,
)

__all__ = [
    "Configuration",
    "ConfigurationBuilder",
    "ConfigurationProvider",
    "ConfigurationSource",
    "CommandLineSource",
    "EnvironmentVariablesSource",
    "JsonFileSource",
    "MemorySource",
    "ConfigServerClientSettings",
    "ConfigServerSource",
    "add_config_server",
]
