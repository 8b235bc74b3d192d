"""Web pipeline"""
from confighost.web.deps import get_configuration, get_environment
from confighost.web.startup import configure

__all__ = ["configure", "get_configuration", "get_environment"]
