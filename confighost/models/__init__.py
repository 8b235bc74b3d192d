"""Pydantic models"""
from confighost.models.common import APIResponse, ErrorDetail, HealthStatus

__all__ = ["APIResponse", "ErrorDetail", "HealthStatus"]
