"""
内置配置源
- 内存字典
- JSON 文件 (appsettings.json)
- 环境变量
- 命令行参数
"""
import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import structlog

from confighost.configuration.base import (
    KEY_DELIMITER,
    Configuration,
    ConfigurationSource,
    combine_key,
)

logger = structlog.get_logger()


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(value: Any, prefix: str = "") -> dict[str, str]:
    """将嵌套的 dict/list 展开为 'a:b:0' 形式的键"""
    result: dict[str, str] = {}
    if isinstance(value, Mapping):
        for key, child in value.items():
            result.update(flatten(child, combine_key(prefix, str(key))))
    elif isinstance(value, list):
        for index, child in enumerate(value):
            result.update(flatten(child, combine_key(prefix, str(index))))
    elif prefix:
        result[prefix] = stringify(value)
    return result


class MemorySource(ConfigurationSource):
    """内存配置源"""

    def __init__(self, data: Mapping[str, Any] | None = None, name: str = "memory"):
        self.data = dict(data or {})
        self.name = name

    def load(self, upstream: Configuration) -> dict[str, str]:
        return flatten(self.data)


class JsonFileSource(ConfigurationSource):
    """JSON 文件配置源"""

    def __init__(self, path: str | Path, optional: bool = True, base_path: str | Path | None = None):
        self.path = Path(path)
        if base_path is not None and not self.path.is_absolute():
            self.path = Path(base_path) / self.path
        self.optional = optional
        self.name = f"json:{self.path.name}"

    def load(self, upstream: Configuration) -> dict[str, str]:
        if not self.path.exists():
            if self.optional:
                return {}
            raise FileNotFoundError(f"配置文件不存在: {self.path}")

        with open(self.path, encoding="utf-8-sig") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"配置文件顶层必须是 JSON 对象: {self.path}")

        flattened = flatten(data)
        logger.debug("Loaded configuration file", path=str(self.path), keys=len(flattened))
        return flattened


class EnvironmentVariablesSource(ConfigurationSource):
    """环境变量配置源，'__' 映射为层级分隔符"""

    def __init__(self, prefix: str = "", environ: Mapping[str, str] | None = None):
        self.prefix = prefix
        self.environ = environ
        self.name = f"env:{prefix}" if prefix else "env"

    def load(self, upstream: Configuration) -> dict[str, str]:
        environ = self.environ if self.environ is not None else os.environ
        prefix = self.prefix.lower()
        result: dict[str, str] = {}
        for key, value in environ.items():
            if prefix and not key.lower().startswith(prefix):
                continue
            key = key[len(prefix):].replace("__", KEY_DELIMITER)
            if key:
                result[key] = value
        return result


class CommandLineSource(ConfigurationSource):
    """
    命令行参数配置源

    支持的格式: key=value, --key=value, --key value, /key=value, /key value；
    单横线短参数只有在 switch_mappings 中声明后才生效。
    """

    def __init__(self, args: Sequence[str], switch_mappings: Mapping[str, str] | None = None):
        self.args = list(args)
        self.switch_mappings = dict(switch_mappings or {})
        self.name = "cmdline"

    def load(self, upstream: Configuration) -> dict[str, str]:
        result: dict[str, str] = {}
        args = iter(self.args)
        for arg in args:
            raw_key, sep, value = arg.partition("=")
            if raw_key in self.switch_mappings:
                key = self.switch_mappings[raw_key]
            elif raw_key.startswith("--"):
                key = raw_key[2:]
            elif raw_key.startswith("/"):
                key = raw_key[1:]
            elif raw_key.startswith("-"):
                logger.debug("Ignoring unmapped short switch", switch=raw_key)
                if not sep:
                    next(args, None)
                continue
            elif sep:
                key = raw_key
            else:
                # 位置参数，忽略
                continue

            if not sep:
                next_value = next(args, None)
                if next_value is None:
                    continue
                value = next_value

            if key:
                result[key.replace("__", KEY_DELIMITER)] = value
        return result
