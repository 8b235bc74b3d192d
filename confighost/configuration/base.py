"""
统一配置集合
- 键采用 ':' 分隔的层级结构，大小写不敏感
- 按注册顺序组合配置源，后注册的配置源覆盖先注册的
- 构建完成后只读
"""
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

KEY_DELIMITER = ":"


def combine_key(*parts: str) -> str:
    """拼接配置键，忽略空段"""
    return KEY_DELIMITER.join(p for p in parts if p)


def normalize_key(key: str) -> str:
    return key.strip(KEY_DELIMITER).lower()


@dataclass(frozen=True)
class ConfigurationProvider:
    """单个配置源加载后的结果"""

    name: str
    data: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


class Configuration(Mapping[str, str]):
    """只读配置视图，可以是整个配置集合，也可以是其中一个节点"""

    def __init__(self, providers: list[ConfigurationProvider] | None = None, path: str = ""):
        self._providers = tuple(providers or ())
        self._path = path.strip(KEY_DELIMITER)
        self._values: dict[str, str] = {}
        self._keys: dict[str, str] = {}
        for provider in self._providers:
            for key, value in provider.data.items():
                normalized = normalize_key(key)
                # 保留第一次出现时的原始写法
                self._keys.setdefault(normalized, key.strip(KEY_DELIMITER))
                self._values[normalized] = value

    @classmethod
    def _section(cls, parent: "Configuration", path: str) -> "Configuration":
        section = cls.__new__(cls)
        section._providers = parent._providers
        section._path = path.strip(KEY_DELIMITER)
        section._values = parent._values
        section._keys = parent._keys
        return section

    @property
    def path(self) -> str:
        return self._path

    @property
    def key(self) -> str:
        """节点自身的键名（路径的最后一段）"""
        return self._path.rsplit(KEY_DELIMITER, 1)[-1] if self._path else ""

    @property
    def value(self) -> str | None:
        """节点自身的值"""
        if not self._path:
            return None
        return self._values.get(normalize_key(self._path))

    @property
    def providers(self) -> tuple[ConfigurationProvider, ...]:
        return self._providers

    def _full_key(self, key: str) -> str:
        return normalize_key(combine_key(self._path, key))

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(self._full_key(key), default)

    def get_section(self, key: str) -> "Configuration":
        """获取子节点（不存在时返回空节点，而不是 None）"""
        return Configuration._section(self, combine_key(self._path, key))

    def exists(self) -> bool:
        """节点本身有值或有子节点"""
        return self.value is not None or any(True for _ in self._descendants())

    def _descendants(self) -> Iterator[str]:
        prefix = normalize_key(self._path) + KEY_DELIMITER if self._path else ""
        for normalized in self._values:
            if normalized.startswith(prefix) and normalized != prefix.rstrip(KEY_DELIMITER):
                yield normalized

    def children(self) -> list["Configuration"]:
        """直接子节点，按键名排序"""
        prefix_len = len(self._path) + 1 if self._path else 0
        seen: dict[str, str] = {}
        for normalized in self._descendants():
            segment = normalized[prefix_len:].split(KEY_DELIMITER, 1)[0]
            if segment not in seen:
                original = self._keys[normalized][prefix_len:].split(KEY_DELIMITER, 1)[0]
                seen[segment] = original
        return [self.get_section(seen[s]) for s in sorted(seen)]

    def as_dict(self) -> dict[str, Any]:
        """将节点展开为嵌套字典"""
        result: dict[str, Any] = {}
        for child in self.children():
            nested = child.as_dict()
            if nested:
                result[child.key] = nested
            else:
                result[child.key] = child.value
        return result

    # ===== Mapping 接口：扁平的 "a:b:c" -> value 视图 =====

    def __getitem__(self, key: str) -> str:
        full = self._full_key(key)
        if full not in self._values:
            raise KeyError(key)
        return self._values[full]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._full_key(key) in self._values

    def __iter__(self) -> Iterator[str]:
        prefix_len = len(self._path) + 1 if self._path else 0
        for normalized in self._descendants():
            yield self._keys[normalized][prefix_len:]

    def __len__(self) -> int:
        return sum(1 for _ in self._descendants())

    def __repr__(self) -> str:
        return f"Configuration(path={self._path!r}, keys={len(self)})"


class ConfigurationSource:
    """配置源基类"""

    name: str = "source"

    def load(self, upstream: Configuration) -> dict[str, str]:
        """加载键值对；upstream 为此前所有配置源组合出的配置"""
        raise NotImplementedError


class ConfigurationBuilder:
    """按顺序收集配置源并构建只读配置"""

    def __init__(self, sources: list[ConfigurationSource] | None = None):
        self.sources: list[ConfigurationSource] = list(sources or [])

    def add(self, source: ConfigurationSource) -> "ConfigurationBuilder":
        self.sources.append(source)
        return self

    def build(self) -> Configuration:
        providers: list[ConfigurationProvider] = []
        for source in self.sources:
            upstream = Configuration(providers)
            data = source.load(upstream)
            providers.append(ConfigurationProvider(name=source.name, data=data or {}))
        return Configuration(providers)
