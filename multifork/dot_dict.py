"""
Dictionary-like object with attribute access and dot-path lookup.

DotDict is the base of Config: nested dictionaries become nested DotDicts,
so settings can be read as `config.fork.jobs_per_fork` or
`config.get("fork.jobs_per_fork")`.
"""

from typing import Any


class DotDict:
    """
    Dictionary-like object with attribute-style access and nested structure support.
    """

    # Keys that would shadow methods
    _RESERVED_KEYS = frozenset({"set", "clear", "dict", "get", "has"})

    def __init__(self, **kwargs: Any) -> None:
        self.set(**kwargs)

    def set(self, **kwargs: Any) -> "DotDict":
        """Set multiple key-value pairs, converting nested dicts. Returns self."""
        for key, val in kwargs.items():
            self._set_item(key, val)
        return self

    def _set_item(self, key: Any, val: Any) -> None:
        key = str(key)
        if key in self._RESERVED_KEYS:
            raise ValueError(
                f"Key '{key}' is reserved and cannot be used (would shadow method)"
            )

        if isinstance(val, dict):
            setattr(self, key, DotDict(**val))
        elif isinstance(val, list):
            setattr(self, key, [DotDict(**v) if isinstance(v, dict) else v for v in val])
        else:
            setattr(self, key, val)

    def clear(self) -> None:
        """Remove all public keys. Private attributes (leading underscore) are kept."""
        for k in [k for k in self.__dict__ if not k.startswith("_")]:
            delattr(self, k)

    def dict(self) -> dict[str, Any]:
        """Recursively convert to plain dictionaries."""
        result: dict[str, Any] = {}
        for key, val in self.items():
            if isinstance(val, DotDict):
                result[key] = val.dict()
            elif isinstance(val, list):
                result[key] = [v.dict() if isinstance(v, DotDict) else v for v in val]
            else:
                result[key] = val
        return result

    def keys(self) -> list[str]:
        return [k for k in self.__dict__ if not k.startswith("_")]

    def items(self) -> list[tuple[str, Any]]:
        return [(k, v) for k, v in self.__dict__.items() if not k.startswith("_")]

    def __contains__(self, key: Any) -> bool:
        return key in self.keys()

    def __getitem__(self, key: str) -> Any:
        return getattr(self, key) if key in self else None

    def __setitem__(self, key: str, val: Any) -> None:
        self._set_item(key, val)

    def __len__(self) -> int:
        return len(self.keys())

    def __str__(self) -> str:
        return str(self.dict())

    def _walk(self, path: str) -> tuple[bool, Any]:
        """Follow a dot-separated path. Returns (found, value)."""
        components = [item for item in path.split(".") if item]
        if not components:
            return False, None

        cur: Any = self
        for item in components:
            if not isinstance(cur, DotDict) or item not in cur:
                return False, None
            cur = cur[item]
        return True, cur

    def has(self, path: str) -> bool:
        """Check if a dot-separated path (e.g. "fork.jobs_per_fork") exists."""
        return self._walk(path)[0]

    def get(self, path: str, default: Any = None) -> Any:
        """Get value by dot-separated path, or default when missing."""
        found, value = self._walk(path)
        return value if found else default

