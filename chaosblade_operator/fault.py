"""Fault injection messages and the store of active faults."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

INJECT_PATH = "/inject"
RECOVER_PATH = "/recover"

DEFAULT_HOOK_POINTS = (
    "read",
    "write",
    "mkdir",
    "rmdir",
    "opendir",
    "fsync",
    "flush",
    "release",
    "truncate",
    "getattr",
    "chown",
    "utimens",
    "allocate",
    "getlk",
    "setlk",
    "setlkw",
    "statfs",
    "readlink",
    "symlink",
    "create",
    "access",
    "link",
    "mknod",
    "rename",
    "unlink",
    "getxattr",
    "listxattr",
    "removexattr",
    "setxattr",
)

_UINT32_LIMIT = 2**32


def _uint32(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _UINT32_LIMIT:
        raise ValueError(f"{key} must be an unsigned 32-bit integer, got {value!r}")
    return value


def _string(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value


@dataclass
class InjectMessage:
    """Which file system methods to disturb and how."""

    methods: list[str] = field(default_factory=list)
    path: str = ""
    delay: int = 0
    percent: int = 0
    random: bool = False
    errno: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "methods": list(self.methods),
            "path": self.path,
            "delay": self.delay,
            "percent": self.percent,
            "random": self.random,
            "errno": self.errno,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "InjectMessage":
        """Build a message from decoded JSON; raise ValueError on a malformed one."""
        if not isinstance(data, dict):
            raise ValueError("inject message must be a JSON object")
        methods = data.get("methods")
        if methods is None:
            methods = []
        if not isinstance(methods, list) or not all(isinstance(m, str) for m in methods):
            raise ValueError("methods must be a list of strings")
        random = data.get("random")
        if random is None:
            random = False
        if not isinstance(random, bool):
            raise ValueError("random must be a boolean")
        return cls(
            methods=list(methods),
            path=_string(data, "path"),
            delay=_uint32(data, "delay"),
            percent=_uint32(data, "percent"),
            random=random,
            errno=_uint32(data, "errno"),
        )


class FaultStore:
    """Thread-safe mapping from method name to the fault injected for it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._faults: dict[str, InjectMessage] = {}

    def inject(self, message: InjectMessage) -> None:
        """Register ``message`` for each of its methods."""
        with self._lock:
            for method in message.methods:
                self._faults[method] = message

    def recover(self) -> None:
        """Remove the faults of all default hook points."""
        with self._lock:
            for method in DEFAULT_HOOK_POINTS:
                self._faults.pop(method, None)

    def get(self, method: str) -> InjectMessage | None:
        """The fault registered for ``method``, or None."""
        with self._lock:
            return self._faults.get(method)