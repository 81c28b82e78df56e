"""Helpers of the pod file system IO experiment."""

from __future__ import annotations

import re
from typing import Any, Mapping

from .fault import InjectMessage
from .mutator import FUSE_SERVER_PORT_NAME

_INTEGER = re.compile(r"[+-]?\d+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT32_MASK = 0xFFFFFFFF


class FlagError(ValueError):
    """Raised when an experiment flag has an illegal value."""

    def __init__(self, name: str, value: str, reason: str) -> None:
        super().__init__(f"illegal {name} parameter value {value!r}: {reason}")
        self.name = name
        self.value = value
        self.reason = reason


def get_container_port(port_name: str, pod: Mapping[str, Any]) -> int:
    """The container port named ``port_name`` in any container of ``pod``."""
    for container in (pod.get("spec") or {}).get("containers") or []:
        for port in container.get("ports") or []:
            if port.get("name") == port_name:
                return int(port.get("containerPort", 0))
    raise LookupError("can not found fuse-server container port ")


def chaosfs_address(pod: Mapping[str, Any], port_name: str = FUSE_SERVER_PORT_NAME) -> str:
    """``host:port`` of the fault injection server running beside the pod."""
    port = get_container_port(port_name, pod)
    pod_ip = (pod.get("status") or {}).get("podIP", "")
    return f"{pod_ip}:{port}"


def _integer_flag(flags: Mapping[str, str], name: str) -> int:
    text = flags.get(name, "")
    if not text:
        return 0
    if not _INTEGER.fullmatch(text):
        raise FlagError(name, text, f"{name} must be integer")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise FlagError(name, text, "value out of range")
    return value & _UINT32_MASK


def parse_io_flags(flags: Mapping[str, str]) -> InjectMessage:
    """Build the inject message from the experiment flags.

    Raises FlagError when delay, percent or errno is not an integer.
    """
    return InjectMessage(
        methods=flags.get("method", "").split(","),
        path=flags.get("path", ""),
        delay=_integer_flag(flags, "delay"),
        percent=_integer_flag(flags, "percent"),
        random=flags.get("random") == "true",
        errno=_integer_flag(flags, "errno"),
    )