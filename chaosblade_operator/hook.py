"""File system hook that injects faults recorded in a fault store."""

from __future__ import annotations

import logging
import os
import posixpath
import random
import time
from typing import Callable, Protocol

from .fault import FaultStore

logger = logging.getLogger(__name__)

# Linux errno range from E2BIG up to (but not including) EXFULL.
_RANDOM_ERRNO_LOW = 0x7
_RANDOM_ERRNO_HIGH = 0x36

# Methods whose first argument is the path to check.
_SINGLE_PATH_METHODS = frozenset(
    {
        "open",
        "read",
        "write",
        "mkdir",
        "rmdir",
        "opendir",
        "fsync",
        "flush",
        "truncate",
        "getattr",
        "chown",
        "chmod",
        "utimens",
        "allocate",
        "getlk",
        "setlk",
        "setlkw",
        "statfs",
        "readlink",
        "create",
        "access",
        "mknod",
        "unlink",
        "getxattr",
        "listxattr",
        "removexattr",
        "setxattr",
    }
)

# Methods whose first two arguments are both paths to check.
_TWO_PATH_METHODS = frozenset({"symlink", "link", "rename"})


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def _join(*parts: str) -> str:
    """Join slash-separated path parts, ignoring empty ones, and clean the result."""
    present = [part for part in parts if part]
    if not present:
        return ""
    joined = posixpath.normpath("/".join(present))
    if joined.startswith("//"):
        joined = "/" + joined.lstrip("/")
    return joined


def random_errno(rng: RandomSource) -> int:
    """A random Linux error number between E2BIG and the one before EXFULL."""
    return rng.randrange(_RANDOM_ERRNO_HIGH - _RANDOM_ERRNO_LOW) + _RANDOM_ERRNO_LOW


def probability(percentage: int, rng: RandomSource) -> bool:
    """True with roughly ``percentage`` percent chance."""
    return rng.randrange(99) < percentage


class ChaosbladeHook:
    """Checks each file system call against the active faults."""

    def __init__(
        self,
        mount_point: str = "",
        store: FaultStore | None = None,
        rng: RandomSource | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.mount_point = mount_point
        self.store = store if store is not None else FaultStore()
        self.rng: RandomSource = rng if rng is not None else random.Random()
        self._sleep = sleep

    def inject_fault(self, relative_path: str, method: str) -> None:
        """Apply the fault registered for ``method`` to ``relative_path``.

        Sleeps for the configured delay and raises OSError with the
        configured (or a random) error number when one applies.
        """
        logger.info("do inject fault, method=%s relativePath=%s", method, relative_path)
        message = self.store.get(method)
        if message is None:
            return
        logger.info("do inject fault with inject message %s", message)
        if message.path:
            actual_path = _join(self.mount_point, relative_path)
            if not actual_path.startswith(message.path):
                logger.info(
                    "the rule path does not contain the actual path, rulePath=%s actualPath=%s",
                    message.path,
                    actual_path,
                )
                return
        if message.percent > 0 and not probability(message.percent, self.rng):
            return
        error_number = 0
        if message.errno != 0:
            error_number = message.errno
        elif message.random:
            error_number = random_errno(self.rng)
        if message.delay > 0:
            self._sleep(message.delay / 1000)
        if error_number:
            raise OSError(error_number, os.strerror(error_number), relative_path)

    def pre(self, method: str, *args: object) -> None:
        """Hook run before ``method``; raises OSError when a fault is injected.

        The first argument is the path; for symlink, link and rename the
        first two arguments are both paths.
        """
        if method in _TWO_PATH_METHODS:
            count = 2
        elif method in _SINGLE_PATH_METHODS:
            count = 1
        else:
            raise ValueError(f"unknown hook method {method!r}")
        if len(args) < count:
            raise TypeError(f"{method} needs {count} path argument(s), got {len(args)}")
        for path in args[:count]:
            if not isinstance(path, str):
                raise TypeError(f"path argument of {method} must be a string, got {path!r}")
            self.inject_fault(path, method)

    def pre_release(self, path: str) -> None:
        """Hook run before release; delays apply but errors are ignored."""
        try:
            self.inject_fault(path, "release")
        except OSError as exc:
            logger.debug("ignoring fault on release of %s: %s", path, exc)