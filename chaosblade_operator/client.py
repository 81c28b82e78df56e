"""HTTP client for the fault injection server in a pod."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from .fault import INJECT_PATH, RECOVER_PATH, InjectMessage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class HookClientError(Exception):
    """Raised when a request to the fault injection server fails."""


class HookClient:
    """Talks to the fault injection server at ``addr`` (``host:port``)."""

    def __init__(self, addr: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.addr = addr
        self.timeout = timeout
        self._opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    def _send(self, request: urllib.request.Request) -> tuple[int, str]:
        try:
            with self._opener.open(request, timeout=self.timeout) as response:
                return response.status, response.read().decode(errors="replace")
        except urllib.error.HTTPError as exc:
            return exc.code, exc.read().decode(errors="replace")
        except OSError as exc:
            raise HookClientError(str(exc)) from exc

    def inject_fault(self, message: InjectMessage) -> None:
        """Send ``message`` to the server; raise HookClientError unless it answers 200."""
        body = json.dumps(message.to_dict()).encode()
        logger.info("Inject fault %s", message)
        request = urllib.request.Request(
            f"http://{self.addr}{INJECT_PATH}",
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        status, result = self._send(request)
        logger.info("Response is %s", result)
        if status != 200:
            raise HookClientError(result)

    def revoke(self) -> None:
        """Ask the server to remove all faults; raise HookClientError unless it answers 200."""
        request = urllib.request.Request(
            f"http://{self.addr}{RECOVER_PATH}",
            headers={"Content-Type": "application/json"},
            method="GET",
        )
        status, result = self._send(request)
        logger.info("Revoke fault, response is %s", result)
        if status != 200:
            raise HookClientError(result)