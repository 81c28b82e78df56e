"""Admission webhook that injects the fuse sidecar into annotated pods."""

from __future__ import annotations

import argparse
import copy
import json
import logging
import posixpath
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Sequence

from .settings import OperatorSettings
from .version import VERSION

logger = logging.getLogger(__name__)

SIDECAR_NAME = "chaosblade-fuse"
FUSE_SERVER_PORT_NAME = "fuse-port"
FUSE_BINARY = "/opt/chaosblade/bin/chaos_fuse"

INJECT_VOLUME_ANNOTATION = "chaosblade/inject-volume"
INJECT_SUBPATH_ANNOTATION = "chaosblade/inject-volume-subpath"

PROPAGATION_HOST_TO_CONTAINER = "HostToContainer"
PROPAGATION_BIDIRECTIONAL = "Bidirectional"

DEFAULT_FUSE_SERVER_PORT = 65534
DEFAULT_WEBHOOK_PORT = 9443

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class MutationError(Exception):
    """Raised when a pod asks for injection but cannot be mutated."""


@dataclass
class WebhookSettings:
    """Settings of the admission webhook and the sidecar it injects."""

    sidecar_image: str = ""
    fuse_server_port: int = DEFAULT_FUSE_SERVER_PORT
    port: int = DEFAULT_WEBHOOK_PORT
    enable: bool = False


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join(*parts: str) -> str:
    present = [part for part in parts if part]
    if not present:
        return ""
    return _clean("/".join(present))


def _dir(path: str) -> str:
    return _clean(path[: path.rfind("/") + 1])


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped[stripped.rfind("/") + 1:]


def _escape(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _diff(old: Any, new: Any, pointer: str, ops: list[dict[str, Any]]) -> None:
    if isinstance(old, dict) and isinstance(new, dict):
        for key in old:
            if key not in new:
                ops.append({"op": "remove", "path": f"{pointer}/{_escape(key)}"})
        for key, value in new.items():
            child = f"{pointer}/{_escape(key)}"
            if key not in old:
                ops.append({"op": "add", "path": child, "value": value})
            else:
                _diff(old[key], value, child, ops)
        return
    if isinstance(old, list) and isinstance(new, list) and len(old) == len(new):
        for index, (old_item, new_item) in enumerate(zip(old, new)):
            _diff(old_item, new_item, f"{pointer}/{index}", ops)
        return
    if old != new:
        ops.append({"op": "replace", "path": pointer, "value": new})


def _json_patch(original: Any, expected: Any) -> list[dict[str, Any]]:
    ops: list[dict[str, Any]] = []
    _diff(original, expected, "", ops)
    return ops


def _errored(uid: str, code: int, message: str) -> dict[str, Any]:
    return {"uid": uid, "allowed": False, "status": {"code": int(code), "message": message}}


class Mutator:
    """Adds the fuse sidecar to pods that carry the inject-volume annotations."""

    def __init__(
        self,
        settings: WebhookSettings | None = None,
        operator: OperatorSettings | None = None,
        version: str = VERSION,
    ) -> None:
        self.settings = settings if settings is not None else WebhookSettings()
        self.operator = operator if operator is not None else OperatorSettings()
        self.version = version

    def sidecar_image(self) -> str:
        """The configured sidecar image, or the chaosblade tool image of this version."""
        if self.settings.sidecar_image:
            return self.settings.sidecar_image
        return f"{self.operator.image_repository()}:{self.version}"

    def mutate_pod(self, pod: dict[str, Any]) -> bool:
        """Inject the sidecar into ``pod`` in place.

        Returns True when the sidecar was added and False when the pod
        does not ask for it or already has it. Raises MutationError when
        the pod asks for it but its volume mount does not allow it.
        """
        metadata = pod.get("metadata") or {}
        name = metadata.get("name", "")
        annotations = metadata.get("annotations")
        if annotations is None:
            return False
        volume_name = annotations.get(INJECT_VOLUME_ANNOTATION)
        if volume_name is None:
            logger.info("pod %s has no %s annotation", name, INJECT_VOLUME_ANNOTATION)
            return False
        sub_path = annotations.get(INJECT_SUBPATH_ANNOTATION)
        if sub_path is None:
            logger.info("pod %s has no %s annotation", name, INJECT_SUBPATH_ANNOTATION)
            return False

        spec = pod.setdefault("spec", {})
        containers = spec.get("containers") or []
        if any(container.get("name") == SIDECAR_NAME for container in containers):
            logger.info("sidecar has been injected into pod %s", name)
            return False
        if not containers:
            raise MutationError("pod has no containers")

        target: dict[str, Any] | None = None
        for mount in containers[0].get("volumeMounts") or []:
            if mount.get("name") != volume_name:
                continue
            propagation = mount.get("mountPropagation")
            if propagation is None:
                raise MutationError(
                    "target volume mount propagation must be HostToContainer or Bidirectional"
                )
            if propagation not in (PROPAGATION_HOST_TO_CONTAINER, PROPAGATION_BIDIRECTIONAL):
                raise MutationError("target volume mount propagation is not support")
            target = dict(mount)
            target["mountPropagation"] = PROPAGATION_BIDIRECTIONAL

        if target is None or not target.get("name"):
            raise MutationError(f"pod has no volume mount {volume_name}")

        mount_path = target.get("mountPath", "")
        mount_point = _join(mount_path, sub_path)
        original = _join(mount_path, f"fuse-{sub_path}")
        logger.info("Get matched pod %s, mountPoint=%s mountPath=%s", name, mount_point, mount_path)
        if mount_point == mount_path:
            original = _join(_dir(mount_path), f"fuse-{_base(mount_path)}")

        port = self.settings.fuse_server_port
        resources = {"cpu": "100m", "memory": "50Mi"}
        sidecar = {
            "name": SIDECAR_NAME,
            "image": self.sidecar_image(),
            "imagePullPolicy": "Always",
            "command": [FUSE_BINARY],
            "args": [
                f"--address=:{port}",
                f"--mountpoint={mount_point}",
                f"--original={original}",
            ],
            "resources": {"requests": dict(resources), "limits": dict(resources)},
            "ports": [{"name": FUSE_SERVER_PORT_NAME, "containerPort": port}],
            "securityContext": {"privileged": True, "runAsUser": 0},
            "volumeMounts": [target],
        }
        spec["containers"] = [sidecar, containers[0]]
        return True

    def handle(self, request: dict[str, Any]) -> dict[str, Any]:
        """Answer an admission request holding a pod under ``object``.

        The answer allows the pod and carries a JSON patch when it was mutated.
        """
        uid = request.get("uid", "")
        raw = request.get("object")
        try:
            pod = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else raw
        except ValueError as exc:
            return _errored(uid, HTTPStatus.BAD_REQUEST, str(exc))
        if not isinstance(pod, dict):
            return _errored(uid, HTTPStatus.BAD_REQUEST, "request object is not a pod")
        patched = copy.deepcopy(pod)
        try:
            self.mutate_pod(patched)
        except MutationError as exc:
            logger.error("mutate pod failed: %s", exc)
            return _errored(uid, HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))
        ops = _json_patch(pod, patched)
        response: dict[str, Any] = {"uid": uid, "allowed": True}
        if ops:
            response["patchType"] = "JSONPatch"
            response["patch"] = ops
        return response


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def build_webhook_parser() -> argparse.ArgumentParser:
    """Argument parser for the webhook flags."""
    parser = argparse.ArgumentParser(prog="webhook", allow_abbrev=False)
    parser.add_argument("--fuse-sidecar-image", default="", help="Fuse sidecar image")
    parser.add_argument("--fuse-server-port", type=int, default=DEFAULT_FUSE_SERVER_PORT,
                        help="Fuse server port")
    parser.add_argument("--webhook-port", type=int, default=DEFAULT_WEBHOOK_PORT,
                        help="The port on which to serve HTTPS.")
    parser.add_argument("--webhook-enable", type=_parse_bool, nargs="?", const=True, default=False,
                        help="Whether to enable webhook")
    return parser


def parse_webhook_args(argv: Sequence[str] | None = None) -> WebhookSettings:
    """Parse webhook flags into settings; exits on invalid flags."""
    args = build_webhook_parser().parse_args(argv)
    return WebhookSettings(
        sidecar_image=args.fuse_sidecar_image,
        fuse_server_port=args.fuse_server_port,
        port=args.webhook_port,
        enable=args.webhook_enable,
    )