"""Pod readiness checks and the image change that makes a pod fail."""

from __future__ import annotations

from typing import Any, Mapping

FAIL_POD_ANNOTATION_PREFIX = "failPod"
FAULT_IMAGE_SUFFIX = "-fault-injection"


def is_pod_ready(pod: Mapping[str, Any]) -> bool:
    """True when the pod is not being deleted and has a true Ready condition."""
    metadata = pod.get("metadata") or {}
    if metadata.get("deletionTimestamp") is not None:
        return False
    conditions = (pod.get("status") or {}).get("conditions") or []
    return any(
        condition.get("type") == "Ready" and condition.get("status") == "True"
        for condition in conditions
    )


def has_annotation(annotations: Mapping[str, str] | None, key: str) -> bool:
    """True when ``key`` is among ``annotations``."""
    return annotations is not None and key in annotations


def inject_fail_images(pod: dict[str, Any]) -> list[str]:
    """Point every container of ``pod`` at a broken image, in place.

    The original image is kept in an annotation per container; containers
    that already have one are left alone. Returns the names of the
    containers that were changed.
    """
    metadata = pod.setdefault("metadata", {})
    containers = (pod.get("spec") or {}).get("containers") or []
    changed: list[str] = []
    for container in containers:
        name = container.get("name", "")
        key = f"{FAIL_POD_ANNOTATION_PREFIX}-{name}"
        annotations = metadata.get("annotations")
        if annotations is None:
            annotations = metadata["annotations"] = {}
        if has_annotation(annotations, key):
            continue
        image = container.get("image", "")
        annotations[key] = image
        container["image"] = f"{image}{FAULT_IMAGE_SUFFIX}"
        changed.append(name)
    return changed