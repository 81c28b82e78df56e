"""Build version information and version capability checks."""

from __future__ import annotations

import re

CRI_VERSION = "1.5.0"
DEFAULT_VERSION = "unknown"
DEFAULT_PRODUCT = "community"
DELIMITER = ","

# Set at build time as "<version><delimiter><product>".
COMBINED_VERSION = ""

_INTEGER = re.compile(r"[+-]?\d+")


def parse_combined_version(combined: str, delimiter: str = DELIMITER) -> tuple[str, str]:
    """Split a combined ``version,product`` string into its two parts.

    Missing parts fall back to the defaults.
    """
    version, product = DEFAULT_VERSION, DEFAULT_PRODUCT
    if not combined:
        return version, product
    fields = combined.split(delimiter)
    if fields:
        version = fields[0]
    if len(fields) > 1:
        product = fields[1]
    return version, product


VERSION, PRODUCT = parse_combined_version(COMBINED_VERSION, DELIMITER)


def _to_int(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    return int(text)


def has_cri_command(version: str | None = None) -> bool:
    """Tell whether ``version`` is at least the release that added the CRI command."""
    if version is None:
        version = VERSION
    parts = version.split(".")
    if len(parts) != 3:
        return False
    for part, cri_part in zip(parts, CRI_VERSION.split(".")):
        value = _to_int(part)
        if value is None:
            return False
        cri_value = int(cri_part)
        if value == cri_value:
            continue
        return value > cri_value
    return True