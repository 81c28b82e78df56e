"""Chaos experiment operator pieces: pod sidecar mutation, pod fault helpers and file-system fault injection."""

__version__ = "1.5.0"