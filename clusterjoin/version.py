"""Tool version and cluster version requirements."""

from __future__ import annotations

import re
import sys
from typing import TextIO

from clusterjoin.resource import Cluster, ResourceError

VERSION = "devel"

_MIN_K8S_MAJOR = 1
_MIN_K8S_MINOR = 19

_INTEGER = re.compile(r"[+-]?\d+")


def print_subctl_version(stream: TextIO | None = None) -> None:
    """Write the tool's version to ``stream`` (standard output by default)."""
    (stream or sys.stdout).write(f"subctl version: {VERSION}\n")


def _parse_int(text: str, what: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"error parsing API server {what} version {text}")
    return int(text)


def check_requirements(cluster: Cluster) -> tuple[str, list[str]]:
    """Return the server version string and the list of unmet requirements."""
    server_version = cluster.server_version
    if server_version is None:
        raise ResourceError("error obtaining API server version")

    major = _parse_int(server_version.major, "major")
    minor = _parse_int(server_version.minor.removesuffix("+"), "minor")

    failed: list[str] = []
    if major < _MIN_K8S_MAJOR or (major == _MIN_K8S_MAJOR and minor < _MIN_K8S_MINOR):
        failed.append(
            f"Submariner requires Kubernetes {_MIN_K8S_MAJOR}.{_MIN_K8S_MINOR}; "
            f"your cluster is running {server_version.major}.{server_version.minor}"
        )
    return str(server_version), failed