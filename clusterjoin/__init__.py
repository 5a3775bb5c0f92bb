"""Ensuring, join checks and uninstalling of multi-cluster connectivity components on an in-memory cluster store."""

__version__ = "0.16.0"

__all__ = [
    "customresources",
    "join",
    "namespace",
    "operator_deployment",
    "rbac",
    "reporter",
    "resource",
    "secret",
    "service",
    "serviceaccount",
    "uninstall",
    "version",
]