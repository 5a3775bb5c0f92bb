"""Ensuring namespaced RBAC roles and role bindings."""

from __future__ import annotations

from clusterjoin.resource import Cluster, Object, create_or_update, load_object


def ensure_role(cluster: Cluster, namespace: str, role: Object) -> bool:
    """Create or replace a Role; return whether it was newly created."""
    return create_or_update(cluster.resource("Role", namespace), role)


def ensure_role_from_yaml(cluster: Cluster, namespace: str, yaml_text: str) -> bool:
    """Ensure the Role described by ``yaml_text``."""
    return ensure_role(cluster, namespace, load_object(yaml_text))


def ensure_role_binding(cluster: Cluster, namespace: str, role_binding: Object) -> bool:
    """Create or replace a RoleBinding; return whether it was newly created."""
    return create_or_update(cluster.resource("RoleBinding", namespace), role_binding)


def ensure_role_binding_from_yaml(cluster: Cluster, namespace: str, yaml_text: str) -> bool:
    """Ensure the RoleBinding described by ``yaml_text``."""
    return ensure_role_binding(cluster, namespace, load_object(yaml_text))