"""Ensuring the Submariner and ServiceDiscovery custom resources."""

from __future__ import annotations

import copy
from typing import Any, Mapping

from clusterjoin.resource import Cluster, Object, ResourceError, create_anew, create_or_update

OPERATOR_API_VERSION = "submariner.io/v1alpha1"
SUBMARINER_CR_NAME = "submariner"
SERVICE_DISCOVERY_CR_NAME = "service-discovery"


def _custom_resource(kind: str, name: str, namespace: str, spec: Mapping[str, Any]) -> Object:
    return {
        "apiVersion": OPERATOR_API_VERSION,
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": copy.deepcopy(dict(spec)),
    }


def ensure_submariner(cluster: Cluster, namespace: str, spec: Mapping[str, Any]) -> Object:
    """Create the Submariner resource anew with ``spec`` and return it."""
    submariner = _custom_resource("Submariner", SUBMARINER_CR_NAME, namespace, spec)
    try:
        return create_anew(cluster.resource("Submariner", namespace), submariner)
    except ResourceError as err:
        raise ResourceError(f"error creating Submariner resource: {err}") from err


def ensure_service_discovery(cluster: Cluster, namespace: str, spec: Mapping[str, Any]) -> bool:
    """Create or update the ServiceDiscovery resource; return whether it was created."""
    service_discovery = _custom_resource("ServiceDiscovery", SERVICE_DISCOVERY_CR_NAME, namespace, spec)
    try:
        return create_or_update(cluster.resource("ServiceDiscovery", namespace), service_discovery)
    except ResourceError as err:
        raise ResourceError(f"error creating/updating ServiceDiscovery resource: {err}") from err