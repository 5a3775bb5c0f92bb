"""Exporting and unexporting services to the cluster set."""

from __future__ import annotations

from clusterjoin.reporter import Reporter
from clusterjoin.resource import (
    AlreadyExistsError,
    Cluster,
    NotFoundError,
    Object,
    ResourceError,
)

SERVICE_EXPORT_API_VERSION = "multicluster.x-k8s.io/v1alpha1"


def _raise(status: Reporter, err: BaseException, message: str, *args: object) -> None:
    wrapped = status.error(err, message, *args)
    raise (wrapped or err) from err


def export(cluster: Cluster, namespace: str, service_name: str, status: Reporter) -> None:
    """Create a ServiceExport for an existing Service."""
    try:
        cluster.resource("Service", namespace).get(service_name)
    except ResourceError as err:
        _raise(status, err, 'Unable to find the Service "%s" in namespace "%s"', service_name, namespace)

    service_export: Object = {
        "apiVersion": SERVICE_EXPORT_API_VERSION,
        "kind": "ServiceExport",
        "metadata": {"name": service_name, "namespace": namespace},
    }

    try:
        cluster.resource("ServiceExport", namespace).create(service_export)
    except AlreadyExistsError:
        status.success("Service already exported")
        return
    except ResourceError as err:
        _raise(status, err, "Failed to export Service")

    status.success("Service exported successfully")


def unexport(cluster: Cluster, namespace: str, service_name: str, status: Reporter) -> None:
    """Delete the ServiceExport of a Service."""
    try:
        cluster.resource("ServiceExport", namespace).delete(service_name)
    except NotFoundError as err:
        _raise(status, err, "Service %s/%s was not previously exported", namespace, service_name)
    except ResourceError as err:
        _raise(status, err, "Failed to unexport Service")

    status.success("Service successfully unexported")