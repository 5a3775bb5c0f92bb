"""Removing every Submariner component from a cluster."""

from __future__ import annotations

import time

from clusterjoin.customresources import SERVICE_DISCOVERY_CR_NAME, SUBMARINER_CR_NAME
from clusterjoin.operator_deployment import OPERATOR_NAME, get_pod_label_selector
from clusterjoin.reporter import Reporter
from clusterjoin.resource import (
    Cluster,
    NotFoundError,
    Object,
    ResourceClient,
    ResourceError,
    update_with,
)

COMPONENT_READY_TIMEOUT = 120.0
DEFAULT_MAX_WAIT = COMPONENT_READY_TIMEOUT + 30.0
DEFAULT_CHECK_INTERVAL = 2.0

GATEWAY_LABEL = "submariner.io/gateway"
CLEANUP_FINALIZER = "submariner.io/cleanup"
POD_RUNNING = "Running"

_FAILURES = (ResourceError, TimeoutError, RuntimeError)


def _fail(status: Reporter, err: BaseException, message: str, *args: object) -> None:
    wrapped = status.error(err, message, *args)
    raise (wrapped or err) from err


def _request_delete(client: ResourceClient, name: str) -> None:
    """Delete an object, honouring finalizers by only marking it for deletion."""
    obj = client.get(name)
    meta = obj.get("metadata") or {}
    if meta.get("finalizers"):
        if not meta.get("deletionTimestamp"):
            meta["deletionTimestamp"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
            obj["metadata"] = meta
            client.update(obj)
        return
    client.delete(name)


def _await_deleted(client: ResourceClient, name: str, max_wait: float, check_interval: float) -> bool:
    """Keep requesting deletion until the object is gone; ``False`` if time runs out."""
    deadline = time.monotonic() + max_wait
    while True:
        try:
            _request_delete(client, name)
        except NotFoundError:
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        time.sleep(min(check_interval, remaining))


def _parse_selector(selector: str) -> dict[str, str]:
    return dict(term.split("=", 1) for term in selector.split(",") if term)


def _ensure_deleted(cluster: Cluster, client: ResourceClient, obj: Object, status: Reporter,
                    max_wait: float, check_interval: float) -> None:
    name = obj["metadata"]["name"]
    namespace = client.namespace or ""

    if _await_deleted(client, name, max_wait, check_interval):
        return

    try:
        selector = get_pod_label_selector(cluster, namespace)
    except ResourceError as err:
        raise ResourceError(f"error obtaining the operator deployment label: {err}") from err

    if not selector:
        status.warning("The Submariner operator deployment does not exist so deletion of the resource was not completed - "
                       "the resource will be force-deleted")
    else:
        try:
            pods = cluster.resource("Pod", namespace).list(label_selector=_parse_selector(selector))
        except ResourceError as err:
            raise ResourceError(f"error listing pods: {err}") from err

        if not pods:
            pod_status = "does not exist"
        else:
            phase = (pods[0].get("status") or {}).get("phase", "")
            if phase == POD_RUNNING:
                _fail(status, RuntimeError("the Submariner operator pod appears to be running but did not "
                                           "complete deletion of the resource. Please check the pod logs"), "")
            pod_status = f'is not running (status is "{phase}")'

        status.warning("The Submariner operator pod %s so deletion of the resource was not completed - "
                       "the resource will be force-deleted", pod_status)

    def drop_finalizer(existing: Object) -> Object:
        meta = existing.setdefault("metadata", {})
        meta["finalizers"] = [f for f in meta.get("finalizers") or [] if f != CLEANUP_FINALIZER]
        return existing

    try:
        update_with(client, obj, drop_finalizer)
    except NotFoundError:
        return

    if not _await_deleted(client, name, max_wait, check_interval):
        raise TimeoutError("timed out waiting for the condition")


def _ensure_component_deleted(cluster: Cluster, kind: str, cr_name: str, description: str, cluster_name: str,
                              namespace: str, status: Reporter, max_wait: float, check_interval: float) -> bool:
    try:
        status.start("Checking if the %s component is installed on cluster \"%s\"", description, cluster_name)
        client = cluster.resource(kind, namespace)
        try:
            obj = client.get(cr_name)
        except NotFoundError:
            status.success("The %s component is not installed on cluster \"%s\" - skipping", description, cluster_name)
            return False
        except ResourceError as err:
            _fail(status, err, "Error retrieving the %s resource", kind)

        status.success("The %s component is installed on cluster \"%s\"", description, cluster_name)
        status.start("Deleting the %s resource - this may take some time", kind)

        try:
            _ensure_deleted(cluster, client, obj, status, max_wait, check_interval)
        except _FAILURES as err:
            _fail(status, err, 'Error deleting %s resource "%s"', kind, cr_name)
        return True
    finally:
        status.end()


def _find_broker_namespace(cluster: Cluster, cluster_name: str, status: Reporter) -> str:
    status.start('Checking if the broker component is installed on cluster "%s"', cluster_name)
    try:
        try:
            brokers = cluster.resource("Broker").list()
        except ResourceError as err:
            _fail(status, err, "Error listing broker resources")

        for broker in brokers:
            broker_ns = broker["metadata"].get("namespace", "")
            status.success('The broker component is installed in namespace "%s"', broker_ns)
            return broker_ns

        status.success('The broker component is not installed on cluster "%s"', cluster_name)
        return ""
    finally:
        status.end()


def _broker_in_use(cluster: Cluster, namespace: str, cluster_name: str, status: Reporter) -> bool:
    status.start('Verifying broker namespace "%s" is not in use', namespace)
    try:
        try:
            endpoints = cluster.resource("Endpoint", namespace).list()
        except ResourceError as err:
            _fail(status, err, "error retrieving Endpoints")

        remote = [
            cluster_id
            for cluster_id in ((ep.get("spec") or {}).get("clusterID", "") for ep in endpoints)
            if cluster_id != cluster_name
        ]
        if remote:
            status.warning('Broker namespace "%s" appears to be in use by other clusters (%s) - '
                           "keeping the broker components.", namespace, "[" + " ".join(remote) + "]")
            return True
        return False
    finally:
        status.end()


def _delete_broker_if_unused(cluster: Cluster, namespace: str, cluster_name: str, status: Reporter) -> bool:
    if not namespace:
        return True

    namespaces = cluster.resource("Namespace")
    try:
        namespaces.get(namespace)
    except NotFoundError:
        return True
    except ResourceError as err:
        _fail(status, err, 'Error retrieving broker namespace "%s"', namespace)

    if _broker_in_use(cluster, namespace, cluster_name, status):
        return False

    status.start('Deleting the broker namespace "%s"', namespace)
    try:
        try:
            namespaces.delete(namespace)
        except NotFoundError:
            pass
        except ResourceError as err:
            _fail(status, err, "Error deleting the broker namespace")
        return True
    finally:
        status.end()


def _delete_cluster_roles_and_bindings(cluster: Cluster, cluster_name: str, status: Reporter,
                                       keep_operator: bool) -> None:
    status.start('Deleting the Submariner cluster roles and bindings on cluster "%s"', cluster_name)
    try:
        bindings_client = cluster.resource("ClusterRoleBinding")
        roles_client = cluster.resource("ClusterRole")
        try:
            bindings = bindings_client.list()
        except ResourceError as err:
            _fail(status, err, "Error listing ClusterRoleBindings")

        for binding in bindings:
            name = binding["metadata"]["name"]
            if not name.startswith("submariner-") or (keep_operator and name == OPERATOR_NAME):
                continue

            try:
                bindings_client.delete(name)
            except ResourceError as err:
                _fail(status, err, 'Error deleting ClusterRoleBinding "%s"', name)

            role_name = (binding.get("roleRef") or {}).get("name", "")
            try:
                roles_client.delete(role_name)
            except NotFoundError:
                pass
            except ResourceError as err:
                _fail(status, err, 'Error deleting ClusterRole "%s"', role_name)

            status.success('Deleted the "%s" cluster role and binding', name)
    finally:
        status.end()


def _delete_crds(cluster: Cluster, cluster_name: str, status: Reporter) -> None:
    status.start('Deleting the Submariner custom resource definitions on cluster "%s"', cluster_name)
    try:
        client = cluster.resource("CustomResourceDefinition")
        try:
            crds = client.list()
        except ResourceError as err:
            _fail(status, err, "Error listing CustomResourceDefinitions")

        for crd in crds:
            name = crd["metadata"]["name"]
            if not name.endswith(".submariner.io"):
                continue
            try:
                client.delete(name)
            except ResourceError as err:
                _fail(status, err, 'Error deleting CustomResourceDefinition "%s"', name)
            status.success('Deleted the "%s" custom resource definition', name)
    finally:
        status.end()


def _unlabel_gateway_nodes(cluster: Cluster, cluster_name: str, status: Reporter) -> None:
    status.start('Unlabeling gateway nodes on cluster "%s"', cluster_name)
    try:
        nodes_client = cluster.resource("Node")
        try:
            nodes = nodes_client.list(label_selector={GATEWAY_LABEL: "true"})
        except ResourceError as err:
            _fail(status, err, "Error listing Nodes")

        def drop_label(existing: Object) -> Object:
            labels = (existing.get("metadata") or {}).get("labels")
            if labels:
                labels.pop(GATEWAY_LABEL, None)
            return existing

        for node in nodes:
            try:
                update_with(nodes_client, node, drop_label)
            except ResourceError as err:
                _fail(status, err, 'Error updating Node "%s"', node["metadata"]["name"])
    finally:
        status.end()


def uninstall_all(cluster: Cluster, cluster_name: str, submariner_namespace: str, status: Reporter,
                  max_wait: float = DEFAULT_MAX_WAIT, check_interval: float = DEFAULT_CHECK_INTERVAL) -> None:
    """Remove the Submariner components, and the broker if no other cluster uses it."""
    found = _ensure_component_deleted(cluster, "Submariner", SUBMARINER_CR_NAME, "connectivity", cluster_name,
                                      submariner_namespace, status, max_wait, check_interval)
    if not found:
        _ensure_component_deleted(cluster, "ServiceDiscovery", SERVICE_DISCOVERY_CR_NAME, "service discovery",
                                  cluster_name, submariner_namespace, status, max_wait, check_interval)

    broker_ns = _find_broker_namespace(cluster, cluster_name, status)
    deleted = _delete_broker_if_unused(cluster, broker_ns, cluster_name, status)

    _delete_cluster_roles_and_bindings(cluster, cluster_name, status, not deleted)

    if deleted:
        status.start('Deleting the Submariner namespace "%s" on cluster "%s"', submariner_namespace, cluster_name)
        try:
            try:
                cluster.resource("Namespace").delete(submariner_namespace)
            except NotFoundError:
                pass
            except ResourceError as err:
                _fail(status, err, "Error deleting the Submariner namespace")
        finally:
            status.end()

        _delete_crds(cluster, cluster_name, status)

    _unlabel_gateway_nodes(cluster, cluster_name, status)