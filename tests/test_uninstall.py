import pytest

from clusterjoin.operator_deployment import operator_deployment
from clusterjoin.reporter import Reporter
from clusterjoin.resource import Cluster, NotFoundError
from clusterjoin.uninstall import CLEANUP_FINALIZER, GATEWAY_LABEL, uninstall_all

NS = "submariner-operator"
BROKER_NS = "submariner-k8s-broker"
CLUSTER = "east"
FAST = {"max_wait": 0.05, "check_interval": 0.01}


def _populate(cluster, *, finalizer=False, broker=False, endpoints=()):
    cluster.resource("Namespace").create({"metadata": {"name": NS}})
    meta = {"name": "submariner"}
    if finalizer:
        meta["finalizers"] = [CLEANUP_FINALIZER]
    cluster.resource("Submariner", NS).create({"metadata": meta, "spec": {}})
    for name in ("submariners.submariner.io", "other.example.io"):
        cluster.resource("CustomResourceDefinition").create({"metadata": {"name": name}})
    for name in ("submariner-operator", "submariner-gateway", "unrelated"):
        cluster.resource("ClusterRole").create({"metadata": {"name": name}})
        cluster.resource("ClusterRoleBinding").create(
            {"metadata": {"name": name}, "roleRef": {"name": name}})
    cluster.resource("Node").create(
        {"metadata": {"name": "node1", "labels": {GATEWAY_LABEL: "true", "keep": "yes"}}})
    if broker:
        cluster.resource("Namespace").create({"metadata": {"name": BROKER_NS}})
        cluster.resource("Broker", BROKER_NS).create({"metadata": {"name": "submariner-broker"}})
        for i, cluster_id in enumerate(endpoints):
            cluster.resource("Endpoint", BROKER_NS).create(
                {"metadata": {"name": f"ep{i}"}, "spec": {"clusterID": cluster_id}})


def _names(cluster, kind, namespace=None):
    return {obj["metadata"]["name"] for obj in cluster.resource(kind, namespace).list()}


def _messages(status, kind):
    return [e.message for e in status.events if e.kind == kind]


def test_removes_everything_without_broker():
    cluster = Cluster()
    _populate(cluster)
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    with pytest.raises(NotFoundError):
        cluster.resource("Submariner", NS).get("submariner")
    assert NS not in _names(cluster, "Namespace")
    assert _names(cluster, "CustomResourceDefinition") == {"other.example.io"}
    assert _names(cluster, "ClusterRoleBinding") == {"unrelated"}
    assert _names(cluster, "ClusterRole") == {"unrelated"}
    labels = cluster.resource("Node").get("node1")["metadata"]["labels"]
    assert GATEWAY_LABEL not in labels
    assert labels["keep"] == "yes"
    assert 'The connectivity component is installed on cluster "east"' in _messages(status, "success")


def test_broker_in_use_keeps_broker_and_operator():
    cluster = Cluster()
    _populate(cluster, broker=True, endpoints=(CLUSTER, "west"))
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    namespaces = _names(cluster, "Namespace")
    assert BROKER_NS in namespaces
    assert NS in namespaces
    assert _names(cluster, "ClusterRoleBinding") == {"submariner-operator", "unrelated"}
    assert "submariners.submariner.io" in _names(cluster, "CustomResourceDefinition")
    warnings = _messages(status, "warning")
    assert any("[west]" in w and BROKER_NS in w for w in warnings)


def test_broker_used_only_by_this_cluster_is_deleted():
    cluster = Cluster()
    _populate(cluster, broker=True, endpoints=(CLUSTER,))
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    namespaces = _names(cluster, "Namespace")
    assert BROKER_NS not in namespaces
    assert NS not in namespaces
    assert 'The broker component is installed in namespace "submariner-k8s-broker"' in _messages(status, "success")


def test_service_discovery_removed_when_no_submariner():
    cluster = Cluster()
    cluster.resource("ServiceDiscovery", NS).create({"metadata": {"name": "service-discovery"}})
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    assert _names(cluster, "ServiceDiscovery", NS) == set()
    successes = _messages(status, "success")
    assert 'The connectivity component is not installed on cluster "east" - skipping' in successes
    assert 'The service discovery component is installed on cluster "east"' in successes


def test_force_deletes_when_operator_missing():
    cluster = Cluster()
    _populate(cluster, finalizer=True)
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    assert _names(cluster, "Submariner", NS) == set()
    assert any("deployment does not exist" in w and "force-deleted" in w for w in _messages(status, "warning"))


def test_running_operator_pod_is_an_error():
    cluster = Cluster()
    _populate(cluster, finalizer=True)
    cluster.resource("Deployment", NS).create(operator_deployment(NS, "repo/operator:1"))
    cluster.resource("Pod", NS).create(
        {"metadata": {"name": "op-pod", "labels": {"name": "submariner-operator"}},
         "status": {"phase": "Running"}})
    status = Reporter()

    with pytest.raises(RuntimeError, match="appears to be running"):
        uninstall_all(cluster, CLUSTER, NS, status, **FAST)
    assert _names(cluster, "Submariner", NS) == {"submariner"}


def test_pending_operator_pod_force_deletes():
    cluster = Cluster()
    _populate(cluster, finalizer=True)
    cluster.resource("Deployment", NS).create(operator_deployment(NS, "repo/operator:1"))
    cluster.resource("Pod", NS).create(
        {"metadata": {"name": "op-pod", "labels": {"name": "submariner-operator"}},
         "status": {"phase": "Pending"}})
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    assert _names(cluster, "Submariner", NS) == set()
    assert any('is not running (status is "Pending")' in w for w in _messages(status, "warning"))


def test_missing_operator_pod_force_deletes():
    cluster = Cluster()
    _populate(cluster, finalizer=True)
    cluster.resource("Deployment", NS).create(operator_deployment(NS, "repo/operator:1"))
    status = Reporter()
    uninstall_all(cluster, CLUSTER, NS, status, **FAST)

    assert _names(cluster, "Submariner", NS) == set()
    assert any("operator pod does not exist" in w for w in _messages(status, "warning"))