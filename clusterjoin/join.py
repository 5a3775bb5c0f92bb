"""Options and checks for joining a cluster to a broker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from clusterjoin import version
from clusterjoin.reporter import Reporter
from clusterjoin.resource import Cluster, Object, ResourceError

SECRET_TYPE_OPAQUE = "Opaque"


@dataclass
class JoinOptions:
    """Settings for joining a cluster."""

    preferred_server: bool = False
    force_udp_encaps: bool = False
    nat_traversal: bool = False
    ignore_requirements: bool = False
    globalnet_enabled: bool = False
    ipsec_debug: bool = False
    submariner_debug: bool = False
    operator_debug: bool = False
    air_gapped_deployment: bool = False
    load_balancer_enabled: bool = False
    health_check_enabled: bool = False
    broker_k8s_secure: bool = False
    natt_port: int = 0
    globalnet_cluster_size: int = 0
    health_check_interval: int = 0
    health_check_max_packet_loss_count: int = 0
    cluster_id: str = ""
    service_cidr: str = ""
    cluster_cidr: str = ""
    globalnet_cidr: str = ""
    repository: str = ""
    image_version: str = ""
    cable_driver: str = ""
    coredns_custom_config_map: str = ""
    custom_domains: list[str] = field(default_factory=list)
    image_override_arr: list[str] = field(default_factory=list)


def check_requirements(cluster: Cluster, ignore_requirements: bool, status: Reporter) -> None:
    """Fail, or warn if ``ignore_requirements``, when the cluster's version is too old."""
    try:
        _, failed = version.check_requirements(cluster)
    except (ResourceError, ValueError) as err:
        wrapped = status.error(err, "unable to check version requirements")
        raise (wrapped or err) from err

    if not failed:
        return

    message = "The target cluster fails to meet Submariner's version requirements:\n" + "".join(
        f"* {requirement}\n" for requirement in failed
    )
    if not ignore_requirements:
        status.failure(message)
        raise RuntimeError("version requirements not met")
    status.warning(message)


def validate_custom_coredns_config(config_map: str) -> None:
    """Reject a custom CoreDNS config map reference not in ``[namespace/]name`` form."""
    if config_map and config_map.count("/") > 1:
        raise ValueError("coredns-custom-configmap should be in <namespace>/<name> format, namespace is optional")


def broker_secret(token_data: Mapping[str, Any]) -> Object:
    """An opaque secret holding a copy of the broker token data."""
    return {
        "kind": "Secret",
        "metadata": {"generateName": "broker-secret-"},
        "type": SECRET_TYPE_OPAQUE,
        "data": dict(token_data),
    }


def submariner_options(options: JoinOptions) -> dict[str, Any]:
    """The deployment options for the full Submariner installation."""
    return {
        "preferred_server": options.preferred_server,
        "force_udp_encaps": options.force_udp_encaps,
        "nat_traversal": options.nat_traversal,
        "ipsec_debug": options.ipsec_debug,
        "submariner_debug": options.submariner_debug,
        "air_gapped_deployment": options.air_gapped_deployment,
        "load_balancer_enabled": options.load_balancer_enabled,
        "health_check_enabled": options.health_check_enabled,
        "natt_port": options.natt_port,
        "health_check_interval": options.health_check_interval,
        "health_check_max_packet_loss_count": options.health_check_max_packet_loss_count,
        "cluster_id": options.cluster_id,
        "cable_driver": options.cable_driver,
        "coredns_custom_config_map": options.coredns_custom_config_map,
        "repository": options.repository,
        "image_version": options.image_version,
        "custom_domains": list(options.custom_domains),
        "service_cidr": options.service_cidr,
        "cluster_cidr": options.cluster_cidr,
        "broker_k8s_insecure": not options.broker_k8s_secure,
    }


def service_discovery_options(options: JoinOptions) -> dict[str, Any]:
    """The deployment options for a service-discovery-only installation."""
    return {
        "submariner_debug": options.submariner_debug,
        "cluster_id": options.cluster_id,
        "coredns_custom_config_map": options.coredns_custom_config_map,
        "repository": options.repository,
        "image_version": options.image_version,
        "custom_domains": list(options.custom_domains),
        "broker_k8s_insecure": not options.broker_k8s_secure,
    }