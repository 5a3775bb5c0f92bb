"""The operator Deployment definition and lookups on it."""

from __future__ import annotations

from clusterjoin.resource import Cluster, NotFoundError, Object, ResourceError

OPERATOR_NAME = "submariner-operator"
PULL_ALWAYS = "Always"
PULL_IF_NOT_PRESENT = "IfNotPresent"


def _field_env(name: str, field_path: str) -> Object:
    return {"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}}


def operator_deployment(namespace: str, image: str, debug: bool = False) -> Object:
    """Build the operator Deployment running ``image``."""
    # A local development image is never pulled from a registry.
    pull_policy = PULL_IF_NOT_PRESENT if image.endswith(":local") else PULL_ALWAYS
    command = [OPERATOR_NAME, "-v=3" if debug else "-v=1"]
    labels = {"name": OPERATOR_NAME}

    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"namespace": namespace, "name": OPERATOR_NAME},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "serviceAccountName": OPERATOR_NAME,
                    "containers": [
                        {
                            "name": OPERATOR_NAME,
                            "image": image,
                            "command": command,
                            "imagePullPolicy": pull_policy,
                            "securityContext": {
                                "runAsNonRoot": True,
                                "allowPrivilegeEscalation": False,
                            },
                            "env": [
                                _field_env("WATCH_NAMESPACE", "metadata.namespace"),
                                _field_env("POD_NAME", "metadata.name"),
                                {"name": "OPERATOR_NAME", "value": OPERATOR_NAME},
                            ],
                        }
                    ],
                },
            },
        },
    }


def get_pod_label_selector(cluster: Cluster, namespace: str) -> str:
    """Return the operator pods' label selector, or ``""`` if there is no operator Deployment."""
    try:
        deployment = cluster.resource("Deployment", namespace).get(OPERATOR_NAME)
    except NotFoundError:
        return ""
    except ResourceError as err:
        raise ResourceError(f"error retrieving operator deployment: {err}") from err

    template = (deployment.get("spec") or {}).get("template") or {}
    labels = (template.get("metadata") or {}).get("labels") or {}
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))