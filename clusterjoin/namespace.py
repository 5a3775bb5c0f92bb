"""Ensuring a namespace exists with the given labels."""

from __future__ import annotations

from typing import Mapping

from clusterjoin.resource import (
    AlreadyExistsError,
    Cluster,
    Object,
    ResourceError,
    create_or_update_with,
)


def ensure_namespace(cluster: Cluster, name: str, labels: Mapping[str, str] | None = None) -> bool:
    """Create the namespace or merge ``labels`` into it; ``False`` only if creation collided."""
    labels = dict(labels or {})
    namespace: Object = {"kind": "Namespace", "metadata": {"name": name, "labels": dict(labels)}}

    def merge_labels(existing: Object) -> Object:
        meta = existing.setdefault("metadata", {})
        meta["labels"] = {**(meta.get("labels") or {}), **labels}
        return existing

    try:
        create_or_update_with(cluster.resource("Namespace"), namespace, merge_labels)
    except AlreadyExistsError:
        return False
    except ResourceError as err:
        raise ResourceError(f"error creating Namespace: {err}") from err
    return True