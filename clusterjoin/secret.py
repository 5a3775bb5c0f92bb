"""Ensuring a secret is created fresh."""

from __future__ import annotations

from clusterjoin.resource import Cluster, Object, ResourceError, create_anew


def ensure_secret(cluster: Cluster, namespace: str, secret: Object) -> Object:
    """Create ``secret``, replacing a differing secret of the same name."""
    try:
        return create_anew(cluster.resource("Secret", namespace), secret)
    except ResourceError as err:
        raise ResourceError(f"error creating secret: {err}") from err