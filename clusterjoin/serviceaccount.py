"""Ensuring service accounts and their token secrets."""

from __future__ import annotations

import random
import time

from clusterjoin.resource import (
    Cluster,
    NotFoundError,
    Object,
    OperationResult,
    ResourceError,
    create_or_update_with,
    load_object,
)
from clusterjoin.secret import ensure_secret

_SA_TYPE_VALUE = "kubernetes.io/service-account-token"

SERVICE_ACCOUNT_NAME_KEY = "kubernetes.io/service-account.name"
SERVICE_ACCOUNT_TOKEN_TYPE = _SA_TYPE_VALUE

_CREATED_BY_ANNOTATION = "kubernetes.io/created-by"
_CREATOR_NAME = "subctl"

_BACKOFF_STEPS = 15
_BACKOFF_DURATION = 0.030
_BACKOFF_FACTOR = 1.3
_BACKOFF_JITTER = 1.0


def _ensure(cluster: Cluster, namespace: str, service_account: Object) -> bool:
    def drop_secrets(existing: Object) -> Object:
        existing.pop("secrets", None)
        return existing

    name = service_account["metadata"]["name"]
    try:
        result = create_or_update_with(cluster.resource("ServiceAccount", namespace), service_account, drop_secrets)
    except ResourceError as err:
        raise ResourceError(f'error creating or updating ServiceAccount "{name}": {err}') from err
    return result is OperationResult.CREATED


def ensure(cluster: Cluster, namespace: str, service_account: Object) -> Object:
    """Ensure the service account exists without token secrets, and return it."""
    _ensure(cluster, namespace, service_account)
    return cluster.resource("ServiceAccount", namespace).get(service_account["metadata"]["name"])


def ensure_from_yaml(cluster: Cluster, namespace: str, yaml_text: str) -> bool:
    """Ensure the service account described by ``yaml_text``; return whether it was created."""
    try:
        service_account = load_object(yaml_text)
    except ValueError as err:
        raise ValueError(f"error extracting ServiceAccount resource from YAML: {err}") from err
    return _ensure(cluster, namespace, service_account)


def get_token_secret_for(cluster: Cluster, namespace: str, sa_name: str) -> Object:
    """Return the token secret annotated for service account ``sa_name``."""
    items = cluster.resource("Secret", namespace).list(field_selector={"type": SERVICE_ACCOUNT_TOKEN_TYPE})
    for item in items:
        annotations = (item.get("metadata") or {}).get("annotations") or {}
        if annotations.get(SERVICE_ACCOUNT_NAME_KEY) == sa_name:
            return item
    raise NotFoundError("secrets", sa_name)


def ensure_token_secret(cluster: Cluster, namespace: str, sa_name: str) -> Object:
    """Return the service account's token secret, creating one and waiting for its token if needed."""
    try:
        return get_token_secret_for(cluster, namespace, sa_name)
    except NotFoundError:
        pass

    manifest: Object = {
        "kind": "Secret",
        "metadata": {
            "generateName": f"{sa_name}-token-",
            "namespace": namespace,
            "annotations": {
                SERVICE_ACCOUNT_NAME_KEY: sa_name,
                _CREATED_BY_ANNOTATION: _CREATOR_NAME,
            },
        },
        "type": SERVICE_ACCOUNT_TOKEN_TYPE,
    }
    try:
        created = ensure_secret(cluster, namespace, manifest)
    except ResourceError as err:
        raise ResourceError(f'failed to create secret for service account "{sa_name}": {err}') from err

    name = created["metadata"]["name"]
    store = cluster.resource("Secret", namespace)
    delay = _BACKOFF_DURATION
    for step in range(_BACKOFF_STEPS):
        try:
            current = store.get(name)
        except ResourceError as err:
            raise ResourceError(f'error getting secret "{name}": {err}') from err
        if (current.get("data") or {}).get("token"):
            return current
        if step < _BACKOFF_STEPS - 1:
            time.sleep(delay * (1 + random.random() * _BACKOFF_JITTER))
            delay *= _BACKOFF_FACTOR

    raise TimeoutError(f'the token was not generated for secret "{name}"')