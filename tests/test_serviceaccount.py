from unittest import mock

import pytest

from clusterjoin.resource import Cluster, NotFoundError
from clusterjoin.serviceaccount import (
    SERVICE_ACCOUNT_NAME_KEY,
    SERVICE_ACCOUNT_TOKEN_TYPE,
    ensure,
    ensure_from_yaml,
    ensure_token_secret,
    get_token_secret_for,
)

NAMESPACE = "test-namespace"
SA_NAME = "test-sa"

SA_YAML = """
apiVersion: v1
kind: ServiceAccount
metadata:
  name: test-sa
"""


def _add_token(cluster):
    def callback(secret):
        secret["data"] = {"token": "AQID"}
        cluster.resource("Secret", secret["metadata"]["namespace"]).update(secret)

    return callback


@pytest.fixture
def cluster():
    c = Cluster()
    c.on_create("Secret", _add_token(c))
    return c


def assert_service_account(cluster):
    return cluster.resource("ServiceAccount", NAMESPACE).get(SA_NAME)


def assert_secret(cluster, expected):
    found = [
        s for s in cluster.resource("Secret", NAMESPACE).list()
        if (s["metadata"].get("annotations") or {}).get(SERVICE_ACCOUNT_NAME_KEY) == SA_NAME
    ]
    assert len(found) == 1
    assert found[0] == expected


def test_ensure_creates(cluster):
    created = ensure(cluster, NAMESPACE, {"metadata": {"name": SA_NAME}})
    assert created == assert_service_account(cluster)


def test_ensure_removes_token_secret_reference(cluster):
    cluster.resource("ServiceAccount", NAMESPACE).create(
        {"metadata": {"name": SA_NAME}, "secrets": [{"name": "sa-secret"}]})
    updated = ensure(cluster, NAMESPACE, {"metadata": {"name": SA_NAME}})
    assert not updated.get("secrets")


def test_ensure_from_yaml_creates(cluster):
    assert ensure_from_yaml(cluster, NAMESPACE, SA_YAML) is True
    assert assert_service_account(cluster)["metadata"]["name"] == SA_NAME


def test_ensure_from_yaml_existing(cluster):
    cluster.resource("ServiceAccount", NAMESPACE).create({"metadata": {"name": SA_NAME}})
    assert ensure_from_yaml(cluster, NAMESPACE, SA_YAML) is False
    assert assert_service_account(cluster)["metadata"]["name"] == SA_NAME


def test_ensure_from_yaml_invalid(cluster):
    with pytest.raises(ValueError, match="error extracting ServiceAccount"):
        ensure_from_yaml(cluster, NAMESPACE, "[1, 2]")


def test_token_secret_created(cluster):
    secret = ensure_token_secret(cluster, NAMESPACE, SA_NAME)
    assert secret["type"] == SERVICE_ACCOUNT_TOKEN_TYPE
    assert secret["metadata"]["annotations"][SERVICE_ACCOUNT_NAME_KEY] == SA_NAME
    assert secret["data"]["token"] == "AQID"
    assert_secret(cluster, secret)


def test_token_secret_existing(cluster):
    cluster.resource("Secret", NAMESPACE).create({
        "metadata": {
            "name": SA_NAME + "-token-abcde",
            "annotations": {SERVICE_ACCOUNT_NAME_KEY: SA_NAME},
        },
        "type": SERVICE_ACCOUNT_TOKEN_TYPE,
    })
    secret = ensure_token_secret(cluster, NAMESPACE, SA_NAME)
    assert secret["metadata"]["name"] == SA_NAME + "-token-abcde"
    assert_secret(cluster, secret)


def test_token_never_generated():
    cluster = Cluster()
    with mock.patch("time.sleep") as sleep:
        with pytest.raises(TimeoutError, match="the token was not generated"):
            ensure_token_secret(cluster, NAMESPACE, SA_NAME)
    assert sleep.call_count == 14


def test_get_token_secret_for_missing(cluster):
    cluster.resource("Secret", NAMESPACE).create({
        "metadata": {"name": "other", "annotations": {SERVICE_ACCOUNT_NAME_KEY: "someone-else"}},
        "type": SERVICE_ACCOUNT_TOKEN_TYPE,
    })
    with pytest.raises(NotFoundError):
        get_token_secret_for(cluster, NAMESPACE, SA_NAME)


def test_get_token_secret_ignores_other_types(cluster):
    cluster.resource("Secret", NAMESPACE).create({
        "metadata": {"name": "opaque", "annotations": {SERVICE_ACCOUNT_NAME_KEY: SA_NAME}},
        "type": "Opaque",
    })
    with pytest.raises(NotFoundError):
        get_token_secret_for(cluster, NAMESPACE, SA_NAME)