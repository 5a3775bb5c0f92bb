# clusterjoin

`clusterjoin` holds the building blocks for connecting a cluster to a broker
and for removing the connectivity components again. Everything works against
a `Cluster`: a small in-memory store of Kubernetes-style objects (plain
dictionaries) kept per kind, namespace and name. A `Cluster` can carry a
`ServerVersion`, raises `NotFoundError` and `AlreadyExistsError` (both
subclasses of `ResourceError`), fills in names from `generateName`, and runs
callbacks registered with `on_create` whenever an object of a kind is created.

## Installation

```
pip install clusterjoin
```

To run the test suite, install the `test` extra and run pytest:

```
pip install "clusterjoin[test]"
pytest
```

## Modules

- `clusterjoin.resource`: `Cluster`, `ResourceClient` (`get`, `list` with
  label and field selectors, `create`, `update`, `delete`), `ServerVersion`,
  the errors, and the helpers `create_or_update`, `create_or_update_with`,
  `create_anew`, `update_with` and `replace`. `create_or_update_with` reports
  what it did as an `OperationResult` (`CREATED`, `UPDATED`, `UNCHANGED`);
  `create_or_update` returns whether the object was newly created.
- `clusterjoin.reporter`: `Reporter` records progress as a list of `Event`s
  through `start`, `end`, `success`, `warning` and `failure`, and can echo them
  to a stream. `error(err, message, ...)` records a failure and returns an
  exception to raise, or `None` when `err` is `None`.
- `clusterjoin.version`: `print_subctl_version` writes
  `subctl version: devel`; `check_requirements(cluster)` returns the server
  version string and a list of unmet requirements (Kubernetes 1.19 or later
  is required; a trailing `+` on the minor version is accepted).
- `clusterjoin.rbac`: `ensure_role`, `ensure_role_from_yaml`,
  `ensure_role_binding` and `ensure_role_binding_from_yaml`, each returning
  whether the object was newly created.
- `clusterjoin.namespace`: `ensure_namespace` creates a namespace or merges
  labels into an existing one; it returns `False` only when creation collided
  with an existing namespace.
- `clusterjoin.secret`: `ensure_secret` creates a secret, deleting and
  recreating a differing one of the same name, and returns the stored secret.
- `clusterjoin.serviceaccount`: `ensure` (returns the stored service account,
  with any `secrets` list removed), `ensure_from_yaml` (returns whether it was
  created), `get_token_secret_for`, and `ensure_token_secret`, which creates a
  token secret if none exists and waits with exponential backoff until it
  holds a `token`, raising `TimeoutError` otherwise.
- `clusterjoin.service`: `export` and `unexport` create and delete
  `ServiceExport` objects, reporting through a `Reporter`.
- `clusterjoin.customresources`: `ensure_submariner` (created anew, returns
  the object) and `ensure_service_discovery` (created or updated, returns
  whether it was created).
- `clusterjoin.operator_deployment`: `operator_deployment` builds the operator
  Deployment manifest; `get_pod_label_selector` reads its pod labels back as a
  selector string, or `""` when there is no operator Deployment.
- `clusterjoin.join`: `JoinOptions`, `check_requirements` (raises
  `RuntimeError` unless requirements are ignored), `validate_custom_coredns_config`,
  `broker_secret`, `submariner_options` and `service_discovery_options`.
- `clusterjoin.uninstall`: `uninstall_all` removes the Submariner or
  ServiceDiscovery resource (force-removing its finalizer after `max_wait`
  seconds when the operator pod is not running), the broker namespace if no
  other cluster's endpoints use it, the `submariner-` cluster roles and
  bindings, the Submariner namespace and `.submariner.io` custom resource
  definitions, and the gateway node labels.

## Example

```python
from clusterjoin.rbac import ensure_role_from_yaml
from clusterjoin.resource import Cluster, ServerVersion
from clusterjoin.version import check_requirements

ROLE = """
apiVersion: rbac.authorization.k8s.io/v1
kind: Role
metadata:
  name: test-role
rules:
  - apiGroups: [""]
    resources: [pods]
    verbs: ["*"]
"""

cluster = Cluster(ServerVersion(major="1", minor="27"))

assert check_requirements(cluster) == ("v1.27", [])
assert ensure_role_from_yaml(cluster, "test-namespace", ROLE)      # created
assert not ensure_role_from_yaml(cluster, "test-namespace", ROLE)  # already there
```

Failures are raised, not returned: `ResourceError` and its subclasses for
store operations, `ValueError` for malformed YAML or option values, and
`TimeoutError` when waiting runs out.

## What the package does not do

- It has no command-line tool; it is used as a library.
- It does not talk to a real API server. All objects live in the in-memory
  `Cluster`, and nothing is persisted.
- There is no single end-to-end join operation: the `join` module supplies the
  checks, options and broker secret, but installing CRDs, deploying the
  operator and connecting to a broker are left to the caller.