"""An in-memory cluster API and the create/update helpers built on it."""

from __future__ import annotations

import copy
import enum
import itertools
import random
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

import yaml

Object = dict[str, Any]
Mutate = Callable[[Object], Object]
CreateCallback = Callable[[Object], None]

_NAME_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
_GENERATED_SUFFIX_LEN = 5
_SERVER_FIELDS = ("resourceVersion", "uid", "namespace")


class OperationResult(enum.Enum):
    """What a create-or-update call did."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    UPDATED = "updated"


class ResourceError(Exception):
    """Base error for cluster resource operations."""


class NotFoundError(ResourceError):
    """The requested object does not exist."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f'{kind} "{name}" not found')
        self.kind = kind
        self.name = name


class AlreadyExistsError(ResourceError):
    """An object with the same name already exists."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f'{kind} "{name}" already exists')
        self.kind = kind
        self.name = name


@dataclass(frozen=True)
class ServerVersion:
    """Version information reported by an API server."""

    major: str
    minor: str
    git_version: str = ""

    def __str__(self) -> str:
        return self.git_version or f"v{self.major}.{self.minor}"


def load_object(yaml_text: str) -> Object:
    """Parse a single YAML manifest into an object mapping."""
    try:
        obj = yaml.safe_load(yaml_text)
    except yaml.YAMLError as err:
        raise ValueError(f"error parsing YAML: {err}") from err
    if not isinstance(obj, dict):
        raise ValueError("YAML document does not describe an object")
    return obj


def _lookup(obj: Mapping[str, Any], path: str) -> Any:
    value: Any = obj
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _matches(obj: Object, label_selector: Mapping[str, str] | None,
             field_selector: Mapping[str, Any] | None) -> bool:
    labels = (obj.get("metadata") or {}).get("labels") or {}
    if label_selector and any(labels.get(k) != v for k, v in label_selector.items()):
        return False
    if field_selector and any(_lookup(obj, k) != v for k, v in field_selector.items()):
        return False
    return True


def _comparable(obj: Object) -> Object:
    result = copy.deepcopy(obj)
    result.pop("kind", None)
    meta = result.get("metadata") or {}
    for field in _SERVER_FIELDS:
        meta.pop(field, None)
    result["metadata"] = meta
    return result


class Cluster:
    """A cluster holding objects in memory, keyed by kind, namespace and name."""

    def __init__(self, server_version: ServerVersion | None = None) -> None:
        self.server_version = server_version
        self._objects: dict[tuple[str, str | None, str], Object] = {}
        self._callbacks: dict[str, list[CreateCallback]] = {}
        self._versions = itertools.count(1)

    def resource(self, kind: str, namespace: str | None = None) -> ResourceClient:
        """Return a client for objects of ``kind``; ``None`` means cluster-scoped or all namespaces."""
        return ResourceClient(self, kind, namespace)

    def on_create(self, kind: str, callback: CreateCallback) -> None:
        """Call ``callback`` with a copy of every newly created object of ``kind``."""
        self._callbacks.setdefault(kind, []).append(callback)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _notify_created(self, kind: str, obj: Object) -> None:
        for callback in self._callbacks.get(kind, ()):
            callback(copy.deepcopy(obj))


class ResourceClient:
    """CRUD access to one kind of object, optionally within one namespace."""

    def __init__(self, cluster: Cluster, kind: str, namespace: str | None = None) -> None:
        self._cluster = cluster
        self.kind = kind
        self.namespace = namespace

    def _key(self, name: str) -> tuple[str, str | None, str]:
        return (self.kind, self.namespace, name)

    def _stamp(self, obj: Object) -> Object:
        obj.setdefault("kind", self.kind)
        meta = obj.setdefault("metadata", {})
        if self.namespace is not None:
            meta["namespace"] = self.namespace
        meta["resourceVersion"] = self._cluster._next_version()
        return meta

    def get(self, name: str) -> Object:
        try:
            return copy.deepcopy(self._cluster._objects[self._key(name)])
        except KeyError:
            raise NotFoundError(self.kind, name) from None

    def list(self, label_selector: Mapping[str, str] | None = None,
             field_selector: Mapping[str, Any] | None = None) -> list[Object]:
        items: Iterable[tuple[tuple[str, str | None, str], Object]] = sorted(
            self._cluster._objects.items(), key=lambda item: (item[0][1] or "", item[0][2]))
        return [
            copy.deepcopy(obj)
            for (kind, namespace, _), obj in items
            if kind == self.kind
            and (self.namespace is None or namespace == self.namespace)
            and _matches(obj, label_selector, field_selector)
        ]

    def create(self, obj: Object) -> Object:
        stored = copy.deepcopy(obj)
        meta = self._stamp(stored)
        if not meta.get("name"):
            prefix = meta.get("generateName")
            if not prefix:
                raise ResourceError(f"{self.kind}: name or generateName is required")
            while True:
                meta["name"] = prefix + "".join(random.choices(_NAME_ALPHABET, k=_GENERATED_SUFFIX_LEN))
                if self._key(meta["name"]) not in self._cluster._objects:
                    break
        key = self._key(meta["name"])
        if key in self._cluster._objects:
            raise AlreadyExistsError(self.kind, meta["name"])
        meta["uid"] = str(uuid.uuid4())
        self._cluster._objects[key] = stored
        created = copy.deepcopy(stored)
        self._cluster._notify_created(self.kind, stored)
        return created

    def update(self, obj: Object) -> Object:
        stored = copy.deepcopy(obj)
        name = (stored.get("metadata") or {}).get("name")
        key = self._key(name or "")
        existing = self._cluster._objects.get(key)
        if existing is None:
            raise NotFoundError(self.kind, name or "")
        meta = self._stamp(stored)
        meta["uid"] = existing["metadata"].get("uid")
        self._cluster._objects[key] = stored
        return copy.deepcopy(stored)

    def delete(self, name: str) -> None:
        try:
            del self._cluster._objects[self._key(name)]
        except KeyError:
            raise NotFoundError(self.kind, name) from None


def replace(obj: Object) -> Mutate:
    """A mutation that swaps the existing object for ``obj``."""
    return lambda existing: copy.deepcopy(obj)


def create_or_update_with(client: ResourceClient, obj: Object, mutate: Mutate) -> OperationResult:
    """Create ``obj``, or apply ``mutate`` to the existing object and update it if it changed."""
    name = obj["metadata"]["name"]
    try:
        existing = client.get(name)
    except NotFoundError:
        client.create(obj)
        return OperationResult.CREATED

    to_update = mutate(copy.deepcopy(existing))
    if _comparable(to_update) == _comparable(existing):
        return OperationResult.UNCHANGED
    to_update.setdefault("metadata", {}).setdefault("name", name)
    client.update(to_update)
    return OperationResult.UPDATED


def create_or_update(client: ResourceClient, obj: Object) -> bool:
    """Create or replace ``obj``; return whether it was newly created."""
    return create_or_update_with(client, obj, replace(obj)) is OperationResult.CREATED


def create_anew(client: ResourceClient, obj: Object) -> Object:
    """Create ``obj``, deleting and recreating a differing object of the same name."""
    try:
        return client.create(obj)
    except AlreadyExistsError:
        pass
    name = obj["metadata"]["name"]
    try:
        existing = client.get(name)
    except NotFoundError:
        return client.create(obj)
    if _comparable(existing) == _comparable(obj):
        return existing
    client.delete(name)
    return client.create(obj)


def update_with(client: ResourceClient, obj: Object, mutate: Mutate) -> Object:
    """Apply ``mutate`` to the current version of ``obj`` and store the result if it changed."""
    existing = client.get(obj["metadata"]["name"])
    to_update = mutate(copy.deepcopy(existing))
    if _comparable(to_update) == _comparable(existing):
        return existing
    return client.update(to_update)