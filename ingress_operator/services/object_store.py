"""
Object store layer — the only place the reconciliation core touches the API server.

Design principles:
  - Objects are plain Kubernetes JSON dicts, whatever their kind
  - Every call carries a bounded request timeout; a timeout is just a
    TransientStoreError that the dispatcher retries with backoff
  - Kubernetes API exceptions are translated into the operator's error taxonomy
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from kubernetes import client, config, dynamic
from kubernetes.dynamic import exceptions as api_errors

from ..config import Settings, settings as default_settings
from ..errors import AlreadyExistsError, ConflictError, NotFoundError, TransientStoreError

logger = logging.getLogger("ingress-operator.store")


@dataclass(frozen=True)
class ObjectKey:
    """Identity of a namespaced (or cluster-scoped, namespace=None) object."""
    namespace: Optional[str]
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


def key_for(obj: dict) -> ObjectKey:
    meta = obj.get("metadata", {})
    return ObjectKey(meta.get("namespace"), meta["name"])


class ObjectStore(Protocol):
    """Synchronous get/list/create/update contract consumed by the core."""

    def get(self, api_version: str, kind: str, name: str, namespace: Optional[str] = None) -> dict: ...

    def list(self, api_version: str, kind: str, namespace: Optional[str] = None,
             label_selector: Optional[str] = None) -> list[dict]: ...

    def create(self, obj: dict) -> dict: ...

    def update(self, obj: dict) -> dict: ...

    def update_status(self, obj: dict) -> dict: ...

    def delete(self, api_version: str, kind: str, name: str, namespace: Optional[str] = None) -> None: ...


def _translate(err: api_errors.DynamicApiError, verb: str, what: str) -> Exception:
    if isinstance(err, api_errors.NotFoundError):
        return NotFoundError(f"{what} not found")
    if isinstance(err, api_errors.ConflictError):
        # 409 on create means AlreadyExists, on update it is a stale resourceVersion
        if verb == "create":
            return AlreadyExistsError(f"{what} already exists")
        return ConflictError(f"{verb} {what}: object has been modified")
    return TransientStoreError(f"{verb} {what}: {err.status} {err.reason}")


def _describe(kind: str, name: Optional[str], namespace: Optional[str]) -> str:
    if namespace:
        return f"{kind} {namespace}/{name}"
    return f"{kind} {name}"


class KubernetesObjectStore:
    """ObjectStore backed by the kubernetes dynamic client."""

    def __init__(self, settings: Settings = default_settings, api_client: Optional[client.ApiClient] = None):
        self._settings = settings
        if api_client is None:
            api_client = _load_api_client(settings)
        self._client = dynamic.DynamicClient(api_client)

    def _resource(self, api_version: str, kind: str):
        return self._client.resources.get(api_version=api_version, kind=kind)

    def _call(self, verb: str, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, _request_timeout=self._settings.REQUEST_TIMEOUT, **kwargs)
        except api_errors.DynamicApiError as e:
            raise _translate(e, verb, what) from e

    def get(self, api_version, kind, name, namespace=None):
        what = _describe(kind, name, namespace)
        resource = self._lookup(api_version, kind, "get", what)
        return self._call("get", what, resource.get, name=name, namespace=namespace).to_dict()

    def list(self, api_version, kind, namespace=None, label_selector=None):
        what = _describe(kind, "*", namespace)
        resource = self._lookup(api_version, kind, "list", what)
        result = self._call("list", what, resource.get, namespace=namespace, label_selector=label_selector)
        items = result.to_dict().get("items") or []
        for item in items:
            # list items omit apiVersion/kind
            item.setdefault("apiVersion", api_version)
            item.setdefault("kind", kind)
        return items

    def create(self, obj):
        meta = obj["metadata"]
        what = _describe(obj["kind"], meta["name"], meta.get("namespace"))
        resource = self._lookup(obj["apiVersion"], obj["kind"], "create", what)
        return self._call("create", what, resource.create, body=obj, namespace=meta.get("namespace")).to_dict()

    def update(self, obj):
        meta = obj["metadata"]
        what = _describe(obj["kind"], meta["name"], meta.get("namespace"))
        resource = self._lookup(obj["apiVersion"], obj["kind"], "update", what)
        return self._call("update", what, resource.replace, body=obj, namespace=meta.get("namespace")).to_dict()

    def update_status(self, obj):
        meta = obj["metadata"]
        what = _describe(obj["kind"], meta["name"], meta.get("namespace"))
        resource = self._lookup(obj["apiVersion"], obj["kind"], "update status of", what)
        status = resource.subresources["status"]
        return self._call(
            "update status of", what, self._client.replace, status, body=obj, namespace=meta.get("namespace")
        ).to_dict()

    def delete(self, api_version, kind, name, namespace=None):
        what = _describe(kind, name, namespace)
        resource = self._lookup(api_version, kind, "delete", what)
        self._call("delete", what, resource.delete, name=name, namespace=namespace)

    def _lookup(self, api_version, kind, verb, what):
        try:
            return self._resource(api_version, kind)
        except api_errors.ResourceNotFoundError as e:
            # The kind itself is not served (e.g. a CRD that is not installed)
            raise TransientStoreError(f"{verb} {what}: kind not served: {e}") from e
        except api_errors.DynamicApiError as e:
            raise _translate(e, verb, what) from e


def _load_api_client(settings: Settings) -> client.ApiClient:
    """Load kubeconfig the same way everywhere: in-cluster first, then local."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config(config_file=settings.KUBECONFIG or None)
    logger.info("kubernetes client configured")
    return client.ApiClient()
