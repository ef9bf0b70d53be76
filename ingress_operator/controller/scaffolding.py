"""Idempotent ensure-exists for the shared router scaffolding."""

import logging

from .. import manifests
from ..errors import AlreadyExistsError, NotFoundError
from ..metrics import OBJECTS_CREATED
from ..services.object_store import ObjectStore

logger = logging.getLogger("ingress-operator.scaffolding")


def _describe(obj: dict) -> str:
    meta = obj["metadata"]
    if meta.get("namespace"):
        return f"{obj['kind']} {meta['namespace']}/{meta['name']}"
    return f"{obj['kind']} {meta['name']}"


class ResourceEnsurer:
    """Get-or-create primitive plus the fixed catalogue of router scaffolding."""

    def __init__(self, store: ObjectStore, router_namespace: str):
        self._store = store
        self._router_namespace = router_namespace

    def ensure_exists(self, obj: dict) -> dict:
        """Return the live object, creating ``obj`` if it is absent. Existing objects are never overwritten."""
        meta = obj["metadata"]
        try:
            return self._store.get(obj["apiVersion"], obj["kind"], meta["name"], meta.get("namespace"))
        except NotFoundError:
            pass
        try:
            created = self._store.create(obj)
        except AlreadyExistsError:
            # someone else won the race; the object exists, which is all we asked for
            return self._store.get(obj["apiVersion"], obj["kind"], meta["name"], meta.get("namespace"))
        OBJECTS_CREATED.labels(kind=obj["kind"]).inc()
        logger.info(f"created {_describe(obj)}")
        return created

    def ensure_router_scaffolding(self) -> None:
        """Cluster role, namespace, service account and binding every router needs."""
        for obj in (
            manifests.router_cluster_role(),
            manifests.router_namespace(self._router_namespace),
            manifests.router_service_account(self._router_namespace),
            manifests.router_cluster_role_binding(self._router_namespace),
        ):
            self.ensure_exists(obj)
