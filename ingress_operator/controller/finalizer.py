"""Deletion guard on the IngressController itself."""

import copy
import logging

from ..resources import INGRESS_FINALIZER, finalizers_of, name_of, namespace_of
from ..services.object_store import ObjectStore

logger = logging.getLogger("ingress-operator.finalizer")


class FinalizerManager:
    def __init__(self, store: ObjectStore, token: str = INGRESS_FINALIZER):
        self._store = store
        self._token = token

    def has_finalizer(self, ic: dict) -> bool:
        return self._token in finalizers_of(ic)

    def enforce(self, ic: dict) -> dict:
        """Add the token if missing (full-object update). Returns the current object."""
        if self.has_finalizer(ic):
            return ic
        updated = copy.deepcopy(ic)
        updated["metadata"]["finalizers"] = finalizers_of(ic) + [self._token]
        result = self._store.update(updated)
        logger.info(f"enforced finalizer for ingress {namespace_of(ic)}/{name_of(ic)}")
        return result

    def release(self, ic: dict) -> dict:
        """Remove the token so the store may erase the object."""
        if not self.has_finalizer(ic):
            return ic
        updated = copy.deepcopy(ic)
        updated["metadata"]["finalizers"] = [f for f in finalizers_of(ic) if f != self._token]
        result = self._store.update(updated)
        logger.info(f"removed finalizer from ingress {namespace_of(ic)}/{name_of(ic)}")
        return result
