"""
Ordered teardown for a terminating IngressController.

  1. Load balancer exposure: delete the Service and wait until it is gone
     (the cloud provider holds it until its address is released), then
     delete the DNS records that pointed at that address
  2. Router Deployment (owned Services, Secrets and ServiceMonitors cascade)
  3. Release the IngressController finalizer

Every step treats "already absent" as done, so a pass can resume after a
partial earlier one. A failing or still-pending step stops the sequence and
the finalizer stays.
"""

import logging
from typing import Optional

from .. import manifests
from ..errors import NotFoundError
from ..resources import is_terminating, name_of, namespace_of
from ..services.dns import DNSRecordManager
from ..services.object_store import ObjectStore
from .finalizer import FinalizerManager

logger = logging.getLogger("ingress-operator.deletion")


class DeletionSequencer:
    def __init__(self, store: ObjectStore, dns: DNSRecordManager, finalizers: FinalizerManager,
                 router_namespace: str, poll_interval: float):
        self._store = store
        self._dns = dns
        self._finalizers = finalizers
        self._router_namespace = router_namespace
        self._poll_interval = poll_interval

    def ensure_deleted(self, ic: dict) -> Optional[float]:
        """Run the teardown. Returns a requeue delay while waiting on the load balancer, else None."""
        if not self.finalize_load_balancer_service(ic):
            logger.info(f"waiting for load balancer service of ingress {namespace_of(ic)}/{name_of(ic)} "
                        f"to be released")
            return self._poll_interval
        logger.info(f"finalized load balancer service for ingress {namespace_of(ic)}/{name_of(ic)}")

        self.ensure_router_deleted(ic)
        logger.info(f"deleted deployment for ingress {namespace_of(ic)}/{name_of(ic)}")

        self._finalizers.release(ic)
        return None

    def finalize_load_balancer_service(self, ic: dict) -> bool:
        """True once the LB Service is gone and its DNS records are deleted."""
        name = manifests.load_balancer_service_name(ic)
        service = self._get_service(name)
        if service is not None:
            if not is_terminating(service):
                try:
                    self._store.delete("v1", "Service", name, self._router_namespace)
                    logger.info(f"deleted load balancer service {self._router_namespace}/{name}")
                except NotFoundError:
                    service = None
            if service is not None and self._get_service(name) is not None:
                return False

        removed = self._dns.delete_all(ic)
        if removed:
            logger.info(f"deleted {removed} DNS record(s) for ingress {namespace_of(ic)}/{name_of(ic)}")
        return True

    def ensure_router_deleted(self, ic: dict) -> None:
        name = manifests.router_deployment_name(ic)
        try:
            self._store.delete("apps/v1", "Deployment", name, self._router_namespace)
        except NotFoundError:
            logger.debug(f"deployment {self._router_namespace}/{name} already gone")

    def _get_service(self, name: str) -> Optional[dict]:
        try:
            return self._store.get("v1", "Service", name, self._router_namespace)
        except NotFoundError:
            return None
