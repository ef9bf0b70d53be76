"""
DNS record management — wildcard records for an IngressController's domain.

Records are DNSRecord objects in the operator namespace, labeled with the
owning IngressController. A record points at the address the cloud provider
assigned to the load balancer Service: a CNAME for hostnames, an A record for IPs.
"""

import copy
import logging
from typing import Optional

from .. import manifests
from ..errors import AlreadyExistsError, NotFoundError
from ..resources import DNS_RECORD_API_VERSION, DNS_RECORD_KIND, name_of
from .object_store import ObjectStore

logger = logging.getLogger("ingress-operator.dns")


def load_balancer_address(service: dict) -> Optional[tuple[str, str]]:
    """Return (target, record type) for the first ingress address, or None if unassigned."""
    ingress = ((service.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
    for entry in ingress:
        if entry.get("hostname"):
            return entry["hostname"], "CNAME"
        if entry.get("ip"):
            return entry["ip"], "A"
    return None


def zones_of(dns_config: dict) -> list[dict]:
    spec = dns_config.get("spec") or {}
    return [z for z in (spec.get("publicZone"), spec.get("privateZone")) if z]


class DNSRecordManager:
    def __init__(self, store: ObjectStore, namespace: str):
        self._store = store
        self._namespace = namespace

    def desired_record(self, ic: dict, lb_service: dict, dns_config: dict) -> Optional[dict]:
        if not zones_of(dns_config):
            logger.info(f"no DNS zones configured; skipping DNS for ingresscontroller {name_of(ic)}")
            return None
        address = load_balancer_address(lb_service)
        if address is None:
            return None
        target, record_type = address
        return manifests.dns_record(ic, self._namespace, target, record_type)

    def ensure(self, record: dict) -> dict:
        """Create the record, or converge its spec if it drifted."""
        meta = record["metadata"]
        try:
            current = self._store.get(DNS_RECORD_API_VERSION, DNS_RECORD_KIND, meta["name"], meta["namespace"])
        except NotFoundError:
            try:
                created = self._store.create(record)
            except AlreadyExistsError:
                return self._store.get(DNS_RECORD_API_VERSION, DNS_RECORD_KIND, meta["name"], meta["namespace"])
            logger.info(f"created DNS record {meta['namespace']}/{meta['name']} for {record['spec']['dnsName']}")
            return created

        if current.get("spec") == record["spec"]:
            return current
        updated = copy.deepcopy(current)
        updated["spec"] = copy.deepcopy(record["spec"])
        result = self._store.update(updated)
        logger.info(f"updated DNS record {meta['namespace']}/{meta['name']} targets={record['spec']['targets']}")
        return result

    def delete_all(self, ic: dict) -> int:
        """Delete every record labeled for ``ic``. Already-absent records count as deleted."""
        records = self._store.list(
            DNS_RECORD_API_VERSION, DNS_RECORD_KIND,
            namespace=self._namespace, label_selector=manifests.owner_selector(ic),
        )
        for record in records:
            try:
                self._store.delete(DNS_RECORD_API_VERSION, DNS_RECORD_KIND, name_of(record), self._namespace)
                logger.info(f"deleted DNS record {self._namespace}/{name_of(record)}")
            except NotFoundError:
                pass
        return len(records)
