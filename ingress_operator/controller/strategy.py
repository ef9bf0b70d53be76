"""Endpoint publishing strategy enforcement."""

import copy
import logging

from ..resources import (
    HOST_NETWORK,
    INGRESS_API_VERSION,
    INGRESS_KIND,
    LOAD_BALANCER_SERVICE,
    name_of,
    namespace_of,
)
from ..services.object_store import ObjectStore

logger = logging.getLogger("ingress-operator.strategy")

# Platforms with a cloud load balancer get one; everything else publishes on
# the host network.
PLATFORM_STRATEGIES = {
    "AWS": LOAD_BALANCER_SERVICE,
    "Azure": LOAD_BALANCER_SERVICE,
    "GCP": LOAD_BALANCER_SERVICE,
    "IBMCloud": LOAD_BALANCER_SERVICE,
    "Libvirt": HOST_NETWORK,
    "BareMetal": HOST_NETWORK,
    "OpenStack": HOST_NETWORK,
    "VSphere": HOST_NETWORK,
    "None": HOST_NETWORK,
}


def platform_of(infra_config: dict) -> str:
    status = infra_config.get("status") or {}
    platform_status = status.get("platformStatus") or {}
    return platform_status.get("type") or status.get("platform") or ""


def publishing_strategy_type_for_infra(infra_config: dict) -> str:
    return PLATFORM_STRATEGIES.get(platform_of(infra_config), HOST_NETWORK)


class EndpointStrategyEnforcer:
    def __init__(self, store: ObjectStore):
        self._store = store

    def enforce(self, ic: dict, infra_config: dict) -> dict:
        """Publish the effective strategy (write-once) and return the refreshed object."""
        if (ic.get("status") or {}).get("endpointPublishingStrategy"):
            return ic

        updated = copy.deepcopy(ic)
        requested = (ic.get("spec") or {}).get("endpointPublishingStrategy")
        if requested:
            strategy = copy.deepcopy(requested)
        else:
            strategy = {"type": publishing_strategy_type_for_infra(infra_config)}
        updated.setdefault("status", {})["endpointPublishingStrategy"] = strategy

        self._store.update_status(updated)
        logger.info(f"published endpoint publishing strategy {strategy['type']} for "
                    f"IngressController {namespace_of(ic)}/{name_of(ic)}")
        return self._store.get(INGRESS_API_VERSION, INGRESS_KIND, name_of(ic), namespace_of(ic))
