"""
Effective ingress domain enforcement.

The domain published to status.domain is immutable: once set it is never
recomputed, whatever happens to spec.domain or the cluster default. Uniqueness
is checked against siblings read from the store's list, which may lag behind
the API server; two IngressControllers created at the same moment can both
pass the check. A later pass triggered by the resulting status update is
where that resolves, there is no cluster-wide lock to do better.
"""

import copy
import logging

from ..conditions import AVAILABLE, FALSE, conditions_equal, get_condition, new_condition
from ..metrics import DOMAIN_CONFLICTS
from ..resources import (
    INGRESS_API_VERSION,
    INGRESS_KIND,
    is_status_domain_set,
    name_of,
    namespace_of,
    status_domain,
)
from ..services.event_recorder import NORMAL, WARNING, EventRecorder
from ..services.object_store import ObjectStore

logger = logging.getLogger("ingress-operator.domain")

INVALID_DOMAIN = "InvalidDomain"


class DomainEnforcer:
    def __init__(self, store: ObjectStore, recorder: EventRecorder):
        self._store = store
        self._recorder = recorder

    def enforce(self, ic: dict, ingress_config: dict) -> dict:
        """
        Publish the effective domain for ``ic`` and return the refreshed object.

        Candidate is spec.domain, else the cluster default from the ingress
        config. A conflicting (or empty) candidate is not published; instead
        the condition list is replaced with a single Available=False/InvalidDomain
        condition. Either way the status is written and the object re-read so
        later steps see the server-assigned resourceVersion, unless the same
        refusal is already recorded, in which case nothing is written or posted.
        """
        if is_status_domain_set(ic):
            return ic

        domain = (ic.get("spec") or {}).get("domain") or (ingress_config.get("spec") or {}).get("domain") or ""
        updated = copy.deepcopy(ic)
        status = updated.setdefault("status", {})

        if not domain:
            message = "no domain is set in spec.domain and the cluster ingress config has no default"
            unique = False
        else:
            message = f'domain "{domain}" is already in use by another IngressController'
            unique = self.is_domain_unique(domain, ic)

        if unique:
            status["domain"] = domain
        else:
            previous = get_condition(status.get("conditions"), AVAILABLE)
            refused = [new_condition(AVAILABLE, FALSE, INVALID_DOMAIN, message, previous=previous)]
            # refusal already recorded
            if conditions_equal(status.get("conditions"), refused):
                return ic
            logger.info(f"domain not unique, not setting status domain for IngressController "
                        f"{namespace_of(ic)}/{name_of(ic)}")
            status["conditions"] = refused

        self._store.update_status(updated)
        refreshed = self._store.get(INGRESS_API_VERSION, INGRESS_KIND, name_of(ic), namespace_of(ic))

        if unique:
            logger.info(f"published domain {domain} for IngressController {namespace_of(ic)}/{name_of(ic)}")
            self._recorder.event(refreshed, NORMAL, "DomainPublished", f"published domain {domain}")
        else:
            DOMAIN_CONFLICTS.inc()
            self._recorder.event(refreshed, WARNING, INVALID_DOMAIN, message)
        return refreshed

    def is_domain_unique(self, domain: str, ic: dict) -> bool:
        """False if any sibling in the same namespace already publishes ``domain``."""
        siblings = self._store.list(INGRESS_API_VERSION, INGRESS_KIND, namespace=namespace_of(ic))
        for sibling in siblings:
            if name_of(sibling) == name_of(ic):
                continue
            if status_domain(sibling) and status_domain(sibling) == domain:
                logger.info(f"domain {domain} conflicts with existing IngressController "
                            f"{namespace_of(sibling)}/{name_of(sibling)}")
                return False
        return True
