"""
IngressController reconciliation.

One pass, for one IngressController key:

  get ingresscontroller ─┐  (not found: nothing to enforce, still sync status)
  get dns/infrastructure/ingress configs ─┐  (any missing: defer enforcement)
      ensure router scaffolding
      enforce domain ──(published?)── enforce endpoint publishing strategy
          ├─ terminating: teardown LB + DNS → deployment → finalizer
          └─ live:        finalizer → dependents
  sync status (always)

Every step error is collected rather than raised; only steps that logically
depend on an earlier one are skipped, through the gating above. The combined
error asks the dispatcher to retry with backoff.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from ..errors import AggregateError, ConfigurationIncomplete, NotFoundError, StepError, aggregate
from ..metrics import RECONCILE_DURATION, RECONCILE_TOTAL
from ..resources import (
    CLUSTER_CONFIG_NAME,
    CONFIG_API_VERSION,
    DNS_CONFIG_KIND,
    INFRASTRUCTURE_CONFIG_KIND,
    INGRESS_API_VERSION,
    INGRESS_CONFIG_KIND,
    INGRESS_KIND,
    is_status_domain_set,
    is_terminating,
    name_of,
)
from ..services.dns import DNSRecordManager
from ..services.event_recorder import EventRecorder
from ..services.object_store import ObjectKey, ObjectStore
from .deletion import DeletionSequencer
from .dependents import DependentResourceEnsurer
from .domain import DomainEnforcer
from .finalizer import FinalizerManager
from .scaffolding import ResourceEnsurer
from .status import StatusSyncer
from .strategy import EndpointStrategyEnforcer

logger = logging.getLogger("ingress-operator.controller")


@dataclass
class ReconcileResult:
    requeue_after: Optional[float] = None
    error: Optional[AggregateError] = None

    @property
    def requeue(self) -> bool:
        return self.error is not None or self.requeue_after is not None


@dataclass
class ClusterConfigs:
    dns: dict
    infrastructure: dict
    ingress: dict


def _earliest(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


class Reconciler:
    """Drives one IngressController toward its desired state per call to reconcile()."""

    def __init__(self, store: ObjectStore, recorder: EventRecorder, settings: Settings):
        self.store = store
        dns = DNSRecordManager(store, settings.OPERATOR_NAMESPACE)
        self.resources = ResourceEnsurer(store, settings.ROUTER_NAMESPACE)
        self.finalizers = FinalizerManager(store)
        self.domains = DomainEnforcer(store, recorder)
        self.strategies = EndpointStrategyEnforcer(store)
        self.deletion = DeletionSequencer(store, dns, self.finalizers, settings.ROUTER_NAMESPACE,
                                          settings.DELETION_POLL_INTERVAL)
        self.dependents = DependentResourceEnsurer(store, self.resources, dns, settings.ROUTER_NAMESPACE,
                                                   settings.ROUTER_IMAGE, settings.DEFAULT_REPLICAS,
                                                   settings.LB_POLL_INTERVAL)
        self.status = StatusSyncer(store, settings.OPERATOR_NAMESPACE, settings.ROUTER_NAMESPACE,
                                   settings.RELEASE_VERSION, settings.EVENT_WINDOW)

    def reconcile(self, key: ObjectKey) -> ReconcileResult:
        """Run one pass for ``key``. Never raises for step failures; see ReconcileResult.error."""
        started = time.monotonic()
        errors = []
        requeue_after = None

        logger.info(f"reconciling {key}")

        ingress = None
        try:
            ingress = self.store.get(INGRESS_API_VERSION, INGRESS_KIND, key.name, key.namespace)
        except NotFoundError:
            # Already deleted/finalized, or a stale trigger from a dependent.
            logger.info(f"ingresscontroller {key} not found; reconciliation will be skipped")
        except Exception as e:
            errors.append(StepError(f"get ingresscontroller {key}", e))

        if ingress is not None:
            configs = self._get_cluster_configs(errors)
            if configs is None:
                logger.warning(f"cluster configuration incomplete; deferring enforcement for {key}")
            else:
                ingress, requeue_after = self._enforce(ingress, configs, errors)

        try:
            self.status.sync(ingress)
        except Exception as e:
            errors.append(StepError("sync operator status", e))

        result = ReconcileResult(requeue_after=requeue_after, error=aggregate(errors))
        RECONCILE_DURATION.observe(time.monotonic() - started)
        if result.error is not None:
            RECONCILE_TOTAL.labels(result="error").inc()
            logger.error(f"reconcile of {key} failed: {result.error}")
        elif result.requeue_after is not None:
            RECONCILE_TOTAL.labels(result="requeue").inc()
            logger.info(f"reconciled {key}; re-checking in {result.requeue_after}s")
        else:
            RECONCILE_TOTAL.labels(result="success").inc()
            logger.info(f"reconciled {key}")
        return result

    def _get_cluster_configs(self, errors: list) -> Optional[ClusterConfigs]:
        fetched = {}
        for kind in (DNS_CONFIG_KIND, INFRASTRUCTURE_CONFIG_KIND, INGRESS_CONFIG_KIND):
            try:
                fetched[kind] = self.store.get(CONFIG_API_VERSION, kind, CLUSTER_CONFIG_NAME)
            except Exception as e:
                errors.append(ConfigurationIncomplete(
                    f"failed to get {kind.lower()} '{CLUSTER_CONFIG_NAME}': {e}"))
        if len(fetched) != 3:
            return None
        return ClusterConfigs(
            dns=fetched[DNS_CONFIG_KIND],
            infrastructure=fetched[INFRASTRUCTURE_CONFIG_KIND],
            ingress=fetched[INGRESS_CONFIG_KIND],
        )

    def _enforce(self, ingress: dict, configs: ClusterConfigs, errors: list) -> tuple[dict, Optional[float]]:
        requeue_after = None
        name = name_of(ingress)

        try:
            self.resources.ensure_router_scaffolding()
        except Exception as e:
            errors.append(StepError("ensure router namespace", e))

        try:
            ingress = self.domains.enforce(ingress, configs.ingress)
        except Exception as e:
            errors.append(StepError(f"enforce the effective ingress domain for ingresscontroller {name}", e))
            return ingress, requeue_after
        if not is_status_domain_set(ingress):
            return ingress, requeue_after

        try:
            ingress = self.strategies.enforce(ingress, configs.infrastructure)
        except Exception as e:
            errors.append(StepError(
                f"enforce the effective endpoint publishing strategy for ingresscontroller {name}", e))
            return ingress, requeue_after

        if is_terminating(ingress):
            try:
                requeue_after = _earliest(requeue_after, self.deletion.ensure_deleted(ingress))
            except Exception as e:
                errors.append(StepError("ensure ingress deletion", e))
            return ingress, requeue_after

        try:
            ingress = self.finalizers.enforce(ingress)
        except Exception as e:
            errors.append(StepError(f"enforce ingress finalizer {ingress['metadata'].get('namespace')}/{name}", e))
            return ingress, requeue_after

        try:
            requeue_after = _earliest(requeue_after, self.dependents.ensure(ingress, configs.dns))
        except Exception as e:
            errors.append(StepError("ensure ingresscontroller", e))
        return ingress, requeue_after
