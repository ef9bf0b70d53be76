"""
Ingress Operator — kopf dispatch for IngressController reconciliation

Architecture:
  IngressController events (create / update / resume / delete / timer)
      → per-key lock → Reconciler.reconcile(key) → ReconcileResult
  Deployment / Service events in the router namespace
      → OwnerIndex (dependent → owning IngressController) → same path

  ReconcileResult mapping:
    error         → TemporaryError(delay=RETRY_DELAY)    kopf retries with backoff
    requeue_after → TemporaryError(delay=requeue_after)  re-poll LB / teardown progress
    neither       → handler succeeds

  On Delete:
    kopf keeps its own finalizer on the object until the delete handler
    succeeds; the reconciler's teardown releases the IngressController
    finalizer once load balancer, DNS and router are gone.

Design Principles:
  - One pass at a time per IngressController, any number across them
  - The core never raises for step failures; this layer turns results into retries
  - Dependents are mapped back to owners by label, never by name guessing

Run with:  kopf run -m ingress_operator.operator
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

import kopf

from .config import settings as operator_settings
from .controller import Reconciler, ReconcileResult
from .manifests import OWNING_INGRESS_LABEL
from .resources import INGRESS_GROUP, INGRESS_PLURAL, INGRESS_VERSION
from .services import KopfEventRecorder, KubernetesObjectStore, ObjectKey

logger = logging.getLogger("ingress-operator")

KOPF_FINALIZER = "ingresscontroller.operator.openshift.io/dispatcher"


# ---------------------------------------------------------------------------
# Per-key serialization
# ---------------------------------------------------------------------------

class KeyedLocks:
    """
    One lock per ObjectKey; holders of different keys never block each other.

    A key's lock lives only while some thread holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[ObjectKey, list] = {}

    @contextmanager
    def hold(self, key: ObjectKey):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)


# ---------------------------------------------------------------------------
# Dependent → owner mapping
# ---------------------------------------------------------------------------

class OwnerIndex:
    """
    Maps dependents (kind, namespace, name) to the IngressController that owns them.

    Rebuilt from OWNING_INGRESS_LABEL as watch events arrive, so it survives
    restarts without persisted state. A dependent whose label disappears is
    still resolved through the last owner seen for it.
    """

    def __init__(self, owner_namespace: str):
        self._owner_namespace = owner_namespace
        self._guard = threading.Lock()
        self._owners: dict[tuple, ObjectKey] = {}

    def observe(self, kind: str, namespace: str, name: str, labels: Optional[dict]) -> Optional[ObjectKey]:
        dependent = (kind, namespace, name)
        owner_name = (labels or {}).get(OWNING_INGRESS_LABEL)
        with self._guard:
            if owner_name:
                self._owners[dependent] = ObjectKey(self._owner_namespace, owner_name)
            return self._owners.get(dependent)

    def forget(self, kind: str, namespace: str, name: str) -> Optional[ObjectKey]:
        with self._guard:
            return self._owners.pop((kind, namespace, name), None)

    def __len__(self):
        with self._guard:
            return len(self._owners)


# ---------------------------------------------------------------------------
# Shared state (lazily built on first use)
# ---------------------------------------------------------------------------

_store = None
_reconciler = None
_init_lock = threading.Lock()
_locks = KeyedLocks()
_owners = OwnerIndex(operator_settings.OPERATOR_NAMESPACE)


def get_store() -> KubernetesObjectStore:
    global _store
    with _init_lock:
        if _store is None:
            _store = KubernetesObjectStore(operator_settings)
    return _store


def get_reconciler() -> Reconciler:
    global _reconciler
    store = get_store()
    with _init_lock:
        if _reconciler is None:
            _reconciler = Reconciler(store, KopfEventRecorder(), operator_settings)
    return _reconciler


def handle_result(result: ReconcileResult, retry_delay: float = operator_settings.RETRY_DELAY) -> None:
    """Translate a ReconcileResult into kopf's retry protocol."""
    if result.error is not None:
        delay = retry_delay
        if result.requeue_after is not None:
            delay = min(delay, result.requeue_after)
        raise kopf.TemporaryError(str(result.error), delay=delay)
    if result.requeue_after is not None:
        raise kopf.TemporaryError(f"waiting on dependents; re-checking in {result.requeue_after}s",
                                  delay=result.requeue_after)


def run_reconcile(key: ObjectKey) -> ReconcileResult:
    with _locks.hold(key):
        return get_reconciler().reconcile(key)


# ---------------------------------------------------------------------------
# Kopf operator settings
# ---------------------------------------------------------------------------

@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **kwargs):
    logging.getLogger("ingress-operator").setLevel(operator_settings.LOG_LEVEL.upper())
    settings.posting.enabled = True
    settings.persistence.finalizer = KOPF_FINALIZER
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix="ingresscontroller.operator.openshift.io"
    )
    settings.execution.max_workers = operator_settings.MAX_WORKERS
    logger.info(
        f"Ingress Operator started (max_workers={operator_settings.MAX_WORKERS}, "
        f"operator_namespace={operator_settings.OPERATOR_NAMESPACE}, "
        f"router_namespace={operator_settings.ROUTER_NAMESPACE})"
    )

    if operator_settings.API_ENABLED:
        from .main import start_in_background
        start_in_background(get_store(), operator_settings)


# ---------------------------------------------------------------------------
# IngressController handlers
# ---------------------------------------------------------------------------

def _is_operator_namespace(namespace, **_) -> bool:
    return namespace == operator_settings.OPERATOR_NAMESPACE


@kopf.on.create(INGRESS_GROUP, INGRESS_VERSION, INGRESS_PLURAL, when=_is_operator_namespace)
@kopf.on.update(INGRESS_GROUP, INGRESS_VERSION, INGRESS_PLURAL, when=_is_operator_namespace)
@kopf.on.resume(INGRESS_GROUP, INGRESS_VERSION, INGRESS_PLURAL, when=_is_operator_namespace)
def reconcile_ingresscontroller(name, namespace, logger, **kwargs):
    """Converge one IngressController. Idempotent; every retry is a full pass."""
    logger.debug(f"reconcile triggered for {namespace}/{name}")
    handle_result(run_reconcile(ObjectKey(namespace, name)))


@kopf.on.delete(INGRESS_GROUP, INGRESS_VERSION, INGRESS_PLURAL, when=_is_operator_namespace)
def delete_ingresscontroller(name, namespace, logger, **kwargs):
    """
    Tear down a terminating IngressController.

    The pass itself sees deletionTimestamp and runs the ordered teardown; this
    handler only keeps retrying until that teardown reports done, which is
    when kopf releases the object.
    """
    logger.info(f"IngressController {namespace}/{name} is terminating")
    handle_result(run_reconcile(ObjectKey(namespace, name)))


# ---------------------------------------------------------------------------
# TIMER: periodic resync catches drift no watch event reported
# ---------------------------------------------------------------------------

@kopf.timer(INGRESS_GROUP, INGRESS_VERSION, INGRESS_PLURAL, when=_is_operator_namespace,
            interval=operator_settings.RESYNC_INTERVAL, idle=operator_settings.RESYNC_INTERVAL)
def resync_ingresscontroller(name, namespace, logger, **kwargs):
    result = run_reconcile(ObjectKey(namespace, name))
    if result.error is not None:
        logger.warning(f"resync of {namespace}/{name} failed: {result.error}")


# ---------------------------------------------------------------------------
# Dependent watches: map router Deployments / Services back to their owner
# ---------------------------------------------------------------------------

def _is_router_namespace(namespace, **_) -> bool:
    return namespace == operator_settings.ROUTER_NAMESPACE


def enqueue_owner(kind: str, event: dict, name: str, namespace: str, labels: dict) -> Optional[ObjectKey]:
    """Resolve the owner of a dependent from a watch event and reconcile it."""
    owner = _owners.observe(kind, namespace, name, labels)
    if event.get("type") == "DELETED":
        _owners.forget(kind, namespace, name)
    if owner is None:
        return None

    # Event handlers are not retried; a failing pass is picked up by the
    # owner's own retry or the next resync.
    result = run_reconcile(owner)
    if result.error is not None:
        logger.warning(f"reconcile of {owner} after {kind} {namespace}/{name} event failed: {result.error}")
    return owner


@kopf.on.event("apps", "v1", "deployments", labels={OWNING_INGRESS_LABEL: kopf.PRESENT},
               when=_is_router_namespace)
def on_router_deployment_event(event, name, namespace, labels, **kwargs):
    enqueue_owner("Deployment", event, name, namespace, labels)


@kopf.on.event("v1", "services", labels={OWNING_INGRESS_LABEL: kopf.PRESENT},
               when=_is_router_namespace)
def on_router_service_event(event, name, namespace, labels, **kwargs):
    enqueue_owner("Service", event, name, namespace, labels)
