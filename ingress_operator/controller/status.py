"""
Status publication: per-IngressController conditions and the ClusterOperator.

The syncer only reads dependents back; it never creates or repairs them. It
runs at the end of every pass, including passes where enforcement failed or
was deferred, so reported status tracks what actually exists.
"""

import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .. import manifests
from ..conditions import (
    AVAILABLE,
    DEGRADED,
    FALSE,
    LOAD_BALANCER_READY,
    PROGRESSING,
    TRUE,
    conditions_equal,
    get_condition,
    set_condition,
)
from ..errors import NotFoundError, StepError, aggregate
from ..resources import (
    CLUSTER_OPERATOR_KIND,
    CLUSTER_OPERATOR_NAME,
    CONFIG_API_VERSION,
    INGRESS_API_VERSION,
    INGRESS_GROUP,
    INGRESS_KIND,
    INGRESS_PLURAL,
    LOAD_BALANCER_SERVICE,
    conditions_of,
    is_status_domain_set,
    is_terminating,
    name_of,
    namespace_of,
    status_strategy_type,
)
from ..services.dns import load_balancer_address
from ..services.object_store import ObjectStore

logger = logging.getLogger("ingress-operator.status")


def parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def event_time(event: dict) -> Optional[datetime]:
    return parse_time(event.get("lastTimestamp") or event.get("eventTime")
                      or event.get("metadata", {}).get("creationTimestamp"))


def latest_warning_for(events: list, kind: str, name: str) -> Optional[dict]:
    """Most recent Warning event whose involvedObject is ``kind``/``name``."""
    matching = []
    for event in events:
        involved = event.get("involvedObject") or {}
        if event.get("type") != "Warning" or involved.get("kind") != kind or involved.get("name") != name:
            continue
        when = event_time(event)
        if when is not None:
            matching.append((when, event))
    if not matching:
        return None
    return max(matching, key=lambda pair: pair[0])[1]


def compute_ingress_status(ic: dict, deployment: Optional[dict], lb_service: Optional[dict],
                           events: list) -> dict:
    status = copy.deepcopy(ic.get("status") or {})
    conditions = status.get("conditions") or []

    if deployment is None:
        status["availableReplicas"] = 0
        conditions = set_condition(conditions, AVAILABLE, FALSE, "DeploymentMissing",
                                   f"router deployment {manifests.router_deployment_name(ic)} does not exist")
        conditions = set_condition(conditions, PROGRESSING, TRUE, "DeploymentMissing",
                                   "waiting for the router deployment to be created")
    else:
        desired = (deployment.get("spec") or {}).get("replicas", 1)
        observed = deployment.get("status") or {}
        available = observed.get("availableReplicas") or 0
        updated = observed.get("updatedReplicas") or 0
        status["availableReplicas"] = available
        if available > 0:
            conditions = set_condition(conditions, AVAILABLE, TRUE, "DeploymentAvailable",
                                       f"{available}/{desired} replicas available")
        else:
            conditions = set_condition(conditions, AVAILABLE, FALSE, "DeploymentUnavailable",
                                       f"0/{desired} replicas available")
        if updated < desired or available < desired:
            conditions = set_condition(conditions, PROGRESSING, TRUE, "DeploymentRollingOut",
                                       f"{updated} updated, {available} available of {desired} replicas")
        else:
            conditions = set_condition(conditions, PROGRESSING, FALSE, "AsExpected",
                                       "deployment is rolled out")

    if status_strategy_type(ic) == LOAD_BALANCER_SERVICE:
        if lb_service is not None and load_balancer_address(lb_service) is not None:
            target, _ = load_balancer_address(lb_service)
            conditions = set_condition(conditions, LOAD_BALANCER_READY, TRUE, "LoadBalancerProvisioned",
                                       f"load balancer provisioned at {target}")
        else:
            warning = latest_warning_for(events, "Service", manifests.load_balancer_service_name(ic))
            if warning is not None:
                conditions = set_condition(conditions, LOAD_BALANCER_READY, FALSE,
                                           warning.get("reason") or "LoadBalancerPending",
                                           warning.get("message") or "")
            else:
                conditions = set_condition(conditions, LOAD_BALANCER_READY, FALSE, "LoadBalancerPending",
                                           "the load balancer service has not been assigned an address")

    status["conditions"] = conditions
    return status


def compute_operator_status(old_status: dict, ingresses: list, release_version: str,
                            operator_namespace: str, router_namespace: str) -> dict:
    status = copy.deepcopy(old_status or {})
    conditions = status.get("conditions") or []

    live = [ic for ic in ingresses if not is_terminating(ic)]
    unavailable = []
    rolling = []
    for ic in live:
        available = get_condition(conditions_of(ic), AVAILABLE)
        if available is None or available.get("status") != TRUE:
            reason = (available or {}).get("reason") or "Unknown"
            unavailable.append(f"{name_of(ic)} ({reason})")
        progressing = get_condition(conditions_of(ic), PROGRESSING)
        if progressing is not None and progressing.get("status") == TRUE:
            rolling.append(name_of(ic))

    if unavailable:
        conditions = set_condition(conditions, DEGRADED, TRUE, "IngressControllersDegraded",
                                   "some ingresscontrollers are not available: " + ", ".join(unavailable))
        conditions = set_condition(conditions, AVAILABLE, FALSE, "IngressUnavailable",
                                   "not all ingresscontrollers are available")
    else:
        conditions = set_condition(conditions, DEGRADED, FALSE, "AsExpected", "")
        conditions = set_condition(conditions, AVAILABLE, TRUE, "AsExpected",
                                   f"{len(live)} ingresscontroller(s) available")

    desired_versions = [{"name": "operator", "version": release_version}]
    if rolling:
        conditions = set_condition(conditions, PROGRESSING, TRUE, "Reconciling",
                                   "ingresscontrollers rolling out: " + ", ".join(rolling))
    else:
        # versions only advance once nothing is rolling out
        status["versions"] = desired_versions
        conditions = set_condition(conditions, PROGRESSING, FALSE, "AsExpected",
                                   f"desired and current version is {release_version}")

    status["conditions"] = conditions
    status["relatedObjects"] = [
        {"group": "", "resource": "namespaces", "name": operator_namespace},
        {"group": "", "resource": "namespaces", "name": router_namespace},
        {"group": INGRESS_GROUP, "resource": INGRESS_PLURAL, "namespace": operator_namespace, "name": ""},
    ]
    return status


def _without_conditions(status: dict) -> dict:
    return {k: v for k, v in status.items() if k != "conditions"}


def _status_changed(old: dict, new: dict) -> bool:
    old, new = old or {}, new or {}
    if not conditions_equal(old.get("conditions"), new.get("conditions")):
        return True
    return _without_conditions(old) != _without_conditions(new)


class StatusSyncer:
    def __init__(self, store: ObjectStore, operator_namespace: str, router_namespace: str,
                 release_version: str, event_window: float):
        self._store = store
        self._operator_namespace = operator_namespace
        self._router_namespace = router_namespace
        self._release_version = release_version
        self._event_window = event_window

    def sync(self, ic: Optional[dict]) -> None:
        """Sync the IngressController (when live with a domain) and the operator status."""
        errors = []
        if ic is not None and is_status_domain_set(ic) and not is_terminating(ic):
            try:
                self.sync_ingress_status(ic)
            except Exception as e:
                errors.append(StepError("sync ingresscontroller status", e))
        try:
            self.sync_operator_status()
        except Exception as e:
            errors.append(StepError("sync operator status", e))
        failure = aggregate(errors)
        if failure is not None:
            raise failure

    def sync_ingress_status(self, ic: dict) -> dict:
        deployment = self._get_optional("apps/v1", "Deployment", manifests.router_deployment_name(ic))
        lb_service = None
        if status_strategy_type(ic) == LOAD_BALANCER_SERVICE:
            lb_service = self._get_optional("v1", "Service", manifests.load_balancer_service_name(ic))
        events = self.recent_events()

        desired = compute_ingress_status(ic, deployment, lb_service, events)
        if not _status_changed(ic.get("status"), desired):
            return ic
        updated = copy.deepcopy(ic)
        updated["status"] = desired
        result = self._store.update_status(updated)
        logger.info(f"updated status of ingresscontroller {namespace_of(ic)}/{name_of(ic)}")
        return result

    def sync_operator_status(self) -> dict:
        ingresses = self._store.list(INGRESS_API_VERSION, INGRESS_KIND, namespace=self._operator_namespace)
        try:
            co = self._store.get(CONFIG_API_VERSION, CLUSTER_OPERATOR_KIND, CLUSTER_OPERATOR_NAME)
        except NotFoundError:
            co = self._store.create(manifests.cluster_operator(CLUSTER_OPERATOR_NAME))
            logger.info(f"created clusteroperator {CLUSTER_OPERATOR_NAME}")

        desired = compute_operator_status(co.get("status") or {}, ingresses, self._release_version,
                                          self._operator_namespace, self._router_namespace)
        if not _status_changed(co.get("status"), desired):
            return co
        updated = copy.deepcopy(co)
        updated["status"] = desired
        result = self._store.update_status(updated)
        logger.info(f"synced clusteroperator {CLUSTER_OPERATOR_NAME} status")
        return result

    def recent_events(self) -> list:
        """Events in the router namespace newer than the configured window."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=self._event_window)
        events = self._store.list("v1", "Event", namespace=self._router_namespace)
        recent = []
        for event in events:
            when = event_time(event)
            if when is not None and when >= cutoff:
                recent.append(event)
        return recent

    def _get_optional(self, api_version: str, kind: str, name: str) -> Optional[dict]:
        try:
            return self._store.get(api_version, kind, name, self._router_namespace)
        except NotFoundError:
            return None
