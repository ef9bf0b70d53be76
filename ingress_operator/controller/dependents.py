"""
Dependent resource graph for a live IngressController.

Order matters, later objects reference earlier ones:
  Deployment → owner reference → load balancer Service (LB strategy only)
  → DNS record (once the LB has an address) → internal Service
  → metrics integration (stats secret, RBAC, ServiceMonitor)

Sub-steps that do not depend on each other fail independently; their errors
are collected into one PartialEnsureFailure instead of aborting the pass.
"""

import copy
import logging
from typing import Optional

from .. import manifests
from ..errors import NotFoundError, PartialEnsureFailure, StepError, aggregate
from ..metrics import OBJECTS_CREATED
from ..resources import LOAD_BALANCER_SERVICE, name_of, status_strategy_type
from ..services.dns import DNSRecordManager, load_balancer_address
from ..services.object_store import ObjectStore
from .scaffolding import ResourceEnsurer

logger = logging.getLogger("ingress-operator.dependents")


def _container(deployment: dict) -> dict:
    containers = deployment["spec"]["template"]["spec"].get("containers") or [{}]
    return containers[0]


def deployment_needs_update(current: dict, desired: dict) -> bool:
    """Compare only the fields the operator manages."""
    cur_spec, want_spec = current.get("spec") or {}, desired["spec"]
    if cur_spec.get("replicas") != want_spec.get("replicas"):
        return True
    if not cur_spec.get("template"):
        return True
    cur_pod, want_pod = cur_spec["template"].get("spec") or {}, want_spec["template"]["spec"]
    if bool(cur_pod.get("hostNetwork")) != bool(want_pod.get("hostNetwork")):
        return True
    cur_c, want_c = _container(current), _container(desired)
    return cur_c.get("image") != want_c.get("image") or cur_c.get("env") != want_c.get("env")


class DependentResourceEnsurer:
    def __init__(self, store: ObjectStore, resources: ResourceEnsurer, dns: DNSRecordManager,
                 router_namespace: str, router_image: str, default_replicas: int, lb_poll_interval: float):
        self._store = store
        self._resources = resources
        self._dns = dns
        self._router_namespace = router_namespace
        self._router_image = router_image
        self._default_replicas = default_replicas
        self._lb_poll_interval = lb_poll_interval

    def ensure(self, ic: dict, dns_config: dict) -> Optional[float]:
        """
        Converge every dependent of ``ic``.

        Returns a requeue delay when the load balancer has not been assigned
        an address yet, otherwise None. Raises PartialEnsureFailure if any
        sub-step failed.
        """
        errors = []
        requeue_after = None

        try:
            deployment = self.ensure_router_deployment(ic)
        except Exception as e:
            raise PartialEnsureFailure([StepError(f"ensure router deployment for {name_of(ic)}", e)])
        owner_ref = manifests.deployment_owner_reference(deployment)

        try:
            lb_service = self.ensure_load_balancer_service(ic, owner_ref)
        except Exception as e:
            errors.append(StepError(f"ensure load balancer service for {name_of(ic)}", e))
        else:
            if lb_service is not None:
                try:
                    requeue_after = self.ensure_dns(ic, lb_service, dns_config)
                except Exception as e:
                    errors.append(StepError(f"ensure DNS for {name_of(ic)}", e))

        try:
            internal = self.ensure_internal_service(ic, owner_ref)
        except Exception as e:
            errors.append(StepError(f"create internal router service for ingresscontroller {name_of(ic)}", e))
        else:
            errors.extend(self.ensure_metrics_integration(ic, internal, owner_ref))

        failure = aggregate(errors, cls=PartialEnsureFailure)
        if failure is not None:
            raise failure
        return requeue_after

    # ------------------------------------------------------------------
    # Workload
    # ------------------------------------------------------------------
    def ensure_router_deployment(self, ic: dict) -> dict:
        desired = manifests.router_deployment(ic, self._router_namespace, self._router_image,
                                              self._default_replicas)
        name = desired["metadata"]["name"]
        try:
            current = self._store.get("apps/v1", "Deployment", name, self._router_namespace)
        except NotFoundError:
            created = self._store.create(desired)
            OBJECTS_CREATED.labels(kind="Deployment").inc()
            logger.info(f"created router deployment {self._router_namespace}/{name}")
            return created

        if not deployment_needs_update(current, desired):
            return current
        updated = copy.deepcopy(current)
        updated["spec"]["replicas"] = desired["spec"]["replicas"]
        updated["spec"]["template"] = desired["spec"]["template"]
        result = self._store.update(updated)
        logger.info(f"updated router deployment {self._router_namespace}/{name}")
        return result

    # ------------------------------------------------------------------
    # Services and DNS
    # ------------------------------------------------------------------
    def ensure_load_balancer_service(self, ic: dict, owner_ref: dict) -> Optional[dict]:
        if status_strategy_type(ic) != LOAD_BALANCER_SERVICE:
            return None
        return self._resources.ensure_exists(
            manifests.load_balancer_service(ic, self._router_namespace, owner_ref))

    def ensure_dns(self, ic: dict, lb_service: dict, dns_config: dict) -> Optional[float]:
        record = self._dns.desired_record(ic, lb_service, dns_config)
        if record is None:
            if load_balancer_address(lb_service) is not None:
                return None
            logger.info(f"load balancer for ingress {name_of(ic)} has no address yet; will re-check")
            return self._lb_poll_interval
        self._dns.ensure(record)
        return None

    def ensure_internal_service(self, ic: dict, owner_ref: dict) -> dict:
        return self._resources.ensure_exists(
            manifests.internal_service(ic, self._router_namespace, owner_ref))

    # ------------------------------------------------------------------
    # Metrics integration
    # ------------------------------------------------------------------
    def ensure_metrics_integration(self, ic: dict, internal_service: dict, owner_ref: dict) -> list:
        """Returns the errors of the sub-steps that failed."""
        errors = []
        steps = [
            ("router stats secret", manifests.router_stats_secret(ic, self._router_namespace, owner_ref)),
            ("router metrics cluster role", manifests.metrics_cluster_role()),
            ("router metrics cluster role binding", manifests.metrics_cluster_role_binding()),
            ("router metrics role", manifests.metrics_role(self._router_namespace)),
            ("router metrics role binding", manifests.metrics_role_binding(self._router_namespace)),
            ("servicemonitor", manifests.service_monitor(ic, self._router_namespace, owner_ref)),
        ]
        for what, obj in steps:
            try:
                self._resources.ensure_exists(obj)
            except Exception as e:
                errors.append(StepError(f"ensure {what} for {name_of(ic)}", e))
        if errors:
            logger.warning(f"metrics integration incomplete for ingresscontroller {name_of(ic)} "
                           f"(service {internal_service['metadata']['name']})")
        return errors
