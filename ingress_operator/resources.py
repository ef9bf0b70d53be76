"""API identities and accessors for the objects the operator reads and writes."""

from typing import Optional

# Primary resource
INGRESS_API_VERSION = "operator.openshift.io/v1"
INGRESS_KIND = "IngressController"
INGRESS_GROUP = "operator.openshift.io"
INGRESS_VERSION = "v1"
INGRESS_PLURAL = "ingresscontrollers"

# Cluster-wide configuration singletons (read-only)
CONFIG_API_VERSION = "config.openshift.io/v1"
CLUSTER_CONFIG_NAME = "cluster"
DNS_CONFIG_KIND = "DNS"
INFRASTRUCTURE_CONFIG_KIND = "Infrastructure"
INGRESS_CONFIG_KIND = "Ingress"
CLUSTER_OPERATOR_KIND = "ClusterOperator"
CLUSTER_OPERATOR_NAME = "ingress"

DNS_RECORD_API_VERSION = "ingress.operator.openshift.io/v1"
DNS_RECORD_KIND = "DNSRecord"

SERVICE_MONITOR_API_VERSION = "monitoring.coreos.com/v1"
SERVICE_MONITOR_KIND = "ServiceMonitor"

INGRESS_FINALIZER = "ingresscontroller.operator.openshift.io/finalizer-ingresscontroller"

# Endpoint publishing strategy types
LOAD_BALANCER_SERVICE = "LoadBalancerService"
HOST_NETWORK = "HostNetwork"
PRIVATE = "Private"


def name_of(obj: dict) -> str:
    return obj["metadata"]["name"]


def namespace_of(obj: dict) -> Optional[str]:
    return obj["metadata"].get("namespace")


def status_domain(ic: dict) -> str:
    return (ic.get("status") or {}).get("domain") or ""


def is_status_domain_set(ic: dict) -> bool:
    return len(status_domain(ic)) > 0


def status_strategy_type(ic: dict) -> Optional[str]:
    strategy = (ic.get("status") or {}).get("endpointPublishingStrategy")
    if not strategy:
        return None
    return strategy.get("type")


def is_terminating(obj: dict) -> bool:
    return bool(obj.get("metadata", {}).get("deletionTimestamp"))


def finalizers_of(obj: dict) -> list:
    return list(obj.get("metadata", {}).get("finalizers") or [])


def conditions_of(obj: dict) -> list:
    return list((obj.get("status") or {}).get("conditions") or [])
