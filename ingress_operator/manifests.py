"""
Desired-state manifests for router scaffolding and per-IngressController operands.

Every per-IngressController object carries OWNING_INGRESS_LABEL so watch events
on it can be mapped back to its owner. Objects in the router namespace are
additionally owned by the router Deployment so they are garbage collected with it.
"""

import secrets

from .resources import (
    CONFIG_API_VERSION,
    DNS_RECORD_API_VERSION,
    DNS_RECORD_KIND,
    HOST_NETWORK,
    SERVICE_MONITOR_API_VERSION,
    SERVICE_MONITOR_KIND,
    name_of,
    status_domain,
    status_strategy_type,
)

OWNING_INGRESS_LABEL = "ingresscontroller.operator.openshift.io/owning-ingresscontroller"
DEPLOYMENT_LABEL = "ingresscontroller.operator.openshift.io/deployment-ingresscontroller"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "ingress-operator"

ROUTER_CLUSTER_ROLE = "openshift-ingress-router"
ROUTER_SERVICE_ACCOUNT = "router"
METRICS_CLUSTER_ROLE = "router-monitoring"
METRICS_ROLE = "prometheus-k8s"
MONITORING_NAMESPACE = "openshift-monitoring"
PROMETHEUS_SERVICE_ACCOUNT = "prometheus-k8s"

DNS_RECORD_TTL = 30


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def router_deployment_name(ic: dict) -> str:
    return f"router-{name_of(ic)}"


def load_balancer_service_name(ic: dict) -> str:
    return f"router-{name_of(ic)}"


def internal_service_name(ic: dict) -> str:
    return f"router-internal-{name_of(ic)}"


def stats_secret_name(ic: dict) -> str:
    return f"router-stats-{name_of(ic)}"


def service_monitor_name(ic: dict) -> str:
    return f"router-{name_of(ic)}"


def dns_record_name(ic: dict) -> str:
    return f"{name_of(ic)}-wildcard"


def owner_labels(ic: dict) -> dict:
    return {
        MANAGED_BY_LABEL: MANAGED_BY,
        OWNING_INGRESS_LABEL: name_of(ic),
    }


def owner_selector(ic: dict) -> str:
    return f"{OWNING_INGRESS_LABEL}={name_of(ic)}"


def pod_selector(ic: dict) -> dict:
    return {DEPLOYMENT_LABEL: name_of(ic)}


def deployment_owner_reference(deployment: dict) -> dict:
    meta = deployment["metadata"]
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "name": meta["name"],
        "uid": meta["uid"],
        "controller": True,
    }


# ---------------------------------------------------------------------------
# Router scaffolding (shared by every IngressController)
# ---------------------------------------------------------------------------

def router_namespace(namespace: str) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {
            "name": namespace,
            "labels": {MANAGED_BY_LABEL: MANAGED_BY, "openshift.io/cluster-monitoring": "true"},
        },
    }


def router_service_account(namespace: str) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"name": ROUTER_SERVICE_ACCOUNT, "namespace": namespace},
    }


def router_cluster_role() -> dict:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRole",
        "metadata": {"name": ROUTER_CLUSTER_ROLE},
        "rules": [
            {"apiGroups": [""], "resources": ["endpoints", "namespaces", "services"],
             "verbs": ["list", "watch"]},
            {"apiGroups": ["route.openshift.io"], "resources": ["routes"], "verbs": ["list", "watch"]},
            {"apiGroups": ["route.openshift.io"], "resources": ["routes/status"], "verbs": ["update"]},
            {"apiGroups": ["authentication.k8s.io"], "resources": ["tokenreviews"], "verbs": ["create"]},
            {"apiGroups": ["authorization.k8s.io"], "resources": ["subjectaccessreviews"], "verbs": ["create"]},
        ],
    }


def router_cluster_role_binding(namespace: str) -> dict:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {"name": ROUTER_CLUSTER_ROLE},
        "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": "ClusterRole", "name": ROUTER_CLUSTER_ROLE},
        "subjects": [{"kind": "ServiceAccount", "name": ROUTER_SERVICE_ACCOUNT, "namespace": namespace}],
    }


# ---------------------------------------------------------------------------
# Per-IngressController operands
# ---------------------------------------------------------------------------

def router_deployment(ic: dict, namespace: str, image: str, default_replicas: int) -> dict:
    spec = ic.get("spec") or {}
    replicas = spec.get("replicas", default_replicas)
    host_network = status_strategy_type(ic) == HOST_NETWORK
    container = {
        "name": "router",
        "image": image,
        "env": [
            {"name": "ROUTER_SERVICE_NAME", "value": name_of(ic)},
            {"name": "ROUTER_SERVICE_NAMESPACE", "value": namespace},
            {"name": "ROUTER_CANONICAL_HOSTNAME", "value": status_domain(ic)},
            {"name": "STATS_USERNAME", "valueFrom": {"secretKeyRef": {"name": stats_secret_name(ic), "key": "statsUsername"}}},
            {"name": "STATS_PASSWORD", "valueFrom": {"secretKeyRef": {"name": stats_secret_name(ic), "key": "statsPassword"}}},
        ],
        "ports": [
            {"name": "http", "containerPort": 80},
            {"name": "https", "containerPort": 443},
            {"name": "metrics", "containerPort": 1936},
        ],
    }
    pod_spec = {
        "serviceAccountName": ROUTER_SERVICE_ACCOUNT,
        "containers": [container],
    }
    if host_network:
        pod_spec["hostNetwork"] = True
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": router_deployment_name(ic),
            "namespace": namespace,
            "labels": owner_labels(ic),
        },
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": pod_selector(ic)},
            "template": {
                "metadata": {"labels": pod_selector(ic)},
                "spec": pod_spec,
            },
        },
    }


def load_balancer_service(ic: dict, namespace: str, owner_ref: dict) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": load_balancer_service_name(ic),
            "namespace": namespace,
            "labels": owner_labels(ic),
            "ownerReferences": [owner_ref],
        },
        "spec": {
            "type": "LoadBalancer",
            "externalTrafficPolicy": "Local",
            "selector": pod_selector(ic),
            "ports": [
                {"name": "http", "protocol": "TCP", "port": 80, "targetPort": "http"},
                {"name": "https", "protocol": "TCP", "port": 443, "targetPort": "https"},
            ],
        },
    }


def internal_service(ic: dict, namespace: str, owner_ref: dict) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": internal_service_name(ic),
            "namespace": namespace,
            "labels": owner_labels(ic),
            "ownerReferences": [owner_ref],
        },
        "spec": {
            "type": "ClusterIP",
            "selector": pod_selector(ic),
            "ports": [
                {"name": "http", "protocol": "TCP", "port": 80, "targetPort": "http"},
                {"name": "https", "protocol": "TCP", "port": 443, "targetPort": "https"},
                {"name": "metrics", "protocol": "TCP", "port": 1936, "targetPort": "metrics"},
            ],
        },
    }


def router_stats_secret(ic: dict, namespace: str, owner_ref: dict) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {
            "name": stats_secret_name(ic),
            "namespace": namespace,
            "labels": owner_labels(ic),
            "ownerReferences": [owner_ref],
        },
        "stringData": {
            "statsUsername": secrets.token_hex(8),
            "statsPassword": secrets.token_urlsafe(24),
        },
    }


def metrics_cluster_role() -> dict:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRole",
        "metadata": {"name": METRICS_CLUSTER_ROLE},
        "rules": [
            {"apiGroups": ["route.openshift.io"], "resources": ["routers/metrics"], "verbs": ["get"]},
            {"apiGroups": ["authentication.k8s.io"], "resources": ["tokenreviews"], "verbs": ["create"]},
        ],
    }


def metrics_cluster_role_binding() -> dict:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {"name": METRICS_CLUSTER_ROLE},
        "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": "ClusterRole", "name": METRICS_CLUSTER_ROLE},
        "subjects": [{"kind": "ServiceAccount", "name": PROMETHEUS_SERVICE_ACCOUNT,
                      "namespace": MONITORING_NAMESPACE}],
    }


def metrics_role(namespace: str) -> dict:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "Role",
        "metadata": {"name": METRICS_ROLE, "namespace": namespace},
        "rules": [
            {"apiGroups": [""], "resources": ["services", "endpoints", "pods"], "verbs": ["get", "list", "watch"]},
        ],
    }


def metrics_role_binding(namespace: str) -> dict:
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": {"name": METRICS_ROLE, "namespace": namespace},
        "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": "Role", "name": METRICS_ROLE},
        "subjects": [{"kind": "ServiceAccount", "name": PROMETHEUS_SERVICE_ACCOUNT,
                      "namespace": MONITORING_NAMESPACE}],
    }


def service_monitor(ic: dict, namespace: str, owner_ref: dict) -> dict:
    return {
        "apiVersion": SERVICE_MONITOR_API_VERSION,
        "kind": SERVICE_MONITOR_KIND,
        "metadata": {
            "name": service_monitor_name(ic),
            "namespace": namespace,
            "labels": owner_labels(ic),
            "ownerReferences": [owner_ref],
        },
        "spec": {
            "namespaceSelector": {"matchNames": [namespace]},
            "selector": {"matchLabels": owner_labels(ic)},
            "endpoints": [{
                "port": "metrics",
                "scheme": "http",
                "path": "/metrics",
                "interval": "30s",
                "bearerTokenFile": "/var/run/secrets/kubernetes.io/serviceaccount/token",
            }],
        },
    }


def dns_record(ic: dict, namespace: str, target: str, record_type: str) -> dict:
    return {
        "apiVersion": DNS_RECORD_API_VERSION,
        "kind": DNS_RECORD_KIND,
        "metadata": {
            "name": dns_record_name(ic),
            "namespace": namespace,
            "labels": owner_labels(ic),
        },
        "spec": {
            "dnsName": f"*.{status_domain(ic)}.",
            "recordType": record_type,
            "targets": [target],
            "recordTTL": DNS_RECORD_TTL,
        },
    }


def cluster_operator(name: str) -> dict:
    return {
        "apiVersion": CONFIG_API_VERSION,
        "kind": "ClusterOperator",
        "metadata": {"name": name},
        "spec": {},
    }
