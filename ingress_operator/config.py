"""
Configuration module — all settings from env vars with sensible defaults.
Follows 12-factor app methodology.
"""
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    # Kubernetes
    KUBECONFIG: str = os.environ.get("KUBECONFIG", "")
    REQUEST_TIMEOUT: float = float(os.environ.get("REQUEST_TIMEOUT", "30"))

    # Namespaces
    OPERATOR_NAMESPACE: str = os.environ.get("OPERATOR_NAMESPACE", "openshift-ingress-operator")
    ROUTER_NAMESPACE: str = os.environ.get("ROUTER_NAMESPACE", "openshift-ingress")

    # Operand
    ROUTER_IMAGE: str = os.environ.get("ROUTER_IMAGE", "quay.io/openshift/origin-haproxy-router:latest")
    RELEASE_VERSION: str = os.environ.get("RELEASE_VERSION", "0.0.1-snapshot")
    DEFAULT_REPLICAS: int = int(os.environ.get("DEFAULT_REPLICAS", "2"))

    # Requeue / retry timing (seconds)
    RETRY_DELAY: float = float(os.environ.get("RETRY_DELAY", "15"))
    LB_POLL_INTERVAL: float = float(os.environ.get("LB_POLL_INTERVAL", "10"))
    DELETION_POLL_INTERVAL: float = float(os.environ.get("DELETION_POLL_INTERVAL", "5"))
    RESYNC_INTERVAL: float = float(os.environ.get("RESYNC_INTERVAL", "120"))
    EVENT_WINDOW: float = float(os.environ.get("EVENT_WINDOW", "600"))

    # Dispatch
    MAX_WORKERS: int = int(os.environ.get("MAX_WORKERS", "4"))

    # Status API
    API_ENABLED: bool = os.environ.get("API_ENABLED", "true").lower() == "true"
    API_HOST: str = os.environ.get("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.environ.get("API_PORT", "8080"))

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


settings = Settings()
