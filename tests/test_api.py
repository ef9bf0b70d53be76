import pytest
from fastapi.testclient import TestClient

from ingress_operator.config import settings
from ingress_operator.main import app
from ingress_operator.resources import INGRESS_FINALIZER, INGRESS_KIND
from ingress_operator.routers.ingresscontrollers import get_store

from tests.fakes import FakeObjectStore, ingress_controller


@pytest.fixture
def api_store():
    store = FakeObjectStore()
    app.dependency_overrides[get_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_store):
    return TestClient(app)


def published(name, domain, **status):
    ic = ingress_controller(name, domain=domain, namespace=settings.OPERATOR_NAMESPACE, status={
        "domain": domain,
        "endpointPublishingStrategy": {"type": "HostNetwork"},
        "availableReplicas": 2,
        "conditions": [{"type": "Available", "status": "True", "reason": "DeploymentAvailable",
                        "message": "2/2 replicas available", "lastTransitionTime": "2024-01-01T00:00:00Z"}],
        **status,
    })
    ic["metadata"]["finalizers"] = [INGRESS_FINALIZER]
    return ic


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics_are_exposed(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "ingress_operator_reconcile_total" in response.text


def test_list_ingresscontrollers(client, api_store):
    api_store.add(published("default", "apps.example.com"))
    api_store.add(published("internal", "internal.example.com"))
    api_store.add(ingress_controller("elsewhere", namespace="other"))

    response = client.get("/api/ingresscontrollers")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [ic["name"] for ic in body["ingresscontrollers"]] == ["default", "internal"]


def test_get_ingresscontroller(client, api_store):
    api_store.add(published("default", "apps.example.com"))

    body = client.get("/api/ingresscontrollers/default").json()

    assert body["domain"] == "apps.example.com"
    assert body["endpointPublishingStrategy"] == {"type": "HostNetwork"}
    assert body["availableReplicas"] == 2
    assert body["finalized"] is True
    assert body["terminating"] is False
    assert body["conditions"][0]["reason"] == "DeploymentAvailable"


def test_unpublished_ingresscontroller(client, api_store):
    api_store.add(ingress_controller("fresh", domain="fresh.example.com", namespace=settings.OPERATOR_NAMESPACE))

    body = client.get("/api/ingresscontrollers/fresh").json()

    assert body["requestedDomain"] == "fresh.example.com"
    assert body["domain"] is None
    assert body["endpointPublishingStrategy"] is None
    assert body["conditions"] == []


def test_unknown_ingresscontroller_is_404(client):
    response = client.get("/api/ingresscontrollers/missing")

    assert response.status_code == 404


def test_store_outage_is_503(client, api_store):
    api_store.fail("list", INGRESS_KIND)

    response = client.get("/api/ingresscontrollers")

    assert response.status_code == 503


def test_operator_status(client, api_store):
    api_store.add({
        "apiVersion": "config.openshift.io/v1",
        "kind": "ClusterOperator",
        "metadata": {"name": "ingress"},
        "status": {
            "conditions": [{"type": "Degraded", "status": "False", "reason": "AsExpected", "message": ""}],
            "versions": [{"name": "operator", "version": "4.1.0"}],
            "relatedObjects": [{"group": "", "resource": "namespaces", "name": "openshift-ingress"}],
        },
    })

    body = client.get("/api/operator-status").json()

    assert body["name"] == "ingress"
    assert body["versions"] == [{"name": "operator", "version": "4.1.0"}]
    assert body["relatedObjects"][0]["name"] == "openshift-ingress"
    assert body["conditions"][0]["type"] == "Degraded"


def test_operator_status_before_first_sync_is_404(client):
    assert client.get("/api/operator-status").status_code == 404
