import pytest

from ingress_operator.manifests import OWNING_INGRESS_LABEL
from ingress_operator.resources import DNS_RECORD_API_VERSION, DNS_RECORD_KIND
from ingress_operator.services.dns import DNSRecordManager, load_balancer_address, zones_of

from tests.fakes import OPERATOR_NAMESPACE, ingress_controller, load_balancer_status

DNS_CONFIG = {"spec": {"publicZone": {"id": "Z-PUBLIC"}}}


@pytest.fixture
def manager(store) -> DNSRecordManager:
    return DNSRecordManager(store, OPERATOR_NAMESPACE)


def published(name="default", domain="apps.example.com"):
    return ingress_controller(name, status={"domain": domain, "endpointPublishingStrategy": {"type": "LoadBalancerService"}})


def test_load_balancer_address():
    assert load_balancer_address({"status": load_balancer_status(hostname="lb.example.net")}) == ("lb.example.net", "CNAME")
    assert load_balancer_address({"status": load_balancer_status(ip="192.0.2.10")}) == ("192.0.2.10", "A")
    assert load_balancer_address({"status": {"loadBalancer": {}}}) is None
    assert load_balancer_address({}) is None


def test_zones_of():
    assert zones_of({"spec": {}}) == []
    assert len(zones_of({"spec": {"publicZone": {"id": "a"}, "privateZone": {"id": "b"}}})) == 2


def test_desired_record_targets_the_load_balancer(manager):
    record = manager.desired_record(published(), {"status": load_balancer_status(hostname="lb.example.net")}, DNS_CONFIG)

    assert record["metadata"]["name"] == "default-wildcard"
    assert record["metadata"]["namespace"] == OPERATOR_NAMESPACE
    assert record["metadata"]["labels"][OWNING_INGRESS_LABEL] == "default"
    assert record["spec"]["dnsName"] == "*.apps.example.com."
    assert record["spec"]["recordType"] == "CNAME"
    assert record["spec"]["targets"] == ["lb.example.net"]


def test_no_record_without_zones_or_address(manager):
    service = {"status": load_balancer_status(ip="192.0.2.10")}
    assert manager.desired_record(published(), service, {"spec": {}}) is None
    assert manager.desired_record(published(), {"status": {}}, DNS_CONFIG) is None


def test_ensure_creates_then_converges(store, manager):
    record = manager.desired_record(published(), {"status": load_balancer_status(ip="192.0.2.10")}, DNS_CONFIG)
    manager.ensure(record)
    manager.ensure(record)
    assert [c[0] for c in store.mutations()] == ["create"]

    moved = manager.desired_record(published(), {"status": load_balancer_status(ip="192.0.2.20")}, DNS_CONFIG)
    manager.ensure(moved)

    current = store.peek(DNS_RECORD_API_VERSION, DNS_RECORD_KIND, "default-wildcard", OPERATOR_NAMESPACE)
    assert current["spec"]["targets"] == ["192.0.2.20"]


def test_delete_all_only_touches_own_records(store, manager):
    service = {"status": load_balancer_status(ip="192.0.2.10")}
    manager.ensure(manager.desired_record(published("a", "a.example.com"), service, DNS_CONFIG))
    manager.ensure(manager.desired_record(published("b", "b.example.com"), service, DNS_CONFIG))

    assert manager.delete_all(published("a", "a.example.com")) == 1
    assert manager.delete_all(published("a", "a.example.com")) == 0

    assert not store.exists(DNS_RECORD_API_VERSION, DNS_RECORD_KIND, "a-wildcard", OPERATOR_NAMESPACE)
    assert store.exists(DNS_RECORD_API_VERSION, DNS_RECORD_KIND, "b-wildcard", OPERATOR_NAMESPACE)
