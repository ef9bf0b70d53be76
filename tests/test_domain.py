import pytest
from prometheus_client import REGISTRY

from ingress_operator.conditions import AVAILABLE, FALSE, get_condition
from ingress_operator.controller.domain import INVALID_DOMAIN, DomainEnforcer
from ingress_operator.resources import INGRESS_API_VERSION, INGRESS_KIND, status_domain

from tests.fakes import OPERATOR_NAMESPACE, ingress_controller

CLUSTER_INGRESS = {"spec": {"domain": "apps.example.com"}}


@pytest.fixture
def enforcer(store, recorder) -> DomainEnforcer:
    return DomainEnforcer(store, recorder)


def stored(store, name):
    return store.peek(INGRESS_API_VERSION, INGRESS_KIND, name, OPERATOR_NAMESPACE)


def test_cluster_default_is_published(store, recorder, enforcer):
    ic = store.add(ingress_controller("default"))

    refreshed = enforcer.enforce(ic, CLUSTER_INGRESS)

    assert status_domain(refreshed) == "apps.example.com"
    assert status_domain(stored(store, "default")) == "apps.example.com"
    assert recorder.reasons() == ["DomainPublished"]


def test_spec_domain_wins_over_cluster_default(store, enforcer):
    ic = store.add(ingress_controller("internal", domain="internal.example.com"))

    refreshed = enforcer.enforce(ic, CLUSTER_INGRESS)

    assert status_domain(refreshed) == "internal.example.com"


def test_published_domain_is_never_recomputed(store, enforcer):
    ic = store.add(ingress_controller("default", domain="new.example.com",
                                      status={"domain": "old.example.com"}))

    refreshed = enforcer.enforce(ic, CLUSTER_INGRESS)

    assert status_domain(refreshed) == "old.example.com"
    assert store.mutations() == []


def test_conflicting_domain_is_refused(store, recorder, enforcer):
    store.add(ingress_controller("first", status={"domain": "apps.example.com"}))
    second = store.add(ingress_controller("second", status={"conditions": [
        {"type": "Progressing", "status": "True", "reason": "x", "message": "",
         "lastTransitionTime": "2020-01-01T00:00:00Z"},
    ]}))

    refreshed = enforcer.enforce(second, CLUSTER_INGRESS)

    assert status_domain(refreshed) == ""
    conditions = refreshed["status"]["conditions"]
    assert len(conditions) == 1
    available = get_condition(conditions, AVAILABLE)
    assert available["status"] == FALSE
    assert available["reason"] == INVALID_DOMAIN
    assert "apps.example.com" in available["message"]
    assert recorder.events[-1]["type"] == "Warning"
    assert recorder.events[-1]["reason"] == INVALID_DOMAIN


def test_siblings_without_a_domain_do_not_conflict(store, enforcer):
    store.add(ingress_controller("pending"))
    ic = store.add(ingress_controller("default"))

    assert enforcer.is_domain_unique("apps.example.com", ic)


def test_own_domain_does_not_conflict_with_itself(store, enforcer):
    ic = store.add(ingress_controller("default", status={"domain": "apps.example.com"}))

    assert enforcer.is_domain_unique("apps.example.com", ic)


def test_siblings_in_other_namespaces_do_not_conflict(store, enforcer):
    store.add(ingress_controller("elsewhere", namespace="other", status={"domain": "apps.example.com"}))
    ic = store.add(ingress_controller("default"))

    assert enforcer.is_domain_unique("apps.example.com", ic)


def test_no_candidate_domain_is_invalid(store, enforcer):
    ic = store.add(ingress_controller("default"))

    refreshed = enforcer.enforce(ic, {"spec": {}})

    assert status_domain(refreshed) == ""
    assert get_condition(refreshed["status"]["conditions"], AVAILABLE)["reason"] == INVALID_DOMAIN


def test_second_of_two_same_domain_controllers_is_refused(store, enforcer):
    a = store.add(ingress_controller("a", domain="shared.example.com"))
    b = store.add(ingress_controller("b", domain="shared.example.com"))

    a = enforcer.enforce(a, CLUSTER_INGRESS)
    b = enforcer.enforce(b, CLUSTER_INGRESS)

    assert status_domain(a) == "shared.example.com"
    assert status_domain(b) == ""
    published = [status_domain(ic) for ic in store.objects_of(INGRESS_KIND) if status_domain(ic)]
    assert published == ["shared.example.com"]


def test_refusal_keeps_its_transition_time(store, enforcer):
    store.add(ingress_controller("first", status={"domain": "apps.example.com"}))
    second = store.add(ingress_controller("second", status={"conditions": [
        {"type": AVAILABLE, "status": FALSE, "reason": INVALID_DOMAIN, "message": "taken",
         "lastTransitionTime": "2020-01-01T00:00:00Z"},
        {"type": "Progressing", "status": "True", "reason": "x", "message": "",
         "lastTransitionTime": "2020-01-01T00:00:00Z"},
    ]}))

    refreshed = enforcer.enforce(second, CLUSTER_INGRESS)

    conditions = refreshed["status"]["conditions"]
    assert len(conditions) == 1
    assert conditions[0]["reason"] == INVALID_DOMAIN
    assert conditions[0]["lastTransitionTime"] == "2020-01-01T00:00:00Z"


def conflicts_total():
    return REGISTRY.get_sample_value("ingress_operator_domain_conflicts_total") or 0.0


def test_persisting_conflict_is_reported_once(store, recorder, enforcer):
    store.add(ingress_controller("first", status={"domain": "apps.example.com"}))
    store.add(ingress_controller("second"))
    before = conflicts_total()

    for _ in range(3):
        enforcer.enforce(stored(store, "second"), CLUSTER_INGRESS)

    assert store.mutations().count(("update_status", INGRESS_KIND, "second")) == 1
    assert recorder.reasons().count(INVALID_DOMAIN) == 1
    assert conflicts_total() - before == 1
    assert get_condition(stored(store, "second")["status"]["conditions"], AVAILABLE)["reason"] == INVALID_DOMAIN
