import threading
import time

import kopf
import pytest

import ingress_operator.operator as dispatch
from ingress_operator.controller import ReconcileResult
from ingress_operator.errors import TransientStoreError, aggregate
from ingress_operator.manifests import OWNING_INGRESS_LABEL
from ingress_operator.services.object_store import ObjectKey

from tests.fakes import OPERATOR_NAMESPACE, ROUTER_NAMESPACE, RecordingEventRecorder


def test_clean_result_lets_the_handler_succeed():
    dispatch.handle_result(ReconcileResult())


def test_error_result_retries_after_the_retry_delay():
    result = ReconcileResult(error=aggregate([TransientStoreError("timeout")]))

    with pytest.raises(kopf.TemporaryError) as excinfo:
        dispatch.handle_result(result, retry_delay=15)

    assert excinfo.value.delay == 15
    assert "timeout" in str(excinfo.value)


def test_requeue_hint_shortens_the_retry():
    result = ReconcileResult(requeue_after=5, error=aggregate([TransientStoreError("timeout")]))

    with pytest.raises(kopf.TemporaryError) as excinfo:
        dispatch.handle_result(result, retry_delay=15)

    assert excinfo.value.delay == 5


def test_requeue_without_error_polls_again():
    with pytest.raises(kopf.TemporaryError) as excinfo:
        dispatch.handle_result(ReconcileResult(requeue_after=10))

    assert excinfo.value.delay == 10


def test_owner_index_resolves_by_label():
    index = dispatch.OwnerIndex(OPERATOR_NAMESPACE)

    owner = index.observe("Deployment", ROUTER_NAMESPACE, "router-default", {OWNING_INGRESS_LABEL: "default"})

    assert owner == ObjectKey(OPERATOR_NAMESPACE, "default")
    assert len(index) == 1


def test_owner_index_remembers_owner_after_label_loss():
    index = dispatch.OwnerIndex(OPERATOR_NAMESPACE)
    index.observe("Service", ROUTER_NAMESPACE, "router-default", {OWNING_INGRESS_LABEL: "default"})

    assert index.observe("Service", ROUTER_NAMESPACE, "router-default", {}) == ObjectKey(OPERATOR_NAMESPACE, "default")
    assert index.forget("Service", ROUTER_NAMESPACE, "router-default") == ObjectKey(OPERATOR_NAMESPACE, "default")
    assert index.observe("Service", ROUTER_NAMESPACE, "router-default", None) is None
    assert len(index) == 0


def test_unlabeled_dependents_are_ignored():
    index = dispatch.OwnerIndex(OPERATOR_NAMESPACE)

    assert index.observe("Service", ROUTER_NAMESPACE, "kubernetes", {"component": "apiserver"}) is None


def test_keyed_locks_serialize_one_key_only():
    locks = dispatch.KeyedLocks()
    a, b = ObjectKey(OPERATOR_NAMESPACE, "a"), ObjectKey(OPERATOR_NAMESPACE, "b")
    entered = threading.Event()

    def hold_other_key():
        with locks.hold(b):
            entered.set()

    with locks.hold(a):
        worker = threading.Thread(target=hold_other_key)
        worker.start()
        assert entered.wait(timeout=2)
        worker.join()

        blocked = threading.Event()

        def hold_same_key():
            with locks.hold(a):
                blocked.set()

        contender = threading.Thread(target=hold_same_key)
        contender.start()
        assert not blocked.wait(timeout=0.2)

    contender.join(timeout=2)
    assert blocked.is_set()
    assert len(locks) == 0


def test_keyed_locks_forget_released_keys():
    locks = dispatch.KeyedLocks()

    for n in range(50):
        with locks.hold(ObjectKey(OPERATOR_NAMESPACE, f"ic-{n}")):
            assert len(locks) == 1

    assert len(locks) == 0


def test_keyed_locks_release_on_error():
    locks = dispatch.KeyedLocks()

    with pytest.raises(RuntimeError):
        with locks.hold(ObjectKey(OPERATOR_NAMESPACE, "boom")):
            raise RuntimeError("handler failed")

    assert len(locks) == 0


def test_shared_store_and_reconciler_are_built_once(monkeypatch, store):
    built = []
    started = threading.Barrier(8)

    def slow_store(config):
        built.append(config)
        time.sleep(0.05)
        return store

    monkeypatch.setattr(dispatch, "_store", None)
    monkeypatch.setattr(dispatch, "_reconciler", None)
    monkeypatch.setattr(dispatch, "KubernetesObjectStore", slow_store)
    monkeypatch.setattr(dispatch, "KopfEventRecorder", RecordingEventRecorder)
    reconcilers = []

    def first_handler():
        started.wait(timeout=2)
        reconcilers.append(dispatch.get_reconciler())

    workers = [threading.Thread(target=first_handler) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=5)

    assert len(built) == 1
    assert len(reconcilers) == 8
    assert all(r is reconcilers[0] for r in reconcilers)
    assert dispatch.get_store() is store


def test_dependent_events_reconcile_the_owner(monkeypatch):
    seen = []
    monkeypatch.setattr(dispatch, "run_reconcile", lambda key: seen.append(key) or ReconcileResult())

    owner = dispatch.enqueue_owner("Deployment", {"type": "MODIFIED"}, "router-events", ROUTER_NAMESPACE,
                                   {OWNING_INGRESS_LABEL: "events"})
    dispatch.enqueue_owner("Deployment", {"type": "DELETED"}, "router-events", ROUTER_NAMESPACE,
                           {OWNING_INGRESS_LABEL: "events"})
    missing = dispatch.enqueue_owner("Service", {"type": "ADDED"}, "unowned", ROUTER_NAMESPACE, {})

    expected = ObjectKey(dispatch.operator_settings.OPERATOR_NAMESPACE, "events")
    assert owner == expected
    assert seen == [expected, expected]
    assert missing is None


def test_failed_dependent_reconcile_is_not_raised(monkeypatch):
    failure = ReconcileResult(error=aggregate([TransientStoreError("timeout")]))
    monkeypatch.setattr(dispatch, "run_reconcile", lambda key: failure)

    owner = dispatch.enqueue_owner("Service", {"type": "MODIFIED"}, "router-flaky", ROUTER_NAMESPACE,
                                   {OWNING_INGRESS_LABEL: "flaky"})

    assert owner is not None
