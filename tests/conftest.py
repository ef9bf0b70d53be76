import pytest

from ingress_operator.config import Settings
from ingress_operator.controller import Reconciler

from tests.fakes import OPERATOR_NAMESPACE, ROUTER_NAMESPACE, FakeObjectStore, RecordingEventRecorder


@pytest.fixture
def settings() -> Settings:
    return Settings(
        OPERATOR_NAMESPACE=OPERATOR_NAMESPACE,
        ROUTER_NAMESPACE=ROUTER_NAMESPACE,
        ROUTER_IMAGE="registry.example.com/router:4.1",
        RELEASE_VERSION="4.1.0",
        DEFAULT_REPLICAS=2,
        RETRY_DELAY=15,
        LB_POLL_INTERVAL=10,
        DELETION_POLL_INTERVAL=5,
        EVENT_WINDOW=600,
        API_ENABLED=False,
    )


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def recorder() -> RecordingEventRecorder:
    return RecordingEventRecorder()


@pytest.fixture
def reconciler(store, recorder, settings) -> Reconciler:
    return Reconciler(store, recorder, settings)
