import dataclasses

import pytest

from ingress_operator.config import Settings, settings


def test_defaults():
    assert settings.OPERATOR_NAMESPACE
    assert settings.ROUTER_NAMESPACE
    assert isinstance(settings.DEFAULT_REPLICAS, int)
    assert isinstance(settings.RETRY_DELAY, float)
    assert isinstance(settings.API_ENABLED, bool)


def test_overrides():
    custom = Settings(ROUTER_NAMESPACE="routers", LB_POLL_INTERVAL=3.0)

    assert custom.ROUTER_NAMESPACE == "routers"
    assert custom.LB_POLL_INTERVAL == 3.0
    assert custom.OPERATOR_NAMESPACE == settings.OPERATOR_NAMESPACE


def test_settings_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.ROUTER_NAMESPACE = "elsewhere"
