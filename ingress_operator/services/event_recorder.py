"""Kubernetes event recording for objects the operator manages."""

import logging
from typing import Protocol

import kopf

logger = logging.getLogger("ingress-operator.events")

NORMAL = "Normal"
WARNING = "Warning"


class EventRecorder(Protocol):
    def event(self, obj: dict, type: str, reason: str, message: str) -> None: ...


class KopfEventRecorder:
    """Posts events through kopf's event queue (enabled by settings.posting)."""

    def event(self, obj: dict, type: str, reason: str, message: str) -> None:
        logger.debug(f"event {type}/{reason} on {obj.get('kind')} {obj.get('metadata', {}).get('name')}: {message}")
        kopf.event(obj, type=type, reason=reason, message=message)
