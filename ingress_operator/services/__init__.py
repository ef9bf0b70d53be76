from .dns import DNSRecordManager
from .event_recorder import EventRecorder, KopfEventRecorder
from .object_store import KubernetesObjectStore, ObjectKey, ObjectStore

__all__ = [
    "DNSRecordManager",
    "EventRecorder",
    "KopfEventRecorder",
    "KubernetesObjectStore",
    "ObjectKey",
    "ObjectStore",
]
