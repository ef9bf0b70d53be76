"""Status condition helpers shared by the enforcers and the status syncer."""

from datetime import datetime, timezone
from typing import Optional

TRUE = "True"
FALSE = "False"
UNKNOWN = "Unknown"

AVAILABLE = "Available"
PROGRESSING = "Progressing"
DEGRADED = "Degraded"
LOAD_BALANCER_READY = "LoadBalancerReady"


def now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def get_condition(conditions: list, ctype: str) -> Optional[dict]:
    for c in conditions or []:
        if c.get("type") == ctype:
            return c
    return None


def new_condition(ctype: str, status: str, reason: str = "", message: str = "",
                  previous: Optional[dict] = None) -> dict:
    """Build a condition, carrying lastTransitionTime over when the status did not change."""
    if previous is not None and previous.get("status") == status and previous.get("lastTransitionTime"):
        transition = previous["lastTransitionTime"]
    else:
        transition = now()
    return {
        "type": ctype,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": transition,
    }


def set_condition(conditions: list, ctype: str, status: str, reason: str, message: str) -> list:
    """Upsert a condition in a copy of ``conditions``, preserving order."""
    updated = []
    found = False
    for c in conditions or []:
        if c.get("type") == ctype:
            updated.append(new_condition(ctype, status, reason, message, previous=c))
            found = True
        else:
            updated.append(dict(c))
    if not found:
        updated.append(new_condition(ctype, status, reason, message))
    return updated


def conditions_equal(a: list, b: list) -> bool:
    """Compare condition lists ignoring lastTransitionTime."""
    def strip(conds):
        return [{k: v for k, v in c.items() if k != "lastTransitionTime"} for c in conds or []]
    return strip(a) == strip(b)
