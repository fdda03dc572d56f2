"""
Order status catalog.

Canonical status names stored on orders, plus lenient parsing of the spellings
that show up from kitchen screens and manual updates ("preparing",
"canceled", ...).
"""

from typing import Optional

RECEIVED = "Received"
IN_PREPARATION = "InPreparation"
READY = "Ready"
COMPLETED = "Completed"
CANCELLED = "Cancelled"

ALL_STATUSES = (RECEIVED, IN_PREPARATION, READY, COMPLETED, CANCELLED)

_SYNONYMS = {
    "received": RECEIVED,
    "new": RECEIVED,
    "inpreparation": IN_PREPARATION,
    "preparing": IN_PREPARATION,
    "preparation": IN_PREPARATION,
    "inprogress": IN_PREPARATION,
    "ready": READY,
    "readyforpickup": READY,
    "completed": COMPLETED,
    "complete": COMPLETED,
    "done": COMPLETED,
    "pickedup": COMPLETED,
    "cancelled": CANCELLED,
    "canceled": CANCELLED,
}


def normalize_status(value: Optional[str]) -> Optional[str]:
    """
    Map a status spelling onto its canonical name.

    Args:
        value: Raw status, e.g. "in preparation" or "CANCELED"

    Returns:
        The canonical status, or None if the value is empty or unknown
    """
    if not value:
        return None
    key = "".join(ch for ch in value.lower() if ch.isalnum())
    return _SYNONYMS.get(key)
