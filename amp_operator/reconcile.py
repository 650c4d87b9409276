"""
Data models describing the outcome of a reconciliation as seen by the external
scheduler that decides when the next reconciliation runs
"""

# Standard
from dataclasses import dataclass, field
from typing import Optional
import base64
import datetime
import uuid

# First Party
import alog

# Local
from . import config

log = alog.use_channel("RECONCILE")


@dataclass
class RequeueParams:
    """RequeueParams holds parameters for requeue request"""

    requeue_after: datetime.timedelta = field(
        default_factory=lambda: datetime.timedelta(
            seconds=float(config.requeue_after_seconds)
        )
    )


@dataclass
class ReconciliationResult:
    """ReconciliationResult is the result of a reconciliation pass.

    The scheduler reads three signals from it: requeue=True retries at once, a
    raised error retries after backoff, and requeue=False waits for the next
    change to the resource.
    """

    # Flag to control requeue of current reconcile request
    requeue: bool = False
    # Parameters for requeue request
    requeue_params: RequeueParams = field(default_factory=RequeueParams)
    # The error that was classified into this result, if any
    exception: Optional[Exception] = None


def generate_id() -> str:
    """Generates a unique human readable id for a reconciliation

    Returns:
        id: str
            A unique base32 encoded id
    """
    uuid4 = uuid.uuid4()
    base32_str = base64.b32encode(uuid4.bytes).decode("utf-8")
    reconcile_id = base32_str[:22]
    log.debug("Generated reconcile id: %s", reconcile_id)
    return reconcile_id
