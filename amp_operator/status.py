"""
This module holds the common functionality used to represent the status of
resources reconciled by the operator and the StatusReconciler that turns the
outcome of a reconciliation into a persisted status and a retry decision.

The status schema is:
{
    "conditions": [
        {
            "type": "Ready",
            "status": "True" | "False",
            "reason": one of ReadyReason,
            "message": human readable detail,
            "lastTransitionTime": when status last flipped,
        },
        ... conditions of other types are preserved ...
    ],
    ... kind specific child artifacts ...
}
"""

# Standard
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional
import copy

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from . import config, constants
from .context import ReconcileContext
from .exceptions import (
    ErrorKind,
    InfraError,
    StatusUpdateError,
    assert_cluster,
    error_kind,
)
from .managed_object import object_info
from .reconcile import ReconciliationResult

log = alog.use_channel("STTUS")

## Public ######################################################################

# The "type" value of the readiness condition
READY_CONDITION = "Ready"

# The key in the condition used for the timestamp
TIMESTAMP_KEY = "lastTransitionTime"

# The key in status holding the conditions
CONDITIONS_KEY = "conditions"


class ReadyReason(Enum):
    """Reason constants for the Ready condition"""

    # The last reconciliation converged with no error
    READY = "Ready"

    # The spec failed validation and must be edited by the user
    INVALID_SPEC = "InvalidSpec"

    # A referenced resource is missing or not ready
    ORPHAN = "Orphan"

    # Any other failure
    ERROR = "Error"


# Mapping from error classification to condition reason. Unclassified errors
# are reported as ERROR.
_REASON_FOR_KIND = {
    ErrorKind.INVALID_SPEC: ReadyReason.INVALID_SPEC,
    ErrorKind.ORPHAN: ReadyReason.ORPHAN,
}


def make_ready_condition(
    error: Optional[Exception] = None,
    previous_condition: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Build the Ready condition for the outcome of a reconciliation

    Args:
        error:  Optional[Exception]
            The error that the reconciliation ended with, if any
        previous_condition:  Optional[dict]
            The current Ready condition, used to keep the transition time when
            the status did not flip
        now:  Optional[datetime]
            The timestamp to use for a transition

    Returns:
        condition:  dict
            The dict representation of the condition
    """
    if error is None:
        status, reason, message = "True", ReadyReason.READY, ""
    else:
        reason = _REASON_FOR_KIND.get(error_kind(error), ReadyReason.ERROR)
        status, message = "False", str(error)

    previous_condition = previous_condition or {}
    if previous_condition.get("status") == status and previous_condition.get(
        TIMESTAMP_KEY
    ):
        timestamp = previous_condition[TIMESTAMP_KEY]
    else:
        timestamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")

    return {
        "type": READY_CONDITION,
        "status": status,
        "reason": reason.value,
        "message": message,
        TIMESTAMP_KEY: timestamp,
    }


def get_condition(type_name: str, current_status: dict) -> dict:
    """Extract the given condition type from a status object

    Args:
        type_name:  str
            The condition type to fetch
        current_status:  dict
            The dict representation of the status for a given resource

    Returns:
        condition:  dict
            The condition object if found, empty dict otherwise
    """
    cond = [
        cond
        for cond in (current_status or {}).get(CONDITIONS_KEY, [])
        if cond.get("type") == type_name
    ]
    if cond:
        assert len(cond) == 1, f"Found multiple condition entries for {type_name}"
        return cond[0]
    return {}


def build_status(
    current_status: Optional[dict],
    ready_condition: dict,
    child_status: Optional[dict] = None,
    owned_keys: Iterable[str] = (),
) -> dict:
    """Compute the new status from the current status. The Ready condition is
    replaced, the child artifacts are set, and everything else is preserved.

    Args:
        current_status:  Optional[dict]
            The status currently persisted on the resource
        ready_condition:  dict
            The Ready condition of this pass
        child_status:  Optional[dict]
            The artifacts produced by this pass
        owned_keys:  Iterable[str]
            Artifact keys the controller recomputes on every pass. Those this
            pass did not produce are dropped.

    Returns:
        new_status:  dict
            The status to persist
    """
    new_status = copy.deepcopy(current_status or {})
    for key in owned_keys:
        new_status.pop(key, None)
    conditions: List[dict] = [
        cond
        for cond in new_status.get(CONDITIONS_KEY, [])
        if cond.get("type") != READY_CONDITION
    ]
    conditions.append(ready_condition)
    new_status[CONDITIONS_KEY] = conditions
    new_status.update(copy.deepcopy(child_status or {}))
    return new_status


def status_changed(current_status: dict, new_status: dict) -> bool:
    """Compare two status objects to determine if there is a meaningful change
    between the current status and the proposed new status. A meaningful change
    is defined as any change besides a timestamp.

    Args:
        current_status:  dict
            The raw status dict from the current CR
        new_status:  dict
            The proposed new status

    Returns:
        status_changed:  bool
            True if there is a meaningful change between the current status and
            the new status
    """
    # Status objects must be dicts
    if not isinstance(current_status, dict) or not isinstance(new_status, dict):
        return True

    # Perform a deep diff, excluding timestamps
    return bool(
        DeepDiff(
            current_status,
            new_status,
            exclude_obj_callback=lambda _, path: path.endswith(f"{TIMESTAMP_KEY}']"),
        )
    )


def is_ready(current_status: Optional[dict]) -> bool:
    """Whether the given status holds a Ready condition with status True"""
    return get_condition(READY_CONDITION, current_status or {}).get("status") == "True"


## StatusReconciler ############################################################


class StatusReconciler:
    """The StatusReconciler persists the status computed from the outcome of a
    reconciliation and classifies the outcome into a retry decision:

    | error        | Ready          | event   | result             |
    |--------------|----------------|---------|--------------------|
    | none         | True           | none    | no requeue         |
    | InvalidSpec  | False          | Warning | no requeue         |
    | Orphan       | False          | none    | requeue            |
    | other        | False (Error)  | Warning | error is re-raised |

    Status is persisted before the classification so that the user sees the
    outcome even when the error is re-raised. A failure to persist it takes
    precedence over the reconciliation error.
    """

    def __init__(
        self,
        ctx: ReconcileContext,
        resource: dict,
        child_status: Optional[dict] = None,
        primary_error: Optional[Exception] = None,
        owned_keys: Iterable[str] = (),
    ):
        """
        Args:
            ctx:  ReconcileContext
                The context of the current reconciliation
            resource:  dict
                The manifest of the custom resource being reconciled
            child_status:  Optional[dict]
                Kind specific status keys holding artifacts of the
                reconciliation
            primary_error:  Optional[Exception]
                The error the reconciliation ended with, if any
            owned_keys:  Iterable[str]
                Kind specific status keys that are cleared when this pass
                did not produce them
        """
        self.ctx = ctx
        self.resource = resource
        self.child_status = child_status
        self.primary_error = primary_error
        self.owned_keys = tuple(owned_keys)

    def reconcile(self) -> ReconciliationResult:
        """Persist the status and classify the outcome

        Returns:
            result:  ReconciliationResult
                The retry decision

        Raises:
            StatusUpdateError if the status could not be persisted, otherwise
            the primary error itself when it is neither an InvalidSpec nor an
            Orphan error
        """
        self._persist_status()

        error = self.primary_error
        if error is None:
            return ReconciliationResult(requeue=False)

        kind = error_kind(error)
        if kind == ErrorKind.INVALID_SPEC:
            log.info("Spec validation error for %s: %s", self._desc, error)
            self._record_warning(ReadyReason.INVALID_SPEC.value, str(error))
            return ReconciliationResult(requeue=False, exception=error)

        if kind == ErrorKind.ORPHAN:
            log.info("Orphan %s: %s", self._desc, error)
            return ReconciliationResult(requeue=True, exception=error)

        log.error("Failed to reconcile %s: %s", self._desc, error)
        self._record_warning("ReconcileError", str(error))
        raise error

    ## Implementation Details ##################################################

    @property
    def _desc(self) -> str:
        return object_info(self.resource)

    def _persist_status(self):
        current_status = self.resource.get("status") or {}
        ready_condition = make_ready_condition(
            self.primary_error, get_condition(READY_CONDITION, current_status)
        )
        new_status = build_status(
            current_status, ready_condition, self.child_status, self.owned_keys
        )
        if not status_changed(current_status, new_status):
            log.debug2("No meaningful status change for %s", self._desc)
            return

        log.debug3("New status for %s: %s", self._desc, new_status)
        try:
            success, _ = self.ctx.set_status(self.resource, new_status)
            assert_cluster(success, f"Failed to set status on {self._desc}")
        except InfraError as err:
            raise StatusUpdateError(err, self.primary_error, self._desc) from err
        self.resource["status"] = new_status

    def _record_warning(self, reason: str, message: str):
        if not config.manage_events:
            return
        success, _ = self.ctx.record_event(
            self.resource, constants.EVENT_TYPE_WARNING, reason, message
        )
        if not success:
            log.warning("Failed to record %s event on %s", reason, self._desc)
