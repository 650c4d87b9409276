"""
The convergence engine: the get-or-create-or-update primitive that every
reconciler in the operator is built on
"""

# Standard
from enum import Enum
from typing import Callable, Optional
import copy

# First Party
import alog

# Local
from .context import ReconcileContext
from .exceptions import assert_cluster, assert_structural
from .managed_object import ManagedObject, object_info

log = alog.use_channel("CONVG")

# A mutator reconciles one field group of the existing object toward its
# desired value in place and reports whether it changed anything
MUTATOR = Callable[[dict, dict], bool]


class ReconcileOutcome(Enum):
    """The result of converging a single object"""

    CREATED = "Created"
    UPDATED = "Updated"
    UNCHANGED = "Unchanged"


## Public ######################################################################


@alog.logged_function(log.debug2)
def reconcile_object(
    ctx: ReconcileContext,
    desired: dict,
    mutator: Optional[MUTATOR] = None,
) -> ReconcileOutcome:
    """Converge a single object in the cluster toward its desired state.

    If the object does not exist it is created verbatim from desired. If it
    does exist, the mutator is run against (desired, existing) and the mutated
    existing object is written back with a single update only when the mutator
    reported a change. Fields that the mutator does not handle are never
    touched, so other writers in the cluster are not fought on every pass.

    Args:
        ctx:  ReconcileContext
            The context of the current reconciliation
        desired:  dict
            The desired manifest. It is not modified.
        mutator:  Optional[MUTATOR]
            The mutator to run against an existing object. With no mutator the
            object is only created when missing.

    Returns:
        outcome:  ReconcileOutcome
            Whether the object was created, updated, or left unchanged
    """
    desired = copy.deepcopy(desired)
    if ctx.namespace and not desired.get("metadata", {}).get("namespace"):
        desired.setdefault("metadata", {})["namespace"] = ctx.namespace
    managed_obj = ManagedObject(desired)
    desc = object_info(desired)

    success, existing = ctx.get_object_current_state(
        kind=managed_obj.kind,
        name=managed_obj.name,
        api_version=managed_obj.api_version,
        namespace=managed_obj.namespace,
    )
    assert_cluster(success, f"Failed to fetch current state of {desc}")

    if existing is None:
        log.debug("Creating %s", desc)
        success, _ = ctx.create(desired)
        assert_cluster(success, f"Failed to create {desc}")
        return ReconcileOutcome.CREATED

    if mutator is None or not mutator(desired, existing):
        log.debug3("No changes for %s", desc)
        return ReconcileOutcome.UNCHANGED

    log.debug("Updating %s", desc)
    success, _ = ctx.update(existing)
    assert_cluster(success, f"Failed to update {desc}")
    return ReconcileOutcome.UPDATED


def compose_mutators(*mutators: MUTATOR) -> MUTATOR:
    """Combine several mutators into one. Every mutator runs, regardless of
    whether an earlier one reported a change.
    """

    def composed(desired: dict, existing: dict) -> bool:
        changed = False
        for mutator in mutators:
            changed = mutator(desired, existing) or changed
        return changed

    return composed


def kind_mutator(kind: str, *mutators: MUTATOR) -> MUTATOR:
    """Combine several mutators that only make sense for a single kind. Running
    them against any other kind is a structural defect.
    """
    composed = compose_mutators(*mutators)

    def checked(desired: dict, existing: dict) -> bool:
        assert_structural(
            desired.get("kind") == kind and existing.get("kind") == kind,
            f"Mutator for {kind} applied to {desired.get('kind')}/{existing.get('kind')}",
        )
        return composed(desired, existing)

    return checked
