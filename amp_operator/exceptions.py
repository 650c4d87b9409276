"""
This module implements custom exceptions and the error classification used to
turn reconciliation failures into retry decisions
"""

# Standard
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

## Field Errors ################################################################


class FieldPath:
    """A FieldPath addresses a single field inside a resource manifest (e.g.
    spec.containers[0].image) so that validation details can point at the
    exact offending field
    """

    def __init__(self, *parts: str):
        self._parts = list(parts)

    def child(self, name: str, *more_names: str) -> "FieldPath":
        """Create a new path for a nested field"""
        path = FieldPath(*self._parts)
        path._parts.extend([name, *more_names])
        return path

    def index(self, idx: int) -> "FieldPath":
        """Create a new path for an element of a list field"""
        path = FieldPath(*self._parts)
        if path._parts:
            path._parts[-1] = f"{path._parts[-1]}[{idx}]"
        else:
            path._parts.append(f"[{idx}]")
        return path

    def __str__(self):
        return ".".join(self._parts)

    def __repr__(self):
        return f"FieldPath({str(self)})"

    def __eq__(self, other):
        return isinstance(other, FieldPath) and str(self) == str(other)

    def __hash__(self):
        return hash(str(self))


class FieldErrorType(Enum):
    """The kinds of problems a single field can have"""

    INVALID = "FieldValueInvalid"
    REQUIRED = "FieldValueRequired"
    NOT_FOUND = "FieldValueNotFound"


@dataclass
class FieldError:
    """A single problem with a single field of a resource"""

    type: FieldErrorType
    field: FieldPath
    value: Any = None
    detail: str = ""

    def __str__(self):
        if self.type == FieldErrorType.REQUIRED:
            msg = f"{self.field}: Required value"
        elif self.type == FieldErrorType.NOT_FOUND:
            msg = f"{self.field}: Not found: {self.value!r}"
        else:
            msg = f"{self.field}: Invalid value: {self.value!r}"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg


def invalid_field(field: FieldPath, value: Any, detail: str) -> FieldError:
    return FieldError(FieldErrorType.INVALID, field, value, detail)


def required_field(field: FieldPath, detail: str = "") -> FieldError:
    return FieldError(FieldErrorType.REQUIRED, field, None, detail)


## Classification ##############################################################


class ErrorKind(Enum):
    """The classification of a reconciliation failure"""

    # The user-provided spec is invalid. Terminal until the spec is edited.
    INVALID_SPEC = "InvalidSpec"

    # A referenced resource is missing or not ready. Retried.
    ORPHAN = "Orphan"

    # The desired state violated a builder invariant. A defect, fail fast.
    STRUCTURAL = "Structural"

    # A call against the cluster failed. Retried with backoff.
    INFRA = "Infra"


## Base Error ##################################################################


class AmpOperatorError(Exception):
    """Base class for all amp_operator exceptions"""

    # The classification of this error. Derived classes override it.
    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should signal a fatal
        state for the reconciliation
        """
        return self._is_fatal_error


## Spec Errors #################################################################


class SpecFieldError(AmpOperatorError):
    """Base for errors that point at specific fields of the reconciled resource"""

    def __init__(self, field_errors: Iterable[FieldError], message: str = ""):
        self.field_errors = list(field_errors)
        message = message or "; ".join(str(err) for err in self.field_errors)
        super().__init__(message=message, is_fatal_error=False)


class InvalidSpecError(SpecFieldError):
    """The spec of the resource failed validation. Retrying will not help until
    the user changes the spec.
    """

    kind = ErrorKind.INVALID_SPEC


class OrphanError(SpecFieldError):
    """A resource referenced by the spec is absent or not yet ready"""

    kind = ErrorKind.ORPHAN


## Fatal Errors ################################################################


class StructuralError(AmpOperatorError):
    """A desired-state builder broke one of its documented invariants (e.g. the
    wrong number of containers). This aborts the current reconciliation and is
    surfaced loudly instead of being patched around.
    """

    kind = ErrorKind.STRUCTURAL

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


## Transient Errors ############################################################


class InfraError(AmpOperatorError):
    """A call against the cluster failed. This is expected to resolve on a
    later reconciliation.
    """

    kind = ErrorKind.INFRA

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class ReconcileCancelledError(InfraError):
    """The reconciliation deadline passed or cancellation was requested"""


## Composite Errors ############################################################


class StatusUpdateError(AmpOperatorError):
    """Persisting the status failed. If the reconciliation itself had already
    failed, both failures are reported, with the status failure taking
    precedence since the user-visible state is now stale.
    """

    kind = ErrorKind.INFRA

    def __init__(
        self,
        status_error: Exception,
        primary_error: Optional[Exception] = None,
        resource_desc: str = "resource",
    ):
        self.status_error = status_error
        self.primary_error = primary_error
        if primary_error is not None:
            message = (
                f"Failed to reconcile {resource_desc}: {primary_error}. "
                f"Failed to update status: {status_error}"
            )
        else:
            message = f"Failed to update {resource_desc} status: {status_error}"
        super().__init__(message=message, is_fatal_error=False)


class UpgradeStepError(AmpOperatorError):
    """A named upgrade step failed. The original error is kept as __cause__"""

    def __init__(self, step_name: str, error: Exception):
        self.step_name = step_name
        is_fatal = getattr(error, "is_fatal_error", True)
        super().__init__(message=f"{step_name}: {error}", is_fatal_error=is_fatal)


def error_kind(error: Optional[BaseException]) -> Optional[ErrorKind]:
    """Find the classification of an error, following the __cause__ chain of
    wrapper errors that do not carry a kind themselves

    Returns:
        kind:  Optional[ErrorKind]
            The kind of the first classified error in the chain, or None for
            unclassified errors
    """
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        kind = getattr(error, "kind", None)
        if isinstance(kind, ErrorKind):
            return kind
        error = error.__cause__
    return None


def is_invalid_spec_error(error: Optional[BaseException]) -> bool:
    return error_kind(error) == ErrorKind.INVALID_SPEC


def is_orphan_spec_error(error: Optional[BaseException]) -> bool:
    return error_kind(error) == ErrorKind.ORPHAN


## Assertions ##################################################################


def assert_structural(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a StructuralError. This should
    be used to check invariants that the desired-state builders guarantee.
    """
    if not condition:
        raise StructuralError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw an InfraError. This should be
    used when an operation in the cluster (such as fetching an existing secret)
    must succeed.
    """
    if not condition:
        raise InfraError(message)


def assert_valid_spec(field_errors: List[FieldError]):
    """Raise an InvalidSpecError if any field errors were collected"""
    if field_errors:
        raise InvalidSpecError(field_errors)
