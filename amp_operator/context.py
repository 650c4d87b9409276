"""
This module holds the context shared by every step of an individual
reconciliation: the cluster client, the reconciliation id, and the deadline and
cancellation token that bound every blocking call
"""

# Standard
from typing import Optional, Tuple
import threading
import time

# First Party
import alog

# Local
from .deploy_manager import DeployManagerBase
from .exceptions import ReconcileCancelledError

log = alog.use_channel("CNTXT")

# Helper Definition to define when a call should use the context namespace or
# the one passed in as an argument
_CONTEXT_NAMESPACE = "__CONTEXT_NAMESPACE__"


class ReconcileContext:
    """A ReconcileContext is handed by reference to every reconciler taking
    part in a single reconciliation. All cluster calls go through it so that
    cancellation and the deadline are honored uniformly.
    """

    __slots__ = [
        "__id",
        "__deploy_manager",
        "__namespace",
        "__deadline",
        "__cancel_event",
    ]

    def __init__(  # pylint: disable=too-many-arguments
        self,
        reconciliation_id: str,
        deploy_manager: DeployManagerBase,
        namespace: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Construct a context for a single reconciliation

        Args:
            reconciliation_id:  str
                The unique ID for this reconciliation
            deploy_manager:  DeployManagerBase
                The client used for all reads and writes against the cluster
            namespace:  Optional[str]
                The namespace of the resource being reconciled, used as the
                default for all calls
            timeout_seconds:  Optional[float]
                Total time budget for the reconciliation. None means no deadline.
            cancel_event:  Optional[threading.Event]
                Token that the scheduler sets to abort the reconciliation
        """
        self.__id = reconciliation_id
        self.__deploy_manager = deploy_manager
        self.__namespace = namespace
        self.__deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )
        self.__cancel_event = cancel_event or threading.Event()

    ## Properties ##############################################################

    @property
    def id(self) -> str:  # pylint: disable=invalid-name
        """The unique reconciliation ID"""
        return self.__id

    @property
    def deploy_manager(self) -> DeployManagerBase:
        return self.__deploy_manager

    @property
    def namespace(self) -> Optional[str]:
        return self.__namespace

    @property
    def cancel_event(self) -> threading.Event:
        return self.__cancel_event

    ## Cancellation ############################################################

    def cancel(self):
        """Request that the reconciliation stop at the next cluster call"""
        self.__cancel_event.set()

    def remaining_time(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline"""
        if self.__deadline is None:
            return None
        return max(self.__deadline - time.monotonic(), 0.0)

    def check_cancelled(self):
        """Raise a ReconcileCancelledError if the reconciliation was cancelled
        or ran past its deadline
        """
        if self.__cancel_event.is_set():
            raise ReconcileCancelledError(
                f"Reconciliation {self.__id} was cancelled"
            )
        remaining = self.remaining_time()
        if remaining is not None and remaining <= 0:
            raise ReconcileCancelledError(
                f"Reconciliation {self.__id} passed its deadline"
            )

    ## Cluster Calls ###########################################################

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = _CONTEXT_NAMESPACE,
    ) -> Tuple[bool, Optional[dict]]:
        """Get the current state of the given object, defaulting to the
        namespace of this context

        Returns:
            success:  bool
                Whether or not the state fetch operation succeeded
            current_state:  dict or None
                The dict representation of the current object's configuration,
                or None if not present
        """
        self.check_cancelled()
        namespace = namespace if namespace != _CONTEXT_NAMESPACE else self.namespace
        return self.deploy_manager.get_object_current_state(
            kind=kind,
            name=name,
            namespace=namespace,
            api_version=api_version,
            timeout=self.remaining_time(),
        )

    def create(self, resource_definition: dict) -> Tuple[bool, Optional[dict]]:
        self.check_cancelled()
        return self.deploy_manager.create(
            resource_definition, timeout=self.remaining_time()
        )

    def update(self, resource_definition: dict) -> Tuple[bool, Optional[dict]]:
        self.check_cancelled()
        return self.deploy_manager.update(
            resource_definition, timeout=self.remaining_time()
        )

    def set_status(self, resource: dict, status: dict) -> Tuple[bool, bool]:
        """Write the status subresource of the given resource"""
        self.check_cancelled()
        metadata = resource.get("metadata", {})
        return self.deploy_manager.set_status(
            kind=resource.get("kind"),
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
            status=status,
            api_version=resource.get("apiVersion"),
            timeout=self.remaining_time(),
        )

    def record_event(
        self,
        resource: dict,
        event_type: str,
        reason: str,
        message: str,
    ) -> Tuple[bool, Optional[dict]]:
        self.check_cancelled()
        log.debug2("Recording %s event [%s]: %s", event_type, reason, message)
        return self.deploy_manager.record_event(
            resource,
            event_type,
            reason,
            message,
            timeout=self.remaining_time(),
        )
