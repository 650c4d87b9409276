"""
The Controller class is the entry point of a reconciliation for a single
custom resource kind. It fetches the resource, runs the kind specific
reconciliation, and hands the outcome to the StatusReconciler.
"""

# Standard
from typing import Optional, Tuple
import abc
import logging
import threading

# First Party
import alog

# Local
from . import config, constants
from .context import ReconcileContext
from .deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
)
from .exceptions import assert_cluster
from .log_format import AmpJsonFormatter
from .reconcile import ReconciliationResult, generate_id
from .status import StatusReconciler

log = alog.use_channel("CTRLR")


class Controller(abc.ABC):
    """This class represents a controller for a single kubernetes custom
    resource kind. Its reconciliation logic is:

    1. Fetch the resource. A resource that is gone or being deleted is
        ignored.
    2. Run reconcile_spec, which converges the cluster toward the spec and
        fills in the kind specific status artifacts.
    3. Persist the status and turn the outcome into a retry decision.
    """

    # Derived classes must set the identity of the kind they manage
    api_version: str = None
    kind: str = None

    # Status keys recomputed by reconcile_spec on every pass. A key the pass
    # did not set is removed from the persisted status.
    status_keys: Tuple[str, ...] = ()

    def __init__(self, deploy_manager: Optional[DeployManagerBase] = None):
        """
        Args:
            deploy_manager:  Optional[DeployManagerBase]
                The client used for all reads and writes against the cluster.
                Selected from the library config when not given.
        """
        assert self.api_version, f"{type(self).__name__} must define api_version"
        assert self.kind, f"{type(self).__name__} must define kind"
        self.deploy_manager = self.setup_deploy_manager(deploy_manager)

    def __str__(self):
        return f"Controller({self.api_version}/{self.kind})"

    ## Abstract Interface ######################################################

    @abc.abstractmethod
    def reconcile_spec(
        self,
        ctx: ReconcileContext,
        resource: dict,
        child_status: dict,
    ) -> bool:
        """Converge the cluster toward the spec of the resource

        Args:
            ctx:  ReconcileContext
                The context of the current reconciliation
            resource:  dict
                The manifest of the resource being reconciled
            child_status:  dict
                Kind specific status keys to persist. Filled in place so that
                artifacts gathered before an error are still reported.

        Returns:
            requeue:  bool
                Whether another pass is needed right away. Errors are raised.
        """

    ## Public ##################################################################

    def reconcile(
        self,
        namespace: str,
        name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconciliationResult:
        """Run a full reconciliation of the named resource

        Args:
            namespace:  str
                The namespace of the resource
            name:  str
                The name of the resource
            cancel_event:  Optional[threading.Event]
                Token the scheduler sets to abort the reconciliation

        Returns:
            result:  ReconciliationResult
                The retry decision. Errors that must be retried with backoff
                are raised.
        """
        reconciliation_id = generate_id()
        ctx = ReconcileContext(
            reconciliation_id=reconciliation_id,
            deploy_manager=self.deploy_manager,
            namespace=namespace,
            timeout_seconds=config.reconcile_timeout_seconds or None,
            cancel_event=cancel_event,
        )

        success, resource = ctx.get_object_current_state(
            kind=self.kind, name=name, api_version=self.api_version
        )
        assert_cluster(success, f"Failed to fetch {self.kind} {namespace}/{name}")
        if resource is None:
            log.info(
                "%s %s/%s not found. Ignoring since object must have been deleted",
                self.kind,
                namespace,
                name,
            )
            return ReconciliationResult(requeue=False)

        self.configure_logging(resource, reconciliation_id)
        log.info(
            "Reconcile %s %s/%s. Operator version: %s",
            self.kind,
            namespace,
            name,
            config.operator_version,
        )
        log.debug4("Resource: %s", resource)

        # Ignore deleted resources. This happens with foreground deletion.
        if resource.get("metadata", {}).get("deletionTimestamp"):
            log.debug("%s %s/%s is being deleted", self.kind, namespace, name)
            return ReconciliationResult(requeue=False)

        child_status = {}
        requeue = False
        reconcile_error = None
        with alog.ContextTimer(log.debug, "Reconcile duration for %s: ", name):
            try:
                requeue = self.reconcile_spec(ctx, resource, child_status)
            # The error is classified and re-raised by the StatusReconciler
            except Exception as err:  # pylint: disable=broad-except
                log.debug("Caught error in reconcile: %s", err, exc_info=True)
                reconcile_error = err

        result = StatusReconciler(
            ctx, resource, child_status, reconcile_error, self.status_keys
        ).reconcile()
        if requeue and reconcile_error is None:
            result.requeue = True
        return result

    @staticmethod
    def setup_deploy_manager(
        deploy_manager: Optional[DeployManagerBase] = None,
    ) -> DeployManagerBase:
        """Pick the deploy manager used for all reconciliations

        Args:
            deploy_manager:  Optional[DeployManagerBase]
                An explicitly provided deploy manager that takes precedence

        Returns:
            deploy_manager:  DeployManagerBase
                The deploy_manager to be used during reconcile
        """
        if deploy_manager:
            return deploy_manager

        if config.dry_run:
            log.debug("Using DryRunDeployManager")
            return DryRunDeployManager()

        log.debug("Using OpenshiftDeployManager")
        return OpenshiftDeployManager()

    @classmethod
    def configure_logging(cls, resource: dict, reconciliation_id: str):
        """Configure the logging for a given reconcile with overrides from the
        annotations of the resource

        Args:
            resource: dict
                The resource to get annotation overrides from
            reconciliation_id: str
                The unique id for the reconciliation
        """
        annotations = resource.get("metadata", {}).get("annotations", {}) or {}
        default_level = annotations.get(
            constants.LOG_DEFAULT_LEVEL_NAME, config.log_level
        )
        filters = annotations.get(constants.LOG_FILTERS_NAME, config.log_filters)
        log_json = annotations.get(constants.LOG_JSON_NAME, str(config.log_json))
        log_thread_id = annotations.get(
            constants.LOG_THREAD_ID_NAME, str(config.log_thread_id)
        )

        # Convert boolean args
        log_json = (log_json or "").lower() == "true"
        log_thread_id = (log_thread_id or "").lower() == "true"

        # Keep the old handler so that output captured by the hosting process
        # keeps flowing to the same place
        handler_generator = None
        if logging.root.handlers:
            old_handler = logging.root.handlers[0]

            def handler_generator():
                return old_handler

        alog.configure(
            default_level=default_level,
            filters=filters,
            formatter=AmpJsonFormatter(resource, reconciliation_id)
            if log_json
            else "pretty",
            thread_id=log_thread_id,
            handler_generator=handler_generator,
        )
