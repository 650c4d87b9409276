"""
The DependencyReconciler drives the convergence engine over the objects of one
logical sub-component of the platform in a fixed order
"""

# Standard
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List
import abc

# First Party
import alog

# Local
from .context import ReconcileContext
from .convergence import MUTATOR, ReconcileOutcome, reconcile_object
from .log_format import COMPONENT_ATTR
from .mutators import create_only_mutator
from .reconcile import ReconciliationResult

log = alog.use_channel("DEPND")

# Forward declarations of the parent resource and the provider
API_MANAGER_TYPE = "APIManager"
PROVIDER_TYPE = "DesiredStateProvider"


def _always_enabled() -> bool:
    return True


@dataclass
class ObjectStep:
    """One object of a sub-component. The desired manifest is only built when
    the step is enabled, so that disabled optional objects are never built and
    never created.
    """

    # Human readable name used in logs
    description: str
    # Builds the desired manifest
    build: Callable[[], dict]
    # Reconciles an existing object toward the desired manifest
    mutator: MUTATOR = create_only_mutator
    # Predicate evaluated when the step runs
    enabled: Callable[[], bool] = field(default=_always_enabled)


class DependencyReconciler(abc.ABC):
    """Base class for the reconcilers of the platform sub-components.

    Concrete reconcilers only declare their ordered steps. The first error
    stops the pass and is raised; objects already converged stay as they are
    and are converged again on the next pass.
    """

    # Name of the sub-component, attached to the log lines of its steps
    component: str = None

    def __init__(
        self,
        ctx: ReconcileContext,
        api_manager: API_MANAGER_TYPE,
        provider: PROVIDER_TYPE,
    ):
        """
        Args:
            ctx:  ReconcileContext
                The context of the current reconciliation
            api_manager:  APIManager
                The parent resource
            provider:  DesiredStateProvider
                Builds the desired state of each component
        """
        self.ctx = ctx
        self.api_manager = api_manager
        self.provider = provider
        self.outcomes: Dict[str, ReconcileOutcome] = {}

    @abc.abstractmethod
    def steps(self) -> List[ObjectStep]:
        """The ordered steps of this sub-component"""

    def validate(self):
        """Hook run before any object is converged. Raise InvalidSpecError to
        reject the spec.
        """

    @alog.logged_function(log.debug)
    def reconcile(self) -> ReconciliationResult:
        """Converge every enabled step in order

        Returns:
            result:  ReconciliationResult
                Never requests a requeue. Errors are raised.
        """
        self.validate()
        for step in self.steps():
            if not step.enabled():
                log.debug2("Skipping disabled step [%s]", step.description)
                continue
            outcome = reconcile_object(self.ctx, step.build(), step.mutator)
            log.debug(
                "[%s] %s",
                step.description,
                outcome.value,
                extra={COMPONENT_ATTR: self.component_name},
            )
            self.outcomes[step.description] = outcome
        return ReconciliationResult(requeue=False)

    @property
    def component_name(self) -> str:
        return self.component or type(self).__name__

    @staticmethod
    def _bind(method: Callable[..., dict], *args: Any) -> Callable[[], dict]:
        """Defer a builder call until the step runs"""
        return lambda: method(*args)
