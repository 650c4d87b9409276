"""
Controller for the top-level APIManager resource
"""

# First Party
import alog

# Local
from .. import constants
from ..context import ReconcileContext
from ..controller import Controller
from ..deploy_manager import DeployManagerBase
from .api_manager import APIManager, ExternalComponent
from .interfaces import DesiredStateProvider
from .redis import BACKEND_REDIS, SYSTEM_REDIS, RedisReconciler
from .system import SystemReconciler
from .upgrade import UpgradeApiManager

log = alog.use_channel("APIMG")


class APIManagerController(Controller):
    """Runs the upgrade pipeline and then converges the operator-managed
    sub-components of an APIManager
    """

    api_version = constants.APPS_API_VERSION
    kind = constants.APIMANAGER_KIND

    def __init__(
        self,
        deploy_manager: DeployManagerBase,
        provider: DesiredStateProvider,
    ):
        super().__init__(deploy_manager)
        self.provider = provider

    def reconcile_spec(
        self,
        ctx: ReconcileContext,
        resource: dict,
        child_status: dict,
    ) -> bool:
        api_manager = APIManager(resource)

        # Migrations run ahead of steady state convergence. Any change restarts
        # the reconciliation so that later steps observe the migrated state.
        upgrade_result = UpgradeApiManager(ctx, api_manager, self.provider).upgrade()
        if upgrade_result.requeue:
            log.debug("Upgrade changed the cluster. Requeueing")
            return True

        reconcilers = []
        if not api_manager.is_external(ExternalComponent.SYSTEM_REDIS):
            reconcilers.append(
                RedisReconciler(ctx, api_manager, self.provider, SYSTEM_REDIS)
            )
        if not api_manager.is_external(ExternalComponent.BACKEND_REDIS):
            reconcilers.append(
                RedisReconciler(ctx, api_manager, self.provider, BACKEND_REDIS)
            )
        reconcilers.append(SystemReconciler(ctx, api_manager, self.provider))

        for reconciler in reconcilers:
            if reconciler.reconcile().requeue:
                return True
        return False
