"""
The upgrade pipeline migrates a running APIManager installation across version
boundaries. It is a stateless composition of small idempotent steps: all
progress lives in the cluster objects themselves, so every invocation restarts
from the first step and steps that already converged are no-ops.

Steps are plain callables taking the UpgradeApiManager and returning whether
another pass is needed. Failures are raised.
"""

# Standard
from typing import Callable, Iterable, List, Optional

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from .. import constants
from ..context import ReconcileContext
from ..convergence import ReconcileOutcome, reconcile_object
from ..exceptions import UpgradeStepError, assert_cluster, assert_structural
from ..managed_object import object_info
from ..mutators import image_stream_mutator
from ..reconcile import ReconciliationResult
from ..utils import find_by_name, merge_string_map, nested_get
from .api_manager import APIManager, ExternalComponent
from .interfaces import DesiredStateProvider, RedisVariant

log = alog.use_channel("UPGRD")

# Forward declaration of the upgrader the steps run against
UPGRADER_TYPE = "UpgradeApiManager"

# Signature of a step: (upgrader) -> needs_another_pass
UPGRADE_STEP = Callable[[UPGRADER_TYPE], bool]
PREDICATE = Callable[[UPGRADER_TYPE], bool]

## Combinators #################################################################


def sequentially(*steps: UPGRADE_STEP) -> UPGRADE_STEP:
    """Run the steps in order, stopping at the first one that needs another
    pass. A raised error stops the sequence as well.
    """

    def run_sequentially(upgrader: UPGRADER_TYPE) -> bool:
        for step in steps:
            if step(upgrader):
                return True
        return False

    return run_sequentially


def and_then(first: UPGRADE_STEP, then: UPGRADE_STEP) -> UPGRADE_STEP:
    """Run then only when first is done"""

    def run_and_then(upgrader: UPGRADER_TYPE) -> bool:
        return first(upgrader) or then(upgrader)

    return run_and_then


def when(predicate: PREDICATE, step: UPGRADE_STEP) -> UPGRADE_STEP:
    """Run the step only if the predicate holds. The predicate is evaluated on
    every call.
    """

    def run_when(upgrader: UPGRADER_TYPE) -> bool:
        if not predicate(upgrader):
            log.debug2("Skipping guarded step %s", getattr(step, "__name__", step))
            return False
        return step(upgrader)

    return run_when


def named(name: str, step: UPGRADE_STEP) -> UPGRADE_STEP:
    """Annotate any failure of the step with the given name. The original
    error is kept as the __cause__ so that its classification survives.
    """

    def run_named(upgrader: UPGRADER_TYPE) -> bool:
        try:
            return step(upgrader)
        except Exception as err:  # pylint: disable=broad-except
            raise UpgradeStepError(name, err) from err

    run_named.__name__ = name
    return run_named


def not_external(component: ExternalComponent) -> PREDICATE:
    """Predicate holding when the given dependency is managed by the operator"""

    def is_not_external(upgrader: UPGRADER_TYPE) -> bool:
        return not upgrader.api_manager.is_external(component)

    return is_not_external


## Migrations ##################################################################


def find_image_change_trigger(deployment_config: dict) -> dict:
    """Get the single ImageChange trigger of a deployment config. Zero or
    several such triggers is a structural defect.
    """
    triggers = [
        trigger
        for trigger in nested_get(deployment_config, "spec.triggers") or []
        if trigger.get("type") == constants.IMAGE_CHANGE_TRIGGER_TYPE
    ]
    assert_structural(
        len(triggers) == 1,
        f"unexpected: found {len(triggers)} imageChangeParams deployment trigger "
        f"policies in DeploymentConfig '{object_info(deployment_config)}', "
        "should be 1",
    )
    return triggers[0]


def ensure_image_change_trigger(desired: dict, existing: dict) -> bool:
    """Point the ImageChange trigger of existing at the image stream tag of
    the desired trigger
    """
    desired_from = find_image_change_trigger(desired).setdefault(
        "imageChangeParams", {}
    ).setdefault("from", {})
    existing_from = find_image_change_trigger(existing).setdefault(
        "imageChangeParams", {}
    ).setdefault("from", {})
    if existing_from.get("name") == desired_from.get("name"):
        return False
    log.info(
        "%s ImageStream tag name in imageChangeParams trigger changed: %s",
        object_info(desired),
        DeepDiff(existing_from.get("name"), desired_from.get("name")),
    )
    existing_from["name"] = desired_from.get("name")
    return True


def ensure_pod_template_labels(desired: dict, existing: dict) -> bool:
    """Merge the desired pod template labels into existing and drop the
    labels of the old metering scheme
    """
    existing_labels = (
        existing.setdefault("spec", {})
        .setdefault("template", {})
        .setdefault("metadata", {})
        .setdefault("labels", {})
    )
    desired_labels = nested_get(desired, "spec.template.metadata.labels") or {}
    diff = DeepDiff(dict(existing_labels), dict(desired_labels))
    changed = merge_string_map(existing_labels, desired_labels)
    for key in constants.OBSOLETE_POD_TEMPLATE_LABEL_KEYS:
        if key in existing_labels:
            del existing_labels[key]
            changed = True
    if changed:
        log.info("DC %s template labels changed: %s", object_info(desired), diff)
    return changed


def remove_env_vars(env_holder: Optional[dict], env_var_names: Iterable[str]) -> bool:
    """Remove the named env vars from a container-like dict"""
    if not env_holder:
        return False
    env = env_holder.get("env") or []
    changed = False
    for name in env_var_names:
        idx = find_by_name(env, name)
        if idx >= 0:
            del env[idx]
            changed = True
    return changed


def _hook_pods(deployment_config: dict) -> List[dict]:
    """All execNewPod hooks of the rolling and recreate strategies"""
    strategy = nested_get(deployment_config, "spec.strategy") or {}
    hooks = []
    for params_key, hook_names in (
        ("rollingParams", ("pre", "post")),
        ("recreateParams", ("pre", "mid", "post")),
    ):
        params = strategy.get(params_key) or {}
        for hook_name in hook_names:
            pod = nested_get(params, f"{hook_name}.execNewPod")
            if pod:
                hooks.append(pod)
    return hooks


def delete_deployment_config_env_vars(
    existing: dict, env_var_names: Iterable[str]
) -> bool:
    """Remove the named env vars from every container, init container, and
    hook pod of a deployment config
    """
    env_var_names = list(env_var_names)
    pod_spec = nested_get(existing, "spec.template.spec") or {}
    holders = (
        (pod_spec.get("containers") or [])
        + (pod_spec.get("initContainers") or [])
        + _hook_pods(existing)
    )
    changed = False
    for holder in holders:
        changed = remove_env_vars(holder, env_var_names) or changed
    return changed


## UpgradeApiManager ###########################################################


class UpgradeApiManager:
    """Runs the upgrade pipeline against one APIManager"""

    def __init__(
        self,
        ctx: ReconcileContext,
        api_manager: APIManager,
        provider: DesiredStateProvider,
    ):
        self.ctx = ctx
        self.api_manager = api_manager
        self.provider = provider

    @alog.logged_function(log.info)
    def upgrade(self) -> ReconciliationResult:
        """Run the pipeline once

        Returns:
            result:  ReconciliationResult
                Requests a requeue when any step changed the cluster
        """
        with alog.ContextTimer(log.debug, "Upgrade pipeline for %s: ", self._desc):
            requeue = UPGRADE_PIPELINE(self)
        return ReconciliationResult(requeue=requeue)

    ## Image streams ###########################################################

    def upgrade_amp_image_streams(self) -> bool:
        changed = False
        for image_stream in self.provider.amp_images(
            self.api_manager, self.ctx
        ).image_streams():
            changed = self._converge_image_stream(image_stream) or changed
        return changed

    def upgrade_backend_redis_image_stream(self) -> bool:
        redis = self.provider.redis(self.api_manager, self.ctx)
        return self._converge_image_stream(redis.image_stream(RedisVariant.BACKEND))

    def upgrade_system_redis_image_stream(self) -> bool:
        redis = self.provider.redis(self.api_manager, self.ctx)
        return self._converge_image_stream(redis.image_stream(RedisVariant.SYSTEM))

    def upgrade_system_database_image_stream(self) -> bool:
        if self.api_manager.is_system_postgresql_enabled():
            component = self.provider.system_postgresql_image(self.api_manager, self.ctx)
        else:
            component = self.provider.system_mysql_image(self.api_manager, self.ctx)
        changed = False
        for image_stream in component.image_streams():
            changed = self._converge_image_stream(image_stream) or changed
        return changed

    ## Deployment configs ######################################################

    def upgrade_deployment_config_triggers(self) -> bool:
        """Converge the image change trigger of every deployment config,
        requesting another pass at the first one that changed
        """
        for desired in self._deployment_configs():
            existing = self._get_existing(desired)
            if existing is None:
                continue
            if ensure_image_change_trigger(desired, existing):
                self._update(existing)
                return True
        return False

    def upgrade_pod_template_labels(self) -> bool:
        updated = False
        for desired in self._deployment_configs():
            log.debug("ensurePodTemplateLabels object %s", object_info(desired))
            existing = self._get_existing(desired)
            if existing is None:
                continue
            if ensure_pod_template_labels(desired, existing):
                self._update(existing)
                updated = True
        return updated

    ## Obsolete configuration ##################################################

    def delete_system_app_message_bus_env_vars(self) -> bool:
        system = self.provider.system(self.api_manager, self.ctx)
        return self._delete_env_vars(system.app_deployment_config())

    def delete_system_sidekiq_message_bus_env_vars(self) -> bool:
        system = self.provider.system(self.api_manager, self.ctx)
        return self._delete_env_vars(system.sidekiq_deployment_config())

    def delete_system_sphinx_message_bus_env_vars(self) -> bool:
        system = self.provider.system(self.api_manager, self.ctx)
        return self._delete_env_vars(system.sphinx_deployment_config())

    def delete_system_redis_message_bus_secret_attributes(self) -> bool:
        redis = self.provider.redis(self.api_manager, self.ctx)
        existing = self._get_existing(redis.secret(RedisVariant.SYSTEM))
        if existing is None:
            return False
        data = existing.get("data") or {}
        changed = False
        for attr in constants.MESSAGE_BUS_SECRET_ATTRIBUTE_NAMES:
            if attr in data:
                del data[attr]
                changed = True
        if changed:
            self._update(existing)
        return changed

    def upgrade_mysql_config_map(self) -> bool:
        """Add the default authentication plugin setting to the MySQL extra
        configuration
        """
        existing = self._get_existing(
            {
                "kind": "ConfigMap",
                "apiVersion": "v1",
                "metadata": {"name": constants.MYSQL_EXTRA_CONFIG_MAP_NAME},
            }
        )
        if existing is None:
            return False
        data = existing.setdefault("data", {})
        if constants.MYSQL_AUTH_PLUGIN_CONFIG_KEY in data:
            return False
        data[constants.MYSQL_AUTH_PLUGIN_CONFIG_KEY] = (
            constants.MYSQL_AUTH_PLUGIN_CONFIG_VALUE
        )
        self._update(existing)
        return True

    ## Implementation Details ##################################################

    @property
    def _desc(self) -> str:
        return f"{self.api_manager.namespace}/{self.api_manager.name}"

    def _deployment_configs(self) -> List[dict]:
        """The desired state of every deployment config managed by the
        operator for this APIManager
        """
        api_manager, ctx = self.api_manager, self.ctx
        apicast = self.provider.apicast(api_manager, ctx)
        backend = self.provider.backend(api_manager, ctx)
        zync = self.provider.zync(api_manager, ctx)
        memcached = self.provider.memcached(api_manager, ctx)
        system = self.provider.system(api_manager, ctx)

        deployment_configs = [
            apicast.staging_deployment_config(),
            apicast.production_deployment_config(),
            backend.listener_deployment_config(),
            backend.worker_deployment_config(),
            backend.cron_deployment_config(),
            zync.deployment_config(),
            zync.que_deployment_config(),
            memcached.deployment_config(),
            system.app_deployment_config(),
            system.sidekiq_deployment_config(),
            system.sphinx_deployment_config(),
        ]
        if not api_manager.is_external(ExternalComponent.ZYNC_DATABASE):
            deployment_configs.append(zync.database_deployment_config())

        system_redis_external = api_manager.is_external(ExternalComponent.SYSTEM_REDIS)
        backend_redis_external = api_manager.is_external(
            ExternalComponent.BACKEND_REDIS
        )
        if not (system_redis_external and backend_redis_external):
            redis = self.provider.redis(api_manager, ctx)
            if not backend_redis_external:
                deployment_configs.append(
                    redis.deployment_config(RedisVariant.BACKEND)
                )
            if not system_redis_external:
                deployment_configs.append(redis.deployment_config(RedisVariant.SYSTEM))

        if api_manager.is_system_postgresql_enabled():
            deployment_configs.append(
                self.provider.system_postgresql(api_manager, ctx).deployment_config()
            )
        if api_manager.is_system_mysql_enabled():
            deployment_configs.append(
                self.provider.system_mysql(api_manager, ctx).deployment_config()
            )
        return deployment_configs

    def _converge_image_stream(self, image_stream: dict) -> bool:
        outcome = reconcile_object(self.ctx, image_stream, image_stream_mutator)
        return outcome != ReconcileOutcome.UNCHANGED

    def _delete_env_vars(self, desired: dict) -> bool:
        existing = self._get_existing(desired)
        if existing is None:
            return False
        if not delete_deployment_config_env_vars(
            existing, constants.MESSAGE_BUS_ENV_VAR_NAMES
        ):
            return False
        self._update(existing)
        return True

    def _get_existing(self, desired: dict) -> Optional[dict]:
        """Fetch the live object matching desired. An object that does not
        exist yet has nothing to migrate and yields None.
        """
        metadata = desired.get("metadata", {})
        success, existing = self.ctx.get_object_current_state(
            kind=desired.get("kind"),
            name=metadata.get("name"),
            api_version=desired.get("apiVersion"),
        )
        assert_cluster(success, f"Failed to fetch {object_info(desired)}")
        if existing is None:
            log.debug("%s not found. Nothing to upgrade", object_info(desired))
        return existing

    def _update(self, existing: dict):
        success, _ = self.ctx.update(existing)
        assert_cluster(success, f"Failed to update {object_info(existing)}")


## Pipeline ####################################################################

UPGRADE_PIPELINE = sequentially(
    named(
        "Upgrading images",
        sequentially(
            UpgradeApiManager.upgrade_amp_image_streams,
            when(
                not_external(ExternalComponent.BACKEND_REDIS),
                UpgradeApiManager.upgrade_backend_redis_image_stream,
            ),
            when(
                not_external(ExternalComponent.SYSTEM_REDIS),
                UpgradeApiManager.upgrade_system_redis_image_stream,
            ),
            when(
                not_external(ExternalComponent.SYSTEM_DATABASE),
                UpgradeApiManager.upgrade_system_database_image_stream,
            ),
        ),
    ),
    named(
        "Upgrading deployment config triggers",
        UpgradeApiManager.upgrade_deployment_config_triggers,
    ),
    named(
        "Upgrading pod template labels",
        UpgradeApiManager.upgrade_pod_template_labels,
    ),
    named(
        "Deleting message bus configurations",
        sequentially(
            UpgradeApiManager.delete_system_app_message_bus_env_vars,
            UpgradeApiManager.delete_system_sidekiq_message_bus_env_vars,
            UpgradeApiManager.delete_system_sphinx_message_bus_env_vars,
            when(
                not_external(ExternalComponent.SYSTEM_REDIS),
                UpgradeApiManager.delete_system_redis_message_bus_secret_attributes,
            ),
        ),
    ),
    named(
        "Upgrading mysql config map",
        when(
            lambda upgrader: upgrader.api_manager.is_system_mysql_enabled(),
            UpgradeApiManager.upgrade_mysql_config_map,
        ),
    ),
)
