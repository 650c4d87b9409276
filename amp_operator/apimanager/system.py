"""
Reconciler for the system tier: file storage, configuration, services,
workloads, disruption budgets, and monitoring artifacts
"""

# Standard
from typing import List

# First Party
import alog

# Local
from .. import constants
from ..dependency import DependencyReconciler, ObjectStep
from ..exceptions import (
    FieldPath,
    OrphanError,
    assert_cluster,
    assert_valid_spec,
    invalid_field,
    required_field,
)
from ..mutators import (
    affinity_mutator,
    create_only_mutator,
    defaults_only_secret_mutator,
    deployment_config_mutator,
    generic_backend_mutators,
    generic_deployment_config_mutator,
    grafana_dashboard_mutator,
    make_containers_resources_mutator,
    pod_disruption_budget_mutator,
    replicas_mutator,
    tolerations_mutator,
)

log = alog.use_channel("SYSTM")

# Number of containers in the system app workload
SYSTEM_APP_CONTAINER_COUNT = 3

S3_SECRET_REF_PATH = FieldPath(
    "spec", "system", "fileStorage", "simpleStorageService", "configurationSecretRef"
)


class SystemReconciler(DependencyReconciler):
    """Converges the system tier"""

    component = "system"

    def validate(self):
        """Check the S3 configuration when S3 file storage is selected. S3
        storage is provided externally, so there is nothing to converge for it.
        """
        if self.api_manager.uses_deprecated_s3():
            log.warning(
                "Warning: deprecated amazonSimpleStorageService field in CR being "
                "used. Ignoring it... Please use simpleStorageService"
            )

        secret_name = self.api_manager.s3_configuration_secret_name()
        if secret_name is None:
            return

        name_path = S3_SECRET_REF_PATH.child("name")
        assert_valid_spec(
            []
            if secret_name
            else [required_field(name_path, "no aws credentials provided")]
        )

        success, secret = self.ctx.get_object_current_state(
            kind="Secret", name=secret_name, api_version="v1"
        )
        assert_cluster(success, f"Failed to fetch secret {secret_name}")
        if secret is None:
            raise OrphanError(
                [invalid_field(name_path, secret_name, "secret not found")]
            )

        present_keys = set(secret.get("data") or {}) | set(
            secret.get("stringData") or {}
        )
        assert_valid_spec(
            [
                invalid_field(
                    name_path,
                    secret_name,
                    f"Secret field '{key}' is required in secret '{secret_name}'",
                )
                for key in constants.AWS_REQUIRED_SECRET_KEYS
                if key not in present_keys
            ]
        )

    def steps(self) -> List[ObjectStep]:
        system = self.provider.system(self.api_manager, self.ctx)
        pdb_enabled = self.api_manager.is_pdb_enabled
        monitoring_enabled = self.api_manager.is_monitoring_enabled
        return [
            # File storage
            ObjectStep(
                "system shared storage",
                system.shared_storage,
                create_only_mutator,
                enabled=lambda: self.api_manager.s3_configuration_secret_name()
                is None,
            ),
            # Secrets
            ObjectStep("smtp secret", system.smtp_secret, defaults_only_secret_mutator),
            ObjectStep(
                "events hook secret",
                system.events_hook_secret,
                defaults_only_secret_mutator,
            ),
            ObjectStep(
                "master apicast secret",
                system.master_apicast_secret,
                defaults_only_secret_mutator,
            ),
            ObjectStep("seed secret", system.seed_secret, defaults_only_secret_mutator),
            ObjectStep(
                "recaptcha secret",
                system.recaptcha_secret,
                defaults_only_secret_mutator,
            ),
            ObjectStep("app secret", system.app_secret, defaults_only_secret_mutator),
            ObjectStep(
                "memcached secret",
                system.memcached_secret,
                defaults_only_secret_mutator,
            ),
            # Config maps
            ObjectStep(
                "system config map", system.system_config_map, create_only_mutator
            ),
            ObjectStep(
                "environment config map",
                system.environment_config_map,
                create_only_mutator,
            ),
            # Services
            ObjectStep(
                "provider service", system.provider_service, create_only_mutator
            ),
            ObjectStep("master service", system.master_service, create_only_mutator),
            ObjectStep(
                "developer service", system.developer_service, create_only_mutator
            ),
            ObjectStep("sphinx service", system.sphinx_service, create_only_mutator),
            ObjectStep(
                "memcached service", system.memcached_service, create_only_mutator
            ),
            # Workloads
            ObjectStep(
                "system app deployment config",
                system.app_deployment_config,
                deployment_config_mutator(
                    replicas_mutator,
                    affinity_mutator,
                    tolerations_mutator,
                    make_containers_resources_mutator(SYSTEM_APP_CONTAINER_COUNT),
                ),
            ),
            ObjectStep(
                "sidekiq deployment config",
                system.sidekiq_deployment_config,
                generic_deployment_config_mutator(),
            ),
            ObjectStep(
                "sphinx deployment config",
                system.sphinx_deployment_config,
                deployment_config_mutator(*generic_backend_mutators()),
            ),
            # Availability
            ObjectStep(
                "system app pdb",
                system.app_pod_disruption_budget,
                pod_disruption_budget_mutator,
                enabled=pdb_enabled,
            ),
            ObjectStep(
                "sidekiq pdb",
                system.sidekiq_pod_disruption_budget,
                pod_disruption_budget_mutator,
                enabled=pdb_enabled,
            ),
            # Monitoring
            ObjectStep(
                "sidekiq pod monitor",
                system.sidekiq_pod_monitor,
                create_only_mutator,
                enabled=monitoring_enabled,
            ),
            ObjectStep(
                "system app pod monitor",
                system.app_pod_monitor,
                create_only_mutator,
                enabled=monitoring_enabled,
            ),
            ObjectStep(
                "system grafana dashboard",
                system.grafana_dashboard,
                grafana_dashboard_mutator,
                enabled=monitoring_enabled,
            ),
            ObjectStep(
                "system app prometheus rules",
                system.app_prometheus_rules,
                create_only_mutator,
                enabled=monitoring_enabled,
            ),
            ObjectStep(
                "sidekiq prometheus rules",
                system.sidekiq_prometheus_rules,
                create_only_mutator,
                enabled=monitoring_enabled,
            ),
        ]
