"""
Composable mutators used by the convergence engine. A mutator reconciles one
field group of an existing object toward its desired value.
"""

# Local
from .deployment_config import (
    affinity_mutator,
    container_resources_mutator,
    deployment_config_mutator,
    env_var_reconciler,
    generic_backend_mutators,
    generic_deployment_config_mutator,
    make_containers_resources_mutator,
    replicas_mutator,
    resources_equal,
    tolerations_mutator,
)
from .generic import (
    create_only_mutator,
    defaults_only_secret_mutator,
    grafana_dashboard_mutator,
    image_stream_mutator,
    labels_mutator,
    pod_disruption_budget_mutator,
)
