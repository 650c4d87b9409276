"""
Mutators for DeploymentConfig objects. Each one owns an explicit group of
fields under spec and compares only those fields.
"""

# Standard
from typing import Any, List, Optional

# Third Party
from deepdiff import DeepDiff
from kubernetes.utils import parse_quantity

# First Party
import alog

# Local
from .. import constants
from ..convergence import MUTATOR, kind_mutator
from ..exceptions import assert_structural
from ..managed_object import object_info
from ..utils import find_by_name, nested_get

log = alog.use_channel("DCMUT")

## Helpers #####################################################################


def template_pod_spec(deployment_config: dict) -> dict:
    """Get the pod spec of the template, creating the intermediate dicts"""
    return (
        deployment_config.setdefault("spec", {})
        .setdefault("template", {})
        .setdefault("spec", {})
    )


def containers(deployment_config: dict) -> List[dict]:
    return nested_get(deployment_config, "spec.template.spec.containers") or []


def _quantities_equal(existing: Optional[dict], desired: Optional[dict]) -> bool:
    existing = existing or {}
    desired = desired or {}
    if set(existing) != set(desired):
        return False
    return all(
        parse_quantity(existing[name]) == parse_quantity(desired[name])
        for name in desired
    )


def resources_equal(existing: Optional[dict], desired: Optional[dict]) -> bool:
    """Compare two container resource requirements by quantity value, so that
    equivalent spellings such as 1 and 1000m compare as equal
    """
    existing = existing or {}
    desired = desired or {}
    return _quantities_equal(
        existing.get("requests"), desired.get("requests")
    ) and _quantities_equal(existing.get("limits"), desired.get("limits"))


def _converge_template_field(desired: dict, existing: dict, field: str) -> bool:
    desired_val: Any = nested_get(desired, f"spec.template.spec.{field}")
    existing_pod_spec = template_pod_spec(existing)
    if existing_pod_spec.get(field) == desired_val:
        return False
    log.info(
        "%s spec.template.spec.%s has changed: %s",
        object_info(desired),
        field,
        DeepDiff(existing_pod_spec.get(field), desired_val),
    )
    if desired_val is None:
        existing_pod_spec.pop(field, None)
    else:
        existing_pod_spec[field] = desired_val
    return True


## Field Mutators ##############################################################


def replicas_mutator(desired: dict, existing: dict) -> bool:
    desired_replicas = nested_get(desired, "spec.replicas")
    existing_spec = existing.setdefault("spec", {})
    if existing_spec.get("replicas") == desired_replicas:
        return False
    log.info(
        "%s spec.replicas has changed: %s -> %s",
        object_info(desired),
        existing_spec.get("replicas"),
        desired_replicas,
    )
    existing_spec["replicas"] = desired_replicas
    return True


def affinity_mutator(desired: dict, existing: dict) -> bool:
    return _converge_template_field(desired, existing, "affinity")


def tolerations_mutator(desired: dict, existing: dict) -> bool:
    return _converge_template_field(desired, existing, "tolerations")


def make_containers_resources_mutator(container_count: int) -> MUTATOR:
    """Build a mutator converging the resources of a fixed number of
    containers.

    The desired object must have exactly container_count containers. If the
    existing object has a different number, its containers are replaced with
    the desired ones since index based comparison is meaningless at that
    point.
    """

    def containers_resources_mutator(desired: dict, existing: dict) -> bool:
        desc = object_info(desired)
        desired_containers = containers(desired)
        assert_structural(
            len(desired_containers) == container_count,
            f"{desc} desired spec.template.spec.containers length changed to "
            f"'{len(desired_containers)}', should be {container_count}",
        )

        changed = False
        existing_pod_spec = template_pod_spec(existing)
        if len(existing_pod_spec.get("containers") or []) != container_count:
            log.info(
                "%s spec.template.spec.containers length changed to '%d', recreating dc",
                desc,
                len(existing_pod_spec.get("containers") or []),
            )
            existing_pod_spec["containers"] = desired_containers
            changed = True

        for idx, desired_container in enumerate(desired_containers):
            existing_container = existing_pod_spec["containers"][idx]
            desired_resources = desired_container.get("resources")
            if not resources_equal(
                existing_container.get("resources"), desired_resources
            ):
                log.info(
                    "%s spec.template.spec.containers[%d].resources have changed: %s",
                    desc,
                    idx,
                    DeepDiff(existing_container.get("resources"), desired_resources),
                )
                existing_container["resources"] = desired_resources
                changed = True
        return changed

    return containers_resources_mutator


# The common single container case
container_resources_mutator = make_containers_resources_mutator(1)


def env_var_reconciler(desired: dict, existing: dict, env_var_name: str) -> bool:
    """Reconcile a single env var of a single container deployment config.

    The var is added when only desired has it, updated when both have it with
    different values, and removed when only existing has it.
    """
    desired_containers = containers(desired)
    existing_containers = containers(existing)
    assert_structural(
        bool(desired_containers) and bool(existing_containers),
        f"{object_info(desired)} has no containers to reconcile {env_var_name} on",
    )
    desired_env = desired_containers[0].get("env") or []
    existing_env = existing_containers[0].setdefault("env", [])

    desired_idx = find_by_name(desired_env, env_var_name)
    existing_idx = find_by_name(existing_env, env_var_name)

    if desired_idx < 0 and existing_idx < 0:
        return False
    if desired_idx < 0:
        del existing_env[existing_idx]
    elif existing_idx < 0:
        existing_env.append(desired_env[desired_idx])
    elif existing_env[existing_idx] != desired_env[desired_idx]:
        existing_env[existing_idx] = desired_env[desired_idx]
    else:
        return False
    log.debug("%s env var [%s] changed", object_info(desired), env_var_name)
    return True


## Compositions ################################################################


def deployment_config_mutator(*mutators: MUTATOR) -> MUTATOR:
    return kind_mutator(constants.DEPLOYMENT_CONFIG_KIND, *mutators)


def generic_backend_mutators() -> List[MUTATOR]:
    """The mutators shared by workloads whose replicas are left to other
    actors
    """
    return [container_resources_mutator, affinity_mutator, tolerations_mutator]


def generic_deployment_config_mutator() -> MUTATOR:
    return deployment_config_mutator(replicas_mutator, *generic_backend_mutators())
