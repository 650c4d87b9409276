"""
Tests for the DeploymentConfig mutators
"""

# Standard
import copy
import itertools

# Third Party
import pytest

# Local
from amp_operator.exceptions import StructuralError
from amp_operator.mutators import (
    affinity_mutator,
    container_resources_mutator,
    env_var_reconciler,
    make_containers_resources_mutator,
    replicas_mutator,
    resources_equal,
    tolerations_mutator,
)
from amp_operator.test_helpers.helpers import make_deployment_config

AFFINITY = {
    "nodeAffinity": {
        "requiredDuringSchedulingIgnoredDuringExecution": {
            "nodeSelectorTerms": [
                {"matchExpressions": [{"key": "zone", "operator": "In", "values": ["a"]}]}
            ]
        }
    }
}
TOLERATIONS = [{"key": "dedicated", "operator": "Equal", "value": "3scale"}]


def pod_spec(deployment_config):
    return deployment_config["spec"]["template"]["spec"]


def env_dc(env):
    dc = make_deployment_config("system-sidekiq")
    pod_spec(dc)["containers"][0]["env"] = copy.deepcopy(env)
    return dc


## Field mutators ##############################################################


def test_replicas_mutator():
    existing = make_deployment_config("zync", replicas=1)
    assert replicas_mutator(make_deployment_config("zync", replicas=3), existing)
    assert existing["spec"]["replicas"] == 3
    assert not replicas_mutator(make_deployment_config("zync", replicas=3), existing)


def test_affinity_and_tolerations_set_and_removed():
    """Make sure the fields are set when desired and removed when desired
    drops them
    """
    desired = make_deployment_config(
        "zync", affinity=AFFINITY, tolerations=TOLERATIONS
    )
    existing = make_deployment_config("zync")
    assert affinity_mutator(desired, existing)
    assert tolerations_mutator(desired, existing)
    assert pod_spec(existing)["affinity"] == AFFINITY
    assert pod_spec(existing)["tolerations"] == TOLERATIONS

    bare = make_deployment_config("zync")
    assert affinity_mutator(bare, existing)
    assert "affinity" not in pod_spec(existing)
    assert not affinity_mutator(bare, existing)


def test_mutators_leave_unlisted_fields():
    """Make sure fields that no mutator owns are never touched"""
    desired = make_deployment_config("zync", replicas=2)
    existing = make_deployment_config("zync")
    pod_spec(existing)["serviceAccountName"] = "custom"
    existing["spec"]["strategy"] = {"type": "Recreate"}
    replicas_mutator(desired, existing)
    container_resources_mutator(desired, existing)
    assert pod_spec(existing)["serviceAccountName"] == "custom"
    assert existing["spec"]["strategy"] == {"type": "Recreate"}


def test_mutator_commutativity():
    """Make sure mutators of disjoint fields give the same result in any
    order
    """
    desired = make_deployment_config(
        "zync", replicas=4, affinity=AFFINITY, tolerations=TOLERATIONS
    )
    pod_spec(desired)["containers"][0]["resources"]["requests"]["cpu"] = "250m"
    mutators = [
        replicas_mutator,
        affinity_mutator,
        tolerations_mutator,
        container_resources_mutator,
    ]
    results = []
    for ordering in itertools.permutations(mutators):
        existing = make_deployment_config("zync")
        for mutator in ordering:
            mutator(desired, existing)
        results.append(existing)
    assert all(result == results[0] for result in results)


## Resources ###################################################################


@pytest.mark.parametrize(
    ["existing", "desired", "equal"],
    [
        ({"limits": {"cpu": "1"}}, {"limits": {"cpu": "1000m"}}, True),
        ({"requests": {"memory": "1Gi"}}, {"requests": {"memory": "1024Mi"}}, True),
        ({"requests": {"cpu": "100m"}}, {"requests": {"cpu": "200m"}}, False),
        ({"requests": {"cpu": "100m"}}, {}, False),
        (None, {}, True),
    ],
)
def test_resources_equal(existing, desired, equal):
    assert resources_equal(existing, desired) == equal


def test_resources_mutator_container_count_change():
    """Make sure existing containers are replaced when the count differs"""
    desired = make_deployment_config(
        "system-app", container_names=["system-master", "system-provider", "system-developer"]
    )
    existing = make_deployment_config("system-app")
    mutator = make_containers_resources_mutator(3)
    assert mutator(desired, existing)
    assert [c["name"] for c in pod_spec(existing)["containers"]] == [
        "system-master",
        "system-provider",
        "system-developer",
    ]
    assert not mutator(desired, existing)


def test_resources_mutator_wrong_desired_count():
    desired = make_deployment_config("system-app", container_names=["a", "b"])
    with pytest.raises(StructuralError):
        make_containers_resources_mutator(3)(desired, make_deployment_config("x"))


## Env vars ####################################################################


def test_env_var_added():
    desired = env_dc([{"name": "A", "value": "1"}])
    existing = env_dc([])
    assert env_var_reconciler(desired, existing, "A")
    assert pod_spec(existing)["containers"][0]["env"] == [{"name": "A", "value": "1"}]


def test_env_var_updated():
    desired = env_dc([{"name": "A", "value": "2"}])
    existing = env_dc([{"name": "A", "value": "1"}, {"name": "B", "value": "x"}])
    assert env_var_reconciler(desired, existing, "A")
    assert pod_spec(existing)["containers"][0]["env"] == [
        {"name": "A", "value": "2"},
        {"name": "B", "value": "x"},
    ]


def test_env_var_removed():
    desired = env_dc([])
    existing = env_dc([{"name": "A", "value": "1"}, {"name": "B", "value": "2"}])
    assert env_var_reconciler(desired, existing, "B")
    assert pod_spec(existing)["containers"][0]["env"] == [{"name": "A", "value": "1"}]
    assert not env_var_reconciler(desired, existing, "B")


def test_env_var_unchanged():
    env = [{"name": "A", "value": "1"}]
    assert not env_var_reconciler(env_dc(env), env_dc(env), "A")
