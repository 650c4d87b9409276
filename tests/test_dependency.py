"""
Tests for the DependencyReconciler base
"""

# Third Party
import pytest

# Local
from amp_operator.apimanager import APIManager
from amp_operator.convergence import ReconcileOutcome
from amp_operator.dependency import DependencyReconciler, ObjectStep
from amp_operator.exceptions import InfraError
from amp_operator.mutators import defaults_only_secret_mutator
from amp_operator.test_helpers.helpers import (
    FailOnce,
    MockDeployManager,
    get_failable_method,
    make_object,
    make_secret,
    setup_cr,
    setup_ctx,
)


class ThreeObjects(DependencyReconciler):
    """Converges a secret, an optional config map, and a service"""

    def __init__(self, *args, config_map_enabled=True, **kwargs):
        super().__init__(*args, **kwargs)
        self.config_map_enabled = config_map_enabled
        self.built = []

    def _build(self, manifest):
        self.built.append(manifest["metadata"]["name"])
        return manifest

    def steps(self):
        return [
            ObjectStep(
                "secret",
                self._bind(self._build, make_secret("one", data={"a": "YQ=="})),
                defaults_only_secret_mutator,
            ),
            ObjectStep(
                "config map",
                self._bind(self._build, make_object("ConfigMap", "two")),
                enabled=lambda: self.config_map_enabled,
            ),
            ObjectStep(
                "service",
                self._bind(self._build, make_object("Service", "three")),
            ),
        ]


def make_reconciler(dm, **kwargs):
    return ThreeObjects(setup_ctx(dm), APIManager(setup_cr()), None, **kwargs)


def test_steps_converged_in_order():
    dm = MockDeployManager()
    reconciler = make_reconciler(dm)
    result = reconciler.reconcile()
    assert not result.requeue
    assert [
        call.args[0]["metadata"]["name"] for call in dm.create.call_args_list
    ] == ["one", "two", "three"]
    assert set(reconciler.outcomes.values()) == {ReconcileOutcome.CREATED}

    again = make_reconciler(dm)
    again.reconcile()
    assert set(again.outcomes.values()) == {ReconcileOutcome.UNCHANGED}


def test_disabled_step_never_built():
    dm = MockDeployManager()
    reconciler = make_reconciler(dm, config_map_enabled=False)
    reconciler.reconcile()
    assert reconciler.built == ["one", "three"]
    assert not dm.has_obj("ConfigMap", "two")


def test_first_error_stops_the_pass():
    """Make sure objects after a failure are not touched and objects before
    it stay converged
    """
    dm = MockDeployManager()
    dm.create.side_effect = get_failable_method(
        FailOnce((False, None), fail_number=2),
        super(MockDeployManager, dm).create,
    )
    with pytest.raises(InfraError):
        make_reconciler(dm).reconcile()
    assert dm.has_obj("Secret", "one")
    assert not dm.has_obj("ConfigMap", "two")
    assert not dm.has_obj("Service", "three")
