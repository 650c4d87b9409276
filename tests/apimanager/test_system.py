"""
Tests for the SystemReconciler
"""

# Third Party
import pytest

# Local
from amp_operator.apimanager import APIManager, SystemReconciler
from amp_operator.convergence import ReconcileOutcome
from amp_operator.exceptions import InvalidSpecError, OrphanError, StructuralError
from amp_operator.test_helpers.helpers import (
    FakeProvider,
    MockDeployManager,
    make_container,
    make_deployment_config,
    make_secret,
    setup_cr,
    setup_ctx,
)

S3_SECRET = "aws-auth"


def s3_spec(secret_name=S3_SECRET):
    return {
        "system": {
            "fileStorage": {
                "simpleStorageService": {
                    "configurationSecretRef": {"name": secret_name}
                }
            }
        }
    }


def run_system(spec=None, dm=None, provider=None):
    dm = dm or MockDeployManager()
    provider = provider or FakeProvider()
    reconciler = SystemReconciler(
        setup_ctx(dm), APIManager(setup_cr(spec=spec)), provider
    )
    reconciler.reconcile()
    return dm, provider, reconciler


def created(dm, kind):
    return [
        call.args[0]["metadata"]["name"]
        for call in dm.create.call_args_list
        if call.args[0]["kind"] == kind
    ]


def test_default_system_objects():
    dm, _, reconciler = run_system()
    assert created(dm, "PersistentVolumeClaim") == ["system-storage"]
    assert created(dm, "Secret") == [
        "system-smtp",
        "system-events-hook",
        "system-master-apicast",
        "system-seed",
        "system-recaptcha",
        "system-app",
        "system-memcache",
    ]
    assert created(dm, "DeploymentConfig") == [
        "system-app",
        "system-sidekiq",
        "system-sphinx",
    ]
    assert not created(dm, "PodDisruptionBudget")
    assert not created(dm, "PodMonitor")
    assert not created(dm, "GrafanaDashboard")
    assert set(reconciler.outcomes.values()) == {ReconcileOutcome.CREATED}


def test_secrets_before_workloads():
    dm, _, _ = run_system()
    kinds = [call.args[0]["kind"] for call in dm.create.call_args_list]
    assert kinds.index("DeploymentConfig") > max(
        idx for idx, kind in enumerate(kinds) if kind == "Secret"
    )


def test_pdb_and_monitoring_enabled():
    dm, _, _ = run_system(
        spec={"podDisruptionBudget": {"enabled": True}, "monitoring": {"enabled": True}}
    )
    assert created(dm, "PodDisruptionBudget") == ["system-app", "system-sidekiq"]
    assert created(dm, "PodMonitor") == ["system-sidekiq", "system-app"]
    assert created(dm, "GrafanaDashboard") == ["system"]
    assert created(dm, "PrometheusRule") == ["system-app", "system-sidekiq"]


def test_disabled_monitoring_never_built():
    _, provider, _ = run_system()
    assert ("GrafanaDashboard", "system") not in provider.built
    assert ("PodDisruptionBudget", "system-app") not in provider.built


def test_s3_valid_skips_shared_storage():
    secret = make_secret(
        S3_SECRET,
        data={
            "AWS_ACCESS_KEY_ID": "a",
            "AWS_SECRET_ACCESS_KEY": "b",
            "AWS_BUCKET": "c",
            "AWS_REGION": "d",
        },
    )
    dm, _, _ = run_system(spec=s3_spec(), dm=MockDeployManager(resources=[secret]))
    assert not created(dm, "PersistentVolumeClaim")
    assert created(dm, "DeploymentConfig")


def test_s3_missing_keys_invalid_spec():
    """Make sure every missing key is named and nothing is converged"""
    secret = make_secret(S3_SECRET, data={"AWS_ACCESS_KEY_ID": "a"})
    dm = MockDeployManager(resources=[secret])
    with pytest.raises(InvalidSpecError) as spec_error:
        run_system(spec=s3_spec(), dm=dm)
    message = str(spec_error.value)
    for key in ("AWS_SECRET_ACCESS_KEY", "AWS_BUCKET", "AWS_REGION"):
        assert f"Secret field '{key}' is required in secret '{S3_SECRET}'" in message
    assert "AWS_ACCESS_KEY_ID'" not in message
    assert len(spec_error.value.field_errors) == 3
    dm.create.assert_not_called()


def test_s3_missing_secret_orphan():
    with pytest.raises(OrphanError, match="secret not found"):
        run_system(spec=s3_spec())


def test_s3_without_secret_name():
    with pytest.raises(InvalidSpecError, match="Required value"):
        run_system(spec=s3_spec(secret_name=""))


def test_app_resources_drift():
    """Make sure the resources of each of the three app containers are
    converged
    """
    names = ["system-master", "system-provider", "system-developer"]
    drifted = make_deployment_config("system-app", container_names=names)
    drifted["spec"]["template"]["spec"]["containers"][2] = make_container(
        "system-developer", resources={"requests": {"cpu": "5"}}
    )
    dm = MockDeployManager(resources=[drifted])
    dm, _, reconciler = run_system(dm=dm)
    assert reconciler.outcomes["system app deployment config"] == ReconcileOutcome.UPDATED
    live = dm.get_obj("DeploymentConfig", "system-app")
    assert live["spec"]["template"]["spec"]["containers"][2]["resources"] == (
        make_container("system-developer")["resources"]
    )


def test_app_wrong_container_count_structural():
    provider = FakeProvider()
    provider.override(make_deployment_config("system-app"))
    dm = MockDeployManager(resources=[make_deployment_config("system-app")])
    with pytest.raises(StructuralError):
        run_system(dm=dm, provider=provider)
