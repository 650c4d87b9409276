"""
Tests for the DeveloperUserController
"""

# Third Party
import pytest

# Local
from amp_operator import constants
from amp_operator.capabilities import (
    DeveloperUserController,
    validate_developer_user_spec,
)
from amp_operator.status import READY_CONDITION, get_condition, make_ready_condition
from amp_operator.test_helpers.helpers import (
    TEST_ADMIN_URL,
    TEST_INSTANCE_NAME,
    TEST_NAMESPACE,
    FakeDeveloperUserRemote,
    FakeProviderAccountResolver,
    MockDeployManager,
    setup_cr,
)

PARENT_NAME = "acme"

## Helpers #####################################################################


def developer_user(**spec_overrides):
    spec = {
        "username": "jane",
        "email": "jane@example.com",
        "developerAccountRef": {"name": PARENT_NAME},
        "passwordCredentialsRef": {"name": "jane-password"},
    }
    spec.update(spec_overrides)
    return setup_cr(
        kind=constants.DEVELOPER_USER_KIND,
        api_version=constants.CAPABILITIES_API_VERSION,
        spec=spec,
    )


def developer_account(ready=True, **spec):
    account = setup_cr(
        kind=constants.DEVELOPER_ACCOUNT_KIND,
        api_version=constants.CAPABILITIES_API_VERSION,
        name=PARENT_NAME,
        spec=spec,
    )
    account["status"] = {
        "accountID": 7,
        "conditions": [make_ready_condition(None if ready else ValueError("not yet"))],
    }
    return account


def reconcile(resources, resolver=None, remote=None):
    dm = MockDeployManager(resources=resources)
    controller = DeveloperUserController(
        dm,
        resolver or FakeProviderAccountResolver(),
        remote or FakeDeveloperUserRemote(),
    )
    result = controller.reconcile(TEST_NAMESPACE, TEST_INSTANCE_NAME)
    status = dm.get_obj(constants.DEVELOPER_USER_KIND, TEST_INSTANCE_NAME)["status"]
    return result, status, dm


def ready_condition(status):
    return get_condition(READY_CONDITION, status)


## Validation ##################################################################


def test_valid_spec():
    assert not validate_developer_user_spec(developer_user(role="admin"))


@pytest.mark.parametrize(
    ["spec_overrides", "field"],
    [
        ({"username": ""}, "spec.username"),
        ({"email": "not-an-email"}, "spec.email"),
        ({"developerAccountRef": {}}, "spec.developerAccountRef.name"),
        ({"passwordCredentialsRef": None}, "spec.passwordCredentialsRef.name"),
        ({"role": "owner"}, "spec.role"),
    ],
)
def test_invalid_spec_fields(spec_overrides, field):
    errors = validate_developer_user_spec(developer_user(**spec_overrides))
    assert [str(err.field) for err in errors] == [field]


## Reconcile ###################################################################


def test_synced_user_status():
    remote = FakeDeveloperUserRemote(user_id=42, state="pending")
    result, status, dm = reconcile(
        [developer_user(), developer_account()], remote=remote
    )
    assert not result.requeue
    assert ready_condition(status)["status"] == "True"
    assert status["developerUserID"] == 42
    assert status["developerUserState"] == "pending"
    assert status["accountID"] == 7
    assert status["observedGeneration"] == 1
    assert status["providerAccountHost"] == "https://test-admin.example.com"
    assert remote.synced == [TEST_INSTANCE_NAME]
    assert not dm.events


def test_missing_parent_is_orphan():
    """Make sure a user referencing a missing account is retried"""
    remote = FakeDeveloperUserRemote()
    result, status, dm = reconcile([developer_user()], remote=remote)
    assert result.requeue
    condition = ready_condition(status)
    assert condition["status"] == "False"
    assert condition["reason"] == "Orphan"
    assert "parent account resource not found" in condition["message"]
    assert "spec.developerAccountRef" in condition["message"]
    assert not remote.synced
    assert not dm.events


def test_parent_not_ready_is_orphan():
    result, status, _ = reconcile([developer_user(), developer_account(ready=False)])
    assert result.requeue
    assert "parent account resource not ready" in ready_condition(status)["message"]


def test_parent_other_provider_is_orphan():
    resolver = FakeProviderAccountResolver(
        admin_urls={"other-tenant": "https://other-admin.example.com"}
    )
    parent = developer_account(providerAccountRef={"name": "other-tenant"})
    result, status, _ = reconcile([developer_user(), parent], resolver=resolver)
    assert result.requeue
    assert "does not belong to the same provider account" in (
        ready_condition(status)["message"]
    )


def test_artifacts_cleared_when_parent_removed():
    """Make sure the artifacts of an earlier successful pass are not reported
    once the user is orphaned
    """
    dm = MockDeployManager(resources=[developer_user(), developer_account()])
    controller = DeveloperUserController(
        dm, FakeProviderAccountResolver(), FakeDeveloperUserRemote()
    )
    controller.reconcile(TEST_NAMESPACE, TEST_INSTANCE_NAME)
    status = dm.get_obj(constants.DEVELOPER_USER_KIND, TEST_INSTANCE_NAME)["status"]
    assert status["developerUserID"] == 42

    dm.remove_obj(constants.DEVELOPER_ACCOUNT_KIND, PARENT_NAME)
    result = controller.reconcile(TEST_NAMESPACE, TEST_INSTANCE_NAME)
    status = dm.get_obj(constants.DEVELOPER_USER_KIND, TEST_INSTANCE_NAME)["status"]
    assert result.requeue
    assert ready_condition(status)["reason"] == "Orphan"
    for key in ("accountID", "developerUserID", "developerUserState"):
        assert key not in status
    assert status["providerAccountHost"] == TEST_ADMIN_URL
    assert status["observedGeneration"] == 1


def test_invalid_spec_not_requeued():
    """Make sure a user failing validation is reported with a warning and not
    retried
    """
    resolver = FakeProviderAccountResolver()
    result, status, dm = reconcile(
        [developer_user(email="nope"), developer_account()], resolver=resolver
    )
    assert not result.requeue
    assert ready_condition(status)["reason"] == "InvalidSpec"
    assert [(e["type"], e["reason"]) for e in dm.events] == [("Warning", "InvalidSpec")]
    assert not resolver.lookups


def test_missing_user_ignored():
    dm = MockDeployManager()
    controller = DeveloperUserController(
        dm, FakeProviderAccountResolver(), FakeDeveloperUserRemote()
    )
    assert not controller.reconcile(TEST_NAMESPACE, "ghost").requeue
    dm.set_status.assert_not_called()
