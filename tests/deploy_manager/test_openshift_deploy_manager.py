"""
Tests for the OpenshiftDeployManager against a mocked DynamicClient
"""

# Standard
from unittest import mock

# Third Party
from kubernetes.client.rest import ApiException
from openshift.dynamic.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ResourceNotFoundError,
)
import pytest

# Local
from amp_operator.deploy_manager import OpenshiftDeployManager
from amp_operator.test_helpers.helpers import TEST_NAMESPACE, make_secret, setup_cr

## Helpers #####################################################################


def api_error(error_type, status):
    return error_type(ApiException(status=status, reason=error_type.__name__))


def make_result(content):
    result = mock.Mock()
    result.to_dict.return_value = content
    return result


@pytest.fixture
def resource_handle():
    return mock.Mock()


@pytest.fixture
def deploy_manager(resource_handle):
    client = mock.Mock()
    client.resources.get.return_value = resource_handle
    return OpenshiftDeployManager(client=client)


## Tests #######################################################################


def test_get_found(deploy_manager, resource_handle):
    secret = make_secret("foo")
    resource_handle.get.return_value = make_result(secret)
    assert deploy_manager.get_object_current_state(
        "Secret", "foo", TEST_NAMESPACE, "v1", timeout=3
    ) == (True, secret)
    resource_handle.get.assert_called_once_with(
        name="foo", namespace=TEST_NAMESPACE, _request_timeout=3
    )


def test_get_not_found(deploy_manager, resource_handle):
    """A missing object is a successful lookup"""
    resource_handle.get.side_effect = api_error(NotFoundError, 404)
    assert deploy_manager.get_object_current_state("Secret", "foo", TEST_NAMESPACE) == (
        True,
        None,
    )


def test_get_forbidden(deploy_manager, resource_handle):
    resource_handle.get.side_effect = api_error(ForbiddenError, 403)
    assert deploy_manager.get_object_current_state("Secret", "foo", TEST_NAMESPACE) == (
        False,
        None,
    )


def test_get_unknown_kind():
    """Make sure kinds unknown to the cluster are reported as not found"""
    client = mock.Mock()
    client.resources.get.side_effect = ResourceNotFoundError("nope")
    dm = OpenshiftDeployManager(client=client)
    assert dm.get_object_current_state("Widget", "foo", TEST_NAMESPACE) == (True, None)
    assert client.resources.get.call_count == 2


def test_create(deploy_manager, resource_handle):
    secret = make_secret("foo")
    resource_handle.create.return_value = make_result(secret)
    assert deploy_manager.create(secret) == (True, secret)
    resource_handle.create.assert_called_once_with(
        body=secret, namespace=TEST_NAMESPACE, _request_timeout=None
    )


def test_update_conflict(deploy_manager, resource_handle):
    """Make sure a conflict is reported as an unsuccessful call"""
    resource_handle.replace.side_effect = api_error(ConflictError, 409)
    assert deploy_manager.update(make_secret("foo")) == (False, None)


def test_set_status_unchanged(deploy_manager, resource_handle):
    """Make sure no write is made when the status did not change"""
    cr = setup_cr(status={"a": 1})
    resource_handle.get.return_value = make_result(cr)
    assert deploy_manager.set_status(
        cr["kind"], cr["metadata"]["name"], TEST_NAMESPACE, {"a": 1}
    ) == (True, False)
    resource_handle.status.replace.assert_not_called()


def test_set_status_changed(deploy_manager, resource_handle):
    cr = setup_cr()
    resource_handle.get.return_value = make_result(cr)
    assert deploy_manager.set_status(
        cr["kind"], cr["metadata"]["name"], TEST_NAMESPACE, {"a": 1}
    ) == (True, True)
    body = resource_handle.status.replace.call_args.kwargs["body"]
    assert body["status"] == {"a": 1}


def test_record_event(deploy_manager, resource_handle):
    cr = setup_cr()
    resource_handle.create.side_effect = lambda body, **_: make_result(body)
    success, event = deploy_manager.record_event(cr, "Warning", "Oops", "failed")
    assert success
    assert event["kind"] == "Event"
    assert event["reason"] == "Oops"
    assert event["involvedObject"]["uid"] == cr["metadata"]["uid"]
