"""Tests for the DryRunDeployManager

NOTE: The majority of the functionality is exercised by all of the other unit
    tests, so the tests here only test elements that are particularly delicate
    and/or not covered elsewhere.
"""

# Local
from amp_operator import constants
from amp_operator.deploy_manager import DryRunDeployManager
from amp_operator.test_helpers.helpers import (
    TEST_NAMESPACE,
    make_object,
    make_secret,
    setup_cr,
)

## Tests #######################################################################


def test_create_then_get():
    """Make sure created objects can be fetched with server populated
    metadata
    """
    dm = DryRunDeployManager()
    success, created = dm.create(make_secret("foo", data={"a": "Yg=="}))
    assert success
    assert created["metadata"]["resourceVersion"]
    assert created["metadata"]["uid"]

    success, current = dm.get_object_current_state("Secret", "foo", TEST_NAMESPACE)
    assert success
    assert current["data"] == {"a": "Yg=="}


def test_get_missing_is_success():
    """A missing object is a successful lookup with no content"""
    dm = DryRunDeployManager()
    assert dm.get_object_current_state("Secret", "nope", TEST_NAMESPACE) == (
        True,
        None,
    )


def test_get_api_version_filter():
    """Make sure objects of the same kind and name under a different api
    version do not match
    """
    dm = DryRunDeployManager(resources=[make_object("Foo", "bar", api_version="a/v1")])
    assert dm.get_object_current_state("Foo", "bar", TEST_NAMESPACE, "a/v1")[1]
    assert dm.get_object_current_state("Foo", "bar", TEST_NAMESPACE, "a/v2")[1] is None


def test_create_existing_fails():
    dm = DryRunDeployManager(resources=[make_secret("foo")])
    assert dm.create(make_secret("foo")) == (False, None)


def test_update_missing_fails():
    dm = DryRunDeployManager()
    assert dm.update(make_secret("foo")) == (False, None)


def test_update_keeps_creation_metadata():
    """Make sure updates keep the uid and bump the resourceVersion"""
    dm = DryRunDeployManager(resources=[make_secret("foo")])
    current = dm.get_object_current_state("Secret", "foo", TEST_NAMESPACE)[1]
    current["data"] = {"b": "Yw=="}
    success, updated = dm.update(current)
    assert success
    assert updated["metadata"]["uid"] == current["metadata"]["uid"]
    assert int(updated["metadata"]["resourceVersion"]) > int(
        current["metadata"]["resourceVersion"]
    )


def test_strict_resource_version_conflict():
    """Make sure a stale resourceVersion is rejected in strict mode"""
    dm = DryRunDeployManager(
        resources=[make_secret("foo")], strict_resource_version=True
    )
    stale = dm.get_object_current_state("Secret", "foo", TEST_NAMESPACE)[1]
    fresh = dict(stale, data={"x": "eA=="})
    assert dm.update(fresh)[0]
    assert dm.update(stale) == (False, None)


def test_set_status_reports_change():
    """Make sure set_status only reports a change when the status differs"""
    cr = setup_cr()
    dm = DryRunDeployManager(resources=[cr])
    args = (constants.APIMANAGER_KIND, cr["metadata"]["name"], TEST_NAMESPACE)
    assert dm.set_status(*args, {"a": 1}) == (True, True)
    assert dm.set_status(*args, {"a": 1}) == (True, False)
    current = dm.get_object_current_state(*args)[1]
    assert current["status"] == {"a": 1}


def test_set_status_missing_object():
    dm = DryRunDeployManager()
    assert dm.set_status("Foo", "bar", TEST_NAMESPACE, {}) == (False, False)


def test_record_event():
    """Make sure events reference the involved object"""
    cr = setup_cr()
    dm = DryRunDeployManager(resources=[cr])
    success, event = dm.record_event(cr, "Warning", "InvalidSpec", "bad spec")
    assert success
    assert event["involvedObject"]["name"] == cr["metadata"]["name"]
    assert event["involvedObject"]["kind"] == constants.APIMANAGER_KIND
    assert event["metadata"]["name"].startswith(f"{cr['metadata']['name']}.")
    assert event["source"]["component"] == "amp-operator"
    assert [e["reason"] for e in dm.events] == ["InvalidSpec"]
