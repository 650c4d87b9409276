"""
Tests for the mutators of the simple kinds
"""

# Local
from amp_operator.mutators import (
    create_only_mutator,
    defaults_only_secret_mutator,
    grafana_dashboard_mutator,
    image_stream_mutator,
    labels_mutator,
    pod_disruption_budget_mutator,
)
from amp_operator.test_helpers.helpers import (
    make_image_stream,
    make_object,
    make_pod_disruption_budget,
    make_secret,
)


def test_create_only_mutator():
    existing = make_secret("foo", data={"a": "YQ=="})
    assert not create_only_mutator(make_secret("foo", data={"a": "Yg=="}), existing)
    assert existing["data"] == {"a": "YQ=="}


def test_defaults_only_secret_keeps_existing_values():
    """Make sure generated or user provided values are never overwritten"""
    desired = make_secret("foo", data={"a": "Yg==", "b": "Yw=="})
    existing = make_secret("foo", data={"a": "YQ=="})
    assert defaults_only_secret_mutator(desired, existing)
    assert existing["data"] == {"a": "YQ==", "b": "Yw=="}
    assert not defaults_only_secret_mutator(desired, existing)


def test_defaults_only_secret_string_data():
    """Make sure stringData defaults are compared against data"""
    desired = make_secret("foo", string_data={"URL": "redis://x"})
    existing = make_secret("foo")
    assert defaults_only_secret_mutator(desired, existing)
    assert existing["data"] == {"URL": "cmVkaXM6Ly94"}
    assert not defaults_only_secret_mutator(desired, existing)


def test_image_stream_tags():
    """Make sure missing tags are added, known tags are converged, and extra
    tags are kept
    """
    desired = make_image_stream(
        "amp-system",
        tags=[
            {"name": "latest", "from": {"kind": "DockerImage", "name": "system:2"}},
            {"name": "2.9", "from": {"kind": "DockerImage", "name": "system:2.9"}},
        ],
    )
    existing = make_image_stream(
        "amp-system",
        tags=[
            {"name": "latest", "from": {"kind": "DockerImage", "name": "system:1"}},
            {"name": "custom", "from": {"kind": "DockerImage", "name": "mine"}},
        ],
    )
    assert image_stream_mutator(desired, existing)
    tags = {tag["name"]: tag for tag in existing["spec"]["tags"]}
    assert set(tags) == {"latest", "custom", "2.9"}
    assert tags["latest"]["from"]["name"] == "system:2"
    assert tags["custom"]["from"]["name"] == "mine"
    assert not image_stream_mutator(desired, existing)


def test_pod_disruption_budget():
    """Make sure switching from maxUnavailable to minAvailable drops the old
    bound
    """
    desired = make_pod_disruption_budget("system-app")
    desired["spec"].pop("maxUnavailable")
    desired["spec"]["minAvailable"] = 1
    existing = make_pod_disruption_budget("system-app")
    assert pod_disruption_budget_mutator(desired, existing)
    assert existing["spec"] == desired["spec"]
    assert not pod_disruption_budget_mutator(desired, existing)


def test_labels_mutator_merges():
    desired = make_object("Foo", "bar", metadata={"name": "bar", "labels": {"a": "1"}})
    existing = make_object("Foo", "bar", metadata={"name": "bar", "labels": {"b": "2"}})
    assert labels_mutator(desired, existing)
    assert existing["metadata"]["labels"] == {"a": "1", "b": "2"}
    assert not labels_mutator(desired, existing)


def test_grafana_dashboard_mutator():
    desired = make_object(
        "GrafanaDashboard",
        "system",
        metadata={"name": "system", "labels": {"monitoring-key": "middleware"}},
        spec={"json": "{\"v\": 2}"},
    )
    existing = make_object("GrafanaDashboard", "system", spec={"json": "{}"})
    assert grafana_dashboard_mutator(desired, existing)
    assert existing["spec"] == desired["spec"]
    assert existing["metadata"]["labels"] == {"monitoring-key": "middleware"}
    assert not grafana_dashboard_mutator(desired, existing)
