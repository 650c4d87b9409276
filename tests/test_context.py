"""
Tests for the ReconcileContext cancellation and deadline handling
"""

# Standard
import threading

# Third Party
import pytest

# Local
from amp_operator.exceptions import ReconcileCancelledError
from amp_operator.test_helpers.helpers import (
    TEST_NAMESPACE,
    MockDeployManager,
    make_secret,
    setup_ctx,
)


def test_calls_default_to_context_namespace():
    """Make sure lookups use the namespace of the context by default"""
    dm = MockDeployManager(resources=[make_secret("foo")])
    ctx = setup_ctx(dm)
    success, secret = ctx.get_object_current_state("Secret", "foo")
    assert success
    assert secret["metadata"]["namespace"] == TEST_NAMESPACE
    assert ctx.get_object_current_state("Secret", "foo", namespace="other")[1] is None


def test_no_deadline():
    ctx = setup_ctx()
    assert ctx.remaining_time() is None
    ctx.check_cancelled()


def test_remaining_time_passed_as_timeout():
    """Make sure every cluster call is bounded by the remaining time"""
    dm = MockDeployManager()
    ctx = setup_ctx(dm, timeout_seconds=100)
    ctx.create(make_secret("foo"))
    timeout = dm.create.call_args.kwargs["timeout"]
    assert 0 < timeout <= 100


def test_cancelled_context_makes_no_calls():
    """Make sure a cancelled context raises before touching the cluster"""
    dm = MockDeployManager()
    ctx = setup_ctx(dm)
    ctx.cancel()
    with pytest.raises(ReconcileCancelledError):
        ctx.create(make_secret("foo"))
    dm.create.assert_not_called()


def test_external_cancel_event():
    """Make sure the scheduler can cancel through a shared event"""
    cancel_event = threading.Event()
    ctx = setup_ctx(cancel_event=cancel_event)
    ctx.check_cancelled()
    cancel_event.set()
    with pytest.raises(ReconcileCancelledError):
        ctx.get_object_current_state("Secret", "foo")


def test_deadline_passed():
    ctx = setup_ctx(timeout_seconds=0)
    assert ctx.remaining_time() == 0
    with pytest.raises(ReconcileCancelledError, match="deadline"):
        ctx.update(make_secret("foo"))
