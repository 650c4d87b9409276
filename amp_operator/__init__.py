"""
Package exports
"""

# Local
from . import config, reconcile, status
from .apimanager import APIManagerController, UpgradeApiManager
from .capabilities import DeveloperUserController
from .context import ReconcileContext
from .controller import Controller
from .convergence import ReconcileOutcome, reconcile_object
from .deploy_manager import DeployManagerBase
from .exceptions import (
    ErrorKind,
    assert_cluster,
    assert_structural,
    assert_valid_spec,
    error_kind,
)
from .reconcile import ReconciliationResult
