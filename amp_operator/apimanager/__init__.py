"""
Reconciliation of the APIManager resource and its sub-components
"""

# Local
from .api_manager import APIManager, ExternalComponent
from .controller import APIManagerController
from .interfaces import DesiredStateProvider, RedisVariant
from .redis import BACKEND_REDIS, SYSTEM_REDIS, RedisFlavor, RedisReconciler
from .system import SystemReconciler
from .upgrade import UpgradeApiManager
