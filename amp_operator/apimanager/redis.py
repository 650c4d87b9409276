"""
Reconciler for the operator-managed redis instances
"""

# Standard
from dataclasses import dataclass
from typing import List

# First Party
import alog

# Local
from ..context import ReconcileContext
from ..dependency import DependencyReconciler, ObjectStep
from ..mutators import (
    affinity_mutator,
    container_resources_mutator,
    create_only_mutator,
    defaults_only_secret_mutator,
    deployment_config_mutator,
    image_stream_mutator,
    tolerations_mutator,
)
from .api_manager import APIManager
from .interfaces import DesiredStateProvider, RedisVariant

log = alog.use_channel("REDIS")


@dataclass(frozen=True)
class RedisFlavor:
    """Selects which redis instance a RedisReconciler converges"""

    variant: RedisVariant
    has_config_map: bool


SYSTEM_REDIS = RedisFlavor(variant=RedisVariant.SYSTEM, has_config_map=True)
BACKEND_REDIS = RedisFlavor(variant=RedisVariant.BACKEND, has_config_map=True)


class RedisReconciler(DependencyReconciler):
    """Converges one redis instance. The connection secret goes first so that
    the workloads consuming it can start as soon as they are scheduled.
    """

    def __init__(
        self,
        ctx: ReconcileContext,
        api_manager: APIManager,
        provider: DesiredStateProvider,
        flavor: RedisFlavor,
    ):
        super().__init__(ctx, api_manager, provider)
        self.flavor = flavor
        self.component = f"{flavor.variant.value}-redis"

    def steps(self) -> List[ObjectStep]:
        redis = self.provider.redis(self.api_manager, self.ctx)
        variant = self.flavor.variant
        name = variant.value
        return [
            ObjectStep(
                f"{name} redis secret",
                self._bind(redis.secret, variant),
                defaults_only_secret_mutator,
            ),
            ObjectStep(
                "redis config map",
                redis.config_map,
                create_only_mutator,
                enabled=lambda: self.flavor.has_config_map,
            ),
            ObjectStep(
                f"{name} redis pvc",
                self._bind(redis.persistent_volume_claim, variant),
                create_only_mutator,
            ),
            ObjectStep(
                f"{name} redis image stream",
                self._bind(redis.image_stream, variant),
                image_stream_mutator,
            ),
            ObjectStep(
                f"{name} redis deployment config",
                self._bind(redis.deployment_config, variant),
                deployment_config_mutator(
                    container_resources_mutator,
                    affinity_mutator,
                    tolerations_mutator,
                ),
            ),
            ObjectStep(
                f"{name} redis service",
                self._bind(redis.service, variant),
                create_only_mutator,
            ),
        ]
