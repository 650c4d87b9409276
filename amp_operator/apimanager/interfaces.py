"""
Interfaces of the desired-state provider. The provider builds the fully
populated target manifests of each platform component from the APIManager
spec. It may read the cluster to resolve generated values but never writes.
"""

# Standard
from enum import Enum
from typing import List
import abc

# Local
from ..context import ReconcileContext
from .api_manager import APIManager


class RedisVariant(Enum):
    """The two redis instances of the platform"""

    SYSTEM = "system"
    BACKEND = "backend"


## Components ##################################################################


class RedisComponent(abc.ABC):
    """Builds the objects of a redis instance for the requested variant"""

    @abc.abstractmethod
    def deployment_config(self, variant: RedisVariant) -> dict:
        """The redis workload"""

    @abc.abstractmethod
    def service(self, variant: RedisVariant) -> dict:
        """The redis service"""

    @abc.abstractmethod
    def config_map(self) -> dict:
        """The redis configuration shared by both variants"""

    @abc.abstractmethod
    def persistent_volume_claim(self, variant: RedisVariant) -> dict:
        """The redis data volume"""

    @abc.abstractmethod
    def image_stream(self, variant: RedisVariant) -> dict:
        """The redis image reference"""

    @abc.abstractmethod
    def secret(self, variant: RedisVariant) -> dict:
        """The connection settings consumed by the clients of the instance"""


class SystemComponent(abc.ABC):  # pylint: disable=too-many-public-methods
    """Builds the objects of the system tier"""

    # Storage
    @abc.abstractmethod
    def shared_storage(self) -> dict:
        """The RWX volume claim used when S3 is not configured"""

    # Services
    @abc.abstractmethod
    def provider_service(self) -> dict:
        pass

    @abc.abstractmethod
    def master_service(self) -> dict:
        pass

    @abc.abstractmethod
    def developer_service(self) -> dict:
        pass

    @abc.abstractmethod
    def sphinx_service(self) -> dict:
        pass

    @abc.abstractmethod
    def memcached_service(self) -> dict:
        pass

    # Workloads
    @abc.abstractmethod
    def app_deployment_config(self) -> dict:
        """The system app workload. Has exactly three containers."""

    @abc.abstractmethod
    def sidekiq_deployment_config(self) -> dict:
        pass

    @abc.abstractmethod
    def sphinx_deployment_config(self) -> dict:
        pass

    # Configuration
    @abc.abstractmethod
    def system_config_map(self) -> dict:
        pass

    @abc.abstractmethod
    def environment_config_map(self) -> dict:
        pass

    @abc.abstractmethod
    def smtp_secret(self) -> dict:
        pass

    @abc.abstractmethod
    def events_hook_secret(self) -> dict:
        pass

    @abc.abstractmethod
    def master_apicast_secret(self) -> dict:
        pass

    @abc.abstractmethod
    def seed_secret(self) -> dict:
        pass

    @abc.abstractmethod
    def recaptcha_secret(self) -> dict:
        pass

    @abc.abstractmethod
    def app_secret(self) -> dict:
        pass

    @abc.abstractmethod
    def memcached_secret(self) -> dict:
        pass

    # Availability
    @abc.abstractmethod
    def app_pod_disruption_budget(self) -> dict:
        pass

    @abc.abstractmethod
    def sidekiq_pod_disruption_budget(self) -> dict:
        pass

    # Monitoring
    @abc.abstractmethod
    def app_pod_monitor(self) -> dict:
        pass

    @abc.abstractmethod
    def sidekiq_pod_monitor(self) -> dict:
        pass

    @abc.abstractmethod
    def grafana_dashboard(self) -> dict:
        pass

    @abc.abstractmethod
    def app_prometheus_rules(self) -> dict:
        pass

    @abc.abstractmethod
    def sidekiq_prometheus_rules(self) -> dict:
        pass


class ApicastComponent(abc.ABC):
    @abc.abstractmethod
    def staging_deployment_config(self) -> dict:
        pass

    @abc.abstractmethod
    def production_deployment_config(self) -> dict:
        pass


class BackendComponent(abc.ABC):
    @abc.abstractmethod
    def listener_deployment_config(self) -> dict:
        pass

    @abc.abstractmethod
    def worker_deployment_config(self) -> dict:
        pass

    @abc.abstractmethod
    def cron_deployment_config(self) -> dict:
        pass


class ZyncComponent(abc.ABC):
    @abc.abstractmethod
    def deployment_config(self) -> dict:
        pass

    @abc.abstractmethod
    def que_deployment_config(self) -> dict:
        pass

    @abc.abstractmethod
    def database_deployment_config(self) -> dict:
        pass


class SingleWorkloadComponent(abc.ABC):
    """A component made of one workload (memcached and the system databases)"""

    @abc.abstractmethod
    def deployment_config(self) -> dict:
        pass


class ImageComponent(abc.ABC):
    """A component that only publishes image references"""

    @abc.abstractmethod
    def image_streams(self) -> List[dict]:
        pass


## Provider ####################################################################


class DesiredStateProvider(abc.ABC):
    """Factory of the platform components. Each factory is called fresh on
    every reconciliation; nothing is cached between calls.
    """

    @abc.abstractmethod
    def redis(self, api_manager: APIManager, ctx: ReconcileContext) -> RedisComponent:
        pass

    @abc.abstractmethod
    def system(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> SystemComponent:
        pass

    @abc.abstractmethod
    def apicast(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> ApicastComponent:
        pass

    @abc.abstractmethod
    def backend(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> BackendComponent:
        pass

    @abc.abstractmethod
    def zync(self, api_manager: APIManager, ctx: ReconcileContext) -> ZyncComponent:
        pass

    @abc.abstractmethod
    def memcached(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> SingleWorkloadComponent:
        pass

    @abc.abstractmethod
    def system_mysql(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> SingleWorkloadComponent:
        pass

    @abc.abstractmethod
    def system_postgresql(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> SingleWorkloadComponent:
        pass

    @abc.abstractmethod
    def amp_images(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> ImageComponent:
        """The image streams of the platform itself"""

    @abc.abstractmethod
    def system_mysql_image(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> ImageComponent:
        pass

    @abc.abstractmethod
    def system_postgresql_image(
        self, api_manager: APIManager, ctx: ReconcileContext
    ) -> ImageComponent:
        pass
