"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple
from unittest import mock
import copy
import inspect
import os
import uuid

# First Party
import alog

# Local
from amp_operator import constants
from amp_operator.apimanager.interfaces import (
    ApicastComponent,
    BackendComponent,
    DesiredStateProvider,
    ImageComponent,
    RedisComponent,
    RedisVariant,
    SingleWorkloadComponent,
    SystemComponent,
    ZyncComponent,
)
from amp_operator.capabilities.interfaces import (
    DeveloperUserRemote,
    ProviderAccount,
    ProviderAccountResolver,
)
from amp_operator.config import library_config as config_detail_dict
from amp_operator.context import ReconcileContext
from amp_operator.deploy_manager.dry_run_deploy_manager import DryRunDeployManager

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "test-instance"
TEST_INSTANCE_UID = "12345678-1234-1234-1234-123456789012"
TEST_NAMESPACE = "test"
TEST_ADMIN_URL = "https://test-admin.example.com"

## Resources ###################################################################


def setup_cr(
    kind=constants.APIMANAGER_KIND,
    api_version=constants.APPS_API_VERSION,
    spec=None,
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    **kwargs,
):
    cr_dict = kwargs or {}
    cr_dict.setdefault("kind", kind)
    cr_dict.setdefault("apiVersion", api_version)
    cr_dict.setdefault("metadata", {}).setdefault("name", name)
    cr_dict.setdefault("metadata", {}).setdefault("namespace", namespace)
    cr_dict.setdefault("metadata", {}).setdefault("uid", TEST_INSTANCE_UID)
    cr_dict.setdefault("metadata", {}).setdefault("generation", 1)
    cr_dict.setdefault("spec", {}).update(copy.deepcopy(spec or {}))
    return cr_dict


def make_object(kind, name, api_version="v1", namespace=TEST_NAMESPACE, **fields):
    """Build a minimal manifest of any kind"""
    obj = {
        "kind": kind,
        "apiVersion": api_version,
        "metadata": {"name": name, "namespace": namespace},
    }
    obj.update(copy.deepcopy(fields))
    return obj


def make_container(name, resources=None, env=None, image=None):
    container = {
        "name": name,
        "image": image or f"{name}:latest",
        "resources": copy.deepcopy(
            resources
            if resources is not None
            else {
                "requests": {"cpu": "100m", "memory": "128Mi"},
                "limits": {"cpu": "1", "memory": "512Mi"},
            }
        ),
    }
    if env is not None:
        container["env"] = copy.deepcopy(env)
    return container


def make_deployment_config(
    name,
    container_names=None,
    replicas=1,
    image_stream_tag=None,
    labels=None,
    **pod_spec_fields,
):
    """Build a deployment config with one ImageChange trigger and one
    container per given name
    """
    container_names = container_names or [name]
    image_stream_tag = image_stream_tag or f"{name}:latest"
    labels = labels if labels is not None else {"deploymentconfig": name}
    pod_spec = {"containers": [make_container(cname) for cname in container_names]}
    pod_spec.update(copy.deepcopy(pod_spec_fields))
    return make_object(
        constants.DEPLOYMENT_CONFIG_KIND,
        name,
        api_version="apps.openshift.io/v1",
        spec={
            "replicas": replicas,
            "selector": {"deploymentconfig": name},
            "strategy": {"type": "Rolling"},
            "template": {
                "metadata": {"labels": copy.deepcopy(labels)},
                "spec": pod_spec,
            },
            "triggers": [
                {"type": "ConfigChange"},
                {
                    "type": constants.IMAGE_CHANGE_TRIGGER_TYPE,
                    "imageChangeParams": {
                        "automatic": True,
                        "containerNames": list(container_names),
                        "from": {"kind": "ImageStreamTag", "name": image_stream_tag},
                    },
                },
            ],
        },
    )


def make_secret(name, data=None, string_data=None):
    secret = make_object("Secret", name, type="Opaque")
    if data is not None:
        secret["data"] = copy.deepcopy(data)
    if string_data is not None:
        secret["stringData"] = copy.deepcopy(string_data)
    return secret


def make_image_stream(name, tags=None):
    tags = tags or [
        {
            "name": "latest",
            "from": {"kind": "DockerImage", "name": f"quay.io/3scale/{name}:latest"},
            "importPolicy": {"insecure": False},
        }
    ]
    return make_object(
        "ImageStream",
        name,
        api_version="image.openshift.io/v1",
        spec={"tags": copy.deepcopy(tags)},
    )


def make_pod_disruption_budget(name, max_unavailable=1):
    return make_object(
        "PodDisruptionBudget",
        name,
        api_version="policy/v1",
        spec={
            "selector": {"matchLabels": {"deploymentconfig": name}},
            "maxUnavailable": max_unavailable,
        },
    )


def setup_ctx(deploy_manager=None, namespace=TEST_NAMESPACE, **kwargs):
    return ReconcileContext(
        reconciliation_id=str(uuid.uuid4()),
        deploy_manager=deploy_manager or MockDeployManager(),
        namespace=namespace,
        **kwargs,
    )


## Config ######################################################################


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    # Yield to the context
    yield

    # Revert to the old values
    for key in config_overrides:
        if key in old_vals:
            config_detail_dict[key] = old_vals[key]
        else:
            del config_detail_dict[key]


## Deploy Manager ##############################################################


def get_failable_method(fail_flag, method, failure_return=False):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        log.debug4(
            "Running failable mock of [%s] with fail flag: %s", str(method), fail_flag
        )
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            res = fail_flag()
            if res is not None:
                return res
        elif fail_flag == "assert":
            log.debug4("Asserting in failable mock")
            raise AssertionError(f"You told me to fail {method}!")
        elif fail_flag:
            log.debug4("Returning %s", failure_return)
            return failure_return
        log.debug4("Passing through (%s, **%s)", args, kwargs)
        res = method(*args, **kwargs)
        log.debug4("Passthrough res: %s", res)
        return res

    return failable_method


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            return self.fail_val
        log.debug("Not failing on call %d", self.call_count)
        return None


class MockDeployManager(DryRunDeployManager):
    """The MockDeployManager wraps a standard DryRunDeployManager and adds
    configuration options to simulate failures in each of its operations.
    """

    def __init__(
        self,
        get_state_fail=False,
        get_state_raise=False,
        create_fail=False,
        create_raise=False,
        update_fail=False,
        update_raise=False,
        set_status_fail=False,
        set_status_raise=False,
        record_event_fail=False,
        record_event_raise=False,
        auto_enable=True,
        resources=None,
        **kwargs,
    ):
        """This DeployManager can be configured to have various failure cases
        and will mock the state of the cluster so that get_object_current_state
        will pull its information from the local dict.
        """
        resources = resources or []
        for resource in resources:
            resource.setdefault("apiVersion", "v1")
        super().__init__(resources, **kwargs)

        self.get_state_fail = "assert" if get_state_raise else get_state_fail
        self.create_fail = "assert" if create_raise else create_fail
        self.update_fail = "assert" if update_raise else update_fail
        self.set_status_fail = "assert" if set_status_raise else set_status_fail
        self.record_event_fail = (
            "assert" if record_event_raise else record_event_fail
        )

        # If auto-enabling, turn the mocks on now
        if auto_enable:
            self.enable_mocks()

    #######################
    ## Helpers for Tests ##
    #######################

    def enable_mocks(self):
        """Turn the mocks on"""
        self.get_object_current_state = mock.Mock(
            side_effect=get_failable_method(
                self.get_state_fail, super().get_object_current_state, (False, None)
            )
        )
        self.create = mock.Mock(
            side_effect=get_failable_method(
                self.create_fail, super().create, (False, None)
            )
        )
        self.update = mock.Mock(
            side_effect=get_failable_method(
                self.update_fail, super().update, (False, None)
            )
        )
        self.set_status = mock.Mock(
            side_effect=get_failable_method(
                self.set_status_fail, super().set_status, (False, False)
            )
        )
        self.record_event = mock.Mock(
            side_effect=get_failable_method(
                self.record_event_fail, super().record_event, (False, None)
            )
        )

    def get_obj(self, kind, name, namespace=TEST_NAMESPACE, api_version=None):
        return DryRunDeployManager.get_object_current_state(
            self, kind, name, namespace, api_version
        )[1]

    def has_obj(self, *args, **kwargs):
        return self.get_obj(*args, **kwargs) is not None

    def put_obj(self, resource):
        """Place an object in the simulated cluster without going through the
        mocks
        """
        return self._store(copy.deepcopy(resource))

    def remove_obj(self, kind, name, namespace=TEST_NAMESPACE):
        """Drop an object from the simulated cluster as if another actor had
        deleted it
        """
        for entries in self._cluster_content.get(namespace, {}).get(kind, {}).values():
            entries.pop(name, None)


## Desired State Provider ######################################################


class FakeProvider(DesiredStateProvider):
    """Desired state provider producing small but complete manifests.

    Every built object is recorded in build order in built as (kind, name).
    Tests can replace the manifest of any object by (kind, name) through
    overrides.
    """

    def __init__(self, overrides: Optional[Dict[Tuple[str, str], dict]] = None):
        self.overrides = overrides or {}
        self.built: List[Tuple[str, str]] = []

    def build(self, manifest: dict) -> dict:
        key = (manifest["kind"], manifest["metadata"]["name"])
        self.built.append(key)
        return copy.deepcopy(self.overrides.get(key, manifest))

    def override(self, manifest: dict):
        self.overrides[(manifest["kind"], manifest["metadata"]["name"])] = manifest

    def redis(self, api_manager, ctx):
        return FakeRedis(self)

    def system(self, api_manager, ctx):
        return FakeSystem(self)

    def apicast(self, api_manager, ctx):
        return FakeApicast(self)

    def backend(self, api_manager, ctx):
        return FakeBackend(self)

    def zync(self, api_manager, ctx):
        return FakeZync(self)

    def memcached(self, api_manager, ctx):
        return FakeWorkload(self, "system-memcache")

    def system_mysql(self, api_manager, ctx):
        return FakeWorkload(self, "system-mysql")

    def system_postgresql(self, api_manager, ctx):
        return FakeWorkload(self, "system-postgresql")

    def amp_images(self, api_manager, ctx):
        return FakeImages(
            self, "amp-apicast", "amp-backend", "amp-system", "amp-zync"
        )

    def system_mysql_image(self, api_manager, ctx):
        return FakeImages(self, "system-mysql")

    def system_postgresql_image(self, api_manager, ctx):
        return FakeImages(self, "system-postgresql")


class FakeRedis(RedisComponent):
    def __init__(self, provider: FakeProvider):
        self.provider = provider

    @staticmethod
    def _name(variant: RedisVariant) -> str:
        return f"{variant.value}-redis"

    def deployment_config(self, variant):
        return self.provider.build(make_deployment_config(self._name(variant)))

    def service(self, variant):
        return self.provider.build(
            make_object(
                "Service",
                self._name(variant),
                spec={"ports": [{"name": "redis", "port": 6379}]},
            )
        )

    def config_map(self):
        return self.provider.build(
            make_object("ConfigMap", "redis-config", data={"redis.conf": "save 900 1"})
        )

    def persistent_volume_claim(self, variant):
        return self.provider.build(
            make_object(
                "PersistentVolumeClaim",
                f"{self._name(variant)}-storage",
                spec={"resources": {"requests": {"storage": "1Gi"}}},
            )
        )

    def image_stream(self, variant):
        return self.provider.build(make_image_stream(self._name(variant)))

    def secret(self, variant):
        name = self._name(variant)
        return self.provider.build(
            make_secret(name, string_data={"URL": f"redis://{name}:6379/1"})
        )


class FakeSystem(SystemComponent):  # pylint: disable=too-many-public-methods
    def __init__(self, provider: FakeProvider):
        self.provider = provider

    def _service(self, name):
        return self.provider.build(
            make_object("Service", name, spec={"ports": [{"port": 3000}]})
        )

    def _secret(self, name):
        return self.provider.build(make_secret(name, string_data={"KEY": name}))

    def _monitoring(self, kind, api_version, name):
        return self.provider.build(
            make_object(kind, name, api_version=api_version, spec={"name": name})
        )

    def shared_storage(self):
        return self.provider.build(
            make_object(
                "PersistentVolumeClaim",
                "system-storage",
                spec={"accessModes": ["ReadWriteMany"]},
            )
        )

    def provider_service(self):
        return self._service("system-provider")

    def master_service(self):
        return self._service("system-master")

    def developer_service(self):
        return self._service("system-developer")

    def sphinx_service(self):
        return self._service("system-sphinx")

    def memcached_service(self):
        return self._service("system-memcache")

    def app_deployment_config(self):
        return self.provider.build(
            make_deployment_config(
                "system-app",
                container_names=["system-master", "system-provider", "system-developer"],
            )
        )

    def sidekiq_deployment_config(self):
        return self.provider.build(make_deployment_config("system-sidekiq"))

    def sphinx_deployment_config(self):
        return self.provider.build(make_deployment_config("system-sphinx"))

    def system_config_map(self):
        return self.provider.build(
            make_object("ConfigMap", "system", data={"zync.yml": ""})
        )

    def environment_config_map(self):
        return self.provider.build(
            make_object("ConfigMap", "system-environment", data={"RAILS_ENV": "production"})
        )

    def smtp_secret(self):
        return self._secret("system-smtp")

    def events_hook_secret(self):
        return self._secret("system-events-hook")

    def master_apicast_secret(self):
        return self._secret("system-master-apicast")

    def seed_secret(self):
        return self._secret("system-seed")

    def recaptcha_secret(self):
        return self._secret("system-recaptcha")

    def app_secret(self):
        return self._secret("system-app")

    def memcached_secret(self):
        return self._secret("system-memcache")

    def app_pod_disruption_budget(self):
        return self.provider.build(make_pod_disruption_budget("system-app"))

    def sidekiq_pod_disruption_budget(self):
        return self.provider.build(make_pod_disruption_budget("system-sidekiq"))

    def app_pod_monitor(self):
        return self._monitoring("PodMonitor", "monitoring.coreos.com/v1", "system-app")

    def sidekiq_pod_monitor(self):
        return self._monitoring(
            "PodMonitor", "monitoring.coreos.com/v1", "system-sidekiq"
        )

    def grafana_dashboard(self):
        dashboard = make_object(
            "GrafanaDashboard",
            "system",
            api_version="integreatly.org/v1alpha1",
            spec={"json": "{}"},
        )
        dashboard["metadata"]["labels"] = {"monitoring-key": "middleware"}
        return self.provider.build(dashboard)

    def app_prometheus_rules(self):
        return self._monitoring(
            "PrometheusRule", "monitoring.coreos.com/v1", "system-app"
        )

    def sidekiq_prometheus_rules(self):
        return self._monitoring(
            "PrometheusRule", "monitoring.coreos.com/v1", "system-sidekiq"
        )


class FakeApicast(ApicastComponent):
    def __init__(self, provider: FakeProvider):
        self.provider = provider

    def staging_deployment_config(self):
        return self.provider.build(make_deployment_config("apicast-staging"))

    def production_deployment_config(self):
        return self.provider.build(make_deployment_config("apicast-production"))


class FakeBackend(BackendComponent):
    def __init__(self, provider: FakeProvider):
        self.provider = provider

    def listener_deployment_config(self):
        return self.provider.build(make_deployment_config("backend-listener"))

    def worker_deployment_config(self):
        return self.provider.build(make_deployment_config("backend-worker"))

    def cron_deployment_config(self):
        return self.provider.build(make_deployment_config("backend-cron"))


class FakeZync(ZyncComponent):
    def __init__(self, provider: FakeProvider):
        self.provider = provider

    def deployment_config(self):
        return self.provider.build(make_deployment_config("zync"))

    def que_deployment_config(self):
        return self.provider.build(make_deployment_config("zync-que"))

    def database_deployment_config(self):
        return self.provider.build(make_deployment_config("zync-database"))


class FakeWorkload(SingleWorkloadComponent):
    def __init__(self, provider: FakeProvider, name: str):
        self.provider = provider
        self.name = name

    def deployment_config(self):
        return self.provider.build(make_deployment_config(self.name))


class FakeImages(ImageComponent):
    def __init__(self, provider: FakeProvider, *names: str):
        self.provider = provider
        self.names = names

    def image_streams(self):
        return [self.provider.build(make_image_stream(name)) for name in self.names]


def all_deployment_configs(provider: FakeProvider) -> List[dict]:
    """The desired deployment configs of a default installation (MySQL, no
    external components)
    """
    system = FakeSystem(provider)
    return [
        FakeApicast(provider).staging_deployment_config(),
        FakeApicast(provider).production_deployment_config(),
        FakeBackend(provider).listener_deployment_config(),
        FakeBackend(provider).worker_deployment_config(),
        FakeBackend(provider).cron_deployment_config(),
        FakeZync(provider).deployment_config(),
        FakeZync(provider).que_deployment_config(),
        FakeWorkload(provider, "system-memcache").deployment_config(),
        system.app_deployment_config(),
        system.sidekiq_deployment_config(),
        system.sphinx_deployment_config(),
        FakeZync(provider).database_deployment_config(),
        FakeRedis(provider).deployment_config(RedisVariant.BACKEND),
        FakeRedis(provider).deployment_config(RedisVariant.SYSTEM),
        FakeWorkload(provider, "system-mysql").deployment_config(),
    ]


## Capabilities ################################################################


class FakeProviderAccountResolver(ProviderAccountResolver):
    """Resolves every reference to a fixed admin url. References naming a
    secret listed in admin_urls resolve to the url given there.
    """

    def __init__(self, admin_url=TEST_ADMIN_URL, admin_urls=None):
        self.admin_url = admin_url
        self.admin_urls = admin_urls or {}
        self.lookups = []

    def lookup(self, ctx, namespace, provider_account_ref):
        self.lookups.append(provider_account_ref)
        name = (provider_account_ref or {}).get("name")
        return ProviderAccount(
            admin_url=self.admin_urls.get(name, self.admin_url), token="s3cr3t"
        )


class FakeDeveloperUserRemote(DeveloperUserRemote):
    def __init__(self, user_id=42, state="active"):
        self.user_id = user_id
        self.state = state
        self.synced = []

    def sync(self, ctx, user, parent_account, provider_account):
        self.synced.append(user["metadata"]["name"])
        return {"id": self.user_id, "state": self.state}
