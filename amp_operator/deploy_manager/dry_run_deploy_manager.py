"""
The DryRunDeployManager implements the DeployManager interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from datetime import datetime
from threading import RLock
import base64
import copy
import itertools
import uuid

# First Party
import alog

# Local
from .base import DeployManagerBase
from .kube_event import make_event

log = alog.use_channel("DRY-RUN")

# Lock to ensure writes are thread safe
DRY_RUN_CLUSTER_LOCK = RLock()


class DryRunDeployManager(DeployManagerBase):
    """
    Deploy manager which doesn't actually deploy!
    """

    def __init__(
        self,
        resources=None,
        strict_resource_version=False,
    ):
        """Construct with an optional set of resources that already exist in
        the simulated cluster
        """
        self._cluster_content = {}
        self.strict_resource_version = strict_resource_version
        self._resource_versions = itertools.count(1)

        # All events recorded against objects in the simulated cluster
        self.events = []

        for resource in resources or []:
            self._store(copy.deepcopy(resource))

    ## Interface ###############################################################

    def get_object_current_state(
        self, kind, name, namespace=None, api_version=None, timeout=None
    ):
        log.info(
            "DRY RUN get_object_current_state of [%s/%s] in [%s]", kind, name, namespace
        )

        # Look in the cluster state
        matches = []
        kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
        log.debug3("Kind entries: %s", kind_entries)
        for api_ver, entries in kind_entries.items():
            log.debug3("Checking api_version [%s // %s]", api_ver, api_version)
            if name in entries and (api_ver == api_version or api_version is None):
                matches.append(entries[name])
        log.debug(
            "Found %d matches for [%s/%s] in %s", len(matches), kind, name, namespace
        )
        if len(matches) == 1:
            return True, copy.deepcopy(matches[0])
        return True, None

    def create(self, resource_definition, timeout=None):
        log.info("DRY RUN create")
        kind, name, namespace, api_version = self._identifiers(resource_definition)
        _, current = self.get_object_current_state(kind, name, namespace, api_version)
        if current is not None:
            log.warning(
                "Unable to create [%s/%s] in %s. Object already exists",
                kind,
                name,
                namespace,
            )
            return False, None
        return True, self._store(copy.deepcopy(resource_definition))

    def update(self, resource_definition, timeout=None):
        log.info("DRY RUN update")
        kind, name, namespace, api_version = self._identifiers(resource_definition)
        _, current = self.get_object_current_state(kind, name, namespace, api_version)
        if current is None:
            log.warning(
                "Unable to update [%s/%s] in %s. Object not found",
                kind,
                name,
                namespace,
            )
            return False, None

        new_resource_version = resource_definition.get("metadata", {}).get(
            "resourceVersion"
        )
        old_resource_version = current.get("metadata", {}).get("resourceVersion")
        if (
            self.strict_resource_version
            and new_resource_version
            and old_resource_version
            and new_resource_version != old_resource_version
        ):
            log.warning("Unable to update resource. resourceVersion is out of date")
            return False, None
        return True, self._store(copy.deepcopy(resource_definition), current)

    def set_status(
        self,
        kind,
        name,
        namespace,
        status,
        api_version=None,
        timeout=None,
    ):  # pylint: disable=too-many-arguments
        log.info(
            "DRY RUN set_status of [%s.%s/%s] in %s: %s",
            api_version,
            kind,
            name,
            namespace,
            status,
        )
        object_content = self.get_object_current_state(
            kind, name, namespace, api_version
        )[1]
        if object_content is None:
            log.debug("Did not find [%s/%s] in %s", kind, name, namespace)
            return False, False
        prev_status = object_content.get("status")
        object_content["status"] = copy.deepcopy(status)
        self._store(object_content, object_content)
        return True, prev_status != status

    def record_event(
        self,
        involved_object,
        event_type,
        reason,
        message,
        timeout=None,
    ):  # pylint: disable=too-many-arguments
        log.info("DRY RUN record_event [%s] %s: %s", event_type, reason, message)
        event = make_event(involved_object, event_type, reason, message)
        event["metadata"]["name"] = event["metadata"]["generateName"] + uuid.uuid4().hex
        with DRY_RUN_CLUSTER_LOCK:
            self.events.append(event)
        return True, copy.deepcopy(event)

    ## Implementation Details ##################################################

    @staticmethod
    def _identifiers(resource_definition):
        metadata = resource_definition.get("metadata", {})
        return (
            resource_definition.get("kind"),
            metadata.get("name"),
            metadata.get("namespace"),
            resource_definition.get("apiVersion"),
        )

    def _store(self, resource, current=None):
        """Write the resource into the simulated cluster, filling in the
        server-populated metadata fields
        """
        kind, name, namespace, api_version = self._identifiers(resource)
        log.debug("DRY RUN store [%s/%s/%s/%s]", namespace, kind, api_version, name)
        log.debug4(resource)

        current_metadata = (current or {}).get("metadata", {})
        metadata = resource.setdefault("metadata", {})
        metadata["creationTimestamp"] = current_metadata.get(
            "creationTimestamp", datetime.now().isoformat()
        )
        metadata["uid"] = current_metadata.get("uid", str(uuid.uuid4()))
        metadata["resourceVersion"] = str(next(self._resource_versions))

        # stringData is write-only and folded into data by the api server
        if kind == "Secret" and "stringData" in resource:
            data = resource.setdefault("data", {})
            for key, val in (resource.pop("stringData") or {}).items():
                data[key] = base64.b64encode(val.encode("utf-8")).decode("utf-8")

        with DRY_RUN_CLUSTER_LOCK:
            entries = (
                self._cluster_content.setdefault(namespace, {})
                .setdefault(kind, {})
                .setdefault(api_version, {})
            )
            entries[name] = resource
        return copy.deepcopy(resource)
