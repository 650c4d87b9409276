"""
This DeployManager is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when the operator is running
in the cluster or outside the cluster making live changes.
"""
# Standard
from typing import Optional, Tuple
import threading

# Third Party
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    DynamicApiError,
    ForbiddenError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from ..managed_object import object_info
from .base import DeployManagerBase
from .kube_event import make_event

log = alog.use_channel("OSFTD")

# Errors raised by the client for a failed call. These are reported as an
# unsuccessful call rather than raised.
CLIENT_ERRORS = (DynamicApiError, urllib3.exceptions.HTTPError)


class OpenshiftDeployManager(DeployManagerBase):
    """This DeployManager uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, client: Optional[DynamicClient] = None):
        """
        Args:
            client:  Optional[DynamicClient]
                A preconfigured client. If not given, one is created lazily
                from the in-cluster or local kube config.
        """
        log.debug("Initializing openshift client")
        self._client = client

        # Keep a threading lock for performing status updates. This is necessary
        # to avoid running into 409 Conflict errors if concurrent threads are
        # trying to perform status updates
        self._status_lock = threading.Lock()

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Fetch the current state using calls directly to the api client"""
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            return True, None

        if not namespace:
            resources.namespaced = False

        try:
            resource = resources.get(
                name=name, namespace=namespace, _request_timeout=timeout
            )
        except ForbiddenError:
            log.debug(
                "Fetching objects of kind [%s] forbidden in namespace [%s]",
                kind,
                namespace,
            )
            return False, None
        except NotFoundError:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            return True, None
        except CLIENT_ERRORS as err:
            log.warning("Failed to fetch [%s/%s]: %s", kind, name, err)
            return False, None

        # If the resource was found, return it's dict representation
        return True, resource.to_dict()

    @alog.logged_function(log.debug2)
    def create(
        self,
        resource_definition: dict,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Create the object with a POST to the collection"""
        resource_handle = self._handle_for(resource_definition)
        if resource_handle is None:
            return False, None
        try:
            created = resource_handle.create(
                body=resource_definition,
                namespace=resource_definition["metadata"].get("namespace"),
                _request_timeout=timeout,
            )
        except CLIENT_ERRORS as err:
            log.warning(
                "Failed to create %s: %s", object_info(resource_definition), err
            )
            return False, None
        log.debug("Created %s", object_info(resource_definition))
        return True, created.to_dict()

    @alog.logged_function(log.debug2)
    def update(
        self,
        resource_definition: dict,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Update the object with a PUT of the full manifest. A stale
        resourceVersion results in a conflict which is reported as a failure.
        """
        resource_handle = self._handle_for(resource_definition)
        if resource_handle is None:
            return False, None
        try:
            updated = resource_handle.replace(
                body=resource_definition,
                namespace=resource_definition["metadata"].get("namespace"),
                _request_timeout=timeout,
            )
        except CLIENT_ERRORS as err:
            log.warning(
                "Failed to update %s: %s", object_info(resource_definition), err
            )
            return False, None
        log.debug("Updated %s", object_info(resource_definition))
        return True, updated.to_dict()

    def set_status(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        status: dict,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, bool]:
        """Set the status in the cluster manifest for an object managed by this
        operator using the status subresource
        """
        resource_handle = self._get_resource_handle(kind, api_version)
        if resource_handle is None:
            return False, False

        # If resource is not namespaced set kubernetes api namespaced to false
        if not namespace:
            resource_handle.namespaced = False

        with self._status_lock:
            try:
                resource = resource_handle.get(
                    name=name, namespace=namespace, _request_timeout=timeout
                ).to_dict()
                if resource.get("status") == status:
                    log.debug("Status has not changed. No update")
                    return True, False

                resource["status"] = status
                resource_handle.status.replace(body=resource, _request_timeout=timeout)
            except CLIENT_ERRORS as err:
                log.warning(
                    "Failed to set the status for [%s/%s] in %s: %s",
                    kind,
                    name,
                    namespace,
                    err,
                )
                return False, False

        log.debug2(
            "Successfully set the status for [%s/%s] in %s", kind, name, namespace
        )
        return True, True

    def record_event(  # pylint: disable=too-many-arguments
        self,
        involved_object: dict,
        event_type: str,
        reason: str,
        message: str,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Create a core/v1 Event for the given object"""
        event = make_event(involved_object, event_type, reason, message)
        events = self._get_resource_handle("Event", "v1")
        if events is None:
            return False, None
        try:
            created = events.create(
                body=event,
                namespace=event["metadata"]["namespace"],
                _request_timeout=timeout,
            )
        except CLIENT_ERRORS as err:
            log.warning("Failed to record event [%s]: %s", reason, err)
            return False, None
        return True, created.to_dict()

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client():
        """Create a DynamicClient that will work based on where the operator is
        running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")

            # Create Empty Config and load in-cluster information
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)

            # Generate ApiClient and return Openshift DynamicClient
            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _handle_for(self, resource_definition: dict) -> Optional[Resource]:
        return self._get_resource_handle(
            resource_definition.get("kind"), resource_definition.get("apiVersion")
        )

    def _get_resource_handle(self, kind: str, api_version: str) -> Optional[Resource]:
        """Get the openshift resource handle for a specified kind and api_version"""
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            try:
                resources = self.client.resources.get(
                    short_names=[kind], api_version=api_version
                )
            except (ResourceNotFoundError, ResourceNotUniqueError):
                log.debug(
                    "No objects of kind [%s] found or multiple objects matching request found",
                    kind,
                )
        return resources
