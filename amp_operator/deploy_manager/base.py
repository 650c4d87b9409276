"""
This defines the base class for all DeployManager types.
"""

# Standard
from typing import Optional, Tuple
import abc


class DeployManagerBase(abc.ABC):
    """
    Base class for deploy managers which are responsible for carrying out the
    individual reads and writes against the cluster. Every call reports its
    success as the first element of the returned tuple rather than raising so
    that callers decide how a failure is classified.
    """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """The get_object_current_state function fetches the current state of a
        given object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  str
                The namespace to search for the object
            api_version:  str
                The api_version of the resource kind to fetch
            timeout:  Optional[float]
                Seconds the call may block for

        Returns:
            success:  bool
                Whether or not the state fetch operation succeeded
            current_state:  dict or None
                The dict representation of the current object's configuration,
                or None if not present
        """

    @abc.abstractmethod
    def create(
        self,
        resource_definition: dict,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Create a new object in the cluster

        Args:
            resource_definition:  dict
                The full manifest of the object to create
            timeout:  Optional[float]
                Seconds the call may block for

        Returns:
            success:  bool
                Whether or not the create succeeded
            created:  dict or None
                The object as stored by the cluster
        """

    @abc.abstractmethod
    def update(
        self,
        resource_definition: dict,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Replace an existing object in the cluster. The resourceVersion of
        the given definition guards against concurrent writers.

        Args:
            resource_definition:  dict
                The full manifest of the object to write
            timeout:  Optional[float]
                Seconds the call may block for

        Returns:
            success:  bool
                Whether or not the update succeeded
            updated:  dict or None
                The object as stored by the cluster
        """

    @abc.abstractmethod
    def set_status(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        status: dict,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, bool]:
        """Set the status for an object managed by the operator

        Args:
            kind:  str
                The kind of the object to update
            name:  str
                The full name of the object to update
            namespace:  Optional[str]
                The namespace of the object
            status:  dict
                The status object to set onto the given object
            api_version:  str
                The api_version of the resource to update
            timeout:  Optional[float]
                Seconds the call may block for

        Returns:
            success:  bool
                Whether or not the status update succeeded
            changed:  bool
                Whether or not the status update resulted in a change
        """

    @abc.abstractmethod
    def record_event(  # pylint: disable=too-many-arguments
        self,
        involved_object: dict,
        event_type: str,
        reason: str,
        message: str,
        timeout: Optional[float] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Attach an event to the given object

        Args:
            involved_object:  dict
                The manifest of the object the event is about
            event_type:  str
                Normal or Warning
            reason:  str
                Short machine readable reason
            message:  str
                Human readable message
            timeout:  Optional[float]
                Seconds the call may block for

        Returns:
            success:  bool
                Whether or not the event was recorded
            event:  dict or None
                The recorded event
        """
