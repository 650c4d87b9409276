"""
Helper module to build the Event manifests attached to reconciled resources
"""

# Standard
from datetime import datetime, timezone
from typing import Optional

# Local
from .. import config


def event_timestamp(now: Optional[datetime] = None) -> str:
    """Format a timestamp the way the cluster API serializes them"""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%SZ")


def make_event(
    involved_object: dict,
    event_type: str,
    reason: str,
    message: str,
) -> dict:
    """Build a core/v1 Event manifest for the given object

    Args:
        involved_object:  dict
            The manifest of the object the event is about
        event_type:  str
            Normal or Warning
        reason:  str
            Short machine readable reason
        message:  str
            Human readable message

    Returns:
        event:  dict
            The Event manifest, named with generateName so that the cluster
            assigns a unique name
    """
    metadata = involved_object.get("metadata", {})
    name = metadata.get("name")
    namespace = metadata.get("namespace")
    timestamp = event_timestamp()
    return {
        "apiVersion": "v1",
        "kind": "Event",
        "metadata": {
            "generateName": f"{name}.",
            "namespace": namespace,
        },
        "involvedObject": {
            "apiVersion": involved_object.get("apiVersion"),
            "kind": involved_object.get("kind"),
            "name": name,
            "namespace": namespace,
            "uid": metadata.get("uid"),
            "resourceVersion": metadata.get("resourceVersion"),
        },
        "type": event_type,
        "reason": reason,
        "message": message,
        "source": {"component": config.field_manager},
        "firstTimestamp": timestamp,
        "lastTimestamp": timestamp,
        "count": 1,
    }
