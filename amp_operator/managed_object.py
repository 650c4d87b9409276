"""
Helper object to represent a kubernetes object that is managed by the operator
"""
# Standard
from typing import Optional


class ManagedObject:
    """Basic struct to represent a managed kubernetes object. The identity of
    the object is its (kind, namespace, name) triple; the definition is only
    carried along.
    """

    def __init__(self, definition: dict):
        self.kind = definition.get("kind")
        self.metadata = definition.get("metadata", {})
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace")
        self.resource_version = self.metadata.get("resourceVersion")
        self.api_version = definition.get("apiVersion")
        self.definition = definition

        assert self.kind is not None, "No kind found"
        assert self.name is not None, "No name found"
        assert self.api_version is not None, "No apiVersion found"

    @property
    def identity(self) -> tuple:
        return (self.kind, self.namespace, self.name)

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        if self.namespace:
            return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"
        return f"{self.api_version}/{self.kind}/{self.name}"

    def __repr__(self):
        return str(self)

    def __hash__(self):
        """Hash explicitly excludes the definition so that the object's
        identifier in a map is based only on where it lives in the cluster
        """
        return hash(self.identity)

    def __eq__(self, other):
        return isinstance(other, ManagedObject) and self.identity == other.identity


def object_info(definition: dict, namespace: Optional[str] = None) -> str:
    """Short human readable description of a manifest for log messages"""
    metadata = definition.get("metadata", {})
    namespace = metadata.get("namespace", namespace)
    return f"{definition.get('kind')}/{namespace}/{metadata.get('name')}"
