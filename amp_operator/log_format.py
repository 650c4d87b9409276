"""
Json log format that tags every line with the custom resource and the
platform sub-component being reconciled
"""

# Standard
import logging

# First Party
from alog import AlogJsonFormatter

# Attribute set through log extra by the sub-component reconcilers
COMPONENT_ATTR = "component"


class AmpJsonFormatter(AlogJsonFormatter):
    """AlogJsonFormatter adding the reconciled resource identity, the
    reconciliationId, and the sub-component (e.g. "system-redis") that emitted
    the line. Fields a record does not carry are omitted.
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "namespace",
        "resourceName",
        "reconciliationId",
        COMPONENT_ATTR,
    ]

    def __init__(self, manifest=None, reconciliation_id=None):
        super().__init__()
        self.manifest = manifest or {}
        self.reconciliation_id = reconciliation_id

    def format(self, record: logging.LogRecord) -> str:
        if self.reconciliation_id:
            record.reconciliationId = self.reconciliation_id

        manifest = getattr(record, "resource", None) or self.manifest
        if manifest:
            metadata = manifest.get("metadata", {})
            record.kind = manifest.get("kind")
            record.apiVersion = manifest.get("apiVersion")
            record.namespace = metadata.get("namespace")
            record.resourceName = metadata.get("name")

        return super().format(record)
