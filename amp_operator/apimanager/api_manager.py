"""
Read-only view of an APIManager custom resource
"""

# Standard
from enum import Enum
from typing import Optional, Union

# First Party
import aconfig

# Local
from ..utils import nested_get


class ExternalComponent(Enum):
    """Selectors for the dependencies that may be managed outside of the
    operator. The value is the path under spec.externalComponents.
    """

    BACKEND_REDIS = "backend.redis"
    SYSTEM_REDIS = "system.redis"
    SYSTEM_DATABASE = "system.database"
    ZYNC_DATABASE = "zync.database"


class APIManager:
    """Wrapper around the APIManager manifest exposing the questions the
    reconcilers ask of it
    """

    def __init__(self, manifest: Union[dict, aconfig.Config]):
        self.manifest = manifest
        metadata = manifest.get("metadata", {})
        self.name = metadata.get("name")
        self.namespace = metadata.get("namespace")
        self.spec = manifest.get("spec") or {}

    def is_external(self, component: ExternalComponent) -> bool:
        """Whether the given dependency is provided outside of the operator"""
        return bool(
            nested_get(self.spec, f"externalComponents.{component.value}", False)
        )

    def is_system_postgresql_enabled(self) -> bool:
        return (
            not self.is_external(ExternalComponent.SYSTEM_DATABASE)
            and nested_get(self.spec, "system.database.postgresql") is not None
        )

    def is_system_mysql_enabled(self) -> bool:
        """MySQL is the default system database when none is selected"""
        return not self.is_external(
            ExternalComponent.SYSTEM_DATABASE
        ) and not self.is_system_postgresql_enabled()

    def is_pdb_enabled(self) -> bool:
        return bool(nested_get(self.spec, "podDisruptionBudget.enabled", False))

    def is_monitoring_enabled(self) -> bool:
        return bool(nested_get(self.spec, "monitoring.enabled", False))

    def s3_configuration_secret_name(self) -> Optional[str]:
        """The name of the secret holding the S3 configuration or None when
        S3 file storage is not configured. An S3 section without a secret
        name yields an empty string.
        """
        s3_spec = nested_get(self.spec, "system.fileStorage.simpleStorageService")
        if s3_spec is None:
            return None
        return nested_get(s3_spec, "configurationSecretRef.name") or ""

    def uses_deprecated_s3(self) -> bool:
        return (
            nested_get(self.spec, "system.fileStorage.amazonSimpleStorageService")
            is not None
        )
