"""
Interfaces of the collaborators of the capability controllers: resolution of
provider account credentials and the remote management API of the platform
"""

# Standard
from dataclasses import dataclass
from typing import Optional
import abc

# Local
from ..context import ReconcileContext


@dataclass
class ProviderAccount:
    """The admin endpoint and credentials of a tenant of the platform"""

    admin_url: str
    token: str


class ProviderAccountResolver(abc.ABC):
    """Resolves the provider account a capability resource talks to"""

    @abc.abstractmethod
    def lookup(
        self,
        ctx: ReconcileContext,
        namespace: str,
        provider_account_ref: Optional[dict],
    ) -> ProviderAccount:
        """Resolve the provider account

        Args:
            ctx:  ReconcileContext
                The context of the current reconciliation
            namespace:  str
                The namespace of the resource holding the reference
            provider_account_ref:  Optional[dict]
                The providerAccountRef of the resource. None selects the
                default provider account of the namespace.

        Returns:
            provider_account:  ProviderAccount
                The resolved account. Raise InvalidSpecError or OrphanError
                when it cannot be resolved.
        """


class DeveloperUserRemote(abc.ABC):
    """Synchronizes a DeveloperUser with the management API of the platform"""

    @abc.abstractmethod
    def sync(
        self,
        ctx: ReconcileContext,
        user: dict,
        parent_account: dict,
        provider_account: ProviderAccount,
    ) -> dict:
        """Create or update the remote user

        Returns:
            remote_user:  dict
                The remote representation of the user. The "id" and "state"
                keys are reported in the status.
        """
