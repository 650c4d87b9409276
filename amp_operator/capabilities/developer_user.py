"""
Controller for the DeveloperUser capability resource
"""

# Standard
from typing import List

# First Party
import alog

# Local
from .. import constants
from ..context import ReconcileContext
from ..controller import Controller
from ..deploy_manager import DeployManagerBase
from ..exceptions import (
    FieldError,
    FieldPath,
    OrphanError,
    assert_cluster,
    assert_valid_spec,
    invalid_field,
    required_field,
)
from ..status import is_ready
from ..utils import nested_get
from .interfaces import DeveloperUserRemote, ProviderAccount, ProviderAccountResolver

log = alog.use_channel("DEVUS")

# Roles a developer user may have inside its account
DEVELOPER_USER_ROLES = ("admin", "member")

SPEC_PATH = FieldPath("spec")
PARENT_ACCOUNT_PATH = SPEC_PATH.child("developerAccountRef")


def validate_developer_user_spec(resource: dict) -> List[FieldError]:
    """Collect the field errors of a DeveloperUser spec

    Args:
        resource:  dict
            The DeveloperUser manifest

    Returns:
        field_errors:  List[FieldError]
            One entry per offending field. Empty when the spec is valid.
    """
    spec = resource.get("spec") or {}
    errors = []

    for key in ("username", "email"):
        if not spec.get(key):
            errors.append(required_field(SPEC_PATH.child(key)))

    email = spec.get("email")
    if email and "@" not in email:
        errors.append(
            invalid_field(SPEC_PATH.child("email"), email, "must be an email address")
        )

    if not nested_get(spec, "developerAccountRef.name"):
        errors.append(required_field(PARENT_ACCOUNT_PATH.child("name")))

    if not nested_get(spec, "passwordCredentialsRef.name"):
        errors.append(required_field(SPEC_PATH.child("passwordCredentialsRef", "name")))

    role = spec.get("role")
    if role is not None and role not in DEVELOPER_USER_ROLES:
        errors.append(
            invalid_field(
                SPEC_PATH.child("role"),
                role,
                f"supported values: {', '.join(DEVELOPER_USER_ROLES)}",
            )
        )

    return errors


class DeveloperUserController(Controller):
    """Reconciles a DeveloperUser against the management API of the provider
    account it belongs to. The parent DeveloperAccount must exist, belong to
    the same provider account, and be ready.
    """

    api_version = constants.CAPABILITIES_API_VERSION
    kind = constants.DEVELOPER_USER_KIND
    status_keys = (
        "observedGeneration",
        "providerAccountHost",
        "accountID",
        "developerUserID",
        "developerUserState",
    )

    def __init__(
        self,
        deploy_manager: DeployManagerBase,
        resolver: ProviderAccountResolver,
        remote: DeveloperUserRemote,
    ):
        super().__init__(deploy_manager)
        self.resolver = resolver
        self.remote = remote

    def reconcile_spec(
        self,
        ctx: ReconcileContext,
        resource: dict,
        child_status: dict,
    ) -> bool:
        child_status["observedGeneration"] = resource.get("metadata", {}).get(
            "generation"
        )
        assert_valid_spec(validate_developer_user_spec(resource))

        namespace = resource["metadata"]["namespace"]
        provider_account = self.resolver.lookup(
            ctx, namespace, resource["spec"].get("providerAccountRef")
        )
        child_status["providerAccountHost"] = provider_account.admin_url

        parent_account = self.find_parent_account(ctx, resource, provider_account)
        account_id = nested_get(parent_account, "status.accountID")
        if account_id is not None:
            child_status["accountID"] = account_id

        remote_user = self.remote.sync(ctx, resource, parent_account, provider_account)
        log.debug3("Remote user: %s", remote_user)
        child_status["developerUserID"] = remote_user.get("id")
        child_status["developerUserState"] = remote_user.get("state")
        return False

    def find_parent_account(
        self,
        ctx: ReconcileContext,
        resource: dict,
        provider_account: ProviderAccount,
    ) -> dict:
        """Fetch the DeveloperAccount the user belongs to

        Returns:
            parent_account:  dict
                The manifest of the parent account

        Raises:
            OrphanError if the parent is missing, belongs to another provider
            account, or is not ready yet
        """
        account_ref = resource["spec"]["developerAccountRef"]
        success, parent_account = ctx.get_object_current_state(
            kind=constants.DEVELOPER_ACCOUNT_KIND,
            name=account_ref["name"],
            api_version=constants.CAPABILITIES_API_VERSION,
        )
        assert_cluster(
            success, f"Failed to fetch parent account {account_ref['name']}"
        )
        if parent_account is None:
            self._orphan(account_ref, "parent account resource not found")

        parent_provider_account = self.resolver.lookup(
            ctx,
            resource["metadata"]["namespace"],
            (parent_account.get("spec") or {}).get("providerAccountRef"),
        )
        if parent_provider_account.admin_url != provider_account.admin_url:
            self._orphan(
                account_ref,
                "parent account resource does not belong to the same provider "
                "account",
            )

        if not is_ready(parent_account.get("status")):
            self._orphan(account_ref, "parent account resource not ready")

        return parent_account

    @staticmethod
    def _orphan(account_ref: dict, detail: str):
        raise OrphanError([invalid_field(PARENT_ACCOUNT_PATH, account_ref, detail)])
