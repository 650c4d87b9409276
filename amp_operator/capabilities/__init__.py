"""
Controllers of the capability resources managed through the platform API
"""

# Local
from .developer_user import DeveloperUserController, validate_developer_user_spec
from .interfaces import DeveloperUserRemote, ProviderAccount, ProviderAccountResolver
