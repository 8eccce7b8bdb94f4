from .engine import (
    AuthorizationEngine,
    authorize,
    can_perform_action,
    can_view_registrations,
    default_engine,
    get_role_permissions,
    has_permission,
    is_role_higher_or_equal,
)
from .policy import (
    DEFAULT_POLICY,
    Action,
    PermissionKey,
    Policy,
    ResourceKind,
    Role,
)
from .principal import Principal, principal_from_claims

__all__ = [
    "Action",
    "AuthorizationEngine",
    "DEFAULT_POLICY",
    "PermissionKey",
    "Policy",
    "Principal",
    "ResourceKind",
    "Role",
    "authorize",
    "can_perform_action",
    "can_view_registrations",
    "default_engine",
    "get_role_permissions",
    "has_permission",
    "is_role_higher_or_equal",
    "principal_from_claims",
]
