"""
Authorization engine - the single decision point for "may P do A on R".

Every function here is pure: no I/O, no logging, no mutation. Missing or
unrecognized input is a normal "not permitted" outcome and never raises.
Callers translate a False result into 401/403/404 or a client redirect.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from .policy import (
    DEFAULT_POLICY,
    Action,
    Policy,
    ResourceKind,
    enum_value,
    permission_key,
)

# Profile fields whose change is a privilege change, not a profile edit
PRIVILEGED_USER_FIELDS = frozenset({"role"})


def _principal_attr(principal: Any, name: str) -> Any:
    if principal is None:
        return None
    if isinstance(principal, Mapping):
        return principal.get(name)
    return getattr(principal, name, None)


def principal_role(principal: Any) -> str | None:
    return enum_value(_principal_attr(principal, "role"))


def principal_id(principal: Any) -> str | None:
    value = _principal_attr(principal, "id")
    if value is None:
        value = _principal_attr(principal, "_id")
    if value is None:
        return None
    value = str(value)
    return value or None


class AuthorizationEngine:
    """Role/ownership decisions over an immutable Policy."""

    def __init__(self, policy: Policy | None = None):
        self.policy = policy or DEFAULT_POLICY

    def has_permission(self, role: Any, key: Any) -> bool:
        """Table lookup only. No admin bypass is applied here."""
        role_value = enum_value(role)
        key_value = enum_value(key)
        if role_value is None or key_value is None:
            return False

        allowed_roles = self.policy.permissions.get(key_value)
        if allowed_roles is None:
            return False

        return role_value in allowed_roles

    def is_bypass(self, principal: Any) -> bool:
        return principal_role(principal) == self.policy.bypass_role

    def resolve_key(self, action: Any, resource_kind: Any, *, is_owner: bool = False) -> str | None:
        """Permission key consulted for (action, resource_kind, ownership)."""
        own = bool(is_owner) and enum_value(action) in self.policy.ownership_qualified_actions
        return permission_key(resource_kind, action, own=own)

    def can_perform_action(
        self,
        principal: Any,
        action: Action | str,
        resource_kind: ResourceKind | str,
        *,
        is_owner: bool = False,
    ) -> bool:
        """
        Check if a principal can perform an action on a resource kind.

        Admin is granted everything, including pairs with no table entry.
        For EDIT and DELETE an owner is checked against the _OWN variant of
        the key; ownership never changes the key for other actions.
        """
        role = principal_role(principal)
        if role is None:
            return False

        if role == self.policy.bypass_role:
            return True

        key = self.resolve_key(action, resource_kind, is_owner=is_owner)
        return self.has_permission(role, key)

    def get_role_permissions(self, role: Any) -> frozenset[str]:
        role_value = enum_value(role)
        if role_value is None:
            return frozenset()
        return frozenset(
            key for key, allowed_roles in self.policy.permissions.items()
            if role_value in allowed_roles
        )

    def role_level(self, role: Any) -> int:
        role_value = enum_value(role)
        if role_value is None:
            return 0
        return self.policy.role_levels.get(role_value, 0)

    def is_role_higher_or_equal(self, role1: Any, role2: Any) -> bool:
        """Rank comparison for display logic; not an authorization decision."""
        return self.role_level(role1) >= self.role_level(role2)

    def is_owner(self, principal: Any, owner_id: Any) -> bool:
        """
        The one place ownership is computed.

        Admin counts as owner of everything. Otherwise the principal owns the
        resource when both ids are present and equal as strings.
        """
        if principal_role(principal) is None:
            return False
        if self.is_bypass(principal):
            return True
        actor_id = principal_id(principal)
        if actor_id is None or owner_id is None:
            return False
        return actor_id == str(owner_id)

    def authorize(
        self,
        principal: Any,
        action: Action | str,
        resource_kind: ResourceKind | str,
        *,
        owner_id: Any = None,
    ) -> bool:
        """
        Ownership-aware decision used by every enforcement point.

        Derives the ownership fact from owner_id, applies can_perform_action,
        then denies owner-scoped keys to non-owners.
        """
        if principal_role(principal) is None:
            return False
        if self.is_bypass(principal):
            return True

        owner = self.is_owner(principal, owner_id)
        if not self.can_perform_action(principal, action, resource_kind, is_owner=owner):
            return False

        key = self.resolve_key(action, resource_kind, is_owner=owner)
        if key in self.policy.owner_scoped and not owner:
            return False
        return True

    def can_view_registrations(self, principal: Any, event_owner_id: Any) -> bool:
        return self.authorize(
            principal,
            Action.VIEW_REGISTRATIONS,
            ResourceKind.EVENT,
            owner_id=event_owner_id,
        )

    def can_modify_user(self, principal: Any, target_user_id: Any) -> bool:
        """Admin may modify anyone; everyone else only their own profile."""
        return self.authorize(
            principal,
            Action.EDIT,
            ResourceKind.USER,
            owner_id=target_user_id,
        )

    def can_update_user_fields(
        self,
        principal: Any,
        target_user_id: Any,
        fields: Iterable[str],
    ) -> bool:
        if not self.can_modify_user(principal, target_user_id):
            return False
        if PRIVILEGED_USER_FIELDS.intersection(fields):
            return self.can_perform_action(principal, Action.CHANGE_ROLE, ResourceKind.USER)
        return True


default_engine = AuthorizationEngine()


def has_permission(role: Any, key: Any) -> bool:
    return default_engine.has_permission(role, key)


def can_perform_action(
    principal: Any,
    action: Action | str,
    resource_kind: ResourceKind | str,
    *,
    is_owner: bool = False,
) -> bool:
    return default_engine.can_perform_action(
        principal, action, resource_kind, is_owner=is_owner
    )


def get_role_permissions(role: Any) -> frozenset[str]:
    return default_engine.get_role_permissions(role)


def is_role_higher_or_equal(role1: Any, role2: Any) -> bool:
    return default_engine.is_role_higher_or_equal(role1, role2)


def authorize(
    principal: Any,
    action: Action | str,
    resource_kind: ResourceKind | str,
    *,
    owner_id: Any = None,
) -> bool:
    return default_engine.authorize(principal, action, resource_kind, owner_id=owner_id)


def can_view_registrations(principal: Any, event_owner_id: Any) -> bool:
    return default_engine.can_view_registrations(principal, event_owner_id)
