"""
Ownership gate for mutating actions on loaded resources.

Resource loading stays with the caller; this module only reads the owner
field of whatever the caller loaded and asks the engine for a decision.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..errors import AuthError, NotFoundError, PermissionError
from .engine import AuthorizationEngine
from .policy import Action, ResourceKind, enum_value

OWNER_FIELDS = ("created_by", "createdBy")

# A user record is owned by the user it describes
SELF_OWNED_KINDS = frozenset({ResourceKind.USER.value})

_DENIAL_MESSAGES: dict[str, str] = {
    Action.VIEW_REGISTRATIONS.value: (
        "Access denied. You can only view registrations for events you created."
    ),
}


def _field(resource: Any, name: str) -> Any:
    if isinstance(resource, Mapping):
        return resource.get(name)
    return getattr(resource, name, None)


def _id_of(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    nested = _field(value, "_id")
    if nested is None:
        nested = _field(value, "id")
    if nested is not None:
        return str(nested) or None
    if isinstance(value, Mapping):
        return None
    return str(value) or None


def owner_id_of(resource: Any, resource_kind: ResourceKind | str | None = None) -> str | None:
    """
    Owner id of a resource.

    The owner field may hold a plain id, a populated owner document
    ({"_id": ...} or {"id": ...}) or an object with an id attribute.
    Self-owned kinds (users) resolve to the resource's own id.
    """
    if resource is None:
        return None
    if enum_value(resource_kind) in SELF_OWNED_KINDS:
        return _id_of(resource)
    for name in OWNER_FIELDS:
        owner = _id_of(_field(resource, name))
        if owner is not None:
            return owner
    return None


@dataclass(frozen=True)
class OwnershipGrant:
    resource: Any
    is_owner: bool


def _not_found_message(resource_kind: Any) -> str:
    kind = enum_value(resource_kind) or "Resource"
    return f"{kind.capitalize()} not found"


def _denial_message(action: Any, resource_kind: Any) -> str:
    verb = enum_value(action)
    if verb in _DENIAL_MESSAGES:
        return _DENIAL_MESSAGES[verb]
    if enum_value(resource_kind) in SELF_OWNED_KINDS:
        return "Access denied. You can only modify your own profile."
    kind = (enum_value(resource_kind) or "resource").lower()
    return f"Access denied. You can only modify {kind}s you created."


def enforce_ownership(
    engine: AuthorizationEngine,
    principal: Any,
    resource: Any,
    action: Action | str,
    resource_kind: ResourceKind | str,
) -> OwnershipGrant:
    """
    Gate an action on a loaded resource.

    Checks run in a fixed order: missing resource, missing principal, then
    the ownership-aware engine decision. Admin is treated as owner.

    Raises:
        NotFoundError: No resource was loaded
        AuthError: No authenticated principal
        PermissionError: The engine denies the action
    """
    if resource is None:
        raise NotFoundError(_not_found_message(resource_kind))

    if principal is None:
        raise AuthError()

    owner_id = owner_id_of(resource, resource_kind)
    if not engine.authorize(principal, action, resource_kind, owner_id=owner_id):
        raise PermissionError(_denial_message(action, resource_kind))

    return OwnershipGrant(resource=resource, is_owner=engine.is_owner(principal, owner_id))
