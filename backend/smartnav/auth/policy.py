"""
Authorization policy contract - roles, permission keys and the permission table.

This module is the single source of truth for the authorization vocabulary of
Smart Navigator. The backend enforcement layer, the client-side route guards
and the exported policy document (consumed by the web frontend) are all built
from the values defined here.

The contract is closed:
- Roles are fixed (student < organizer < admin) and cannot be extended at runtime
- Permission keys are a closed enumeration of RESOURCE_ACTION[_OWN] strings
- The permission table is immutable once the module is imported

Admin is NOT listed in the permission table. Admin reaches every action through
the bypass applied by the engine, so there is exactly one mechanism granting it.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final, Mapping


POLICY_VERSION: Final[int] = 1


# ============================================================================
# ROLES
# ============================================================================

class Role(str, Enum):
    """Principal roles, ordered by ROLE_LEVELS."""
    STUDENT = "student"
    ORGANIZER = "organizer"
    ADMIN = "admin"


ROLE_LEVELS: Final[Mapping[str, int]] = MappingProxyType({
    Role.ADMIN.value: 3,
    Role.ORGANIZER.value: 2,
    Role.STUDENT.value: 1,
})

ALL_ROLES: Final[frozenset[str]] = frozenset(role.value for role in Role)

# The only role granted every action on every resource
BYPASS_ROLE: Final[str] = Role.ADMIN.value

# Role assigned on self-registration; promotion is an admin action
DEFAULT_ROLE: Final[str] = Role.STUDENT.value

_ROLE_DISPLAY_NAMES: Final[Mapping[str, str]] = MappingProxyType({
    Role.ADMIN.value: "Administrator",
    Role.ORGANIZER.value: "Event Organizer",
    Role.STUDENT.value: "Student",
})


# ============================================================================
# RESOURCES AND ACTIONS
# ============================================================================

class ResourceKind(str, Enum):
    EVENT = "EVENT"
    LOCATION = "LOCATION"
    USER = "USER"


class Action(str, Enum):
    VIEW = "VIEW"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"
    REGISTER = "REGISTER"
    VIEW_REGISTRATIONS = "VIEW_REGISTRATIONS"
    IMPORT = "IMPORT"
    VIEW_ALL = "VIEW_ALL"
    EDIT_ANY = "EDIT_ANY"
    DELETE_ANY = "DELETE_ANY"
    CHANGE_ROLE = "CHANGE_ROLE"


# Only these actions have an ownership-qualified (_OWN) variant
OWNERSHIP_QUALIFIED_ACTIONS: Final[frozenset[str]] = frozenset({
    Action.EDIT.value,
    Action.DELETE.value,
})

OWN_SUFFIX: Final[str] = "_OWN"


class PermissionKey(str, Enum):
    """Closed set of permission keys known to the table."""
    # Events
    EVENT_VIEW = "EVENT_VIEW"
    EVENT_CREATE = "EVENT_CREATE"
    EVENT_EDIT_OWN = "EVENT_EDIT_OWN"
    EVENT_EDIT_ANY = "EVENT_EDIT_ANY"
    EVENT_DELETE_OWN = "EVENT_DELETE_OWN"
    EVENT_DELETE_ANY = "EVENT_DELETE_ANY"
    EVENT_REGISTER = "EVENT_REGISTER"
    EVENT_VIEW_REGISTRATIONS = "EVENT_VIEW_REGISTRATIONS"
    # Locations
    LOCATION_VIEW = "LOCATION_VIEW"
    LOCATION_CREATE = "LOCATION_CREATE"
    LOCATION_EDIT = "LOCATION_EDIT"
    LOCATION_DELETE = "LOCATION_DELETE"
    LOCATION_IMPORT = "LOCATION_IMPORT"
    # Users
    USER_VIEW_ALL = "USER_VIEW_ALL"
    USER_EDIT_OWN = "USER_EDIT_OWN"
    USER_EDIT_ANY = "USER_EDIT_ANY"
    USER_DELETE_ANY = "USER_DELETE_ANY"
    USER_CHANGE_ROLE = "USER_CHANGE_ROLE"


ALL_PERMISSION_KEYS: Final[frozenset[str]] = frozenset(key.value for key in PermissionKey)

# Keys that are only granted when the principal owns the target resource,
# even though their name carries no _OWN suffix
OWNER_SCOPED_PERMISSIONS: Final[frozenset[str]] = frozenset({
    PermissionKey.EVENT_VIEW_REGISTRATIONS.value,
})


# ============================================================================
# PERMISSION TABLE
# ============================================================================

_STUDENT = Role.STUDENT.value
_ORGANIZER = Role.ORGANIZER.value

_ADMIN_ONLY: Final[frozenset[str]] = frozenset()

PERMISSION_TABLE: Final[Mapping[str, frozenset[str]]] = MappingProxyType({
    # Every authenticated user can browse events
    PermissionKey.EVENT_VIEW.value: frozenset({_STUDENT, _ORGANIZER}),
    PermissionKey.EVENT_CREATE.value: frozenset({_ORGANIZER}),
    # Organizers manage the events they created
    PermissionKey.EVENT_EDIT_OWN.value: frozenset({_ORGANIZER}),
    PermissionKey.EVENT_EDIT_ANY.value: _ADMIN_ONLY,
    PermissionKey.EVENT_DELETE_OWN.value: frozenset({_ORGANIZER}),
    PermissionKey.EVENT_DELETE_ANY.value: _ADMIN_ONLY,
    PermissionKey.EVENT_REGISTER.value: frozenset({_STUDENT, _ORGANIZER}),
    # Owner-scoped, see OWNER_SCOPED_PERMISSIONS
    PermissionKey.EVENT_VIEW_REGISTRATIONS.value: frozenset({_ORGANIZER}),

    PermissionKey.LOCATION_VIEW.value: frozenset({_STUDENT, _ORGANIZER}),
    PermissionKey.LOCATION_CREATE.value: _ADMIN_ONLY,
    PermissionKey.LOCATION_EDIT.value: _ADMIN_ONLY,
    PermissionKey.LOCATION_DELETE.value: _ADMIN_ONLY,
    PermissionKey.LOCATION_IMPORT.value: _ADMIN_ONLY,

    PermissionKey.USER_VIEW_ALL.value: _ADMIN_ONLY,
    # Self-profile edits
    PermissionKey.USER_EDIT_OWN.value: frozenset({_STUDENT, _ORGANIZER}),
    PermissionKey.USER_EDIT_ANY.value: _ADMIN_ONLY,
    PermissionKey.USER_DELETE_ANY.value: _ADMIN_ONLY,
    PermissionKey.USER_CHANGE_ROLE.value: _ADMIN_ONLY,
})


# ============================================================================
# VOCABULARY HELPERS
# ============================================================================

def enum_value(value: Any) -> str | None:
    """Return the plain string behind an enum member or string, else None."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str) and value:
        return value
    return None


def permission_key(resource_kind: Any, action: Any, *, own: bool = False) -> str | None:
    """
    Compose RESOURCE_ACTION (or RESOURCE_ACTION_OWN) from its parts.

    The composed key is not checked against the table here; unknown pairs
    produce a key that simply has no entry.
    """
    resource = enum_value(resource_kind)
    verb = enum_value(action)
    if resource is None or verb is None:
        return None
    key = f"{resource}_{verb}"
    return f"{key}{OWN_SUFFIX}" if own else key


def parse_role(value: Any) -> Role | None:
    raw = enum_value(value)
    if raw is None:
        return None
    try:
        return Role(raw)
    except ValueError:
        return None


def role_level(role: Any) -> int:
    raw = enum_value(role)
    if raw is None:
        return 0
    return ROLE_LEVELS.get(raw, 0)


def role_display_name(role: Any) -> str:
    raw = enum_value(role)
    if raw is None:
        return "User"
    return _ROLE_DISPLAY_NAMES.get(raw, "User")


# ============================================================================
# POLICY ARTIFACT
# ============================================================================

def _freeze_table(table: Mapping[str, Any]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({key: frozenset(roles) for key, roles in table.items()})


def _string_list(value: Any, name: str) -> list[str]:
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError(f"{name} must be a list of strings; got {value!r}")
    if not all(isinstance(item, str) for item in value):
        raise ValueError(f"{name} must contain only strings; got {value!r}")
    return list(value)


def _table_errors(table: Mapping[str, Any]) -> list[str]:
    errors = []
    for key, roles in table.items():
        if key not in ALL_PERMISSION_KEYS:
            errors.append(f"Unknown permission key: {key}")
            continue
        for role in roles:
            if role not in ALL_ROLES:
                errors.append(f"Permission '{key}' grants unknown role '{role}'")
            elif role == BYPASS_ROLE:
                errors.append(
                    f"Permission '{key}' lists bypass role '{role}'; "
                    "admin access comes from the bypass only"
                )
    missing = ALL_PERMISSION_KEYS - set(table)
    if missing:
        errors.append(f"Permission keys missing from table: {sorted(missing)}")
    return errors


@dataclass(frozen=True)
class Policy:
    """
    Immutable, versioned authorization policy.

    Constructed once at process start and injected into the engine. The same
    document is served to the frontend so both sides share one vocabulary.
    """
    permissions: Mapping[str, frozenset[str]] = field(default_factory=lambda: PERMISSION_TABLE)
    role_levels: Mapping[str, int] = field(default_factory=lambda: ROLE_LEVELS)
    bypass_role: str = BYPASS_ROLE
    ownership_qualified_actions: frozenset[str] = OWNERSHIP_QUALIFIED_ACTIONS
    owner_scoped: frozenset[str] = OWNER_SCOPED_PERMISSIONS
    version: int = POLICY_VERSION

    @classmethod
    def default(cls) -> "Policy":
        return cls()

    def to_document(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "roles": dict(sorted(self.role_levels.items(), key=lambda item: item[1])),
            "bypass_role": self.bypass_role,
            "ownership_qualified_actions": sorted(self.ownership_qualified_actions),
            "owner_scoped": sorted(self.owner_scoped),
            "permissions": {
                key: sorted(roles) for key, roles in sorted(self.permissions.items())
            },
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Policy":
        """
        Build a policy from an exported document.

        The document may only restate the closed contract: it can narrow or
        widen which non-admin roles hold a key, but it cannot introduce roles,
        keys, levels or a different bypass role.

        Raises:
            ValueError: If the document does not satisfy the contract
        """
        if not isinstance(document, Mapping):
            raise ValueError("Policy document must be a JSON object")

        version = document.get("version")
        if version != POLICY_VERSION:
            raise ValueError(
                f"Unsupported policy version {version!r}; expected {POLICY_VERSION}"
            )

        roles = document.get("roles")
        if not isinstance(roles, Mapping) or dict(roles) != dict(ROLE_LEVELS):
            raise ValueError(
                f"Policy roles must be exactly {dict(ROLE_LEVELS)}; got {roles!r}"
            )

        bypass_role = document.get("bypass_role")
        if bypass_role != BYPASS_ROLE:
            raise ValueError(f"Policy bypass_role must be '{BYPASS_ROLE}'; got {bypass_role!r}")

        qualified = _string_list(
            document.get("ownership_qualified_actions", sorted(OWNERSHIP_QUALIFIED_ACTIONS)),
            "Policy ownership_qualified_actions",
        )
        if set(qualified) != OWNERSHIP_QUALIFIED_ACTIONS:
            raise ValueError(
                "Policy ownership_qualified_actions must be "
                f"{sorted(OWNERSHIP_QUALIFIED_ACTIONS)}; got {qualified!r}"
            )

        owner_scoped = _string_list(
            document.get("owner_scoped", sorted(OWNER_SCOPED_PERMISSIONS)),
            "Policy owner_scoped",
        )
        unknown_scoped = set(owner_scoped) - ALL_PERMISSION_KEYS
        if unknown_scoped:
            raise ValueError(f"Unknown owner_scoped permission keys: {sorted(unknown_scoped)}")

        permissions = document.get("permissions")
        if not isinstance(permissions, Mapping):
            raise ValueError("Policy permissions must be a JSON object")
        for key, granted in permissions.items():
            if isinstance(granted, str) or not isinstance(granted, (list, tuple, set, frozenset)):
                raise ValueError(f"Permission '{key}' must map to a list of roles")
            _string_list(granted, f"Permission '{key}' roles")

        errors = _table_errors(permissions)
        if errors:
            raise ValueError(
                "Policy document validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )

        return cls(
            permissions=_freeze_table(permissions),
            owner_scoped=frozenset(owner_scoped),
        )

    @classmethod
    def load(cls, path: str | Path) -> "Policy":
        with open(path, encoding="utf-8") as handle:
            try:
                document = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Policy file {path} is malformed: {exc}") from exc
        return cls.from_document(document)


# Validate the built-in table at module load time (fail-fast)
def _validate_contract() -> None:
    errors = _table_errors(PERMISSION_TABLE)

    for key in PERMISSION_TABLE:
        if key.endswith(OWN_SUFFIX):
            verb = key[: -len(OWN_SUFFIX)].split("_", 1)[1]
            if verb not in OWNERSHIP_QUALIFIED_ACTIONS:
                errors.append(f"Ownership key '{key}' uses a non-qualified action '{verb}'")

    if set(ROLE_LEVELS) != ALL_ROLES:
        errors.append("Every role must have exactly one hierarchy level")
    if ROLE_LEVELS[BYPASS_ROLE] != max(ROLE_LEVELS.values()):
        errors.append("Bypass role must sit at the top of the hierarchy")

    if errors:
        raise RuntimeError(
            "Authorization contract validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


_validate_contract()

DEFAULT_POLICY: Final[Policy] = Policy.default()
