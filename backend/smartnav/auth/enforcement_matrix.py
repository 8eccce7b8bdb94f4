"""Declarative mapping of protected endpoints to the action they require.

Each key is a (METHOD, PATH) tuple, and the value is the (action, resource kind)
pair checked by the engine. Ownership rules are evaluated against the loaded
resource and resolve to the _OWN key when the caller owns it.

Every rule is checked at import against the permission table so a misspelled
action or resource fails loudly instead of silently denying everyone.
"""
from __future__ import annotations

from dataclasses import dataclass

from .policy import (
    ALL_PERMISSION_KEYS,
    OWNERSHIP_QUALIFIED_ACTIONS,
    Action,
    ResourceKind,
    permission_key,
)


@dataclass(frozen=True)
class EnforcementRule:
    action: Action
    resource_kind: ResourceKind
    ownership: bool = False


ENFORCEMENT_MATRIX: dict[tuple[str, str], EnforcementRule] = {
    ("GET", "/events"): EnforcementRule(Action.VIEW, ResourceKind.EVENT),
    ("POST", "/events"): EnforcementRule(Action.CREATE, ResourceKind.EVENT),
    ("PUT", "/events/{resource_id}"): EnforcementRule(Action.EDIT, ResourceKind.EVENT, ownership=True),
    ("DELETE", "/events/{resource_id}"): EnforcementRule(Action.DELETE, ResourceKind.EVENT, ownership=True),
    ("POST", "/events/{resource_id}/register"): EnforcementRule(Action.REGISTER, ResourceKind.EVENT),
    ("GET", "/events/{resource_id}/registrations"): EnforcementRule(
        Action.VIEW_REGISTRATIONS, ResourceKind.EVENT, ownership=True
    ),
    # Location management is admin-only
    ("POST", "/locations"): EnforcementRule(Action.CREATE, ResourceKind.LOCATION),
    ("PUT", "/locations/{resource_id}"): EnforcementRule(Action.EDIT, ResourceKind.LOCATION),
    ("DELETE", "/locations/{resource_id}"): EnforcementRule(Action.DELETE, ResourceKind.LOCATION),
    ("POST", "/locations/import"): EnforcementRule(Action.IMPORT, ResourceKind.LOCATION),
    ("GET", "/users"): EnforcementRule(Action.VIEW_ALL, ResourceKind.USER),
    ("PUT", "/users/{resource_id}"): EnforcementRule(Action.EDIT, ResourceKind.USER, ownership=True),
    ("DELETE", "/users/{resource_id}"): EnforcementRule(Action.DELETE_ANY, ResourceKind.USER),
    ("PUT", "/users/{resource_id}/role"): EnforcementRule(Action.CHANGE_ROLE, ResourceKind.USER),
}


def rule_for(method: str, path: str) -> EnforcementRule:
    return ENFORCEMENT_MATRIX[(method.upper(), path)]


def _rule_keys(rule: EnforcementRule) -> set[str]:
    if rule.ownership and rule.action.value in OWNERSHIP_QUALIFIED_ACTIONS:
        return {permission_key(rule.resource_kind, rule.action, own=True)}
    return {permission_key(rule.resource_kind, rule.action)}


def _validate_matrix() -> None:
    errors = []
    for (method, path), rule in ENFORCEMENT_MATRIX.items():
        unknown = _rule_keys(rule) - ALL_PERMISSION_KEYS
        if unknown:
            errors.append(f"{method} {path} requires unknown permission {sorted(unknown)}")
    if errors:
        raise RuntimeError(
            "Enforcement matrix validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


_validate_matrix()
