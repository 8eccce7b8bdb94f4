"""
Request-level enforcement built on the authorization engine.

Resolving the principal and loading resources happens here; the decision
itself is always delegated to AuthorizationEngine.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth.engine import AuthorizationEngine, default_engine, principal_id, principal_role
from .auth.enforcement_matrix import rule_for
from .auth.ownership import OwnershipGrant, enforce_ownership, owner_id_of
from .auth.policy import Action, ResourceKind, enum_value
from .auth.principal import Principal, principal_from_claims
from .domain.ports.resources import OwnedResourceLookup, UserProfilePort
from .domain.ports.token import TokenVerifier
from .errors import AuthError, InternalError, PermissionError, ValidationError
from .security.token_inspection import ExpiredTokenError, InvalidTokenError, RevokedTokenError

logger = logging.getLogger("smartnav.authz")

bearer_scheme = HTTPBearer(auto_error=False)


def get_engine(request: Request) -> AuthorizationEngine:
    return getattr(request.app.state, "authz_engine", None) or default_engine


def get_token_verifier(request: Request) -> TokenVerifier:
    verifier = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        raise InternalError("Token verification is not configured")
    return verifier


def get_profile_port(request: Request) -> UserProfilePort | None:
    return getattr(request.app.state, "user_profiles", None)


def _log_deny(request: Request, principal: Any, action: Any, resource_kind: Any) -> None:
    logger.warning(
        "authz_denied principal=%s role=%s action=%s resource=%s method=%s path=%s",
        principal_id(principal) or "anonymous",
        principal_role(principal) or "none",
        enum_value(action),
        enum_value(resource_kind),
        request.method,
        request.url.path,
    )


async def _resolve_principal(
    token: str,
    verifier: TokenVerifier,
    profiles: UserProfilePort | None,
) -> Principal:
    claims = verifier.verify(token)
    subject = claims.get("uid") or claims.get("sub")
    profile = await profiles.get_profile(subject) if profiles is not None else None
    try:
        return principal_from_claims(claims, profile)
    except ValueError:
        raise InvalidTokenError() from None


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
    profiles: UserProfilePort | None = Depends(get_profile_port),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Access denied. No token provided.")

    try:
        return await _resolve_principal(credentials.credentials, verifier, profiles)
    except ExpiredTokenError:
        raise AuthError("Token expired.") from None
    except RevokedTokenError:
        raise AuthError("Token revoked.") from None
    except InvalidTokenError:
        raise AuthError("Invalid token.") from None


async def get_current_principal_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
    profiles: UserProfilePort | None = Depends(get_profile_port),
) -> Principal | None:
    """Anonymous when no usable token is sent; a bad token is not an error here."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    try:
        return await _resolve_principal(credentials.credentials, verifier, profiles)
    except (ExpiredTokenError, RevokedTokenError, InvalidTokenError) as exc:
        logger.debug("optional_auth_ignored reason=%s", type(exc).__name__)
        return None


def require_action(action: Action, resource_kind: ResourceKind) -> Callable:
    """
    Enforce a blanket (non-ownership) action.

    401 when no principal is authenticated, 403 when the engine denies.
    Returns the principal so handlers can depend on it directly.
    """
    async def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        engine: AuthorizationEngine = Depends(get_engine),
    ) -> Principal:
        if not engine.can_perform_action(principal, action, resource_kind):
            _log_deny(request, principal, action, resource_kind)
            raise PermissionError()
        return principal

    return dependency


def require_ownership(
    action: Action,
    resource_kind: ResourceKind,
    lookup: Callable[..., OwnedResourceLookup],
) -> Callable:
    """
    Enforce an action on the resource addressed by the resource_id path param.

    The resource is loaded before authentication is required so a missing
    resource is reported as 404 regardless of who asks.
    """
    async def dependency(
        resource_id: str,
        request: Request,
        principal: Principal | None = Depends(get_current_principal_optional),
        engine: AuthorizationEngine = Depends(get_engine),
        repository: OwnedResourceLookup = Depends(lookup),
    ) -> OwnershipGrant:
        resource = await repository.get(resource_id)
        try:
            return enforce_ownership(engine, principal, resource, action, resource_kind)
        except PermissionError:
            _log_deny(request, principal, action, resource_kind)
            raise

    return dependency


async def _json_fields(request: Request) -> Mapping[str, Any]:
    if not await request.body():
        return {}
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Request body must be a JSON object") from None
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return payload


def require_user_update(lookup: Callable[..., OwnedResourceLookup]) -> Callable:
    """
    Enforce a profile update against the fields in the request body.

    Self-edit passes the ownership gate; changing privileged fields such
    as role additionally requires the role-change permission. The body is
    read from the request cache, so handlers may still declare their own
    body model.
    """
    ownership = require_ownership(Action.EDIT, ResourceKind.USER, lookup)

    async def dependency(
        request: Request,
        grant: OwnershipGrant = Depends(ownership),
        principal: Principal | None = Depends(get_current_principal_optional),
        engine: AuthorizationEngine = Depends(get_engine),
    ) -> OwnershipGrant:
        updates = await _json_fields(request)
        target_id = owner_id_of(grant.resource, ResourceKind.USER)
        if not engine.can_update_user_fields(principal, target_id, updates):
            _log_deny(request, principal, Action.CHANGE_ROLE, ResourceKind.USER)
            raise PermissionError("Access denied. Only administrators can change user roles.")
        return grant

    return dependency


def require_enforced(
    method: str,
    path: str,
    lookup: Callable[..., OwnedResourceLookup] | None = None,
) -> Callable:
    rule = rule_for(method, path)
    if rule.ownership:
        if lookup is None:
            raise ValueError(f"{method} {path} is an ownership rule and needs a resource lookup")
        if rule.resource_kind is ResourceKind.USER and rule.action is Action.EDIT:
            return require_user_update(lookup)
        return require_ownership(rule.action, rule.resource_kind, lookup)
    return require_action(rule.action, rule.resource_kind)
