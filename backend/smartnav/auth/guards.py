"""
Client-side route guard decisions.

These mirror the frontend's protected routes so page gating uses the same
engine as the API. They are a UX convenience only: the API re-checks every
request through smartnav.dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .engine import AuthorizationEngine, default_engine, principal_role
from .policy import Action, ResourceKind

LOGIN_PATH = "/login"
HOME_PATH = "/"


class GuardOutcome(str, Enum):
    RENDER = "render"
    LOADING = "loading"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    location: str | None = None
    return_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is GuardOutcome.RENDER


RENDER = GuardDecision(GuardOutcome.RENDER)
LOADING = GuardDecision(GuardOutcome.LOADING)


@dataclass(frozen=True)
class RouteGuard:
    """
    requirement is an (action, resource_kind) pair checked with the engine;
    None only requires an authenticated principal.
    """
    requirement: tuple[Action, ResourceKind] | None = None
    fallback: str = HOME_PATH

    def evaluate(
        self,
        principal: Any,
        *,
        is_loading: bool = False,
        has_checked_once: bool = True,
        current_path: str | None = None,
        engine: AuthorizationEngine | None = None,
    ) -> GuardDecision:
        # Never decide before the first auth check settles
        if is_loading or not has_checked_once:
            return LOADING

        if principal is None:
            return GuardDecision(GuardOutcome.REDIRECT, LOGIN_PATH, return_to=current_path)

        if self.requirement is None:
            return RENDER

        action, resource_kind = self.requirement
        engine = engine or default_engine
        if principal_role(principal) is None or not engine.can_perform_action(
            principal, action, resource_kind
        ):
            return GuardDecision(GuardOutcome.REDIRECT, self.fallback)

        return RENDER


PRIVATE_ROUTE = RouteGuard()
ORGANIZER_ROUTE = RouteGuard((Action.CREATE, ResourceKind.EVENT))
ADMIN_ROUTE = RouteGuard((Action.VIEW_ALL, ResourceKind.USER))
