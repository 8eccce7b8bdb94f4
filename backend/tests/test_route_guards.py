from smartnav.auth.guards import (
    ADMIN_ROUTE,
    ORGANIZER_ROUTE,
    PRIVATE_ROUTE,
    GuardOutcome,
    RouteGuard,
)
from smartnav.auth.engine import AuthorizationEngine
from smartnav.auth.policy import Action, Policy, ResourceKind
from smartnav.auth.principal import Principal

STUDENT = Principal(id="s1", role="student")
ORGANIZER = Principal(id="o1", role="organizer")
ADMIN = Principal(id="a1", role="admin")


def test_waits_while_loading() -> None:
    decision = ADMIN_ROUTE.evaluate(ADMIN, is_loading=True)
    assert decision.outcome is GuardOutcome.LOADING
    assert not decision.allowed


def test_waits_until_first_check() -> None:
    decision = PRIVATE_ROUTE.evaluate(None, has_checked_once=False)
    assert decision.outcome is GuardOutcome.LOADING


def test_unauthenticated_redirects_to_login_with_return_path() -> None:
    decision = PRIVATE_ROUTE.evaluate(None, current_path="/events/e1")
    assert decision.outcome is GuardOutcome.REDIRECT
    assert decision.location == "/login"
    assert decision.return_to == "/events/e1"


def test_private_route_renders_for_any_principal() -> None:
    assert PRIVATE_ROUTE.evaluate(STUDENT).allowed


def test_organizer_route() -> None:
    assert ORGANIZER_ROUTE.evaluate(ORGANIZER).allowed
    assert ORGANIZER_ROUTE.evaluate(ADMIN).allowed

    denied = ORGANIZER_ROUTE.evaluate(STUDENT)
    assert denied.outcome is GuardOutcome.REDIRECT
    assert denied.location == "/"


def test_admin_route() -> None:
    assert ADMIN_ROUTE.evaluate(ADMIN).allowed
    assert ADMIN_ROUTE.evaluate(ORGANIZER).location == "/"
    assert ADMIN_ROUTE.evaluate(STUDENT).location == "/"


def test_roleless_principal_redirected_to_fallback() -> None:
    guard = RouteGuard((Action.VIEW, ResourceKind.EVENT), fallback="/dashboard")
    decision = guard.evaluate(Principal(id="x1"))
    assert decision.outcome is GuardOutcome.REDIRECT
    assert decision.location == "/dashboard"


def test_guard_uses_injected_engine() -> None:
    document = Policy.default().to_document()
    document["permissions"]["EVENT_CREATE"] = []
    locked_down = AuthorizationEngine(Policy.from_document(document))

    assert ORGANIZER_ROUTE.evaluate(ORGANIZER).allowed
    assert not ORGANIZER_ROUTE.evaluate(ORGANIZER, engine=locked_down).allowed
