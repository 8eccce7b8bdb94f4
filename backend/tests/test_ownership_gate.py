from types import SimpleNamespace

import pytest

from smartnav.auth.engine import AuthorizationEngine
from smartnav.auth.ownership import enforce_ownership, owner_id_of
from smartnav.auth.policy import Action, ResourceKind
from smartnav.auth.principal import Principal
from smartnav.errors import AuthError, NotFoundError, PermissionError

ENGINE = AuthorizationEngine()
ORGANIZER = Principal(id="u1", role="organizer")
OTHER_ORGANIZER = Principal(id="u2", role="organizer")
ADMIN = Principal(id="a1", role="admin")
STUDENT = Principal(id="u1", role="student")


def make_event(owner: object = "u1") -> dict:
    return {"id": "e1", "title": "Orientation", "createdBy": owner}


class TestOwnerIdOf:

    def test_plain_string_owner(self):
        assert owner_id_of({"createdBy": "u1"}) == "u1"

    def test_snake_case_owner_field(self):
        assert owner_id_of({"created_by": "u1"}) == "u1"

    def test_populated_owner_document(self):
        assert owner_id_of({"createdBy": {"_id": "u1", "name": "Ana"}}) == "u1"
        assert owner_id_of({"createdBy": {"id": "u1"}}) == "u1"

    def test_object_resource(self):
        resource = SimpleNamespace(created_by=SimpleNamespace(id=7))
        assert owner_id_of(resource) == "7"

    def test_non_string_id_value(self):
        assert owner_id_of(SimpleNamespace(created_by=42)) == "42"

    def test_user_record_is_owned_by_itself(self):
        assert owner_id_of({"id": "u1", "role": "student"}, ResourceKind.USER) == "u1"
        assert owner_id_of({"_id": "u1"}, "USER") == "u1"
        assert owner_id_of({"id": "u1", "createdBy": "a1"}, ResourceKind.USER) == "u1"

    def test_missing_owner(self):
        assert owner_id_of({"title": "x"}) is None
        assert owner_id_of({"createdBy": ""}) is None
        assert owner_id_of({"createdBy": {"name": "Ana"}}) is None
        assert owner_id_of(None) is None


class TestEnforceOwnership:

    def test_not_found_checked_first(self):
        with pytest.raises(NotFoundError) as exc:
            enforce_ownership(ENGINE, None, None, Action.EDIT, ResourceKind.EVENT)
        assert exc.value.status_code == 404
        assert exc.value.message == "Event not found"

    def test_unauthenticated_after_resource_loaded(self):
        with pytest.raises(AuthError) as exc:
            enforce_ownership(ENGINE, None, make_event(), Action.EDIT, ResourceKind.EVENT)
        assert exc.value.status_code == 401

    def test_owner_granted(self):
        event = make_event("u1")
        grant = enforce_ownership(ENGINE, ORGANIZER, event, Action.EDIT, ResourceKind.EVENT)
        assert grant.resource is event
        assert grant.is_owner is True

    def test_non_owner_forbidden(self):
        with pytest.raises(PermissionError) as exc:
            enforce_ownership(ENGINE, OTHER_ORGANIZER, make_event("u1"), Action.DELETE, ResourceKind.EVENT)
        assert exc.value.status_code == 403
        assert exc.value.message == "Access denied. You can only modify events you created."

    def test_admin_treated_as_owner(self):
        grant = enforce_ownership(ENGINE, ADMIN, make_event("u1"), Action.DELETE, ResourceKind.EVENT)
        assert grant.is_owner is True

    def test_owner_without_permission_forbidden(self):
        """Ownership alone does not grant an action the role lacks."""
        with pytest.raises(PermissionError):
            enforce_ownership(ENGINE, STUDENT, make_event("u1"), Action.EDIT, ResourceKind.EVENT)

    def test_registrations_owner_only(self):
        grant = enforce_ownership(
            ENGINE, ORGANIZER, make_event("u1"), Action.VIEW_REGISTRATIONS, ResourceKind.EVENT
        )
        assert grant.is_owner is True

        with pytest.raises(PermissionError) as exc:
            enforce_ownership(
                ENGINE, OTHER_ORGANIZER, make_event("u1"), Action.VIEW_REGISTRATIONS, ResourceKind.EVENT
            )
        assert "view registrations" in exc.value.message

    def test_agrees_with_authorize(self):
        for principal in (ORGANIZER, OTHER_ORGANIZER, ADMIN, STUDENT):
            for action in (Action.EDIT, Action.DELETE, Action.VIEW_REGISTRATIONS):
                event = make_event("u1")
                allowed = ENGINE.authorize(principal, action, ResourceKind.EVENT, owner_id="u1")
                if allowed:
                    enforce_ownership(ENGINE, principal, event, action, ResourceKind.EVENT)
                else:
                    with pytest.raises(PermissionError):
                        enforce_ownership(ENGINE, principal, event, action, ResourceKind.EVENT)

    def test_self_edit_of_user_record(self):
        profile = {"id": "u1", "role": "student"}
        grant = enforce_ownership(ENGINE, STUDENT, profile, Action.EDIT, ResourceKind.USER)
        assert grant.is_owner is True

    def test_editing_another_user_record_forbidden(self):
        with pytest.raises(PermissionError) as exc:
            enforce_ownership(ENGINE, STUDENT, {"id": "u2"}, Action.EDIT, ResourceKind.USER)
        assert exc.value.message == "Access denied. You can only modify your own profile."

    def test_user_gate_agrees_with_can_modify_user(self):
        for principal in (STUDENT, ORGANIZER, OTHER_ORGANIZER, ADMIN):
            profile = {"id": "u1"}
            if ENGINE.can_modify_user(principal, "u1"):
                enforce_ownership(ENGINE, principal, profile, Action.EDIT, ResourceKind.USER)
            else:
                with pytest.raises(PermissionError):
                    enforce_ownership(ENGINE, principal, profile, Action.EDIT, ResourceKind.USER)
