from pydantic import BaseModel, Field

from ..auth.policy import Action, ResourceKind


class PolicyDocument(BaseModel):
    version: int
    roles: dict[str, int]
    bypass_role: str
    ownership_qualified_actions: list[str]
    owner_scoped: list[str]
    permissions: dict[str, list[str]]


class PrincipalPermissionsResponse(BaseModel):
    id: str
    role: str | None = None
    role_display_name: str
    role_level: int
    email: str | None = None
    name: str | None = None
    permissions: list[str] = Field(default_factory=list)
    is_admin: bool = False


class AccessCheckRequest(BaseModel):
    action: Action
    resource_kind: ResourceKind
    owner_id: str | None = Field(default=None, min_length=1)


class AccessCheckResponse(BaseModel):
    allowed: bool
