from fastapi import APIRouter, Depends

from ..auth.engine import AuthorizationEngine
from ..auth.policy import role_display_name
from ..auth.principal import Principal
from ..dependencies import get_current_principal, get_engine
from ..schemas.permission import (
    AccessCheckRequest,
    AccessCheckResponse,
    PolicyDocument,
    PrincipalPermissionsResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/policy", response_model=PolicyDocument)
async def get_policy(
    engine: AuthorizationEngine = Depends(get_engine),
) -> PolicyDocument:
    return PolicyDocument(**engine.policy.to_document())


@router.get("/me", response_model=PrincipalPermissionsResponse)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    engine: AuthorizationEngine = Depends(get_engine),
) -> PrincipalPermissionsResponse:
    return PrincipalPermissionsResponse(
        id=principal.id,
        role=principal.role,
        role_display_name=role_display_name(principal.role),
        role_level=engine.role_level(principal.role),
        email=principal.email,
        name=principal.name,
        permissions=sorted(engine.get_role_permissions(principal.role)),
        is_admin=engine.is_bypass(principal),
    )


@router.post("/check", response_model=AccessCheckResponse)
async def check_access(
    payload: AccessCheckRequest,
    principal: Principal = Depends(get_current_principal),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AccessCheckResponse:
    allowed = engine.authorize(
        principal,
        payload.action,
        payload.resource_kind,
        owner_id=payload.owner_id,
    )
    return AccessCheckResponse(allowed=allowed)
