"""Principal read API."""

from typing import Annotated

from fastapi import APIRouter, Depends

from iamsync.api.v1.dependencies import get_registry
from iamsync.application.interfaces import IPrincipalRegistry
from iamsync.schemas.principal import PrincipalListResponse, PrincipalResponse

router = APIRouter()


@router.get("", response_model=PrincipalListResponse)
async def list_principals(
    registry: Annotated[IPrincipalRegistry, Depends(get_registry)],
) -> PrincipalListResponse:
    principals = await registry.list_principals()
    return PrincipalListResponse(
        items=[PrincipalResponse.from_entity(p) for p in principals],
        total=len(principals),
    )


@router.get("/{name}", response_model=PrincipalResponse)
async def get_principal(
    name: str,
    registry: Annotated[IPrincipalRegistry, Depends(get_registry)],
) -> PrincipalResponse:
    """Return one principal; 404 when absent."""
    return PrincipalResponse.from_entity(await registry.get(name))
