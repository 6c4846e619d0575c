"""Provisioning API: apply a desired state, or the built-in default stack."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from iamsync.api.v1.dependencies import get_provisioner, get_settings_dep
from iamsync.application.services import Provisioner, default_stack
from iamsync.core.config import Settings
from iamsync.schemas.provisioning import ApplyRequest, ProvisionResultResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/apply", response_model=ProvisionResultResponse)
async def apply_desired_state(
    body: ApplyRequest,
    provisioner: Annotated[Provisioner, Depends(get_provisioner)],
) -> ProvisionResultResponse:
    """Run one convergence pass. Per-entry failures are reported in entries, not as errors."""
    result = await provisioner.apply(
        [p.to_dto() for p in body.principals],
        [g.to_dto() for g in body.groups],
    )
    return ProvisionResultResponse.from_result(result)


@router.post("/apply-default", response_model=ProvisionResultResponse)
async def apply_default_stack(
    provisioner: Annotated[Provisioner, Depends(get_provisioner)],
    settings: Annotated[Settings, Depends(get_settings_dep)],
) -> ProvisionResultResponse:
    """Apply the built-in groups and principals (emails from settings)."""
    desired, groups = default_stack(settings)
    result = await provisioner.apply(desired, groups)
    return ProvisionResultResponse.from_result(result)
