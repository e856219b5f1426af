"""Administrative endpoints, guarded by the admin token."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.auth import require_admin
from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.dependencies import get_policy, get_territory_service
from clawquest.schemas import ResetRequest, ResetResponse, SeasonCloseResponse
from clawquest.services.economics import EconomicsPolicy
from clawquest.services.season_service import close_season
from clawquest.services.territory_service import TerritoryService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/reset", response_model=ResetResponse)
async def reset_territory(
    body: ResetRequest,
    service: TerritoryService = Depends(get_territory_service),
):
    """Delete the listed hexes, or every hex, along with their history."""
    deleted = await service.reset(body.hex_ids)
    return ResetResponse(deleted=deleted)


@router.post("/season/close", response_model=SeasonCloseResponse)
async def close_current_season(
    db: AsyncSession = Depends(get_db),
    policy: EconomicsPolicy = Depends(get_policy),
    settings: Settings = Depends(get_settings),
):
    result = await close_season(db, policy, settings)
    return SeasonCloseResponse.model_validate(result)
