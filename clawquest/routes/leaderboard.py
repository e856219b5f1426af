"""Leaderboards and season standings."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.errors import NotFoundError
from clawquest.schemas import (
    AgentResponse,
    LeaderboardAgent,
    LeaderboardGang,
    LeaderboardResponse,
    StandingResponse,
)
from clawquest.services import stats_service

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Agents by score and gangs by summed member score."""
    agents = [
        LeaderboardAgent(
            **AgentResponse.model_validate(agent).model_dump(),
            rank=rank,
            gang_name=agent.gang.name if agent.gang else None,
        )
        for rank, agent in await stats_service.agent_leaderboard(db, limit)
    ]
    gangs = [
        LeaderboardGang(
            id=gang.id,
            name=gang.name,
            color=gang.color,
            member_count=gang.member_count,
            total_score=total_score,
            created_at=gang.created_at,
            rank=rank,
        )
        for rank, gang, total_score in await stats_service.gang_leaderboard(db, limit)
    ]
    return LeaderboardResponse(agents=agents, gangs=gangs)


@router.get("/season", response_model=list[StandingResponse])
async def season_standings(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Hex-count standings with season badges."""
    standings = await stats_service.season_standings(db, settings.prize_ranks)
    return [StandingResponse.model_validate(s) for s in standings[:limit]]


@router.get("/season/{agent_id}", response_model=StandingResponse)
async def player_standing(
    agent_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    standing = await stats_service.player_prize_info(db, agent_id, settings.prize_ranks)
    if standing is None:
        raise NotFoundError("Agent holds no hexes this season")
    return StandingResponse.model_validate(standing)
