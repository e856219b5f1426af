"""Gang endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.auth import get_current_agent
from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.models import Agent
from clawquest.schemas import (
    GangCreateRequest,
    GangDetailResponse,
    GangJoinRequest,
    GangMemberResponse,
    GangResponse,
)
from clawquest.services import gang_service

router = APIRouter(prefix="/api/gangs", tags=["gangs"])


async def _detail(db: AsyncSession, gang_id: UUID) -> GangDetailResponse:
    gang, total_score = await gang_service.get_gang(db, gang_id)
    return GangDetailResponse(
        id=gang.id,
        name=gang.name,
        color=gang.color,
        member_count=gang.member_count,
        total_score=total_score,
        created_at=gang.created_at,
        members=[GangMemberResponse.model_validate(a) for a in gang.agents],
    )


@router.get("", response_model=list[GangResponse])
async def list_gangs(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    rows = await gang_service.list_gangs(db, limit=limit)
    return [
        GangResponse(
            id=gang.id,
            name=gang.name,
            color=gang.color,
            member_count=gang.member_count,
            total_score=total_score,
            created_at=gang.created_at,
        )
        for gang, total_score in rows
    ]


@router.get("/{gang_id}", response_model=GangDetailResponse)
async def get_gang(gang_id: UUID, db: AsyncSession = Depends(get_db)):
    return await _detail(db, gang_id)


@router.post("", response_model=GangDetailResponse, status_code=201)
async def create_gang(
    body: GangCreateRequest,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db),
):
    gang = await gang_service.create_gang(db, agent.id, body.name)
    return await _detail(db, gang.id)


@router.post("/join", response_model=GangDetailResponse)
async def join_gang(
    body: GangJoinRequest,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    gang = await gang_service.join_gang(db, agent.id, body.gang_id, cap=settings.max_gang_members)
    return await _detail(db, gang.id)


@router.post("/leave")
async def leave_gang(
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db),
):
    gang_id = await gang_service.leave_gang(db, agent.id)
    return {"success": True, "gang_id": str(gang_id)}
