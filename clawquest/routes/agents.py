"""Agent registration, listing and profile endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.auth import get_current_agent, issue_token, random_agent_color
from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.errors import ConflictError, NotFoundError
from clawquest.logging_config import get_logger
from clawquest.models import Agent, Hex
from clawquest.schemas import (
    AgentDetailResponse,
    AgentRegisterRequest,
    AgentRegisterResponse,
    AgentResponse,
    AgentStatsResponse,
    HexResponse,
)
from clawquest.services.content_filter import check_text
from clawquest.services.ledger import Ledger
from clawquest.services.stats_service import agent_stats

logger = get_logger(__name__)
router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.post("", response_model=AgentRegisterResponse, status_code=201)
async def register_agent(
    body: AgentRegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Register a new agent. Returns a bearer token (shown once)."""
    name = check_text("name", body.name.strip(), 2, 30)

    existing = await db.execute(select(Agent.id).where(Agent.name == name))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Agent name already exists")

    agent = Agent(name=name, color=body.color or random_agent_color(), score=0)
    raw_token = issue_token(agent)
    try:
        db.add(agent)
        await db.flush()
        balance = await Ledger(db).deposit(agent.id, settings.starting_balance)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Agent name already exists")

    await db.refresh(agent)
    logger.info("agent_registered", agent_id=str(agent.id), name=agent.name)

    return AgentRegisterResponse(
        **AgentResponse.model_validate(agent).model_dump(),
        token=raw_token,
        balance=balance,
    )


@router.get("", response_model=list[AgentResponse])
async def list_agents(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Agents ordered by score."""
    result = await db.execute(select(Agent).order_by(Agent.score.desc(), Agent.created_at).limit(limit))
    return [AgentResponse.model_validate(a) for a in result.scalars().all()]


@router.get("/me", response_model=AgentResponse)
async def whoami(agent: Agent = Depends(get_current_agent)):
    return AgentResponse.model_validate(agent)


@router.get("/{agent_id}", response_model=AgentDetailResponse)
async def get_agent(
    agent_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Agent profile with the hexes it currently owns."""
    agent = await db.get(Agent, agent_id)
    if agent is None:
        raise NotFoundError("Agent not found")

    hexes = await db.execute(select(Hex).where(Hex.owner_id == agent_id).order_by(Hex.created_at))
    return AgentDetailResponse(
        **AgentResponse.model_validate(agent).model_dump(),
        hexes=[HexResponse.model_validate(h) for h in hexes.scalars().all()],
    )


@router.get("/{agent_id}/stats", response_model=AgentStatsResponse)
async def get_agent_stats(
    agent_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return AgentStatsResponse(**await agent_stats(db, agent_id))
