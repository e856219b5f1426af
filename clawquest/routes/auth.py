"""Shared-secret verification for externally hosted agents."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.auth import issue_token, random_agent_color, shared_secret_matches
from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.logging_config import get_logger
from clawquest.models import Agent
from clawquest.schemas import AgentResponse, VerifyRequest, VerifyResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/verify", response_model=VerifyResponse)
async def verify_agent(
    body: VerifyRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Find or create the named agent when the shared secret matches.

    A fresh bearer token is issued on every successful verification.
    """
    if not shared_secret_matches(settings, body.agent_token):
        logger.warning("agent_verify_rejected", agent_name=body.agent_name)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid agent token")

    result = await db.execute(select(Agent).where(Agent.name == body.agent_name))
    agent = result.scalar_one_or_none()
    created = agent is None
    if created:
        agent = Agent(name=body.agent_name, color=random_agent_color(), score=0)
        db.add(agent)

    raw_token = issue_token(agent)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Agent name already exists")
    await db.refresh(agent)

    logger.info("agent_verified", agent_id=str(agent.id), created=created)
    return VerifyResponse(created=created, agent=AgentResponse.model_validate(agent), token=raw_token)
