"""Gang service — create, join, leave and look up factions."""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clawquest.errors import ConflictError, GangFullError, NotFoundError, ValidationFailedError
from clawquest.logging_config import get_logger
from clawquest.models import Agent, Gang, utcnow
from clawquest.services.content_filter import check_text

logger = get_logger(__name__)

GANG_COLORS = [
    "#00ffff",  # cyan
    "#ff00ff",  # magenta
    "#00ff66",
    "#ff6600",
    "#ff0066",
    "#9900ff",
    "#00aaff",
    "#ffff00",
    "#ff3333",
    "#33ff33",
    "#3366ff",
    "#ff33ff",
    "#00ffcc",
    "#ffcc00",
    "#cc00ff",
    "#33ccff",
]

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 30


def gang_color(name: str) -> str:
    """Same name, same color: sum of code points modulo the palette size."""
    return GANG_COLORS[sum(ord(c) for c in name) % len(GANG_COLORS)]


async def _require_agent(db: AsyncSession, agent_id: UUID) -> Agent:
    result = await db.execute(
        select(Agent).where(Agent.id == agent_id).execution_options(populate_existing=True)
    )
    agent = result.scalar_one_or_none()
    if agent is None:
        raise NotFoundError("Agent not found")
    return agent


async def _assign_gang(db: AsyncSession, agent_id: UUID, gang_id: UUID) -> bool:
    """Set the agent's gang only if it has none."""
    result = await db.execute(
        update(Agent)
        .where(Agent.id == agent_id, Agent.gang_id.is_(None))
        .values(gang_id=gang_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def create_gang(db: AsyncSession, agent_id: UUID, name: str) -> Gang:
    """Create a gang with its creator as the first member."""
    name = check_text("gang name", name.strip(), MIN_NAME_LENGTH, MAX_NAME_LENGTH)

    agent = await _require_agent(db, agent_id)
    if agent.gang_id is not None:
        raise ConflictError("Agent is already in a gang")

    existing = await db.execute(select(Gang.id).where(Gang.name == name))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Gang name already exists")

    gang = Gang(name=name, color=gang_color(name), member_count=1)
    try:
        db.add(gang)
        await db.flush()
        if not await _assign_gang(db, agent_id, gang.id):
            raise ConflictError("Agent is already in a gang")
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Gang name already exists")
    except Exception:
        await db.rollback()
        raise

    logger.info("gang_created", gang_id=str(gang.id), name=name, agent_id=str(agent_id))
    return gang


async def join_gang(db: AsyncSession, agent_id: UUID, gang_id: UUID, cap: int) -> Gang:
    """Join a gang. The member-count bump is conditional on being under the cap.

    Hexes the agent already owns keep the gang they were taken under.
    """
    gang = await db.get(Gang, gang_id)
    if gang is None:
        raise NotFoundError("Gang not found")

    agent = await _require_agent(db, agent_id)
    if agent.gang_id is not None:
        raise ConflictError("Agent is already in a gang")

    try:
        bumped = await db.execute(
            update(Gang)
            .where(Gang.id == gang_id, Gang.member_count < cap)
            .values(member_count=Gang.member_count + 1)
            .execution_options(synchronize_session=False)
        )
        if bumped.rowcount != 1:
            raise GangFullError(cap)
        if not await _assign_gang(db, agent_id, gang_id):
            raise ConflictError("Agent is already in a gang")
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(gang)
    logger.info("gang_joined", gang_id=str(gang_id), agent_id=str(agent_id), members=gang.member_count)
    return gang


async def leave_gang(db: AsyncSession, agent_id: UUID) -> UUID:
    """Leave the current gang; returns the id of the gang that was left."""
    agent = await _require_agent(db, agent_id)
    gang_id = agent.gang_id
    if gang_id is None:
        raise ValidationFailedError("Agent is not in a gang")

    try:
        left = await db.execute(
            update(Agent)
            .where(Agent.id == agent_id, Agent.gang_id == gang_id)
            .values(gang_id=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if left.rowcount != 1:
            raise ConflictError("Gang membership changed, please retry")
        await db.execute(
            update(Gang)
            .where(Gang.id == gang_id, Gang.member_count > 0)
            .values(member_count=Gang.member_count - 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("gang_left", gang_id=str(gang_id), agent_id=str(agent_id))
    return gang_id


async def get_gang(db: AsyncSession, gang_id: UUID) -> tuple[Gang, int]:
    """Gang with members loaded, plus the members' summed score."""
    result = await db.execute(
        select(Gang)
        .options(selectinload(Gang.agents))
        .where(Gang.id == gang_id)
        .execution_options(populate_existing=True)
    )
    gang = result.scalar_one_or_none()
    if gang is None:
        raise NotFoundError("Gang not found")
    return gang, sum(a.score for a in gang.agents)


async def list_gangs(db: AsyncSession, limit: int = 50) -> list[tuple[Gang, int]]:
    total_score = func.coalesce(func.sum(Agent.score), 0).label("total_score")
    result = await db.execute(
        select(Gang, total_score)
        .outerjoin(Agent, Agent.gang_id == Gang.id)
        .group_by(Gang.id)
        .order_by(Gang.member_count.desc(), Gang.created_at.desc())
        .limit(limit)
    )
    return [(gang, int(score)) for gang, score in result.all()]
