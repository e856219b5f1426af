"""Territory store and agent directory — passive data access over an AsyncSession.

No game rules live here. Ownership and member-count changes are single
conditional UPDATE statements so that concurrent writers are arbitrated by the
database, not by application locks.
"""

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.models import Agent, Hex, HexHistory, utcnow


def owner_matches(expected_owner_id: UUID | None):
    if expected_owner_id is None:
        return Hex.owner_id.is_(None)
    return Hex.owner_id == expected_owner_id


class TerritoryStore:
    """Cell reads and conditional ownership writes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_cell_by_coordinates(self, q: int, r: int) -> Hex | None:
        result = await self.session.execute(
            select(Hex).where(Hex.q == q, Hex.r == r).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_cell_by_id(self, cell_id: UUID) -> Hex | None:
        result = await self.session.execute(
            select(Hex).where(Hex.id == cell_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_cell(
        self,
        q: int,
        r: int,
        owner_id: UUID,
        gang_id: UUID | None,
        question: str,
        answer: str,
    ) -> Hex | None:
        """Insert a cell. Returns None when a concurrent twin already holds (q, r).

        The session must be rolled back after a None.
        """
        cell = Hex(
            q=q,
            r=r,
            s=-q - r,
            owner_id=owner_id,
            gang_id=gang_id,
            question=question,
            answer=answer,
        )
        self.session.add(cell)
        try:
            await self.session.flush()
        except IntegrityError:
            return None
        return cell

    async def update_cell_owner(
        self,
        cell_id: UUID,
        expected_owner_id: UUID | None,
        new_owner_id: UUID,
        new_gang_id: UUID | None,
    ) -> bool:
        """Compare-and-swap on owner_id. Returns False when the owner moved underneath us."""
        result = await self.session.execute(
            update(Hex)
            .where(Hex.id == cell_id, owner_matches(expected_owner_id))
            .values(owner_id=new_owner_id, gang_id=new_gang_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def reclaim_cell(
        self,
        cell_id: UUID,
        new_owner_id: UUID,
        new_gang_id: UUID | None,
        question: str,
        answer: str,
    ) -> bool:
        """Take over an existing row whose owner was removed. Only matches owner_id IS NULL."""
        result = await self.session.execute(
            update(Hex)
            .where(Hex.id == cell_id, Hex.owner_id.is_(None))
            .values(
                owner_id=new_owner_id,
                gang_id=new_gang_id,
                question=question,
                answer=answer,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def confirm_owner(self, cell_id: UUID, expected_owner_id: UUID) -> bool:
        """Touch the row only if the owner is unchanged; holds the row lock until commit."""
        result = await self.session.execute(
            update(Hex)
            .where(Hex.id == cell_id, owner_matches(expected_owner_id))
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def count_cells(self, owner_id: UUID | None = None) -> int:
        query = select(func.count()).select_from(Hex)
        if owner_id is not None:
            query = query.where(Hex.owner_id == owner_id)
        return (await self.session.execute(query)).scalar() or 0

    async def list_cells(self, offset: int = 0, limit: int = 1000) -> list[Hex]:
        result = await self.session.execute(
            select(Hex).order_by(Hex.created_at, Hex.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def cells_near(self, q: int, r: int, radius: int) -> list[Hex]:
        """Cells within `radius` steps, using cube distance max(|dq|, |dr|, |ds|)."""
        s = -q - r
        result = await self.session.execute(
            select(Hex).where(
                Hex.q.between(q - radius, q + radius),
                Hex.r.between(r - radius, r + radius),
                Hex.s.between(s - radius, s + radius),
            )
        )
        return list(result.scalars().all())

    async def delete_cells(self, cell_ids: list[UUID] | None = None) -> int:
        """Administrative reset. Deletes the cells and their history rows."""
        history = delete(HexHistory)
        cells = delete(Hex)
        if cell_ids is not None:
            history = history.where(HexHistory.hex_id.in_(cell_ids))
            cells = cells.where(Hex.id.in_(cell_ids))
        await self.session.execute(history.execution_options(synchronize_session=False))
        result = await self.session.execute(cells.execution_options(synchronize_session=False))
        return result.rowcount or 0


class AgentDirectory:
    """Agent lookups and atomic score adjustments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_agent_by_id(self, agent_id: UUID) -> Agent | None:
        result = await self.session.execute(
            select(Agent).where(Agent.id == agent_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_agent_by_name(self, name: str) -> Agent | None:
        result = await self.session.execute(select(Agent).where(Agent.name == name))
        return result.scalar_one_or_none()

    async def _adjust_score(self, agent_id: UUID, delta: int) -> int:
        await self.session.execute(
            update(Agent)
            .where(Agent.id == agent_id)
            .values(score=Agent.score + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(select(Agent.score).where(Agent.id == agent_id))
        return result.scalar_one()

    async def increment_score(self, agent_id: UUID) -> int:
        """Add one point and return the new score."""
        return await self._adjust_score(agent_id, 1)

    async def decrement_score(self, agent_id: UUID) -> int:
        """Remove one point and return the new score."""
        return await self._adjust_score(agent_id, -1)
