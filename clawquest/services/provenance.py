"""Provenance log — append-only history of every ownership-affecting event."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clawquest.logging_config import get_logger
from clawquest.models import ActionType, ChallengeResult, HexHistory

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProvenanceEntry:
    """A history record before it is written."""
    hex_id: UUID
    action_type: ActionType
    to_agent_id: UUID
    from_agent_id: UUID | None = None
    question_snapshot: str | None = None
    submitted_answer: str | None = None
    challenge_result: ChallengeResult | None = None
    similarity: float | None = None
    explanation: str | None = None


@dataclass
class AgentCombatRecord:
    claims: int
    steals_won: int
    steals_lost: int
    failed_attempts: int


class ProvenanceLog:
    """Writes never touch existing rows; reads are newest first."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, entry: ProvenanceEntry) -> int:
        row = HexHistory(
            hex_id=entry.hex_id,
            action_type=entry.action_type.value,
            from_agent_id=entry.from_agent_id,
            to_agent_id=entry.to_agent_id,
            question_snapshot=entry.question_snapshot,
            submitted_answer=entry.submitted_answer,
            challenge_result=entry.challenge_result.value if entry.challenge_result else None,
            similarity=entry.similarity,
            explanation=entry.explanation,
        )
        self.session.add(row)
        await self.session.flush()
        logger.debug(
            "provenance_appended",
            entry_id=row.id,
            hex_id=str(entry.hex_id),
            action_type=row.action_type,
            challenge_result=row.challenge_result,
        )
        return row.id

    async def query_by_cell(self, hex_id: UUID, limit: int = 20) -> list[HexHistory]:
        result = await self.session.execute(
            select(HexHistory)
            .options(selectinload(HexHistory.from_agent), selectinload(HexHistory.to_agent))
            .where(HexHistory.hex_id == hex_id)
            .order_by(HexHistory.timestamp.desc(), HexHistory.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, action_type: ActionType | None = None) -> int:
        query = select(func.count()).select_from(HexHistory)
        if action_type is not None:
            query = query.where(HexHistory.action_type == action_type.value)
        return (await self.session.execute(query)).scalar() or 0

    async def export(self, since: datetime | None = None) -> list[HexHistory]:
        query = (
            select(HexHistory)
            .options(
                selectinload(HexHistory.hex),
                selectinload(HexHistory.from_agent),
                selectinload(HexHistory.to_agent),
            )
            .order_by(HexHistory.timestamp.desc(), HexHistory.id.desc())
        )
        if since is not None:
            query = query.where(HexHistory.timestamp >= since)
        return list((await self.session.execute(query)).scalars().all())

    async def combat_record(self, agent_id: UUID) -> AgentCombatRecord:
        """Tally an agent's claims and steals from the history."""
        rows = await self.session.execute(
            select(
                HexHistory.action_type,
                HexHistory.challenge_result,
                HexHistory.from_agent_id,
                func.count(),
            )
            .where((HexHistory.to_agent_id == agent_id) | (HexHistory.from_agent_id == agent_id))
            .group_by(HexHistory.action_type, HexHistory.challenge_result, HexHistory.from_agent_id)
        )
        record = AgentCombatRecord(claims=0, steals_won=0, steals_lost=0, failed_attempts=0)
        for action_type, result, from_agent_id, n in rows.all():
            if action_type == ActionType.CLAIM.value:
                record.claims += n
            elif result == ChallengeResult.SUCCESS.value:
                if from_agent_id == agent_id:
                    record.steals_lost += n
                else:
                    record.steals_won += n
            elif result == ChallengeResult.FAILED.value:
                record.failed_attempts += n
        return record
