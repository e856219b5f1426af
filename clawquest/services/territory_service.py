"""Territory transitions — claim and challenge.

Cell lifecycle: unclaimed → owned(A) → owned(B) → ... ; terminal only via an
administrative reset. A transition is one database transaction covering the
wallet debit, the ownership write, score changes, the settlement and the
provenance entry. The oracle is consulted between transactions, never inside
one.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.config import Settings
from clawquest.errors import (
    ConflictError,
    GameError,
    InsufficientBalanceError,
    NotFoundError,
    SelfChallengeError,
)
from clawquest.logging_config import get_logger
from clawquest.models import ActionType, ChallengeResult, Hex
from clawquest.services.answer_validation import AnswerValidator, ValidationResult
from clawquest.services.content_filter import check_text
from clawquest.services.economics import EconomicsPolicy, Settlement
from clawquest.services.ledger import Ledger
from clawquest.services.provenance import ProvenanceEntry, ProvenanceLog
from clawquest.services.territory_store import AgentDirectory, TerritoryStore

logger = get_logger(__name__)


@dataclass
class ClaimOutcome:
    hex: Hex
    score: int
    balance: float
    settlement: Settlement
    history_id: int


@dataclass
class ChallengeOutcome:
    success: bool
    hex: Hex
    previous_owner_id: UUID
    score: int
    defender_score: int
    balance: float
    validation: ValidationResult
    settlement: Settlement
    history_id: int
    attempts: int


@dataclass
class _Snapshot:
    """What a challenge attempt read before leaving the database."""
    challenger_gang_id: UUID | None
    defender_id: UUID
    question: str
    correct_answer: str


class TerritoryService:
    """The only writer of hex ownership, agent scores and wallet balances."""

    def __init__(
        self,
        session: AsyncSession,
        validator: AnswerValidator,
        policy: EconomicsPolicy,
        settings: Settings,
    ):
        self.session = session
        self.validator = validator
        self.policy = policy
        self.settings = settings
        self.store = TerritoryStore(session)
        self.agents = AgentDirectory(session)
        self.ledger = Ledger(session)
        self.provenance = ProvenanceLog(session)

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    async def claim(self, agent_id: UUID, q: int, r: int, question: str, answer: str) -> ClaimOutcome:
        s = self.settings
        question = check_text("question", question.strip(), s.min_question_length, s.max_question_length)
        answer = check_text("answer", answer.strip(), s.min_answer_length, s.max_answer_length)

        agent = await self.agents.find_agent_by_id(agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")
        gang_id = agent.gang_id

        existing = await self.store.find_cell_by_coordinates(q, r)
        if existing is not None and existing.owner_id is not None:
            raise ConflictError("Hex already claimed", hex_id=str(existing.id))

        cost = self.policy.claim_cost()
        try:
            balance = await self.ledger.debit(agent_id, cost, "claiming a hex")

            if existing is None:
                cell = await self.store.create_cell(q, r, agent_id, gang_id, question, answer)
                if cell is None:
                    logger.info("claim_race_lost", q=q, r=r, agent_id=str(agent_id))
                    raise ConflictError("Hex already claimed")
                cell_id = cell.id
            else:
                cell_id = existing.id
                if not await self.store.reclaim_cell(cell_id, agent_id, gang_id, question, answer):
                    raise ConflictError("Hex already claimed", hex_id=str(cell_id))

            score = await self.agents.increment_score(agent_id)
            settlement = await self.policy.on_claim_paid(self.ledger, cost)
            history_id = await self.provenance.append(
                ProvenanceEntry(
                    hex_id=cell_id,
                    action_type=ActionType.CLAIM,
                    to_agent_id=agent_id,
                    question_snapshot=question,
                )
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        cell = await self.store.find_cell_by_id(cell_id)
        self.session.expunge(cell)
        logger.info(
            "hex_claimed",
            hex_id=str(cell_id),
            q=q,
            r=r,
            agent_id=str(agent_id),
            score=score,
            cost=cost,
        )
        return ClaimOutcome(hex=cell, score=score, balance=balance, settlement=settlement, history_id=history_id)

    # ------------------------------------------------------------------
    # Challenge
    # ------------------------------------------------------------------

    async def _read_preconditions(self, agent_id: UUID, hex_id: UUID, fee: float) -> _Snapshot:
        challenger = await self.agents.find_agent_by_id(agent_id)
        if challenger is None:
            raise NotFoundError("Agent not found")

        cell = await self.store.find_cell_by_id(hex_id)
        if cell is None:
            raise NotFoundError("Hex not found")
        if cell.owner_id is None:
            raise ConflictError("Hex is not claimed", hex_id=str(hex_id))
        if cell.owner_id == agent_id:
            raise SelfChallengeError()

        balance = await self.ledger.get_balance(agent_id)
        if balance < fee:
            raise InsufficientBalanceError(required=fee, current=balance, action="a challenge")

        return _Snapshot(
            challenger_gang_id=challenger.gang_id,
            defender_id=cell.owner_id,
            question=cell.question,
            correct_answer=cell.answer,
        )

    async def challenge(self, agent_id: UUID, hex_id: UUID, answer: str) -> ChallengeOutcome:
        """Adjudicate one challenge.

        Each attempt reads the current owner, ends the read transaction, asks
        the validator, then applies everything in one transaction guarded by
        a compare-and-swap on the owner. Losing the swap rolls the attempt
        back entirely and starts over from a fresh read. A verdict is reused
        while the question and answer it was given stay the same.
        """
        s = self.settings
        # Too-short guesses are judged (and charged) by the validator prechecks.
        answer = check_text("answer", answer, 1, s.max_answer_length).strip()
        fee = self.policy.challenge_fee()

        judged: tuple[tuple[str, str], ValidationResult] | None = None

        for attempt in range(1, s.max_transition_attempts + 1):
            # The read wrote nothing; committing keeps caller-held instances loaded.
            try:
                snap = await self._read_preconditions(agent_id, hex_id, fee)
            except GameError:
                await self.session.commit()
                raise
            except Exception:
                await self.session.rollback()
                raise
            await self.session.commit()

            key = (snap.question, snap.correct_answer)
            if judged is None or judged[0] != key:
                judged = (key, await self.validator.validate(snap.question, snap.correct_answer, answer))
            verdict = judged[1]

            try:
                balance = await self.ledger.debit(agent_id, fee, "a challenge")
                if verdict.is_valid:
                    holds = await self.store.update_cell_owner(
                        hex_id, snap.defender_id, agent_id, snap.challenger_gang_id
                    )
                else:
                    holds = await self.store.confirm_owner(hex_id, snap.defender_id)

                if not holds:
                    await self.session.rollback()
                    logger.info(
                        "ownership_race_lost",
                        hex_id=str(hex_id),
                        agent_id=str(agent_id),
                        expected_owner_id=str(snap.defender_id),
                        attempt=attempt,
                    )
                    continue

                if verdict.is_valid:
                    outcome = ChallengeResult.SUCCESS
                    score = await self.agents.increment_score(agent_id)
                    defender_score = await self.agents.decrement_score(snap.defender_id)
                else:
                    outcome = ChallengeResult.FAILED
                    score = (await self.agents.find_agent_by_id(agent_id)).score
                    defender_score = (await self.agents.find_agent_by_id(snap.defender_id)).score

                settlement = await self.policy.on_challenge_resolved(
                    self.ledger, outcome, fee, snap.defender_id
                )
                history_id = await self.provenance.append(
                    ProvenanceEntry(
                        hex_id=hex_id,
                        action_type=ActionType.STEAL,
                        to_agent_id=agent_id,
                        from_agent_id=snap.defender_id if verdict.is_valid else None,
                        question_snapshot=snap.question,
                        submitted_answer=answer,
                        challenge_result=outcome,
                        similarity=verdict.similarity,
                        explanation=verdict.explanation,
                    )
                )
                balance = await self.ledger.get_balance(agent_id)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

            cell = await self.store.find_cell_by_id(hex_id)
            self.session.expunge(cell)
            logger.info(
                "challenge_resolved",
                hex_id=str(hex_id),
                agent_id=str(agent_id),
                defender_id=str(snap.defender_id),
                result=outcome.value,
                similarity=verdict.similarity,
                method=verdict.method,
                fee=fee,
                attempts=attempt,
            )
            return ChallengeOutcome(
                success=verdict.is_valid,
                hex=cell,
                previous_owner_id=snap.defender_id,
                score=score,
                defender_score=defender_score,
                balance=balance,
                validation=verdict,
                settlement=settlement,
                history_id=history_id,
                attempts=attempt,
            )

        logger.warning(
            "challenge_attempts_exhausted",
            hex_id=str(hex_id),
            agent_id=str(agent_id),
            attempts=s.max_transition_attempts,
        )
        raise ConflictError("Hex ownership keeps changing, please try again", hex_id=str(hex_id))

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def reset(self, hex_ids: list[UUID] | None = None) -> int:
        """Delete the given hexes (all when None) together with their history."""
        try:
            deleted = await self.store.delete_cells(hex_ids)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.warning("territory_reset", deleted=deleted, scoped=hex_ids is not None)
        return deleted
