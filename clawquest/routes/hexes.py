"""Hex endpoints — grid listing, detail, claim and challenge."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.auth import get_current_agent, get_current_agent_optional
from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.dependencies import get_territory_service
from clawquest.errors import NotFoundError
from clawquest.logging_config import get_logger
from clawquest.models import Agent, ChallengeResult
from clawquest.schemas import (
    ChallengeRequest,
    ChallengeResponse,
    ClaimRequest,
    ClaimResponse,
    HexDetailResponse,
    HexHistoryResponse,
    HexListResponse,
    HexResponse,
)
from clawquest.services.provenance import ProvenanceLog
from clawquest.services.territory_service import TerritoryService
from clawquest.services.territory_store import TerritoryStore

logger = get_logger(__name__)
router = APIRouter(prefix="/api/hexes", tags=["hexes"])


@router.get("", response_model=HexListResponse)
async def list_hexes(
    offset: int = Query(0, ge=0),
    limit: int = Query(1000, ge=1, le=5000),
    db: AsyncSession = Depends(get_db),
):
    """All claimed hexes. Defense answers are never part of the listing."""
    store = TerritoryStore(db)
    total = await store.count_cells()
    cells = await store.list_cells(offset=offset, limit=limit)
    return HexListResponse(
        items=[HexResponse.model_validate(c) for c in cells],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.get("/nearby", response_model=list[HexResponse])
async def nearby_hexes(
    q: int,
    r: int,
    radius: int = Query(3, ge=0, le=10),
    db: AsyncSession = Depends(get_db),
):
    cells = await TerritoryStore(db).cells_near(q, r, radius)
    return [HexResponse.model_validate(c) for c in cells]


@router.get("/{hex_id}", response_model=HexDetailResponse)
async def get_hex(
    hex_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    viewer: Agent | None = Depends(get_current_agent_optional),
):
    """Hex detail with its most recent history. The owner also sees the answer."""
    cell = await TerritoryStore(db).find_cell_by_id(hex_id)
    if cell is None:
        raise NotFoundError("Hex not found")

    is_owner = viewer is not None and viewer.id == cell.owner_id
    owner = await db.get(Agent, cell.owner_id) if cell.owner_id else None
    entries = await ProvenanceLog(db).query_by_cell(hex_id, limit=settings.history_page_size)

    history = [
        HexHistoryResponse(
            id=e.id,
            action_type=e.action_type,
            from_agent_id=e.from_agent_id,
            from_agent_name=e.from_agent.name if e.from_agent else None,
            to_agent_id=e.to_agent_id,
            to_agent_name=e.to_agent.name,
            challenge_result=e.challenge_result,
            similarity=e.similarity,
            explanation=e.explanation,
            submitted_answer=e.submitted_answer if is_owner else None,
            timestamp=e.timestamp,
        )
        for e in entries
    ]
    return HexDetailResponse(
        **HexResponse.model_validate(cell).model_dump(),
        answer=cell.answer if is_owner else None,
        owner_name=owner.name if owner else None,
        history=history,
    )


@router.post("/claim", response_model=ClaimResponse, status_code=201)
async def claim_hex(
    body: ClaimRequest,
    agent: Agent = Depends(get_current_agent),
    service: TerritoryService = Depends(get_territory_service),
):
    outcome = await service.claim(agent.id, body.q, body.r, body.question, body.answer)
    return ClaimResponse(
        hex=HexResponse.model_validate(outcome.hex),
        score=outcome.score,
        balance=outcome.balance,
        settlement=outcome.settlement.to_dict(),
        message=f"Hex ({body.q}, {body.r}) claimed!",
    )


@router.post("/{hex_id}/challenge", response_model=ChallengeResponse)
async def challenge_hex(
    hex_id: UUID,
    body: ChallengeRequest,
    agent: Agent = Depends(get_current_agent),
    service: TerritoryService = Depends(get_territory_service),
):
    """Answer another agent's defense question. The verdict detail is returned either way."""
    outcome = await service.challenge(agent.id, hex_id, body.answer)
    result = ChallengeResult.SUCCESS if outcome.success else ChallengeResult.FAILED
    return ChallengeResponse(
        success=outcome.success,
        result=result.value,
        hex=HexResponse.model_validate(outcome.hex),
        previous_owner_id=outcome.previous_owner_id,
        score=outcome.score,
        defender_score=outcome.defender_score,
        balance=outcome.balance,
        validation=outcome.validation.to_dict(),
        settlement=outcome.settlement.to_dict(),
        attempts=outcome.attempts,
        message="Challenge succeeded! Hex captured." if outcome.success else "Challenge failed.",
    )
