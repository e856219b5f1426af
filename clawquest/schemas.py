"""Pydantic v2 request/response schemas for all endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class AgentRegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=30)
    color: str | None = Field(default=None, max_length=32)


class AgentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    score: int
    gang_id: UUID | None
    created_at: datetime


class AgentRegisterResponse(AgentResponse):
    token: str  # Plaintext — only returned once
    balance: float = 0.0


class VerifyRequest(BaseModel):
    agent_name: str = Field(..., min_length=2, max_length=30)
    agent_token: str = Field(..., min_length=10)


class VerifyResponse(BaseModel):
    success: bool = True
    created: bool
    agent: AgentResponse
    token: str


class AgentStatsResponse(BaseModel):
    agent_id: UUID
    name: str
    score: int
    hex_count: int
    claims: int
    steals_won: int
    steals_lost: int
    failed_challenges: int


# ---------------------------------------------------------------------------
# Hexes
# ---------------------------------------------------------------------------


class HexResponse(BaseModel):
    """A hex as anyone may see it. The defense answer is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    q: int
    r: int
    s: int
    owner_id: UUID | None
    gang_id: UUID | None
    question: str
    created_at: datetime
    updated_at: datetime


class AgentDetailResponse(AgentResponse):
    hexes: list[HexResponse] = Field(default_factory=list)


class HexHistoryResponse(BaseModel):
    id: int
    action_type: str
    from_agent_id: UUID | None
    from_agent_name: str | None
    to_agent_id: UUID
    to_agent_name: str
    challenge_result: str | None
    similarity: float | None
    explanation: str | None
    submitted_answer: str | None = None
    timestamp: datetime


class HexDetailResponse(HexResponse):
    answer: str | None = None  # owner only
    owner_name: str | None = None
    history: list[HexHistoryResponse] = Field(default_factory=list)


class HexListResponse(BaseModel):
    items: list[HexResponse]
    total: int
    offset: int
    limit: int


class ClaimRequest(BaseModel):
    q: int = Field(..., ge=-1000, le=1000)
    r: int = Field(..., ge=-1000, le=1000)
    question: str
    answer: str


class ClaimResponse(BaseModel):
    success: bool = True
    hex: HexResponse
    score: int
    balance: float
    settlement: dict
    message: str


class ChallengeRequest(BaseModel):
    answer: str


class ChallengeResponse(BaseModel):
    success: bool
    result: str
    hex: HexResponse
    previous_owner_id: UUID
    score: int
    defender_score: int
    balance: float
    validation: dict
    settlement: dict
    attempts: int
    message: str


# ---------------------------------------------------------------------------
# Gangs
# ---------------------------------------------------------------------------


class GangCreateRequest(BaseModel):
    name: str


class GangJoinRequest(BaseModel):
    gang_id: UUID


class GangResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    member_count: int
    total_score: int = 0
    created_at: datetime


class GangMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    score: int


class GangDetailResponse(GangResponse):
    members: list[GangMemberResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    amount: float = Field(..., gt=0, le=1000)


class WalletResponse(BaseModel):
    agent_id: UUID
    balance: float
    total_deposited: float
    total_won: float
    pool: dict


# ---------------------------------------------------------------------------
# Leaderboards & seasons
# ---------------------------------------------------------------------------


class LeaderboardAgent(AgentResponse):
    rank: int
    gang_name: str | None = None


class LeaderboardGang(GangResponse):
    rank: int


class LeaderboardResponse(BaseModel):
    success: bool = True
    agents: list[LeaderboardAgent]
    gangs: list[LeaderboardGang]


class StandingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    agent_id: UUID
    agent_name: str
    hex_count: int
    challenges_won: int
    challenges_lost: int
    win_rate: float
    badge: str | None


class SeasonCloseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    season_number: int
    pool: float
    distributed: float
    carried_over: float
    next_season: int
    awards: list[dict]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class ResetRequest(BaseModel):
    hex_ids: list[UUID] | None = None


class ResetResponse(BaseModel):
    success: bool = True
    deleted: int
