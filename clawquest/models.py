"""SQLAlchemy ORM models for agents, gangs, hexes, history and wallets."""

import enum
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import DECIMAL, DateTime, Float, Integer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Balances are exact NUMERIC on Postgres and surface as floats in Python.
Money = DECIMAL(18, 6, asdecimal=False)

# BIGSERIAL on Postgres, rowid alias on SQLite.
SequenceId = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ActionType(str, enum.Enum):
    CLAIM = "CLAIM"
    STEAL = "STEAL"


class ChallengeResult(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# Gangs
# ---------------------------------------------------------------------------


class Gang(Base):
    __tablename__ = "gangs"
    __table_args__ = (
        CheckConstraint("member_count >= 0", name="ck_gang_member_count"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    color: Mapped[str] = mapped_column(Text, nullable=False)
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    agents: Mapped[list["Agent"]] = relationship(back_populates="gang")


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class Agent(Base):
    __tablename__ = "agents"
    __table_args__ = (
        Index("idx_agents_score", "score"),
        Index("idx_agents_gang", "gang_id"),
        Index("idx_agents_token_prefix", "token_prefix"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    color: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gang_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("gangs.id", ondelete="SET NULL")
    )
    token_hash: Mapped[str | None] = mapped_column(Text)
    token_prefix: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    gang: Mapped[Gang | None] = relationship(back_populates="agents")


# ---------------------------------------------------------------------------
# Hexes
# ---------------------------------------------------------------------------


class Hex(Base):
    __tablename__ = "hexes"
    __table_args__ = (
        UniqueConstraint("q", "r", name="uq_hex_coordinates"),
        CheckConstraint("q + r + s = 0", name="ck_hex_cube_coordinates"),
        Index("idx_hexes_owner", "owner_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    q: Mapped[int] = mapped_column(Integer, nullable=False)
    r: Mapped[int] = mapped_column(Integer, nullable=False)
    s: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("agents.id", ondelete="SET NULL")
    )
    gang_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("gangs.id", ondelete="SET NULL")
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class HexHistory(Base):
    """Append-only provenance entry. Rows are never updated."""

    __tablename__ = "hex_history"
    __table_args__ = (
        Index("idx_history_hex_time", "hex_id", "timestamp"),
        Index("idx_history_to_agent", "to_agent_id", "action_type"),
        Index("idx_history_from_agent", "from_agent_id", "action_type"),
        CheckConstraint("action_type IN ('CLAIM','STEAL')", name="ck_history_action"),
        CheckConstraint(
            "challenge_result IS NULL OR challenge_result IN ('SUCCESS','FAILED')",
            name="ck_history_result",
        ),
    )

    id: Mapped[int] = mapped_column(SequenceId, primary_key=True, autoincrement=True)
    hex_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("hexes.id", ondelete="CASCADE"), nullable=False
    )
    action_type: Mapped[str] = mapped_column(Text, nullable=False)
    from_agent_id: Mapped[UUID | None] = mapped_column(Uuid, ForeignKey("agents.id"))
    to_agent_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("agents.id"), nullable=False)
    question_snapshot: Mapped[str | None] = mapped_column(Text)
    submitted_answer: Mapped[str | None] = mapped_column(Text)
    challenge_result: Mapped[str | None] = mapped_column(Text)
    similarity: Mapped[float | None] = mapped_column(Float)
    explanation: Mapped[str | None] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    from_agent: Mapped[Agent | None] = relationship(foreign_keys=[from_agent_id])
    to_agent: Mapped[Agent] = relationship(foreign_keys=[to_agent_id])
    hex: Mapped[Hex] = relationship()


# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------


class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    agent_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True
    )
    balance: Mapped[float] = mapped_column(Money, nullable=False, default=0.0)
    total_deposited: Mapped[float] = mapped_column(Money, nullable=False, default=0.0)
    total_won: Mapped[float] = mapped_column(Money, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class SeasonPool(Base):
    """Prize pool accumulated by the tournament economy, one row per season."""

    __tablename__ = "season_pools"

    season_number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    pool_balance: Mapped[float] = mapped_column(Money, nullable=False, default=0.0)
    platform_fees: Mapped[float] = mapped_column(Money, nullable=False, default=0.0)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class PrizePayout(Base):
    __tablename__ = "prize_payouts"
    __table_args__ = (
        Index("idx_payouts_agent", "agent_id"),
        Index("idx_payouts_season", "season_number"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    season_number: Mapped[int] = mapped_column(
        Integer, ForeignKey("season_pools.season_number"), nullable=False
    )
    agent_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False
    )
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
