"""Initial schema: gangs, agents, hexes, history, wallets, season pools, payouts.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(18, 6)


def upgrade() -> None:
    op.create_table(
        "gangs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("color", sa.Text(), nullable=False),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("member_count >= 0", name="ck_gang_member_count"),
    )

    op.create_table(
        "agents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("color", sa.Text(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gang_id", sa.Uuid(), sa.ForeignKey("gangs.id", ondelete="SET NULL"), nullable=True),
        sa.Column("token_hash", sa.Text(), nullable=True),
        sa.Column("token_prefix", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_agents_score", "agents", ["score"])
    op.create_index("idx_agents_gang", "agents", ["gang_id"])
    op.create_index("idx_agents_token_prefix", "agents", ["token_prefix"])

    op.create_table(
        "hexes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("q", sa.Integer(), nullable=False),
        sa.Column("r", sa.Integer(), nullable=False),
        sa.Column("s", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("agents.id", ondelete="SET NULL"), nullable=True),
        sa.Column("gang_id", sa.Uuid(), sa.ForeignKey("gangs.id", ondelete="SET NULL"), nullable=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("q", "r", name="uq_hex_coordinates"),
        sa.CheckConstraint("q + r + s = 0", name="ck_hex_cube_coordinates"),
    )
    op.create_index("idx_hexes_owner", "hexes", ["owner_id"])

    op.create_table(
        "hex_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("hex_id", sa.Uuid(), sa.ForeignKey("hexes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column("from_agent_id", sa.Uuid(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("to_agent_id", sa.Uuid(), sa.ForeignKey("agents.id"), nullable=False),
        sa.Column("question_snapshot", sa.Text(), nullable=True),
        sa.Column("submitted_answer", sa.Text(), nullable=True),
        sa.Column("challenge_result", sa.Text(), nullable=True),
        sa.Column("similarity", sa.Float(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("action_type IN ('CLAIM','STEAL')", name="ck_history_action"),
        sa.CheckConstraint(
            "challenge_result IS NULL OR challenge_result IN ('SUCCESS','FAILED')",
            name="ck_history_result",
        ),
    )
    op.create_index("idx_history_hex_time", "hex_history", ["hex_id", "timestamp"])
    op.create_index("idx_history_to_agent", "hex_history", ["to_agent_id", "action_type"])
    op.create_index("idx_history_from_agent", "hex_history", ["from_agent_id", "action_type"])

    op.create_table(
        "wallets",
        sa.Column("agent_id", sa.Uuid(), sa.ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("balance", MONEY, nullable=False, server_default="0"),
        sa.Column("total_deposited", MONEY, nullable=False, server_default="0"),
        sa.Column("total_won", MONEY, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    op.create_table(
        "season_pools",
        sa.Column("season_number", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("pool_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("platform_fees", MONEY, nullable=False, server_default="0"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "prize_payouts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("season_number", sa.Integer(), sa.ForeignKey("season_pools.season_number"), nullable=False),
        sa.Column("agent_id", sa.Uuid(), sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_payouts_agent", "prize_payouts", ["agent_id"])
    op.create_index("idx_payouts_season", "prize_payouts", ["season_number"])


def downgrade() -> None:
    op.drop_index("idx_payouts_season", table_name="prize_payouts")
    op.drop_index("idx_payouts_agent", table_name="prize_payouts")
    op.drop_table("prize_payouts")
    op.drop_table("season_pools")
    op.drop_table("wallets")
    op.drop_index("idx_history_from_agent", table_name="hex_history")
    op.drop_index("idx_history_to_agent", table_name="hex_history")
    op.drop_index("idx_history_hex_time", table_name="hex_history")
    op.drop_table("hex_history")
    op.drop_index("idx_hexes_owner", table_name="hexes")
    op.drop_table("hexes")
    op.drop_index("idx_agents_token_prefix", table_name="agents")
    op.drop_index("idx_agents_gang", table_name="agents")
    op.drop_index("idx_agents_score", table_name="agents")
    op.drop_table("agents")
    op.drop_table("gangs")
