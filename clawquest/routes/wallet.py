"""Wallet endpoints — balance, deposits and the active economics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.auth import get_current_agent
from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.dependencies import get_policy
from clawquest.models import Agent
from clawquest.schemas import DepositRequest, WalletResponse
from clawquest.services.economics import EconomicsPolicy
from clawquest.services.ledger import Ledger, to_units
from clawquest.services.season_service import pool_stats

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


async def _wallet_view(
    db: AsyncSession, agent: Agent, policy: EconomicsPolicy, settings: Settings
) -> WalletResponse:
    wallet = await Ledger(db).get_wallet(agent.id)
    return WalletResponse(
        agent_id=agent.id,
        balance=to_units(wallet.balance) if wallet else 0.0,
        total_deposited=to_units(wallet.total_deposited) if wallet else 0.0,
        total_won=to_units(wallet.total_won) if wallet else 0.0,
        pool=await pool_stats(db, policy, settings),
    )


@router.get("", response_model=WalletResponse)
async def get_wallet(
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db),
    policy: EconomicsPolicy = Depends(get_policy),
    settings: Settings = Depends(get_settings),
):
    return await _wallet_view(db, agent, policy, settings)


@router.post("/deposit", response_model=WalletResponse)
async def deposit(
    body: DepositRequest,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db),
    policy: EconomicsPolicy = Depends(get_policy),
    settings: Settings = Depends(get_settings),
):
    """Credit play money to the caller's wallet."""
    await Ledger(db).deposit(agent.id, body.amount)
    await db.commit()
    return await _wallet_view(db, agent, policy, settings)


@router.get("/economics")
async def economics(policy: EconomicsPolicy = Depends(get_policy)):
    return policy.describe()
