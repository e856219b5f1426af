"""Process-scoped collaborators handed to request handlers.

The validator and the economics policy are built once in the application
lifespan and live on ``app.state``; handlers reach them through these
dependencies so tests can swap them with ``app.dependency_overrides``.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.config import Settings, get_settings
from clawquest.database import get_db
from clawquest.services.answer_validation import AnswerValidator
from clawquest.services.economics import EconomicsPolicy
from clawquest.services.territory_service import TerritoryService


def get_validator(request: Request) -> AnswerValidator:
    return request.app.state.validator


def get_policy(request: Request) -> EconomicsPolicy:
    return request.app.state.policy


def get_territory_service(
    db: AsyncSession = Depends(get_db),
    validator: AnswerValidator = Depends(get_validator),
    policy: EconomicsPolicy = Depends(get_policy),
    settings: Settings = Depends(get_settings),
) -> TerritoryService:
    return TerritoryService(db, validator, policy, settings)
