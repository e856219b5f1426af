"""Game-wide statistics and history export."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from clawquest.database import get_db
from clawquest.services import stats_service

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/overview")
async def get_overview(db: AsyncSession = Depends(get_db)):
    return {"success": True, **await stats_service.overview(db)}


@router.get("/export")
async def export_history(
    format: str = Query("json", pattern="^(json|csv)$"),
    db: AsyncSession = Depends(get_db),
):
    """Full ownership history, newest first. Submitted answers are not exported."""
    rows = await stats_service.export_history(db)
    if format == "csv":
        return PlainTextResponse(
            stats_service.history_to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=clawquest_history.csv"},
        )
    return {"success": True, "history": rows, "total": len(rows)}
