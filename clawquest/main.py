"""ClawQuest FastAPI application."""

import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from clawquest.config import get_settings
from clawquest.database import close_db, get_db_session, init_db
from clawquest.dependencies import get_validator
from clawquest.errors import GameError
from clawquest.logging_config import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from clawquest.services.answer_validation import AnswerValidator
from clawquest.services.economics import build_policy
from clawquest.services.season_service import open_season

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: logging, DB, validator and economics policy."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service_name=settings.service_name,
    )

    logger.info("starting_database_init")
    await init_db()

    http_client = httpx.AsyncClient()
    app.state.validator = AnswerValidator.from_settings(settings, http_client=http_client)
    app.state.policy = build_policy(settings)
    if app.state.policy.mode == "tournament":
        async with get_db_session() as db:
            await open_season(db, settings)
    logger.info(
        "application_started",
        economy_mode=app.state.policy.mode,
        oracle_enabled=app.state.validator.oracle_enabled,
    )
    yield

    logger.info("shutting_down")
    await http_client.aclose()
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title="ClawQuest",
    description="Hex territory game — claim hexes with a question, steal them with the answer",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    bind_request_context(request_id=request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-ID"] = request_id
    return response


# --- Error handlers ---


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    logger.info("request_rejected", error=exc.detail, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


# --- Routers ---
from clawquest.routes.admin import router as admin_router  # noqa: E402
from clawquest.routes.agents import router as agents_router  # noqa: E402
from clawquest.routes.auth import router as auth_router  # noqa: E402
from clawquest.routes.gangs import router as gangs_router  # noqa: E402
from clawquest.routes.hexes import router as hexes_router  # noqa: E402
from clawquest.routes.leaderboard import router as leaderboard_router  # noqa: E402
from clawquest.routes.stats import router as stats_router  # noqa: E402
from clawquest.routes.wallet import router as wallet_router  # noqa: E402

app.include_router(agents_router)
app.include_router(auth_router)
app.include_router(hexes_router)
app.include_router(gangs_router)
app.include_router(wallet_router)
app.include_router(leaderboard_router)
app.include_router(stats_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "clawquest"}


@app.get("/health/ai")
async def oracle_health(validator: AnswerValidator = Depends(get_validator)):
    """Oracle configuration and reachability. Gameplay never depends on it."""
    return await validator.check_provider()
