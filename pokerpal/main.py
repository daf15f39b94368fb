"""FastAPI server for the poker session ledger."""
from contextlib import asynccontextmanager
from datetime import date

import asyncpg
from fastapi import FastAPI, Depends, Header, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pokerpal.config import config
from pokerpal.db.connection import db
from pokerpal.db.models import init_db
from pokerpal.errors import AuthorizationError, PokerPalError, StorageError, ValidationError
from pokerpal.state.redis_client import redis_client
from pokerpal.state.player_store import player_store
from pokerpal.auth.jwt_handler import create_access_token, TokenError
from pokerpal.auth.middleware import AuthenticatedUser, auth_middleware
from pokerpal.auth.roles import ensure_self_or_admin
from pokerpal.ledger.session_manager import session_manager, SessionType
from pokerpal.admin.chip_values import chip_value_manager
from pokerpal.admin.console import admin_console
from pokerpal.admin.profiles import profile_manager
from pokerpal.admin.standings import leaderboard, Timeframe, LeaderboardSort
from pokerpal.schemas import (
    LoginRequest,
    CreatePlayerRequest,
    UpdatePlayerRequest,
    CreateSessionRequest,
    UpdateSessionRequest,
    OverrideRequest,
    ChipValuesRequest,
)
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await db.connect()
    await redis_client.connect()
    await init_db()
    logger.info("Poker Pal server initialized")
    yield
    await redis_client.disconnect()
    await db.disconnect()
    logger.info("Poker Pal server shutdown complete")


app = FastAPI(
    title="Poker Pal",
    description="Poker session chip tracking, winnings and leaderboard API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=config.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handling

@app.exception_handler(PokerPalError)
async def pokerpal_error_handler(request: Request, exc: PokerPalError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(TokenError)
async def token_error_handler(request: Request, exc: TokenError):
    return JSONResponse(
        status_code=401,
        content={"error": "Authentication failed", "message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "message": "Invalid request data", "details": details},
    )


@app.exception_handler(asyncpg.PostgresError)
async def storage_error_handler(request: Request, exc: asyncpg.PostgresError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=StorageError(str(exc)).to_dict())


# Dependencies

async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """Resolve the bearer token to a player."""
    if not authorization or not authorization.startswith("Bearer "):
        raise TokenError("Missing authorization header")
    token = authorization.split(" ", 1)[1]
    return await auth_middleware.authenticate(token)


async def get_admin_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    """Current player, who must be an admin."""
    if not user.is_admin:
        raise AuthorizationError("Admin privileges required")
    return user


def parse_session_date(value: str) -> date:
    """``YYYY-MM-DD`` or ``today``."""
    if value == "today":
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format")


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        await db.ping()
    except (asyncpg.PostgresError, OSError, RuntimeError) as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "unavailable"})
    return {"status": "healthy", "database": "connected"}


# Auth endpoints
@app.post("/api/auth/login")
async def login(request: LoginRequest):
    """Password-less login by player ID."""
    player = await player_store.get(request.player_id)
    if player is None:
        logger.warning(f"Login for unknown player {request.player_id}")
        return JSONResponse(
            status_code=401,
            content={
                "error": "Authentication failed",
                "message": "Player ID not found. Please create a profile first.",
                "requires_profile": True,
            },
        )

    token = create_access_token(player.player_id, player.first_name, player.last_name, player.is_admin)
    logger.info(f"Login: {player.player_id}")
    return {
        "message": "Login successful",
        "token": token,
        "token_type": "bearer",
        "player": player.to_dict(),
    }


@app.post("/api/auth/logout")
async def logout(user: AuthenticatedUser = Depends(get_current_user)):
    """Revoke the current token."""
    await auth_middleware.revoke_token(user.token)
    return {"message": "Logout successful"}


@app.get("/api/auth/me")
async def me(user: AuthenticatedUser = Depends(get_current_user)):
    """Current player's profile."""
    player = await profile_manager.get_player(user.player_id, actor=user)
    return {"player": player.to_dict()}


# Player endpoints
@app.post("/api/players", status_code=201)
async def create_player(request: CreatePlayerRequest):
    """Create a player profile."""
    player = await profile_manager.create_player(**request.model_dump(exclude_none=True))
    return {"message": "Player created successfully", "player": player.to_dict()}


@app.get("/api/players/{player_id}")
async def get_player(player_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    """Get a player profile."""
    player = await profile_manager.get_player(player_id, actor=user)
    return {"player": player.to_dict()}


@app.put("/api/players/{player_id}")
async def update_player(
    player_id: str,
    request: UpdatePlayerRequest,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Update a player profile."""
    player = await profile_manager.update_player(
        player_id, request.model_dump(exclude_none=True), actor=user
    )
    return {"message": "Player updated successfully", "player": player.to_dict()}


async def _session_history(player_id: str, user: AuthenticatedUser) -> dict:
    ensure_self_or_admin(user, player_id, "sessions")
    sessions = await session_manager.get_player_sessions(player_id)
    completed = sum(1 for s in sessions if s.is_completed)
    return {
        "player_id": player_id,
        "sessions": [s.to_dict() for s in sessions],
        "total_sessions": len(sessions),
        "completed_sessions": completed,
        "incomplete_sessions": len(sessions) - completed,
    }


@app.get("/api/players/{player_id}/sessions")
async def get_player_session_history(player_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    """A player's session history."""
    return await _session_history(player_id, user)


@app.post("/api/players/{player_id}/recalculate-winnings")
async def recalculate_winnings(player_id: str, admin: AuthenticatedUser = Depends(get_admin_user)):
    """Recompute a player's lifetime winnings (admin only)."""
    total = await session_manager.recalculate_player_winnings(player_id)
    logger.info(f"Manual recalculation for {player_id} by {admin.player_id}")
    return {
        "message": "Winnings recalculated successfully",
        "player_id": player_id,
        "total_winnings": float(total),
    }


# Session endpoints
@app.post("/api/sessions", status_code=201)
async def create_session(request: CreateSessionRequest, user: AuthenticatedUser = Depends(get_current_user)):
    """Check in or check out for a date."""
    player_id = request.player_id or user.player_id
    ensure_self_or_admin(user, player_id, "sessions")

    session = await session_manager.create_session(
        player_id,
        request.session_date,
        request.session_type,
        request.chip_total(),
        request.chip_breakdown(),
        request.photo_url,
    )
    action = "Check-in" if request.session_type == SessionType.CHECK_IN else "Check-out"
    return {"message": f"{action} successful", "session": session.to_dict()}


@app.get("/api/sessions/active/{player_id}/{session_date}")
async def get_active_session(
    player_id: str,
    session_date: str,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """The open session for a player on a date (``today`` allowed)."""
    ensure_self_or_admin(user, player_id, "sessions")
    session = await session_manager.get_active_session(player_id, parse_session_date(session_date))
    return {
        "has_active_session": session is not None,
        "session": session.to_dict() if session else None,
    }


@app.get("/api/sessions/{player_id}")
async def get_player_sessions(player_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    """All of a player's sessions with counts."""
    return await _session_history(player_id, user)


@app.put("/api/sessions/{session_id}")
async def update_session(
    request: UpdateSessionRequest,
    session_id: int = Path(gt=0),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Correct or complete a session."""
    session = await session_manager.update_session(
        session_id, request.model_dump(exclude_none=True), actor=user
    )
    return {"message": "Session updated successfully", "session": session.to_dict()}


@app.post("/api/sessions/{session_id}/override")
@app.put("/api/admin/sessions/{session_id}/override")
async def override_session(
    request: OverrideRequest,
    session_id: int = Path(gt=0),
    admin: AuthenticatedUser = Depends(get_admin_user),
):
    """Force a session's net winnings (admin only)."""
    result = await session_manager.override_session(
        session_id, request.net_winnings, request.reason, actor=admin
    )
    return {"message": "Session overridden successfully", **result.to_dict()}


# Leaderboard endpoints
@app.get("/api/leaderboard")
async def get_leaderboard(
    limit: int = Query(50),
    offset: int = Query(0),
    timeframe: Timeframe = Query(Timeframe.ALL),
    sort: LeaderboardSort = Query(LeaderboardSort.WINNINGS),
):
    """Ranked leaderboard page."""
    return await leaderboard.get_leaderboard(limit=limit, offset=offset, timeframe=timeframe, sort=sort)


@app.get("/api/leaderboard/stats")
async def get_leaderboard_stats():
    """Leaderboard-wide totals."""
    return {"stats": await leaderboard.get_summary()}


@app.get("/api/leaderboard/player/{player_id}")
async def get_leaderboard_position(player_id: str):
    """A player's rank and period statistics."""
    return await leaderboard.get_player_position(player_id)


# Admin endpoints
@app.get("/api/admin/chip-values")
async def get_chip_values(user: AuthenticatedUser = Depends(get_current_user)):
    """Current chip price table."""
    values = await chip_value_manager.get_chip_values()
    return {"chip_values": {color: float(v) for color, v in values.items()}}


@app.put("/api/admin/chip-values")
async def update_chip_values(request: ChipValuesRequest, admin: AuthenticatedUser = Depends(get_admin_user)):
    """Change chip prices and recalculate all winnings."""
    result = await chip_value_manager.update_chip_values(request.chip_values, actor=admin)
    return {"message": "Chip values updated successfully", **result.to_dict()}


@app.get("/api/admin/audit-logs")
async def get_audit_logs(
    limit: int = Query(100),
    offset: int = Query(0),
    admin: AuthenticatedUser = Depends(get_admin_user),
):
    """Audit trail page."""
    return await admin_console.list_audit_logs(limit, offset, actor=admin)


@app.get("/api/admin/players")
async def get_admin_players(admin: AuthenticatedUser = Depends(get_admin_user)):
    """Every player with session counts."""
    return await admin_console.list_players(actor=admin)


@app.get("/api/admin/stats")
async def get_admin_stats(admin: AuthenticatedUser = Depends(get_admin_user)):
    """System statistics."""
    return {"stats": await admin_console.stats(actor=admin)}


# Entry point
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pokerpal.main:app",
        host=config.host,
        port=config.port,
        reload=True,
    )
