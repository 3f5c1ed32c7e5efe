from fastapi import APIRouter, Request, HTTPException
from pydantic import BaseModel, Field
from typing import Optional
from slowapi import Limiter
from slowapi.util import get_remote_address

from adola.config import settings
from adola.core.game_logic import GameLogicService
from adola.core.logger import get_logger
from adola.core.rng import make_rng
from adola.core.sessions import SessionRegistry, Session
from adola.core.tables import get_tables

logger = get_logger("api")

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)

SESSION_HEADER = "X-Session-Id"
DEFAULT_SESSION = "anonymous"


def build_engine() -> GameLogicService:
    """A fresh engine for one session, wired from settings."""
    return GameLogicService(rng=make_rng(settings.engine.seed), config=settings.engine)


registry = SessionRegistry(
    build_engine,
    ttl_seconds=settings.sessions.ttl_seconds,
    max_sessions=settings.sessions.max_sessions,
)

# ==================== Request Models ====================

class CanPlayRequest(BaseModel):
    stake: float = Field(allow_inf_nan=False)
    balance: float = Field(ge=0, allow_inf_nan=False)

class ValidateRequest(BaseModel):
    stake: float = Field(allow_inf_nan=False)
    game_type: str = "default"

class PlayRequest(BaseModel):
    stake: float = Field(allow_inf_nan=False)
    balance: float = Field(ge=0, allow_inf_nan=False)
    game_type: str = "default"
    base_multiplier: Optional[float] = Field(default=None, allow_inf_nan=False)

class CrashBetRequest(BaseModel):
    stake: float = Field(allow_inf_nan=False)
    balance: float = Field(ge=0, allow_inf_nan=False)

class MinesStartRequest(BaseModel):
    stake: float = Field(allow_inf_nan=False)
    balance: float = Field(ge=0, allow_inf_nan=False)
    mines: int = 3

class MinesRevealRequest(BaseModel):
    row: int
    col: int


# ==================== Helpers ====================

def get_session(request: Request) -> Session:
    """Look up the caller's session from the X-Session-Id header."""
    session_id = request.headers.get(SESSION_HEADER, "").strip() or DEFAULT_SESSION
    if len(session_id) > 128:
        raise HTTPException(status_code=400, detail="Session id too long")
    return registry.get(session_id)

def get_game_rate_limit() -> str:
    return settings.rate_limit.game_requests if settings.rate_limit.enabled else "1000/minute"

def get_api_rate_limit() -> str:
    return settings.rate_limit.api_requests if settings.rate_limit.enabled else "1000/minute"


# ==================== Engine Endpoints ====================

@router.post("/can-play")
@limiter.limit(get_api_rate_limit)
async def can_play(request: Request, data: CanPlayRequest):
    return {
        "can_play": GameLogicService.can_play(data.stake, data.balance),
        "message": GameLogicService.get_balance_validation_message(data.stake, data.balance),
    }

@router.post("/validate")
@limiter.limit(get_api_rate_limit)
async def validate_stake(request: Request, data: ValidateRequest):
    session = get_session(request)
    return session.engine.validate_stake_bounds(data.stake, data.game_type).to_dict()

@router.post("/play")
@limiter.limit(get_game_rate_limit)
async def play(request: Request, data: PlayRequest):
    """Decide one wager. The caller persists resulting_balance."""
    session = get_session(request)
    engine = session.engine

    # Unplayable stakes come back as a tagged PlayResult; bounds apply to playable ones
    if engine.can_play(data.stake, data.balance):
        check = engine.validate_stake_bounds(data.stake, data.game_type)
        if not check.valid:
            raise HTTPException(status_code=400, detail=check.to_dict())

    with session.lock:
        result = engine.compute_result(
            data.stake, data.balance, data.game_type, data.base_multiplier
        )

    logger.info(
        "Play resolved",
        extra={
            "session_id": session.session_id,
            "game": data.game_type,
            "stake": data.stake,
            "won": result.won,
            "payout": result.payout,
            "accepted": result.success,
        },
    )
    return result.to_dict()

@router.get("/stats")
@limiter.limit(get_api_rate_limit)
async def win_loss_stats(request: Request):
    session = get_session(request)
    return session.engine.get_win_loss_stats()

@router.post("/reset")
@limiter.limit(get_api_rate_limit)
async def reset_pattern(request: Request):
    session = get_session(request)
    session.engine.reset_pattern()
    logger.info("Win/loss pattern reset", extra={"session_id": session.session_id})
    return {"success": True}

@router.get("/tables")
@limiter.limit(get_api_rate_limit)
async def game_tables(request: Request):
    return get_tables().to_dict()


# ==================== Crash Games ====================

@router.get("/crash/{game}")
@limiter.limit(get_api_rate_limit)
async def crash_status(request: Request, game: str):
    session = get_session(request)
    with session.lock:
        round_ = session.crash_round(game)
        round_.advance()
        return round_.snapshot()

@router.post("/crash/{game}/bet")
@limiter.limit(get_game_rate_limit)
async def crash_bet(request: Request, game: str, data: CrashBetRequest):
    session = get_session(request)
    with session.lock:
        result = session.crash_round(game).place_bet(data.stake, data.balance)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["error"])
    return result

@router.post("/crash/{game}/start")
@limiter.limit(get_game_rate_limit)
async def crash_start(request: Request, game: str):
    session = get_session(request)
    with session.lock:
        round_ = session.crash_round(game)
        round_.start()
        return round_.snapshot()

@router.post("/crash/{game}/cashout")
@limiter.limit(get_game_rate_limit)
async def crash_cashout(request: Request, game: str):
    session = get_session(request)
    with session.lock:
        return session.crash_round(game).cash_out()

@router.post("/crash/{game}/reset")
@limiter.limit(get_game_rate_limit)
async def crash_reset(request: Request, game: str):
    session = get_session(request)
    with session.lock:
        round_ = session.crash_round(game)
        round_.reset()
        return round_.snapshot()


# ==================== Mines ====================

@router.post("/mines/start")
@limiter.limit(get_game_rate_limit)
async def mines_start(request: Request, data: MinesStartRequest):
    session = get_session(request)
    with session.lock:
        result = session.mines_game().start(data.stake, data.balance, data.mines)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["error"])
    return result

@router.post("/mines/reveal")
@limiter.limit(get_game_rate_limit)
async def mines_reveal(request: Request, data: MinesRevealRequest):
    session = get_session(request)
    with session.lock:
        return session.mines_game().reveal(data.row, data.col)

@router.post("/mines/cashout")
@limiter.limit(get_game_rate_limit)
async def mines_cashout(request: Request):
    session = get_session(request)
    with session.lock:
        return session.mines_game().cash_out()
