from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging
import os
from pathlib import Path

from challenge_engine.database import engine, get_db, SessionLocal, Base
from challenge_engine import models  # noqa: F401 - register models with Base
from challenge_engine.schemas import (
    ChallengeResponse, OccurrenceCreate, OccurrenceResponse, CancelResponse,
    CompletionRequest, CompletionResponse, HistoryEntryResponse,
    UserProgressResponse, AchievementProgressResponse, AchievementShareResponse,
)
from challenge_engine.auth import verify_api_key, get_current_user_id
from challenge_engine.exceptions import (
    NotFoundException, InvalidArgumentException, ConflictException,
)
from challenge_engine.services.catalog_service import ChallengeCatalog
from challenge_engine.services.scheduling_service import SchedulingService
from challenge_engine.services.progress_service import ProgressService
from challenge_engine.services.achievement_service import AchievementService
from challenge_engine.services.completion_service import CompletionService
from challenge_engine.scheduler import start_scheduler, stop_scheduler
from challenge_engine.seed import seed_catalog
from challenge_engine.constants import (
    DEFAULT_LOG_DIRECTORY_PROD, DEFAULT_LOG_DIRECTORY_DEV, CORS_ALLOWED_ORIGINS,
    HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT,
)

LOG_DIR = os.getenv("CHALLENGE_ENGINE_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("CHALLENGE_ENGINE_LOG_FILE", "app.log")
SCHEDULER_ENABLED = os.getenv("CHALLENGE_ENGINE_SCHEDULER_ENABLED", "true").lower() == "true"

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("challenge_engine")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Challenge Engine API",
    description="Scheduling queue, progress ledger and achievements for 2-minute challenges",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== ERROR MAPPING =====

@app.exception_handler(NotFoundException)
async def not_found_handler(request: Request, exc: NotFoundException):
    logger.info(f"Not found on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not found"})


@app.exception_handler(InvalidArgumentException)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentException):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "field": exc.field}
    )


@app.exception_handler(ConflictException)
async def conflict_handler(request: Request, exc: ConflictException):
    logger.warning(f"Conflict on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


# Startup event
@app.on_event("startup")
async def startup_event():
    db = SessionLocal()
    try:
        seed_catalog(db)
    finally:
        db.close()
    logger.info(f"Challenge Engine API started. Logging to: {log_path}")
    if SCHEDULER_ENABLED:
        start_scheduler()


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Challenge Engine API")
    stop_scheduler()


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Challenge Engine API", "status": "active"}


# ===== OCCURRENCE ENDPOINTS =====

@app.get("/api/occurrences/next", response_model=Optional[OccurrenceResponse], dependencies=[Depends(verify_api_key)])
def get_next_occurrence(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get the next eligible occurrence with its challenge, or null"""
    return SchedulingService(db).next(user_id)


@app.get("/api/occurrences", response_model=List[OccurrenceResponse], dependencies=[Depends(verify_api_key)])
def list_eligible_occurrences(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get every occurrence eligible right now, in presentation order"""
    return SchedulingService(db).list_eligible(user_id)


@app.post("/api/occurrences", response_model=OccurrenceResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
def create_occurrence(
    payload: OccurrenceCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Enqueue an occurrence (called by the schedule generator)"""
    return SchedulingService(db).create(user_id, payload.challenge_id, payload.scheduled_time)


@app.post("/api/occurrences/{occurrence_id}/postpone", response_model=OccurrenceResponse, dependencies=[Depends(verify_api_key)])
def postpone_occurrence(
    occurrence_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Snooze an occurrence for two minutes"""
    return SchedulingService(db).postpone(occurrence_id, user_id)


@app.post("/api/occurrences/{occurrence_id}/cancel", response_model=CancelResponse, dependencies=[Depends(verify_api_key)])
def cancel_occurrence(
    occurrence_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Cancel an occurrence permanently"""
    return {"success": SchedulingService(db).cancel(occurrence_id, user_id)}


@app.post("/api/occurrences/{occurrence_id}/complete", response_model=CompletionResponse, dependencies=[Depends(verify_api_key)])
def complete_occurrence(
    occurrence_id: int,
    payload: CompletionRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Resolve an occurrence as success or failed"""
    result = CompletionService(db).complete_occurrence(
        occurrence_id, user_id, payload.time_spent, payload.status
    )
    # Read attributes while the session is still open
    return CompletionResponse.model_validate(result)


# ===== PROGRESS ENDPOINTS =====

@app.get("/api/progress", response_model=UserProgressResponse, dependencies=[Depends(verify_api_key)])
def get_user_progress(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get the user's ledger snapshot"""
    return ProgressService(db).get_progress(user_id)


@app.get("/api/history", response_model=List[HistoryEntryResponse], dependencies=[Depends(verify_api_key)])
def get_history(
    limit: int = Query(HISTORY_DEFAULT_LIMIT, ge=1, le=HISTORY_MAX_LIMIT),
    on_date: Optional[date] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get recent completions, or all completions of one day (YYYY-MM-DD)"""
    return ProgressService(db).get_history(user_id, limit, on_date)


# ===== ACHIEVEMENT ENDPOINTS =====

@app.get("/api/achievements", response_model=List[AchievementProgressResponse], dependencies=[Depends(verify_api_key)])
def get_user_achievements(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get all achievements with the user's progress and unlock state"""
    return [
        AchievementProgressResponse.model_validate(item)
        for item in AchievementService(db).evaluate(user_id)
    ]


@app.get("/api/achievements/share/{user_achievement_id}", response_model=AchievementShareResponse, dependencies=[Depends(verify_api_key)])
def get_achievement_share(user_achievement_id: int, db: Session = Depends(get_db)):
    """Read-only view of an unlocked achievement for share links"""
    return AchievementService(db).get_share(user_achievement_id)


# ===== CATALOG ENDPOINTS =====

@app.get("/api/challenges", response_model=List[ChallengeResponse], dependencies=[Depends(verify_api_key)])
def get_challenges(category: str, db: Session = Depends(get_db)):
    """Get all challenges of one category"""
    return ChallengeCatalog(db).get_by_category(category)


@app.get("/api/challenges/random", response_model=Optional[ChallengeResponse], dependencies=[Depends(verify_api_key)])
def get_random_challenge(db: Session = Depends(get_db)):
    """Draw a random challenge from the catalog"""
    return ChallengeCatalog(db).get_random()


@app.get("/api/challenges/{challenge_id}", response_model=ChallengeResponse, dependencies=[Depends(verify_api_key)])
def get_challenge(challenge_id: int, db: Session = Depends(get_db)):
    """Get one challenge"""
    return ChallengeCatalog(db).require(challenge_id)
