import datetime
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from projects_memory.application.scheduler import ReviewScheduler
from projects_memory.application.stats.report import build_chart_data
from projects_memory.consts import VERSION
from projects_memory.domain.errors import NoCandidatesError, StorageError
from projects_memory.domain.stats.models import Candidate, ReviewAction

logger = logging.getLogger("projects_memory.server")


def create_app(scheduler: ReviewScheduler | None = None) -> FastAPI:
    """
    Build the HTTP API. Without an explicit scheduler, one is built from the
    resolved configuration at startup. The scheduler (and its session) lives
    as long as the process.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "scheduler", None) is None:
            from projects_memory.application.config import resolve_config
            from projects_memory.application.factory import get_scheduler

            app.state.scheduler = get_scheduler(resolve_config())
        logger.info(f"projects-memory server v{VERSION} starting up...")
        yield
        logger.info("projects-memory server shutting down...")

    app = FastAPI(
        title="projects-memory",
        description="Adaptive review scheduler for long-lived projects.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.scheduler = scheduler
    app.state.start_time = time.time()
    _register_routes(app)
    return app


def get_scheduler(request: Request) -> ReviewScheduler:
    scheduler = request.app.state.scheduler
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CandidateModel(BaseModel):
    key: str
    display_name: str
    base_score_override: float | None = None
    last_known_timestamp: float | None = None


class NextRequest(BaseModel):
    candidates: list[CandidateModel]


class SelectionResponse(BaseModel):
    key: str
    display_name: str
    is_new: bool
    effective_score: float
    stats: dict


class ReviewRequest(BaseModel):
    key: str
    action: ReviewAction
    minutes: float = Field(default=0.0, ge=0)


class ReviewResponse(BaseModel):
    key: str
    action: ReviewAction
    counted: bool
    stats: dict


class KeyRequest(BaseModel):
    key: str


class TimerStartRequest(BaseModel):
    duration_ms: int = Field(gt=0)


class TimerResponse(BaseModel):
    active: bool
    remaining_ms: int | None = None
    percent_complete: float | None = None
    completed: bool = False


def _register_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Simple health check to verify server is reachable.
        """
        return HealthResponse(
            status="ok", version=VERSION, uptime_seconds=time.time() - app.state.start_time
        )

    @app.get("/version")
    async def get_version():
        return {"version": VERSION}

    @app.post("/next", response_model=SelectionResponse)
    async def select_next(req: NextRequest, scheduler: ReviewScheduler = Depends(get_scheduler)):
        """Pick the next project among the host's eligible candidates."""
        candidates = [Candidate(**c.model_dump()) for c in req.candidates]
        try:
            selection = scheduler.select_next(candidates)
        except NoCandidatesError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

        return SelectionResponse(
            key=selection.key,
            display_name=selection.display_name,
            is_new=selection.is_new,
            effective_score=selection.effective_score,
            stats=selection.stats.to_dict(),
        )

    @app.post("/review", response_model=ReviewResponse)
    async def record_review(req: ReviewRequest, scheduler: ReviewScheduler = Depends(get_scheduler)):
        try:
            outcome = scheduler.record_action(req.key, req.action, minutes=req.minutes)
        except StorageError as e:
            logger.error(f"Review of {req.key} not saved: {e}")
            raise HTTPException(status_code=503, detail=str(e)) from e

        return ReviewResponse(
            key=outcome.key,
            action=outcome.action,
            counted=outcome.counted,
            stats=outcome.stats.to_dict(),
        )

    @app.post("/ignore")
    async def ignore(req: KeyRequest, scheduler: ReviewScheduler = Depends(get_scheduler)):
        scheduler.ignore(req.key)
        return {"ignored": sorted(scheduler.session.ignored)}

    @app.get("/stats")
    async def all_stats(scheduler: ReviewScheduler = Depends(get_scheduler)):
        return scheduler.load_all_stats().to_dict()

    @app.get("/stats/{key:path}")
    async def project_stats(key: str, scheduler: ReviewScheduler = Depends(get_scheduler)):
        try:
            return scheduler.get_stats(key).to_dict()
        except StorageError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e

    @app.get("/report")
    async def report(days: int = 30, scheduler: ReviewScheduler = Depends(get_scheduler)):
        if days < 1:
            raise HTTPException(status_code=422, detail="days must be positive")
        chart = build_chart_data(scheduler.load_all_stats(), datetime.date.today(), days=days)
        return asdict(chart)

    @app.post("/timer/start", response_model=TimerResponse)
    async def timer_start(req: TimerStartRequest, scheduler: ReviewScheduler = Depends(get_scheduler)):
        scheduler.start_timed_activity(req.duration_ms)
        return _timer_state(scheduler)

    @app.post("/timer/cancel", response_model=TimerResponse)
    async def timer_cancel(scheduler: ReviewScheduler = Depends(get_scheduler)):
        scheduler.cancel_timed_activity()
        return TimerResponse(active=False)

    @app.get("/timer", response_model=TimerResponse)
    async def timer_state(scheduler: ReviewScheduler = Depends(get_scheduler)):
        return _timer_state(scheduler)


def _timer_state(scheduler: ReviewScheduler) -> TimerResponse:
    progress = scheduler.tick_timed_activity()
    if progress is None:
        return TimerResponse(active=False)
    return TimerResponse(
        active=not progress.completed,
        remaining_ms=progress.remaining_ms,
        percent_complete=progress.percent_complete,
        completed=progress.completed,
    )


app = create_app()
