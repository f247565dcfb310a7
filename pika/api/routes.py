from datetime import datetime
from typing import Callable, List, Optional
import logging

import redis
from fastapi import APIRouter, Depends, File, HTTPException, Path, Query, Response, UploadFile
from pydantic import NaiveDatetime
from sqlalchemy.orm import Session

from pika.api.schemas import (
    AssignmentDTO,
    AssignmentIn,
    DayPlanDTO,
    FocusWindowDTO,
    GradeSummaryResponse,
    NotificationSettingsDTO,
    PlannerSettingsDTO,
    PlanRequest,
    ScoreUpdate,
    SimulateResponse,
    SmsPayloadDTO,
    SyllabusExtractRequest,
    SyllabusResponse,
    SyllabusTextRequest,
    TypeBreakdownDTO,
    UploadResponse,
    UrgencyCardDTO,
    WeekPlanResponse,
)
from pika.config.settings import get_settings
from pika.engine.planner import build_weekly_plan, scheduled_minutes_by_assignment, total_overflow_minutes
from pika.errors import (
    InvalidDueDateError,
    LlmConfigurationError,
    LlmRequestError,
    PlannerConfigError,
    SyllabusValidationError,
    UnsupportedFileTypeError,
)
from pika.export.ics import build_week_ics
from pika.ingest.extract import extract_text
from pika.ingest.llm import run_assignments_llm
from pika.ingest.syllabus import parse_syllabus_text
from pika.ingest.validate import normalize_assignments
from pika.models.entities import Assignment, DayPlan, FocusWindow, PlannerSettings
from pika.storage.cache import ExtractionCache
from pika.storage.database import get_db
from pika.storage.repositories import AssignmentRepository, SettingsRepository
from pika.views.dashboard import urgency_board
from pika.views.grades import grade_summary, grades_by_type
from pika.views.notifications import build_sms_preview

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


def get_extraction_cache() -> Optional[ExtractionCache]:
    if not settings.extraction_cache_enabled:
        return None
    return ExtractionCache()


def get_llm_runner() -> Callable:
    return run_assignments_llm


def _load_planner_settings(db: Session) -> PlannerSettings:
    return SettingsRepository(db).get_planner_settings(settings.default_session_minutes)


def _plan_or_error(assignments: List[Assignment], planner_settings: PlannerSettings, now: Optional[datetime]) -> List[DayPlan]:
    try:
        return build_weekly_plan(assignments, planner_settings, now)
    except InvalidDueDateError as e:
        logger.warning(f"Plan rejected: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except PlannerConfigError as e:
        logger.error(f"Planner misconfigured: {e}")
        raise HTTPException(status_code=500, detail=str(e))


def _week_response(plans: List[DayPlan]) -> WeekPlanResponse:
    return WeekPlanResponse(
        horizon_start=plans[0].date.date(),
        days=[DayPlanDTO.from_domain(d) for d in plans],
        scheduled_minutes=scheduled_minutes_by_assignment(plans),
        overflow_minutes=total_overflow_minutes(plans),
    )


def _commit(db: Session, assignments: List[Assignment]) -> None:
    AssignmentRepository(db).replace_all(assignments)
    logger.info(f"Replaced assignment list with {len(assignments)} imported assignments")


# ----------------------------
# Assignments
# ----------------------------

@router.get("/assignments", response_model=List[AssignmentDTO], summary="List assignments")
def list_assignments(db: Session = Depends(get_db)):
    return [AssignmentDTO.from_domain(a) for a in AssignmentRepository(db).list_all()]


@router.post("/assignments", response_model=AssignmentDTO, status_code=201, summary="Create assignment")
def create_assignment(req: AssignmentIn, db: Session = Depends(get_db)):
    assignment = req.to_domain()
    AssignmentRepository(db).save(assignment)
    logger.info(f"Created assignment {assignment.id} ({assignment.name})")
    return AssignmentDTO.from_domain(assignment)


@router.put("/assignments", response_model=List[AssignmentDTO], summary="Replace all assignments")
def replace_assignments(req: List[AssignmentIn], db: Session = Depends(get_db)):
    assignments = [a.to_domain() for a in req]
    _commit(db, assignments)
    return [AssignmentDTO.from_domain(a) for a in assignments]


@router.get("/assignments/{assignment_id}", response_model=AssignmentDTO, summary="Get assignment")
def get_assignment(assignment_id: str, db: Session = Depends(get_db)):
    assignment = AssignmentRepository(db).get_by_id(assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found")
    return AssignmentDTO.from_domain(assignment)


@router.put("/assignments/{assignment_id}", response_model=AssignmentDTO, summary="Update assignment")
def update_assignment(assignment_id: str, req: AssignmentIn, db: Session = Depends(get_db)):
    repo = AssignmentRepository(db)
    existing = repo.get_by_id(assignment_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found")
    updated = req.to_domain(assignment_id, existing.created_at)
    repo.save(updated)
    logger.info(f"Updated assignment {assignment_id}")
    return AssignmentDTO.from_domain(updated)


@router.patch("/assignments/{assignment_id}/score", response_model=AssignmentDTO, summary="Set or clear a score")
def set_score(assignment_id: str, req: ScoreUpdate, db: Session = Depends(get_db)):
    repo = AssignmentRepository(db)
    if not repo.set_score(assignment_id, req.score):
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found")
    return AssignmentDTO.from_domain(repo.get_by_id(assignment_id))


@router.delete("/assignments/{assignment_id}", status_code=204, summary="Delete assignment")
def delete_assignment(assignment_id: str, db: Session = Depends(get_db)):
    if not AssignmentRepository(db).delete(assignment_id):
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found")
    return Response(status_code=204)


# ----------------------------
# Planner
# ----------------------------

@router.get("/planner/settings", response_model=PlannerSettingsDTO, summary="Get planner settings")
def get_planner_settings(db: Session = Depends(get_db)):
    return PlannerSettingsDTO.from_domain(_load_planner_settings(db))


@router.put("/planner/settings", response_model=PlannerSettingsDTO, summary="Replace planner settings")
def put_planner_settings(req: PlannerSettingsDTO, db: Session = Depends(get_db)):
    planner_settings = req.to_domain()
    SettingsRepository(db).save_planner_settings(planner_settings)
    logger.info(f"Planner settings saved: session={planner_settings.session_minutes} min")
    return PlannerSettingsDTO.from_domain(planner_settings)


@router.put(
    "/planner/settings/focus-windows/{weekday}",
    response_model=PlannerSettingsDTO,
    summary="Replace one weekday's focus windows",
)
def put_weekday_windows(
    req: List[FocusWindowDTO],
    weekday: int = Path(..., ge=0, le=6, description="0=Sunday .. 6=Saturday"),
    db: Session = Depends(get_db),
):
    current = _load_planner_settings(db)
    updated = current.with_weekday_windows(weekday, [FocusWindow(start=w.start, end=w.end) for w in req])
    SettingsRepository(db).save_planner_settings(updated)
    logger.info(f"Focus windows for weekday {weekday}: {len(req)} window(s)")
    return PlannerSettingsDTO.from_domain(updated)


@router.get("/planner/week", response_model=WeekPlanResponse, summary="Plan the week from stored data")
def get_week(
    now: Optional[NaiveDatetime] = Query(None, description="Reference instant (local, no timezone)"),
    db: Session = Depends(get_db),
):
    """
    Build the 7-day study plan from the stored assignments and settings.

    **Algorithm**: greedy earliest-deadline-first placement of each
    assignment's estimated effort into fixed-length slots carved from the
    weekly focus windows. Effort that does not fit before the due date is
    reported as `overflow_minutes` on the due day.
    """
    assignments = AssignmentRepository(db).list_all()
    plans = _plan_or_error(assignments, _load_planner_settings(db), now)
    logger.info(f"Week planned: {len(assignments)} assignments, overflow={total_overflow_minutes(plans)} min")
    return _week_response(plans)


@router.post("/planner/plan", response_model=WeekPlanResponse, summary="Plan a week from a posted snapshot")
def plan_snapshot(req: PlanRequest):
    """Stateless planning: assignments, settings and `now` all come from the request body."""
    logger.info(f"Plan request: {len(req.assignments)} assignments")
    assignments = [a.to_domain() for a in req.assignments]
    plans = _plan_or_error(assignments, req.settings.to_domain(), req.now)
    return _week_response(plans)


@router.get("/planner/week.ics", summary="Export the week as iCalendar")
def export_week_ics(
    now: Optional[NaiveDatetime] = Query(None, description="Reference instant (local, no timezone)"),
    db: Session = Depends(get_db),
):
    plans = _plan_or_error(AssignmentRepository(db).list_all(), _load_planner_settings(db), now)
    body = build_week_ics(plans)
    filename = f"pika-week-{plans[0].date.strftime('%Y-%m-%d')}.ics"
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ----------------------------
# Read-only views
# ----------------------------

@router.get("/dashboard", response_model=List[UrgencyCardDTO], summary="Urgency-sorted countdowns")
def dashboard(
    now: Optional[NaiveDatetime] = Query(None, description="Reference instant (local, no timezone)"),
    db: Session = Depends(get_db),
):
    try:
        cards = urgency_board(AssignmentRepository(db).list_all(), now)
    except InvalidDueDateError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return [
        UrgencyCardDTO(
            assignment=AssignmentDTO.from_domain(c.assignment),
            due=c.due,
            countdown=c.countdown,
            urgency=c.urgency,
        )
        for c in cards
    ]


@router.get("/grades", response_model=GradeSummaryResponse, summary="Weighted grade projection")
def grades(goal: float = Query(90.0, ge=0, le=100), db: Session = Depends(get_db)):
    assignments = AssignmentRepository(db).list_all()
    summary = grade_summary(assignments, goal)
    return GradeSummaryResponse(
        goal=summary.goal,
        total_weight=summary.total_weight,
        scored_weight=summary.scored_weight,
        remaining_weight=summary.remaining_weight,
        points=summary.points,
        current=summary.current,
        needed=summary.needed,
        needed_label=summary.needed_label,
        by_type=[
            TypeBreakdownDTO(type=b.type, count=b.count, scored_weight=b.scored_weight, average=b.average)
            for b in grades_by_type(assignments)
        ],
    )


# ----------------------------
# Syllabus ingestion
# ----------------------------

@router.post("/syllabus/parse", response_model=SyllabusResponse, summary="Parse syllabus text locally")
def parse_syllabus(
    req: SyllabusTextRequest,
    commit: bool = Query(False, description="Replace stored assignments with the result"),
    db: Session = Depends(get_db),
):
    assignments = parse_syllabus_text(req.text)
    logger.info(f"Local syllabus parse: {len(assignments)} assignment(s)")
    committed = commit and bool(assignments)
    if committed:
        _commit(db, assignments)
    return SyllabusResponse(
        assignments=[AssignmentDTO.from_domain(a) for a in assignments],
        committed=committed,
        source="local",
    )


@router.post("/syllabus/extract", response_model=SyllabusResponse, summary="Extract assignments with an LLM")
def extract_syllabus(
    req: SyllabusExtractRequest,
    commit: bool = Query(False, description="Replace stored assignments with the result"),
    refresh: bool = Query(False, description="Drop any cached reply and ask the model again"),
    db: Session = Depends(get_db),
    cache: Optional[ExtractionCache] = Depends(get_extraction_cache),
    run_llm: Callable = Depends(get_llm_runner),
):
    """
    Send syllabus text to the selected model and validate its JSON reply.

    Replies are cached per provider and text; `refresh=true` invalidates the
    cached entry first.

    **Error Handling:**
    - 422: the model reply does not match the assignment schema
    - 502: provider not configured, unreachable, or returned garbage
    """
    provider = req.provider.value
    text_hash = ExtractionCache.hash_text(provider, req.text)
    parsed_json = None
    if cache:
        try:
            if refresh:
                cache.delete(text_hash)
                logger.info(f"Extraction cache entry {text_hash} invalidated")
            parsed_json = cache.get(text_hash)
        except redis.RedisError as e:
            logger.warning(f"Extraction cache unavailable, calling model directly: {e}")
            cache = None
    cached = parsed_json is not None

    if not cached:
        try:
            result = run_llm(req.provider, req.text)
        except (LlmConfigurationError, LlmRequestError) as e:
            logger.warning(f"LLM extraction failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        parsed_json = result.parsed_json

    try:
        assignments = normalize_assignments(parsed_json)
    except SyllabusValidationError as e:
        logger.warning(f"LLM output rejected: {len(e.errors)} validation error(s)")
        raise HTTPException(status_code=422, detail={"message": str(e), "errors": e.errors})

    if cache and not cached:
        try:
            cache.set(text_hash, parsed_json)
        except redis.RedisError as e:
            logger.warning(f"Could not cache extraction {text_hash}: {e}")

    if commit:
        _commit(db, assignments)
    logger.info(f"LLM extraction via {provider}: {len(assignments)} assignment(s), cached={cached}")
    return SyllabusResponse(
        assignments=[AssignmentDTO.from_domain(a) for a in assignments],
        committed=commit,
        cached=cached,
        source=provider,
    )


@router.post("/syllabus/upload", response_model=UploadResponse, summary="Upload a syllabus document")
async def upload_syllabus(
    file: UploadFile = File(...),
    commit: bool = Query(False, description="Replace stored assignments with the locally parsed result"),
    db: Session = Depends(get_db),
):
    """Extract text from a PDF, DOCX or TXT upload and run the local parser over it."""
    data = await file.read()
    try:
        extracted = extract_text(file.filename or "", data)
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    assignments = parse_syllabus_text(extracted.text)
    logger.info(f"Upload {extracted.file_name}: {len(extracted.text)} chars, {len(assignments)} assignment(s)")
    committed = commit and bool(assignments)
    if committed:
        _commit(db, assignments)
    return UploadResponse(
        assignments=[AssignmentDTO.from_domain(a) for a in assignments],
        committed=committed,
        source="local",
        file_name=extracted.file_name,
        file_type=extracted.file_type,
        text=extracted.text,
    )


# ----------------------------
# Notifications
# ----------------------------

@router.get("/notifications/settings", response_model=NotificationSettingsDTO, summary="Get notification settings")
def get_notification_settings(db: Session = Depends(get_db)):
    return NotificationSettingsDTO.from_domain(SettingsRepository(db).get_notification_settings())


@router.put("/notifications/settings", response_model=NotificationSettingsDTO, summary="Save notification settings")
def put_notification_settings(req: NotificationSettingsDTO, db: Session = Depends(get_db)):
    SettingsRepository(db).save_notification_settings(req.to_domain())
    return req


@router.post("/notifications/simulate", response_model=SimulateResponse, summary="Preview SMS notifications")
def simulate_notifications(
    now: Optional[NaiveDatetime] = Query(None, description="Reference instant (local, no timezone)"),
    db: Session = Depends(get_db),
):
    now = now or datetime.now()
    assignments = AssignmentRepository(db).list_all()
    notification_settings = SettingsRepository(db).get_notification_settings()
    plans = None
    if notification_settings.daily_study_reminders:
        plans = _plan_or_error(assignments, _load_planner_settings(db), now)
    try:
        payloads = build_sms_preview(notification_settings, assignments, now, plans)
    except InvalidDueDateError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SimulateResponse(messages=[SmsPayloadDTO(to=p.to, body=p.body, kind=p.kind) for p in payloads])
