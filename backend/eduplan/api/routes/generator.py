import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from eduplan.api.deps import get_app_settings, get_generation_jobs
from eduplan.core.config import Settings
from eduplan.schemas.generator import (
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    GenerationJobOut,
    ScheduleValidation,
    ValidateScheduleRequest,
)
from eduplan.services.generation import run_generation, teacher_constraint_map
from eduplan.services.generation_jobs import GenerationJobStore, run_generation_job
from eduplan.services.overlap_graph import TimeOverlapGraph
from eduplan.services.schedule_validator import ScheduleValidator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=GenerateTimetableResponse)
def generate_timetable(
    payload: GenerateTimetableRequest,
    settings: Settings = Depends(get_app_settings),
) -> GenerateTimetableResponse:
    return run_generation(payload, settings=settings)


@router.post("/jobs", response_model=GenerationJobOut, status_code=status.HTTP_202_ACCEPTED)
def create_generation_job(
    payload: GenerateTimetableRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_app_settings),
    store: GenerationJobStore = Depends(get_generation_jobs),
) -> GenerationJobOut:
    job = store.create()
    logger.info("Queued generation job %s scope=%s allocations=%d", job.id, payload.scope, len(payload.allocations))
    background_tasks.add_task(run_generation_job, job.id, payload, store=store, settings=settings)
    return job


@router.get("/jobs/{job_id}", response_model=GenerationJobOut)
def get_generation_job(
    job_id: str,
    store: GenerationJobStore = Depends(get_generation_jobs),
) -> GenerationJobOut:
    return store.get(job_id)


@router.post("/jobs/{job_id}/cancel", response_model=GenerationJobOut)
def cancel_generation_job(
    job_id: str,
    store: GenerationJobStore = Depends(get_generation_jobs),
) -> GenerationJobOut:
    return store.request_cancel(job_id)


@router.post("/validate", response_model=ScheduleValidation)
def validate_schedule(payload: ValidateScheduleRequest) -> ScheduleValidation:
    validator = ScheduleValidator(
        TimeOverlapGraph(payload.time_slots),
        payload.existing_entries,
        teacher_constraints=teacher_constraint_map(payload.teachers),
        daily_cap=payload.daily_cap,
    )
    return validator.validate_schedule(payload.entries, editing_entry_id=payload.editing_entry_id)
