from __future__ import annotations

from collections.abc import Iterable
import logging

from eduplan.core.config import Settings
from eduplan.core.exceptions import SchedulerError
from eduplan.schemas.generator import GenerateTimetableRequest, GenerateTimetableResponse, GenerationSettingsBase
from eduplan.schemas.timetable import TeacherAvailability, TeacherConstraint
from eduplan.services.capacity import analyze_capacity
from eduplan.services.greedy_scheduler import CancelCheck, ProgressCallback, RandomizedGreedyScheduler
from eduplan.services.scope_resolver import filter_allocations

logger = logging.getLogger(__name__)


def default_generation_settings(settings: Settings) -> GenerationSettingsBase:
    return GenerationSettingsBase(
        daily_cap=settings.max_daily_periods,
        time_budget_seconds=settings.generation_time_budget_seconds,
        max_iterations=settings.max_iterations,
        max_iterations_large=settings.max_iterations_large,
        large_input_threshold=settings.large_input_threshold,
        random_seed=settings.random_seed,
    )


def resolve_generation_settings(
    settings: Settings,
    override: GenerationSettingsBase | None,
) -> GenerationSettingsBase:
    defaults = default_generation_settings(settings)
    if override is None:
        return defaults
    return defaults.model_copy(update=override.model_dump(exclude_unset=True))


def teacher_constraint_map(teachers: Iterable[TeacherAvailability]) -> dict[str, TeacherConstraint]:
    return {
        teacher.teacher_id: TeacherConstraint(unavailable_slots=teacher.unavailable_slots)
        for teacher in teachers
    }


def run_generation(
    request: GenerateTimetableRequest,
    *,
    settings: Settings,
    on_progress: ProgressCallback | None = None,
    should_cancel: CancelCheck | None = None,
) -> GenerateTimetableResponse:
    generation_settings = resolve_generation_settings(settings, request.settings_override)
    strict_scope = settings.strict_scope_resolution if request.strict_scope is None else request.strict_scope

    scoped = filter_allocations(
        request.allocations,
        request.scope,
        request.scope_id,
        request.divisions,
        strict=strict_scope,
    )
    if not scoped:
        raise SchedulerError(
            "No allocations found for the selected scope.",
            details={"scope": request.scope, "scope_id": request.scope_id},
        )

    working_days = list(settings.default_working_days) if request.working_days is None else request.working_days
    warnings = analyze_capacity(scoped, request.time_slots, working_days).warnings()
    for message in warnings:
        logger.warning(message)

    scheduler = RandomizedGreedyScheduler(
        request.time_slots,
        request.existing_entries,
        working_days,
        teacher_constraint_map(request.teachers),
        settings=generation_settings,
    )
    logger.info(
        "Starting generation for %d allocations. Scope: %s%s",
        len(scoped),
        request.scope,
        f" ({request.scope_id})" if request.scope_id else "",
    )
    result = scheduler.generate(scoped, on_progress=on_progress, should_cancel=should_cancel)

    schedule = result.schedule
    if request.school_id:
        schedule = [entry.model_copy(update={"school_id": request.school_id}) for entry in schedule]

    if result.failures:
        logger.warning(
            "Timetable generation had %d failure(s): %s",
            len(result.failures),
            "; ".join(failure.reason for failure in result.failures),
        )

    return GenerateTimetableResponse(
        schedule=schedule,
        failures=result.failures,
        placed_count=result.placed_count,
        total_lessons=result.total_lessons,
        iterations=result.iterations,
        runtime_ms=result.runtime_ms,
        scope=request.scope,
        scope_id=request.scope_id,
        allocation_count=len(scoped),
        warnings=warnings,
        settings_used=generation_settings,
    )
