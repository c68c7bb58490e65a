from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
import logging
import random
from time import perf_counter

from eduplan.core.config import DEFAULT_WORKING_DAYS
from eduplan.schemas.generator import GenerationFailure, GenerationResult, GenerationSettingsBase
from eduplan.schemas.timetable import (
    Allocation,
    TeacherConstraint,
    TimeSlot,
    TimetableEntry,
)
from eduplan.services.busy_state import BusyStateTracker
from eduplan.services.overlap_graph import TimeOverlapGraph

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class Lesson:
    lesson_id: str
    allocation: Allocation


@dataclass(frozen=True)
class SlotCandidate:
    day: str
    slot: TimeSlot


@dataclass(frozen=True)
class Placement:
    day: str
    slot_id: str


def expand_lessons(allocations: Iterable[Allocation]) -> tuple[list[Lesson], dict[str, int], dict[tuple[str, str], int]]:
    lessons: list[Lesson] = []
    teacher_load: dict[str, int] = defaultdict(int)
    class_load: dict[tuple[str, str], int] = defaultdict(int)

    for allocation in allocations:
        teacher_load[allocation.teacher_id] += allocation.periods_per_week
        class_load[allocation.class_key] += allocation.periods_per_week
        prefix = "-".join(
            (allocation.teacher_id, allocation.subject_id, allocation.grade_id, allocation.section_id)
        )
        for index in range(allocation.periods_per_week):
            lessons.append(Lesson(lesson_id=f"{prefix}-{index}", allocation=allocation))

    return lessons, dict(teacher_load), dict(class_load)


def order_lessons(
    lessons: Sequence[Lesson],
    teacher_load: Mapping[str, int],
    class_load: Mapping[tuple[str, str], int],
) -> list[Lesson]:
    # Most constrained first: busiest teacher, then busiest class.
    return sorted(
        lessons,
        key=lambda lesson: (
            -teacher_load.get(lesson.allocation.teacher_id, 0),
            -class_load.get(lesson.allocation.class_key, 0),
        ),
    )


class RandomizedGreedyScheduler:
    """Restart-based greedy timetable solver with a wall-clock budget.

    Every attempt starts from the occupancy of the pre-existing entries: the
    busy-state is snapshotted before an attempt and restored after it, so
    placements never leak from one restart into the next. The best attempt
    (most lessons placed) wins; the search stops early on a perfect attempt,
    on the deadline, or when ``should_cancel`` says so. Both checks run once
    per outer iteration.
    """

    def __init__(
        self,
        time_slots: Iterable[TimeSlot],
        existing_entries: Iterable[TimetableEntry] = (),
        working_days: Sequence[str] | None = None,
        teacher_constraints: Mapping[str, TeacherConstraint] | None = None,
        *,
        settings: GenerationSettingsBase | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.time_slots = list(time_slots)
        self.existing_entries = list(existing_entries)
        self.working_days = list(DEFAULT_WORKING_DAYS) if working_days is None else list(working_days)
        self.teacher_constraints = dict(teacher_constraints or {})
        self.settings = settings or GenerationSettingsBase()
        self.random = rng or random.Random(self.settings.random_seed)
        self._clock = clock or perf_counter

        self.overlap_graph = TimeOverlapGraph(self.time_slots)
        self.search_slots = self._build_search_space()
        self._candidates_by_division: dict[str | None, list[SlotCandidate]] = {}

        self.busy = BusyStateTracker(self.overlap_graph, self.teacher_constraints)
        self.busy.initialize(self.existing_entries)

    def _build_search_space(self) -> list[SlotCandidate]:
        expanded: list[SlotCandidate] = []
        for day in self.working_days:
            if not day or not isinstance(day, str):
                continue
            for slot in self.time_slots:
                if slot.day and slot.day != day:
                    continue
                if slot.is_break:
                    continue
                expanded.append(SlotCandidate(day=day, slot=slot))
        return expanded

    def _candidates_for(self, division_id: str | None) -> list[SlotCandidate]:
        cached = self._candidates_by_division.get(division_id)
        if cached is None:
            if division_id:
                cached = [
                    candidate
                    for candidate in self.search_slots
                    if not candidate.slot.division_id or candidate.slot.division_id == division_id
                ]
            else:
                cached = list(self.search_slots)
            self._candidates_by_division[division_id] = cached
        return cached

    def find_best_slot(self, lesson: Lesson) -> Placement | None:
        allocation = lesson.allocation
        candidates = list(self._candidates_for(allocation.division_id))
        self.random.shuffle(candidates)

        for candidate in candidates:
            day = candidate.day
            slot_id = candidate.slot.id
            if self.busy.is_teacher_busy(allocation.teacher_id, day, slot_id):
                continue
            if self.busy.is_class_busy(allocation.grade_id, allocation.section_id, day, slot_id):
                continue
            if not self.busy.daily_load_ok(allocation.teacher_id, day, self.settings.daily_cap):
                continue
            return Placement(day=day, slot_id=slot_id)
        return None

    @staticmethod
    def _build_entry(lesson: Lesson, placement: Placement) -> TimetableEntry:
        allocation = lesson.allocation
        return TimetableEntry(
            id=lesson.lesson_id,
            school_id=allocation.school_id,
            teacher_id=allocation.teacher_id,
            subject_id=allocation.subject_id,
            grade=allocation.grade_id,
            section=allocation.section_id,
            day=placement.day,
            time_slot_id=placement.slot_id,
            division_id=allocation.division_id or "",
        )

    def _run_attempt(self, lessons: Sequence[Lesson]) -> list[TimetableEntry]:
        schedule: list[TimetableEntry] = []
        for lesson in lessons:
            placement = self.find_best_slot(lesson)
            if placement is None:
                continue
            entry = self._build_entry(lesson, placement)
            schedule.append(entry)
            self.busy.mark_busy(entry, True)
        return schedule

    def generate(
        self,
        allocations: Iterable[Allocation],
        on_progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> GenerationResult:
        start = self._clock()
        lessons, teacher_load, class_load = expand_lessons(allocations)
        ordered = order_lessons(lessons, teacher_load, class_load)
        total = len(ordered)
        max_iterations = self.settings.iteration_cap(total)
        time_budget = self.settings.time_budget_seconds

        logger.info(
            "Starting randomized greedy solver lessons=%d candidates=%d max_iterations=%d budget=%.1fs",
            total,
            len(self.search_slots),
            max_iterations,
            time_budget,
        )

        best: list[TimetableEntry] = []
        iterations = 0
        for iteration in range(max_iterations):
            # The first attempt always runs so a zero budget still yields a schedule.
            if iteration > 0 and self._clock() - start > time_budget:
                logger.info("Time budget of %.1fs exhausted after %d iteration(s)", time_budget, iterations)
                break
            if should_cancel is not None and should_cancel():
                logger.info("Generation cancelled after %d iteration(s)", iterations)
                break

            current = list(ordered)
            if iteration > 0:
                self.random.shuffle(current)

            snapshot = self.busy.snapshot()
            try:
                attempt = self._run_attempt(current)
            finally:
                self.busy.restore(snapshot)
            iterations += 1

            if len(attempt) > len(best):
                best = attempt
                logger.debug("New best: %d/%d (iteration %d)", len(best), total, iteration)
                if on_progress is not None:
                    on_progress(len(best), total)

            if len(attempt) == total:
                break

        runtime_ms = int((self._clock() - start) * 1000)
        failures: list[GenerationFailure] = []
        if len(best) == total:
            logger.info("Successfully scheduled all %d lessons in %d iteration(s)", total, iterations)
        else:
            logger.warning("Greedy solver finished. Scheduled %d/%d lessons.", len(best), total)
            failures.append(
                GenerationFailure(
                    reason=f"Could not find perfect schedule. Scheduled {len(best)}/{total} lessons."
                )
            )

        return GenerationResult(
            schedule=best,
            failures=failures,
            placed_count=len(best),
            total_lessons=total,
            iterations=iterations,
            runtime_ms=runtime_ms,
        )
