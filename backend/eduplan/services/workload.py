from __future__ import annotations

from collections.abc import Iterable

from eduplan.schemas.timetable import TimetableEntry
from eduplan.services.busy_state import DEFAULT_DAILY_CAP


def teacher_workload(teacher_id: str, entries: Iterable[TimetableEntry]) -> dict[str, int]:
    workload: dict[str, int] = {"total": 0}
    seen: set[tuple[str, str]] = set()
    for entry in entries:
        if entry.teacher_id != teacher_id:
            continue
        key = (entry.day, entry.time_slot_id)
        if key in seen:
            continue
        seen.add(key)
        workload[entry.day] = workload.get(entry.day, 0) + 1
        workload["total"] += 1
    return workload


def check_teacher_availability(
    teacher_id: str,
    day: str,
    time_slot_id: str,
    entries: Iterable[TimetableEntry],
    *,
    current_entry_id: str | None = None,
) -> bool:
    return not any(
        entry.teacher_id == teacher_id
        and entry.day == day
        and entry.time_slot_id == time_slot_id
        and (current_entry_id is None or entry.id != current_entry_id)
        for entry in entries
    )


def check_daily_limit(
    teacher_id: str,
    day: str,
    entries: Iterable[TimetableEntry],
    *,
    cap: int = DEFAULT_DAILY_CAP,
    current_entry_id: str | None = None,
) -> bool:
    daily = sum(
        1
        for entry in entries
        if entry.teacher_id == teacher_id
        and entry.day == day
        and (current_entry_id is None or entry.id != current_entry_id)
    )
    return daily < cap
