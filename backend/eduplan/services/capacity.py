from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from eduplan.schemas.timetable import Allocation, TimeSlot


@dataclass
class CapacityReport:
    weekly_capacity: int
    under_allocated: dict[str, int] = field(default_factory=dict)
    over_allocated: dict[str, int] = field(default_factory=dict)
    overloaded_teachers: dict[str, int] = field(default_factory=dict)

    def warnings(self) -> list[str]:
        messages: list[str] = []
        if self.under_allocated:
            details = ", ".join(
                f"{key} ({total}/{self.weekly_capacity})" for key, total in sorted(self.under_allocated.items())
            )
            messages.append(f"Under-allocated classes detected: {details}. Gaps will occur.")
        if self.over_allocated:
            details = ", ".join(
                f"{key} ({total}/{self.weekly_capacity})" for key, total in sorted(self.over_allocated.items())
            )
            messages.append(f"Over-allocated classes cannot be fully scheduled: {details}.")
        if self.overloaded_teachers:
            details = ", ".join(
                f"{key} ({total}/{self.weekly_capacity})" for key, total in sorted(self.overloaded_teachers.items())
            )
            messages.append(f"Teachers allocated beyond weekly capacity: {details}.")
        return messages


def weekly_class_capacity(time_slots: Iterable[TimeSlot], working_days: Sequence[str]) -> int:
    class_slots = sum(1 for slot in time_slots if slot.type == "class")
    return len(working_days) * class_slots


def analyze_capacity(
    allocations: Iterable[Allocation],
    time_slots: Iterable[TimeSlot],
    working_days: Sequence[str],
) -> CapacityReport:
    capacity = weekly_class_capacity(time_slots, working_days)

    class_totals: dict[str, int] = defaultdict(int)
    teacher_totals: dict[str, int] = defaultdict(int)
    for allocation in allocations:
        class_totals[f"{allocation.grade_id}-{allocation.section_id}"] += allocation.periods_per_week
        teacher_totals[allocation.teacher_id] += allocation.periods_per_week

    report = CapacityReport(weekly_capacity=capacity)
    for key, total in class_totals.items():
        if total < capacity:
            report.under_allocated[key] = total
        elif total > capacity:
            report.over_allocated[key] = total
    for teacher_id, total in teacher_totals.items():
        if total > capacity:
            report.overloaded_teachers[teacher_id] = total
    return report
