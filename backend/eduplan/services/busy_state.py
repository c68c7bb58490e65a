from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from eduplan.schemas.timetable import TeacherConstraint, TimetableEntry, unavailable_slot_key
from eduplan.services.overlap_graph import TimeOverlapGraph

DEFAULT_DAILY_CAP = 7

TeacherKey = tuple[str, str, str]
ClassKey = tuple[str, str, str, str]
DailyKey = tuple[str, str]


@dataclass(frozen=True)
class BusySnapshot:
    teacher_busy: frozenset[TeacherKey]
    class_busy: frozenset[ClassKey]
    daily_load: tuple[tuple[DailyKey, int], ...]


class BusyStateTracker:
    """Occupancy record for teachers and classes during one generation run.

    Keys:
    - teacher busy: (teacher_id, day, slot_id)
    - class busy: (grade, section, day, slot_id)
    - daily load: (teacher_id, day) -> placed periods
    """

    def __init__(
        self,
        overlap_graph: TimeOverlapGraph,
        teacher_constraints: Mapping[str, TeacherConstraint] | None = None,
    ) -> None:
        self.overlap_graph = overlap_graph
        self.teacher_constraints = dict(teacher_constraints or {})
        self._unavailable: dict[str, frozenset[str]] = self._index_unavailable(self.teacher_constraints)
        self.teacher_busy: set[TeacherKey] = set()
        self.class_busy: set[ClassKey] = set()
        self.daily_load: dict[DailyKey, int] = {}

    @staticmethod
    def _index_unavailable(constraints: Mapping[str, TeacherConstraint]) -> dict[str, frozenset[str]]:
        return {
            teacher_id: frozenset(constraint.unavailable_slots)
            for teacher_id, constraint in constraints.items()
            if constraint is not None and constraint.unavailable_slots
        }

    def initialize(self, existing_entries: Iterable[TimetableEntry]) -> None:
        for entry in existing_entries:
            self.mark_busy(entry, True)

    def mark_busy(self, entry: TimetableEntry, busy: bool) -> None:
        teacher_key = (entry.teacher_id, entry.day, entry.time_slot_id)
        class_key = (entry.grade, entry.section, entry.day, entry.time_slot_id)
        daily_key = (entry.teacher_id, entry.day)

        if busy:
            self.teacher_busy.add(teacher_key)
            self.class_busy.add(class_key)
            self.daily_load[daily_key] = self.daily_load.get(daily_key, 0) + 1
            return

        self.teacher_busy.discard(teacher_key)
        self.class_busy.discard(class_key)
        count = self.daily_load.get(daily_key, 0)
        if count > 1:
            self.daily_load[daily_key] = count - 1
        else:
            self.daily_load.pop(daily_key, None)

    def _is_unavailable(
        self,
        teacher_id: str,
        day: str,
        slot_id: str,
        teacher_constraints: Mapping[str, TeacherConstraint] | None,
    ) -> bool:
        key = unavailable_slot_key(day, slot_id)
        if teacher_constraints is None:
            return key in self._unavailable.get(teacher_id, ())
        constraint = teacher_constraints.get(teacher_id)
        return constraint is not None and key in constraint.unavailable_slots

    def is_teacher_busy(
        self,
        teacher_id: str,
        day: str,
        slot_id: str,
        teacher_constraints: Mapping[str, TeacherConstraint] | None = None,
    ) -> bool:
        if self._is_unavailable(teacher_id, day, slot_id, teacher_constraints):
            return True
        if (teacher_id, day, slot_id) in self.teacher_busy:
            return True
        for other_slot in self.overlap_graph.iter_overlapping(slot_id):
            if (teacher_id, day, other_slot) in self.teacher_busy:
                return True
        return False

    def is_class_busy(self, grade: str, section: str, day: str, slot_id: str) -> bool:
        if (grade, section, day, slot_id) in self.class_busy:
            return True
        for other_slot in self.overlap_graph.iter_overlapping(slot_id):
            if (grade, section, day, other_slot) in self.class_busy:
                return True
        return False

    def daily_load_for(self, teacher_id: str, day: str) -> int:
        return self.daily_load.get((teacher_id, day), 0)

    def daily_load_ok(self, teacher_id: str, day: str, cap: int = DEFAULT_DAILY_CAP) -> bool:
        return self.daily_load_for(teacher_id, day) < cap

    def snapshot(self) -> BusySnapshot:
        return BusySnapshot(
            teacher_busy=frozenset(self.teacher_busy),
            class_busy=frozenset(self.class_busy),
            daily_load=tuple(self.daily_load.items()),
        )

    def restore(self, snapshot: BusySnapshot) -> None:
        # Fresh containers each time so one snapshot can be restored repeatedly.
        self.teacher_busy = set(snapshot.teacher_busy)
        self.class_busy = set(snapshot.class_busy)
        self.daily_load = dict(snapshot.daily_load)
