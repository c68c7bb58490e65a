from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping

from eduplan.schemas.generator import EntryValidation, ScheduleConflict, ScheduleValidation
from eduplan.schemas.timetable import TeacherConstraint, TimetableEntry
from eduplan.services.overlap_graph import TimeOverlapGraph


class ScheduleValidator:
    """Overlap-aware double-booking checks, independent of the solver.

    Used to verify generated schedules and to vet manual edits before they
    are stored. Every known entry takes part in the checks; a stored entry is
    only left out when the caller names it as the one being edited.
    """

    def __init__(
        self,
        overlap_graph: TimeOverlapGraph,
        existing_entries: Iterable[TimetableEntry] = (),
        *,
        teacher_constraints: Mapping[str, TeacherConstraint] | None = None,
        daily_cap: int | None = None,
    ) -> None:
        self.overlap_graph = overlap_graph
        self.entries: list[TimetableEntry] = list(existing_entries)
        self.teacher_constraints = dict(teacher_constraints or {})
        self.daily_cap = daily_cap

    def add_entries(self, entries: Iterable[TimetableEntry]) -> None:
        self.entries.extend(entries)

    def _clashes(self, entry: TimetableEntry, other: TimetableEntry) -> bool:
        return entry.day == other.day and self.overlap_graph.overlaps(entry.time_slot_id, other.time_slot_id)

    def _known_others(
        self,
        entry: TimetableEntry,
        editing_entry_id: str | None = None,
        exclude: Iterable[TimetableEntry] = (),
    ) -> list[TimetableEntry]:
        skipped = {id(item) for item in exclude}
        skipped.add(id(entry))
        return [
            other
            for other in self.entries
            if id(other) not in skipped and not (editing_entry_id and other.id == editing_entry_id)
        ]

    def _daily_limit_error(self, entry: TimetableEntry) -> str:
        return f"Teacher has reached the daily limit of {self.daily_cap} periods ({entry.day})"

    def _check_entry(self, entry: TimetableEntry, others: list[TimetableEntry]) -> EntryValidation:
        for other in others:
            if other.teacher_id == entry.teacher_id and self._clashes(entry, other):
                return EntryValidation(
                    valid=False,
                    error=f"Teacher busy in slot {other.time_slot_id} ({entry.day})",
                )

        for other in others:
            if other.grade == entry.grade and other.section == entry.section and self._clashes(entry, other):
                return EntryValidation(
                    valid=False,
                    error=f"Class busy in slot {other.time_slot_id} ({entry.day})",
                )

        constraint = self.teacher_constraints.get(entry.teacher_id)
        if constraint is not None and constraint.blocks(entry.day, entry.time_slot_id):
            return EntryValidation(
                valid=False,
                error=f"Teacher unavailable in slot {entry.time_slot_id} ({entry.day})",
            )

        if self.daily_cap is not None:
            same_day = sum(1 for other in others if other.teacher_id == entry.teacher_id and other.day == entry.day)
            if same_day >= self.daily_cap:
                return EntryValidation(valid=False, error=self._daily_limit_error(entry))

        return EntryValidation(valid=True)

    def validate_entry(self, entry: TimetableEntry, *, editing_entry_id: str | None = None) -> EntryValidation:
        return self._check_entry(entry, self._known_others(entry, editing_entry_id))

    def validate_schedule(
        self,
        schedule: Iterable[TimetableEntry],
        *,
        editing_entry_id: str | None = None,
    ) -> ScheduleValidation:
        new_entries = list(schedule)
        conflicts: list[ScheduleConflict] = []
        # Daily load contributed by the new entries checked so far.
        new_load: Counter[tuple[str, str]] = Counter()

        for i, entry in enumerate(new_entries):
            others = self._known_others(entry, editing_entry_id, exclude=new_entries)
            result = self._check_entry(entry, others)
            if not result.valid:
                conflicts.append(ScheduleConflict(entry=entry, error=result.error or "Invalid entry"))
            elif self.daily_cap is not None:
                key = (entry.teacher_id, entry.day)
                known_load = sum(1 for other in others if (other.teacher_id, other.day) == key)
                if known_load + new_load[key] >= self.daily_cap:
                    conflicts.append(ScheduleConflict(entry=entry, error=self._daily_limit_error(entry)))
            new_load[(entry.teacher_id, entry.day)] += 1

            for j in range(i + 1, len(new_entries)):
                other = new_entries[j]
                if not self._clashes(entry, other):
                    continue
                if entry.teacher_id == other.teacher_id:
                    conflicts.append(ScheduleConflict(entry=entry, other=other, error="Double Booking (Teacher)"))
                if entry.grade == other.grade and entry.section == other.section:
                    conflicts.append(ScheduleConflict(entry=entry, other=other, error="Double Booking (Class)"))

        return ScheduleValidation(valid=not conflicts, conflicts=conflicts)
