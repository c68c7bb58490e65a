from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from eduplan.schemas.timetable import TimeSlot


def slots_overlap(slot_a: TimeSlot, slot_b: TimeSlot) -> bool:
    # Generic slots (no day) apply to every day, so they can clash with any slot.
    if slot_a.day and slot_b.day and slot_a.day != slot_b.day:
        return False
    return slot_a.start_minutes < slot_b.end_minutes and slot_b.start_minutes < slot_a.end_minutes


class TimeOverlapGraph:
    """Undirected overlap relation over a fixed set of time slots.

    Two slots are adjacent when they can share a day and their time ranges
    intersect. A slot always overlaps itself but is not stored in its own
    adjacency set.
    """

    def __init__(self, time_slots: Iterable[TimeSlot]) -> None:
        self._adjacency: dict[str, set[str]] = defaultdict(set)
        self._build(list(time_slots))

    def _build(self, slots: list[TimeSlot]) -> None:
        count = len(slots)
        for i in range(count):
            slot_a = slots[i]
            for j in range(i + 1, count):
                slot_b = slots[j]
                if slot_a.id == slot_b.id:
                    continue
                if slots_overlap(slot_a, slot_b):
                    self._adjacency[slot_a.id].add(slot_b.id)
                    self._adjacency[slot_b.id].add(slot_a.id)

    def overlaps(self, slot_id_a: str, slot_id_b: str) -> bool:
        if slot_id_a == slot_id_b:
            return True
        return slot_id_b in self._adjacency.get(slot_id_a, ())

    def overlapping_of(self, slot_id: str) -> set[str]:
        return set(self._adjacency.get(slot_id, ()))

    def iter_overlapping(self, slot_id: str) -> Iterable[str]:
        return self._adjacency.get(slot_id, ())
