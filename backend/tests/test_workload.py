from eduplan.schemas.timetable import TimetableEntry
from eduplan.services.workload import check_daily_limit, check_teacher_availability, teacher_workload


def _entry(entry_id, teacher="t1", day="Monday", slot="p1", section="A"):
    return TimetableEntry(
        id=entry_id,
        teacher_id=teacher,
        subject_id="math",
        grade="10",
        section=section,
        day=day,
        time_slot_id=slot,
    )


def test_teacher_workload_counts_distinct_slots():
    entries = [
        _entry("e1"),
        # Combined lesson taught to two sections at once.
        _entry("e2", section="B"),
        _entry("e3", slot="p2"),
        _entry("e4", day="Tuesday"),
        _entry("e5", teacher="t2"),
    ]

    assert teacher_workload("t1", entries) == {"total": 3, "Monday": 2, "Tuesday": 1}
    assert teacher_workload("t9", entries) == {"total": 0}


def test_teacher_availability_ignores_entry_being_edited():
    entries = [_entry("e1")]

    assert not check_teacher_availability("t1", "Monday", "p1", entries)
    assert check_teacher_availability("t1", "Monday", "p1", entries, current_entry_id="e1")
    assert check_teacher_availability("t1", "Monday", "p2", entries)
    assert check_teacher_availability("t2", "Monday", "p1", entries)


def test_daily_limit():
    entries = [_entry(f"e{index}", slot=f"p{index}") for index in range(7)]

    assert not check_daily_limit("t1", "Monday", entries)
    assert check_daily_limit("t1", "Monday", entries, current_entry_id="e0")
    assert check_daily_limit("t1", "Monday", entries, cap=8)
    assert check_daily_limit("t1", "Tuesday", entries)
