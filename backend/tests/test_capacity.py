from eduplan.schemas.timetable import Allocation, TimeSlot
from eduplan.services.capacity import analyze_capacity, weekly_class_capacity

SLOTS = [
    TimeSlot(id="p1", start_time="08:00", end_time="08:45"),
    TimeSlot(id="p2", start_time="08:45", end_time="09:30"),
    TimeSlot(id="recess", start_time="09:30", end_time="09:45", type="break"),
]


def _alloc(teacher, section, periods):
    return Allocation(teacher_id=teacher, subject_id="math", grade_id="10", section_id=section, periods_per_week=periods)


def test_weekly_capacity_skips_breaks():
    assert weekly_class_capacity(SLOTS, ["Sunday", "Monday", "Tuesday"]) == 6
    assert weekly_class_capacity(SLOTS, []) == 0


def test_balanced_allocations_produce_no_warnings():
    report = analyze_capacity([_alloc("t1", "A", 3), _alloc("t2", "A", 3)], SLOTS, ["Sunday", "Monday", "Tuesday"])

    assert report.weekly_capacity == 6
    assert report.warnings() == []


def test_capacity_warnings():
    report = analyze_capacity(
        [
            _alloc("t1", "A", 2),
            _alloc("t2", "B", 5),
            _alloc("t2", "C", 4),
        ],
        SLOTS,
        ["Sunday", "Monday", "Tuesday"],
    )

    assert report.under_allocated == {"10-A": 2, "10-B": 5, "10-C": 4}
    assert report.over_allocated == {}
    assert report.overloaded_teachers == {"t2": 9}
    assert report.warnings() == [
        "Under-allocated classes detected: 10-A (2/6), 10-B (5/6), 10-C (4/6). Gaps will occur.",
        "Teachers allocated beyond weekly capacity: t2 (9/6).",
    ]


def test_over_allocated_class():
    report = analyze_capacity([_alloc("t1", "A", 4), _alloc("t2", "A", 4)], SLOTS, ["Sunday", "Monday", "Tuesday"])

    assert report.over_allocated == {"10-A": 8}
    assert report.warnings() == ["Over-allocated classes cannot be fully scheduled: 10-A (8/6)."]
