from eduplan.services.generation_jobs import generation_jobs

SLOTS = [
    {"id": "p1", "startTime": "08:00", "endTime": "08:45", "name": "Period 1"},
    {"id": "p2", "startTime": "08:45", "endTime": "09:30", "name": "Period 2"},
    {"id": "lunch", "startTime": "09:30", "endTime": "10:00", "name": "Lunch", "type": "break"},
]


def _payload(**overrides):
    payload = {
        "allocations": [
            {"teacherId": "t1", "subjectId": "math", "gradeId": "10", "sectionId": "A", "periodsPerWeek": 3},
            {"teacherId": "t2", "subjectId": "bio", "gradeId": "10", "sectionId": "B", "periodsPerWeek": 2},
        ],
        "timeSlots": SLOTS,
        "workingDays": ["Sunday", "Monday"],
        "schoolId": "school-1",
        "settingsOverride": {"max_iterations": 20, "random_seed": 5},
    }
    payload.update(overrides)
    return payload


def test_generate_returns_schedule(client):
    response = client.post("/api/timetable/generate", json=_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["placed_count"] == body["total_lessons"] == 5
    assert body["failures"] == []
    assert body["allocation_count"] == 2
    entry = body["schedule"][0]
    assert entry["schoolId"] == "school-1"
    assert entry["timeSlotId"] in {"p1", "p2"}
    assert entry["day"] in {"Sunday", "Monday"}


def test_generate_reports_partial_schedule(client):
    payload = _payload(
        allocations=[
            {"teacherId": "t1", "subjectId": "math", "gradeId": "10", "sectionId": "A", "periodsPerWeek": 4},
            {"teacherId": "t1", "subjectId": "math", "gradeId": "10", "sectionId": "B", "periodsPerWeek": 4},
        ]
    )
    response = client.post("/api/timetable/generate", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["placed_count"] == 4
    assert body["failures"] == [{"reason": "Could not find perfect schedule. Scheduled 4/8 lessons."}]


def test_generate_empty_scope_returns_app_error(client):
    response = client.post("/api/timetable/generate", json=_payload(scope="division", scopeId="d9"))

    assert response.status_code == 400
    assert response.json() == {
        "message": "No allocations found for the selected scope.",
        "details": {"scope": "division", "scope_id": "d9"},
    }


def test_generate_rejects_invalid_payloads(client):
    bad_time = dict(SLOTS[0], endTime="25:00")
    assert client.post("/api/timetable/generate", json=_payload(timeSlots=[bad_time])).status_code == 422

    reversed_slot = dict(SLOTS[0], startTime="09:00", endTime="08:00")
    assert client.post("/api/timetable/generate", json=_payload(timeSlots=[reversed_slot])).status_code == 422

    duplicate = client.post("/api/timetable/generate", json=_payload(timeSlots=[SLOTS[0], SLOTS[0]]))
    assert duplicate.status_code == 422

    unknown_scope = client.post("/api/timetable/generate", json=_payload(scope="campus"))
    assert unknown_scope.status_code == 422

    bad_slot_day = dict(SLOTS[0], day="Funday")
    assert client.post("/api/timetable/generate", json=_payload(timeSlots=[bad_slot_day])).status_code == 422

    bad_working_day = client.post("/api/timetable/generate", json=_payload(workingDays=["Monday", "Someday"]))
    assert bad_working_day.status_code == 422


def test_generation_job_lifecycle(client):
    created = client.post("/api/timetable/jobs", json=_payload())

    assert created.status_code == 202
    job = created.json()
    assert job["status"] == "pending"

    # Background tasks run before the test client returns.
    fetched = client.get(f"/api/timetable/jobs/{job['id']}")
    assert fetched.status_code == 200
    body = fetched.json()
    assert body["status"] == "completed"
    assert body["progress"] == {"current": 5, "total": 5}
    assert len(body["result"]) == 5
    assert body["error"] is None


def test_generation_job_records_errors(client):
    created = client.post("/api/timetable/jobs", json=_payload(scope="division", scopeId="d9"))
    job_id = created.json()["id"]

    body = client.get(f"/api/timetable/jobs/{job_id}").json()
    assert body["status"] == "error"
    assert body["error"] == "No allocations found for the selected scope."
    assert body["result"] is None


def test_unknown_job_is_not_found(client):
    response = client.get("/api/timetable/jobs/missing")

    assert response.status_code == 404
    assert response.json()["message"] == "Generation job with id missing not found"


def test_cancel_job(client):
    job = generation_jobs.create()

    response = client.post(f"/api/timetable/jobs/{job.id}/cancel")
    assert response.status_code == 200
    assert response.json()["id"] == job.id
    assert generation_jobs.is_cancelled(job.id)

    assert client.post("/api/timetable/jobs/missing/cancel").status_code == 404


def test_validate_endpoint(client):
    entries = [
        {"id": "e1", "teacherId": "t1", "subjectId": "math", "grade": "10", "section": "A", "day": "Monday", "timeSlotId": "p1"},
        {"id": "e2", "teacherId": "t1", "subjectId": "math", "grade": "10", "section": "B", "day": "Monday", "timeSlotId": "p1"},
        {"id": "e3", "teacherId": "t2", "subjectId": "bio", "grade": "10", "section": "A", "day": "Monday", "timeSlotId": "p2"},
    ]
    response = client.post(
        "/api/timetable/validate",
        json={
            "timeSlots": SLOTS,
            "entries": entries,
            "teachers": [{"uid": "t2", "unavailableSlots": ["Monday-p2"]}],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    errors = sorted(conflict["error"] for conflict in body["conflicts"])
    assert errors == ["Double Booking (Teacher)", "Teacher unavailable in slot p2 (Monday)"]


def test_validate_endpoint_accepts_clean_schedule(client):
    entries = [
        {"id": "e1", "teacherId": "t1", "subjectId": "math", "grade": "10", "section": "A", "day": "Monday", "timeSlotId": "p1"},
        {"id": "e2", "teacherId": "t1", "subjectId": "math", "grade": "10", "section": "B", "day": "Monday", "timeSlotId": "p2"},
    ]
    response = client.post("/api/timetable/validate", json={"timeSlots": SLOTS, "entries": entries, "dailyCap": 7})

    assert response.json() == {"valid": True, "conflicts": []}


def test_validate_endpoint_reports_daily_cap_and_edits(client):
    slots = [
        {"id": f"p{index}", "startTime": f"{8 + index:02d}:00", "endTime": f"{8 + index:02d}:45"}
        for index in range(3)
    ]
    entries = [
        {"id": f"e{index}", "teacherId": "t1", "subjectId": "math", "grade": "10", "section": f"S{index}", "day": "Monday", "timeSlotId": f"p{index}"}
        for index in range(3)
    ]
    capped = client.post("/api/timetable/validate", json={"timeSlots": slots, "entries": entries, "dailyCap": 2})
    assert [conflict["entry"]["id"] for conflict in capped.json()["conflicts"]] == ["e2"]

    stored = dict(entries[0])
    moved = dict(entries[0], section="S9")
    payload = {"timeSlots": slots, "existingEntries": [stored], "entries": [moved]}
    assert client.post("/api/timetable/validate", json=payload).json()["valid"] is False
    payload["editingEntryId"] = "e0"
    assert client.post("/api/timetable/validate", json=payload).json()["valid"] is True
