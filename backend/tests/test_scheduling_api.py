from lessonforge.services.conflict_resolution import ConflictResolutionEngine, ResolutionAction
from lessonforge.services.normalization import normalize_conflicts, parse_date
from lessonforge.services.scheduling_client import action_payload

MONDAY = "2030-01-07"
NEXT_MONDAY = "2030-01-14"
THIRD_MONDAY = "2030-01-21"


def series_definition(seeded, **overrides):
    definition = {
        "teacher_id": seeded["teacher"]["id"],
        "student_id": seeded["student"]["id"],
        "subject_id": seeded["subject"]["id"],
        "booth_id": seeded["booth"]["id"],
        "start_time": "10:00",
        "end_time": "11:00",
        "start_date": MONDAY,
        "end_date": THIRD_MONDAY,
        "days_of_week": [1],
    }
    definition.update(overrides)
    return definition


def book_other_pair(client, seeded, start_time="10:00", end_time="11:00"):
    """Books the seeded booth on MONDAY for a different teacher and student."""
    teacher = client.post("/api/teachers", json={"name": "Bea Kim", "email": "bea@example.com"}).json()
    student = client.post("/api/students", json={"name": "Kai Ito"}).json()
    response = client.post(
        "/api/class-sessions/",
        json={
            "teacher_id": teacher["id"],
            "student_id": student["id"],
            "subject_id": seeded["subject"]["id"],
            "booth_id": seeded["booth"]["id"],
            "date": MONDAY,
            "start_time": start_time,
            "end_time": end_time,
        },
    )
    assert response.json()["success"] is True
    return response.json()["session"]


def test_time_slots_endpoint(client):
    slots = client.get("/api/availability/time-slots").json()
    assert len(slots) == 57
    assert slots[0] == {"index": 0, "start": "08:00", "end": "08:15"}


def test_exception_replaces_regular_availability(client, seeded):
    teacher_id = seeded["teacher"]["id"]
    response = client.put(
        f"/api/availability/teacher/{teacher_id}",
        json={
            "entries": [
                {"kind": "regular", "day_of_week": "monday", "start_time": "09:00", "end_time": "12:00"},
                {"kind": "exception", "date": MONDAY, "start_time": "13:00", "end_time": "15:00"},
            ]
        },
    )
    assert response.status_code == 200
    assert len(response.json()) == 2

    special = client.get(f"/api/availability/teacher/{teacher_id}/resolve", params={"date": MONDAY}).json()
    assert special["source"] == "exception"
    assert special["ranges"] == [{"start_time": "13:00", "end_time": "15:00"}]

    regular = client.get(
        f"/api/availability/teacher/{teacher_id}/resolve",
        params={"date": MONDAY, "mode": "regular-only"},
    ).json()
    assert regular["source"] == "regular"
    assert regular["ranges"] == [{"start_time": "09:00", "end_time": "12:00"}]
    assert sum(regular["coverage"]) == 12


def test_availability_entry_shape_is_validated(client, seeded):
    response = client.put(
        f"/api/availability/student/{seeded['student']['id']}",
        json={"entries": [{"kind": "regular", "date": MONDAY, "full_day": True}]},
    )
    assert response.status_code == 422


def test_availability_for_unknown_person(client):
    assert client.get("/api/availability/teacher/missing").status_code == 404


def test_pair_compatibility(client, seeded):
    response = client.get(
        "/api/compatibility/pair",
        params={"teacher_id": seeded["teacher"]["id"], "student_id": seeded["student"]["id"]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["tier"] == "perfect"
    assert body["matching_subjects_count"] == 1


def test_teachers_ranked_for_student(client, seeded):
    client.post("/api/teachers", json={"name": "Bea Kim", "email": "bea@example.com"})
    ranked = client.get("/api/compatibility/teachers", params={"student_id": seeded["student"]["id"]}).json()
    assert [item["name"] for item in ranked] == ["Aiko Tanaka", "Bea Kim"]
    assert [item["compatibility"]["tier"] for item in ranked] == ["perfect", "teacher-no-prefs"]


def test_teachers_without_student_selection(client, seeded):
    ranked = client.get("/api/compatibility/teachers").json()
    assert ranked[0]["compatibility"]["tier"] == "no-student-selected"


def test_preview_without_conflicts(client, seeded):
    response = client.post("/api/class-series/preview", json=series_definition(seeded))
    assert response.status_code == 200
    body = response.json()
    assert body["dates"] == [MONDAY, NEXT_MONDAY, THIRD_MONDAY]
    assert body["requires_confirmation"] is False
    assert body["summary"] == {"total_sessions": 3, "sessions_with_conflicts": 0, "valid_sessions": 3}


def test_preview_reports_vacations_by_date(client, seeded):
    client.post("/api/vacations/", json={"name": "Break", "start_date": NEXT_MONDAY, "end_date": NEXT_MONDAY})
    body = client.post("/api/class-series/preview", json=series_definition(seeded)).json()
    assert body["requires_confirmation"] is True
    assert list(body["conflicts_by_date"]) == [NEXT_MONDAY]
    assert body["conflicts"][0]["type"] == "VACATION"


def test_preview_reports_teacher_unavailability(client, seeded):
    client.put(
        f"/api/availability/teacher/{seeded['teacher']['id']}",
        json={"entries": [{"kind": "regular", "day_of_week": "TUESDAY", "full_day": True}]},
    )
    body = client.post("/api/class-series/preview", json=series_definition(seeded)).json()
    assert {item["type"] for item in body["conflicts"]} == {"TEACHER_UNAVAILABLE"}
    assert body["summary"]["sessions_with_conflicts"] == 3

    unchecked = client.post(
        "/api/class-series/preview",
        json=series_definition(seeded, check_availability=False),
    ).json()
    assert unchecked["conflicts"] == []


def test_off_grid_times_are_rejected(client, seeded):
    response = client.post(
        "/api/class-series/preview",
        json=series_definition(seeded, start_time="07:00", end_time="08:00"),
    )
    assert response.status_code == 400
    assert "grid" in response.json()["message"]


def test_unknown_teacher_is_404(client, seeded):
    response = client.post("/api/class-series/preview", json=series_definition(seeded, teacher_id="missing"))
    assert response.status_code == 404
    assert response.json()["message"] == "Teacher with id missing not found"


def test_create_without_actions_writes_nothing(client, seeded):
    client.post("/api/vacations/", json={"name": "Break", "start_date": NEXT_MONDAY, "end_date": NEXT_MONDAY})

    response = client.post("/api/class-series", json={"definition": series_definition(seeded)})
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert [item["date"] for item in body["conflicts"]] == [NEXT_MONDAY]
    assert client.get("/api/class-series").json() == []
    assert client.get("/api/class-sessions/").json() == []


def test_create_with_skip_and_force(client, seeded):
    client.post("/api/vacations/", json={"name": "Break", "start_date": NEXT_MONDAY, "end_date": THIRD_MONDAY})

    response = client.post(
        "/api/class-series",
        json={
            "definition": series_definition(seeded),
            "session_actions": [
                {"date": NEXT_MONDAY, "action": "SKIP"},
                {"date": THIRD_MONDAY, "action": "FORCE_CREATE"},
            ],
        },
    )
    body = response.json()
    assert body["success"] is True
    assert body["skipped"] == [NEXT_MONDAY]
    assert len(body["created_ids"]) == 2

    sessions = client.get("/api/class-sessions/", params={"series_id": body["series_id"]}).json()
    assert [item["date"] for item in sessions] == [MONDAY, THIRD_MONDAY]
    assert sessions[0]["status"] == "confirmed"
    assert sessions[1]["status"] == "conflicted"
    assert sessions[1]["conflict_reasons"] == ["VACATION"]


def test_use_alternative_moves_the_lesson(client, seeded):
    book_other_pair(client, seeded)

    response = client.post(
        "/api/class-series",
        json={
            "definition": series_definition(seeded, end_date=MONDAY),
            "session_actions": [
                {
                    "date": MONDAY,
                    "action": "USE_ALTERNATIVE",
                    "alternative_start_time": "11:00",
                    "alternative_end_time": "12:00",
                }
            ],
        },
    )
    body = response.json()
    assert body["success"] is True

    created = client.get(f"/api/class-sessions/{body['created_ids'][0]}").json()
    assert (created["start_time"], created["end_time"]) == ("11:00", "12:00")


def test_use_alternative_that_still_clashes_is_rejected(client, seeded):
    book_other_pair(client, seeded)

    response = client.post(
        "/api/class-series",
        json={
            "definition": series_definition(seeded, end_date=MONDAY),
            "session_actions": [
                {
                    "date": MONDAY,
                    "action": "USE_ALTERNATIVE",
                    "alternative_start_time": "10:30",
                    "alternative_end_time": "11:30",
                }
            ],
        },
    )
    body = response.json()
    assert body["success"] is False
    assert body["conflicts"][0]["type"] == "BOOTH_CONFLICT"
    assert client.get("/api/class-series").json() == []


def test_use_alternative_requires_times(client, seeded):
    response = client.post(
        "/api/class-series",
        json={
            "definition": series_definition(seeded),
            "session_actions": [{"date": MONDAY, "action": "USE_ALTERNATIVE"}],
        },
    )
    assert response.status_code == 422


def test_action_outside_series_is_rejected(client, seeded):
    response = client.post(
        "/api/class-series",
        json={
            "definition": series_definition(seeded),
            "session_actions": [{"date": "2030-01-08", "action": "SKIP"}],
        },
    )
    assert response.status_code == 400


def test_extend_series(client, seeded):
    created = client.post(
        "/api/class-series",
        json={"definition": series_definition(seeded, end_date=None)},
    ).json()
    series_id = created["series_id"]
    assert created["success"] is True

    series = client.get(f"/api/class-series/{series_id}").json()
    assert series["last_generated_through"] == "2030-02-07"

    preview = client.get(f"/api/class-series/{series_id}/extend/preview", params={"months": 1}).json()
    assert preview["dates"] == ["2030-02-11", "2030-02-18", "2030-02-25", "2030-03-04"]

    extended = client.post(f"/api/class-series/{series_id}/extend", json={"months": 1}).json()
    assert extended["success"] is True
    assert len(extended["created_ids"]) == 4
    assert client.get(f"/api/class-series/{series_id}").json()["last_generated_through"] == "2030-03-07"


def test_extend_preview_month_limit(client, seeded):
    created = client.post("/api/class-series", json={"definition": series_definition(seeded)}).json()
    response = client.get(
        f"/api/class-series/{created['series_id']}/extend/preview",
        params={"months": 7},
    )
    assert response.status_code == 400


def test_paused_series_cannot_be_extended(client, seeded):
    created = client.post("/api/class-series", json={"definition": series_definition(seeded, end_date=None)}).json()
    client.patch(f"/api/class-series/{created['series_id']}", json={"status": "paused"})

    response = client.post(f"/api/class-series/{created['series_id']}/extend", json={"months": 1})
    assert response.status_code == 400


def test_extend_unknown_series(client):
    response = client.post("/api/class-series/missing/extend", json={"months": 1})
    assert response.status_code == 404


def test_one_off_session_conflicts_need_force(client, seeded):
    book_other_pair(client, seeded)
    payload = {
        "teacher_id": seeded["teacher"]["id"],
        "student_id": seeded["student"]["id"],
        "subject_id": seeded["subject"]["id"],
        "booth_id": seeded["booth"]["id"],
        "date": MONDAY,
        "start_time": "10:30",
        "end_time": "11:30",
    }

    refused = client.post("/api/class-sessions/", json=payload).json()
    assert refused["success"] is False
    assert refused["session"] is None
    assert [item["type"] for item in refused["conflicts"]] == ["BOOTH_CONFLICT"]

    forced = client.post("/api/class-sessions/", json={**payload, "force_create": True}).json()
    assert forced["success"] is True
    assert forced["session"]["status"] == "conflicted"


def test_cancelled_sessions_no_longer_block(client, seeded):
    booked = book_other_pair(client, seeded)

    cancelled = client.post("/api/class-sessions/cancel", json={"session_ids": [booked["id"]]}).json()
    assert cancelled == {"success": True, "cancelled": 1}
    assert client.get("/api/class-sessions/", params={"date": MONDAY}).json() == []
    assert len(client.get("/api/class-sessions/", params={"include_cancelled": True}).json()) == 1

    body = client.post("/api/class-series/preview", json=series_definition(seeded, end_date=MONDAY)).json()
    assert body["conflicts"] == []


def test_rejection_keeps_operator_actions_for_resubmission(client, seeded):
    teacher = client.post("/api/teachers", json={"name": "Bea Kim", "email": "bea@example.com"}).json()
    student = client.post("/api/students", json={"name": "Kai Ito"}).json()

    def book_booth(on_date):
        response = client.post(
            "/api/class-sessions/",
            json={
                "teacher_id": teacher["id"],
                "student_id": student["id"],
                "subject_id": seeded["subject"]["id"],
                "booth_id": seeded["booth"]["id"],
                "date": on_date,
                "start_time": "10:00",
                "end_time": "11:00",
            },
        )
        assert response.json()["success"] is True

    book_booth(MONDAY)
    book_booth(NEXT_MONDAY)
    preview = client.post("/api/class-series/preview", json=series_definition(seeded)).json()
    engine = ConflictResolutionEngine(normalize_conflicts(preview["conflicts"]), "10:00", "11:00")
    engine.set_action(parse_date(MONDAY), ResolutionAction.SKIP)
    engine.set_action(parse_date(NEXT_MONDAY), ResolutionAction.FORCE_CREATE)

    book_booth(THIRD_MONDAY)

    def submit():
        return client.post(
            "/api/class-series",
            json={
                "definition": series_definition(seeded),
                "session_actions": [action_payload(item) for item in engine.compile()],
            },
        ).json()

    rejected = submit()
    assert rejected["success"] is False
    assert rejected["unresolved_dates"] == [THIRD_MONDAY]
    assert sorted({item["date"] for item in rejected["conflicts"]}) == [MONDAY, NEXT_MONDAY, THIRD_MONDAY]

    engine.reconcile(normalize_conflicts(rejected["conflicts"]))
    assert engine.state(parse_date(MONDAY)).action == ResolutionAction.SKIP
    assert engine.state(parse_date(NEXT_MONDAY)).action == ResolutionAction.FORCE_CREATE
    assert engine.unresolved_dates() == [parse_date(THIRD_MONDAY)]

    engine.set_action(parse_date(THIRD_MONDAY), ResolutionAction.SKIP)
    accepted = submit()
    assert accepted["success"] is True
    assert accepted["skipped"] == [MONDAY, THIRD_MONDAY]
    assert len(accepted["created_ids"]) == 1
