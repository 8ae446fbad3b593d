from conftest import standard_assignments
from timetabler.models import Subject


def generate(client, timetable_id, assignments=None, seed=7):
    return client.post(
        f"/api/timetables/{timetable_id}/generate",
        json={
            "faculty_subject_assignments": assignments if assignments is not None else standard_assignments(),
            "use_external": False,
            "random_seed": seed,
        },
    )


def assert_no_double_booking(*schedules):
    seen = {}
    for schedule in schedules:
        for day, entries in schedule.items():
            for entry in entries:
                key = (day, entry["period"], entry["faculty_id"])
                assert key not in seen, f"{entry['faculty_id']} double-booked on {day} period {entry['period']}"
                seen[key] = entry


def test_generate_fills_and_persists_the_week(client, seeded):
    response = generate(client, "t-a")
    assert response.status_code == 200
    payload = response.json()

    assert payload["timetable_id"] == "t-a"
    assert payload["source"] == "local"
    assert payload["last_generated"] is not None
    schedule = payload["schedule"]
    assert sorted(schedule) == sorted(["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"])
    assert all([entry["period"] for entry in entries] == [1, 2, 3, 4, 5, 6] for entries in schedule.values())

    lab_entries = [(day, entry["period"]) for day, entries in schedule.items() for entry in entries if entry["is_lab"]]
    assert len(lab_entries) == 2
    assert all(period >= 4 for _, period in lab_entries)
    assert schedule["friday"][5]["subject_id"] == "s-pe"

    stored = client.get("/api/timetables/t-a")
    assert stored.status_code == 200
    assert stored.json()["schedule"] == schedule
    assert stored.json()["last_generated"] is not None


def test_second_class_avoids_faculty_taken_by_first(client, seeded):
    first = generate(client, "t-a", seed=1)
    second = generate(client, "t-b", seed=2)
    assert first.status_code == 200
    assert second.status_code == 200

    assert_no_double_booking(first.json()["schedule"], second.json()["schedule"])


def test_regenerating_a_class_ignores_its_own_old_schedule(client, seeded):
    assert generate(client, "t-a", seed=1).status_code == 200
    again = generate(client, "t-a", seed=1)

    assert again.status_code == 200
    assert sum(len(entries) for entries in again.json()["schedule"].values()) == 36


def test_regenerate_all_generates_in_order(client, seeded):
    response = client.post(
        "/api/timetables/regenerate-all",
        json={
            "jobs": [
                {"timetable_id": "t-a", "faculty_subject_assignments": standard_assignments()},
                {"timetable_id": "t-b", "faculty_subject_assignments": standard_assignments()},
            ],
            "random_seed": 10,
        },
    )
    assert response.status_code == 200
    results = response.json()["results"]

    assert [item["timetable_id"] for item in results] == ["t-a", "t-b"]
    assert_no_double_booking(results[0]["schedule"], results[1]["schedule"])


def test_regenerate_all_rejects_duplicate_jobs(client, seeded):
    job = {"timetable_id": "t-a", "faculty_subject_assignments": standard_assignments()}
    response = client.post("/api/timetables/regenerate-all", json={"jobs": [job, job]})
    assert response.status_code == 422


def test_regenerate_all_checks_every_timetable_first(client, seeded):
    assert generate(client, "t-a").status_code == 200
    response = client.post(
        "/api/timetables/regenerate-all",
        json={
            "jobs": [
                {"timetable_id": "t-a", "faculty_subject_assignments": standard_assignments()},
                {"timetable_id": "t-missing", "faculty_subject_assignments": standard_assignments()},
            ]
        },
    )
    assert response.status_code == 404

    # Nothing was cleared.
    stored = client.get("/api/timetables/t-a").json()
    assert sum(len(entries) for entries in stored["schedule"].values()) == 36


def test_failed_batch_leaves_every_timetable_as_it_was(client, seeded):
    before_a = generate(client, "t-a", seed=1).json()["schedule"]
    before_b = generate(client, "t-b", seed=2).json()["schedule"]
    bad_assignments = standard_assignments() + [{"faculty_id": "f-ghost", "subject_id": "s-math"}]

    response = client.post(
        "/api/timetables/regenerate-all",
        json={
            "jobs": [
                {"timetable_id": "t-a", "faculty_subject_assignments": standard_assignments()},
                {"timetable_id": "t-b", "faculty_subject_assignments": bad_assignments},
            ],
            "random_seed": 99,
        },
    )
    assert response.status_code == 400

    assert client.get("/api/timetables/t-a").json()["schedule"] == before_a
    assert client.get("/api/timetables/t-b").json()["schedule"] == before_b


def test_unknown_faculty_is_rejected(client, seeded):
    response = generate(client, "t-a", assignments=[{"faculty_id": "f-ghost", "subject_id": "s-math"}])
    assert response.status_code == 400
    assert response.json()["message"] == "Faculty with ID f-ghost not found"
    assert response.json()["details"] == {"kind": "faculty", "id": "f-ghost"}


def test_unknown_subject_is_rejected(client, seeded):
    response = generate(client, "t-a", assignments=[{"faculty_id": "f-math", "subject_id": "s-ghost"}])
    assert response.status_code == 400
    assert response.json()["message"] == "Subject with ID s-ghost not found"


def test_empty_assignments_are_rejected(client, seeded):
    response = generate(client, "t-a", assignments=[])
    assert response.status_code == 422


def test_missing_timetable_is_not_found(client, seeded):
    response = generate(client, "t-missing")
    assert response.status_code == 404
    assert response.json()["message"] == "Timetable with id t-missing not found"


def test_lab_that_cannot_fit_is_unprocessable(client, seeded, db):
    db.add(Subject(id="s-marathon", name="Marathon Lab", is_lab=True, default_duration_periods=7))
    db.commit()

    response = generate(
        client,
        "t-a",
        assignments=[{"faculty_id": "f-lab", "subject_id": "s-marathon"}, {"faculty_id": "f-math", "subject_id": "s-math"}],
    )

    assert response.status_code == 422
    assert response.json()["message"].startswith("Could not assign lab Marathon Lab due to constraints.")
    assert response.json()["details"]["subject_id"] == "s-marathon"


def test_faculty_view_collects_entries_across_classes(client, seeded):
    first = generate(client, "t-a", seed=1).json()["schedule"]
    second = generate(client, "t-b", seed=2).json()["schedule"]
    expected = sum(
        1 for schedule in (first, second) for entries in schedule.values() for entry in entries if entry["faculty_id"] == "f-math"
    )

    response = client.get("/api/timetables/faculty/f-math")
    assert response.status_code == 200
    payload = response.json()

    assert payload["faculty"] == {"id": "f-math", "name": "Prof Math", "faculty_code": "F002"}
    entries = [entry for items in payload["schedule"].values() for entry in items]
    assert len(entries) == expected
    assert {entry["class_name"] for entry in entries} == {"CSE-A", "CSE-B"}
    assert {entry["subject_name"] for entry in entries} == {"Mathematics"}
    for items in payload["schedule"].values():
        assert [item["period"] for item in items] == sorted(item["period"] for item in items)


def test_faculty_view_unknown_faculty(client, seeded):
    response = client.get("/api/timetables/faculty/f-ghost")
    assert response.status_code == 404


def test_reset_clears_schedule(client, seeded):
    assert generate(client, "t-a").status_code == 200

    response = client.put("/api/timetables/t-a/reset")
    assert response.status_code == 200
    assert all(entries == [] for entries in response.json()["schedule"].values())

    view = client.get("/api/timetables/faculty/f-math").json()
    assert all(entries == [] for entries in view["schedule"].values())
