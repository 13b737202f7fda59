import pytest
from sqlalchemy.exc import IntegrityError

from fittrack.models import Exercise, ExerciseCategory, ExerciseType
from fittrack.services import exercises_service


def _create(client, name="Cable Crunch", category="Core", type="strength"):
    return client.post(
        "/api/exercises", json={"name": name, "category": category, "type": type}
    )


def test_list_requires_login(client):
    assert client.get("/api/exercises").status_code == 401


def test_library_is_seeded_and_ordered(alice):
    r = alice.get("/api/exercises")
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 60
    assert all(not e["is_custom"] and e["user_id"] is None for e in data)
    keys = [(e["category"], e["name"]) for e in data]
    by_category = {}
    for category, name in keys:
        by_category.setdefault(category, []).append(name)
    for names in by_category.values():
        assert names == sorted(names)
    # categories follow the declared order, not the alphabet
    assert list(by_category) == ["Push", "Pull", "Legs", "Core", "Cardio"]


def test_filter_by_category_type_and_search(alice):
    r = alice.get("/api/exercises", params={"category": "Cardio"})
    assert {e["name"] for e in r.json()} == {"Running", "Cycling", "Rowing Machine", "Jump Rope"}

    r = alice.get("/api/exercises", params={"type": "cardio"})
    assert all(e["type"] == "cardio" for e in r.json())
    assert len(r.json()) == 4

    r = alice.get("/api/exercises", params={"search": "CURL"})
    names = {e["name"] for e in r.json()}
    assert "Hammer Curl" in names and "Leg Curl" in names
    assert all("curl" in n.lower() for n in names)


def test_bad_filter_value_is_validation_error(alice):
    r = alice.get("/api/exercises", params={"category": "Arms"})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "validation_error"
    assert body["details"][0]["field"] == "category"


def test_create_custom_exercise(alice):
    r = _create(alice, name="  Cable   Crunch  ")
    assert r.status_code == 201
    ex = r.json()
    assert ex["name"] == "Cable Crunch"
    assert ex["is_custom"] is True
    assert ex["user_id"] == alice.get("/api/auth/me").json()["id"]

    names = [e["name"] for e in alice.get("/api/exercises").json()]
    assert "Cable Crunch" in names


def test_create_validation(alice):
    assert _create(alice, name="").status_code == 400
    assert _create(alice, name="x" * 101).status_code == 400
    assert _create(alice, category="Arms").status_code == 400
    assert _create(alice, type="yoga").status_code == 400


def test_duplicate_name_is_case_insensitive_per_user(alice, bob):
    assert _create(alice, name="Cable Crunch").status_code == 201
    r = _create(alice, name="cable crunch")
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"

    # another user may reuse the name
    assert _create(bob, name="Cable Crunch").status_code == 201


def test_custom_may_share_a_library_name(alice):
    assert _create(alice, name="Deadlift", category="Pull").status_code == 201


def test_custom_exercises_are_private(alice, bob):
    ex_id = _create(alice).json()["id"]

    assert bob.get(f"/api/exercises/{ex_id}").status_code == 404
    assert all(e["id"] != ex_id for e in bob.get("/api/exercises").json())

    # existence of another user's custom exercise is known, mutation is not allowed
    assert bob.patch(f"/api/exercises/{ex_id}", json={"name": "Mine"}).status_code == 403
    assert bob.delete(f"/api/exercises/{ex_id}").status_code == 403


def test_update_custom_exercise(alice):
    ex_id = _create(alice).json()["id"]
    _create(alice, name="Pallof Press")

    r = alice.patch(f"/api/exercises/{ex_id}", json={"category": "Pull"})
    assert r.status_code == 200
    assert r.json()["category"] == "Pull"
    assert r.json()["name"] == "Cable Crunch"

    # renaming to its own name in another case is not a duplicate
    r = alice.patch(f"/api/exercises/{ex_id}", json={"name": "CABLE CRUNCH"})
    assert r.status_code == 200

    r = alice.patch(f"/api/exercises/{ex_id}", json={"name": "pallof press"})
    assert r.status_code == 409


def test_update_requires_a_field(alice):
    ex_id = _create(alice).json()["id"]
    r = alice.patch(f"/api/exercises/{ex_id}", json={})
    assert r.status_code == 400
    r = alice.patch(f"/api/exercises/{ex_id}", json={"name": None})
    assert r.status_code == 400


def test_library_exercises_are_immutable(alice, bench_id):
    r = alice.patch(f"/api/exercises/{bench_id}", json={"name": "Bench"})
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"
    assert alice.delete(f"/api/exercises/{bench_id}").status_code == 403
    assert alice.get(f"/api/exercises/{bench_id}").json()["name"] == "Barbell Bench Press"


def test_missing_exercise_is_404(alice):
    assert alice.get("/api/exercises/99999").status_code == 404
    assert alice.patch("/api/exercises/99999", json={"name": "x"}).status_code == 404
    assert alice.delete("/api/exercises/99999").status_code == 404


def test_delete_unused_custom_exercise(alice):
    ex_id = _create(alice).json()["id"]
    assert alice.delete(f"/api/exercises/{ex_id}").status_code == 204
    assert alice.get(f"/api/exercises/{ex_id}").status_code == 404
    # the name is free again
    assert _create(alice).status_code == 201


def test_delete_referenced_custom_exercise_keeps_history(alice):
    ex_id = _create(alice).json()["id"]
    wid = alice.post("/api/workouts").json()["id"]
    we = alice.post(f"/api/workouts/{wid}/exercises", json={"exercise_id": ex_id}).json()

    assert alice.delete(f"/api/exercises/{ex_id}").status_code == 204

    # gone from the library and from new workouts
    assert all(e["id"] != ex_id for e in alice.get("/api/exercises").json())
    r = alice.post(f"/api/workouts/{wid}/exercises", json={"exercise_id": ex_id})
    assert r.status_code == 400

    # still resolvable in the workout it was logged in
    detail = alice.get(f"/api/workouts/{wid}").json()
    assert detail["exercises"][0]["id"] == we["id"]
    assert detail["exercises"][0]["exercise"]["name"] == "Cable Crunch"
    assert detail["exercises"][0]["exercise"]["deleted_at"] is not None

    # and a fresh exercise may take the name
    assert _create(alice).status_code == 201


def test_exercise_usage(alice, bob, bench_id):
    w1 = alice.post("/api/workouts").json()["id"]
    alice.post(f"/api/workouts/{w1}/exercises", json={"exercise_id": bench_id})
    alice.patch(f"/api/workouts/{w1}", json={"end_time": "2025-01-01T10:00:00Z"})
    w2 = alice.post("/api/workouts").json()["id"]
    alice.post(f"/api/workouts/{w2}/exercises", json={"exercise_id": bench_id})

    bw = bob.post("/api/workouts").json()["id"]
    bob.post(f"/api/workouts/{bw}/exercises", json={"exercise_id": bench_id})

    r = alice.get(f"/api/exercises/{bench_id}/usage")
    assert r.status_code == 200
    usage = r.json()
    assert usage["exercise"]["id"] == bench_id
    assert usage["counts"] == {"workouts": 2}
    assert {w["id"] for w in usage["workouts"]} == {w1, w2}


def test_search_treats_wildcards_literally(alice):
    assert alice.get("/api/exercises", params={"search": "%"}).json() == []
    assert alice.get("/api/exercises", params={"search": "_"}).json() == []

    _create(alice, name="Row 100% Effort", category="Pull")
    r = alice.get("/api/exercises", params={"search": "0%"})
    assert [e["name"] for e in r.json()] == ["Row 100% Effort"]


def test_type_change_allowed_while_unused(alice):
    ex_id = _create(alice).json()["id"]
    r = alice.patch(f"/api/exercises/{ex_id}", json={"type": "cardio"})
    assert r.status_code == 200
    assert r.json()["type"] == "cardio"


def test_type_change_refused_once_logged(alice):
    ex_id = _create(alice).json()["id"]
    wid = alice.post("/api/workouts").json()["id"]
    we_id = alice.post(f"/api/workouts/{wid}/exercises", json={"exercise_id": ex_id}).json()["id"]
    alice.post(f"/api/workouts/{wid}/exercises/{we_id}/sets", json={"reps": 10})

    r = alice.patch(f"/api/exercises/{ex_id}", json={"type": "cardio"})
    assert r.status_code == 400
    assert r.json()["details"][0]["field"] == "type"

    # repeating the current type and other fields still work
    r = alice.patch(f"/api/exercises/{ex_id}", json={"type": "strength", "category": "Legs"})
    assert r.status_code == 200

    detail = alice.get(f"/api/workouts/{wid}").json()
    assert detail["exercises"][0]["exercise"]["type"] == "strength"
    assert detail["exercises"][0]["sets"][0]["reps"] == 10


def test_storage_rejects_case_variant_custom_names(db, alice):
    user_id = alice.get("/api/auth/me").json()["id"]
    for name in ("Sled Drag", "SLED DRAG"):
        db.add(Exercise(
            name=name,
            category=ExerciseCategory.legs,
            type=ExerciseType.strength,
            is_custom=True,
            user_id=user_id,
        ))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_storage_name_clash_surfaces_as_conflict(alice, monkeypatch):
    assert _create(alice, name="Sled Drag").status_code == 201

    # let the request reach the unique index, as a concurrent one would
    monkeypatch.setattr(exercises_service, "_find_custom_by_name", lambda *a, **kw: None)
    r = _create(alice, name="sled drag")
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"
    names = [e["name"] for e in alice.get("/api/exercises", params={"search": "sled"}).json()]
    assert names == ["Sled Drag"]
