from datetime import date, timedelta


def _entry(day: date, **overrides) -> dict:
    entry = {
        "date": day.isoformat(),
        "level": 2,
        "xp": 15,
        "tasks_completed": 4,
        "streak": 1,
    }
    entry.update(overrides)
    return entry


def _append(client, headers, user_id: str, entry: dict):
    return client.post(
        "/api/v1/progress",
        json={"user_id": user_id, "entry": entry},
        headers=headers,
    )


def test_progress_starts_empty(client, auth_headers):
    response = client.get("/api/v1/progress?user_id=fresh", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"progress": []}


def test_progress_upserts_by_date_and_sorts(client, auth_headers):
    day = date(2026, 3, 10)
    assert _append(client, auth_headers, "hunter", _entry(day + timedelta(days=1))).status_code == 200
    assert _append(client, auth_headers, "hunter", _entry(day, level=2)).status_code == 200
    assert _append(client, auth_headers, "hunter", _entry(day, level=6)).status_code == 200

    response = client.get("/api/v1/progress?user_id=hunter", headers=auth_headers)
    rows = response.json()["progress"]
    assert [row["date"] for row in rows] == ["2026-03-10", "2026-03-11"]
    assert rows[0]["level"] == 6


def test_progress_keeps_most_recent_ninety_dates(client, auth_headers):
    start = date(2025, 12, 1)
    for offset in range(91):
        response = _append(client, auth_headers, "veteran", _entry(start + timedelta(days=offset)))
        assert response.status_code == 200

    rows = client.get("/api/v1/progress?user_id=veteran", headers=auth_headers).json()["progress"]
    assert len(rows) == 90
    assert rows[0]["date"] == (start + timedelta(days=1)).isoformat()
    assert rows[-1]["date"] == (start + timedelta(days=90)).isoformat()


def test_progress_requires_user_id_and_entry(client, auth_headers):
    no_entry = client.post("/api/v1/progress", json={"user_id": "hunter"}, headers=auth_headers)
    assert no_entry.status_code == 400
    assert no_entry.json()["detail"] == "User ID and entry required"

    no_user = client.post(
        "/api/v1/progress",
        json={"entry": _entry(date(2026, 3, 1))},
        headers=auth_headers,
    )
    assert no_user.status_code == 400

    listing = client.get("/api/v1/progress", headers=auth_headers)
    assert listing.status_code == 400


def test_progress_requires_app_credential(client):
    response = client.get("/api/v1/progress?user_id=hunter")
    assert response.status_code == 401
