from sqlalchemy.exc import SQLAlchemyError

import inventory
from models import Movie, Reservation, Screening, User, db


def test_admin_routes_require_admin(client, make_user, auth_headers):
    response = client.get("/api/admin/users")
    assert response.status_code == 401

    response = client.get("/api/admin/users", headers=auth_headers(make_user("regular")))
    assert response.status_code == 403
    assert response.get_json()["message"] == "Admin access required"


def test_admin_lists_users(client, make_user, auth_headers):
    admin = make_user("admin", role="admin")
    make_user("regular")

    response = client.get("/api/admin/users", headers=auth_headers(admin))
    assert response.status_code == 200
    usernames = {u["username"] for u in response.get_json()["users"]}
    assert usernames == {"admin", "regular"}


def test_admin_promotes_and_bans_user(client, make_user, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    target = make_user("target")

    response = client.put(f"/api/admin/user/{target.id}/promote", json={"role": "admin"}, headers=headers)
    assert response.status_code == 200
    assert db.session.get(User, target.id).role == "admin"

    response = client.put(f"/api/admin/user/{target.id}/promote", json={"role": "overlord"}, headers=headers)
    assert response.status_code == 400

    response = client.put(
        f"/api/admin/user/{target.id}/ban",
        json={"reason": "scalping", "expires": "2999-01-01T00:00:00Z"},
        headers=headers,
    )
    assert response.status_code == 200
    banned = db.session.get(User, target.id)
    assert banned.is_banned
    assert banned.ban_reason == "scalping"

    response = client.put(f"/api/admin/user/{target.id}/unban", headers=headers)
    assert response.status_code == 200
    assert not db.session.get(User, target.id).is_banned

    response = client.put("/api/admin/user/missing/ban", json={}, headers=headers)
    assert response.status_code == 404


def test_expired_ban_no_longer_applies(client, make_user, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    target = make_user("target")

    client.put(
        f"/api/admin/user/{target.id}/ban",
        json={"reason": "cool off", "expires": "2000-01-01T00:00:00Z"},
        headers=headers,
    )
    assert db.session.get(User, target.id).banned
    assert not db.session.get(User, target.id).is_banned


def test_admin_creates_movie_auditorium_and_screening(client, make_user, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))

    response = client.post(
        "/api/admin/movie",
        json={
            "title": "Arrival",
            "duration": 116,
            "posterImage": "https://example.com/arrival.jpg",
            "genre": "Sci-Fi",
            "rating": 7.9,
            "description": "A linguist meets visitors.",
            "releaseDate": "2016-11-11T00:00:00Z",
            "maturityRating": "PG-13",
        },
        headers=headers,
    )
    assert response.status_code == 201
    movie_id = response.get_json()["movieId"]

    response = client.post(
        "/api/admin/auditorium",
        json={"name": "Hall 2", "seats": [{"row": "A", "number": 1}, {"row": "A", "number": 2}]},
        headers=headers,
    )
    assert response.status_code == 201
    auditorium_id = response.get_json()["auditoriumId"]

    response = client.post(
        "/api/admin/screening",
        json={
            "movieId": movie_id,
            "auditoriumId": auditorium_id,
            "startTime": "2030-05-01T18:00:00Z",
            "endTime": "2030-05-01T20:00:00Z",
            "price": 11.25,
        },
        headers=headers,
    )
    assert response.status_code == 201
    screening_id = response.get_json()["screeningId"]

    screenings = client.get("/api/admin/screenings", headers=headers).get_json()["screenings"]
    assert [s["id"] for s in screenings] == [screening_id]
    assert screenings[0]["price"] == 11.25
    assert screenings[0]["takenSeats"] == []

    available = client.get(f"/api/screening/{screening_id}/seats").get_json()["available"]
    assert [(s["row"], s["number"]) for s in available] == [("A", 1), ("A", 2)]


def test_admin_screening_validation(client, make_user, make_screening, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    screening = make_screening()

    response = client.post(
        "/api/admin/screening",
        json={
            "movieId": screening.movie_id,
            "auditoriumId": screening.auditorium_id,
            "startTime": "2030-05-01T20:00:00Z",
            "endTime": "2030-05-01T18:00:00Z",
            "price": 10,
        },
        headers=headers,
    )
    assert response.status_code == 400
    assert any(e["field"] == "endTime" for e in response.get_json()["errors"])

    response = client.post(
        "/api/admin/screening",
        json={
            "movieId": "missing",
            "auditoriumId": screening.auditorium_id,
            "startTime": "2030-05-01T18:00:00Z",
            "endTime": "2030-05-01T20:00:00Z",
            "price": 10,
        },
        headers=headers,
    )
    assert response.status_code == 404

    response = client.post("/api/admin/movie", json={"title": "No genre"}, headers=headers)
    assert response.status_code == 400


def test_admin_deletes_screening_with_reservations(client, make_user, make_screening, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    screening = make_screening()
    inventory.reserve(screening.id, make_user("viewer").id, [("A", 1)])

    response = client.delete(f"/api/admin/screening/{screening.id}", headers=headers)
    assert response.status_code == 200
    assert db.session.get(Screening, screening.id) is None
    assert Reservation.query.count() == 0

    response = client.delete(f"/api/admin/screening/{screening.id}", headers=headers)
    assert response.status_code == 404


def test_admin_deletes_movie_and_its_screenings(client, make_user, make_screening, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    screening = make_screening()
    movie_id = screening.movie_id

    response = client.delete(f"/api/admin/movie/{movie_id}", headers=headers)
    assert response.status_code == 200
    assert db.session.get(Movie, movie_id) is None
    assert Screening.query.count() == 0

#test admin deleting a user and thus releasing their seats
def test_admin_delete_user_releases_reservations(client, make_user, make_screening, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    screening = make_screening()
    victim = make_user("victim")
    victim_id = victim.id
    inventory.reserve(screening.id, victim_id, [("A", 1), ("A", 2)])
    inventory.reserve(screening.id, make_user("bystander").id, [("B", 1)])

    response = client.delete(f"/api/admin/user/{victim_id}", headers=headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body["userId"] == victim_id
    assert body["deletedReservations"] == 1
    assert db.session.get(User, victim_id) is None
    assert inventory.list_taken_seats(screening.id) == {("B", 1)}


def test_admin_lists_all_reservations(client, make_user, make_screening, auth_headers):
    headers = auth_headers(make_user("admin", role="admin"))
    screening = make_screening()
    inventory.reserve(screening.id, make_user("one").id, [("A", 1)])
    inventory.reserve(screening.id, make_user("two").id, [("A", 2)])

    response = client.get("/api/admin/reservations", headers=headers)
    assert response.status_code == 200
    assert len(response.get_json()["reservations"]) == 2


# a database failure while releasing seats leaves the user in place and reports a 500
def test_admin_delete_user_database_failure(client, make_user, make_screening, auth_headers, monkeypatch):
    headers = auth_headers(make_user("admin", role="admin"))
    screening = make_screening()
    victim_id = make_user("victim").id
    inventory.reserve(screening.id, victim_id, [("A", 1)])

    def failing_cancel(reservation_id, max_retries=None):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(inventory, "cancel_reservation", failing_cancel)

    response = client.delete(f"/api/admin/user/{victim_id}", headers=headers)
    assert response.status_code == 500
    body = response.get_json()
    assert body["message"] == "Failed to delete user"
    assert body["deletedReservations"] == 0
    assert "disk I/O error" in body["error"]
    assert db.session.get(User, victim_id) is not None
    assert inventory.list_taken_seats(screening.id) == {("A", 1)}
