from flask import jsonify

from errors import ConcurrentUpdateConflict


def error_response(exc):
    """JSON response for a ReservationError, using its status code."""
    response = jsonify({"message": exc.message})
    response.status_code = exc.status_code
    if isinstance(exc, ConcurrentUpdateConflict):
        response.headers["Retry-After"] = "1"
    return response


def _iso(value):
    return value.isoformat() if value else None


def seat_payload(seat):
    return {"row": seat.row, "number": seat.number, "isAvailable": False}


def user_payload(user):
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "username": user.username,
        "role": user.role,
        "banned": user.banned,
        "banReason": user.ban_reason,
        "banExpires": _iso(user.ban_expires),
    }


def movie_payload(movie):
    return {
        "id": movie.id,
        "title": movie.title,
        "duration": movie.duration,
        "posterImage": movie.poster_image,
        "genre": movie.genre,
        "rating": movie.rating,
        "description": movie.description,
        "releaseDate": _iso(movie.release_date),
        "maturityRating": movie.maturity_rating,
    }


def auditorium_payload(auditorium):
    return {"id": auditorium.id, "name": auditorium.name, "seats": auditorium.seats or []}


def screening_payload(screening):
    taken = sorted(screening.taken_seats, key=lambda s: (s.row, s.number))
    return {
        "id": screening.id,
        "movieId": screening.movie_id,
        "auditoriumId": screening.auditorium_id,
        "startTime": _iso(screening.start_time),
        "endTime": _iso(screening.end_time),
        "price": float(screening.price),
        "takenSeats": [seat_payload(s) for s in taken],
    }


def reservation_payload(reservation):
    return {
        "id": reservation.id,
        "userId": reservation.user_id,
        "screeningId": reservation.screening_id,
        "totalPrice": float(reservation.total_price),
        "seats": [seat_payload(s) for s in reservation.seats],
        "createdAt": _iso(reservation.created_at),
    }
