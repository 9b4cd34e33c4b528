import logging

from flask import Blueprint, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

import inventory
from auth import admin_required
from errors import ReservationError
from models import Auditorium, Movie, Reservation, Screening, User, db
from routes.payloads import (
    auditorium_payload,
    error_response,
    movie_payload,
    reservation_payload,
    screening_payload,
    user_payload,
)
from schemas import auditorium_schema, ban_schema, format_errors, movie_schema, promote_schema, screening_schema

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin_api", __name__, url_prefix="/api/admin")


def _load(schema):
    """Load the JSON body with ``schema``; returns (data, error_response)."""
    try:
        return schema.load(request.get_json(silent=True) or {}), None
    except ValidationError as exc:
        return None, (jsonify({"message": "Invalid input", "errors": format_errors(exc.messages)}), 400)


def _commit(failure_message):
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception(failure_message)
        return jsonify({"message": failure_message, "error": str(exc)}), 500
    return None


# -----------------------
# Users
# -----------------------
@admin_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.asc()).all()
    return jsonify({"users": [user_payload(u) for u in users]})


@admin_bp.route("/user/<user_id>/promote", methods=["PUT"])
@admin_required
def promote_user(user_id):
    payload, error = _load(promote_schema)
    if error:
        return error

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "User not found"}), 404

    user.role = payload["role"]
    return _commit("Failed to update user") or jsonify({"message": "User promoted successfully", "user": user_payload(user)})


@admin_bp.route("/user/<user_id>/ban", methods=["PUT"])
@admin_required
def ban_user(user_id):
    payload, error = _load(ban_schema)
    if error:
        return error

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "User not found"}), 404

    user.banned = True
    user.ban_reason = payload["reason"]
    user.ban_expires = payload["expires"]
    return _commit("Failed to ban user") or jsonify({"message": "User banned successfully", "user": user_payload(user)})


@admin_bp.route("/user/<user_id>/unban", methods=["PUT"])
@admin_required
def unban_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "User not found"}), 404

    user.banned = False
    user.ban_reason = None
    user.ban_expires = None
    return _commit("Failed to unban user") or jsonify({"message": "User unbanned successfully", "user": user_payload(user)})


@admin_bp.route("/user/<user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "User not found"}), 404

    # Release seats through the inventory so screening versions move on
    reservation_ids = [r.id for r in inventory.list_user_reservations(user_id)]
    released = 0
    try:
        for reservation_id in reservation_ids:
            inventory.cancel_reservation(reservation_id)
            released += 1
    except ReservationError as exc:
        return error_response(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Failed to release reservations of user %s", user_id)
        return jsonify({"message": "Failed to delete user", "error": str(exc), "deletedReservations": released}), 500

    db.session.delete(user)
    return _commit("Failed to delete user") or jsonify(
        {"message": "User deleted successfully", "userId": user_id, "deletedReservations": released}
    )


# -----------------------
# Movies
# -----------------------
@admin_bp.route("/movies", methods=["GET"])
@admin_required
def list_movies():
    movies = Movie.query.order_by(Movie.title.asc()).all()
    return jsonify({"movies": [movie_payload(m) for m in movies]})


@admin_bp.route("/movie", methods=["POST"])
@admin_required
def add_movie():
    payload, error = _load(movie_schema)
    if error:
        return error

    movie = Movie(**payload)
    db.session.add(movie)
    return _commit("Failed to add movie") or (jsonify({"message": "Movie added successfully", "movieId": movie.id}), 201)


@admin_bp.route("/movie/<movie_id>", methods=["DELETE"])
@admin_required
def delete_movie(movie_id):
    movie = db.session.get(Movie, movie_id)
    if not movie:
        return jsonify({"message": "Movie not found"}), 404

    db.session.delete(movie)
    return _commit("Failed to delete movie") or jsonify({"message": "Movie deleted successfully"})


# -----------------------
# Auditoriums
# -----------------------
@admin_bp.route("/auditoriums", methods=["GET"])
@admin_required
def list_auditoriums():
    auditoriums = Auditorium.query.order_by(Auditorium.name.asc()).all()
    return jsonify({"auditoriums": [auditorium_payload(a) for a in auditoriums]})


@admin_bp.route("/auditorium", methods=["POST"])
@admin_required
def add_auditorium():
    payload, error = _load(auditorium_schema)
    if error:
        return error

    auditorium = Auditorium(name=payload["name"], seats=payload["seats"])
    db.session.add(auditorium)
    return _commit("Failed to add auditorium") or (
        jsonify({"message": "Auditorium added successfully", "auditoriumId": auditorium.id}),
        201,
    )


# -----------------------
# Screenings
# -----------------------
@admin_bp.route("/screenings", methods=["GET"])
@admin_required
def list_screenings():
    screenings = Screening.query.order_by(Screening.start_time.asc()).all()
    return jsonify({"screenings": [screening_payload(s) for s in screenings]})


@admin_bp.route("/screening", methods=["POST"])
@admin_required
def add_screening():
    payload, error = _load(screening_schema)
    if error:
        return error

    if not db.session.get(Movie, payload["movie_id"]):
        return jsonify({"message": "Movie not found"}), 404
    if not db.session.get(Auditorium, payload["auditorium_id"]):
        return jsonify({"message": "Auditorium not found"}), 404

    screening = Screening(**payload)
    db.session.add(screening)
    return _commit("Failed to add screening") or (
        jsonify({"message": "Screening added successfully", "screeningId": screening.id}),
        201,
    )


@admin_bp.route("/screening/<screening_id>", methods=["DELETE"])
@admin_required
def delete_screening(screening_id):
    screening = db.session.get(Screening, screening_id)
    if not screening:
        return jsonify({"message": "Screening not found"}), 404

    db.session.delete(screening)
    return _commit("Failed to delete screening") or jsonify({"message": "Screening deleted successfully"})


# -----------------------
# Reservations
# -----------------------
@admin_bp.route("/reservations", methods=["GET"])
@admin_required
def list_reservations():
    reservations = Reservation.query.order_by(Reservation.created_at.desc()).all()
    return jsonify({"reservations": [reservation_payload(r) for r in reservations]})
