import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import current_user
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

import inventory
from auth import login_required
from errors import ReservationError
from models import Screening, db
from routes.payloads import error_response, reservation_payload, screening_payload
from schemas import format_errors, reserve_schema

logger = logging.getLogger(__name__)

screening_bp = Blueprint("screening_api", __name__)


@screening_bp.route("/api/screening", methods=["GET"])
def list_screenings():
    screenings = Screening.query.order_by(Screening.start_time.asc()).all()
    return jsonify({"screenings": [screening_payload(s) for s in screenings]})


@screening_bp.route("/api/screening/<screening_id>", methods=["GET"])
def get_screening(screening_id):
    screening = db.session.get(Screening, screening_id)
    if not screening:
        return jsonify({"message": "Screening not found"}), 404
    return jsonify(screening_payload(screening))


@screening_bp.route("/api/screening/<screening_id>/seats", methods=["GET"])
def screening_seats(screening_id):
    try:
        available = inventory.list_availability(screening_id)
        taken = sorted(inventory.list_taken_seats(screening_id))
    except ReservationError as exc:
        return error_response(exc)

    return jsonify(
        {
            "screeningId": screening_id,
            "available": available,
            "taken": [{"row": row, "number": number, "isAvailable": False} for row, number in taken],
        }
    )


@screening_bp.route("/api/screening/<screening_id>/reserve", methods=["POST"])
@login_required
def reserve(screening_id):
    try:
        payload = reserve_schema.load(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({"message": "Invalid input", "errors": format_errors(exc.messages)}), 400

    try:
        reservation_id = inventory.reserve(screening_id, current_user.id, payload["seats"])
    except ReservationError as exc:
        return error_response(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Reserve failed on screening %s", screening_id)
        return jsonify({"message": "Failed to save reservation", "error": str(exc)}), 500

    return jsonify({"message": "Reservation successful", "reservationId": reservation_id}), 201


@screening_bp.route("/api/screening/<screening_id>/cancel", methods=["DELETE"])
@login_required
def cancel(screening_id):
    try:
        reservation_id = inventory.cancel(screening_id, current_user.id)
    except ReservationError as exc:
        return error_response(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Cancel failed on screening %s", screening_id)
        return jsonify({"message": "Failed to cancel reservation", "error": str(exc)}), 500

    return jsonify({"message": "Reservation cancelled successfully", "reservationId": reservation_id})


@screening_bp.route("/api/reservations", methods=["GET"])
@login_required
def my_reservations():
    reservations = inventory.list_user_reservations(current_user.id)
    return jsonify({"reservations": [reservation_payload(r) for r in reservations]})


@screening_bp.route("/api/reservations/<reservation_id>", methods=["DELETE"])
@login_required
def delete_reservation(reservation_id):
    # Owners cancel their own reservations, admins any
    try:
        reservation = inventory.get_reservation(reservation_id)
        if current_user.role != "admin" and reservation.user_id != current_user.id:
            return jsonify({"message": "Not authorized to cancel this reservation"}), 403
        inventory.cancel_reservation(reservation_id)
    except ReservationError as exc:
        return error_response(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Cancel failed for reservation %s", reservation_id)
        return jsonify({"message": "Failed to cancel reservation", "error": str(exc)}), 500

    return jsonify({"message": "Reservation cancelled successfully", "reservationId": reservation_id})
