"""Seat inventory for screenings.

A screening's taken-seat set is the set of ``ReservedSeat`` rows pointing at
it. Every reserve or cancel bumps ``Screening.version`` with a conditional
update, so a writer that read a stale seat set loses the compare-and-set,
rolls back and retries. The unique constraint on (screening, row, number)
backs this up at the database level.
"""

import logging
import uuid

from flask import current_app
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from errors import ConcurrentUpdateConflict, NotFound, SeatConflict, SeatValidationError
from models import Reservation, ReservedSeat, Screening, db

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
# matches ReservedSeat.row
MAX_ROW_LENGTH = 10


def normalize_seats(seats):
    """Turn ``[{"row": "A", "number": 1}, ("B", 2), ...]`` into ``[("A", 1), ("B", 2)]``.

    Order is preserved. Raises SeatValidationError on empty input, malformed
    coordinates or a seat requested twice.
    """
    if not seats:
        raise SeatValidationError("At least one seat is required")

    normalized = []
    seen = set()
    for seat in seats:
        if isinstance(seat, dict):
            row, number = seat.get("row"), seat.get("number")
        else:
            try:
                row, number = seat
            except (TypeError, ValueError):
                raise SeatValidationError(f"Malformed seat {seat!r}") from None

        if isinstance(row, int) and not isinstance(row, bool):
            row = str(row)
        if not isinstance(row, str) or not row.strip():
            raise SeatValidationError(f"Seat row must be a non-empty string, got {row!r}")
        if len(row.strip()) > MAX_ROW_LENGTH:
            raise SeatValidationError(f"Seat row must be at most {MAX_ROW_LENGTH} characters, got {row!r}")
        if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
            raise SeatValidationError(f"Seat number must be a positive integer, got {number!r}")

        key = (row.strip(), number)
        if key in seen:
            raise SeatValidationError(f"Seat row {key[0]} number {key[1]} requested more than once")
        seen.add(key)
        normalized.append(key)
    return normalized


def _layout_keys(auditorium):
    layout = auditorium.seats if auditorium is not None else None
    return [(str(s["row"]), int(s["number"])) for s in (layout or [])]


def _max_retries(max_retries):
    if max_retries is None:
        max_retries = current_app.config.get("RESERVATION_MAX_RETRIES", DEFAULT_MAX_RETRIES)
    # every call gets at least one attempt
    return max(1, max_retries)


def _load_screening(screening_id):
    screening = db.session.get(Screening, screening_id, populate_existing=True)
    if screening is None:
        raise NotFound("Screening not found")
    return screening


def _taken_keys(screening_id):
    rows = db.session.execute(
        select(ReservedSeat.row, ReservedSeat.number).where(ReservedSeat.screening_id == screening_id)
    ).all()
    return {(row, number) for row, number in rows}


def _claim_screening(screening_id, expected_version):
    result = db.session.execute(
        update(Screening)
        .where(Screening.id == screening_id, Screening.version == expected_version)
        .values(version=Screening.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def list_taken_seats(screening_id):
    _load_screening(screening_id)
    return _taken_keys(screening_id)


def list_availability(screening_id):
    """Auditorium seat map minus the taken seats, in layout order."""
    screening = _load_screening(screening_id)
    taken = _taken_keys(screening_id)
    return [
        {"row": row, "number": number, "isAvailable": True}
        for row, number in _layout_keys(screening.auditorium)
        if (row, number) not in taken
    ]


def reserve(screening_id, user_id, seats, max_retries=None):
    """Reserve ``seats`` of a screening for ``user_id`` and return the reservation id.

    The reservation is priced at the screening's flat price whatever the
    number of seats.
    """
    requested = normalize_seats(seats)
    attempts = _max_retries(max_retries)

    for attempt in range(1, attempts + 1):
        screening = _load_screening(screening_id)
        expected_version = screening.version

        layout = set(_layout_keys(screening.auditorium))
        if layout:
            for row, number in requested:
                if (row, number) not in layout:
                    db.session.rollback()
                    raise SeatValidationError(f"Seat row {row} number {number} does not exist in this auditorium")

        taken = _taken_keys(screening_id)
        for row, number in requested:
            if (row, number) in taken:
                db.session.rollback()
                raise SeatConflict(row, number)

        reservation_id = str(uuid.uuid4())
        try:
            if not _claim_screening(screening_id, expected_version):
                db.session.rollback()
                logger.warning("Screening %s changed during reserve, attempt %d/%d", screening_id, attempt, attempts)
                continue
            db.session.add(
                Reservation(
                    id=reservation_id,
                    user_id=user_id,
                    screening_id=screening_id,
                    total_price=screening.price,
                    seats=[ReservedSeat(screening_id=screening_id, row=row, number=number) for row, number in requested],
                )
            )
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.warning("Seat collision on screening %s during reserve, attempt %d/%d", screening_id, attempt, attempts)
            continue

        logger.info("Reservation %s created for user %s on screening %s (%d seats)", reservation_id, user_id, screening_id, len(requested))
        return reservation_id

    raise ConcurrentUpdateConflict(screening_id, attempts)


def _release(screening_id, find, attempts):
    """Delete the reservation returned by ``find`` under its screening's compare-and-set.

    The version is read before ``find`` runs, so a reservation removed by a
    concurrent cancel either is not found or makes the compare-and-set fail.
    """
    for attempt in range(1, attempts + 1):
        expected_version = _load_screening(screening_id).version
        reservation = find()
        if reservation is None:
            db.session.rollback()
            raise NotFound("Reservation not found")
        reservation_id = reservation.id

        if not _claim_screening(screening_id, expected_version):
            db.session.rollback()
            logger.warning("Screening %s changed during cancel, attempt %d/%d", screening_id, attempt, attempts)
            continue
        db.session.execute(delete(ReservedSeat).where(ReservedSeat.reservation_id == reservation_id))
        result = db.session.execute(delete(Reservation).where(Reservation.id == reservation_id))
        if result.rowcount != 1:
            db.session.rollback()
            logger.warning("Reservation %s vanished during cancel, attempt %d/%d", reservation_id, attempt, attempts)
            continue
        db.session.commit()
        logger.info("Reservation %s cancelled on screening %s", reservation_id, screening_id)
        return reservation_id

    raise ConcurrentUpdateConflict(screening_id, attempts)


def cancel(screening_id, user_id, max_retries=None):
    """Cancel the user's reservation for a screening, freeing its seats.

    Only one reservation per user and screening is expected; if there are
    several the oldest goes first.
    """

    def find():
        return db.session.execute(
            select(Reservation)
            .where(Reservation.screening_id == screening_id, Reservation.user_id == user_id)
            .order_by(Reservation.created_at, Reservation.id)
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    return _release(screening_id, find, _max_retries(max_retries))


def cancel_reservation(reservation_id, max_retries=None):
    screening_id = db.session.execute(
        select(Reservation.screening_id).where(Reservation.id == reservation_id)
    ).scalar_one_or_none()
    if screening_id is None:
        db.session.rollback()
        raise NotFound("Reservation not found")

    def find():
        return db.session.get(Reservation, reservation_id, populate_existing=True)

    return _release(screening_id, find, _max_retries(max_retries))


def get_reservation(reservation_id):
    reservation = db.session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFound("Reservation not found")
    return reservation


def list_user_reservations(user_id):
    return db.session.execute(
        select(Reservation).where(Reservation.user_id == user_id).order_by(Reservation.created_at.desc())
    ).scalars().all()
