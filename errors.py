class ReservationError(Exception):
    """Base class for per-request seat inventory outcomes."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(ReservationError):
    status_code = 404


class SeatConflict(ReservationError):
    status_code = 409

    def __init__(self, row, number):
        super().__init__(f"Seat row {row} number {number} is already taken")
        self.row = row
        self.number = number


class ConcurrentUpdateConflict(ReservationError):
    """The screening kept changing underneath us; the caller may retry."""

    status_code = 503

    def __init__(self, screening_id, attempts):
        super().__init__(
            f"Screening {screening_id} was updated concurrently, gave up after {attempts} attempts"
        )
        self.screening_id = screening_id
        self.attempts = attempts


class SeatValidationError(ReservationError):
    status_code = 400
