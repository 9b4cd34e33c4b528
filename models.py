import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _new_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    username = db.Column(db.String(50), unique=True, nullable=False)
    password_hash = db.Column(db.LargeBinary, nullable=False)
    salt = db.Column(db.LargeBinary, nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')
    banned = db.Column(db.Boolean, nullable=False, default=False)
    ban_reason = db.Column(db.String(255))
    ban_expires = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    reservations = db.relationship('Reservation', back_populates='user', passive_deletes=True)

    @property
    def is_banned(self):
        if not self.banned:
            return False
        return self.ban_expires is None or self.ban_expires > _utcnow()


class Movie(db.Model):
    __tablename__ = 'movies'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    title = db.Column(db.String(200), nullable=False)
    genre = db.Column(db.String(30), nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    poster_image = db.Column(db.String(300), nullable=False)
    rating = db.Column(db.Float, nullable=False, default=0)
    description = db.Column(db.Text, nullable=False)
    release_date = db.Column(db.DateTime, nullable=False)
    maturity_rating = db.Column(db.String(10), nullable=False)

    screenings = db.relationship('Screening', back_populates='movie', cascade='all, delete')


class Auditorium(db.Model):
    __tablename__ = 'auditoriums'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(100), nullable=False)
    # [{"row": "A", "number": 1}, ...]
    seats = db.Column(db.JSON, nullable=False, default=list)

    screenings = db.relationship('Screening', back_populates='auditorium', cascade='all, delete')


class Screening(db.Model):
    __tablename__ = 'screenings'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    movie_id = db.Column(db.String(36), db.ForeignKey('movies.id', ondelete='CASCADE'), nullable=False)
    auditorium_id = db.Column(db.String(36), db.ForeignKey('auditoriums.id', ondelete='CASCADE'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    # bumped by every reserve/cancel, checked before writing
    version = db.Column(db.Integer, nullable=False, default=0)

    movie = db.relationship('Movie', back_populates='screenings')
    auditorium = db.relationship('Auditorium', back_populates='screenings')
    reservations = db.relationship('Reservation', back_populates='screening', cascade='all, delete')
    taken_seats = db.relationship('ReservedSeat', viewonly=True)


class Reservation(db.Model):
    __tablename__ = 'reservations'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    screening_id = db.Column(db.String(36), db.ForeignKey('screenings.id', ondelete='CASCADE'), nullable=False, index=True)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    user = db.relationship('User', back_populates='reservations')
    screening = db.relationship('Screening', back_populates='reservations')
    seats = db.relationship(
        'ReservedSeat',
        back_populates='reservation',
        cascade='all, delete-orphan',
        order_by='ReservedSeat.id',
    )


class ReservedSeat(db.Model):
    """One taken seat of a screening, owned by exactly one reservation."""

    __tablename__ = 'reserved_seats'
    id = db.Column(db.Integer, primary_key=True)
    reservation_id = db.Column(db.String(36), db.ForeignKey('reservations.id', ondelete='CASCADE'), nullable=False, index=True)
    screening_id = db.Column(db.String(36), db.ForeignKey('screenings.id', ondelete='CASCADE'), nullable=False)
    row = db.Column(db.String(10), nullable=False)
    number = db.Column(db.Integer, nullable=False)

    reservation = db.relationship('Reservation', back_populates='seats')

    __table_args__ = (
        db.UniqueConstraint('screening_id', 'row', 'number', name='uq_reserved_seat_screening_row_number'),
    )
