import re
from datetime import timezone
from typing import Any, Dict, List

from marshmallow import Schema, ValidationError, fields, pre_load, validate, validates, validates_schema

GENRES = ["Action", "Comedy", "Drama", "Horror", "Romance", "Sci-Fi", "Documentary"]
MATURITY_RATINGS = ["G", "PG", "PG-13", "R", "NC-17"]
ROLES = ["admin", "user"]


class UTCDateTime(fields.DateTime):
    """ISO datetime stored as naive UTC, the way the database columns hold it."""

    def _deserialize(self, value, attr, data, **kwargs):
        result = super()._deserialize(value, attr, data, **kwargs)
        if result.tzinfo is not None:
            result = result.astimezone(timezone.utc).replace(tzinfo=None)
        return result


class RegisterSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    email = fields.Email(required=True)
    username = fields.Str(required=True)
    password = fields.Str(required=True)

    @pre_load
    def strip_strings(self, data: Dict[str, Any], **kwargs):
        for key in ("name", "email", "username"):
            value = data.get(key)
            if isinstance(value, str):
                data[key] = value.strip()
        return data

    @validates("username")
    def validate_username(self, value: str, **kwargs):
        if len(value) < 4:
            raise ValidationError("Username must have at least 4 characters")
        if not re.fullmatch(r"[A-Za-z0-9_]+", value):
            raise ValidationError("Username may only contain letters, numbers, and underscores")

    @validates("password")
    def validate_password(self, value: str, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters")
        if not re.search(r"\d", value):
            raise ValidationError("Password must have a number")
        if not re.search(r"[^A-Za-z0-9]", value):
            raise ValidationError("Password must have at least 1 special character")


class LoginSchema(Schema):
    # username or email
    login = fields.Str(required=True)
    password = fields.Str(required=True)

    @pre_load
    def accept_username_or_email(self, data: Dict[str, Any], **kwargs):
        if "login" not in data:
            data = dict(data)
            data["login"] = data.pop("username", None) or data.pop("email", None)
        data.pop("username", None)
        data.pop("email", None)
        return data


class SeatSchema(Schema):
    row = fields.Str(required=True, validate=validate.Length(min=1, max=10))
    number = fields.Int(required=True, strict=True, validate=validate.Range(min=1))

    @pre_load
    def row_to_string(self, data: Dict[str, Any], **kwargs):
        row = data.get("row") if isinstance(data, dict) else None
        if isinstance(row, int) and not isinstance(row, bool):
            data = dict(data, row=str(row))
        return data


class ReserveSchema(Schema):
    seats = fields.List(fields.Nested(SeatSchema), required=True, validate=validate.Length(min=1))


class MovieSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    duration = fields.Int(required=True, validate=validate.Range(min=1))
    poster_image = fields.Str(required=True, data_key="posterImage")
    genre = fields.Str(required=True, validate=validate.OneOf(GENRES))
    rating = fields.Float(required=True, validate=validate.Range(min=0, max=10))
    description = fields.Str(required=True)
    release_date = UTCDateTime(required=True, data_key="releaseDate")
    maturity_rating = fields.Str(required=True, data_key="maturityRating", validate=validate.OneOf(MATURITY_RATINGS))


class AuditoriumSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    seats = fields.List(fields.Nested(SeatSchema), load_default=list)

    @validates("seats")
    def validate_unique_seats(self, value: List[Dict[str, Any]], **kwargs):
        keys = [(seat["row"], seat["number"]) for seat in value]
        if len(keys) != len(set(keys)):
            raise ValidationError("Seat layout contains duplicate seats")


class ScreeningSchema(Schema):
    movie_id = fields.Str(required=True, data_key="movieId")
    auditorium_id = fields.Str(required=True, data_key="auditoriumId")
    start_time = UTCDateTime(required=True, data_key="startTime")
    end_time = UTCDateTime(required=True, data_key="endTime")
    price = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))

    @validates_schema
    def validate_times(self, data: Dict[str, Any], **kwargs):
        start, end = data.get("start_time"), data.get("end_time")
        if start and end and end <= start:
            raise ValidationError("endTime must be after startTime", field_name="endTime")


class PromoteSchema(Schema):
    role = fields.Str(required=True, validate=validate.OneOf(ROLES))


class BanSchema(Schema):
    reason = fields.Str(load_default=None)
    expires = UTCDateTime(load_default=None)


def format_errors(messages, prefix=""):
    """Flatten marshmallow's nested error dict into ``[{"field", "msg"}]``."""
    errors = []
    if isinstance(messages, dict):
        for field, value in messages.items():
            name = f"{prefix}.{field}" if prefix else str(field)
            errors.extend(format_errors(value, name))
    elif isinstance(messages, list):
        for message in messages:
            if isinstance(message, (dict, list)):
                errors.extend(format_errors(message, prefix))
            else:
                errors.append({"field": prefix or "_schema", "msg": message})
    else:
        errors.append({"field": prefix or "_schema", "msg": messages})
    return errors


register_schema = RegisterSchema()
login_schema = LoginSchema()
reserve_schema = ReserveSchema()
movie_schema = MovieSchema()
auditorium_schema = AuditoriumSchema()
screening_schema = ScreeningSchema()
promote_schema = PromoteSchema()
ban_schema = BanSchema()
