import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("SECRET_KEY", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-that-is-long-enough")
os.environ.setdefault("PEPPER", "test-pepper")

from flask_jwt_extended import create_access_token

from app import create_app
from models import Auditorium, Movie, Screening, User, db


@pytest.fixture()
def app(tmp_path):
    application = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'unit.db'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"check_same_thread": False, "timeout": 30}},
            "RESERVATION_MAX_RETRIES": 3,
        }
    )
    with application.app_context():
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make_user(username, role="user", banned=False):
        user = User(
            name=username.title(),
            email=f"{username}@example.com",
            username=username,
            password_hash=b"hash",
            salt=b"salt",
            role=role,
            banned=banned,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture()
def make_screening(app):
    def _make_screening(rows="AB", seats_per_row=10, price="12.50"):
        movie = Movie(
            title="Interstellar",
            genre="Sci-Fi",
            duration=169,
            poster_image="https://example.com/interstellar.jpg",
            rating=8.7,
            description="Explorers travel through a wormhole.",
            release_date=datetime(2014, 11, 7),
            maturity_rating="PG-13",
        )
        auditorium = Auditorium(
            name="Hall 1",
            seats=[{"row": row, "number": n} for row in rows for n in range(1, seats_per_row + 1)],
        )
        db.session.add_all([movie, auditorium])
        db.session.flush()
        start = datetime(2030, 1, 1, 19, 0)
        screening = Screening(
            movie_id=movie.id,
            auditorium_id=auditorium.id,
            start_time=start,
            end_time=start + timedelta(minutes=169),
            price=Decimal(price),
        )
        db.session.add(screening)
        db.session.commit()
        return screening

    return _make_screening


@pytest.fixture()
def auth_headers(app):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(identity=user)}"}

    return _auth_headers
