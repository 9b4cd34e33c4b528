import os
from datetime import datetime, timedelta
from decimal import Decimal

from app import create_app
from auth import hash_password
from models import Auditorium, Movie, Screening, User, db

seed_movies = [
    {
        "title": "Wicked: For Good",
        "genre": "Drama",
        "duration": 137,
        "poster_image": "https://example.com/posters/wicked-for-good.jpg",
        "rating": 7.1,
        "description": "The second act of the witches of Oz.",
        "release_date": datetime(2025, 11, 21),
        "maturity_rating": "PG",
    },
    {
        "title": "Predator: Badlands",
        "genre": "Sci-Fi",
        "duration": 107,
        "poster_image": "https://example.com/posters/predator-badlands.jpg",
        "rating": 7.4,
        "description": "A young predator cast out from its clan.",
        "release_date": datetime(2025, 11, 7),
        "maturity_rating": "PG-13",
    },
]

ROWS = "ABCDEF"
SEATS_PER_ROW = 12


def seat_layout(rows=ROWS, seats_per_row=SEATS_PER_ROW):
    return [{"row": row, "number": n} for row in rows for n in range(1, seats_per_row + 1)]


app = create_app()

with app.app_context():

    # ------------------------------
    # Seed Admin User
    # ------------------------------
    admin_username = os.getenv("ADMIN_USERNAME", "admin")
    admin_password = os.getenv("ADMIN_PASSWORD", "Admin123!")
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")

    existing_admin = User.query.filter_by(username=admin_username).first()
    if not existing_admin:
        password_hash, salt = hash_password(admin_password)
        admin = User(
            name="Administrator",
            email=admin_email,
            username=admin_username,
            password_hash=password_hash,
            salt=salt,
            role="admin"
        )
        db.session.add(admin)
        print("Admin user created!")
    else:
        print("Admin user already exists")

    # ------------------------------
    # Seed Auditorium
    # ------------------------------
    auditorium = Auditorium.query.filter_by(name="Hall 1").first()
    if not auditorium:
        auditorium = Auditorium(name="Hall 1", seats=seat_layout())
        db.session.add(auditorium)
        db.session.flush()
        print("Added auditorium: Hall 1")

    # ------------------------------
    # Seed Movies and Screenings
    # ------------------------------
    tomorrow = datetime.now().replace(hour=14, minute=0, second=0, microsecond=0) + timedelta(days=1)
    for data in seed_movies:
        if Movie.query.filter_by(title=data["title"]).first():
            print(f"Skipping {data['title']} (already in DB)")
            continue

        movie = Movie(**data)
        db.session.add(movie)
        db.session.flush()

        for offset in (0, 3, 6):
            start = tomorrow + timedelta(hours=offset)
            db.session.add(
                Screening(
                    movie_id=movie.id,
                    auditorium_id=auditorium.id,
                    start_time=start,
                    end_time=start + timedelta(minutes=data["duration"]),
                    price=Decimal("12.50"),
                )
            )
        print(f"Added movie: {data['title']}")

    db.session.commit()
    print("Seeding complete!")
