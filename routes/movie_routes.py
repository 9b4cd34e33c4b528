from flask import Blueprint, jsonify

from models import Movie, db
from routes.payloads import movie_payload

movie_bp = Blueprint("movie_api", __name__)


@movie_bp.route("/api/movie", methods=["GET"])
def list_movies():
    movies = Movie.query.order_by(Movie.release_date.desc()).all()
    return jsonify({"movies": [movie_payload(m) for m in movies]})


@movie_bp.route("/api/movie/<movie_id>", methods=["GET"])
def get_movie(movie_id):
    movie = db.session.get(Movie, movie_id)
    if not movie:
        return jsonify({"message": "Movie not found"}), 404
    return jsonify(movie_payload(movie))
