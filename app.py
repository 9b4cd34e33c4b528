import logging
import os

from dotenv import load_dotenv
from flask import Flask

from auth import jwt
from inventory import DEFAULT_MAX_RETRIES
from models import db
from routes.admin_routes import admin_bp
from routes.auth_routes import auth_bp
from routes.movie_routes import movie_bp
from routes.screening_routes import screening_bp

load_dotenv()

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    app = Flask(__name__)

    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///cinema.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config['SECRET_KEY'] = os.getenv("SECRET_KEY")
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY")
    app.config["JWT_TOKEN_LOCATION"] = ["cookies", "headers"]
    app.config["JWT_COOKIE_SECURE"] = False
    app.config["JWT_COOKIE_CSRF_PROTECT"] = False
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")
    try:
        app.config["RESERVATION_MAX_RETRIES"] = max(1, int(os.getenv("RESERVATION_MAX_RETRIES", str(DEFAULT_MAX_RETRIES))))
    except ValueError:
        app.config["RESERVATION_MAX_RETRIES"] = DEFAULT_MAX_RETRIES

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    db.init_app(app)
    jwt.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(movie_bp)
    app.register_blueprint(screening_bp)
    app.register_blueprint(admin_bp)

    @app.route("/api/status")
    def status():
        return {"status": "ok"}

    with app.app_context():
        db.create_all()

    logger.info("Application ready (database %s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app


if __name__ == '__main__':
    create_app().run(debug=True)
