import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import create_access_token, current_user, set_access_cookies, unset_jwt_cookies
from marshmallow import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from auth import hash_password, login_required, verify_password
from models import User, db
from routes.payloads import user_payload
from schemas import format_errors, login_schema, register_schema

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    try:
        payload = register_schema.load(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({'message': 'Invalid input', 'errors': format_errors(exc.messages)}), 400

    username = payload["username"]
    email = payload["email"]

    if User.query.filter(or_(User.username == username, User.email == email)).first():
        return jsonify({'message': 'User already exists'}), 409

    try:
        hashed_password, salt = hash_password(payload["password"])
        new_user = User(
            name=payload["name"],
            email=email,
            username=username,
            password_hash=hashed_password,
            salt=salt,
            role="user",
        )
        db.session.add(new_user)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Registration failed for %s", username)
        return jsonify({'message': 'Registration failed', 'error': str(exc)}), 500

    return jsonify({'message': 'User registered successfully', 'userId': new_user.id}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    try:
        payload = login_schema.load(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({'message': 'Invalid input', 'errors': format_errors(exc.messages)}), 400

    login_name = payload["login"]
    user = User.query.filter(or_(User.username == login_name, User.email == login_name)).first()
    if not user:
        response = jsonify({'message': 'User not found'})
        response.status_code = 404
        unset_jwt_cookies(response)
        return response

    if not verify_password(payload["password"], user.password_hash, user.salt):
        response = jsonify({'message': 'Invalid password'})
        response.status_code = 401
        unset_jwt_cookies(response)
        return response

    if user.is_banned:
        response = jsonify({'message': 'User is banned', 'reason': user.ban_reason})
        response.status_code = 403
        unset_jwt_cookies(response)
        return response

    token = create_access_token(identity=user)
    response = jsonify({'message': 'Successful login', 'token': token})
    set_access_cookies(response, token)
    return response


@auth_bp.route("/logout", methods=["POST"])
def logout():
    response = jsonify({'message': 'Logged out'})
    unset_jwt_cookies(response)
    return response


@auth_bp.route("/api/user", methods=["GET"])
@login_required
def me():
    return jsonify({"user": user_payload(current_user)})
