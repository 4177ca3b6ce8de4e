import logging
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash
from errors import Conflict, InvalidArgument, Unauthenticated
from extensions import db
from models import User
from services.tokens import issue_token, require_user

logger = logging.getLogger(__name__)
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

MIN_PASSWORD_LENGTH = 6


@auth_bp.post("/register")
def register():
    body = request.get_json(silent=True) or {}
    name = (body.get("name") or "").strip()
    email = User.normalize_email(body.get("email"))
    password = body.get("password") or ""
    if not name or not email or not password:
        raise InvalidArgument("Please provide name, email, and password")
    if "@" not in email:
        raise InvalidArgument("Please provide a valid email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidArgument(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if User.query.filter_by(email=email).first():
        raise Conflict("User with this email already exists")

    user = User(
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        credits=current_app.config["INITIAL_CREDITS"],
    )
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("User with this email already exists")
    logger.info("Registered user %s", user.id)
    return jsonify({"token": issue_token(user), "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login():
    body = request.get_json(silent=True) or {}
    email = User.normalize_email(body.get("email"))
    password = body.get("password") or ""
    if not email or not password:
        raise InvalidArgument("Please provide email and password")
    user = User.query.filter_by(email=email).first()
    if user is None or not check_password_hash(user.password_hash, password):
        raise Unauthenticated("Invalid email or password")
    return jsonify({"token": issue_token(user), "user": user.to_dict()})


@auth_bp.get("/me")
@require_user
def me():
    return jsonify(g.current_user.to_dict())


@auth_bp.post("/logout")
@require_user
def logout():
    # tokens are stateless; the client discards its copy
    return jsonify({"success": True, "message": "Logged out successfully"})
