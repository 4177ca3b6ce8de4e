import logging
from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import IntegrityError
from errors import Conflict, InvalidArgument, ServiceError
from extensions import db
from models import User
from services import credits
from services.tokens import require_user

logger = logging.getLogger(__name__)
users_bp = Blueprint("users", __name__, url_prefix="/api/user")


def _commit_ledger(fn, *args):
    try:
        result = fn(*args)
        db.session.commit()
        return result
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        logger.exception("credit ledger update failed")
        raise


def _amount(body, key):
    value = body.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{key} must be an integer")
    return value


@users_bp.get("/credits")
@require_user
def get_credits():
    return jsonify(credits.get_balance(g.current_user.id))


@users_bp.put("/credits")
@require_user
def set_credits():
    body = request.get_json(silent=True) or {}
    value = _amount(body, "credits")
    if value < 0:
        raise InvalidArgument("Credits must be a positive number")
    return jsonify(_commit_ledger(credits.set_balance, g.current_user.id, value))


@users_bp.patch("/credits/increment")
@require_user
def increment_credits():
    body = request.get_json(silent=True) or {}
    return jsonify(_commit_ledger(credits.increment, g.current_user.id, _amount(body, "amount")))


@users_bp.patch("/credits/decrement")
@require_user
def decrement_credits():
    body = request.get_json(silent=True) or {}
    return jsonify(_commit_ledger(credits.decrement, g.current_user.id, _amount(body, "amount")))


@users_bp.patch("/creation/increment")
@require_user
def increment_creation():
    _commit_ledger(credits.increment_creation_count, g.current_user.id)
    return jsonify(credits.get_balance(g.current_user.id))


@users_bp.get("/profile")
@require_user
def get_profile():
    return jsonify(g.current_user.to_dict())


@users_bp.put("/profile")
@require_user
def update_profile():
    body = request.get_json(silent=True) or {}
    user = g.current_user
    if body.get("name") is not None:
        name = str(body["name"]).strip()
        if not name:
            raise InvalidArgument("Name cannot be empty")
        user.name = name
    if body.get("email") is not None:
        email = User.normalize_email(body["email"])
        if "@" not in email:
            raise InvalidArgument("Please provide a valid email")
        other = User.query.filter_by(email=email).first()
        if other is not None and other.id != user.id:
            raise Conflict("Email already exists")
        user.email = email
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Email already exists")
    return jsonify(user.to_dict())
