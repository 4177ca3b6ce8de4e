"""Bearer credentials: signed user-id tokens and their resolution back to a User."""
import logging
from functools import wraps

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from errors import Unauthenticated
from extensions import db
from models import User

logger = logging.getLogger(__name__)

_SALT = "auth-token"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_SALT)


def issue_token(user):
    return _serializer().dumps({"id": user.id})


def resolve_credential(token):
    if not token:
        raise Unauthenticated()
    try:
        data = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE_SECONDS"])
    except SignatureExpired:
        raise Unauthenticated("Token expired")
    except BadSignature:
        raise Unauthenticated()
    user_id = data.get("id") if isinstance(data, dict) else None
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None:
        raise Unauthenticated()
    return user


def bearer_token(req=None):
    header = (req or request).headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def require_user(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        g.current_user = resolve_credential(bearer_token())
        return view(*args, **kwargs)

    return wrapper
