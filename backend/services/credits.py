"""Credit ledger: per-user balance and creation counter.

Every operation is a single-row read-modify-write. The functions flush but never
commit; they run inside whatever transaction the caller owns.
"""
import logging

from sqlalchemy import update

from errors import InsufficientCredits, InvalidArgument, NotFound
from extensions import db
from models import User

logger = logging.getLogger(__name__)


def _require_user(user_id, refresh=False):
    user = db.session.get(User, user_id, populate_existing=refresh)
    if user is None:
        raise NotFound("User not found")
    return user


def _require_amount(amount, allow_zero=False):
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidArgument("Amount must be an integer")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidArgument("Amount must be a positive number")
    return amount


def _snapshot(user):
    return {"credits": user.credits, "total_creation": user.total_creation}


def get_balance(user_id):
    return _snapshot(_require_user(user_id))


def check_balance(user_id, cost, message="Insufficient credits to create project"):
    """Raise InsufficientCredits when the user cannot cover `cost`. Writes nothing."""
    user = _require_user(user_id, refresh=True)
    if user.credits < cost:
        raise InsufficientCredits(message)
    return user


def increment(user_id, amount):
    _require_amount(amount)
    _require_user(user_id)
    db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(credits=User.credits + amount)
        .execution_options(synchronize_session=False)
    )
    return _snapshot(_require_user(user_id, refresh=True))


def decrement(user_id, amount):
    _require_amount(amount)
    _require_user(user_id)
    # the floor check lives in the UPDATE itself so two racing debits cannot both pass
    result = db.session.execute(
        update(User)
        .where(User.id == user_id, User.credits >= amount)
        .values(credits=User.credits - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InsufficientCredits()
    return _snapshot(_require_user(user_id, refresh=True))


def increment_creation_count(user_id):
    _require_user(user_id)
    db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_creation=User.total_creation + 1)
        .execution_options(synchronize_session=False)
    )
    return _require_user(user_id, refresh=True).total_creation


def set_balance(user_id, value):
    """Administrative override."""
    _require_amount(value, allow_zero=True)
    user = _require_user(user_id)
    user.credits = value
    db.session.flush()
    logger.info("Credits for user %s set to %s", user_id, value)
    return _snapshot(user)
