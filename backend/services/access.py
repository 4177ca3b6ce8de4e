"""Ownership / visibility policy for projects.

Reads of a published project need no credential. Everything else, and every
write regardless of publish state, needs a credential resolving to the owner.
"""
from dataclasses import dataclass
from typing import Optional

from errors import Forbidden, Unauthenticated
from models import Project, User
from services.tokens import resolve_credential


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    user: Optional[User]


def _resolve(actor):
    if actor is None:
        raise Unauthenticated()
    if isinstance(actor, User):
        return actor
    return resolve_credential(actor)


def _require_owner(project: Project, actor) -> AccessDecision:
    user = _resolve(actor)
    if project.user_id != user.id:
        raise Forbidden()
    return AccessDecision(granted=True, user=user)


def check_read_access(project: Project, actor=None) -> AccessDecision:
    """`actor` is a bearer token, an already resolved User, or None."""
    if project.is_published:
        return AccessDecision(granted=True, user=None)
    return _require_owner(project, actor)


def check_write_access(project: Project, actor) -> AccessDecision:
    return _require_owner(project, actor)
