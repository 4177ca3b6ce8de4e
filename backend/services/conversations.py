"""Conversation log per project, and the message/version timeline view."""
from datetime import datetime, timezone

from errors import InvalidArgument
from extensions import db
from models import Conversation, ROLES
from services import versions


def parse_timestamp(value):
    if value is None or isinstance(value, datetime):
        return value
    try:
        # naive UTC like everything else in the store
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise InvalidArgument(f"Invalid timestamp: {value}")
    return parsed.astimezone(timezone.utc).replace(tzinfo=None) if parsed.tzinfo else parsed


def _build(project_id, entry):
    if not isinstance(entry, dict):
        raise InvalidArgument("Conversation entries must be objects")
    role = entry.get("role")
    content = entry.get("content")
    if role not in ROLES:
        raise InvalidArgument(f"Invalid conversation role: {role}")
    if content is None:
        raise InvalidArgument("Conversation content is required")
    return Conversation(
        project_id=project_id,
        role=role,
        content=str(content),
        timestamp=parse_timestamp(entry.get("timestamp")) or datetime.utcnow(),
    )


def append(project_id, entries):
    rows = [_build(project_id, e) for e in (entries or [])]
    db.session.add_all(rows)
    db.session.flush()
    return rows


def replace_all(project_id, entries):
    # validate before deleting anything
    rows = [_build(project_id, e) for e in (entries or [])]
    delete_all_for_project(project_id)
    db.session.add_all(rows)
    db.session.flush()
    return rows


def list_by_project(project_id):
    return (
        Conversation.query.filter_by(project_id=project_id)
        .order_by(Conversation.timestamp.asc(), Conversation.id.asc())
        .all()
    )


def delete_all_for_project(project_id):
    return Conversation.query.filter_by(project_id=project_id).delete(synchronize_session=False)


def timeline(project_id, messages=None, history=None):
    """Messages and versions merged oldest first, each tagged with its source kind.

    Computed on read; the two logs remain the only stored state.
    """
    messages = list_by_project(project_id) if messages is None else messages
    history = versions.list_by_project(project_id, descending=False) if history is None else history

    items = [("message", m) for m in messages] + [("version", v) for v in history]
    # messages sort before versions stamped in the same instant: the request precedes its result
    items.sort(key=lambda item: (item[1].timestamp, 0 if item[0] == "message" else 1, item[1].id))

    out = []
    for kind, row in items:
        entry = row.to_dict()
        entry["kind"] = kind
        out.append(entry)
    return out
