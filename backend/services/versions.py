"""Append-only version history per project."""
from datetime import datetime

from errors import NotFound
from extensions import db
from models import Version

INITIAL_DESCRIPTION = "Initial version"
MANUAL_SAVE_DESCRIPTION = "Manual save"
DESCRIPTION_LIMIT = 50


def describe_modification(request_text):
    if len(request_text) > DESCRIPTION_LIMIT:
        return request_text[:DESCRIPTION_LIMIT] + "..."
    return request_text


def append(project_id, code, description, timestamp=None):
    version = Version(
        project_id=project_id,
        code=code,
        description=description or "",
        timestamp=timestamp or datetime.utcnow(),
    )
    db.session.add(version)
    db.session.flush()
    return version


def list_by_project(project_id, descending=True):
    query = Version.query.filter_by(project_id=project_id)
    if descending:
        return query.order_by(Version.timestamp.desc(), Version.id.desc()).all()
    return query.order_by(Version.timestamp.asc(), Version.id.asc()).all()


def count_for_project(project_id):
    return Version.query.filter_by(project_id=project_id).count()


def get_for_project(project_id, version_id):
    """Return the version only if it belongs to `project_id`."""
    version = db.session.get(Version, version_id) if version_id is not None else None
    if version is None or version.project_id != project_id:
        raise NotFound("Version not found")
    return version


def delete_all_for_project(project_id):
    return Version.query.filter_by(project_id=project_id).delete(synchronize_session=False)
