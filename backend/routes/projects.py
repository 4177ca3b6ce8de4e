import logging
from flask import Blueprint, g, jsonify, request
from errors import InvalidArgument
from services.projects import get_project_service
from services.tokens import bearer_token, require_user

logger = logging.getLogger(__name__)
projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")

# the web client sends camelCase for some fields
_ALIASES = {
    "initialPrompt": "initial_prompt",
    "modificationRequest": "modification_request",
    "currentCode": "current_code",
    "currentVersionIndex": "current_version_index",
}


def _body():
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise InvalidArgument("Request body must be a JSON object")
    return {_ALIASES.get(k, k): v for k, v in body.items()}


@projects_bp.get("")
@require_user
def list_projects():
    return jsonify({"projects": get_project_service().list_own(g.current_user)})


@projects_bp.get("/community")
def list_community():
    return jsonify({"projects": get_project_service().list_community()})


@projects_bp.get("/<int:project_id>")
def get_project(project_id):
    return jsonify(get_project_service().get(project_id, bearer_token()))


@projects_bp.get("/<int:project_id>/versions")
def list_versions(project_id):
    descending = request.args.get("order", "desc").lower() != "asc"
    versions = get_project_service().list_versions(project_id, bearer_token(), descending=descending)
    return jsonify({"versions": versions})


@projects_bp.get("/<int:project_id>/timeline")
def get_timeline(project_id):
    return jsonify({"timeline": get_project_service().timeline(project_id, bearer_token())})


@projects_bp.post("")
@require_user
def create_project():
    body = _body()
    project = get_project_service().create(
        g.current_user,
        name=body.get("name"),
        initial_prompt=body.get("initial_prompt"),
        current_code=body.get("current_code"),
        conversation=body.get("conversation"),
        extra_versions=body.get("versions"),
    )
    return jsonify(project), 201


@projects_bp.put("/<int:project_id>")
@require_user
def update_project(project_id):
    return jsonify(get_project_service().update(project_id, g.current_user, _body()))


@projects_bp.post("/<int:project_id>/rollback")
@require_user
def rollback_project(project_id):
    body = _body()
    version_id = body.get("version_id", body.get("current_version_index"))
    if version_id is None:
        raise InvalidArgument("Please provide version_id")
    return jsonify(get_project_service().rollback(project_id, g.current_user, version_id))


@projects_bp.patch("/<int:project_id>/publish")
@require_user
def toggle_publish(project_id):
    return jsonify(get_project_service().toggle_publish(project_id, g.current_user))


@projects_bp.delete("/<int:project_id>")
@require_user
def delete_project(project_id):
    get_project_service().delete(project_id, g.current_user)
    return jsonify({"deleted": True, "id": project_id})
