"""Project aggregate: current code, active-version pointer, publish flag.

Each mutation is one unit: policy and credit checks, then the generation call,
then every write (ledger, project row, conversation, version, pointer) inside a
single commit. Anything raised before the commit leaves no trace in the store.
Mutations of an existing project are serialized per project id.
"""
import logging
from contextlib import contextmanager

from flask import current_app

from errors import GatewayFailure, InvalidArgument, InvalidState, NotFound
from extensions import db
from models import Project
from services import conversations, credits, versions
from services.access import check_read_access, check_write_access
from services.locks import PROJECT_LOCKS

logger = logging.getLogger(__name__)


def _require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"Please provide {field}")
    return value.strip()


def _parse_id(value, field):
    if isinstance(value, bool):
        raise InvalidArgument(f"Invalid {field}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"Invalid {field}")


class ProjectService:
    def __init__(self, gateway, generation_cost=5, modification_cost=0, locks=PROJECT_LOCKS):
        self.gateway = gateway
        self.generation_cost = generation_cost
        self.modification_cost = modification_cost
        self.locks = locks

    # -- helpers ---------------------------------------------------------

    @contextmanager
    def _commit_unit(self):
        try:
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def _load(self, project_id, refresh=False):
        project = db.session.get(Project, project_id, populate_existing=refresh)
        if project is None:
            raise NotFound("Project not found")
        return project

    def _point_to(self, project, version):
        if version.project_id != project.id:
            raise InvalidArgument("Version does not belong to this project")
        project.current_version_id = version.id
        project.current_code = version.code

    def _call_gateway(self, fn, context, *args):
        try:
            return fn(*args)
        except GatewayFailure as e:
            raise GatewayFailure(f"{context}: {e.message}", cause=e.cause or e)
        except Exception as e:
            logger.exception("%s", context)
            raise GatewayFailure(f"{context}: {e}", cause=e)

    def format(self, project, full=True):
        data = project.to_dict()
        if not full:
            return data
        messages = conversations.list_by_project(project.id)
        history = versions.list_by_project(project.id, descending=False)
        data["conversation"] = [m.to_dict() for m in messages]
        data["versions"] = [v.to_dict() for v in reversed(history)]
        data["timeline"] = conversations.timeline(project.id, messages=messages, history=history)
        return data

    # -- reads -----------------------------------------------------------

    def get(self, project_id, actor=None):
        project = self._load(project_id)
        check_read_access(project, actor)
        return self.format(project)

    def list_own(self, user):
        projects = (
            Project.query.filter_by(user_id=user.id)
            .order_by(Project.updated_at.desc(), Project.id.desc())
            .all()
        )
        return [self.format(p) for p in projects]

    def list_community(self):
        projects = (
            Project.query.filter_by(is_published=True)
            .order_by(Project.updated_at.desc(), Project.id.desc())
            .all()
        )
        return [self.format(p, full=False) for p in projects]

    def list_versions(self, project_id, actor=None, descending=True):
        project = self._load(project_id)
        check_read_access(project, actor)
        return [v.to_dict() for v in versions.list_by_project(project.id, descending=descending)]

    def timeline(self, project_id, actor=None):
        project = self._load(project_id)
        check_read_access(project, actor)
        return conversations.timeline(project.id)

    # -- create ----------------------------------------------------------

    def create(self, owner, name, initial_prompt, current_code=None, conversation=None, extra_versions=None):
        name = _require_text(name, "name")
        initial_prompt = _require_text(initial_prompt, "initialPrompt")
        if current_code is not None and not isinstance(current_code, str):
            raise InvalidArgument("current_code must be a string")
        if extra_versions is not None and not isinstance(extra_versions, list):
            raise InvalidArgument("versions must be an array")

        if current_code:
            return self._create_from_code(owner, name, initial_prompt, current_code, conversation, extra_versions)

        credits.check_balance(owner.id, self.generation_cost)
        result = self._call_gateway(self.gateway.generate_from_prompt, "AI generation failed", initial_prompt)

        with self._commit_unit():
            credits.decrement(owner.id, self.generation_cost)
            credits.increment_creation_count(owner.id)
            project = Project(user_id=owner.id, name=name, initial_prompt=initial_prompt, current_code=result.code)
            db.session.add(project)
            db.session.flush()
            conversations.append(
                project.id,
                [
                    {"role": "user", "content": initial_prompt},
                    {"role": "assistant", "content": result.summary},
                ],
            )
            initial = versions.append(project.id, result.code, versions.INITIAL_DESCRIPTION)
            self._point_to(project, initial)

        logger.info("Generated project %s for user %s", project.id, owner.id)
        return self.format(project)

    def _create_from_code(self, owner, name, initial_prompt, code, conversation, extra_versions):
        with self._commit_unit():
            project = Project(user_id=owner.id, name=name, initial_prompt=initial_prompt, current_code=code)
            db.session.add(project)
            db.session.flush()
            initial = versions.append(project.id, code, versions.INITIAL_DESCRIPTION)
            self._point_to(project, initial)
            if conversation:
                conversations.append(project.id, conversation)
            for entry in extra_versions or []:
                if not isinstance(entry, dict) or not isinstance(entry.get("code"), str):
                    raise InvalidArgument("Each version needs a code string")
                versions.append(
                    project.id,
                    entry["code"],
                    entry.get("description") or "",
                    conversations.parse_timestamp(entry.get("timestamp")),
                )

        logger.info("Imported project %s for user %s", project.id, owner.id)
        return self.format(project)

    # -- modify ----------------------------------------------------------

    def _generate_modification(self, project, request_text):
        if not project.current_code:
            raise InvalidState("Project has no code to modify yet")
        if self.modification_cost:
            credits.check_balance(project.user_id, self.modification_cost, "Insufficient credits to modify project")
        return self._call_gateway(
            self.gateway.modify, "Failed to modify project with AI", project.current_code, request_text
        )

    def _commit_modification(self, project, request_text, result):
        if self.modification_cost:
            credits.decrement(project.user_id, self.modification_cost)
        conversations.append(
            project.id,
            [
                {"role": "user", "content": request_text},
                {"role": "assistant", "content": result.summary},
            ],
        )
        version = versions.append(project.id, result.code, versions.describe_modification(request_text))
        self._point_to(project, version)

    def _apply_manual_code(self, project, code):
        if not isinstance(code, str):
            raise InvalidArgument("current_code must be a string")
        if code == project.current_code:
            return False
        version = versions.append(project.id, code, versions.MANUAL_SAVE_DESCRIPTION)
        self._point_to(project, version)
        return True

    def _apply_rollback(self, project, version_id, code=None):
        version = versions.get_for_project(project.id, _parse_id(version_id, "version id"))
        if code is not None and code != version.code:
            raise InvalidArgument("current_code does not match the selected version")
        if project.current_version_id == version.id and project.current_code == version.code:
            return False
        self._point_to(project, version)
        return True

    def modify(self, project_id, actor, request_text):
        request_text = _require_text(request_text, "modificationRequest")
        with self.locks.hold(project_id):
            project = self._load(project_id, refresh=True)
            check_write_access(project, actor)
            result = self._generate_modification(project, request_text)
            with self._commit_unit():
                self._commit_modification(project, request_text, result)
            logger.info("Modified project %s (version %s)", project.id, project.current_version_id)
            return self.format(project)

    def save_code(self, project_id, actor, code):
        with self.locks.hold(project_id):
            project = self._load(project_id, refresh=True)
            check_write_access(project, actor)
            with self._commit_unit():
                self._apply_manual_code(project, code)
            return self.format(project)

    def rollback(self, project_id, actor, version_id):
        with self.locks.hold(project_id):
            project = self._load(project_id, refresh=True)
            check_write_access(project, actor)
            with self._commit_unit():
                self._apply_rollback(project, version_id)
            return self.format(project)

    def update(self, project_id, actor, data):
        """Field edits plus at most one code change: AI request, rollback, or manual save, in that precedence."""
        data = data or {}
        request_text = data.get("modification_request") or None
        if request_text is not None:
            request_text = _require_text(request_text, "modificationRequest")
        version_id = data.get("current_version_index")
        if version_id == "":
            version_id = None
        name = _require_text(data["name"], "name") if "name" in data else None
        initial_prompt = _require_text(data["initial_prompt"], "initialPrompt") if "initial_prompt" in data else None
        conversation = data.get("conversation")
        if conversation is not None and not isinstance(conversation, list):
            raise InvalidArgument("conversation must be an array")

        with self.locks.hold(project_id):
            project = self._load(project_id, refresh=True)
            check_write_access(project, actor)

            result = None
            if request_text:
                result = self._generate_modification(project, request_text)

            with self._commit_unit():
                if name is not None:
                    project.name = name
                if initial_prompt is not None:
                    project.initial_prompt = initial_prompt

                if result is not None:
                    self._commit_modification(project, request_text, result)
                elif version_id is not None:
                    self._apply_rollback(project, version_id, data.get("current_code"))
                elif "current_code" in data:
                    self._apply_manual_code(project, data["current_code"])

                if conversation is not None and result is None:
                    conversations.replace_all(project.id, conversation)

            return self.format(project)

    # -- publish / delete ------------------------------------------------

    def toggle_publish(self, project_id, actor):
        with self.locks.hold(project_id):
            project = self._load(project_id, refresh=True)
            check_write_access(project, actor)
            with self._commit_unit():
                project.is_published = not project.is_published
            logger.info("Project %s is_published=%s", project.id, project.is_published)
            return self.format(project, full=False)

    def delete(self, project_id, actor):
        with self.locks.hold(project_id):
            project = self._load(project_id, refresh=True)
            check_write_access(project, actor)
            with self._commit_unit():
                project.current_version_id = None
                db.session.flush()
                versions.delete_all_for_project(project.id)
                conversations.delete_all_for_project(project.id)
                db.session.delete(project)
            logger.info("Deleted project %s", project_id)


def get_project_service():
    cfg = current_app.config
    return ProjectService(
        gateway=current_app.extensions["generation_gateway"],
        generation_cost=cfg["GENERATION_COST"],
        modification_cost=cfg["MODIFICATION_COST"],
    )
