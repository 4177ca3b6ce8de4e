import itertools
import time

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from config import Config
from extensions import db
from models import User
from services.gateway import GenerationResult
from services.locks import KeyedLocks
from services.projects import ProjectService
from services.tokens import issue_token


class UnitTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    OPENAI_API_KEY = ""
    GENERATION_COST = 5
    MODIFICATION_COST = 0
    INITIAL_CREDITS = 20
    LOG_LEVEL = "WARNING"


class FakeGateway:
    """Deterministic stand-in for the generation API.

    Set `error` to make the next calls fail, or `delay` to slow down modify.
    """

    def __init__(self):
        self.calls = []
        self.error = None
        self.delay = 0

    def generate_from_prompt(self, prompt):
        self.calls.append(("generate", prompt))
        if self.error is not None:
            raise self.error
        return GenerationResult(
            code=f"<html><body><h1>{prompt}</h1></body></html>",
            summary=f"Built a site for: {prompt}",
        )

    def modify(self, current_code, request_text):
        self.calls.append(("modify", request_text))
        if self.error is not None:
            raise self.error
        if self.delay:
            time.sleep(self.delay)
        return GenerationResult(
            code=current_code.replace("</body>", f"<!-- {request_text} --></body>"),
            summary=f"Applied: {request_text}",
        )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(gateway):
    app = create_app(UnitTestConfig, gateway=gateway)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def file_app(tmp_path, gateway):
    """App on a file-backed SQLite database so each thread gets its own connection."""

    class FileConfig(UnitTestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'sitebuilder.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}

    app = create_app(FileConfig, gateway=gateway)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def service(gateway):
    return ProjectService(gateway, generation_cost=5, modification_cost=0, locks=KeyedLocks())


@pytest.fixture
def make_user(app):
    """Create a user in its own app context; returns (user_id, bearer token)."""
    counter = itertools.count(1)

    def _make(credits=20):
        n = next(counter)
        with app.app_context():
            user = User(
                name=f"user{n}",
                email=f"user{n}@example.com",
                password_hash=generate_password_hash("secret123"),
                credits=credits,
            )
            db.session.add(user)
            db.session.commit()
            return user.id, issue_token(user)

    return _make


@pytest.fixture
def auth():
    def _headers(token):
        return {"Authorization": f"Bearer {token}"}

    return _headers
