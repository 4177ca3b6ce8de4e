from datetime import datetime, timedelta

import pytest

from errors import InvalidArgument, NotFound
from extensions import db
from models import Project
from services import conversations, versions


@pytest.fixture
def project_id(ctx, make_user):
    uid, _ = make_user()
    project = Project(user_id=uid, name="Site", initial_prompt="a bakery site", current_code="")
    db.session.add(project)
    db.session.commit()
    return project.id


def test_versions_sorted_explicitly_not_by_insertion(project_id):
    t0 = datetime(2024, 1, 1, 12, 0, 0)
    versions.append(project_id, "<p>b</p>", "second", t0 + timedelta(minutes=5))
    versions.append(project_id, "<p>a</p>", "first", t0)
    versions.append(project_id, "<p>c</p>", "third", t0 + timedelta(minutes=10))

    assert [v.description for v in versions.list_by_project(project_id)] == ["third", "second", "first"]
    assert [v.description for v in versions.list_by_project(project_id, descending=False)] == [
        "first",
        "second",
        "third",
    ]


def test_version_lookup_is_scoped_to_project(project_id, make_user):
    version = versions.append(project_id, "<p>x</p>", "x")
    other_uid, _ = make_user()
    other = Project(user_id=other_uid, name="Other", initial_prompt="other")
    db.session.add(other)
    db.session.flush()

    assert versions.get_for_project(project_id, version.id).id == version.id
    with pytest.raises(NotFound):
        versions.get_for_project(other.id, version.id)
    with pytest.raises(NotFound):
        versions.get_for_project(project_id, 12345)


def test_modification_description_truncation():
    request_text = "change header color to blue and add a footer section"
    assert versions.describe_modification(request_text) == "change header color to blue and add a footer secti..."
    assert versions.describe_modification("make it red") == "make it red"
    assert versions.describe_modification("x" * 50) == "x" * 50


def test_conversation_append_and_order(project_id):
    t0 = datetime(2024, 1, 1, 9, 0, 0)
    conversations.append(
        project_id,
        [
            {"role": "assistant", "content": "later", "timestamp": t0 + timedelta(seconds=30)},
            {"role": "user", "content": "earlier", "timestamp": "2024-01-01T09:00:00Z"},
        ],
    )
    assert [c.content for c in conversations.list_by_project(project_id)] == ["earlier", "later"]


def test_conversation_rejects_unknown_role(project_id):
    with pytest.raises(InvalidArgument):
        conversations.append(project_id, [{"role": "system", "content": "nope"}])
    assert conversations.list_by_project(project_id) == []


def test_replace_all(project_id):
    conversations.append(project_id, [{"role": "user", "content": "old"}])
    conversations.replace_all(
        project_id,
        [{"role": "user", "content": "new q"}, {"role": "assistant", "content": "new a"}],
    )
    assert [c.content for c in conversations.list_by_project(project_id)] == ["new q", "new a"]


def test_replace_all_validates_before_deleting(project_id):
    conversations.append(project_id, [{"role": "user", "content": "keep"}])
    with pytest.raises(InvalidArgument):
        conversations.replace_all(project_id, [{"role": "bot", "content": "bad"}])
    assert [c.content for c in conversations.list_by_project(project_id)] == ["keep"]


def test_timeline_interleaves_messages_and_versions(project_id):
    t0 = datetime(2024, 1, 1, 9, 0, 0)
    conversations.append(
        project_id,
        [
            {"role": "user", "content": "build it", "timestamp": t0},
            {"role": "assistant", "content": "built", "timestamp": t0},
            {"role": "user", "content": "tweak it", "timestamp": t0 + timedelta(minutes=2)},
        ],
    )
    versions.append(project_id, "<p>1</p>", "Initial version", t0)
    versions.append(project_id, "<p>2</p>", "tweak it", t0 + timedelta(minutes=2))

    items = conversations.timeline(project_id)
    assert [(i["kind"], i.get("content") or i.get("description")) for i in items] == [
        ("message", "build it"),
        ("message", "built"),
        ("version", "Initial version"),
        ("message", "tweak it"),
        ("version", "tweak it"),
    ]


def test_delete_all_for_project(project_id):
    versions.append(project_id, "<p>1</p>", "one")
    conversations.append(project_id, [{"role": "user", "content": "hi"}])
    versions.delete_all_for_project(project_id)
    conversations.delete_all_for_project(project_id)
    assert versions.count_for_project(project_id) == 0
    assert conversations.list_by_project(project_id) == []
