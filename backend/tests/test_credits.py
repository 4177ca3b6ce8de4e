import threading

import pytest
from werkzeug.security import generate_password_hash

from errors import InsufficientCredits, InvalidArgument, NotFound
from extensions import db
from models import User
from services import credits


def test_new_user_balance(ctx, make_user):
    uid, _ = make_user()
    assert credits.get_balance(uid) == {"credits": 20, "total_creation": 0}


def test_balance_of_missing_user(ctx):
    with pytest.raises(NotFound):
        credits.get_balance(999)


def test_increment_and_decrement(ctx, make_user):
    uid, _ = make_user(credits=10)
    assert credits.increment(uid, 5)["credits"] == 15
    assert credits.decrement(uid, 7)["credits"] == 8
    db.session.commit()
    assert db.session.get(User, uid).credits == 8


@pytest.mark.parametrize("amount", [0, -3, 2.5, True, "4"])
def test_non_positive_or_non_integer_amounts_rejected(ctx, make_user, amount):
    uid, _ = make_user()
    with pytest.raises(InvalidArgument):
        credits.increment(uid, amount)
    with pytest.raises(InvalidArgument):
        credits.decrement(uid, amount)


def test_decrement_beyond_balance_leaves_it_unchanged(ctx, make_user):
    uid, _ = make_user(credits=3)
    with pytest.raises(InsufficientCredits):
        credits.decrement(uid, 5)
    assert credits.get_balance(uid)["credits"] == 3


def test_decrement_to_exactly_zero(ctx, make_user):
    uid, _ = make_user(credits=5)
    assert credits.decrement(uid, 5)["credits"] == 0
    with pytest.raises(InsufficientCredits):
        credits.decrement(uid, 1)


def test_creation_counter(ctx, make_user):
    uid, _ = make_user()
    assert credits.increment_creation_count(uid) == 1
    assert credits.increment_creation_count(uid) == 2


def test_set_balance(ctx, make_user):
    uid, _ = make_user()
    assert credits.set_balance(uid, 0)["credits"] == 0
    with pytest.raises(InvalidArgument):
        credits.set_balance(uid, -1)


def test_check_balance(ctx, make_user):
    uid, _ = make_user(credits=4)
    with pytest.raises(InsufficientCredits):
        credits.check_balance(uid, 5)
    assert credits.check_balance(uid, 4).credits == 4


def test_credit_routes(client, make_user, auth):
    _, token = make_user(credits=3)

    assert client.get("/api/user/credits").status_code == 401

    r = client.patch("/api/user/credits/decrement", json={"amount": 5}, headers=auth(token))
    assert r.status_code == 402
    assert r.get_json()["kind"] == "insufficient_credits"
    assert client.get("/api/user/credits", headers=auth(token)).get_json()["credits"] == 3

    r = client.patch("/api/user/credits/increment", json={"amount": 0}, headers=auth(token))
    assert r.status_code == 400

    r = client.patch("/api/user/credits/increment", json={"amount": 7}, headers=auth(token))
    assert r.get_json()["credits"] == 10

    r = client.put("/api/user/credits", json={"credits": 42}, headers=auth(token))
    assert r.get_json()["credits"] == 42

    r = client.patch("/api/user/creation/increment", headers=auth(token))
    assert r.get_json() == {"credits": 42, "total_creation": 1}


def test_concurrent_decrements_never_go_negative(file_app):
    with file_app.app_context():
        user = User(name="racer", email="racer@example.com", password_hash=generate_password_hash("secret123"), credits=12)
        db.session.add(user)
        db.session.commit()
        uid = user.id

    workers = 8
    start = threading.Barrier(workers)
    outcomes = []
    guard = threading.Lock()

    def spend():
        with file_app.app_context():
            start.wait()
            try:
                credits.decrement(uid, 5)
                db.session.commit()
                outcome = "debited"
            except InsufficientCredits:
                db.session.rollback()
                outcome = "refused"
            finally:
                db.session.remove()
            with guard:
                outcomes.append(outcome)

    threads = [threading.Thread(target=spend) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("debited") == 2
    assert outcomes.count("refused") == workers - 2
    with file_app.app_context():
        assert credits.get_balance(uid)["credits"] == 2
