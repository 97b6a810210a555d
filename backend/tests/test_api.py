import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from safecircle.core.database import get_db
from safecircle.main import app
from safecircle.services.rate_limiter import rate_limiter
from conftest import make_engine


@pytest.fixture()
def client():
    engine = make_engine()
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        engine.dispose()


def _signup(client, email="ana@example.com", name="Ana"):
    response = client.post(
        "/api/v1/auth/signup",
        json={"name": name, "email": email, "password": "correct-horse"},
    )
    assert response.status_code == 201
    return response.json()


def _auth(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def test_signup_sets_refresh_cookie_and_me_works(client):
    tokens = _signup(client)
    assert client.cookies.get("jid") == tokens["refresh_token"]

    me = client.get("/api/v1/auth/me", headers=_auth(tokens))
    assert me.status_code == 200
    assert me.json()["email"] == "ana@example.com"


def test_duplicate_signup_conflicts(client):
    _signup(client)
    response = client.post(
        "/api/v1/auth/signup",
        json={"name": "Other", "email": "ana@example.com", "password": "correct-horse"},
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_login_with_wrong_password_is_rejected(client):
    _signup(client)
    response = client.post(
        "/api/v1/auth/login", json={"email": "ana@example.com", "password": "wrong-password"}
    )
    assert response.status_code == 401


def test_refresh_rotates_and_replay_is_rejected(client):
    tokens = _signup(client)

    rotated = client.post("/api/v1/auth/refresh")
    assert rotated.status_code == 200
    assert rotated.json()["refresh_token"] != tokens["refresh_token"]
    assert client.cookies.get("jid") == rotated.json()["refresh_token"]

    replay = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert replay.status_code == 401
    body = replay.json()
    assert body["success"] is False
    assert body["path"] == "/api/v1/auth/refresh"


def test_refresh_without_token_is_unauthorized(client):
    response = client.post("/api/v1/auth/refresh")
    assert response.status_code == 401


def test_missing_or_garbage_access_token_is_unauthorized(client):
    assert client.get("/api/v1/users/me").status_code == 401
    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_logout_is_idempotent(client):
    tokens = _signup(client)
    payload = {"refresh_token": tokens["refresh_token"]}

    first = client.post("/api/v1/auth/logout", json=payload)
    assert first.json()["refresh_token_revoked"] is True

    second = client.post("/api/v1/auth/logout", json=payload)
    assert second.status_code == 200
    assert second.json()["refresh_token_revoked"] is False

    assert client.post("/api/v1/auth/refresh", json=payload).status_code == 401


def test_vote_toggle_through_api(client):
    tokens = _signup(client)
    created = client.post(
        "/api/v1/community/discussions",
        json={
            "title": "Dark stretch on Harbor Road",
            "content": "Street lights have been out for a week near the pier.",
            "category": "safety",
        },
        headers=_auth(tokens),
    )
    assert created.status_code == 201
    discussion_id = created.json()["data"]["id"]
    vote = {"target_id": discussion_id, "target_type": "discussion", "vote_type": "upvote"}

    first = client.post("/api/v1/community/vote", json=vote, headers=_auth(tokens))
    assert first.json()["data"] == {"action": "added", "upvotes": 1, "downvotes": 0}

    mine = client.post(
        "/api/v1/community/votes",
        json={"target_ids": [discussion_id], "target_type": "discussion"},
        headers=_auth(tokens),
    )
    assert mine.json()["data"] == {str(discussion_id): "upvote"}

    switched = client.post(
        "/api/v1/community/vote", json={**vote, "vote_type": "downvote"}, headers=_auth(tokens)
    )
    assert switched.json()["data"] == {"action": "changed", "upvotes": 0, "downvotes": 1}


def test_vote_on_missing_target_is_not_found(client):
    tokens = _signup(client)
    response = client.post(
        "/api/v1/community/vote",
        json={"target_id": 999, "target_type": "reply", "vote_type": "upvote"},
        headers=_auth(tokens),
    )
    assert response.status_code == 404


def test_answer_accept_ranks_first(client):
    asker = _signup(client)
    helper = _signup(client, email="ben@example.com", name="Ben")

    question = client.post(
        "/api/v1/qna/", json={"title": "Is the east trail lit at night?"}, headers=_auth(asker)
    ).json()["question"]
    qid = question["id"]

    client.post(f"/api/v1/qna/{qid}/answers", json={"content": "Only the first mile."}, headers=_auth(helper))
    answers = client.post(
        f"/api/v1/qna/{qid}/answers", json={"content": "Yes, fully lit."}, headers=_auth(helper)
    ).json()["question"]["answers"]
    first_id, second_id = answers[0]["id"], answers[1]["id"]

    upvoted = client.post(f"/api/v1/qna/{qid}/answers/{first_id}/upvote", headers=_auth(asker))
    assert upvoted.json()["question"]["answers"][0]["upvoted_by"] == [asker["user"]["id"]]

    forbidden = client.post(f"/api/v1/qna/{qid}/answers/{second_id}/accept", headers=_auth(helper))
    assert forbidden.status_code == 403

    accepted = client.post(f"/api/v1/qna/{qid}/answers/{second_id}/accept", headers=_auth(asker))
    ranked = accepted.json()["question"]["answers"]
    assert [a["id"] for a in ranked] == [second_id, first_id]
    assert ranked[0]["is_accepted"] is True


def test_signup_requires_only_a_non_empty_password(client):
    short = client.post(
        "/api/v1/auth/signup", json={"name": "Cy", "email": "cy@example.com", "password": "pw"}
    )
    assert short.status_code == 201

    empty = client.post(
        "/api/v1/auth/signup", json={"name": "Di", "email": "di@example.com", "password": ""}
    )
    assert empty.status_code == 422
    assert empty.json()["details"][0]["field"] == "body.password"
