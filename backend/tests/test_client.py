import json

import httpx

from safecircle.client import SafeCircleClient, TokenSession


def _tokens(access, refresh):
    return httpx.Response(
        200,
        json={"access_token": access, "refresh_token": refresh, "user": {"id": 1}},
        headers={"set-cookie": f"jid={refresh}; Path=/api/v1/auth; HttpOnly"},
    )


def test_token_session_set_get_clear():
    session = TokenSession()
    assert session.get() is None
    session.set("abc")
    assert session.authenticated
    session.clear()
    assert session.get() is None


def test_expired_access_token_is_refreshed_once():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path, request.headers.get("authorization"), request.headers.get("cookie")))
        if request.url.path == "/api/v1/auth/login":
            return _tokens("access-1", "refresh-1")
        if request.url.path == "/api/v1/auth/refresh":
            return _tokens("access-2", "refresh-2")
        if request.headers.get("authorization") == "Bearer access-1":
            return httpx.Response(401, json={"success": False, "error": "Invalid or expired token"})
        body = json.loads(request.content)
        return httpx.Response(200, json={"data": {"action": "added", "upvotes": 1, "downvotes": 0, **body}})

    with SafeCircleClient("http://api.test", transport=httpx.MockTransport(handler)) as client:
        client.login("a@example.com", "password123")
        result = client.vote(5, "discussion", "upvote")

    assert result["action"] == "added"
    assert client.session.get() == "access-2"
    assert [c[0] for c in calls] == [
        "/api/v1/auth/login",
        "/api/v1/community/vote",
        "/api/v1/auth/refresh",
        "/api/v1/community/vote",
    ]
    assert calls[2][2] == "jid=refresh-1"


def test_failed_refresh_clears_session():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False, "error": "Refresh token revoked"})

    session = TokenSession("stale")
    with SafeCircleClient("http://api.test", session=session, transport=httpx.MockTransport(handler)) as client:
        response = client.request("GET", "/auth/me")

    assert response.status_code == 401
    assert session.get() is None
