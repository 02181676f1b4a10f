import httpx
import pytest

from esg_portal.api_client import (
    ApiClient,
    AuthenticationError,
    AuthorizationError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)


def _client(handler, **kwargs):
    return ApiClient(
        "http://portal.test", transport=httpx.MockTransport(handler),
        sleep=lambda _seconds: None, **kwargs,
    )


def test_bearer_token_and_base_path():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        return httpx.Response(200, json={"companies": []})

    api = _client(handler, token="abc")
    assert api.companies() == []
    assert seen == {"auth": "Bearer abc", "path": "/api/company"}


def test_login_stores_token():
    def handler(request):
        if request.url.path == "/api/auth/login":
            return httpx.Response(200, json={"token": "tok-1", "user": {"id": 1}})
        return httpx.Response(200, json={"user": {"id": 1, "auth": request.headers.get("Authorization")}})

    api = _client(handler)
    api.login("a@b.io", "pw")
    assert api.me()["auth"] == "Bearer tok-1"


def test_server_error_retried_once_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if len(calls) == 1:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json={"scorecard": None, "trends": [], "periods": []})

    delays = []
    api = ApiClient("http://portal.test", transport=httpx.MockTransport(handler),
                    retry_delay=0.5, sleep=delays.append)
    assert api.scorecard(1)["trends"] == []
    assert len(calls) == 2
    assert delays == [0.5]


def test_server_error_after_retry():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(500, json={"error": "Internal server error."})

    with pytest.raises(ServerError) as exc:
        _client(handler).scorecard(1)
    assert len(calls) == 2
    assert exc.value.status_code == 500


@pytest.mark.parametrize("status,error_cls", [
    (400, ValidationError),
    (409, ValidationError),
    (422, ValidationError),
    (403, AuthorizationError),
    (404, NotFoundError),
])
def test_client_errors_are_classified_without_retry(status, error_cls):
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(status, json={"error": "nope"})

    with pytest.raises(error_cls) as exc:
        _client(handler).update_task_status("c1-2026-Q1-ENV-01", "Completed")
    assert exc.value.message == "nope"
    assert len(calls) == 1


def test_unauthorized_purges_token_and_notifies():
    fired = []
    api = _client(lambda request: httpx.Response(401, json={"error": "Authentication required."}),
                  token="stale", on_unauthorized=lambda: fired.append(True))
    with pytest.raises(AuthenticationError):
        api.me()
    assert api.token is None
    assert fired == [True]


def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError) as exc:
        _client(handler).companies()
    assert "check your connection" in exc.value.message
    assert exc.value.status_code is None


def test_error_without_json_body_gets_default_message():
    api = _client(lambda request: httpx.Response(403, text="<html>forbidden</html>"))
    with pytest.raises(AuthorizationError) as exc:
        api.features()
    assert "permission" in exc.value.message
