"""Integration tests for the FastAPI rate limit dependency."""

from unittest.mock import Mock

import pytest
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from webrate.adapters.store.base import AbstractCounterStore
from webrate.adapters.store.in_memory import InMemoryCounterStore
from webrate.api.dependencies import RateLimitDependency
from webrate.core import rate_limit
from webrate.core.config import RateLimitSettings
from webrate.core.exception_handlers import setup_exception_handlers
from webrate.domain.limiter import Limiter
from webrate.domain.quota import Quota
from webrate.domain.vary import ByClientAddress, RequestInfo


def _build_app(dependency: RateLimitDependency) -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.api_route("/items", methods=["GET", "POST"], dependencies=[Depends(dependency)])
    def items() -> dict:
        return {"status": "ok"}

    return app


def _limiter(store: AbstractCounterStore, requests: int = 2) -> Limiter:
    return Limiter(
        Quota(requests, 60),
        methods=["POST"],
        store=store,
        key_deriver=ByClientAddress("X-Real-IP"),
    )


@pytest.fixture
def client() -> TestClient:
    limiter = _limiter(InMemoryCounterStore())
    return TestClient(_build_app(RateLimitDependency(limiter)))


def test_denies_with_429_after_quota(client: TestClient) -> None:
    headers = {"X-Real-IP": "1.2.3.4"}

    assert client.post("/items", headers=headers).status_code == 200
    assert client.post("/items", headers=headers).status_code == 200

    resp = client.post("/items", headers=headers)
    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "rate_limit_exceeded"


def test_unlimited_method_always_passes(client: TestClient) -> None:
    headers = {"X-Real-IP": "1.2.3.4"}
    for _ in range(5):
        assert client.get("/items", headers=headers).status_code == 200

    assert client.post("/items", headers=headers).status_code == 200


def test_clients_are_limited_independently(client: TestClient) -> None:
    for _ in range(2):
        client.post("/items", headers={"X-Real-IP": "1.1.1.1"})

    assert client.post("/items", headers={"X-Real-IP": "1.1.1.1"}).status_code == 429
    assert client.post("/items", headers={"X-Real-IP": "2.2.2.2"}).status_code == 200


def test_store_failure_fails_closed_with_503() -> None:
    store = Mock(spec=AbstractCounterStore)
    store.incr.side_effect = ConnectionError("store down")
    client = TestClient(_build_app(RateLimitDependency(_limiter(store), fail_open=False)))

    resp = client.post("/items")

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "store_unavailable"
    assert "store down" not in resp.text


def test_store_failure_fails_open_when_configured() -> None:
    store = Mock(spec=AbstractCounterStore)
    store.incr.side_effect = ConnectionError("store down")
    client = TestClient(_build_app(RateLimitDependency(_limiter(store), fail_open=True)))

    assert client.post("/items").status_code == 200


def test_custom_denied_handler_is_used() -> None:
    calls: list[RequestInfo] = []

    def denied(request: Request, info: RequestInfo) -> None:
        calls.append(info)
        raise HTTPException(status_code=418, detail="slow down")

    dependency = RateLimitDependency(
        _limiter(InMemoryCounterStore(), requests=1), denied_handler=denied
    )
    client = TestClient(_build_app(dependency))

    assert client.post("/items", headers={"X-Real-IP": "9.9.9.9"}).status_code == 200
    resp = client.post("/items", headers={"X-Real-IP": "9.9.9.9"})

    assert resp.status_code == 418
    assert calls[0].method == "POST"
    assert calls[0].header("x-real-ip") == "9.9.9.9"


def test_async_denied_handler_that_returns_still_denies() -> None:
    async def denied(request: Request, info: RequestInfo) -> None:
        return None

    dependency = RateLimitDependency(
        _limiter(InMemoryCounterStore(), requests=1), denied_handler=denied
    )
    client = TestClient(_build_app(dependency))

    client.post("/items")
    assert client.post("/items").status_code == 429


def test_settings_limiter_used_when_none_injected(monkeypatch) -> None:
    monkeypatch.setattr(rate_limit, "_limiter", None)
    monkeypatch.setattr(rate_limit, "_limiter_config", None)
    monkeypatch.setattr(
        rate_limit.settings,
        "rate_limit",
        RateLimitSettings(requests=1, window_seconds=60, methods="POST", store="memory"),
    )
    client = TestClient(_build_app(RateLimitDependency()))

    assert client.post("/items").status_code == 200
    assert client.post("/items").status_code == 429


def test_disabled_settings_skip_limiting(monkeypatch) -> None:
    monkeypatch.setattr(
        rate_limit.settings,
        "rate_limit",
        RateLimitSettings(enabled=False, requests=1, methods="POST", store="memory"),
    )
    client = TestClient(_build_app(RateLimitDependency()))

    for _ in range(3):
        assert client.post("/items").status_code == 200


def test_request_info_from_starlette_request() -> None:
    seen: list[RequestInfo] = []
    app = FastAPI()

    @app.get("/items/{name}")
    def read_item(name: str, request: Request) -> dict:
        seen.append(RequestInfo.from_starlette(request))
        return {}

    TestClient(app).get("/items/x?q=1", headers={"X-Real-IP": "5.5.5.5"})

    info = seen[0]
    assert info.method == "GET"
    assert info.path == "/items/x"
    assert info.remote_addr.startswith("testclient:")
    assert ByClientAddress().derive_key(info) == "testclient"
    assert info.header("X-Real-IP") == "5.5.5.5"
