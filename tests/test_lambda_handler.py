try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.services.rendering import render_failure, render_success
from functions.verify_callback import handler


class StubService:
    def __init__(self, page) -> None:
        self.page = page
        self.calls: list[tuple] = []

    async def handle_callback(self, code, state):
        self.calls.append((code, state))
        return self.page


@pytest.fixture()
def stub_service(monkeypatch: pytest.MonkeyPatch):
    service = StubService(render_success("ada", "Test Guild"))
    monkeypatch.setattr(handler, "_bootstrap", lambda: service)
    return service


def test_handler_returns_rendered_success(stub_service) -> None:
    response = handler.lambda_handler(
        {"queryStringParameters": {"code": "c1", "state": "1001"}}, None
    )

    assert response["statusCode"] == 200
    assert response["headers"]["Content-Type"].startswith("text/html")
    assert "Test Guild" in response["body"]
    assert stub_service.calls == [("c1", "1001")]


@pytest.mark.parametrize(
    "event",
    [{}, {"queryStringParameters": None}, {"queryStringParameters": {"code": "c1"}}],
)
def test_handler_rejects_missing_parameters_without_bootstrapping(
    monkeypatch: pytest.MonkeyPatch, event
) -> None:
    def fail_bootstrap():
        raise AssertionError("service must not be built")

    monkeypatch.setattr(handler, "_bootstrap", fail_bootstrap)

    response = handler.lambda_handler(event, None)

    assert response["statusCode"] == 400
    assert response["body"] == "Missing code or state parameter."


def test_handler_maps_failure_page(stub_service) -> None:
    stub_service.page = render_failure()

    response = handler.lambda_handler(
        {"queryStringParameters": {"code": "c1", "state": "1001"}}, None
    )

    assert response["statusCode"] == 500
    assert "Verification failed" in response["body"]


def test_package_exposes_handler_lazily() -> None:
    import functions.verify_callback as package

    assert package.lambda_handler is handler.lambda_handler
