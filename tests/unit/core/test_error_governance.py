import json

import pytest
from starlette.requests import Request

from costlens.shared.core.error_governance import handle_exception
from costlens.shared.core.exceptions import InvalidDateError, UpstreamFetchError


@pytest.fixture
def request_stub():
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/api/v1/costs/forecast",
            "query_string": b"",
            "headers": [],
            "scheme": "http",
            "server": ("test", 80),
        }
    )


def _body(response):
    return json.loads(response.body)


def test_application_error_keeps_status_and_details(request_stub):
    exc = InvalidDateError("bad", details={"year": 0})

    response = handle_exception(request_stub, exc)

    assert response.status_code == 400
    assert _body(response) == {"error": "bad", "code": "invalid_date", "details": {"year": 0}}


def test_value_error_becomes_bad_request(request_stub):
    response = handle_exception(request_stub, ValueError("adjustment_factor must be > 0"))

    assert response.status_code == 400
    body = _body(response)
    assert body["code"] == "value_error"
    assert body["error"] == "adjustment_factor must be > 0"
    assert body["details"] is None


def test_unexpected_error_is_sanitized(request_stub):
    response = handle_exception(request_stub, RuntimeError("secret connection string"))

    assert response.status_code == 500
    assert "secret" not in response.body.decode()


def test_production_hides_upstream_details(request_stub, monkeypatch):
    from costlens.shared.core.config import get_settings

    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("TESTING", "false")
    get_settings.cache_clear()

    response = handle_exception(
        request_stub, UpstreamFetchError("Failed to load cost records", details={"x": 1})
    )

    assert response.status_code == 502
    assert _body(response)["details"] is None
