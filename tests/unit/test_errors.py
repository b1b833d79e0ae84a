"""Unit tests for the AppError hierarchy and the global exception handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from errors import (
    AppError,
    AuthenticationError,
    DeliveryError,
    DuplicateIdentityError,
    InvalidOrExpiredCodeError,
    LockedOutError,
    NotRegisteredError,
    RateLimitError,
    SessionExpiredError,
    ValidationError,
    register_error_handlers,
)


@pytest.mark.parametrize(
    "cls, status, code",
    [
        (ValidationError, 400, "validation_error"),
        (DuplicateIdentityError, 400, "duplicate_identity"),
        (NotRegisteredError, 400, "not_registered"),
        (InvalidOrExpiredCodeError, 400, "invalid_or_expired_code"),
        (LockedOutError, 400, "locked_out"),
        (AuthenticationError, 401, "authentication_error"),
        (SessionExpiredError, 401, "session_expired"),
        (RateLimitError, 429, "rate_limit_exceeded"),
        (DeliveryError, 500, "internal_error"),
    ],
)
def test_status_and_code(cls, status, code):
    e = cls("message")
    assert isinstance(e, AppError)
    assert e.status_code == status
    assert e.error_code == code


def test_session_expired_is_authentication_error():
    assert issubclass(SessionExpiredError, AuthenticationError)


class TestAppErrorToDict:
    def test_basic(self):
        e = NotRegisteredError("not registered")
        assert e.to_dict() == {"error": "not registered", "code": "not_registered"}

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            ({"details": {"min": 2, "max": 50}}, "details", {"min": 2, "max": 50}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = LockedOutError("locked").to_dict()
        assert "field" not in d
        assert "details" not in d


# ── handlers ──────────────────────────────────────────────────────────────────


class _Body(BaseModel):
    value: int


def _app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/client-error")
    async def client_error():
        raise LockedOutError("Too many wrong attempts. Try again in 15 minutes.")

    @app.get("/delivery")
    async def delivery():
        raise DeliveryError("twilio said no")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    @app.post("/body")
    async def body(payload: _Body):
        return {"value": payload.value}

    return app


class TestErrorHandlers:
    def test_app_error_rendered(self):
        with TestClient(_app()) as client:
            resp = client.get("/client-error")
        assert resp.status_code == 400
        assert resp.json() == {
            "error": "Too many wrong attempts. Try again in 15 minutes.",
            "code": "locked_out",
        }

    def test_server_side_app_error_hides_detail(self):
        with TestClient(_app()) as client:
            resp = client.get("/delivery")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "code": "internal_error"}

    def test_unexpected_exception_hides_detail(self):
        with TestClient(_app(), raise_server_exceptions=False) as client:
            resp = client.get("/boom")
        assert resp.status_code == 500
        assert "secret internals" not in resp.text

    def test_request_validation_is_400(self):
        with TestClient(_app()) as client:
            resp = client.post("/body", json={"value": "not-a-number"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"
