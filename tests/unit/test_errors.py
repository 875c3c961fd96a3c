"""Unit tests for the AppError hierarchy and the FastAPI exception handlers."""

from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from errors import (
    GENERIC_SERVER_MESSAGE,
    AccountNotFoundError,
    AlreadyInitializedError,
    AlreadyVerifiedError,
    AuthenticationError,
    ConcurrentUpdateError,
    ConflictError,
    DeliveryFailedError,
    InvalidCredentialsError,
    InvalidOrExpiredCodeError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    MissingTokenError,
    NotFoundError,
    RateLimitError,
    StoreUnavailableError,
    TooSoonError,
    ValidationError,
    ValidationFailedError,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    @pytest.mark.parametrize(
        "error, status, code",
        [
            (ValidationError("bad input"), 400, "validation_error"),
            (AuthenticationError("nope"), 401, "authentication_error"),
            (NotFoundError("missing"), 404, "not_found"),
            (ConflictError("exists"), 409, "conflict"),
            (RateLimitError("slow down"), 429, "rate_limit_exceeded"),
        ],
    )
    def test_base_kinds(self, error, status, code):
        assert error.status_code == status
        assert error.error_code == code

    @pytest.mark.parametrize(
        "error, status, code",
        [
            (AlreadyInitializedError(), 409, "already_initialized"),
            (AccountNotFoundError(), 404, "account_not_found"),
            (AlreadyVerifiedError(), 409, "already_verified"),
            (TooSoonError(timedelta(seconds=30)), 429, "too_soon"),
            (InvalidOrExpiredCodeError(), 400, "invalid_or_expired_code"),
            (InvalidOrExpiredTokenError(), 400, "invalid_or_expired_token"),
            (ValidationFailedError({"password": "x"}), 400, "validation_failed"),
            (InvalidCredentialsError(), 401, "invalid_credentials"),
            (MissingTokenError(), 401, "missing_token"),
            (InvalidTokenError(), 401, "invalid_token"),
            (ConcurrentUpdateError(), 409, "concurrent_update"),
            (DeliveryFailedError(), 502, "delivery_failed"),
            (StoreUnavailableError(), 503, "store_unavailable"),
        ],
    )
    def test_domain_kinds(self, error, status, code):
        assert error.status_code == status
        assert error.error_code == code


class TestAppErrorToDict:
    def test_client_fault(self):
        assert NotFoundError("site not found").to_dict() == {
            "status": "fail",
            "message": "site not found",
            "code": "not_found",
        }

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            ({"details": {"min": 1, "max": 10}}, "details", {"min": 1, "max": 10}),
            ({"errors": {"password": "too short"}}, "errors", {"password": "too short"}),
        ],
        ids=["with_field", "with_details", "with_errors"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = NotFoundError("missing").to_dict()
        assert "field" not in d
        assert "details" not in d
        assert "errors" not in d

    def test_server_fault_hides_message(self):
        d = DeliveryFailedError("smtp exploded").to_dict()
        assert d["status"] == "error"
        assert d["message"] == GENERIC_SERVER_MESSAGE

    def test_server_fault_message_in_debug(self):
        assert DeliveryFailedError("smtp exploded").to_dict(debug=True)["message"] == "smtp exploded"

    def test_field_carried_by_code_and_token_errors(self):
        assert InvalidOrExpiredCodeError().to_dict()["field"] == "code"
        assert InvalidOrExpiredTokenError().to_dict()["field"] == "token"


class TestTooSoonError:
    def test_rounds_up_to_whole_seconds(self):
        e = TooSoonError(timedelta(seconds=29, milliseconds=100))
        assert e.retry_after_seconds == 30
        assert e.headers() == {"Retry-After": "30"}
        assert e.to_dict()["details"] == {"retry_after_seconds": 30}

    def test_never_below_one_second(self):
        assert TooSoonError(timedelta(milliseconds=1)).retry_after_seconds == 1


def test_validation_failed_for_field():
    e = ValidationFailedError.for_field("password", "Too short.")
    assert e.errors == {"password": "Too short."}


# ── Handlers ─────────────────────────────────────────────────────────────────


class _Body(BaseModel):
    email: str


def _client(debug: bool) -> TestClient:
    app = FastAPI()
    register_error_handlers(app, debug=debug)

    @app.get("/too-soon")
    async def too_soon():
        raise TooSoonError(timedelta(seconds=90))

    @app.get("/store-down")
    async def store_down():
        raise StoreUnavailableError("connection refused on 10.0.0.5")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.post("/echo")
    async def echo(body: _Body):
        return {"email": body.email}

    return TestClient(app, raise_server_exceptions=False)


class TestHandlers:
    def test_app_error_envelope_and_headers(self):
        resp = _client(debug=False).get("/too-soon")
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "90"
        assert resp.json()["status"] == "fail"
        assert resp.json()["code"] == "too_soon"

    def test_server_fault_hidden_outside_debug(self):
        resp = _client(debug=False).get("/store-down")
        assert resp.status_code == 503
        assert resp.json()["status"] == "error"
        assert "10.0.0.5" not in resp.text

    def test_server_fault_shown_in_debug(self):
        resp = _client(debug=True).get("/store-down")
        assert "10.0.0.5" in resp.json()["message"]

    def test_unhandled_exception(self):
        resp = _client(debug=False).get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {
            "status": "error",
            "message": GENERIC_SERVER_MESSAGE,
            "code": "internal_error",
        }

    def test_unhandled_exception_debug_details(self):
        resp = _client(debug=True).get("/boom")
        assert resp.json()["details"] == {"error": "kaboom", "error_type": "RuntimeError"}

    def test_request_validation_becomes_field_map(self):
        resp = _client(debug=False).post("/echo", json={})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_failed"
        assert "email" in body["errors"]
