"""Error classification, response shaping and the not-found fallback."""

import logging
from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from inventory_api.api.error_handlers import register_error_handlers, shape_error
from inventory_api.core.errors import (
    AppError,
    AuthenticationError,
    AuthReason,
    FieldViolation,
    InvalidOperationError,
    NotFoundError,
    RepositoryFailure,
    ValidationError,
)
from tests.conftest import make_settings

HANDLER_LOGGER = "inventory_api.api.error_handlers"


def _assert_iso_timestamp(value: str) -> None:
    assert value.endswith("Z")
    datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestShapeError:
    def test_operational_error_keeps_status_and_message(self):
        status, body = shape_error(AppError("Teapot", 418), production=True)

        assert status == 418
        assert body["success"] is False
        assert body["message"] == "Teapot"
        assert body["error"] == "Teapot"
        _assert_iso_timestamp(body["timestamp"])

    @pytest.mark.parametrize(
        "exc, status",
        [
            (NotFoundError("Product 9 not found"), 404),
            (InvalidOperationError("Insufficient stock"), 409),
            (RepositoryFailure(), 503),
        ],
    )
    def test_domain_errors(self, exc, status):
        code, body = shape_error(exc, production=False)

        assert code == status
        assert body["message"] == exc.message

    def test_validation_error(self):
        exc = ValidationError(
            [FieldViolation("price", "must be > 0"), FieldViolation("name", "too short")]
        )

        status, body = shape_error(exc, production=True)

        assert status == 400
        assert body["message"] == "Validation Error"
        assert body["error"] == "price: must be > 0; name: too short"
        assert body["details"] == [
            {"field": "price", "message": "must be > 0"},
            {"field": "name", "message": "too short"},
        ]

    @pytest.mark.parametrize(
        "reason, message",
        [(AuthReason.INVALID, "Invalid token"), (AuthReason.EXPIRED, "Token expired")],
    )
    def test_authentication_errors(self, reason, message):
        status, body = shape_error(AuthenticationError(reason), production=False)

        assert status == 401
        assert body["message"] == message

    def test_unclassified_error_shows_detail_outside_production(self):
        status, body = shape_error(RuntimeError("disk on fire"), production=False)

        assert status == 500
        assert body["message"] == "Internal Server Error"
        assert body["error"] == "disk on fire"

    def test_unclassified_error_hidden_in_production(self):
        status, body = shape_error(RuntimeError("disk on fire"), production=True)

        assert status == 500
        assert body["error"] is None

    def test_non_operational_app_error_is_a_500(self):
        class Bug(AppError):
            is_operational = False

        status, body = shape_error(Bug("broken invariant", 400), production=True)

        assert status == 500
        assert body["message"] == "Internal Server Error"


@pytest.fixture()
def failing_app():
    app = FastAPI()
    app.state.settings = make_settings(environment="production")
    register_error_handlers(app)

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret connection string")

    @app.get("/missing")
    def missing():
        raise NotFoundError("Widget 3 not found")

    @app.get("/storage")
    def storage():
        try:
            raise ConnectionError("socket closed")
        except ConnectionError as e:
            raise RepositoryFailure() from e

    @app.get("/typed/{item_id}")
    def typed(item_id: int):
        return {"item_id": item_id}

    return app


@pytest.fixture()
def failing_client(failing_app):
    return TestClient(failing_app, raise_server_exceptions=False)


def _handler_records(caplog):
    return [r for r in caplog.records if r.name == HANDLER_LOGGER]


class TestRegisteredHandlers:
    def test_unhandled_error_is_shaped_and_logged_once(self, failing_client, caplog):
        with caplog.at_level(logging.INFO):
            response = failing_client.get("/boom?debug=1")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal Server Error"
        assert body["error"] is None

        records = _handler_records(caplog)
        assert len(records) == 1
        record = records[0]
        assert record.levelno == logging.ERROR
        assert record.method == "GET"
        assert record.url.endswith("/boom?debug=1")
        assert record.error_message == "secret connection string"
        assert record.exc_info is not None
        _assert_iso_timestamp(record.error_timestamp)

    def test_expected_error_logs_a_warning(self, failing_client, caplog):
        with caplog.at_level(logging.INFO):
            response = failing_client.get("/missing")

        assert response.status_code == 404
        assert response.json()["message"] == "Widget 3 not found"
        assert [r.levelno for r in _handler_records(caplog)] == [logging.WARNING]

    def test_repository_failure_keeps_cause_in_log_only(self, failing_client, caplog):
        with caplog.at_level(logging.INFO):
            response = failing_client.get("/storage")

        assert response.status_code == 503
        assert "socket closed" not in response.text
        records = _handler_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert "socket closed" in caplog.text

    def test_request_validation_becomes_400(self, failing_client):
        response = failing_client.get("/typed/abc")

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation Error"
        assert body["details"][0]["field"] == "item_id"

    def test_method_not_allowed_keeps_status(self, failing_client):
        response = failing_client.post("/missing")

        assert response.status_code == 405
        assert response.json()["success"] is False


class TestNotFoundFallback:
    def test_unknown_route(self, failing_client):
        response = failing_client.get("/users/123/posts")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Route /users/123/posts not found"
        assert "error" not in body
        _assert_iso_timestamp(body["timestamp"])

    def test_query_string_is_part_of_the_route(self, failing_client):
        response = failing_client.delete("/nowhere?x=1")

        assert response.json()["message"] == "Route /nowhere?x=1 not found"
