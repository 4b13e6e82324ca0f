"""
Tests for error handling: the exception classes, their HTTP status codes
and the `{success, error, code, details?}` envelope.
"""
import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from bujo.core.errors import (
    BujoException,
    ConflictError,
    IntegrityError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from bujo.main import app


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    @pytest.mark.parametrize(
        "cls, http_status, code",
        [
            (ValidationError, 422, "VALIDATION_ERROR"),
            (ConflictError, 409, "CONFLICT"),
            (IntegrityError, 409, "INTEGRITY_ERROR"),
            (StoreError, 500, "STORE_ERROR"),
        ],
    )
    def test_status_and_code(self, cls, http_status, code):
        err = cls("boom")
        assert isinstance(err, BujoException)
        assert err.http_status == http_status
        assert err.code == code

    def test_not_found_names_kind_and_ref(self):
        err = NotFoundError("entry", 42)
        assert err.http_status == 404
        assert err.message == "entry 42 not found."
        assert err.to_dict()["details"] == {"kind": "entry", "ref": "42"}

    def test_envelope(self):
        err = ConflictError("taken", details={"name": "Run"})
        assert err.to_dict() == {
            "success": False,
            "error": "taken",
            "code": "CONFLICT",
            "details": {"name": "Run"},
        }

    def test_to_dict_without_details(self):
        d = ValidationError("bad").to_dict()
        assert d["code"] == "VALIDATION_ERROR"
        assert "details" not in d


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

_probe = APIRouter(prefix="/_probe")


@_probe.get("/missing")
def _missing():
    raise NotFoundError("list", "Groceries")


@_probe.get("/store")
def _store():
    raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))


@_probe.get("/crash")
def _crash():
    raise RuntimeError("unexpected")


app.include_router(_probe)


class TestHttpErrors:
    def test_request_validation_envelope(self, client):
        r = client.post("/api/entries", json={})
        assert r.status_code == 422
        body = r.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        assert isinstance(body["details"]["errors"], list)
        assert body["details"]["errors"][0]["field"] == "entries"

    def test_domain_validation_envelope(self, client):
        r = client.post("/api/entries", json={"entries": [{"type": "done", "content": "x"}]})
        body = r.json()
        assert r.status_code == 422
        assert body["error"] == "Invalid entry type 'done'."
        assert "task" in body["details"]["allowed"]

    def test_not_found(self, client):
        r = client.get("/_probe/missing")
        assert r.status_code == 404
        assert r.json()["code"] == "NOT_FOUND"

    def test_store_failure_is_500(self, client):
        r = client.get("/_probe/store")
        assert r.status_code == 500
        body = r.json()
        assert body["code"] == "STORE_ERROR"
        assert "disk" not in body["error"]

    def test_unhandled_is_500(self):
        with TestClient(app, raise_server_exceptions=False) as c:
            r = c.get("/_probe/crash")
        assert r.status_code == 500
        assert r.json() == {
            "success": False,
            "error": "An unexpected error occurred.",
            "code": "INTERNAL_ERROR",
        }
