"""
Integration tests for the HTTP API using an in-memory SQLite store.
"""
import pytest

DAY = "2026-01-06"


def _log(client, entries, day=DAY):
    return client.post("/api/entries", json={"entries": entries, "day": day})


class TestHealth:
    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}


class TestInstallPage:
    def test_served_as_html(self, client):
        r = client.get("/install")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/html")


class TestCreateEntries:
    def test_nested_ids_mirror_request(self, client):
        r = client.post("/api/entries", json={"entries": [{
            "type": "task",
            "content": "Follow up: Q1 Planning @john #email",
            "children": [
                {"type": "note", "content": "Context: Thanks"},
                {"type": "note", "content": "Email: https://mail.example.com/123"},
            ],
        }]})
        assert r.status_code == 201
        body = r.json()
        assert body["success"] is True
        (root,) = body["entries"]
        child_ids = [c["id"] for c in root["children"]]
        assert "children" not in root["children"][0]
        ids = [root["id"], *child_ids]
        assert all(i > 0 for i in ids)
        assert len(set(ids)) == 3

    def test_entries_land_on_requested_day(self, client):
        _log(client, [{"type": "event", "content": "Standup"}])
        r = client.get(f"/api/days/{DAY}")
        assert [e["content"] for e in r.json()["entries"]] == ["Standup"]

    def test_type_is_case_insensitive(self, client):
        r = _log(client, [{"type": "Question", "content": "Why?"}])
        assert r.status_code == 201

    @pytest.mark.parametrize("entry_type", ["done", "answer", "bogus"])
    def test_rejects_other_types(self, client, entry_type):
        r = _log(client, [{"type": entry_type, "content": "x"}])
        assert r.status_code == 422
        body = r.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"

    def test_rejects_empty_content(self, client):
        r = _log(client, [{"type": "task", "content": "  \n "}])
        assert r.status_code == 422

    def test_rejects_empty_batch(self, client):
        r = client.post("/api/entries", json={"entries": []})
        assert r.status_code == 422
        assert r.json()["details"]["errors"][0]["field"] == "entries"

    def test_nothing_stored_when_a_child_is_invalid(self, client):
        r = _log(client, [{"type": "task", "content": "ok", "children": [
            {"type": "nope", "content": "bad"},
        ]}])
        assert r.status_code == 422
        assert client.get(f"/api/days/{DAY}").json()["entries"] == []


class TestCors:
    def test_preflight_from_allowed_origin(self, client):
        r = client.options("/api/entries", headers={
            "Origin": "https://mail.google.com",
            "Access-Control-Request-Method": "POST",
        })
        assert r.status_code == 204
        assert r.headers["access-control-allow-origin"] == "https://mail.google.com"
        assert "POST" in r.headers["access-control-allow-methods"]

    def test_preflight_from_other_origin(self, client):
        r = client.options("/api/entries", headers={"Origin": "https://evil.example"})
        assert r.status_code == 204
        assert "access-control-allow-origin" not in r.headers

    def test_simple_request_reflects_origin(self, client):
        r = client.get("/api/health", headers={"Origin": "https://mail.google.com"})
        assert r.headers["access-control-allow-origin"] == "https://mail.google.com"
        assert r.headers["vary"] == "Origin"


class TestDays:
    def test_agenda(self, client):
        _log(client, [{"type": "task", "content": "Parent", "children": [
            {"type": "note", "content": "Child"},
        ]}])
        body = client.get(f"/api/days/{DAY}").json()
        assert body["day"] == DAY
        assert body["overdue"] == []
        parent, child = body["entries"]
        assert child["parent_entity_id"] == parent["entity_id"]
        assert child["depth"] == 1

    def test_bad_date(self, client):
        r = client.get("/api/days/not-a-date")
        assert r.status_code == 422

    def test_document(self, client):
        _log(client, [{"type": "task", "content": "Parent", "children": [
            {"type": "note", "content": "Child"},
        ]}])
        body = client.get(f"/api/days/{DAY}/document").json()
        assert body == {"date": DAY, "document": ". Parent\n  - Child"}

    def test_document_with_ids(self, client):
        _log(client, [{"type": "task", "content": "Parent"}])
        entity_id = client.get(f"/api/days/{DAY}").json()["entries"][0]["entity_id"]
        r = client.get(f"/api/days/{DAY}/document", params={"with_ids": True})
        assert r.json()["document"] == f"[{entity_id}] . Parent"

    def test_validate(self, client):
        r = client.post(f"/api/days/{DAY}/document/validate", json={"document": ". ok\n* no"})
        assert r.status_code == 200
        body = r.json()
        assert body["valid"] is False
        assert body["errors"][0]["line"] == 2

    def test_apply(self, client):
        _log(client, [{"type": "task", "content": "Parent", "children": [
            {"type": "note", "content": "Child A"},
            {"type": "note", "content": "Child B"},
        ]}])
        entries = client.get(f"/api/days/{DAY}").json()["entries"]
        child_b = next(e for e in entries if e["content"] == "Child B")

        r = client.put(f"/api/days/{DAY}/document", json={
            "document": ". Parent\n  - Child A\n. New task",
            "pending_deletes": [child_b["entity_id"]],
        })

        assert r.status_code == 200
        assert r.json() == {
            "success": True, "inserted": 1, "updated": 0, "deleted": 1, "migrated": 0,
        }
        document = client.get(f"/api/days/{DAY}/document").json()["document"]
        assert document == ". Parent\n  - Child A\n. New task"

    def test_apply_invalid_document(self, client):
        r = client.put(f"/api/days/{DAY}/document", json={"document": ". fine\n    - orphan"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["line"] == 2

    def test_apply_conflict(self, client):
        _log(client, [{"type": "question", "content": "Where"}])
        r = client.put(f"/api/days/{DAY}/document", json={"document": "? Where\n  - note"})
        assert r.status_code == 409
        assert r.json()["code"] == "CONFLICT"

    def test_leading_priority_marker_becomes_priority(self, client):
        _log(client, [{"type": "task", "content": "!!! Buy"}])
        (entry,) = client.get(f"/api/days/{DAY}").json()["entries"]
        assert (entry["priority"], entry["content"]) == ("high", "Buy")

        document = client.get(f"/api/days/{DAY}/document").json()["document"]
        assert document == ". !!! Buy"
        r = client.put(f"/api/days/{DAY}/document", json={"document": document})
        assert r.json() == {
            "success": True, "inserted": 0, "updated": 0, "deleted": 0, "migrated": 0,
        }

    def test_marker_without_content_is_rejected(self, client):
        r = _log(client, [{"type": "task", "content": "!!"}])
        assert r.status_code == 422
