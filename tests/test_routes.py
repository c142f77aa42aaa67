import importlib
import os

import pytest
from fastapi.testclient import TestClient

from mail_archiver.errors import AuthExpired
from mail_archiver.main import app
from mail_archiver.routes.dependencies import get_client
from tests.helpers import FakeGmailClient, attachment_part, message_dict, multipart, text_part, transient


@pytest.fixture
def fake_client():
    return FakeGmailClient(
        messages=[
            message_dict("m1", text_part("x" * 500), subject="Long", label_ids=["INBOX", "Label_1"]),
            message_dict(
                "m2",
                multipart(text_part("with file"), attachment_part("a.pdf", data=b"%PDF")),
                subject="File",
                label_ids=["Label_1"],
            ),
        ],
        labels=[
            {"id": "INBOX", "name": "INBOX", "type": "system"},
            {"id": "Label_1", "name": "Receipts", "type": "user"},
        ],
    )


@pytest.fixture
def http(fake_client, config, monkeypatch):
    # the package re-exports the routers under the module names, so patch the modules themselves
    for module in ("archive_router", "messages_router"):
        monkeypatch.setattr(importlib.import_module(f"mail_archiver.routes.{module}"), "CFG", config)
    app.dependency_overrides[get_client] = lambda: fake_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_list_labels(http):
    response = http.get("/v1/labels")
    assert response.status_code == 200
    assert [label["name"] for label in response.json()] == ["INBOX", "Receipts"]


def test_message_previews_are_truncated(http, config):
    response = http.get("/v1/messages", params={"label_id": "INBOX", "limit": 5})
    assert response.status_code == 200
    previews = response.json()
    assert [p["id"] for p in previews] == ["m1"]
    assert len(previews[0]["content"]) == config.preview_length


def test_apply_label(http, fake_client):
    response = http.post("/v1/messages/m1/labels", json={"label_id": "Label_1"})
    assert response.status_code == 200
    assert response.json()["status"] == "labeled"
    assert fake_client.modified == [("m1", ["Label_1"])]


def test_apply_missing_label_is_skipped(http):
    response = http.post("/v1/messages/m1/labels", json={"label_id": "Label_404"})
    assert response.status_code == 200
    assert response.json()["status"] == "skipped"


def test_archive_label(http, fake_client, config):
    response = http.post("/v1/archive", json={"label_id": "Label_1"})
    assert response.status_code == 200

    body = response.json()
    assert [o["status"] for o in body["outcomes"]] == ["archived", "archived"]
    assert [r["message_id"] for r in body["records"]] == ["m1", "m2"]
    assert body["failures"] == []
    assert sorted(fake_client.trashed) == ["m1", "m2"]
    assert len(os.listdir(config.archive_root)) == 2


def test_archive_listing_failure_is_500(http, fake_client):
    fake_client.list_error = transient("cannot list")
    response = http.post("/v1/archive", json={"label_id": "Label_1"})
    assert response.status_code == 500


def test_auth_expired_is_401(http, fake_client):
    fake_client.list_error = AuthExpired("expired", 401)
    assert http.post("/v1/archive", json={"label_id": "Label_1"}).status_code == 401
    assert http.get("/v1/messages").status_code == 401


def test_archive_request_validation(http):
    response = http.post("/v1/archive", json={"label_id": "Label_1", "max_results": 0})
    assert response.status_code == 422
