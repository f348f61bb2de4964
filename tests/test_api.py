"""
Integration tests for the HTTP surface using FastAPI TestClient.
"""
import asyncio
import csv
import io

from conftest import SAMPLE_FIELDS, make_png
from models.errors import TransportFailure
from routes.realtime_ws import offer_latest

USER = {"X-User-Id": "user-1"}


def _upload(client, *payloads, headers=USER):
    files = [("files", (name, data, ctype)) for name, data, ctype in payloads]
    return client.post("/api/slips", files=files, headers=headers)


def test_health(client):
    body = client.get("/health").json()
    assert body == {"ok": True, "db_initialized": True, "extractor_available": True}


def test_requires_caller_identity(client):
    resp = client.get("/api/slips")
    assert resp.status_code == 401
    assert resp.json()["detail"]["kind"] == "UnauthenticatedCaller"


def test_store_unavailable(client):
    db = client.app.state.db_initializer
    client.app.state.db_initializer = None
    try:
        resp = client.post("/api/slips/extract", headers=USER)
    finally:
        client.app.state.db_initializer = db
    assert resp.status_code == 503
    assert resp.json()["detail"]["kind"] == "StoreUnavailable"


def test_upload_skips_non_images(client):
    resp = _upload(
        client,
        ("slip.png", make_png(), "image/png"),
        ("notes.txt", b"hello", "text/plain"),
        ("fake.jpg", b"not really a jpeg", "image/jpeg"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [item["filename"] for item in body["created"]] == ["slip.png"]
    assert [error["kind"] for error in body["errors"]] == ["UnsupportedInput", "UnsupportedInput"]
    assert body["last_error"] == body["errors"][-1]["message"]


def test_extract_dashboard_and_export_flow(client, fake_extractor):
    red, blue = make_png("red"), make_png("blue")
    fake_extractor.outcomes[blue] = dict(SAMPLE_FIELDS, recipient_name='He said "hi", ok', amount="500")
    _upload(client, ("a.png", red, "image/png"), ("b.png", blue, "image/png"))

    first = client.post("/api/slips/extract", headers=USER).json()
    assert first["extracted_count"] == 2
    assert first["errors"] == []
    assert [r["parsed_amount"] for r in first["results"]] == [1234.50, 500.0]

    second = client.post("/api/slips/extract", headers=USER).json()
    assert second["extracted_count"] == 0
    assert second["skipped_count"] == 2
    assert len(fake_extractor.calls) == 2

    dashboard = client.get("/api/slips/dashboard", headers=USER).json()
    assert dashboard["total_count"] == 2
    assert dashboard["total_amount"] == 1734.50
    assert dashboard["bank_usage"] == [{"name": "กรุงศรี", "value": 2}]
    assert dashboard["top_recipient_accounts"][0]["transaction_count"] == 2

    export = client.get("/api/slips/export", headers=USER)
    assert export.status_code == 200
    assert 'filename="slip_data.csv"' in export.headers["content-disposition"]
    assert export.content.startswith(b"\xef\xbb\xbf")
    rows = list(csv.reader(io.StringIO(export.content.decode("utf-8-sig"))))
    assert len(rows) == 3
    assert rows[2][3] == 'He said "hi", ok'
    image_id = rows[1][0]
    assert rows[1][1] == (
        f"https://slips.example.com/image_viewer?imageId={image_id}&appId=test-app&userId=user-1"
    )

    viewer = client.get(f"/image_viewer?imageId={image_id}&appId=test-app&userId=user-1")
    assert viewer.status_code == 200
    assert viewer.content == red
    assert viewer.headers["content-type"] == "image/png"


def test_extraction_errors_are_reported_per_image(client, fake_extractor):
    good, bad = make_png("green"), make_png("black")
    fake_extractor.outcomes[bad] = TransportFailure("HTTP 500 from model")
    created = _upload(client, ("good.png", good, "image/png"), ("bad.png", bad, "image/png")).json()["created"]

    body = client.post("/api/slips/extract", headers=USER).json()
    assert body["extracted_count"] == 1
    assert body["errors"] == [
        {"image_id": created[1]["id"], "kind": "TransportFailure", "message": "HTTP 500 from model"}
    ]
    assert body["last_error"] == "HTTP 500 from model"

    fake_extractor.outcomes.pop(bad)
    retry = client.post("/api/slips/extract", headers=USER).json()
    assert retry["extracted_count"] == 1
    assert retry["skipped_count"] == 1


def test_overflowing_amount_keeps_responses_serializable(client, fake_extractor):
    fake_extractor.default = dict(SAMPLE_FIELDS, amount="9" * 400)
    _upload(client, ("a.png", make_png(), "image/png"))

    extract = client.post("/api/slips/extract", headers=USER)
    assert extract.status_code == 200
    assert extract.json()["results"][0]["parsed_amount"] == 0.0

    assert client.get("/api/slips", headers=USER).status_code == 200
    dashboard = client.get("/api/slips/dashboard", headers=USER)
    assert dashboard.status_code == 200
    assert dashboard.json()["total_amount"] == 0.0


def test_extract_without_images(client):
    resp = client.post("/api/slips/extract", headers=USER)
    assert resp.status_code == 400


def test_list_search_delete_and_clear(client):
    created = _upload(
        client, ("a.png", make_png("red"), "image/png"), ("b.png", make_png("blue"), "image/png")
    ).json()["created"]
    client.post("/api/slips/extract", headers=USER)

    listing = client.get("/api/slips", headers=USER).json()
    assert [image["id"] for image in listing["images"]] == [item["id"] for item in created]
    assert all(image["extracted"] for image in listing["images"])

    assert len(client.get("/api/slips", params={"q": "malee"}, headers=USER).json()["results"]) == 2
    assert client.get("/api/slips", params={"q": "nobody"}, headers=USER).json()["results"] == []

    assert client.delete(f"/api/slips/{created[0]['id']}", headers=USER).json()["deleted"] is True
    assert client.delete(f"/api/slips/{created[0]['id']}", headers=USER).status_code == 404
    assert client.delete("/api/slips", headers=USER).json() == {"deleted": 1}
    assert client.get("/api/slips", headers=USER).json() == {"images": [], "results": []}


def test_callers_do_not_see_each_other(client):
    _upload(client, ("a.png", make_png(), "image/png"))
    other = client.get("/api/slips", headers={"X-User-Id": "user-2"}).json()
    assert other["images"] == []


def test_websocket_pushes_snapshot_and_changes(client):
    with client.websocket_connect("/ws/slips?userId=user-1") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "slips.snapshot"
        assert snapshot["images"] == []

        _upload(client, ("a.png", make_png(), "image/png"))
        change = ws.receive_json()
        assert change["type"] == "slips.changed"
        assert change["event"] == "created"
        assert len(change["images"]) == 1


def test_websocket_requires_identity(client):
    with client.websocket_connect("/ws/slips") as ws:
        assert ws.receive_json()["type"] == "error"


def test_pending_changes_collapse_to_the_latest():
    changes = asyncio.Queue(maxsize=1)
    for n in range(5):
        offer_latest(changes, ("created", f"img-{n}"))
    assert changes.qsize() == 1
    assert changes.get_nowait() == ("created", "img-4")
