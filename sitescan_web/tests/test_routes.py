from __future__ import annotations

import json
import random

import pytest

from sitescan_web.app_factory import create_app
from sitescan_web.config.ini_config import AppSettings
from sitescan_web.tests.conftest import EXAMPLE_HTML, FakeFetcher


def make_settings(tmp_path, **overrides) -> AppSettings:
    values = dict(
        max_attempts=1,
        backoff_seconds=0.0,
        timeout_seconds=5,
        forwarding_prefix="",
        max_links=50,
        queue_same_site_links=False,
        default_scheme="https",
        guess_com_if_no_dot=True,
        no_guess_hosts=frozenset({"localhost"}),
        approval_mode="auto",
        state_file=tmp_path / "state.json",
        log_level="WARNING",
        log_file=None,
        flask_host="127.0.0.1",
        flask_port=5000,
        flask_debug=False,
    )
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def pages():
    return {"https://example.com": EXAMPLE_HTML, "https://example.com/about": EXAMPLE_HTML}


@pytest.fixture
def client(tmp_path, pages):
    app = create_app(make_settings(tmp_path), fetcher=FakeFetcher(pages), rng=random.Random(1))
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert "performSeoAnalysis" in resp.get_json()["tools"]


def test_scan_returns_result_progress_and_messages(client, tmp_path):
    resp = client.post("/scan", json={"url": "example.com"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["result"]["status"] == "completed"
    assert body["result"]["images"] == ["https://example.com/logo.png"]
    assert "html" not in body["result"]
    assert [p["percent"] for p in body["progress"]] == [20, 40, 60, 80, 100]
    assert body["messages"][0]["role"] == "assistant"

    saved = json.loads((tmp_path / "state.json").read_text(encoding="utf-8"))
    assert saved["currentUrl"] == "https://example.com"
    assert saved["scanResults"][0][0] == "https://example.com"


def test_failed_scan_is_a_bad_gateway(client):
    resp = client.post("/scan", json={"url": "https://down.example"})
    assert resp.status_code == 502
    assert resp.get_json()["result"]["status"] == "failed"


def test_bad_input_is_a_400(client):
    assert client.post("/scan", json={}).status_code == 400
    assert client.post("/scan", data="not json", content_type="text/plain").status_code == 400
    assert client.post("/chat", json={"message": "  "}).status_code == 400
    assert client.post("/pages", json={"urls": "https://example.com"}).status_code == 400


def test_chat_runs_a_tool(client):
    client.post("/scan", json={"url": "https://example.com"})

    resp = client.post("/chat", json={"message": "seo check"})

    assert resp.status_code == 200
    messages = resp.get_json()["messages"]
    assert messages[-1]["toolCall"]["status"] == "completed"
    assert messages[-1]["toolResult"]["result"]["score"] == 60


def test_queue_and_scan_pending_pages(client):
    resp = client.post("/pages", json={"urls": ["https://example.com/about", "https://example.com/missing"]})
    assert resp.get_json()["queued"] == ["https://example.com/about", "https://example.com/missing"]

    resp = client.post("/scan/pending")

    assert resp.status_code == 200
    assert resp.get_json()["pending"] == []
    state = client.get("/state").get_json()
    statuses = {url: r["status"] for url, r in state["scanResults"]}
    assert statuses == {"https://example.com/about": "completed", "https://example.com/missing": "failed"}


def test_queueing_rejects_urls_that_are_not_http(client):
    resp = client.post("/pages", json={"urls": ["https://example.com/about", "foo"]})

    assert resp.status_code == 400
    assert client.get("/state").get_json()["scanResults"] == []


def test_stop_sets_the_flag(client):
    resp = client.post("/scan/stop")
    assert resp.get_json() == {"stopping": True}
    assert client.get("/state").get_json()["stopRequested"] is True


def test_assets_endpoint_filters_by_type(client):
    client.post("/scan", json={"url": "https://example.com"})

    body = client.get("/assets?type=image").get_json()

    assert [a["url"] for a in body["assets"]] == ["https://example.com/logo.png"]
    assert body["counts"]["total"] == 3


def test_state_omits_html_unless_asked(client):
    client.post("/scan", json={"url": "https://example.com"})
    assert "html" not in client.get("/state").get_json()["scanResults"][0][1]
    assert client.get("/state?html=1").get_json()["scanResults"][0][1]["html"] == EXAMPLE_HTML


def test_manual_approval_endpoints(tmp_path, pages):
    app = create_app(make_settings(tmp_path, approval_mode="manual"), fetcher=FakeFetcher(pages))
    client = app.test_client()
    client.post("/scan", json={"url": "https://example.com"})

    client.post("/chat", json={"message": "what cms is this"})
    pending = client.get("/state").get_json()["pendingToolCalls"]
    assert [c["name"] for c in pending] == ["detectTechStack"]
    call_id = pending[0]["id"]

    resp = client.post(f"/tools/{call_id}/approve")
    assert resp.status_code == 200
    assert resp.get_json()["call"]["status"] == "completed"

    # approving twice is an illegal transition
    assert client.post(f"/tools/{call_id}/approve").status_code == 400
    assert client.post("/tools/tool_nope/decline").status_code == 404


def test_decline_endpoint(tmp_path, pages):
    app = create_app(make_settings(tmp_path, approval_mode="manual"), fetcher=FakeFetcher(pages))
    client = app.test_client()
    client.post("/scan", json={"url": "https://example.com"})
    client.post("/chat", json={"message": "summary"})
    call_id = client.get("/state").get_json()["pendingToolCalls"][0]["id"]

    resp = client.post(f"/tools/{call_id}/decline")

    assert resp.get_json()["call"]["status"] == "declined"
    assert client.get("/state").get_json()["pendingToolCalls"] == []


def test_session_survives_a_restart(tmp_path, pages):
    settings = make_settings(tmp_path)
    create_app(settings, fetcher=FakeFetcher(pages)).test_client().post("/scan", json={"url": "https://example.com"})

    restarted = create_app(settings, fetcher=FakeFetcher(pages)).test_client()
    state = restarted.get("/state").get_json()

    assert state["currentUrl"] == "https://example.com"
    assert len(state["chatHistory"]) == 1
    assert len(state["assets"]) == 3
