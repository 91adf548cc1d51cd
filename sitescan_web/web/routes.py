## routes.py
from __future__ import annotations

import threading
from typing import List

from flask import Blueprint, current_app, jsonify, request

from sitescan_web.domain.errors import NotFoundError
from sitescan_web.domain.models import ChatMessage
from sitescan_web.domain.serialization import (
    asset_to_dict,
    message_to_dict,
    scan_result_to_dict,
    snapshot_to_dict,
    tool_call_to_dict,
)
from sitescan_web.services.url_normalization import validate_http_url


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValueError("Expected a JSON object body")
    return body


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


def _messages(messages: List[ChatMessage]) -> list:
    return [message_to_dict(m) for m in messages]


def create_blueprint(chat_service, session, orchestrator, state_repo) -> Blueprint:
    """
    JSON endpoints only; no business logic here.
    Scan and chat turns run one at a time under `turn_lock`. /scan/stop never takes
    the lock, so it can interrupt a sequential scan that is holding it.
    """
    bp = Blueprint("web", __name__)
    turn_lock = threading.Lock()

    def persist():
        try:
            state_repo.save(session.snapshot())
        except OSError:
            current_app.logger.exception("Failed to save session state to %s", state_repo.state_file)

    @bp.errorhandler(ValueError)
    def bad_request(e):
        return jsonify(error=str(e)), 400

    @bp.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify(error=str(e)), 404

    @bp.get("/health")
    def health():
        return jsonify(status="ok", tools=orchestrator.tool_names)

    @bp.get("/state")
    def state():
        data = snapshot_to_dict(session.snapshot(), include_html=_flag("html"))
        data["pendingToolCalls"] = [tool_call_to_dict(c) for c in orchestrator.pending_calls()]
        data["stopRequested"] = session.stop_requested()
        return jsonify(data)

    @bp.get("/assets")
    def assets():
        kind = (request.args.get("type") or "").strip()
        items = session.assets.by_type(kind) if kind else session.assets.all()
        return jsonify(assets=[asset_to_dict(a) for a in items], counts=session.assets.counts())

    @bp.get("/tools")
    def tools():
        return jsonify(
            tools=orchestrator.describe(),
            calls=[tool_call_to_dict(c) for c in orchestrator.history()],
        )

    @bp.post("/scan")
    def scan():
        raw_url = (_json_body().get("url") or "")
        if not isinstance(raw_url, str) or not raw_url.strip():
            raise ValueError("'url' is required")

        progress = []
        with turn_lock:
            start = len(session.conversation)
            try:
                result = chat_service.scan_url(raw_url, on_progress=lambda pct, stage: progress.append(
                    {"percent": pct, "stage": stage}
                ))
            finally:
                persist()
            new_messages = session.conversation.history()[start:]

        current_app.logger.info("Scan %s status=%s", result.url, result.status)
        code = 200 if result.status == "completed" else 502
        return jsonify(
            result=scan_result_to_dict(result, include_html=False),
            progress=progress,
            messages=_messages(new_messages),
        ), code

    @bp.post("/pages")
    def queue_pages():
        urls = _json_body().get("urls")
        if not isinstance(urls, list) or not all(isinstance(u, str) and u.strip() for u in urls):
            raise ValueError("'urls' must be a list of URLs")
        urls = [validate_http_url(u.strip()) for u in urls]

        with turn_lock:
            queued = session.queue_pages(urls)
            persist()
        return jsonify(queued=queued, pending=session.pending_urls())

    @bp.post("/scan/pending")
    def scan_pending():
        with turn_lock:
            messages = chat_service.run_tool("scanAllPendingPages")
            persist()
        return jsonify(messages=_messages(messages), pending=session.pending_urls())

    @bp.post("/scan/stop")
    def stop_scan():
        session.request_stop()
        current_app.logger.info("Stop requested for sequential scan")
        return jsonify(stopping=True)

    @bp.post("/chat")
    def chat():
        text = _json_body().get("message")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("'message' is required")

        with turn_lock:
            messages = chat_service.handle_message(text.strip())
            persist()
        return jsonify(messages=_messages(messages))

    @bp.post("/tools/<call_id>/approve")
    def approve_tool(call_id: str):
        with turn_lock:
            messages = chat_service.approve(call_id)
            persist()
        return jsonify(messages=_messages(messages), call=tool_call_to_dict(orchestrator.get(call_id)))

    @bp.post("/tools/<call_id>/decline")
    def decline_tool(call_id: str):
        with turn_lock:
            messages = chat_service.decline(call_id)
            persist()
        return jsonify(messages=_messages(messages), call=tool_call_to_dict(orchestrator.get(call_id)))

    return bp
