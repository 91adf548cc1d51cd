from __future__ import annotations

import random

import pytest

from sitescan_web.services.analysis_tools import AnalysisTools
from sitescan_web.services.chat_service import GENERIC_RESPONSES, ChatService, format_tool_result
from sitescan_web.services.intent_classifier import KeywordIntentClassifier
from sitescan_web.services.page_scanner import PageScanner
from sitescan_web.services.scan_session import ScanSession
from sitescan_web.services.tool_orchestrator import AutoApprovePolicy, ManualApprovalPolicy, ToolOrchestrator
from sitescan_web.services.url_normalization import GuessComUrlNormalizer
from sitescan_web.tests.conftest import EXAMPLE_HTML, FakeFetcher


def make_service(policy=None, pages=None, seed=3):
    fetcher = FakeFetcher(pages or {"https://example.com": EXAMPLE_HTML})
    session = ScanSession()
    scanner = PageScanner(fetcher)
    orchestrator = ToolOrchestrator(AnalysisTools(session, scanner, fetcher).definitions(), policy or AutoApprovePolicy())
    service = ChatService(
        session=session,
        scanner=scanner,
        classifier=KeywordIntentClassifier(),
        orchestrator=orchestrator,
        url_normalizer=GuessComUrlNormalizer(no_guess_hosts=frozenset({"localhost"})),
        rng=random.Random(seed),
    )
    return service, session, orchestrator


def test_scan_url_normalizes_records_and_summarizes():
    service, session, _ = make_service()
    progress = []

    result = service.scan_url("example", on_progress=lambda pct, stage: progress.append(pct))

    assert result.url == "https://example.com"
    assert result.status == "completed"
    assert session.current_url == "https://example.com"
    assert progress == [20, 40, 60, 80, 100]
    assert [a.url for a in session.assets.by_type("image")] == ["https://example.com/logo.png"]
    summary = session.conversation.history()[-1]
    assert summary.role == "assistant"
    assert "**Title:** Example Domain" in summary.content
    assert "SEO analysis" in summary.content


def test_failed_scan_is_reported_in_plain_language():
    service, session, _ = make_service()

    result = service.scan_url("https://down.example")

    assert result.status == "failed"
    message = session.conversation.history()[-1].content
    assert message.startswith("Sorry, I encountered an error while scanning the website.")
    assert "404" in message


def test_invalid_url_is_rejected():
    service, session, _ = make_service()
    with pytest.raises(ValueError):
        service.scan_url("   ")
    assert len(session.scan_results) == 0
    assert session.conversation.history()[-1].role == "assistant"


def test_chat_message_runs_the_matching_tool():
    service, session, _ = make_service()
    service.scan_url("https://example.com")

    messages = service.handle_message("How is my SEO?")

    assert [m.role for m in messages] == ["user", "assistant", "assistant"]
    announce, report = messages[1], messages[2]
    assert announce.tool_call.name == "performSeoAnalysis"
    assert announce.tool_call.status == "pending"
    assert report.tool_call.status == "completed"
    assert report.tool_result.ok
    assert "**SEO Score:** 60" in report.content


def test_tool_failure_becomes_a_message_and_a_terminal_call():
    service, session, orchestrator = make_service()
    # no page scanned yet, so the tool gets an empty url
    messages = service.handle_message("check accessibility")

    report = messages[-1]
    assert report.tool_result.error
    assert report.content.startswith("I couldn't complete the checkAccessibility analysis")
    assert all(c.is_terminal for c in orchestrator.history())


def test_manual_approval_flow():
    service, session, orchestrator = make_service(ManualApprovalPolicy())
    service.scan_url("https://example.com")

    messages = service.handle_message("detect the tech stack")
    call_id = messages[1].tool_call.id
    assert "waiting for your approval" in messages[-1].content
    assert orchestrator.get(call_id).status == "pending"

    approved = service.approve(call_id)
    assert approved[-1].tool_call.status == "completed"
    assert approved[-1].content.startswith("I've completed the detectTechStack analysis")


def test_decline_flow():
    service, _, orchestrator = make_service(ManualApprovalPolicy())
    service.scan_url("https://example.com")
    call_id = service.handle_message("summary please")[1].tool_call.id

    declined = service.decline(call_id)

    assert declined[-1].tool_call.status == "declined"
    assert declined[-1].tool_result is None
    assert orchestrator.get(call_id).status == "declined"


def test_competitive_question_gets_guidance_without_a_tool():
    service, _, orchestrator = make_service()
    service.scan_url("https://example.com")

    messages = service.handle_message("who are the competitors?")

    assert len(messages) == 2
    assert "https://example.com" in messages[1].content
    assert messages[1].tool_call is None
    assert orchestrator.history() == []


def test_image_question_without_images_gets_guidance():
    service, _, _ = make_service()
    reply = service.handle_message("analyze the photos")[-1]
    assert reply.content.startswith("I can see there are 0 images")


def test_unmatched_message_uses_the_seeded_generic_reply():
    service, _, _ = make_service(seed=11)
    expected = random.Random(11).choice(GENERIC_RESPONSES)

    reply = service.handle_message("hello there")[-1]

    assert reply.content == expected


def test_run_tool_scans_pending_pages():
    pages = {"https://example.com": EXAMPLE_HTML, "https://example.com/about": EXAMPLE_HTML}
    service, session, _ = make_service(pages=pages)
    session.queue_pages(["https://example.com/about"])

    messages = service.run_tool("scanAllPendingPages")

    assert "**Pages Scanned:** 1" in messages[-1].content
    assert session.pending_urls() == []


def test_earlier_messages_keep_the_status_they_were_written_with():
    service, session, _ = make_service(ManualApprovalPolicy())
    service.scan_url("https://example.com")
    messages = service.handle_message("seo")
    service.approve(messages[1].tool_call.id)

    statuses = [m.tool_call.status for m in session.conversation.history() if m.tool_call]
    assert statuses == ["pending", "pending", "completed"]


def test_format_tool_result_falls_back_to_json():
    text = format_tool_result("fetchSitemap", {"urls": ["https://example.com/"]})
    assert '"urls"' in text
