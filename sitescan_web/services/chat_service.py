from __future__ import annotations

import json
import logging
import random
from typing import Any, List, Optional

from sitescan_web.domain.models import ChatMessage, ScanResult, ToolCall, ToolResult
from sitescan_web.domain.serialization import to_jsonable
from sitescan_web.services.intent_classifier import IntentContext, KeywordIntentClassifier
from sitescan_web.services.page_scanner import PageScanner, ProgressCallback
from sitescan_web.services.scan_session import ScanSession
from sitescan_web.services.tool_orchestrator import ToolOrchestrator
from sitescan_web.services.url_normalization import UrlNormalizer, is_valid_http_url

logger = logging.getLogger(__name__)

GENERIC_RESPONSES = (
    "I've analyzed the website and I'm ready to help with specific aspects. What would you like me to "
    "focus on? I can provide detailed analysis of SEO, accessibility, performance, or technology stack.",
    "Based on my initial scan, I can see this website has various elements to analyze. Would you like me "
    "to dive deeper into any specific area such as content structure, technical implementation, or user experience?",
    "I'm here to help you understand every aspect of this website. I can perform comprehensive analysis "
    "across multiple dimensions. What specific insights are you looking for?",
)

ANNOUNCEMENTS = {
    "performSeoAnalysis": "I'll analyze the SEO performance of {url}. This will include checking title tags, "
                          "meta descriptions, heading structure, and other important SEO factors.",
    "checkAccessibility": "I'll perform an accessibility audit of {url}, checking alt text, labels, "
                          "keyboard navigation and heading structure.",
    "analyzePerformance": "I'll analyze the performance of {url}: page weight, render-blocking resources "
                          "and image loading, with optimization recommendations.",
    "detectTechStack": "I'll identify the technology stack used on {url}, including the CMS, frameworks, "
                       "libraries and analytics tools.",
    "summarizePage": "I'll analyze the content structure, readability, and key topics of {url}. This includes "
                     "word count, reading level, and content organization.",
    "analyzeImageFromUrl": "I'll take a closer look at the image {url}.",
}

SUGGESTED_ANALYSES = (
    "SEO analysis",
    "Accessibility audit",
    "Performance insights",
    "Technology stack detection",
    "Content analysis",
)


def _na(value: Any) -> Any:
    return "N/A" if value is None else value


def format_tool_result(name: str, result: Any) -> str:
    """Short markdown summary of a tool payload, for the chat transcript."""
    if name == "performSeoAnalysis":
        return (
            f"**SEO Score:** {_na(result.get('score'))}\n"
            f"**Title:** {result.get('title') or 'Not found'}\n"
            f"**Meta Description:** {result.get('metaDescription') or 'Not found'}\n"
            f"**Word Count:** {result.get('wordCount') or 0}\n"
            f"**Issues Found:** {len(result.get('issues') or [])}"
        )
    if name == "checkAccessibility":
        issues = result.get("issues") or []
        high = sum(1 for i in issues if i.get("severity") == "high")
        return (
            f"**Accessibility Score:** {_na(result.get('score'))}\n"
            f"**Issues Found:** {len(issues)}\n"
            f"**High Priority:** {high}"
        )
    if name == "analyzePerformance":
        lines = [f"**Performance Score:** {_na(result.get('score'))}"]
        lines += [f"- {r}" for r in result.get("recommendations") or []]
        return "\n".join(lines)
    if name == "detectTechStack":
        found = result.get("technologies") or []
        return "**Technologies Detected:**\n" + ("\n".join(found) if found else "None detected")
    if name == "summarizePage":
        return (
            f"**Summary:** {result.get('summary')}\n"
            f"**Key Topics:** {', '.join(result.get('keyTopics') or []) or 'None'}\n"
            f"**Reading Time:** {result.get('readingTime')} ({result.get('readingLevel')})"
        )
    if name in ("scanPages", "scanAllPendingPages"):
        done = sum(1 for r in result if r.status == "completed")
        return f"**Pages Scanned:** {len(result)}\n**Completed:** {done}\n**Failed:** {len(result) - done}"
    return json.dumps(to_jsonable(result), indent=2, default=str)


class ChatService:
    """
    Use cases behind the HTTP layer: scan a URL, answer a chat message,
    approve or decline a deferred tool call. Every outcome lands in the conversation.
    """

    def __init__(
        self,
        session: ScanSession,
        scanner: PageScanner,
        classifier: KeywordIntentClassifier,
        orchestrator: ToolOrchestrator,
        url_normalizer: UrlNormalizer,
        rng: Optional[random.Random] = None,
    ):
        self.session = session
        self.scanner = scanner
        self.classifier = classifier
        self.orchestrator = orchestrator
        self.url_normalizer = url_normalizer
        self.rng = rng or random.Random()

    def _say(self, content: str, **extra) -> ChatMessage:
        return self.session.append_message(ChatMessage(role="assistant", content=content, **extra))

    # -----------------------------
    # Scanning
    # -----------------------------
    def scan_url(self, raw_url: str, on_progress: Optional[ProgressCallback] = None) -> ScanResult:
        url = self.url_normalizer.normalize(raw_url)
        if not is_valid_http_url(url):
            logger.info("Rejected scan input %r", raw_url)
            self._say(f"'{(raw_url or '').strip()}' doesn't look like a website address. Please enter a valid URL.")
            raise ValueError(f"Invalid URL: {raw_url!r}")

        self.session.current_url = url
        result = self.scanner.scan_page(url, on_progress=on_progress)
        added = self.session.record_scan(result)

        if result.status != "completed":
            self._say(
                "Sorry, I encountered an error while scanning the website. "
                f"Please check the URL and try again.\n\n**Error:** {result.error}"
            )
            return result

        counts = {kind: len(getattr(result, kind)) for kind in ("links", "images", "scripts", "stylesheets")}
        suggestions = "\n".join(f"• {s}" for s in SUGGESTED_ANALYSES)
        self._say(
            f"I've successfully scanned {url}. Here's what I found:\n\n"
            f"**Title:** {result.title or 'No title found'}\n"
            f"**Description:** {result.description or 'No description found'}\n"
            f"**Links:** {counts['links']}  **Images:** {counts['images']}  "
            f"**Scripts:** {counts['scripts']}  **Stylesheets:** {counts['stylesheets']}\n"
            f"**New assets:** {added}\n\n"
            f"What would you like me to analyze further? I can help with:\n{suggestions}"
        )
        return result

    # -----------------------------
    # Chat turn
    # -----------------------------
    def handle_message(self, text: str) -> List[ChatMessage]:
        start = len(self.session.conversation)
        self.session.append_message(ChatMessage(role="user", content=text))

        context = IntentContext(
            current_url=self.session.current_url,
            image_urls=tuple(self.session.image_urls()),
        )
        request = self.classifier.classify(text, context)

        if request is None:
            self._say(self._canned_reply(self.classifier.categorize(text)))
        else:
            call = ToolCall.from_request(request)
            template = ANNOUNCEMENTS.get(call.name, "I'll run {name} for you.")
            self._say(
                template.format(url=call.parameters.get("url") or "the current page", name=call.name),
                tool_call=call.snapshot(),
            )
            result = self.orchestrator.submit(call)
            self._report(call, result)

        return list(self.session.conversation.history()[start:])

    def run_tool(self, name: str, parameters: Optional[dict] = None) -> List[ChatMessage]:
        """Start a tool directly (e.g. "scan all pending pages"), through the same approval path as chat."""
        start = len(self.session.conversation)
        call = ToolCall(name=name, parameters=parameters or {})
        self._say(f"Starting {name}.", tool_call=call.snapshot())
        result = self.orchestrator.submit(call)
        self._report(call, result)
        return list(self.session.conversation.history()[start:])

    def approve(self, call_id: str) -> List[ChatMessage]:
        start = len(self.session.conversation)
        call = self.orchestrator.get(call_id)
        result = self.orchestrator.approve(call_id)
        self._report(call, result)
        return list(self.session.conversation.history()[start:])

    def decline(self, call_id: str) -> List[ChatMessage]:
        start = len(self.session.conversation)
        call = self.orchestrator.decline(call_id)
        self._report(call, None)
        return list(self.session.conversation.history()[start:])

    def _report(self, call: ToolCall, result: Optional[ToolResult]) -> None:
        if call.status == "pending":
            self._say(f"The {call.name} analysis is waiting for your approval.", tool_call=call.snapshot())
        elif call.status == "declined":
            self._say(f"Okay, I won't run the {call.name} analysis.", tool_call=call.snapshot())
        elif result is not None and not result.ok:
            self._say(
                f"I couldn't complete the {call.name} analysis: {result.error}",
                tool_call=call.snapshot(),
                tool_result=result,
            )
        elif result is not None:
            self._say(
                f"I've completed the {call.name} analysis. Here's what I found:\n\n"
                f"{format_tool_result(call.name, result.result)}",
                tool_call=call.snapshot(),
                tool_result=result,
            )

    def _canned_reply(self, category: Optional[str]) -> str:
        if category == "image":
            count = len(self.session.assets.by_type("image"))
            return (
                f"I can see there are {count} images discovered on the website. "
                "Scan a page that has images first, then ask me to analyze them. I can:\n"
                "1. Analyze image optimization opportunities\n"
                "2. Check for missing alt text\n"
                "3. Review image formats and sizes"
            )
        if category == "competitive":
            return (
                f"Based on the content and structure of {self.session.current_url or 'this website'}, "
                "I can help you think about competitors. A useful comparison needs:\n\n"
                "1. The website's industry or niche\n"
                "2. Its key topics and keywords\n"
                "3. Similar businesses in the same market\n"
                "4. A comparison of features, content strategy and positioning"
            )
        return self.rng.choice(GENERIC_RESPONSES)

