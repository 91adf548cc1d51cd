from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple

from sitescan_web.domain.models import ToolRequest


@dataclass(frozen=True)
class IntentContext:
    current_url: str = ""
    image_urls: Tuple[str, ...] = ()


RequestBuilder = Callable[[str, IntentContext], Optional[ToolRequest]]


@dataclass(frozen=True)
class IntentRule:
    category: str
    keywords: Tuple[str, ...]
    build: Optional[RequestBuilder] = None

    def matches(self, lowered: str) -> bool:
        return any(k in lowered for k in self.keywords)


def _url_tool(name: str, category: str) -> RequestBuilder:
    def build(text: str, ctx: IntentContext) -> Optional[ToolRequest]:
        return ToolRequest(name=name, parameters={"url": ctx.current_url}, category=category)
    return build


def _image_tool(text: str, ctx: IntentContext) -> Optional[ToolRequest]:
    if not ctx.image_urls:
        return None
    return ToolRequest(
        name="analyzeImageFromUrl",
        parameters={"url": ctx.image_urls[0], "prompt": text},
        category="image",
    )


DEFAULT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(
        "seo",
        ("seo", "search engine", "meta", "title", "description", "keywords", "ranking", "google"),
        _url_tool("performSeoAnalysis", "seo"),
    ),
    IntentRule(
        "accessibility",
        ("accessibility", "a11y", "wcag", "screen reader", "contrast", "alt text", "aria"),
        _url_tool("checkAccessibility", "accessibility"),
    ),
    IntentRule(
        "performance",
        ("performance", "speed", "loading", "core web vitals", "lcp", "fid", "cls", "optimization"),
        _url_tool("analyzePerformance", "performance"),
    ),
    IntentRule(
        "tech_stack",
        ("tech stack", "technology", "framework", "cms", "wordpress", "react", "angular", "vue"),
        _url_tool("detectTechStack", "tech_stack"),
    ),
    IntentRule(
        "content",
        ("content", "text", "words", "readability", "summary", "topics"),
        _url_tool("summarizePage", "content"),
    ),
    IntentRule(
        "image",
        ("image", "photo", "picture", "visual", "graphic", "optimization"),
        _image_tool,
    ),
    IntentRule(
        "competitive",
        ("competitor", "competition", "similar", "alternative", "market"),
    ),
)


@dataclass(frozen=True)
class KeywordIntentClassifier:
    """
    Strategy: first rule (in order) whose keywords appear in the lowercased text wins.
    A matching rule that cannot build a request still ends the search.
    """
    rules: Sequence[IntentRule] = field(default=DEFAULT_RULES)

    def _first_match(self, text: str) -> Optional[IntentRule]:
        lowered = (text or "").lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule
        return None

    def categorize(self, text: str) -> Optional[str]:
        rule = self._first_match(text)
        return rule.category if rule else None

    def classify(self, text: str, context: Optional[IntentContext] = None) -> Optional[ToolRequest]:
        rule = self._first_match(text)
        if rule is None or rule.build is None:
            return None
        return rule.build(text, context or IntentContext())
