from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List
from urllib.parse import urljoin, urlparse

from sitescan_web.domain.models import ScanResult, SEOData
from sitescan_web.services.document_model import DocumentModel

DEFAULT_MAX_LINKS = 50


def resolve_url(ref: str, base_url: str) -> str:
    try:
        return urljoin(base_url, ref.strip())
    except ValueError:
        return ref


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def count_words(text: str) -> int:
    return len([w for w in text.split() if w])


@dataclass(frozen=True)
class PageAnalyzer:
    """Derives a completed ScanResult (links, assets, SEO facts) from a parsed page."""
    max_links: int = DEFAULT_MAX_LINKS

    def analyze(self, doc: DocumentModel, base_url: str) -> ScanResult:
        title = doc.first_text("title")
        description = doc.meta_content(name="description") or ""

        return ScanResult.completed(
            base_url,
            title=title,
            description=description,
            html=doc.raw,
            links=tuple(self.extract_links(doc, base_url)),
            images=tuple(resolve_url(src, base_url) for src in doc.attr_values("img", "src", src=True)),
            scripts=tuple(resolve_url(src, base_url) for src in doc.attr_values("script", "src", src=True)),
            stylesheets=tuple(resolve_url(href, base_url) for href in doc.stylesheet_hrefs()),
            seo=self.extract_seo(doc, title=title, description=description),
        )

    def extract_links(self, doc: DocumentModel, base_url: str) -> List[str]:
        links = []
        for href in doc.attr_values("a", "href", href=True):
            url = resolve_url(href, base_url)
            if is_http_url(url):
                links.append(url)
            if len(links) >= self.max_links:
                break
        return links

    def extract_seo(self, doc: DocumentModel, *, title: str, description: str) -> SEOData:
        open_graph: Dict[str, str] = {}
        for prop, content in doc.meta_with_prefix("property", "og:"):
            open_graph[prop] = content

        twitter_card: Dict[str, str] = {}
        for name, content in doc.meta_with_prefix("name", "twitter:"):
            twitter_card[name] = content

        return SEOData(
            title=title,
            title_length=len(title),
            meta_description=description,
            meta_description_length=len(description),
            h1_tags=tuple(doc.heading_texts(1)),
            h2_tags=tuple(doc.heading_texts(2)),
            word_count=count_words(doc.body_text()),
            canonical_url=doc.link_href("canonical"),
            robots=doc.meta_content(name="robots"),
            open_graph=open_graph,
            twitter_card=twitter_card,
            structured_data=doc.json_ld_blocks(),
        )
