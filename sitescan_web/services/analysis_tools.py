"""
The analysis operations the chat can run against a page.

Every handler takes the call's parameter dict and returns a JSON-friendly
payload. Pages that were already scanned are reused from the session; anything
else is scanned (and recorded) first.
"""

from __future__ import annotations

import io
import logging
import re
import xml.etree.ElementTree as ET
from collections import Counter
from pathlib import PurePosixPath
from typing import Any, Dict, Iterator, List, Tuple
from urllib.parse import urljoin, urlparse

from PIL import Image, UnidentifiedImageError

from sitescan_web.domain.errors import FetchError, ToolExecutionError
from sitescan_web.domain.models import ScanResult
from sitescan_web.services.document_model import DocumentModel, parse_document
from sitescan_web.services.page_scanner import PageScanner
from sitescan_web.services.scan_session import ScanSession
from sitescan_web.services.tool_orchestrator import ToolDefinition

logger = logging.getLogger(__name__)

SEVERITY_WEIGHTS = {"high": 20, "medium": 10, "low": 5}
A11Y_WEIGHTS = {"high": 10, "medium": 5, "low": 2}
WORDS_PER_MINUTE = 200

STOPWORDS = {
    "a", "about", "all", "also", "an", "and", "are", "as", "at", "be", "but", "by", "can", "for",
    "from", "has", "have", "how", "if", "in", "into", "is", "it", "its", "more", "not", "of",
    "on", "or", "our", "out", "so", "that", "the", "their", "them", "there", "these", "they",
    "this", "to", "up", "was", "we", "what", "when", "which", "will", "with", "you", "your",
}

# (name, category, markers searched in the lowercased markup)
TECH_SIGNATURES: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("WordPress", "cms", ("wp-content/", "wp-includes/")),
    ("Drupal", "cms", ("drupal-settings-json", "/sites/default/files/")),
    ("Joomla", "cms", ("/media/jui/", "/components/com_")),
    ("Shopify", "ecommerce", ("cdn.shopify.com", "shopify.theme")),
    ("WooCommerce", "ecommerce", ("woocommerce",)),
    ("Wix", "cms", ("static.parastorage.com", "wix.com")),
    ("Squarespace", "cms", ("static1.squarespace.com", "squarespace.com")),
    ("Webflow", "cms", ("assets.website-files.com", "data-wf-page")),
    ("Next.js", "framework", ("__next_data__", "/_next/")),
    ("Nuxt", "framework", ("__nuxt", "/_nuxt/")),
    ("Gatsby", "framework", ("___gatsby",)),
    ("React", "framework", ("data-reactroot", "react-dom", "react.production")),
    ("Vue.js", "framework", ("data-v-", "vue.min.js", "vue.global", "vue.runtime")),
    ("Angular", "framework", ("ng-version", "angular.min.js", "angular.js")),
    ("Svelte", "framework", ("svelte-",)),
    ("jQuery", "library", ("jquery",)),
    ("Bootstrap", "library", ("bootstrap.min.css", "bootstrap.min.js", "bootstrap.css", "bootstrap.bundle")),
    ("Tailwind CSS", "library", ("tailwind",)),
    ("Font Awesome", "library", ("font-awesome", "fontawesome")),
    ("Google Fonts", "library", ("fonts.googleapis.com",)),
    ("Google Analytics", "analytics", ("google-analytics.com", "googletagmanager.com/gtag/js", "gtag(")),
    ("Google Tag Manager", "analytics", ("googletagmanager.com/gtm.js",)),
    ("Facebook Pixel", "analytics", ("connect.facebook.net", "fbq(")),
    ("Hotjar", "analytics", ("static.hotjar.com",)),
    ("Cloudflare", "cdn", ("cdnjs.cloudflare.com", "/cdn-cgi/")),
    ("jsDelivr", "cdn", ("cdn.jsdelivr.net",)),
    ("unpkg", "cdn", ("unpkg.com",)),
)

MODERN_IMAGE_FORMATS = {"webp", "avif"}


def clamp(val: float, low: float, high: float) -> float:
    return max(low, min(high, val))


def tokenize(text: str) -> List[str]:
    return re.findall(r"[a-zA-Z0-9']+", text.lower())


def count_syllables(word: str) -> int:
    w = re.sub(r"[^a-z]", "", word.lower())
    if not w:
        return 1
    count = len(re.findall(r"[aeiouy]+", w))
    if w.endswith("e") and count > 1:
        count -= 1
    return max(1, count)


def flesch_reading_ease(text: str) -> float:
    words = tokenize(text)
    if not words:
        return 0.0
    sentences = max(1, len(re.findall(r"[.!?]+", text)))
    syllables_per_word = sum(count_syllables(w) for w in words) / len(words)
    words_per_sentence = len(words) / sentences
    return round(206.835 - (1.015 * words_per_sentence) - (84.6 * syllables_per_word), 2)


def reading_level(flesch: float) -> str:
    if flesch >= 60:
        return "Easy"
    if flesch >= 30:
        return "Intermediate"
    return "Advanced"


def walk_json_ld(blocks: List[Any]) -> Iterator[Dict[str, Any]]:
    """Yields every dict node in the JSON-LD blocks, following lists and @graph."""
    stack = list(blocks)
    while stack:
        node = stack.pop(0)
        if isinstance(node, list):
            stack.extend(node)
        elif isinstance(node, dict):
            yield node
            if "@graph" in node:
                stack.append(node["@graph"])


def schema_types(node: Dict[str, Any]) -> List[str]:
    raw = node.get("@type")
    values = raw if isinstance(raw, list) else [raw]
    return [str(v).rsplit("/", 1)[-1].lower() for v in values if v]


def _issue(issues: List[Dict[str, str]], kind: str, severity: str, message: str) -> None:
    issues.append({"type": kind, "severity": severity, "message": message})


def _require_url(params: Dict[str, Any]) -> str:
    url = params.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ToolExecutionError("A page URL is required.")
    return url.strip()


def _sitemap_locs(xml_text: str) -> Tuple[str, List[str]]:
    try:
        root = ET.fromstring(xml_text)
    except (ET.ParseError, ValueError):
        return "unknown", [m.strip() for m in re.findall(r"<loc>(.*?)</loc>", xml_text, flags=re.S)]

    kind = root.tag.rsplit("}", 1)[-1]
    locs = []
    for node in root.iter():
        if node.tag.rsplit("}", 1)[-1] == "loc" and node.text and node.text.strip():
            locs.append(node.text.strip())
    return kind, locs


class AnalysisTools:
    """Handlers for the tool registry; all share one session and scanner."""

    def __init__(self, session: ScanSession, scanner: PageScanner, resource_fetcher):
        self.session = session
        self.scanner = scanner
        self.resources = resource_fetcher

    def definitions(self) -> List[ToolDefinition]:
        return [
            ToolDefinition("scanPages", self.scan_pages, ("urls",), "Scan a list of pages one after another."),
            ToolDefinition("scanAllPendingPages", self.scan_all_pending_pages, (), "Scan every page still pending."),
            ToolDefinition("extractDataFromPage", self.extract_data_from_page, ("url",), "Pull contact, product, post, link or heading data."),
            ToolDefinition("performSeoAnalysis", self.perform_seo_analysis, ("url",), "Score on-page SEO and list issues."),
            ToolDefinition("analyzeImageFromUrl", self.analyze_image_from_url, ("url",), "Inspect one image's format and weight."),
            ToolDefinition("fetchSitemap", self.fetch_sitemap, ("url",), "Read sitemap.xml, falling back to robots.txt."),
            ToolDefinition("checkAccessibility", self.check_accessibility, ("url",), "Static accessibility audit."),
            ToolDefinition("analyzePerformance", self.analyze_performance, ("url",), "Static page-weight and render-blocking audit."),
            ToolDefinition("summarizePage", self.summarize_page, ("url",), "Summary, topics, reading time and level."),
            ToolDefinition("detectTechStack", self.detect_tech_stack, ("url",), "Detect CMS, frameworks, libraries and analytics."),
        ]

    # -----------------------------
    # Page access
    # -----------------------------
    def _page(self, url: str) -> Tuple[ScanResult, DocumentModel, str]:
        cached = self.session.scan_results.get(url)
        if cached is not None and cached.status == "completed" and cached.html is not None:
            return cached, parse_document(cached.html), "cache"

        result = self.scanner.scan_page(url)
        self.session.record_scan(result)
        if result.status != "completed":
            raise ToolExecutionError(result.error or f"Could not scan {url}")
        return result, parse_document(result.html), "scan"

    def _scan_sequence(self, urls: List[str]) -> List[ScanResult]:
        self.session.clear_stop()
        return self.scanner.scan_pages(
            urls,
            should_stop=self.session.stop_requested,
            on_result=self.session.record_scan,
        )

    # -----------------------------
    # Handlers
    # -----------------------------
    def scan_pages(self, params: Dict[str, Any]) -> List[ScanResult]:
        urls = params.get("urls")
        if isinstance(urls, str) or not isinstance(urls, (list, tuple)):
            raise ToolExecutionError("scanPages expects 'urls' to be a list of strings.")
        if not all(isinstance(u, str) and u.strip() for u in urls):
            raise ToolExecutionError("scanPages expects 'urls' to be a list of strings.")
        return self._scan_sequence([u.strip() for u in urls])

    def scan_all_pending_pages(self, params: Dict[str, Any]) -> List[ScanResult]:
        # Computed now, not when the call was created.
        targets = self.session.pending_urls()
        logger.info("Scanning %d pending page(s)", len(targets))
        return self._scan_sequence(targets)

    def perform_seo_analysis(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        result, doc, source = self._page(url)
        seo = result.seo

        issues: List[Dict[str, str]] = []
        if not seo.title:
            _issue(issues, "missing_title", "high", "Page has no <title>; add a unique 50-60 character title.")
        elif seo.title_length > 60:
            _issue(issues, "title_length", "low", "Title is long; consider shortening it to under 60 characters.")
        elif seo.title_length < 30:
            _issue(issues, "title_length", "low", "Title is short; 30-60 characters usually works best.")

        if not seo.meta_description:
            _issue(issues, "missing_description", "medium", "Add a meta description of 70-160 characters.")
        elif seo.meta_description_length > 160:
            _issue(issues, "description_length", "low", "Meta description is over 160 characters and may be truncated.")
        elif seo.meta_description_length < 70:
            _issue(issues, "description_length", "low", "Meta description is short; aim for 70-160 characters.")

        if len(seo.h1_tags) != 1:
            _issue(issues, "h1_count", "medium", f"Found {len(seo.h1_tags)} H1 tags; use exactly one.")
        if not seo.canonical_url:
            _issue(issues, "missing_canonical", "low", "Add a rel=canonical link.")
        if seo.robots and "noindex" in seo.robots.lower():
            _issue(issues, "noindex", "high", "Page is marked noindex and will not be indexed.")
        if not all(k in seo.open_graph for k in ("og:title", "og:description", "og:image")):
            _issue(issues, "open_graph", "low", "Open Graph tags are incomplete (og:title, og:description, og:image).")
        if "twitter:card" not in seo.twitter_card:
            _issue(issues, "twitter_card", "low", "No twitter:card meta tag.")
        if not seo.structured_data:
            _issue(issues, "structured_data", "low", "No valid JSON-LD structured data found.")
        if seo.word_count < 300:
            _issue(issues, "thin_content", "medium", f"Only {seo.word_count} words of body text.")

        missing_alt = sum(1 for img in doc.find_all("img") if not (img.get("alt") or "").strip())
        if missing_alt:
            _issue(issues, "missing_alt", "medium", f"{missing_alt} image(s) missing alt text.")

        score = clamp(100 - sum(SEVERITY_WEIGHTS[i["severity"]] for i in issues), 0, 100)
        return {
            "url": url,
            "source": source,
            "score": int(score),
            "seoData": seo,
            "title": seo.title,
            "metaDescription": seo.meta_description,
            "wordCount": seo.word_count,
            "issues": issues,
        }

    def check_accessibility(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        _, doc, _ = self._page(url)

        alt_issues: List[Dict[str, str]] = []
        aria_issues: List[Dict[str, str]] = []
        keyboard_issues: List[Dict[str, str]] = []

        for img in doc.find_all("img"):
            if img.get("alt") is None:
                alt_issues.append({
                    "element": f'img[src="{img.get("src", "")}"]',
                    "issue": "Missing alt text",
                    "severity": "medium",
                    "recommendation": "Add descriptive alt text, or alt=\"\" for decorative images.",
                })

        if not doc.html_lang():
            aria_issues.append({
                "element": "html",
                "issue": "Missing lang attribute",
                "severity": "medium",
                "recommendation": "Declare the page language, e.g. <html lang=\"en\">.",
            })

        labelled_ids = {(lbl.get("for") or "").strip() for lbl in doc.find_all("label")}
        for field in doc.find_all(["input", "select", "textarea"]):
            if field.name == "input" and (field.get("type") or "text").lower() in ("hidden", "submit", "button", "reset", "image"):
                continue
            has_label = (
                (field.get("id") and field.get("id") in labelled_ids)
                or field.get("aria-label")
                or field.get("aria-labelledby")
                or field.get("title")
                or field.find_parent("label") is not None
            )
            if not has_label:
                aria_issues.append({
                    "element": f'{field.name}[name="{field.get("name", "")}"]',
                    "issue": "Form control without a label",
                    "severity": "high",
                    "recommendation": "Associate a <label> or add aria-label.",
                })

        for tag in doc.find_all(["a", "button"]):
            text = tag.get_text(" ", strip=True)
            img_alt = any((img.get("alt") or "").strip() for img in tag.find_all("img"))
            if not text and not img_alt and not tag.get("aria-label") and not tag.get("title"):
                aria_issues.append({
                    "element": tag.name if tag.name == "button" else f'a[href="{tag.get("href", "")}"]',
                    "issue": "Interactive element has no accessible name",
                    "severity": "medium",
                    "recommendation": "Give it visible text or an aria-label.",
                })

        for tag in doc.find_all(True, attrs={"tabindex": True}):
            try:
                positive = int(tag.get("tabindex")) > 0
            except (TypeError, ValueError):
                continue
            if positive:
                keyboard_issues.append({
                    "element": tag.name,
                    "issue": "Positive tabindex changes the natural focus order",
                    "severity": "low",
                    "recommendation": "Use tabindex=\"0\" or rely on document order.",
                })

        levels = doc.heading_levels()
        for prev, cur in zip(levels, levels[1:]):
            if cur > prev + 1:
                keyboard_issues.append({
                    "element": f"h{cur}",
                    "issue": f"Heading level skips from h{prev} to h{cur}",
                    "severity": "low",
                    "recommendation": "Keep heading levels sequential for screen reader navigation.",
                })

        issues = alt_issues + aria_issues + keyboard_issues
        score = clamp(100 - sum(A11Y_WEIGHTS[i["severity"]] for i in issues), 0, 100)
        return {
            "url": url,
            "score": int(score),
            # Contrast needs rendered styles; not checked from markup.
            "contrastIssues": [],
            "altTextIssues": alt_issues,
            "ariaIssues": aria_issues,
            "keyboardNavigationIssues": keyboard_issues,
            "issues": issues,
        }

    def analyze_performance(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        result, doc, _ = self._page(url)

        html_bytes = len((result.html or "").encode("utf-8"))
        head = doc.soup.find("head")
        render_blocking = 0
        if head is not None:
            for script in head.find_all("script", src=True):
                if script.get("async") is None and script.get("defer") is None and (script.get("type") or "") != "module":
                    render_blocking += 1

        images = doc.find_all("img")
        not_lazy = sum(1 for img in images if (img.get("loading") or "").lower() != "lazy")
        missing_dims = sum(1 for img in images if not img.get("width") or not img.get("height"))

        score = 100.0
        recommendations: List[str] = []
        if html_bytes > 500_000:
            score -= 15
            recommendations.append("HTML document is over 500 KB; trim inline data and markup.")
        elif html_bytes > 100_000:
            score -= 5
            recommendations.append("HTML document is over 100 KB; consider reducing inline content.")
        if len(result.scripts) > 15:
            score -= 10
            recommendations.append(f"{len(result.scripts)} external scripts; bundle or drop unused ones.")
        if len(result.stylesheets) > 5:
            score -= 5
            recommendations.append(f"{len(result.stylesheets)} stylesheets; combine and minify CSS.")
        if render_blocking:
            score -= min(20, 5 * render_blocking)
            recommendations.append(f"{render_blocking} render-blocking script(s) in <head>; add defer or async.")
        if len(images) > 5 and not_lazy > 5:
            score -= 5
            recommendations.append("Lazy-load offscreen images with loading=\"lazy\".")
        if missing_dims:
            score -= 10
            recommendations.append(f"{missing_dims} image(s) lack width/height; this risks layout shift (CLS).")
        if not recommendations:
            recommendations.append("No static performance problems detected.")

        return {
            "url": url,
            "score": int(clamp(score, 0, 100)),
            # Field metrics need a real browser session.
            "lcp": None,
            "fid": None,
            "cls": None,
            "htmlBytes": html_bytes,
            "scriptCount": len(result.scripts),
            "stylesheetCount": len(result.stylesheets),
            "imageCount": len(images),
            "renderBlockingScripts": render_blocking,
            "imagesWithoutDimensions": missing_dims,
            "recommendations": recommendations,
        }

    def summarize_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        result, doc, _ = self._page(url)

        text = re.sub(r"\s+", " ", doc.body_text()).strip()
        words = [w for w in text.split(" ") if w]
        word_count = len(words)

        summary = result.description
        if not summary:
            sentences = re.split(r"(?<=[.!?])\s+", text)
            summary = " ".join(sentences[:2]).strip()
            if len(summary) > 300:
                summary = summary[:297].rstrip() + "..."

        terms = [t for t in tokenize(text) if len(t) > 3 and t not in STOPWORDS and not t.isdigit()]
        key_topics = [term.capitalize() for term, _ in Counter(terms).most_common(5)]
        flesch = flesch_reading_ease(text)
        minutes = max(1, round(word_count / WORDS_PER_MINUTE)) if word_count else 0

        return {
            "url": url,
            "title": result.title,
            "summary": summary or "No readable text found on this page.",
            "keyTopics": key_topics,
            "wordCount": word_count,
            "readingTime": f"{minutes} minute{'s' if minutes != 1 else ''}",
            "readingLevel": reading_level(flesch) if word_count else "Unknown",
            "fleschReadingEase": flesch,
        }

    def detect_tech_stack(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        result, doc, _ = self._page(url)

        haystack = (result.html or "").lower()
        found: List[str] = []
        categories: Dict[str, List[str]] = {}

        generator = doc.meta_content(name="generator")
        if generator:
            found.append(generator)
            categories.setdefault("cms", []).append(generator)

        for name, category, markers in TECH_SIGNATURES:
            if any(m in haystack for m in markers):
                if generator and generator.lower().startswith(name.lower()):
                    continue
                found.append(name)
                categories.setdefault(category, []).append(name)

        cms = categories.get("cms", [None])[0]
        frameworks = categories.get("framework", [])
        return {
            "url": url,
            "technologies": found,
            "categories": categories,
            "cms": cms,
            "framework": frameworks[0] if frameworks else None,
            "generator": generator,
        }

    def extract_data_from_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        data_type = (params.get("dataType") or "").strip().lower()
        result, doc, _ = self._page(url)
        nodes = list(walk_json_ld(result.seo.structured_data))

        if data_type == "contact":
            text = doc.body_text()
            emails = [h[len("mailto:"):].split("?")[0] for h in doc.attr_values("a", "href", href=True) if h.lower().startswith("mailto:")]
            emails += re.findall(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}", text)
            phones = [h[len("tel:"):] for h in doc.attr_values("a", "href", href=True) if h.lower().startswith("tel:")]
            phones += [m.strip() for m in re.findall(r"\+?\(?\d{1,4}\)?[\s.-]\d{2,4}[\s.-]\d{3,4}(?:[\s.-]\d{2,4})?", text)]
            addresses = []
            for node in nodes:
                address = node.get("address")
                if isinstance(address, dict):
                    parts = [address.get(k) for k in ("streetAddress", "addressLocality", "addressRegion", "postalCode")]
                    addresses.append(", ".join(str(p) for p in parts if p))
                elif isinstance(address, str):
                    addresses.append(address)
            return {
                "url": url,
                "dataType": "contact",
                "emails": list(dict.fromkeys(e.strip() for e in emails if e.strip())),
                "phones": list(dict.fromkeys(p for p in phones if p)),
                "addresses": list(dict.fromkeys(a for a in addresses if a)),
            }

        if data_type == "products":
            products = []
            for node in nodes:
                if "product" not in schema_types(node):
                    continue
                offers = node.get("offers")
                if isinstance(offers, list):
                    offers = offers[0] if offers else {}
                offers = offers if isinstance(offers, dict) else {}
                price = offers.get("price")
                currency = offers.get("priceCurrency") or ""
                products.append({
                    "name": node.get("name"),
                    "price": f"{price} {currency}".strip() if price is not None else None,
                    "description": node.get("description"),
                })
            return {"url": url, "dataType": "products", "items": products}

        if data_type == "blog_posts":
            posts = []
            for node in nodes:
                if not {"article", "blogposting", "newsarticle"} & set(schema_types(node)):
                    continue
                posts.append({
                    "title": node.get("headline") or node.get("name"),
                    "date": node.get("datePublished"),
                    "excerpt": node.get("description"),
                })
            if not posts:
                for article in doc.find_all("article"):
                    heading = article.find(["h1", "h2", "h3"])
                    time_tag = article.find("time")
                    para = article.find("p")
                    posts.append({
                        "title": heading.get_text(" ", strip=True) if heading else None,
                        "date": (time_tag.get("datetime") or time_tag.get_text(strip=True)) if time_tag else None,
                        "excerpt": para.get_text(" ", strip=True)[:200] if para else None,
                    })
            return {"url": url, "dataType": "blog_posts", "items": posts}

        if data_type == "links":
            return {"url": url, "dataType": "links", "items": list(result.links)}

        if data_type == "headings":
            return {
                "url": url,
                "dataType": "headings",
                "items": {f"h{level}": doc.heading_texts(level) for level in (1, 2, 3)},
            }

        return {
            "url": url,
            "dataType": data_type or "page",
            "title": result.title,
            "description": result.description,
            "wordCount": result.seo.word_count,
            "message": "Data extraction completed",
        }

    def analyze_image_from_url(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        tracked = url in self.session.assets

        try:
            resource = self.resources.fetch_resource(url)
        except FetchError as e:
            if tracked:
                self.session.assets.update_status(url, "failed", metadata={"error": str(e)})
            raise ToolExecutionError(f"Could not download image: {e}") from e

        width = height = None
        fmt = None
        try:
            with Image.open(io.BytesIO(resource.content)) as img:
                width, height = img.size
                fmt = (img.format or "").lower() or None
        except (UnidentifiedImageError, OSError, ValueError):
            logger.debug("Pillow could not identify %s", url)

        if fmt is None:
            if resource.content_type.startswith("image/"):
                fmt = resource.content_type.split(";")[0].split("/", 1)[1].strip()
            else:
                fmt = PurePosixPath(urlparse(url).path).suffix.lstrip(".").lower() or None
        if fmt == "jpeg":
            fmt = "jpg"

        size = resource.size
        suggestions: List[str] = []
        if fmt and fmt not in MODERN_IMAGE_FORMATS and fmt != "svg+xml":
            suggestions.append("Consider serving WebP or AVIF for better compression.")
        if size > 500_000:
            suggestions.append("Image is over 500 KB; compress it or serve a smaller variant.")
        elif size > 200_000:
            suggestions.append("Image is over 200 KB; compression would help load time.")
        if width and width > 2000:
            suggestions.append(f"Image is {width}px wide; resize it to the largest size actually displayed.")
        suggestions.append("Make sure the image has descriptive alt text where it is used.")

        details = {
            "format": fmt,
            "contentType": resource.content_type or None,
            "sizeBytes": size,
            "width": width,
            "height": height,
        }
        if tracked:
            self.session.assets.update_status(url, "scanned", size=size, metadata=details)

        return {
            "url": url,
            "prompt": params.get("prompt") or "",
            "description": f"{(fmt or 'unknown').upper()} image, {size / 1024:.1f} KB"
                           + (f", {width}x{height}" if width and height else ""),
            "optimizationSuggestions": suggestions,
            "technicalDetails": details,
        }

    def fetch_sitemap(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = _require_url(params)
        sitemap_url = urljoin(url, "/sitemap.xml")
        try:
            xml_text = self.resources.fetch(sitemap_url)
        except FetchError as e:
            logger.info("No sitemap.xml at %s (%s); trying robots.txt", sitemap_url, e.reason)
        else:
            kind, locs = _sitemap_locs(xml_text)
            return {"urls": locs, "source": "sitemap.xml", "sitemapUrl": sitemap_url, "kind": kind}

        robots_url = urljoin(url, "/robots.txt")
        try:
            robots_text = self.resources.fetch(robots_url)
        except FetchError:
            return {"message": "No sitemap or robots.txt found"}

        sitemaps = [m.strip() for m in re.findall(r"^\s*sitemap:\s*(\S+)", robots_text, flags=re.I | re.M)]
        if sitemaps:
            return {"sitemapUrl": sitemaps[0], "sitemaps": sitemaps, "source": "robots.txt"}
        return {"message": "No sitemap found"}
