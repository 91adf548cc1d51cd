from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.element import PreformattedString

from sitescan_web.domain.errors import ParseError

logger = logging.getLogger(__name__)

_NON_CONTENT_TAGS = ("script", "style", "noscript", "template", "title")


class DocumentModel:
    """
    Queryable view over a parsed HTML page.
    Every accessor tolerates missing elements and returns empty values.
    """

    def __init__(self, soup: BeautifulSoup, raw: str):
        self._soup = soup
        self.raw = raw

    @property
    def soup(self) -> BeautifulSoup:
        return self._soup

    def find_all(self, name, **attrs) -> List[Tag]:
        return self._soup.find_all(name, **attrs)

    def first_text(self, name: str) -> str:
        tag = self._soup.find(name)
        return tag.get_text(strip=True) if tag else ""

    def meta_content(self, *, name: Optional[str] = None, prop: Optional[str] = None) -> Optional[str]:
        wanted = (name or prop or "").lower()
        key = "name" if name else "property"
        for tag in self._soup.find_all("meta"):
            if (tag.get(key) or "").strip().lower() == wanted:
                return (tag.get("content") or "").strip()
        return None

    def meta_with_prefix(self, key: str, prefix: str) -> Iterator[tuple]:
        """Yields (attribute value, content) for meta tags whose `key` starts with prefix."""
        for tag in self._soup.find_all("meta"):
            value = (tag.get(key) or "").strip()
            content = (tag.get("content") or "").strip()
            if value.lower().startswith(prefix) and content:
                yield value, content

    def attr_values(self, name: str, attr: str, **filters) -> List[str]:
        values = []
        for tag in self._soup.find_all(name, **filters):
            value = tag.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            value = (value or "").strip()
            if value:
                values.append(value)
        return values

    def stylesheet_hrefs(self) -> List[str]:
        hrefs = []
        for tag in self._soup.find_all("link", href=True):
            rel = tag.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if "stylesheet" in [r.lower() for r in rel]:
                hrefs.append(tag["href"].strip())
        return [h for h in hrefs if h]

    def link_href(self, rel: str) -> Optional[str]:
        for tag in self._soup.find_all("link", href=True):
            rels = tag.get("rel") or []
            if isinstance(rels, str):
                rels = rels.split()
            if rel in [r.lower() for r in rels]:
                return tag["href"].strip() or None
        return None

    def heading_texts(self, level: int) -> List[str]:
        return [h.get_text(" ", strip=True) for h in self._soup.find_all(f"h{level}")]

    def heading_levels(self) -> List[int]:
        return [int(tag.name[1]) for tag in self._soup.find_all(re.compile("^h[1-6]$"))]

    def body_text(self) -> str:
        region = self._soup.body or self._soup
        parts = []
        for node in region.find_all(string=True):
            if isinstance(node, PreformattedString):
                continue
            if node.parent is not None and node.parent.name in _NON_CONTENT_TAGS:
                continue
            if node.find_parent("head") is not None:
                continue
            parts.append(str(node))
        return " ".join(parts)

    def json_ld_blocks(self) -> List[Any]:
        blocks: List[Any] = []
        for script in self._soup.find_all("script", type="application/ld+json"):
            raw = (script.string or script.get_text() or "").strip()
            if not raw:
                continue
            try:
                blocks.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed JSON-LD block")
                continue
        return blocks

    def html_lang(self) -> Optional[str]:
        html = self._soup.find("html")
        if not html:
            return None
        return (html.get("lang") or "").strip() or None


def parse_document(text: str) -> DocumentModel:
    if not isinstance(text, str):
        raise ParseError(f"Expected document text, got {type(text).__name__}")
    try:
        soup = BeautifulSoup(text, "html.parser")
    except Exception as e:
        raise ParseError(f"Unparseable document: {e}") from e
    return DocumentModel(soup, text)
