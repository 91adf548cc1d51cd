from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from sitescan_web.domain.errors import FetchError, ParseError
from sitescan_web.domain.models import ScanResult
from sitescan_web.services.document_model import parse_document
from sitescan_web.services.page_analyzer import PageAnalyzer

logger = logging.getLogger(__name__)

# Five equal checkpoints, reported in this order on a successful scan.
STAGE_CONNECT = ("connect", 20)
STAGE_FETCH = ("fetch", 40)
STAGE_PARSE = ("parse", 60)
STAGE_ASSETS = ("assets", 80)
STAGE_ANALYSIS = ("analysis", 100)

ProgressCallback = Callable[[int, str], None]


class DocumentFetcher:
    """Port: given a URL, return document text or raise FetchError."""
    def fetch(self, url: str) -> str:
        raise NotImplementedError


@dataclass
class PageScanner:
    """
    The fetch -> parse -> analyze boundary.
    scan_page never raises for fetch or parse trouble; it returns a failed ScanResult.
    """
    fetcher: DocumentFetcher
    analyzer: PageAnalyzer = field(default_factory=PageAnalyzer)

    def scan_page(self, url: str, on_progress: Optional[ProgressCallback] = None) -> ScanResult:
        def report(stage):
            if on_progress is not None:
                name, pct = stage
                on_progress(pct, name)

        try:
            report(STAGE_CONNECT)
            text = self.fetcher.fetch(url)
            report(STAGE_FETCH)

            doc = parse_document(text)
            report(STAGE_PARSE)

            result = self.analyzer.analyze(doc, url)
            report(STAGE_ASSETS)
        except FetchError as e:
            logger.warning("Scan of %s failed: %s", url, e)
            return ScanResult.failed(url, str(e))
        except ParseError as e:
            logger.warning("Could not parse %s: %s", url, e)
            return ScanResult.failed(url, str(e))
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("Unexpected error scanning %s", url)
            return ScanResult.failed(url, f"Unexpected error: {e}")

        report(STAGE_ANALYSIS)
        logger.info("Scanned %s (%d links, %d images)", url, len(result.links), len(result.images))
        return result

    def scan_pages(
        self,
        urls: Iterable[str],
        *,
        should_stop: Optional[Callable[[], bool]] = None,
        on_result: Optional[Callable[[ScanResult], None]] = None,
    ) -> List[ScanResult]:
        """
        Scan URLs one after another, preserving order.
        should_stop is checked before each URL; once it returns True the rest are skipped.
        """
        results: List[ScanResult] = []
        for url in urls:
            if should_stop is not None and should_stop():
                logger.info("Sequential scan stopped after %d page(s)", len(results))
                break
            result = self.scan_page(url)
            results.append(result)
            if on_result is not None:
                on_result(result)
        return results
