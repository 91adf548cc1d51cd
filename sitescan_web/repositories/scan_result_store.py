from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from sitescan_web.domain.models import ScanResult


class ScanResultStore:
    """
    Latest ScanResult per URL.
    Writes replace the whole entry for a key; entries are never edited in place.
    """

    def __init__(self, results: Optional[Iterable[ScanResult]] = None):
        self._results: Dict[str, ScanResult] = {}
        self.version = 0
        for result in results or ():
            self._results[result.url] = result

    def replace(self, result: ScanResult) -> None:
        self._results[result.url] = result
        self.version += 1

    def add_pending(self, url: str) -> bool:
        """Track a URL as pending unless something is already known about it."""
        if url in self._results:
            return False
        self.replace(ScanResult.pending(url))
        return True

    def get(self, url: str) -> Optional[ScanResult]:
        return self._results.get(url)

    def urls_with_status(self, status: str) -> List[str]:
        return [url for url, r in self._results.items() if r.status == status]

    def items(self) -> Tuple[Tuple[str, ScanResult], ...]:
        return tuple(self._results.items())

    def __contains__(self, url: str) -> bool:
        return url in self._results

    def __len__(self) -> int:
        return len(self._results)
