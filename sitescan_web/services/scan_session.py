from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from sitescan_web.domain.models import ChatMessage, ScanResult, SessionSnapshot
from sitescan_web.repositories.asset_registry import AssetRegistry, assets_from_scan
from sitescan_web.repositories.conversation_store import ConversationStore
from sitescan_web.repositories.scan_result_store import ScanResultStore

logger = logging.getLogger(__name__)


def _same_host(a: str, b: str) -> bool:
    return (urlparse(a).hostname or "").lower() == (urlparse(b).hostname or "").lower()


class ScanSession:
    """
    The single owner of mutable session state: scan results, assets, conversation.
    Callers change it only through these methods.
    """

    def __init__(
        self,
        *,
        scan_results: Optional[ScanResultStore] = None,
        assets: Optional[AssetRegistry] = None,
        conversation: Optional[ConversationStore] = None,
        queue_same_site_links: bool = False,
    ):
        self.scan_results = scan_results or ScanResultStore()
        self.assets = assets or AssetRegistry()
        self.conversation = conversation or ConversationStore()
        self.queue_same_site_links = queue_same_site_links
        self.current_url = ""
        self._stop = threading.Event()

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot, *, queue_same_site_links: bool = False) -> "ScanSession":
        session = cls(
            scan_results=ScanResultStore(r for _, r in snapshot.scan_results),
            assets=AssetRegistry(snapshot.assets),
            conversation=ConversationStore(snapshot.chat_history),
            queue_same_site_links=queue_same_site_links,
        )
        session.current_url = snapshot.current_url
        return session

    def restore(self, snapshot: SessionSnapshot) -> None:
        """Replace all session state with a previously saved snapshot."""
        self.scan_results = ScanResultStore(r for _, r in snapshot.scan_results)
        self.assets = AssetRegistry(snapshot.assets)
        self.conversation = ConversationStore(snapshot.chat_history)
        self.current_url = snapshot.current_url
        self._stop.clear()

    def record_scan(self, result: ScanResult) -> int:
        """Store the latest result for its URL and register its assets. Returns new asset count."""
        self.scan_results.replace(result)
        if result.status != "completed":
            return 0

        added = self.assets.record(assets_from_scan(result))
        if self.queue_same_site_links:
            self.queue_pages(u for u in result.links or () if _same_host(u, result.url))
        return added

    def queue_pages(self, urls: Iterable[str]) -> List[str]:
        queued = [url for url in urls if self.scan_results.add_pending(url)]
        if queued:
            logger.info("Queued %d page(s) for scanning", len(queued))
        return queued

    def pending_urls(self) -> List[str]:
        return self.scan_results.urls_with_status("pending")

    def append_message(self, message: ChatMessage) -> ChatMessage:
        self.conversation.append(message)
        return message

    def image_urls(self) -> List[str]:
        pending_first = sorted(self.assets.by_type("image"), key=lambda a: a.status != "pending")
        return [a.url for a in pending_first]

    # Cooperative stop for sequential scans; checked between pages only.
    def request_stop(self) -> None:
        self._stop.set()

    def clear_stop(self) -> None:
        self._stop.clear()

    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            scan_results=self.scan_results.items(),
            chat_history=self.conversation.history(),
            assets=tuple(self.assets.all()),
            current_url=self.current_url,
        )
