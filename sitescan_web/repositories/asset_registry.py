from __future__ import annotations

from collections import Counter
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from sitescan_web.domain.errors import NotFoundError
from sitescan_web.domain.models import ASSET_STATUSES, Asset, ScanResult

_EXTENSION_TYPES = {
    ".pdf": "pdf",
    ".mp4": "video",
    ".webm": "video",
    ".mov": "video",
    ".avi": "video",
    ".mp3": "audio",
    ".wav": "audio",
    ".ogg": "audio",
    ".m4a": "audio",
    ".doc": "document",
    ".docx": "document",
    ".xls": "document",
    ".xlsx": "document",
    ".ppt": "document",
    ".pptx": "document",
    ".odt": "document",
}


def classify_by_extension(url: str, default: str) -> str:
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    return _EXTENSION_TYPES.get(suffix, default)


def assets_from_scan(result: ScanResult) -> List[Tuple[str, str]]:
    """(url, type) pairs for every sub-resource a completed scan referenced."""
    pairs: List[Tuple[str, str]] = []
    for url in result.images or ():
        pairs.append((url, "image"))
    for url in result.scripts or ():
        pairs.append((url, "script"))
    for url in result.stylesheets or ():
        pairs.append((url, "stylesheet"))
    # Linked downloads (PDFs, media, office files) count as assets too.
    for url in result.links or ():
        kind = classify_by_extension(url, "")
        if kind:
            pairs.append((url, kind))
    return pairs


class AssetRegistry:
    """
    Repository pattern: owns the asset set.
    Keyed by absolute URL; the first recording decides the type; insertion order is kept.
    """

    def __init__(self, assets: Optional[Iterable[Asset]] = None):
        self._assets: Dict[str, Asset] = {}
        for asset in assets or ():
            self._assets.setdefault(asset.url, asset)

    def record(self, assets: Iterable[Tuple[str, str]]) -> int:
        added = 0
        for url, kind in assets:
            if url in self._assets:
                continue
            self._assets[url] = Asset(url=url, type=kind)
            added += 1
        return added

    def all(self) -> List[Asset]:
        return list(self._assets.values())

    def get(self, url: str) -> Asset:
        try:
            return self._assets[url]
        except KeyError:
            raise NotFoundError("Asset", url) from None

    def __contains__(self, url: str) -> bool:
        return url in self._assets

    def __len__(self) -> int:
        return len(self._assets)

    def update_status(
        self,
        url: str,
        status: str,
        size: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Asset:
        if status not in ASSET_STATUSES:
            raise ValueError(f"Invalid asset status: {status!r}")
        current = self.get(url)
        updated = replace(
            current,
            status=status,
            size=size if size is not None else current.size,
            metadata=metadata if metadata is not None else current.metadata,
        )
        self._assets[url] = updated
        return updated

    def by_type(self, kind: str) -> List[Asset]:
        return [a for a in self._assets.values() if a.type == kind]

    def counts(self) -> Dict[str, int]:
        stats = Counter(a.status for a in self._assets.values())
        return {
            "total": len(self._assets),
            "scanned": stats.get("scanned", 0),
            "pending": stats.get("pending", 0),
            "failed": stats.get("failed", 0),
        }
