######## models.py
########

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

SCAN_STATUSES = ("pending", "scanning", "completed", "failed")
ASSET_TYPES = ("image", "script", "stylesheet", "pdf", "video", "audio", "document")
ASSET_STATUSES = ("pending", "scanned", "failed")
TOOL_CALL_STATUSES = ("pending", "approved", "declined", "completed", "failed")
TERMINAL_TOOL_CALL_STATUSES = ("declined", "completed", "failed")
MESSAGE_ROLES = ("user", "assistant")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_message_id() -> str:
    return uuid.uuid4().hex


def new_tool_call_id() -> str:
    return f"tool_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class SEOData:
    title: str
    title_length: int
    meta_description: str
    meta_description_length: int
    h1_tags: Tuple[str, ...] = ()
    h2_tags: Tuple[str, ...] = ()
    word_count: int = 0
    canonical_url: Optional[str] = None
    robots: Optional[str] = None
    open_graph: Dict[str, str] = field(default_factory=dict)
    twitter_card: Dict[str, str] = field(default_factory=dict)
    structured_data: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ScanResult:
    url: str
    status: str                 # "pending" | "scanning" | "completed" | "failed"
    title: Optional[str] = None
    description: Optional[str] = None
    html: Optional[str] = None
    links: Optional[Tuple[str, ...]] = None
    images: Optional[Tuple[str, ...]] = None
    scripts: Optional[Tuple[str, ...]] = None
    stylesheets: Optional[Tuple[str, ...]] = None
    seo: Optional[SEOData] = None
    error: Optional[str] = None
    scanned_at: Optional[datetime] = None

    def __post_init__(self):
        if self.status not in SCAN_STATUSES:
            raise ValueError(f"Invalid scan status: {self.status!r}")
        if self.status == "completed" and self.error is not None:
            raise ValueError("A completed scan cannot carry an error.")
        if self.status == "failed":
            if not self.error:
                raise ValueError("A failed scan must carry an error.")
            if any(getattr(self, name) is not None for name in _STRUCTURAL_FIELDS):
                raise ValueError("A failed scan cannot carry page data.")

    @classmethod
    def pending(cls, url: str) -> "ScanResult":
        return cls(url=url, status="pending")

    @classmethod
    def failed(cls, url: str, error: str) -> "ScanResult":
        return cls(url=url, status="failed", error=error or "Unknown error", scanned_at=utcnow())

    @classmethod
    def completed(
        cls,
        url: str,
        *,
        title: str,
        description: str,
        html: str,
        links: Tuple[str, ...],
        images: Tuple[str, ...],
        scripts: Tuple[str, ...],
        stylesheets: Tuple[str, ...],
        seo: SEOData,
    ) -> "ScanResult":
        return cls(
            url=url,
            status="completed",
            title=title,
            description=description,
            html=html,
            links=tuple(links),
            images=tuple(images),
            scripts=tuple(scripts),
            stylesheets=tuple(stylesheets),
            seo=seo,
            scanned_at=utcnow(),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")


_STRUCTURAL_FIELDS = ("title", "description", "html", "links", "images", "scripts", "stylesheets", "seo")


@dataclass(frozen=True)
class Asset:
    url: str
    type: str                   # one of ASSET_TYPES
    status: str = "pending"     # "pending" | "scanned" | "failed"
    size: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.type not in ASSET_TYPES:
            raise ValueError(f"Invalid asset type: {self.type!r}")
        if self.status not in ASSET_STATUSES:
            raise ValueError(f"Invalid asset status: {self.status!r}")


@dataclass(frozen=True)
class ToolRequest:
    name: str
    parameters: Dict[str, Any]
    category: Optional[str] = None


@dataclass
class ToolCall:
    """
    A requested analysis operation.
    Status transitions belong to ToolOrchestrator; everyone else reads.
    """
    name: str
    parameters: Dict[str, Any]
    id: str = field(default_factory=new_tool_call_id)
    status: str = "pending"

    def __post_init__(self):
        if not isinstance(self.parameters, Mapping):
            raise TypeError(f"Tool parameters must be a mapping, got {type(self.parameters).__name__}")
        self.parameters = dict(self.parameters)
        if self.status not in TOOL_CALL_STATUSES:
            raise ValueError(f"Invalid tool call status: {self.status!r}")

    @classmethod
    def from_request(cls, request: ToolRequest) -> "ToolCall":
        return cls(name=request.name, parameters=dict(request.parameters))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TOOL_CALL_STATUSES

    def snapshot(self) -> "ToolCall":
        return replace(self, parameters=dict(self.parameters))


@dataclass(frozen=True)
class ToolResult:
    tool_call_id: str
    result: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ChatMessage:
    role: str                   # "user" | "assistant"
    content: str
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=utcnow)
    tool_call: Optional[ToolCall] = None
    tool_result: Optional[ToolResult] = None

    def __post_init__(self):
        if self.role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")


@dataclass(frozen=True)
class SessionSnapshot:
    scan_results: Tuple[Tuple[str, ScanResult], ...] = ()
    chat_history: Tuple[ChatMessage, ...] = ()
    assets: Tuple[Asset, ...] = ()
    current_url: str = ""
