"""
JSON-friendly conversion for domain records.
Used by the HTTP layer and the state repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sitescan_web.domain.models import (
    Asset,
    ChatMessage,
    ScanResult,
    SEOData,
    SessionSnapshot,
    ToolCall,
    ToolResult,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    return datetime.fromisoformat(str(raw))


def _tuple_or_none(raw: Any):
    return tuple(raw) if raw is not None else None


def seo_to_dict(seo: SEOData) -> Dict[str, Any]:
    return {
        "title": seo.title,
        "titleLength": seo.title_length,
        "metaDescription": seo.meta_description,
        "metaDescriptionLength": seo.meta_description_length,
        "h1Tags": list(seo.h1_tags),
        "h2Tags": list(seo.h2_tags),
        "wordCount": seo.word_count,
        "canonicalUrl": seo.canonical_url,
        "robots": seo.robots,
        "openGraph": dict(seo.open_graph),
        "twitterCard": dict(seo.twitter_card),
        "structuredData": list(seo.structured_data),
    }


def seo_from_dict(raw: Dict[str, Any]) -> SEOData:
    return SEOData(
        title=raw.get("title") or "",
        title_length=int(raw.get("titleLength") or 0),
        meta_description=raw.get("metaDescription") or "",
        meta_description_length=int(raw.get("metaDescriptionLength") or 0),
        h1_tags=tuple(raw.get("h1Tags") or ()),
        h2_tags=tuple(raw.get("h2Tags") or ()),
        word_count=int(raw.get("wordCount") or 0),
        canonical_url=raw.get("canonicalUrl"),
        robots=raw.get("robots"),
        open_graph=dict(raw.get("openGraph") or {}),
        twitter_card=dict(raw.get("twitterCard") or {}),
        structured_data=list(raw.get("structuredData") or []),
    )


def scan_result_to_dict(result: ScanResult, *, include_html: bool = True) -> Dict[str, Any]:
    data = {
        "url": result.url,
        "status": result.status,
        "title": result.title,
        "description": result.description,
        "links": list(result.links) if result.links is not None else None,
        "images": list(result.images) if result.images is not None else None,
        "scripts": list(result.scripts) if result.scripts is not None else None,
        "stylesheets": list(result.stylesheets) if result.stylesheets is not None else None,
        "seoData": seo_to_dict(result.seo) if result.seo else None,
        "error": result.error,
        "scannedAt": _iso(result.scanned_at),
    }
    if include_html:
        data["html"] = result.html
    return data


def scan_result_from_dict(raw: Dict[str, Any]) -> ScanResult:
    return ScanResult(
        url=raw["url"],
        status=raw["status"],
        title=raw.get("title"),
        description=raw.get("description"),
        html=raw.get("html"),
        links=_tuple_or_none(raw.get("links")),
        images=_tuple_or_none(raw.get("images")),
        scripts=_tuple_or_none(raw.get("scripts")),
        stylesheets=_tuple_or_none(raw.get("stylesheets")),
        seo=seo_from_dict(raw["seoData"]) if raw.get("seoData") else None,
        error=raw.get("error"),
        scanned_at=_parse_dt(raw.get("scannedAt")),
    )


def asset_to_dict(asset: Asset) -> Dict[str, Any]:
    return {
        "url": asset.url,
        "type": asset.type,
        "status": asset.status,
        "size": asset.size,
        "metadata": asset.metadata,
    }


def asset_from_dict(raw: Dict[str, Any]) -> Asset:
    return Asset(
        url=raw["url"],
        type=raw["type"],
        status=raw.get("status") or "pending",
        size=raw.get("size"),
        metadata=raw.get("metadata"),
    )


def tool_call_to_dict(call: ToolCall) -> Dict[str, Any]:
    return {"id": call.id, "name": call.name, "parameters": dict(call.parameters), "status": call.status}


def tool_call_from_dict(raw: Dict[str, Any]) -> ToolCall:
    return ToolCall(
        name=raw["name"],
        parameters=raw.get("parameters") or {},
        id=raw["id"],
        status=raw.get("status") or "pending",
    )


def tool_result_to_dict(result: ToolResult) -> Dict[str, Any]:
    return {"toolCallId": result.tool_call_id, "result": to_jsonable(result.result), "error": result.error}


def tool_result_from_dict(raw: Dict[str, Any]) -> ToolResult:
    return ToolResult(tool_call_id=raw["toolCallId"], result=raw.get("result"), error=raw.get("error"))


def message_to_dict(message: ChatMessage) -> Dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
        "timestamp": _iso(message.timestamp),
        "toolCall": tool_call_to_dict(message.tool_call) if message.tool_call else None,
        "toolResult": tool_result_to_dict(message.tool_result) if message.tool_result else None,
    }


def message_from_dict(raw: Dict[str, Any]) -> ChatMessage:
    return ChatMessage(
        role=raw["role"],
        content=raw.get("content") or "",
        id=raw["id"],
        timestamp=_parse_dt(raw.get("timestamp")) or datetime.now().astimezone(),
        tool_call=tool_call_from_dict(raw["toolCall"]) if raw.get("toolCall") else None,
        tool_result=tool_result_from_dict(raw["toolResult"]) if raw.get("toolResult") else None,
    )


def snapshot_to_dict(snapshot: SessionSnapshot, *, include_html: bool = True) -> Dict[str, Any]:
    return {
        "currentUrl": snapshot.current_url,
        "scanResults": [
            [url, scan_result_to_dict(result, include_html=include_html)]
            for url, result in snapshot.scan_results
        ],
        "chatHistory": [message_to_dict(m) for m in snapshot.chat_history],
        "assets": [asset_to_dict(a) for a in snapshot.assets],
    }


def to_jsonable(value: Any) -> Any:
    """Tool payloads may contain domain records; flatten them for JSON."""
    if isinstance(value, ScanResult):
        return scan_result_to_dict(value, include_html=False)
    if isinstance(value, SEOData):
        return seo_to_dict(value)
    if isinstance(value, Asset):
        return asset_to_dict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
