from __future__ import annotations

from typing import Optional


class SiteScanError(Exception):
    """Base class for domain errors."""


class FetchError(SiteScanError):
    """Transport or HTTP failure after all retry attempts were used."""

    def __init__(
        self,
        url: str,
        reason: str,
        *,
        status_code: Optional[int] = None,
        attempts: int = 0,
    ):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.attempts = attempts
        if status_code is not None:
            message = f"HTTP {status_code} fetching {url}: {reason}"
        else:
            message = f"Failed to fetch {url}: {reason}"
        super().__init__(message)


class ParseError(SiteScanError):
    """Only raised for input the HTML parser cannot take at all."""


class UnknownToolError(SiteScanError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class NotFoundError(SiteScanError):
    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ToolExecutionError(SiteScanError):
    """Any other failure inside a tool handler."""
