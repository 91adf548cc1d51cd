import re
from dataclasses import dataclass, field
from typing import FrozenSet
from urllib.parse import urlparse


class UrlNormalizer:
    """Strategy interface."""
    def normalize(self, s: str) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class GuessComUrlNormalizer(UrlNormalizer):
    """
    Turns what a user types ("example", "example.com/about") into an absolute URL.
    Hosts without a dot get ".com" unless listed in no_guess_hosts (compared lowercased).
    """
    default_scheme: str = "https"
    guess_com_if_no_dot: bool = True
    no_guess_hosts: FrozenSet[str] = field(default_factory=frozenset)

    def normalize(self, s: str) -> str:
        s = (s or "").strip()
        if not s:
            return ""

        if re.match(r"^https?://", s, flags=re.IGNORECASE):
            return s

        host, sep, rest = s.partition("/")
        host = host.strip()
        bare_host = host.split(":", 1)[0].lower()

        skip = {h.lower() for h in self.no_guess_hosts}
        if self.guess_com_if_no_dot and "." not in host and bare_host not in skip:
            host = host + ".com"

        return f"{self.default_scheme}://{host}{sep}{rest}"


def is_valid_http_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.hostname)


def validate_http_url(url: str) -> str:
    """Returns url unchanged, or raises ValueError when it is not an absolute http(s) URL."""
    if not is_valid_http_url(url):
        raise ValueError(f"Please enter a valid http(s) URL (got {url!r})")
    return url
