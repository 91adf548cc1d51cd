from .chat_service import ChatService
from .scan_session import ScanSession
from .url_normalization import UrlNormalizer, GuessComUrlNormalizer

__all__ = [
    "ChatService",
    "ScanSession",
    "UrlNormalizer",
    "GuessComUrlNormalizer",
]
