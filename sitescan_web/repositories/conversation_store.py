from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple

from sitescan_web.domain.models import ChatMessage


class ConversationStore:
    """Append-only message log."""

    def __init__(self, messages: Optional[Iterable[ChatMessage]] = None):
        self._messages: List[ChatMessage] = []
        self._ids: Set[str] = set()
        self.version = 0
        for message in messages or ():
            self.append(message)

    def append(self, message: ChatMessage) -> None:
        if message.id in self._ids:
            raise ValueError(f"Message {message.id} is already in the conversation")
        self._messages.append(message)
        self._ids.add(message.id)
        self.version += 1

    def history(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
