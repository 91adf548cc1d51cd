from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from sitescan_web.domain.models import SessionSnapshot
from sitescan_web.domain.serialization import (
    asset_from_dict,
    message_from_dict,
    scan_result_from_dict,
    snapshot_to_dict,
)

logger = logging.getLogger(__name__)


@dataclass
class JsonStateRepository:
    """
    Repository pattern: keeps {chatHistory, scanResults, assets} in one JSON file.
    A missing or damaged file loads as an empty session; it never stops startup.
    """
    state_file: Path

    def load(self) -> SessionSnapshot:
        if not self.state_file.exists():
            return SessionSnapshot()

        try:
            raw = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.state_file, e)
            return SessionSnapshot()

        if not isinstance(raw, dict):
            logger.warning("Ignoring state file %s: top level is not an object", self.state_file)
            return SessionSnapshot()

        return SessionSnapshot(
            scan_results=tuple(self._load_each(raw.get("scanResults"), _scan_entry, "scan result")),
            chat_history=tuple(self._unique_messages(
                self._load_each(raw.get("chatHistory"), message_from_dict, "message")
            )),
            assets=tuple(self._load_each(raw.get("assets"), asset_from_dict, "asset")),
            current_url=str(raw.get("currentUrl") or ""),
        )

    def save(self, snapshot: SessionSnapshot) -> None:
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot_to_dict(snapshot), indent=2, default=str)

        fd, tmp_name = tempfile.mkstemp(dir=str(self.state_file.parent), prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.state_file)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _load_each(self, items, loader, label):
        if not isinstance(items, list):
            return []
        loaded = []
        for item in items:
            try:
                loaded.append(loader(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed %s in %s: %s", label, self.state_file, e)
        return loaded

    def _unique_messages(self, messages):
        # ConversationStore rejects repeated ids; keep the first one.
        seen = set()
        unique = []
        for message in messages:
            if message.id in seen:
                logger.warning("Skipping duplicate message %s in %s", message.id, self.state_file)
                continue
            seen.add(message.id)
            unique.append(message)
        return unique


def _scan_entry(item):
    # Entries are stored as [url, result] pairs.
    url, raw = item
    result = scan_result_from_dict(raw)
    return url, result
