"""
Bearer credential held in persisted client state.

The store never caches the token in memory: every `get()` goes back to the
slot, so a login performed out of band (another tab, another process writing
the same file) is visible on the very next request.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, MutableMapping, Optional, Protocol

logger = logging.getLogger(__name__)

TOKEN_SLOT = "authToken"
USER_SLOT = "userData"


class SlotStorage(Protocol):
    def read(self, slot: str) -> Optional[Any]:
        ...

    def write(self, slot: str, value: Any) -> None:
        ...

    def remove(self, slot: str) -> None:
        ...


class MappingSlot:
    """Slots kept in any mutable mapping (e.g. `st.session_state`)."""

    def __init__(self, mapping: Optional[MutableMapping[str, Any]] = None):
        self._mapping = mapping if mapping is not None else {}

    def read(self, slot: str) -> Optional[Any]:
        return self._mapping.get(slot)

    def write(self, slot: str, value: Any) -> None:
        self._mapping[slot] = value

    def remove(self, slot: str) -> None:
        self._mapping.pop(slot, None)


class FileSlot:
    """
    Slots persisted as one JSON object on disk.
    - Re-read on every access
    - A missing, unreadable or corrupt file reads as empty
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable client state file %s: %s", self.path, type(e).__name__)
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: dict[str, Any]) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)

    def read(self, slot: str) -> Optional[Any]:
        return self._load().get(slot)

    def write(self, slot: str, value: Any) -> None:
        data = self._load()
        data[slot] = value
        self._dump(data)

    def remove(self, slot: str) -> None:
        data = self._load()
        if slot in data:
            del data[slot]
            self._dump(data)


class CredentialStore:
    def __init__(self, storage: SlotStorage):
        self.storage = storage

    def get(self) -> Optional[str]:
        """Current bearer token, or None. Absence is a valid state."""
        token = self.storage.read(TOKEN_SLOT)
        if not isinstance(token, str) or not token.strip():
            return None
        return token.strip()

    def set(self, token: str, user_data: Optional[dict[str, Any]] = None) -> None:
        self.storage.write(TOKEN_SLOT, token)
        if user_data is not None:
            self.storage.write(USER_SLOT, user_data)

    def invalidate(self) -> None:
        """Drop the credential after the backend rejected it."""
        self.storage.remove(TOKEN_SLOT)
        self.storage.remove(USER_SLOT)
        logger.warning("Credential rejected by backend; cleared")

    def clear(self) -> None:
        # logout
        self.storage.remove(TOKEN_SLOT)
        self.storage.remove(USER_SLOT)
