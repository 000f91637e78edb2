"""File-backed local state for the client."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from safetrail.client.interfaces import ContactInfo

logger = logging.getLogger(__name__)


class JsonStateStore:
    """Persists the active session id and the user profile in a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable state file %s, starting empty", self.path)
            return {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    def get_session_id(self) -> str | None:
        return self._load().get("session_id")

    def save_session_id(self, session_id: str) -> None:
        data = self._load()
        data["session_id"] = session_id
        self._save(data)

    def clear_session_id(self) -> None:
        data = self._load()
        if data.pop("session_id", None) is not None:
            self._save(data)

    def get_user_first_name(self) -> str | None:
        return self._load().get("user_first_name")

    def get_contacts(self) -> list[ContactInfo]:
        return [ContactInfo(name=c["name"], phone=c["phone"]) for c in self._load().get("contacts", [])]

    def save_profile(self, user_first_name: str, contacts: list[ContactInfo]) -> None:
        data = self._load()
        data["user_first_name"] = user_first_name
        data["contacts"] = [{"name": c.name, "phone": c.phone} for c in contacts]
        self._save(data)
