from __future__ import annotations
import json
import logging
import os
import random
import uuid
from typing import Dict, Optional, Protocol

log = logging.getLogger("storefront.beacon")

CLIENT_ID_KEY = "metrics_client_id"
VISIT_COUNTED_KEY = "metrics_visit_counted"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Session-scoped storage: gone when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Local storage persisted as a flat JSON object in one file."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: expected a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        d = os.path.dirname(self.path)
        if d:
            os.makedirs(d, exist_ok=True)
        tmp = f"{self.path}.tmp"
        with open(tmp, "w") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)


def _weak_id() -> str:
    return ("%.16f" % random.random())[2:]


def new_client_id() -> str:
    try:
        # os.urandom backed
        return str(uuid.uuid4())
    except NotImplementedError:
        return _weak_id()


def ensure_client_identity(store: KeyValueStore) -> str:
    """Stable client id for this profile; always returns a usable string."""
    try:
        client_id = store.get(CLIENT_ID_KEY)
        if not client_id:
            client_id = new_client_id()
            store.set(CLIENT_ID_KEY, client_id)
        return client_id
    except (OSError, ValueError) as e:
        log.debug("beacon.identity.storage_unavailable: %s", e)
        return _weak_id()
