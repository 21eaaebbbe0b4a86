# Save as: chat_companion/context/storage.py
import json
import os
import copy
import hashlib
import httpx
from typing import Dict, Any, Optional, Protocol, runtime_checkable
from config import PROFILES_DIR, PREFERENCE_SERVICE_URL, STORAGE_TIMEOUT_SECONDS
from errors import StorageUnavailable


@runtime_checkable
class DurableKeyValueStore(Protocol):
    async def get(self, user_id: str) -> Optional[Dict[str, Any]]: ...

    async def put(self, user_id: str, record: Dict[str, Any]) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store. Records are deep-copied in and out, like a real backend would serialize them."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(user_id)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, user_id: str, record: Dict[str, Any]) -> None:
        self.records[user_id] = copy.deepcopy(record)


class JsonFileKeyValueStore:
    """One JSON document per user under a profiles directory."""

    def __init__(self, profiles_dir: str = PROFILES_DIR):
        self.profiles_dir = profiles_dir
        if not os.path.exists(self.profiles_dir):
            os.makedirs(self.profiles_dir)
            print(f"[Preferences] Created directory: {self.profiles_dir}")

    def _get_filepath(self, user_id: str) -> str:
        safe_user_id = "".join(c for c in user_id if c.isalnum() or c in ('-', '_')).lower()
        if not safe_user_id:
            raise StorageUnavailable(f"Cannot derive a filename from user id {user_id!r}")
        # Sanitizing is lossy ("U.1" and "u1" both reduce to "u1"); the digest of the raw id keeps files apart
        digest = hashlib.sha1(user_id.encode("utf-8")).hexdigest()[:10]
        return os.path.join(self.profiles_dir, f"{safe_user_id}_{digest}.json")

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        filepath = self._get_filepath(user_id)
        if not os.path.exists(filepath):
            return None
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailable(f"Error loading preferences for {user_id}: {e}") from e

    async def put(self, user_id: str, record: Dict[str, Any]) -> None:
        filepath = self._get_filepath(user_id)
        tmp_path = filepath + ".tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(record, f, indent=2)
            os.replace(tmp_path, filepath)
        except OSError as e:
            raise StorageUnavailable(f"Error saving preferences for {user_id}: {e}") from e


class HttpKeyValueStore:
    """
    Client for the profile service. GET /preferences/{user_id} returns the
    record (404 when absent); PUT /preferences/{user_id} replaces it.
    """

    def __init__(self, base_url: str = PREFERENCE_SERVICE_URL, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = STORAGE_TIMEOUT_SECONDS):
        self.base_url = base_url
        self.timeout = timeout
        self.client = client

    async def initialize(self):
        if self.client is None:
            self.client = httpx.AsyncClient(base_url=self.base_url)
            print(f"✅ [Preferences] Connected to {self.base_url}")

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            print("✅ [Preferences] HTTP client closed")

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        if not self.client:
            await self.initialize()
        try:
            response = await self.client.get(f"/preferences/{user_id}", timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StorageUnavailable(f"Error fetching preferences for {user_id}: {e}") from e

    async def put(self, user_id: str, record: Dict[str, Any]) -> None:
        if not self.client:
            await self.initialize()
        try:
            response = await self.client.put(f"/preferences/{user_id}", json=record, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageUnavailable(f"Error updating preferences for {user_id}: {e}") from e
