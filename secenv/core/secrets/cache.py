"""Per-run cache of fetched secret material."""

from typing import Dict, Optional


class SecretCache:
    """
    In-memory map from `resource#version` to fetched plaintext.

    One instance lives for one resolution run and is discarded with it.

    Usage:
        cache = SecretCache()
        key = SecretCache.key("projects/p/secrets/s", None, default="latest")
        if key not in cache:
            cache.put(key, fetch())
    """

    def __init__(self):
        self._entries: Dict[str, str] = {}

    @staticmethod
    def key(resource: str, version: Optional[str], default: str) -> str:
        return f"{resource}#{version or default}"

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def put(self, key: str, value: str) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
