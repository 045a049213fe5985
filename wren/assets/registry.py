# wren/assets/registry.py
from typing import Any, Dict, Iterator, Optional

from wren.assets.handle import AssetKey


class AssetRegistry:
    """
    Stores finished asset views mapped by AssetKey.
    Entries are write-once; nothing is evicted.
    """

    def __init__(self) -> None:
        self._storage: Dict[AssetKey, Any] = {}

    def store(self, key: AssetKey, data: Any) -> None:
        """Register a loaded asset."""
        if key in self._storage:
            raise KeyError(f"Asset already stored: {key}")
        self._storage[key] = data

    def get(self, key: AssetKey) -> Optional[Any]:
        """Retrieve asset data if available."""
        return self._storage.get(key)

    def __contains__(self, key: AssetKey) -> bool:
        return key in self._storage

    def __len__(self) -> int:
        return len(self._storage)

    def __iter__(self) -> Iterator[AssetKey]:
        return iter(self._storage)
