# wren/assets/server.py
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from loguru import logger

from wren.assets.errors import (
    FetchError,
    UnresolvableReferenceError,
    UnsupportedKindError,
)
from wren.assets.fetch import Fetcher, FetchResponse, HttpxFetcher
from wren.assets.handle import AssetKey, AssetKind
from wren.assets.importers.avatar import AvatarImporter
from wren.assets.importers.base import AssetImporter
from wren.assets.importers.emote import EmoteImporter
from wren.assets.importers.glb import GlbDecoder
from wren.assets.importers.model import ModelImporter
from wren.assets.importers.script import ScriptImporter
from wren.assets.registry import AssetRegistry
from wren.assets.resolver import resolve_url
from wren.assets.settings import LoaderSettings
from wren.assets.types import AssetView


class AssetLoader:
    """
    Loads assets by (kind, locator), fetching and parsing each key once.

    A key is always in exactly one state: absent, pending (a task in
    `_pending`) or resolved (stored in `registry`). Failed loads go back
    to absent so the next caller retries.
    """

    def __init__(
        self,
        settings: Optional[LoaderSettings] = None,
        fetcher: Optional[Fetcher] = None,
        decoder: Optional[GlbDecoder] = None,
    ) -> None:
        self.settings = settings or LoaderSettings()
        self.registry = AssetRegistry()

        self._pending: Dict[AssetKey, "asyncio.Task[Optional[AssetView]]"] = {}

        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.decode_workers,
            thread_name_prefix="AssetWorker",
        )
        self._fetcher: Fetcher = fetcher or HttpxFetcher(
            headers=self.settings.http_headers
        )

        decoder = decoder or GlbDecoder()
        self._importers: Dict[AssetKind, AssetImporter] = {
            AssetKind.MODEL: ModelImporter(decoder, self._executor),
            AssetKind.AVATAR: AvatarImporter(decoder, self._executor),
            AssetKind.EMOTE: EmoteImporter(decoder, self._executor),
            AssetKind.SCRIPT: ScriptImporter(self.settings.forbidden_script_types),
        }

    async def __aenter__(self) -> "AssetLoader":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- Keys --
    def _key(self, kind: Any, locator: Any) -> AssetKey:
        try:
            asset_kind = AssetKind(kind)
        except ValueError:
            raise UnsupportedKindError(kind) from None
        if not isinstance(locator, str):
            raise UnresolvableReferenceError(locator)
        return AssetKey(asset_kind, locator)

    def _lookup(self, kind: Any, locator: Any) -> Optional[AssetKey]:
        try:
            return self._key(kind, locator)
        except (UnsupportedKindError, UnresolvableReferenceError):
            return None

    # -- Cache access --
    def has(self, kind: Any, locator: Any) -> bool:
        key = self._lookup(kind, locator)
        return key is not None and key in self.registry

    def get(self, kind: Any, locator: Any) -> Optional[AssetView]:
        key = self._lookup(kind, locator)
        if key is None:
            return None
        return self.registry.get(key)

    def is_pending(self, kind: Any, locator: Any) -> bool:
        key = self._lookup(kind, locator)
        return key is not None and key in self._pending

    # -- Preloading --
    def preload(self, kind: str, locator: str) -> None:
        # Loads are lazy; nothing to queue.
        pass

    def exec_preload(self) -> None:
        logger.debug("[AssetLoader] exec_preload called (no-op)")

    # -- Loading --
    async def load(self, kind: Any, locator: Any) -> Optional[AssetView]:
        """
        Returns the view for (kind, locator), loading it if needed.

        Concurrent callers for the same key share one fetch and parse and
        all receive the same view or the same exception. Returns None when
        a script is refused by the admission gate.
        """
        key = self._key(kind, locator)

        cached = self.registry.get(key)
        if cached is not None:
            return cached

        task = self._pending.get(key)
        if task is None:
            url = resolve_url(locator, self.settings.assets_root)
            if url is None:
                raise UnresolvableReferenceError(locator)

            task = asyncio.ensure_future(self._load(key, url))
            self._pending[key] = task

        # A cancelled caller must not cancel the shared load
        return await asyncio.shield(task)

    async def _load(self, key: AssetKey, url: str) -> Optional[AssetView]:
        try:
            response = await self._fetch(url)
            view = await self._importers[key.kind].import_bytes(response.content, url)
            if view is None:
                return None

            self.registry.store(key, view)
            logger.info(f"[AssetLoader] Loaded {key}")
            return view
        except Exception as e:
            logger.error(f"[AssetLoader] Failed to load {key.kind} from {url}: {e}")
            raise
        finally:
            # Runs before any waiter is resumed
            self._pending.pop(key, None)

    async def _fetch(self, url: str) -> FetchResponse:
        try:
            response = await self._fetcher.fetch(url)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(url) from e

        if not response.ok:
            raise FetchError(url, response.status)
        return response

    async def close(self) -> None:
        await self._fetcher.aclose()
        self._executor.shutdown(wait=False)
