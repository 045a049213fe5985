# wren/assets/importers/base.py
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Optional

from wren.assets.handle import AssetKind
from wren.assets.importers.glb import GlbDecoder, decode_glb
from wren.assets.types import AssetView, Document


class AssetImporter(ABC):
    kind: AssetKind

    @abstractmethod
    async def import_bytes(self, data: bytes, url: str) -> Optional[AssetView]:
        """
        Turn fetched bytes into a view of this importer's kind.
        Returns None only when the content was deliberately refused.
        """
        pass


class GlbImporter(AssetImporter):
    """
    Shared path for container kinds: decode off the event loop, then
    build the kind-specific view over the decoded document.
    """

    def __init__(
        self, decoder: GlbDecoder, executor: Optional[Executor] = None
    ) -> None:
        self.decoder = decoder
        self.executor = executor

    async def import_bytes(self, data: bytes, url: str) -> AssetView:
        document = await decode_glb(self.decoder, data, url, self.executor)
        return self.build_view(document, url)

    @abstractmethod
    def build_view(self, document: Document, url: str) -> AssetView:
        pass
