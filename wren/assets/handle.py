# wren/assets/handle.py
from dataclasses import dataclass
from enum import StrEnum


class AssetKind(StrEnum):
    MODEL = "model"
    AVATAR = "avatar"
    EMOTE = "emote"
    SCRIPT = "script"


@dataclass(frozen=True)
class AssetKey:
    """
    Cache key for a loaded asset.
    Two keys are equal iff kind and locator match exactly.
    """

    kind: AssetKind
    locator: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.locator}"
