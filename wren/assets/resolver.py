# wren/assets/resolver.py
from typing import Any, Optional

from loguru import logger

ASSET_SCHEME = "asset://"
TRANSPORT_SCHEMES = ("http://", "https://")


def resolve_url(locator: Any, assets_root: Optional[str]) -> Optional[str]:
    """
    Maps a locator to a fetchable address.

    `asset://name` is joined onto `assets_root` with a single slash,
    absolute http(s) addresses pass through untouched. Anything else
    resolves to None. Never raises.
    """
    if not isinstance(locator, str):
        logger.warning(
            f"[AssetResolver] Invalid locator type: {type(locator).__name__}"
        )
        return None

    if locator.startswith(ASSET_SCHEME):
        if not assets_root or not isinstance(assets_root, str):
            logger.warning(
                f"[AssetResolver] Cannot resolve {locator}, assets root not set"
            )
            return None
        filename = locator[len(ASSET_SCHEME):]
        base = assets_root.rstrip("/\\")
        return f"{base}/{filename}"

    if locator.startswith(TRANSPORT_SCHEMES):
        return locator

    logger.warning(f"[AssetResolver] Cannot resolve relative locator: {locator}")
    return None
