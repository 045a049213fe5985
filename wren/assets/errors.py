# wren/assets/errors.py
from typing import Any, Optional


class AssetError(Exception):
    """Base class for asset loading failures."""


class UnresolvableReferenceError(AssetError):
    def __init__(self, locator: Any) -> None:
        self.locator = locator
        super().__init__(f"Could not resolve asset reference: {locator!r}")


class FetchError(AssetError):
    def __init__(self, url: str, status: Optional[int] = None) -> None:
        self.url = url
        self.status = status
        if status is None:
            msg = f"Request failed for {url}"
        else:
            msg = f"HTTP error {status} for {url}"
        super().__init__(msg)


class UnsupportedKindError(AssetError, ValueError):
    def __init__(self, kind: Any) -> None:
        self.kind = kind
        super().__init__(f"Unsupported asset kind: {kind!r}")


class ParseError(AssetError):
    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to parse {url or '<bytes>'}: {reason}")
