# wren/assets/__init__.py
from wren.assets.errors import (
    AssetError,
    FetchError,
    ParseError,
    UnresolvableReferenceError,
    UnsupportedKindError,
)
from wren.assets.fetch import Fetcher, FetchResponse, HttpxFetcher
from wren.assets.handle import AssetKey, AssetKind
from wren.assets.resolver import resolve_url
from wren.assets.server import AssetLoader
from wren.assets.settings import LoaderSettings
from wren.assets.types import (
    AnimationClip,
    AssetView,
    AvatarView,
    Document,
    EmoteClipOptions,
    EmoteView,
    KeyframeTrack,
    ModelView,
    ScriptView,
)

__all__ = [
    "AssetLoader",
    "AssetKey",
    "AssetKind",
    "LoaderSettings",
    "resolve_url",
    "Fetcher",
    "FetchResponse",
    "HttpxFetcher",
    "AssetError",
    "FetchError",
    "ParseError",
    "UnresolvableReferenceError",
    "UnsupportedKindError",
    "Document",
    "AnimationClip",
    "KeyframeTrack",
    "EmoteClipOptions",
    "AssetView",
    "ModelView",
    "EmoteView",
    "AvatarView",
    "ScriptView",
]
