# wren/assets/importers/script.py
import re
from typing import Iterable, Optional, Pattern

from loguru import logger

from wren.assets.errors import ParseError
from wren.assets.handle import AssetKind
from wren.assets.importers.base import AssetImporter
from wren.assets.types import ScriptView

DEFAULT_FORBIDDEN_TYPES = ("video", "ui", "image")


def build_denylist(forbidden_types: Iterable[str]) -> Optional[Pattern[str]]:
    """
    Matches `app.create("<type>")` / `app.create('<type>', ...)` for any
    forbidden entity type.
    """
    types = [re.escape(t) for t in forbidden_types]
    if not types:
        return None
    return re.compile(
        r"app\.create\s*\(\s*['\"](" + "|".join(types) + r")['\"]\s*(,|\))"
    )


def find_forbidden_call(
    code: str, forbidden_types: Iterable[str] = DEFAULT_FORBIDDEN_TYPES
) -> Optional[str]:
    """Returns the first forbidden entity type the script creates, if any."""
    pattern = build_denylist(forbidden_types)
    if pattern is None:
        return None
    match = pattern.search(code)
    return match.group(1) if match else None


def is_script_admissible(
    code: str, forbidden_types: Iterable[str] = DEFAULT_FORBIDDEN_TYPES
) -> bool:
    return find_forbidden_call(code, forbidden_types) is None


class ScriptImporter(AssetImporter):
    kind = AssetKind.SCRIPT

    def __init__(self, forbidden_types: Iterable[str] = DEFAULT_FORBIDDEN_TYPES) -> None:
        self.forbidden_types = tuple(forbidden_types)

    async def import_bytes(self, data: bytes, url: str) -> Optional[ScriptView]:
        try:
            code = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(url, "script is not valid UTF-8") from e

        forbidden = find_forbidden_call(code, self.forbidden_types)
        if forbidden is not None:
            logger.warning(
                f"[ScriptGate] Skipping {url}: disallowed '{forbidden}' entity"
            )
            return None

        return ScriptView(code=code, url=url)
