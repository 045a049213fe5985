# wren/assets/settings.py
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(slots=True)
class LoaderSettings:
    """
    Resource: configuration consumed by the AssetLoader.

    `assets_root` is usually filled in by the world/session once the
    server has told us where its assets live, so it stays mutable.
    """

    assets_root: Optional[str] = None

    # Entity types a script may not create (`app.create("<type>")`).
    forbidden_script_types: Tuple[str, ...] = ("video", "ui", "image")

    decode_workers: int = 2
    http_headers: Dict[str, str] = field(default_factory=dict)
