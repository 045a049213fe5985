# wren/assets/importers/__init__.py
from wren.assets.importers.avatar import AvatarFactory, AvatarImporter, AvatarInstance
from wren.assets.importers.base import AssetImporter, GlbImporter
from wren.assets.importers.emote import EmoteFactory, EmoteImporter
from wren.assets.importers.glb import GlbDecoder, decode_glb
from wren.assets.importers.model import ModelImporter
from wren.assets.importers.script import ScriptImporter, is_script_admissible

__all__ = [
    "AssetImporter",
    "AvatarFactory",
    "AvatarImporter",
    "AvatarInstance",
    "EmoteFactory",
    "EmoteImporter",
    "GlbDecoder",
    "GlbImporter",
    "ModelImporter",
    "ScriptImporter",
    "decode_glb",
    "is_script_admissible",
]
