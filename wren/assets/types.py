# wren/assets/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import numpy as np

from wren.scene.node import SceneNode

if TYPE_CHECKING:
    from wren.assets.importers.avatar import AvatarFactory


@dataclass(frozen=True)
class MeshBounds:
    """POSITION accessor min/max of one mesh, in mesh-local space."""

    min: Tuple[float, float, float]
    max: Tuple[float, float, float]


@dataclass(frozen=True, eq=False)
class KeyframeTrack:
    """
    One animated property of one node.
    name: "<node name>.<property>", property in {position, quaternion, scale}
    values: flat array, `item_size` floats per keyframe.
    """

    name: str
    times: np.ndarray
    values: np.ndarray
    interpolation: str = "LINEAR"

    @property
    def node_name(self) -> str:
        return self.name.rsplit(".", 1)[0]

    @property
    def property_name(self) -> str:
        return self.name.rsplit(".", 1)[1]

    @property
    def item_size(self) -> int:
        return 4 if self.property_name == "quaternion" else 3


@dataclass(frozen=True)
class AnimationClip:
    name: str
    duration: float
    tracks: Tuple[KeyframeTrack, ...]


@dataclass(frozen=True)
class Document:
    """Decoded in-memory form of a GLB container."""

    scene: SceneNode
    animations: Tuple[AnimationClip, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    mesh_bounds: Mapping[int, MeshBounds] = field(default_factory=dict)


@dataclass(frozen=True)
class EmoteClipOptions:
    root_to_hips: float
    version: str
    get_bone_name: Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ModelView:
    document: Document
    to_nodes: Callable[[], SceneNode]


@dataclass(frozen=True)
class EmoteView:
    document: Document
    to_clip: Callable[[EmoteClipOptions], AnimationClip]


@dataclass(frozen=True)
class AvatarView:
    document: Document
    factory: Optional[AvatarFactory]
    to_nodes: Callable[[], SceneNode]


@dataclass(frozen=True)
class ScriptView:
    """Admitted script text. Execution happens elsewhere."""

    code: str
    url: str


AssetView = Union[ModelView, EmoteView, AvatarView, ScriptView]

# Normalised rig descriptor stored under Document.metadata["vrm"]
RigDescriptor = Dict[str, Any]
