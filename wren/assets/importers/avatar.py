# wren/assets/importers/avatar.py
from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np
from loguru import logger

from wren.assets.handle import AssetKind
from wren.assets.importers.base import GlbImporter
from wren.assets.types import AvatarView, Document
from wren.math import box_corners, transform_points
from wren.scene.avatar import AvatarNode
from wren.scene.node import SceneNode, create_group
from wren.types import BoundingBox3D, Matrix4, Vector3

REQUIRED_BONES = ("hips", "leftUpperArm", "rightUpperArm", "head")

# Head bone to top of skull, used when the avatar has no mesh bounds
DEFAULT_HEAD_TO_HEIGHT = 0.1


def validate_rig(rig: Any, scene: SceneNode) -> Optional[str]:
    """
    Returns None for a usable rig descriptor, otherwise the reason it
    cannot drive an avatar.
    """
    if not isinstance(rig, Mapping):
        return "rig descriptor is not a mapping"

    version = rig.get("version")
    if isinstance(version, bool) or not isinstance(version, (int, float)):
        return f"rig version {version!r} is not numeric"

    bones = rig.get("humanBones")
    if not isinstance(bones, Mapping):
        return "rig has no humanoid bone map"

    for name in REQUIRED_BONES:
        index = bones.get(name)
        if isinstance(index, bool) or not isinstance(index, int):
            return f"required bone '{name}' is missing"
        if scene.find_by_index(index) is None:
            return f"required bone '{name}' (node {index}) is not in the scene"

    return None


class AvatarInstance:
    """One placed copy of an avatar, positioned by its world matrix."""

    def __init__(self, factory: AvatarFactory, matrix: Matrix4) -> None:
        self.factory = factory
        self.matrix = np.array(matrix, dtype=np.float64)
        self.emote: Optional[str] = None
        self.destroyed = False

    @property
    def height(self) -> float:
        return self.factory.height

    @property
    def head_to_height(self) -> float:
        return self.factory.head_to_height

    def move(self, matrix: Matrix4) -> None:
        self.matrix = np.array(matrix, dtype=np.float64)

    def set_emote(self, url: Optional[str]) -> None:
        self.emote = url

    def get_bone_transform(self, name: str) -> Optional[Matrix4]:
        local = self.factory.get_bone_transform(name)
        if local is None:
            return None
        return self.matrix @ local

    def destroy(self) -> None:
        self.destroyed = True
        self.emote = None


class AvatarFactory:
    """
    Humanoid view over an avatar document.

    Works on a private copy of the skeleton so pose updates never touch
    the cached document.
    """

    def __init__(self, document: Document, rig: Mapping[str, Any]) -> None:
        self.version = int(rig["version"])
        self.skeleton = document.scene.clone(True)
        self._mesh_bounds = document.mesh_bounds

        self._bones: Dict[str, SceneNode] = {}
        for name, index in rig["humanBones"].items():
            if isinstance(index, bool) or not isinstance(index, int):
                continue
            node = self.skeleton.find_by_index(index)
            if node is not None:
                self._bones[name] = node

        self.update()

    @classmethod
    def from_document(cls, document: Document, url: str = "") -> Optional[AvatarFactory]:
        rig = document.metadata.get("vrm")
        if rig is None:
            logger.warning(f"[AvatarImporter] No humanoid rig in {url}, avatar disabled")
            return None

        reason = validate_rig(rig, document.scene)
        if reason is not None:
            logger.warning(f"[AvatarImporter] Invalid rig in {url}: {reason}")
            return None

        return cls(document, rig)

    # -- Bones --
    @property
    def bone_names(self) -> Dict[str, str]:
        return {name: node.name for name, node in self._bones.items()}

    def get_bone(self, name: str) -> Optional[SceneNode]:
        return self._bones.get(name)

    def get_bone_name(
        self, name: str, mapping: Optional[Callable[[str], Optional[str]]] = None
    ) -> Optional[str]:
        """
        Canonical bone name -> name on an external skeleton.
        Without a mapping the node name inside this avatar is returned.
        """
        node = self._bones.get(name)
        if node is None:
            return None
        if mapping is not None:
            return mapping(name)
        return node.name

    def get_bone_transform(self, name: str) -> Optional[Matrix4]:
        node = self._bones.get(name)
        if node is None:
            return None
        return node.world_matrix.copy()

    def update(self) -> None:
        """Re-runs pose propagation from the skeleton root."""
        self.skeleton.update_world_matrix(np.eye(4, dtype=np.float64))

    # -- Measurements --
    @property
    def head_position(self) -> Vector3:
        return self._bones["head"].world_position()

    @property
    def bounds(self) -> BoundingBox3D:
        box: Optional[BoundingBox3D] = None
        for node in self.skeleton.traverse():
            if node.mesh is None or node.mesh not in self._mesh_bounds:
                continue
            mb = self._mesh_bounds[node.mesh]
            corners = transform_points(node.world_matrix, box_corners(mb.min, mb.max))
            node_box = BoundingBox3D.from_points(corners)
            box = node_box if box is None else box.union(node_box)

        if box is None:
            points = np.array(
                [tuple(n.world_position()) for n in self._bones.values()],
                dtype=np.float64,
            )
            box = BoundingBox3D.from_points(points)
        return box

    @property
    def head_to_height(self) -> float:
        top = self.bounds.max.y
        head_y = self.head_position.y
        if self._mesh_bounds and top > head_y:
            return top - head_y
        return DEFAULT_HEAD_TO_HEIGHT

    @property
    def height(self) -> float:
        """Approximate standing height, head bone plus the skull above it."""
        return self.head_position.y + self.head_to_height

    def create(self, matrix: Optional[Matrix4] = None) -> AvatarInstance:
        if matrix is None:
            matrix = np.eye(4, dtype=np.float64)
        return AvatarInstance(self, matrix)


class AvatarImporter(GlbImporter):
    kind = AssetKind.AVATAR

    def build_view(self, document: Document, url: str) -> AvatarView:
        factory = AvatarFactory.from_document(document, url)

        root = create_group("$root")
        root.add(AvatarNode(id="avatar", factory=factory))

        def to_nodes() -> SceneNode:
            return root.clone(True)

        return AvatarView(document=document, factory=factory, to_nodes=to_nodes)
