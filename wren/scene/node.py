# wren/scene/node.py
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

import numpy as np

from wren.math import compose_matrix, matrix_translation
from wren.types import Matrix4, Quaternion, Vector3


class SceneNode:
    """
    A node of an attachable scene graph.

    Local transform is either TRS or an explicit matrix (glTF allows both).
    `world_matrix` is only valid after `update_world_matrix()` has run on
    the node or one of its ancestors.
    """

    def __init__(
        self,
        name: str = "",
        *,
        id: Optional[str] = None,
        index: Optional[int] = None,
        translation: Optional[Vector3] = None,
        rotation: Optional[Quaternion] = None,
        scale: Optional[Vector3] = None,
        matrix: Optional[Matrix4] = None,
        mesh: Optional[int] = None,
        extras: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.name = name
        self.id = id or name
        self.index = index  # source node index inside the container
        self.translation = translation or Vector3.zero()
        self.rotation = rotation or Quaternion.identity()
        self.scale = scale or Vector3.one()
        self.matrix = matrix
        self.mesh = mesh
        self.extras: Dict[str, Any] = dict(extras or {})

        self.parent: Optional[SceneNode] = None
        self.children: List[SceneNode] = []
        self.world_matrix: Matrix4 = np.eye(4, dtype=np.float64)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, children={len(self.children)})"

    # -- Hierarchy --
    def add(self, child: SceneNode) -> SceneNode:
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: SceneNode) -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def traverse(self) -> Iterator[SceneNode]:
        """Depth-first, parents before children."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, name: str) -> Optional[SceneNode]:
        for node in self.traverse():
            if node.name == name:
                return node
        return None

    def find_by_index(self, index: int) -> Optional[SceneNode]:
        for node in self.traverse():
            if node.index == index:
                return node
        return None

    # -- Transforms --
    @property
    def local_matrix(self) -> Matrix4:
        if self.matrix is not None:
            return self.matrix
        return compose_matrix(self.translation, self.rotation, self.scale)

    def update_world_matrix(self, parent_matrix: Optional[Matrix4] = None) -> None:
        """
        Propagates world matrices down the subtree.
        Without an explicit parent matrix the current parent's is used.
        """
        if parent_matrix is None:
            parent_matrix = (
                self.parent.world_matrix
                if self.parent is not None
                else np.eye(4, dtype=np.float64)
            )
        self.world_matrix = parent_matrix @ self.local_matrix

        stack = list(self.children)
        while stack:
            node = stack.pop()
            node.world_matrix = node.parent.world_matrix @ node.local_matrix
            stack.extend(node.children)

    def world_position(self) -> Vector3:
        return matrix_translation(self.world_matrix)

    # -- Copying --
    def _copy(self) -> SceneNode:
        node = SceneNode(
            self.name,
            id=self.id,
            index=self.index,
            translation=self.translation,
            rotation=self.rotation,
            scale=self.scale,
            matrix=None if self.matrix is None else self.matrix.copy(),
            mesh=self.mesh,
            extras=self.extras,
        )
        node.world_matrix = self.world_matrix.copy()
        return node

    def clone(self, recursive: bool = True) -> SceneNode:
        root = self._copy()
        if not recursive:
            return root

        stack = [(self, root)]
        while stack:
            source, copy = stack.pop()
            for child in source.children:
                child_copy = child._copy()
                copy.add(child_copy)
                stack.append((child, child_copy))
        return root


def create_group(id: str) -> SceneNode:
    return SceneNode(id, id=id)
