# wren/scene/__init__.py
from wren.scene.avatar import AvatarNode
from wren.scene.node import SceneNode, create_group

__all__ = [
    "AvatarNode",
    "SceneNode",
    "create_group",
]
