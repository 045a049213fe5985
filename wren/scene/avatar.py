# wren/scene/avatar.py
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from wren.scene.node import SceneNode

if TYPE_CHECKING:
    from wren.assets.importers.avatar import AvatarFactory, AvatarInstance


class AvatarNode(SceneNode):
    """
    Scene node that places an avatar instance at its world transform.
    Either carries a factory directly or loads one from `src` on mount.
    """

    def __init__(
        self,
        id: str = "avatar",
        factory: Optional[AvatarFactory] = None,
        src: Optional[str] = None,
        emote: Optional[str] = None,
    ) -> None:
        super().__init__("avatar", id=id)
        self.factory = factory
        self.src = src
        self.emote = emote
        self.instance: Optional[AvatarInstance] = None
        self._mounts = 0

    async def mount(self, loader: Any = None) -> None:
        mount_id = self._mounts = self._mounts + 1
        if self.src and loader is not None:
            view = loader.get("avatar", self.src)
            if view is None:
                view = await loader.load("avatar", self.src)
            if mount_id != self._mounts:
                # unmounted or remounted while loading
                return
            self.factory = view.factory if view is not None else None

        if self.factory is not None:
            self.instance = self.factory.create(self.world_matrix)
            self.instance.set_emote(self.emote)

    def unmount(self) -> None:
        self._mounts += 1
        if self.instance is not None:
            self.instance.destroy()
            self.instance = None

    def set_emote(self, url: Optional[str]) -> None:
        self.emote = url
        if self.instance is not None:
            self.instance.set_emote(url)

    def get_height(self) -> Optional[float]:
        return self.instance.height if self.instance is not None else None

    def commit(self, did_move: bool) -> None:
        if did_move and self.instance is not None:
            self.update_world_matrix()
            self.instance.move(self.world_matrix)

    def _copy(self) -> AvatarNode:
        node = AvatarNode(self.id, self.factory, self.src, self.emote)
        node.translation = self.translation
        node.rotation = self.rotation
        node.scale = self.scale
        node.world_matrix = self.world_matrix.copy()
        return node
