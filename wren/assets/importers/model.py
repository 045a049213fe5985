# wren/assets/importers/model.py
from wren.assets.handle import AssetKind
from wren.assets.importers.base import GlbImporter
from wren.assets.types import Document, ModelView
from wren.scene.node import SceneNode, create_group


class ModelImporter(GlbImporter):
    kind = AssetKind.MODEL

    def build_view(self, document: Document, url: str) -> ModelView:
        root = create_group("$root")
        for child in document.scene.children:
            root.add(child.clone(True))
        root.update_world_matrix()

        def to_nodes() -> SceneNode:
            return root.clone(True)

        return ModelView(document=document, to_nodes=to_nodes)
