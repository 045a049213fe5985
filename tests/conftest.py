import asyncio
import json
import struct
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pytest

from wren.assets.fetch import FetchResponse
from wren.assets.server import AssetLoader
from wren.assets.settings import LoaderSettings

ASSETS_ROOT = "https://assets.example.com/"

_COMPONENTS = {"SCALAR": 1, "VEC3": 3, "VEC4": 4}


class GltfBuilder:
    """Assembles small GLB containers for tests."""

    def __init__(self) -> None:
        self.gltf: Dict = {
            "asset": {"version": "2.0", "generator": "wren-tests"},
            "scene": 0,
            "scenes": [{"name": "Scene", "nodes": []}],
            "nodes": [],
        }
        self._bin = bytearray()

    def add_node(self, name: str, parent: Optional[int] = None, **props) -> int:
        nodes = self.gltf["nodes"]
        index = len(nodes)
        nodes.append({"name": name, **props})
        if parent is None:
            self.gltf["scenes"][0]["nodes"].append(index)
        else:
            nodes[parent].setdefault("children", []).append(index)
        return index

    def add_accessor(self, values, type_: str, minmax: bool = False) -> int:
        arr = np.asarray(values, dtype="<f4").reshape(-1)
        data = arr.tobytes()
        offset = len(self._bin)
        self._bin += data
        self._bin += b"\x00" * (-len(self._bin) % 4)

        views = self.gltf.setdefault("bufferViews", [])
        views.append({"buffer": 0, "byteOffset": offset, "byteLength": len(data)})

        components = _COMPONENTS[type_]
        count = arr.size // components
        accessor = {
            "bufferView": len(views) - 1,
            "componentType": 5126,
            "count": count,
            "type": type_,
        }
        if minmax:
            rows = arr.reshape(count, components)
            accessor["min"] = rows.min(axis=0).tolist()
            accessor["max"] = rows.max(axis=0).tolist()

        accessors = self.gltf.setdefault("accessors", [])
        accessors.append(accessor)
        return len(accessors) - 1

    def add_mesh(self, positions) -> int:
        accessor = self.add_accessor(positions, "VEC3", minmax=True)
        meshes = self.gltf.setdefault("meshes", [])
        meshes.append({"primitives": [{"attributes": {"POSITION": accessor}}]})
        return len(meshes) - 1

    def add_animation(
        self, name: str, channels: List[Tuple[int, str, List[float], List[float]]]
    ) -> int:
        anim: Dict = {"name": name, "channels": [], "samplers": []}
        for node, path, times, values in channels:
            type_ = "VEC4" if path == "rotation" else "VEC3"
            anim["samplers"].append(
                {
                    "input": self.add_accessor(times, "SCALAR"),
                    "output": self.add_accessor(values, type_),
                    "interpolation": "LINEAR",
                }
            )
            anim["channels"].append(
                {
                    "sampler": len(anim["samplers"]) - 1,
                    "target": {"node": node, "path": path},
                }
            )
        animations = self.gltf.setdefault("animations", [])
        animations.append(anim)
        return len(animations) - 1

    def set_vrm(self, bones: Dict[str, int], version: int = 1) -> None:
        if version == 0:
            human = [{"bone": name, "node": node} for name, node in bones.items()]
            self.gltf["extensions"] = {
                "VRM": {"specVersion": "0.0", "humanoid": {"humanBones": human}}
            }
        else:
            human = {name: {"node": node} for name, node in bones.items()}
            self.gltf["extensions"] = {
                "VRMC_vrm": {"specVersion": "1.0", "humanoid": {"humanBones": human}}
            }

    def build(self, pad_to: Optional[int] = None) -> bytes:
        gltf = dict(self.gltf)
        if self._bin:
            gltf["buffers"] = [{"byteLength": len(self._bin)}]
        return pack_glb(gltf, bytes(self._bin), pad_to=pad_to)


def pack_glb(gltf: Union[Dict, bytes], binary: bytes = b"", pad_to: Optional[int] = None) -> bytes:
    json_bytes = gltf if isinstance(gltf, bytes) else json.dumps(gltf).encode("utf-8")
    json_bytes += b" " * (-len(json_bytes) % 4)
    bin_part = b""
    if binary:
        bin_part = struct.pack("<II", len(binary), 0x004E4942) + binary

    if pad_to is not None:
        extra = pad_to - 12 - 8 - len(json_bytes) - len(bin_part)
        assert extra >= 0 and extra % 4 == 0
        json_bytes += b" " * extra

    body = struct.pack("<II", len(json_bytes), 0x4E4F534A) + json_bytes + bin_part
    return struct.pack("<4sII", b"glTF", 2, 12 + len(body)) + body


def build_model_glb(pad_to: Optional[int] = None) -> bytes:
    b = GltfBuilder()
    root = b.add_node("Crate", translation=[1.0, 0.0, 0.0])
    b.add_node("Lid", parent=root, translation=[0.0, 1.0, 0.0], mesh=b.add_mesh(
        [[-0.5, 0.0, -0.5], [0.5, 0.25, 0.5], [0.0, 0.0, 0.5]]
    ))
    return b.build(pad_to=pad_to)


def build_avatar_glb(with_rig: bool = True, with_mesh: bool = True, rig_version: int = 1) -> bytes:
    """
    Humanoid with the head bone at y=1.5 and (optionally) a body mesh
    reaching y=1.7.
    """
    b = GltfBuilder()
    armature = b.add_node("Armature")
    hips = b.add_node("J_Hips", parent=armature, translation=[0.0, 1.0, 0.0])
    spine = b.add_node("J_Spine", parent=hips, translation=[0.0, 0.125, 0.0])
    chest = b.add_node("J_Chest", parent=spine, translation=[0.0, 0.125, 0.0])
    neck = b.add_node("J_Neck", parent=chest, translation=[0.0, 0.125, 0.0])
    head = b.add_node("J_Head", parent=neck, translation=[0.0, 0.125, 0.0])
    left_arm = b.add_node("J_LeftUpperArm", parent=chest, translation=[0.25, 0.0, 0.0])
    right_arm = b.add_node("J_RightUpperArm", parent=chest, translation=[-0.25, 0.0, 0.0])
    if with_mesh:
        b.add_node("Body", parent=armature, mesh=b.add_mesh(
            [[-0.5, 0.0, -0.25], [0.5, 1.75, 0.25]]
        ))
    if with_rig:
        b.set_vrm(
            {
                "hips": hips,
                "spine": spine,
                "chest": chest,
                "neck": neck,
                "head": head,
                "leftUpperArm": left_arm,
                "rightUpperArm": right_arm,
            },
            version=rig_version,
        )
    return b.build()


def build_emote_glb(with_animation: bool = True) -> bytes:
    b = GltfBuilder()
    armature = b.add_node("Armature")
    hips = b.add_node("mixamorig:Hips", parent=armature, translation=[0.0, 1.0, 0.0])
    spine = b.add_node("mixamorig:Spine", parent=hips, translation=[0.0, 0.1, 0.0])
    arm = b.add_node("mixamorig:LeftArm", parent=spine, translation=[0.2, 0.3, 0.0])
    prop = b.add_node("Prop", parent=armature)
    if with_animation:
        b.add_animation(
            "wave",
            [
                (hips, "translation", [0.0, 1.0], [0.0, 1.0, 0.0, 0.5, 1.0, 0.25]),
                (hips, "rotation", [0.0, 1.0], [0.0, 0.0, 0.0, 1.0, 0.1, 0.2, 0.3, 0.9]),
                (spine, "translation", [0.0, 1.0], [0.0, 0.1, 0.0, 0.0, 0.2, 0.0]),
                (arm, "rotation", [0.0, 0.5, 2.0], [0.0] * 3 + [1.0] + [0.5] * 4 + [0.0] * 3 + [1.0]),
                (prop, "rotation", [0.0, 1.0], [0.0, 0.0, 0.0, 1.0] * 2),
            ],
        )
    return b.build()


class FakeFetcher:
    """
    In-memory fetcher. Counts calls per URL; `gate` holds every fetch
    until it is set, so tests can pile up concurrent waiters.
    """

    def __init__(self, responses: Optional[Dict[str, object]] = None) -> None:
        self.responses: Dict[str, object] = dict(responses or {})
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def fetch(self, url: str) -> FetchResponse:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()

        response = self.responses.get(url)
        if isinstance(response, BaseException):
            raise response
        if response is None:
            return FetchResponse(url=url, status=404, content=b"")
        if isinstance(response, tuple):
            status, content = response
            return FetchResponse(url=url, status=status, content=content)
        return FetchResponse(url=url, status=200, content=response)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def loader(fetcher):
    """AssetLoader over the fake fetcher, rooted at ASSETS_ROOT."""
    loader = AssetLoader(LoaderSettings(assets_root=ASSETS_ROOT), fetcher=fetcher)
    yield loader
    loader._executor.shutdown(wait=True)
