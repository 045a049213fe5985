# wren/assets/importers/glb.py
"""
Binary glTF (GLB) container decoding.

Layout (little endian):
    header  [magic "glTF"] [version=2] [total length]
    chunk   [length] [type] [payload...]   first chunk JSON, optional BIN

Only what the asset views need is decoded: the node hierarchy with local
transforms, animation samplers, mesh POSITION bounds and the VRM humanoid
extension. Vertex data, materials and textures are left alone.
"""

import asyncio
import json
import re
import struct
from concurrent.futures import Executor
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from wren.assets.errors import ParseError
from wren.assets.types import (
    AnimationClip,
    Document,
    KeyframeTrack,
    MeshBounds,
    RigDescriptor,
)
from wren.math import matrix_from_gltf
from wren.scene.node import SceneNode
from wren.types import Quaternion, Vector3

GLB_MAGIC = b"glTF"
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

COMPONENT_DTYPES = {
    5120: np.int8,
    5121: np.uint8,
    5122: np.int16,
    5123: np.uint16,
    5125: np.uint32,
    5126: np.float32,
}

TYPE_SIZES = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}

# glTF channel path -> scene property name used in track names
PATH_TO_PROPERTY = {
    "translation": "position",
    "rotation": "quaternion",
    "scale": "scale",
}

_RESERVED_NAME_CHARS = re.compile(r"[\[\]\.:\/]")

OnLoad = Callable[[Document], None]
OnError = Callable[[ParseError], None]


def sanitize_node_name(name: str) -> str:
    """Track names use '.' as separator, so node names may not contain it."""
    return _RESERVED_NAME_CHARS.sub("", re.sub(r"\s", "_", name))


def _index(seq: List[Any], value: Any, what: str, url: str) -> Any:
    """Looks up a JSON index, refusing negative, non-integer or dangling ones."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParseError(url, f"{what} index {value!r} is not an integer")
    if not 0 <= value < len(seq):
        raise ParseError(url, f"{what} index {value} out of range")
    return seq[value]


def _object(value: Any, what: str, url: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(url, f"{what} is not an object")
    return value


class GlbDecoder:
    _header_struct = struct.Struct("<4sII")
    _chunk_struct = struct.Struct("<II")

    def parse(
        self,
        data: bytes,
        base_path: str,
        on_load: OnLoad,
        on_error: OnError,
    ) -> None:
        """
        Callback-style entry point. Exactly one of the callbacks is invoked.
        """
        try:
            document = self.decode(data, base_path)
        except ParseError as e:
            on_error(e)
            return
        except (
            struct.error,
            ValueError,
            KeyError,
            IndexError,
            TypeError,
            AttributeError,
        ) as e:
            on_error(ParseError(base_path, f"{type(e).__name__}: {e}"))
            return

        on_load(document)

    def decode(self, data: bytes, url: str = "") -> Document:
        gltf, binary = self._read_chunks(bytes(data), url)

        nodes = self._build_nodes(gltf, url)
        scene = self._build_scene(gltf, nodes, url)
        scene.update_world_matrix()

        animations = tuple(
            self._read_animation(gltf, binary, nodes, i, url)
            for i in range(len(gltf.get("animations", [])))
        )

        metadata: Dict[str, Any] = {
            "asset": gltf.get("asset", {}),
            "extras": gltf.get("extras", {}),
        }
        rig = self._read_rig(gltf, url)
        if rig is not None:
            metadata["vrm"] = rig

        return Document(
            scene=scene,
            animations=animations,
            metadata=metadata,
            mesh_bounds=self._read_mesh_bounds(gltf, url),
        )

    # -- Container --
    def _read_chunks(self, data: bytes, url: str) -> Tuple[Dict[str, Any], bytes]:
        if len(data) < self._header_struct.size:
            raise ParseError(url, "buffer too small for GLB header")

        magic, version, length = self._header_struct.unpack_from(data, 0)
        if magic != GLB_MAGIC:
            raise ParseError(url, f"bad magic {magic!r}")
        if version != GLB_VERSION:
            raise ParseError(url, f"unsupported GLB version {version}")
        if length > len(data):
            raise ParseError(
                url, f"declared length {length} exceeds buffer ({len(data)})"
            )

        json_chunk: Optional[bytes] = None
        bin_chunk: Optional[bytes] = None

        offset = self._header_struct.size
        while offset < length:
            if offset + self._chunk_struct.size > length:
                raise ParseError(url, "truncated chunk header")
            chunk_len, chunk_type = self._chunk_struct.unpack_from(data, offset)
            offset += self._chunk_struct.size

            if offset + chunk_len > length:
                raise ParseError(url, "chunk exceeds container length")
            payload = data[offset : offset + chunk_len]
            offset += chunk_len

            if json_chunk is None:
                if chunk_type != CHUNK_JSON:
                    raise ParseError(url, "first chunk is not JSON")
                json_chunk = payload
            elif chunk_type == CHUNK_BIN and bin_chunk is None:
                bin_chunk = payload
            # Unknown chunk types are skipped

        if json_chunk is None:
            raise ParseError(url, "missing JSON chunk")

        try:
            gltf = json.loads(json_chunk.decode("utf-8"))
        except ValueError as e:
            raise ParseError(url, f"invalid JSON chunk: {e}") from e
        if not isinstance(gltf, dict):
            raise ParseError(url, "JSON chunk is not an object")

        return gltf, bin_chunk or b""

    # -- Scene graph --
    def _build_nodes(self, gltf: Dict[str, Any], url: str) -> List[SceneNode]:
        nodes_json = [
            _object(n, f"node {i}", url) for i, n in enumerate(gltf.get("nodes", []))
        ]
        nodes = [self._build_node(i, n) for i, n in enumerate(nodes_json)]

        for i, node_json in enumerate(nodes_json):
            for child_index in node_json.get("children", []):
                child = _index(nodes, child_index, f"node {i} child", url)
                if child.parent is not None or child is nodes[i]:
                    raise ParseError(url, f"node {child_index} has multiple parents")
                nodes[i].add(child)

        return nodes

    def _build_node(self, index: int, node_json: Dict[str, Any]) -> SceneNode:
        name = sanitize_node_name(node_json.get("name") or f"node_{index}")

        matrix = None
        if "matrix" in node_json:
            matrix = matrix_from_gltf(node_json["matrix"])

        return SceneNode(
            name,
            index=index,
            translation=Vector3.from_seq(node_json.get("translation", (0, 0, 0))),
            rotation=Quaternion.from_seq(node_json.get("rotation", (0, 0, 0, 1))),
            scale=Vector3.from_seq(node_json.get("scale", (1, 1, 1))),
            matrix=matrix,
            mesh=node_json.get("mesh"),
            extras=node_json.get("extras"),
        )

    def _build_scene(
        self, gltf: Dict[str, Any], nodes: List[SceneNode], url: str
    ) -> SceneNode:
        root = SceneNode("Scene", id="$scene")

        scenes = gltf.get("scenes")
        if scenes:
            scene_json = _object(
                _index(scenes, gltf.get("scene", 0), "scene", url), "scene", url
            )
            root.name = scene_json.get("name") or root.name
            top_level = scene_json.get("nodes", [])
        else:
            top_level = [i for i, n in enumerate(nodes) if n.parent is None]

        for index in top_level:
            node = _index(nodes, index, "scene root", url)
            if node.parent is not None:
                raise ParseError(url, f"scene root {index} is a child node")
            root.add(node)

        return root

    def _read_mesh_bounds(
        self, gltf: Dict[str, Any], url: str
    ) -> Dict[int, MeshBounds]:
        accessors = gltf.get("accessors", [])
        bounds: Dict[int, MeshBounds] = {}

        for mesh_index, mesh in enumerate(gltf.get("meshes", [])):
            mesh = _object(mesh, f"mesh {mesh_index}", url)
            lo = [float("inf")] * 3
            hi = [float("-inf")] * 3
            found = False
            for prim in mesh.get("primitives", []):
                prim = _object(prim, f"mesh {mesh_index} primitive", url)
                attributes = _object(prim.get("attributes", {}), "attributes", url)
                pos = attributes.get("POSITION")
                if pos is None:
                    continue
                acc = _object(_index(accessors, pos, "accessor", url), "accessor", url)
                if "min" not in acc or "max" not in acc:
                    continue
                found = True
                lo = [min(a, float(b)) for a, b in zip(lo, acc["min"])]
                hi = [max(a, float(b)) for a, b in zip(hi, acc["max"])]
            if found:
                bounds[mesh_index] = MeshBounds(
                    (lo[0], lo[1], lo[2]), (hi[0], hi[1], hi[2])
                )

        return bounds

    # -- Buffers --
    def _read_accessor(
        self, gltf: Dict[str, Any], binary: bytes, index: int, url: str
    ) -> np.ndarray:
        """
        Returns a read-only (count, components) float32 array.
        """
        acc = _object(
            _index(gltf.get("accessors", []), index, "accessor", url), "accessor", url
        )
        count = int(acc["count"])
        components = TYPE_SIZES[acc["type"]]
        dtype = np.dtype(COMPONENT_DTYPES[acc["componentType"]]).newbyteorder("<")

        if "bufferView" not in acc:
            out = np.zeros((count, components), dtype=np.float32)
            out.flags.writeable = False
            return out

        view = _object(
            _index(gltf.get("bufferViews", []), acc["bufferView"], "bufferView", url),
            "bufferView",
            url,
        )
        if view.get("buffer", 0) != 0:
            raise ParseError(url, "external buffers are not supported")

        view_start = int(view.get("byteOffset", 0))
        view_end = view_start + int(view["byteLength"])
        start = view_start + int(acc.get("byteOffset", 0))

        elem_size = dtype.itemsize * components
        stride = int(view.get("byteStride") or elem_size)
        end = start + stride * (count - 1) + elem_size if count else start

        if end > view_end or view_end > len(binary):
            raise ParseError(url, f"accessor {index} out of bounds")

        if count == 0:
            arr = np.zeros((0, components), dtype=dtype)
        elif stride == elem_size:
            arr = np.frombuffer(binary, dtype, count * components, start)
            arr = arr.reshape(count, components)
        else:
            arr = np.stack(
                [
                    np.frombuffer(binary, dtype, components, start + i * stride)
                    for i in range(count)
                ]
            )

        out = arr.astype(np.float32)
        if acc.get("normalized") and dtype.kind in "iu":
            info = np.iinfo(dtype)
            out = np.maximum(out / float(info.max), -1.0).astype(np.float32)

        out.flags.writeable = False
        return out

    # -- Animation --
    def _read_animation(
        self,
        gltf: Dict[str, Any],
        binary: bytes,
        nodes: List[SceneNode],
        index: int,
        url: str,
    ) -> AnimationClip:
        anim = _object(gltf["animations"][index], f"animation {index}", url)
        samplers = anim.get("samplers", [])
        tracks: List[KeyframeTrack] = []

        for channel in anim.get("channels", []):
            channel = _object(channel, f"animation {index} channel", url)
            target = _object(channel.get("target", {}), "channel target", url)
            prop = PATH_TO_PROPERTY.get(target.get("path"))
            node_index = target.get("node")
            if prop is None or node_index is None:
                # morph weights and pointer targets
                continue

            target_node = _index(nodes, node_index, "channel target", url)
            sampler = _object(
                _index(samplers, channel.get("sampler"), "sampler", url), "sampler", url
            )
            times = self._read_accessor(gltf, binary, sampler["input"], url)
            values = self._read_accessor(gltf, binary, sampler["output"], url)
            interpolation = sampler.get("interpolation", "LINEAR")

            if interpolation == "CUBICSPLINE":
                # [in-tangent, value, out-tangent] per key, keep the value
                values = values.reshape(-1, 3, values.shape[1])[:, 1, :]
                interpolation = "LINEAR"

            if len(values) != len(times):
                raise ParseError(
                    url, f"animation {index}: sampler input/output mismatch"
                )

            times = times.reshape(-1).copy()
            flat = values.reshape(-1).copy()
            times.flags.writeable = False
            flat.flags.writeable = False

            tracks.append(
                KeyframeTrack(
                    f"{target_node.name}.{prop}",
                    times,
                    flat,
                    interpolation,
                )
            )

        duration = max(
            (float(t.times[-1]) for t in tracks if len(t.times)), default=0.0
        )
        return AnimationClip(
            anim.get("name") or f"animation_{index}", duration, tuple(tracks)
        )

    # -- Humanoid rig --
    def _read_rig(self, gltf: Dict[str, Any], url: str) -> Optional[RigDescriptor]:
        extensions = _object(gltf.get("extensions") or {}, "extensions", url)

        if "VRMC_vrm" in extensions:
            vrm = _object(extensions["VRMC_vrm"] or {}, "VRMC_vrm extension", url)
            humanoid = _object(vrm.get("humanoid") or {}, "VRMC_vrm humanoid", url)
            bones = _object(humanoid.get("humanBones") or {}, "humanBones", url)
            human_bones = {
                name: bone.get("node")
                for name, bone in bones.items()
                if isinstance(bone, dict)
            }
            return {
                "version": 1,
                "specVersion": vrm.get("specVersion"),
                "humanBones": human_bones,
                "meta": vrm.get("meta") or {},
            }

        if "VRM" in extensions:
            vrm = _object(extensions["VRM"] or {}, "VRM extension", url)
            humanoid = _object(vrm.get("humanoid") or {}, "VRM humanoid", url)
            bones = humanoid.get("humanBones") or []
            if not isinstance(bones, list):
                raise ParseError(url, "VRM humanBones is not a list")
            human_bones = {
                bone["bone"]: bone.get("node")
                for bone in bones
                if isinstance(bone, dict) and bone.get("bone")
            }
            return {
                "version": 0,
                "specVersion": vrm.get("specVersion", "0.0"),
                "humanBones": human_bones,
                "meta": vrm.get("meta") or {},
            }

        return None


async def decode_glb(
    decoder: GlbDecoder,
    data: bytes,
    url: str,
    executor: Optional[Executor] = None,
) -> Document:
    """
    Adapts the decoder's callback shape into an awaitable.
    The decode itself runs on `executor` (default loop executor if None).
    """
    loop = asyncio.get_running_loop()
    future: "asyncio.Future[Document]" = loop.create_future()

    def settle(document: Optional[Document], error: Optional[ParseError]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(document)

    def on_load(document: Document) -> None:
        loop.call_soon_threadsafe(settle, document, None)

    def on_error(error: ParseError) -> None:
        loop.call_soon_threadsafe(settle, None, error)

    await loop.run_in_executor(executor, decoder.parse, data, url, on_load, on_error)

    # Callbacks were queued before the executor future completed
    if not future.done():
        raise ParseError(url, "decoder finished without a result")
    return await future
