# wren/assets/importers/emote.py
from typing import Dict, List, Optional

import numpy as np

from wren.assets.errors import ParseError
from wren.assets.handle import AssetKind
from wren.assets.importers.base import GlbImporter
from wren.assets.types import (
    AnimationClip,
    Document,
    EmoteClipOptions,
    EmoteView,
    KeyframeTrack,
)

MIXAMO_PREFIX = "mixamorig"

HUMAN_BONES = (
    "hips", "spine", "chest", "upperChest", "neck", "head",
    "leftEye", "rightEye", "jaw",
    "leftShoulder", "leftUpperArm", "leftLowerArm", "leftHand",
    "rightShoulder", "rightUpperArm", "rightLowerArm", "rightHand",
    "leftUpperLeg", "leftLowerLeg", "leftFoot", "leftToes",
    "rightUpperLeg", "rightLowerLeg", "rightFoot", "rightToes",
)  # fmt: skip

_MIXAMO_BODY = {
    "Hips": "hips",
    "Spine": "spine",
    "Spine1": "chest",
    "Spine2": "upperChest",
    "Neck": "neck",
    "Head": "head",
    "LeftShoulder": "leftShoulder",
    "LeftArm": "leftUpperArm",
    "LeftForeArm": "leftLowerArm",
    "LeftHand": "leftHand",
    "RightShoulder": "rightShoulder",
    "RightArm": "rightUpperArm",
    "RightForeArm": "rightLowerArm",
    "RightHand": "rightHand",
    "LeftUpLeg": "leftUpperLeg",
    "LeftLeg": "leftLowerLeg",
    "LeftFoot": "leftFoot",
    "LeftToeBase": "leftToes",
    "RightUpLeg": "rightUpperLeg",
    "RightLeg": "rightLowerLeg",
    "RightFoot": "rightFoot",
    "RightToeBase": "rightToes",
}

_FINGER_SEGMENTS = {
    "Thumb": ("ThumbMetacarpal", "ThumbProximal", "ThumbDistal"),
    "Index": ("IndexProximal", "IndexIntermediate", "IndexDistal"),
    "Middle": ("MiddleProximal", "MiddleIntermediate", "MiddleDistal"),
    "Ring": ("RingProximal", "RingIntermediate", "RingDistal"),
    "Pinky": ("LittleProximal", "LittleIntermediate", "LittleDistal"),
}


def _build_bone_table() -> Dict[str, str]:
    table = {name: name for name in HUMAN_BONES}
    table.update(_MIXAMO_BODY)
    for side, prefix in (("Left", "left"), ("Right", "right")):
        for finger, segments in _FINGER_SEGMENTS.items():
            for i, segment in enumerate(segments, start=1):
                canonical = f"{prefix}{segment}"
                table[f"{side}Hand{finger}{i}"] = canonical
                table[canonical] = canonical
    return table


# Source bone name (mixamo or already humanoid) -> humanoid bone name
NORMALIZED_BONE_NAMES = _build_bone_table()


def normalize_bone_name(name: str) -> Optional[str]:
    return NORMALIZED_BONE_NAMES.get(name.replace(MIXAMO_PREFIX, ""))


class EmoteFactory:
    """
    Retargets the first clip of an emote container onto other skeletons.
    The source clip is shared and never modified.
    """

    def __init__(self, document: Document, url: str) -> None:
        if not document.animations:
            raise ParseError(url, "emote container has no animations")

        self.url = url
        self.clip = document.animations[0]
        self.hips_scale = self._measure_hips(document)

    def _measure_hips(self, document: Document) -> float:
        """
        Converts hips position keys (parent-local units) into a fraction
        of the source rest hip height.
        """
        for node in document.scene.traverse():
            if normalize_bone_name(node.name) != "hips":
                continue
            height = float(node.world_matrix[1, 3])
            parent_scale = 1.0
            if node.parent is not None:
                parent_scale = float(np.linalg.norm(node.parent.world_matrix[:3, 1]))
            if height > 1e-6:
                return parent_scale / height
            break
        return 1.0

    def to_clip(self, options: EmoteClipOptions) -> AnimationClip:
        flip = options.version == "0"
        tracks: List[KeyframeTrack] = []

        for track in self.clip.tracks:
            bone = normalize_bone_name(track.node_name)
            if bone is None:
                continue

            prop = track.property_name
            if prop == "scale":
                continue
            if prop == "position" and bone != "hips":
                # root motion and bone offsets stay with the target rig
                continue

            target = options.get_bone_name(bone)
            if not target:
                continue

            values = np.array(track.values, dtype=np.float32)
            if prop == "quaternion":
                if flip:
                    values[0::4] *= -1.0
                    values[2::4] *= -1.0
            else:
                if flip:
                    values[0::3] *= -1.0
                    values[2::3] *= -1.0
                values *= options.root_to_hips * self.hips_scale
            values.flags.writeable = False

            tracks.append(
                KeyframeTrack(
                    f"{target}.{prop}",
                    track.times,
                    values,
                    track.interpolation,
                )
            )

        return AnimationClip(self.clip.name, self.clip.duration, tuple(tracks))


class EmoteImporter(GlbImporter):
    kind = AssetKind.EMOTE

    def build_view(self, document: Document, url: str) -> EmoteView:
        factory = EmoteFactory(document, url)
        return EmoteView(document=document, to_clip=factory.to_clip)
