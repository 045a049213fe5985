import math

import numpy as np
import pytest

from wren.math import compose_matrix, quaternion_to_matrix
from wren.scene.node import SceneNode, create_group
from wren.types import Quaternion, Vector3


def _chain():
    root = create_group("$root")
    arm = root.add(SceneNode("arm", translation=Vector3(0.0, 1.0, 0.0)))
    hand = arm.add(SceneNode("hand", translation=Vector3(1.0, 0.0, 0.0)))
    return root, arm, hand


def test_add_and_remove_children():
    root, arm, hand = _chain()

    assert arm.parent is root
    assert hand.parent is arm

    root.add(hand)  # reparent
    assert hand.parent is root
    assert hand not in arm.children

    root.remove(hand)
    assert hand.parent is None


def test_traverse_is_depth_first():
    root, arm, hand = _chain()
    root.add(SceneNode("leg"))

    assert [n.name for n in root.traverse()] == ["$root", "arm", "hand", "leg"]


def test_world_matrix_propagates_rotation():
    root, arm, hand = _chain()
    half = math.sqrt(0.5)
    # 90 degrees about Z
    arm.rotation = Quaternion(0.0, 0.0, half, half)

    root.update_world_matrix()

    pos = hand.world_position()
    assert (pos.x, pos.y, pos.z) == pytest.approx((0.0, 2.0, 0.0), abs=1e-9)


def test_explicit_matrix_overrides_trs():
    node = SceneNode("n", translation=Vector3(5.0, 5.0, 5.0))
    node.matrix = compose_matrix(Vector3(1.0, 2.0, 3.0), Quaternion.identity(), Vector3.one())

    node.update_world_matrix()

    assert node.world_position() == Vector3(1.0, 2.0, 3.0)


def test_compose_matrix_applies_scale_before_translation():
    m = compose_matrix(Vector3(1.0, 0.0, 0.0), Quaternion.identity(), Vector3(2.0, 3.0, 4.0))

    assert np.allclose(np.diag(m), [2.0, 3.0, 4.0, 1.0])
    assert m[0, 3] == 1.0


def test_quaternion_to_matrix_identity():
    assert np.allclose(quaternion_to_matrix([0.0, 0.0, 0.0, 1.0]), np.eye(4))


def test_clone_is_deep_and_detached():
    root, arm, hand = _chain()
    root.update_world_matrix()

    copy = root.clone()

    copied_hand = copy.find("hand")
    assert copied_hand is not hand
    assert copied_hand.parent is copy.find("arm")
    assert np.allclose(copied_hand.world_matrix, hand.world_matrix)

    copied_hand.translation = Vector3(9.0, 9.0, 9.0)
    assert hand.translation == Vector3(1.0, 0.0, 0.0)


def test_shallow_clone_drops_children():
    root, _, _ = _chain()
    assert root.clone(recursive=False).children == []


def test_find_by_index():
    node = SceneNode("n", index=3)
    root = create_group("$root")
    root.add(node)

    assert root.find_by_index(3) is node
    assert root.find_by_index(4) is None
