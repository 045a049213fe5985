# wren/math.py
from typing import Sequence, Union

import numpy as np

from wren.types import Matrix4, Quaternion, Vector3


def quaternion_to_matrix(q: Union[Quaternion, np.ndarray, Sequence[float]]) -> np.ndarray:
    """
    Converts a single quaternion into a 4x4 Rotation Matrix.
    q: Quaternion object (x,y,z,w) or array-like [x,y,z,w].
    """
    if isinstance(q, Quaternion):
        q = q.normalized()
        x, y, z, w = q.x, q.y, q.z, q.w
    else:
        x, y, z, w = q[0], q[1], q[2], q[3]

    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z

    mat = np.eye(4, dtype=np.float64)

    mat[0, 0] = 1.0 - 2.0 * (yy + zz)
    mat[0, 1] = 2.0 * (xy - wz)
    mat[0, 2] = 2.0 * (xz + wy)

    mat[1, 0] = 2.0 * (xy + wz)
    mat[1, 1] = 1.0 - 2.0 * (xx + zz)
    mat[1, 2] = 2.0 * (yz - wx)

    mat[2, 0] = 2.0 * (xz - wy)
    mat[2, 1] = 2.0 * (yz + wx)
    mat[2, 2] = 1.0 - 2.0 * (xx + yy)

    return mat


def compose_matrix(
    translation: Vector3, rotation: Quaternion, scale: Vector3
) -> Matrix4:
    """
    Builds a local TRS matrix (T * R * S), the order glTF nodes use.
    """
    m = quaternion_to_matrix(rotation)

    # Scale is diagonal, so scale the columns of R
    m[:3, 0] *= scale.x
    m[:3, 1] *= scale.y
    m[:3, 2] *= scale.z

    m[:3, 3] = (translation.x, translation.y, translation.z)
    return m


def matrix_from_gltf(values: Sequence[float]) -> Matrix4:
    """glTF stores 4x4 matrices column-major."""
    if len(values) != 16:
        raise ValueError(f"Expected 16 matrix values, got {len(values)}")
    return np.asarray(values, dtype=np.float64).reshape(4, 4).T.copy()


def matrix_translation(m: Matrix4) -> Vector3:
    return Vector3(float(m[0, 3]), float(m[1, 3]), float(m[2, 3]))


def transform_points(m: Matrix4, points: np.ndarray) -> np.ndarray:
    """
    Applies an affine matrix to (N, 3) points.
    """
    homo = np.ones((len(points), 4), dtype=np.float64)
    homo[:, :3] = points
    return (homo @ m.T)[:, :3]


def box_corners(lo: Sequence[float], hi: Sequence[float]) -> np.ndarray:
    """Eight corners of an axis-aligned box, (8, 3)."""
    return np.array(
        [
            [x, y, z]
            for x in (lo[0], hi[0])
            for y in (lo[1], hi[1])
            for z in (lo[2], hi[2])
        ],
        dtype=np.float64,
    )
