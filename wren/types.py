# wren/types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, TypeAlias

import numpy as np

Scalar: TypeAlias = float
Matrix4: TypeAlias = np.ndarray  # (4, 4) float64, column vectors


@dataclass(frozen=True, slots=True)
class Vector3:
    x: Scalar
    y: Scalar
    z: Scalar

    @staticmethod
    def zero() -> Vector3:
        return Vector3(0.0, 0.0, 0.0)

    @staticmethod
    def one() -> Vector3:
        return Vector3(1.0, 1.0, 1.0)

    @staticmethod
    def from_seq(values: Sequence[float]) -> Vector3:
        return Vector3(float(values[0]), float(values[1]), float(values[2]))

    def __iter__(self) -> Iterator[Scalar]:
        yield self.x
        yield self.y
        yield self.z

    def __mul__(self, scalar: float) -> Vector3:
        return Vector3(
            self.x * scalar,
            self.y * scalar,
            self.z * scalar,
        )


@dataclass(frozen=True, slots=True)
class Quaternion:
    x: Scalar
    y: Scalar
    z: Scalar
    w: Scalar

    def __iter__(self) -> Iterator[Scalar]:
        yield self.x
        yield self.y
        yield self.z
        yield self.w

    @staticmethod
    def identity() -> Quaternion:
        return Quaternion(0.0, 0.0, 0.0, 1.0)

    @staticmethod
    def from_seq(values: Sequence[float]) -> Quaternion:
        """glTF order: (x, y, z, w)."""
        return Quaternion(
            float(values[0]), float(values[1]), float(values[2]), float(values[3])
        )

    def normalized(self) -> Quaternion:
        n = (
            self.x * self.x
            + self.y * self.y
            + self.z * self.z
            + self.w * self.w
        ) ** 0.5
        if n == 0.0:
            return Quaternion(0.0, 0.0, 0.0, 1.0)
        inv = 1.0 / n
        return Quaternion(
            self.x * inv,
            self.y * inv,
            self.z * inv,
            self.w * inv,
        )


@dataclass(frozen=True, slots=True)
class BoundingBox3D:
    min: Vector3
    max: Vector3

    @staticmethod
    def from_points(points: np.ndarray) -> BoundingBox3D:
        """points: (N, 3)"""
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return BoundingBox3D(Vector3.from_seq(lo), Vector3.from_seq(hi))

    def union(self, other: BoundingBox3D) -> BoundingBox3D:
        return BoundingBox3D(
            Vector3(
                min(self.min.x, other.min.x),
                min(self.min.y, other.min.y),
                min(self.min.z, other.min.z),
            ),
            Vector3(
                max(self.max.x, other.max.x),
                max(self.max.y, other.max.y),
                max(self.max.z, other.max.z),
            ),
        )
