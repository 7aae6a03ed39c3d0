"""
2D vector value type used by the table simulation.

Arithmetic returns new vectors; ``add_to`` / ``mult_by`` mutate in place and
are reserved for the per-tick integration loop in ``Ball.update``.
"""

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class Vector2:
    x: float = 0.0
    y: float = 0.0

    # ── Constructors ──────────────────────────────────────────────────────────

    @classmethod
    def zero(cls) -> "Vector2":
        return cls(0.0, 0.0)

    @classmethod
    def copy(cls, vector) -> "Vector2":
        """Copy a Vector2 or any ``(x, y)`` sequence."""
        if isinstance(vector, Vector2):
            return cls(vector.x, vector.y)
        x, y = vector
        return cls(float(x), float(y))

    @classmethod
    def from_angle(cls, length: float, angle: float) -> "Vector2":
        return cls(length * math.cos(angle), length * math.sin(angle))

    # ── Value arithmetic ──────────────────────────────────────────────────────

    @property
    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y)

    def add(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x + other.x, self.y + other.y)

    def subtract(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.y - other.y)

    def mult(self, v: float) -> "Vector2":
        return Vector2(self.x * v, self.y * v)

    def dot(self, other: "Vector2") -> float:
        return self.x * other.x + self.y * other.y

    def dist_from(self, other: "Vector2") -> float:
        return self.subtract(other).length

    def add_x(self, dx: float) -> "Vector2":
        return Vector2(self.x + dx, self.y)

    def add_y(self, dy: float) -> "Vector2":
        return Vector2(self.x, self.y + dy)

    # ── In-place (hot loop only) ──────────────────────────────────────────────

    def add_to(self, other: "Vector2") -> "Vector2":
        self.x += other.x
        self.y += other.y
        return self

    def mult_by(self, v: float) -> "Vector2":
        self.x *= v
        self.y *= v
        return self

    # ── Interop ───────────────────────────────────────────────────────────────

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)

    def as_tuple(self) -> tuple:
        return (self.x, self.y)
