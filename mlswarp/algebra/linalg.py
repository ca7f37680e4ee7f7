from __future__ import annotations
from dataclasses import dataclass
import numpy as np

F32 = np.float32

@dataclass(frozen=True)
class Vec2:
    """2x1 column vector with float32 components."""
    x: float; y: float
    __array_ufunc__ = None  # numpy scalars defer to our reflected operators

    def __post_init__(self):
        object.__setattr__(self, "x", F32(self.x))
        object.__setattr__(self, "y", F32(self.y))

    @staticmethod
    def zero() -> "Vec2":
        return Vec2(0.0, 0.0)

    def __add__(self, rhs: "Vec2") -> "Vec2":
        return Vec2(self.x + rhs.x, self.y + rhs.y)

    def __sub__(self, rhs: "Vec2") -> "Vec2":
        return Vec2(self.x - rhs.x, self.y - rhs.y)

    def __neg__(self) -> "Vec2":
        return Vec2(-self.x, -self.y)

    def __mul__(self, k) -> "Vec2":
        return Vec2(k * self.x, k * self.y)

    __rmul__ = __mul__

    def dot(self, rhs: "Vec2"):
        return self.x * rhs.x + self.y * rhs.y

    def sqr_norm(self):
        return self.x * self.x + self.y * self.y

    def perp(self) -> "Vec2":
        """Counter-clockwise quarter turn (-y, x)."""
        return Vec2(-self.y, self.x)

    def times_transpose(self, rhs: "Vec2") -> "Mat2":
        """Outer product self * rhs^T."""
        return Mat2(self.x * rhs.x, self.x * rhs.y,
                    self.y * rhs.x, self.y * rhs.y)

    def transpose_mul(self, m: "Mat2") -> "Vec2":
        """self^T * m, returned as a column vector."""
        return Vec2(m.m11 * self.x + m.m21 * self.y,
                    m.m12 * self.x + m.m22 * self.y)

    def astuple(self) -> tuple[float, float]:
        return float(self.x), float(self.y)


@dataclass(frozen=True)
class Mat2:
    """
    2x2 matrix
        | m11  m12 |
        | m21  m22 |
    """
    m11: float; m12: float; m21: float; m22: float
    __array_ufunc__ = None

    def __post_init__(self):
        for k in ("m11", "m12", "m21", "m22"):
            object.__setattr__(self, k, F32(getattr(self, k)))

    @staticmethod
    def zero() -> "Mat2":
        return Mat2(0.0, 0.0, 0.0, 0.0)

    def __add__(self, rhs: "Mat2") -> "Mat2":
        return Mat2(self.m11 + rhs.m11, self.m12 + rhs.m12,
                    self.m21 + rhs.m21, self.m22 + rhs.m22)

    def __mul__(self, rhs):
        if isinstance(rhs, Mat2):
            return Mat2(self.m11 * rhs.m11 + self.m12 * rhs.m21,
                        self.m11 * rhs.m12 + self.m12 * rhs.m22,
                        self.m21 * rhs.m11 + self.m22 * rhs.m21,
                        self.m21 * rhs.m12 + self.m22 * rhs.m22)
        return Mat2(rhs * self.m11, rhs * self.m12, rhs * self.m21, rhs * self.m22)

    def __rmul__(self, k) -> "Mat2":
        return self * k

    def det(self):
        return self.m11 * self.m22 - self.m21 * self.m12

    def inv(self) -> "Mat2":
        # no singularity check: a zero det gives inf/nan coefficients
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return (F32(1.0) / self.det()) * Mat2(self.m22, -self.m12, -self.m21, self.m11)

    def as_array(self) -> np.ndarray:
        return np.array([[self.m11, self.m12], [self.m21, self.m22]], dtype=F32)


def rotation_scale(v: Vec2) -> Mat2:
    """The [[x, y], [y, -x]] block of v used by the similarity and rigid solves."""
    return Mat2(v.x, v.y, v.y, -v.x)
