from __future__ import annotations
from enum import Enum
from typing import Callable, Sequence, Tuple, List
import numpy as np
from ..algebra.linalg import Vec2, Mat2, rotation_scale

# Moving least squares deformations, after Schaefer et al. 2006,
# "Image Deformation Using Moving Least Squares".
#   p: control points before deformation
#   q: their displaced positions
#   v: the point to move

Point = Tuple[float, float]


class TransformKind(str, Enum):
    AFFINE = "affine"
    SIMILARITY = "similarity"
    RIGID = "rigid"

    @classmethod
    def parse(cls, kind: "TransformKind|str") -> "TransformKind":
        try:
            return cls(kind)
        except ValueError:
            raise ValueError(f"unknown transform kind {kind!r}, expected one of {[k.value for k in cls]}") from None


class ControlPointError(ValueError):
    """Control point arrays that break the p[i] <-> q[i] contract."""


def check_controls(controls_p, controls_q) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate a correspondence set and return it as two float32 (N,2) arrays.
    Raises ControlPointError for empty, mismatched or badly shaped inputs.
    """
    p = np.asarray(controls_p, dtype=np.float32)
    q = np.asarray(controls_q, dtype=np.float32)
    for name, a in (("source", p), ("destination", q)):
        if a.size and (a.ndim != 2 or a.shape[1] != 2):
            raise ControlPointError(f"{name} control points must be (x, y) pairs, got shape {a.shape}")
    n_p, n_q = len(p), len(q)
    if n_p != n_q:
        raise ControlPointError(f"got {n_p} source control points but {n_q} destination ones")
    if n_p == 0:
        raise ControlPointError("at least one control point is required")
    return p.reshape(-1, 2), q.reshape(-1, 2)


# Finishers: given the weights and the centered control points, build the
# 2x2 matrix M such that the deformed point is (v - p*)^T M + q*.
Finisher = Callable[[List, List[Vec2], List[Vec2]], Mat2]

def _affine(w_all, p_hat, q_hat) -> Mat2:
    mp = sum((w * p.times_transpose(p) for w, p in zip(w_all, p_hat)), Mat2.zero())
    mq = sum(((w * p).times_transpose(q) for w, p, q in zip(w_all, p_hat, q_hat)), Mat2.zero())
    return mp.inv() * mq

def _similarity_m(w_all, p_hat, q_hat) -> Mat2:
    return sum((w * rotation_scale(p) * rotation_scale(q) for w, p, q in zip(w_all, p_hat, q_hat)), Mat2.zero())

def _similarity(w_all, p_hat, q_hat) -> Mat2:
    mu_s = sum((w * p.sqr_norm() for w, p in zip(w_all, p_hat)), np.float32(0.0))
    return (np.float32(1.0) / mu_s) * _similarity_m(w_all, p_hat, q_hat)

def _rigid(w_all, p_hat, q_hat) -> Mat2:
    mu_r_vec = sum((Vec2(w * q.dot(p), w * q.dot(p.perp())) for w, p, q in zip(w_all, p_hat, q_hat)), Vec2.zero())
    mu_r = np.sqrt(mu_r_vec.sqr_norm())
    return (np.float32(1.0) / mu_r) * _similarity_m(w_all, p_hat, q_hat)

FINISHERS = {
    TransformKind.AFFINE: _affine,
    TransformKind.SIMILARITY: _similarity,
    TransformKind.RIGID: _rigid,
}


def _deform(finish: Finisher, controls_p: Sequence[Point], controls_q: Sequence[Point], point: Point) -> Point:
    v = Vec2(*point)
    ps = [Vec2(*p) for p in controls_p]
    qs = [Vec2(*q) for q in controls_q]

    # inverse squared distance, infinite when v sits on a control point
    w_all = [np.float32(1.0) / (p - v).sqr_norm() for p in ps]
    w_sum = sum(w_all, np.float32(0.0))
    if np.isinf(w_sum):
        # first control point with the largest (normally infinite) weight
        index = max(range(len(w_all)), key=w_all.__getitem__)
        return qs[index].astuple()

    p_star = (np.float32(1.0) / w_sum) * sum((w * p for w, p in zip(w_all, ps)), Vec2.zero())
    q_star = (np.float32(1.0) / w_sum) * sum((w * q for w, q in zip(w_all, qs)), Vec2.zero())
    p_hat = [p - p_star for p in ps]
    q_hat = [q - q_star for q in qs]

    m = finish(w_all, p_hat, q_hat)
    return ((v - p_star).transpose_mul(m) + q_star).astuple()


def deform(kind: TransformKind|str, controls_p: Sequence[Point], controls_q: Sequence[Point], point: Point) -> Point:
    """
    Move `point` according to the MLS deformation taking controls_p onto controls_q.
    Non-finite results are returned as is for degenerate control layouts
    (e.g. fewer than two distinct points for the affine solve).
    """
    finish = FINISHERS[TransformKind.parse(kind)]
    p, q = check_controls(controls_p, controls_q)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        return _deform(finish, p.tolist(), q.tolist(), point)

def deform_affine(controls_p, controls_q, point) -> Point:
    return deform(TransformKind.AFFINE, controls_p, controls_q, point)

def deform_similarity(controls_p, controls_q, point) -> Point:
    return deform(TransformKind.SIMILARITY, controls_p, controls_q, point)

def deform_rigid(controls_p, controls_q, point) -> Point:
    return deform(TransformKind.RIGID, controls_p, controls_q, point)
