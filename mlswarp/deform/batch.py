from __future__ import annotations
import numpy as np
from .mls import TransformKind, check_controls

# Vectorised twin of mls.deform: same weights, same short-circuit, same
# finishers, evaluated for M query points at once.
# Shapes: v (M,2), w (M,N), p_hat/q_hat (M,N,2), per-point matrices (M,2,2).
# Nothing larger than (M,N,2) is allocated.

def _inv(m: np.ndarray) -> np.ndarray:
    det = m[:, 0, 0] * m[:, 1, 1] - m[:, 1, 0] * m[:, 0, 1]
    adj = np.stack([np.stack([m[:, 1, 1], -m[:, 0, 1]], -1),
                    np.stack([-m[:, 1, 0], m[:, 0, 0]], -1)], -2)
    return (np.float32(1.0) / det)[:, None, None] * adj

def _affine(w, p_hat, q_hat):
    wp = w[..., None] * p_hat
    mp = np.einsum("mni,mnj->mij", wp, p_hat)
    mq = np.einsum("mni,mnj->mij", wp, q_hat)
    return _inv(mp) @ mq

def _dot_cross(w, p_hat, q_hat):
    """
    Weighted sums of p.q and p x q. Summing [[x, y], [y, -x]] block products
    gives [[a, b], [-b, a]] with exactly these two terms.
    """
    px, py = p_hat[..., 0], p_hat[..., 1]
    qx, qy = q_hat[..., 0], q_hat[..., 1]
    a = (w * (px * qx + py * qy)).sum(-1)
    b = (w * (px * qy - py * qx)).sum(-1)
    return a, b

def _conformal(a, b, scale):
    a = a / scale; b = b / scale
    return np.stack([np.stack([a, b], -1), np.stack([-b, a], -1)], -2)

def _similarity(w, p_hat, q_hat):
    mu_s = (w * (p_hat[..., 0] ** 2 + p_hat[..., 1] ** 2)).sum(-1)
    return _conformal(*_dot_cross(w, p_hat, q_hat), mu_s)

def _rigid(w, p_hat, q_hat):
    a, b = _dot_cross(w, p_hat, q_hat)
    return _conformal(a, b, np.sqrt(a * a + b * b))

FINISHERS = {
    TransformKind.AFFINE: _affine,
    TransformKind.SIMILARITY: _similarity,
    TransformKind.RIGID: _rigid,
}


def deform_points(kind, controls_p, controls_q, points) -> np.ndarray:
    """
    Deform many points at once.
    points: (M,2) array-like of (x,y); returns a float32 (M,2) array.
    """
    finish = FINISHERS[TransformKind.parse(kind)]
    p, q = check_controls(controls_p, controls_q)
    v = np.asarray(points, dtype=np.float32).reshape(-1, 2)
    if len(v) == 0:
        return np.zeros((0, 2), np.float32)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        d = p[None, :, :] - v[:, None, :]
        w = np.float32(1.0) / (d[..., 0] * d[..., 0] + d[..., 1] * d[..., 1])
        del d
        w_sum = w.sum(-1)
        hit = np.isinf(w_sum)

        inv_sum = (np.float32(1.0) / w_sum)[:, None]
        p_star = inv_sum * (w @ p)
        q_star = inv_sum * (w @ q)
        p_hat = p[None, :, :] - p_star[:, None, :]
        q_hat = q[None, :, :] - q_star[:, None, :]

        m = finish(w, p_hat, q_hat)
        out = np.einsum("mi,mij->mj", v - p_star, m) + q_star

    if hit.any():
        # argmax keeps the first of equal maxima, i.e. the first infinite weight
        out[hit] = q[np.argmax(w[hit], axis=1)]
    return out.astype(np.float32, copy=False)
