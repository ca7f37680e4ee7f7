from __future__ import annotations
import math
from typing import Optional, Tuple
import numpy as np
from .raster import Raster, to_continuous, from_continuous


def inside(width: int, height: int, u, v):
    """Conservative bounds test on floored coordinates: the 2x2 block never touches the last row/column."""
    return (u >= 0) & (u < width - 2) & (v >= 0) & (v < height - 2)


def bilinear(img: Raster, x: float, y: float, dtype=None) -> Optional[np.ndarray]:
    """
    Bilinear interpolation of a pixel at floating point coordinates.
    Returns None outside the sampling region (see `inside`), including NaN coordinates.
    """
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    u, v = math.floor(x), math.floor(y)
    if not inside(img.width, img.height, u, v):
        return None
    a = np.float32(x - u); b = np.float32(y - v)
    uv_00 = to_continuous(img.get_pixel(u, v))
    uv_10 = to_continuous(img.get_pixel(u + 1, v))
    uv_01 = to_continuous(img.get_pixel(u, v + 1))
    uv_11 = to_continuous(img.get_pixel(u + 1, v + 1))
    interp = ((1 - b) * (1 - a) * uv_00 + b * (1 - a) * uv_01
              + (1 - b) * a * uv_10 + b * a * uv_11)
    return from_continuous(interp, dtype or img.dtype, img.dtype)


def bilinear_array(data: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised `bilinear` over an (H,W[,C]) array.
    Returns (values, mask): float32 channel values shaped xs.shape + (C,)
    and the boolean inside mask. Values outside the mask are zero.
    """
    h, w = data.shape[:2]
    img = to_continuous(data).reshape(h, w, -1)
    xs = np.asarray(xs, dtype=np.float32); ys = np.asarray(ys, dtype=np.float32)
    out = np.zeros(xs.shape + (img.shape[2],), np.float32)
    with np.errstate(invalid="ignore"):
        u = np.floor(xs); v = np.floor(ys)
        mask = inside(w, h, u, v)
    if not mask.any():
        return out, mask
    u, v = u[mask], v[mask]
    a = (xs[mask] - u)[:, None]; b = (ys[mask] - v)[:, None]
    u0 = u.astype(np.intp); v0 = v.astype(np.intp)
    out[mask] = ((1 - b) * (1 - a) * img[v0, u0] + b * (1 - a) * img[v0 + 1, u0]
                 + (1 - b) * a * img[v0, u0 + 1] + b * a * img[v0 + 1, u0 + 1])
    return out, mask


def bilinear_warp(top_left, bot_right, corners_dst, pos):
    """
    Interpolate a deformation field inside one anchor block.
    top_left, bot_right: integer block corners (left, top), (right, bottom)
    corners_dst: deformed positions of the corners (tl, tr, bl, br), each (...,2)
    pos: integer pixel position (u, v) inside the block
    Works elementwise on numpy arrays as well as on scalars.
    """
    u, v = pos
    left, top = top_left
    right, bottom = bot_right
    dst_tl, dst_tr, dst_bl, dst_br = (np.asarray(c, dtype=np.float32) for c in corners_dst)

    coef_left = right - u; coef_right = u - left
    coef_top = bottom - v; coef_bot = v - top
    c_tl = np.asarray(coef_top * coef_left, dtype=np.float32)[..., None]
    c_tr = np.asarray(coef_top * coef_right, dtype=np.float32)[..., None]
    c_bl = np.asarray(coef_bot * coef_left, dtype=np.float32)[..., None]
    c_br = np.asarray(coef_bot * coef_right, dtype=np.float32)[..., None]

    area = np.asarray((right - left) * (bottom - top), dtype=np.float32)[..., None]
    return (c_tl * dst_tl + c_tr * dst_tr + c_bl * dst_bl + c_br * dst_br) / area
