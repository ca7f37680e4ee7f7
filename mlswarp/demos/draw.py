from __future__ import annotations
import math
import numpy as np

def draw_point(img: np.ndarray, center, radius: float, color) -> np.ndarray:
    """
    Blend a filled disc into img (in place): fully colored inside radius,
    fading out over one pixel past it. Clipped to the image.
    """
    px, py = center
    h, w = img.shape[:2]
    x0, x1 = max(0, math.floor(px - radius)), min(w, math.ceil(px + radius) + 1)
    y0, y1 = max(0, math.floor(py - radius)), min(h, math.ceil(py + radius) + 1)
    if x0 >= x1 or y0 >= y1:
        return img
    yy, xx = np.mgrid[y0:y1, x0:x1]
    d = np.hypot(xx - px, yy - py)
    blend = np.where(d < radius, 1.0, np.maximum(0.0, 1.0 - d + radius))
    if img.ndim == 3: blend = blend[..., None]
    win = img[y0:y1, x0:x1].astype(np.float32)
    c = np.asarray(color, dtype=np.float32)
    img[y0:y1, x0:x1] = (blend * c + (1.0 - blend) * win).astype(img.dtype)
    return img

def draw_controls(img: np.ndarray, points, radius: float=4.0, color=(0,0,255)) -> np.ndarray:
    for p in points:
        draw_point(img, p, radius, color)
    return img
