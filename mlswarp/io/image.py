from __future__ import annotations
import cv2
import numpy as np
from pathlib import Path

def read_image(path: str|Path) -> np.ndarray:
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Cannot read image {path}")
    return img

def write_image(path: str|Path, img: np.ndarray):
    if not cv2.imwrite(str(path), img):
        raise RuntimeError(f"Cannot write image {path}")
