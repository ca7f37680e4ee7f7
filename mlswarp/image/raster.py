from __future__ import annotations
from typing import Protocol, Callable, Optional, runtime_checkable
import numpy as np

SUPPORTED_DTYPES = (np.uint8, np.uint16, np.float32, np.float64)


@runtime_checkable
class Raster(Protocol):
    """
    What the warpers need from an image: dimensions, channel layout,
    random pixel reads, and construction from a per-pixel generator.
    Pixels are 1-D arrays of `channels` values of type `dtype`.
    """
    @property
    def width(self) -> int: ...
    @property
    def height(self) -> int: ...
    @property
    def channels(self) -> int: ...
    @property
    def dtype(self) -> np.dtype: ...
    def get_pixel(self, x: int, y: int) -> np.ndarray: ...
    @classmethod
    def from_fn(cls, width: int, height: int, fn: Callable[[int, int], np.ndarray]) -> "Raster": ...


def check_dtype(dtype) -> np.dtype:
    dtype = np.dtype(dtype)
    if dtype.type not in SUPPORTED_DTYPES:
        raise ValueError(f"unsupported channel type {dtype}, expected one of {[np.dtype(t).name for t in SUPPORTED_DTYPES]}")
    return dtype


class ArrayRaster:
    """Raster backed by a numpy (H,W) or (H,W,C) array, e.g. an OpenCV image."""

    def __init__(self, data: np.ndarray):
        data = np.asarray(data)
        if data.ndim not in (2, 3):
            raise ValueError(f"raster must be a (H,W) or (H,W,C) array, got shape {data.shape}")
        check_dtype(data.dtype)
        self.data = data

    @property
    def width(self) -> int: return self.data.shape[1]
    @property
    def height(self) -> int: return self.data.shape[0]
    @property
    def channels(self) -> int: return 1 if self.data.ndim == 2 else self.data.shape[2]
    @property
    def dtype(self) -> np.dtype: return self.data.dtype

    def get_pixel(self, x: int, y: int) -> np.ndarray:
        return np.atleast_1d(self.data[y, x])

    @classmethod
    def from_fn(cls, width: int, height: int, fn, dtype=None, channels: Optional[int]=None) -> "ArrayRaster":
        if width and height:
            data = np.array([[fn(x, y) for x in range(width)] for y in range(height)], dtype=dtype)
        else:
            data = np.zeros((height, width) + ((channels,) if channels else ()), dtype=dtype or np.uint8)
        return cls(data)

    def __eq__(self, other):
        return isinstance(other, ArrayRaster) and np.array_equal(self.data, other.data)

    def __repr__(self):
        return f"ArrayRaster({self.width}x{self.height}x{self.channels}, {self.dtype})"


def as_raster(img) -> Raster:
    if isinstance(img, np.ndarray):
        return ArrayRaster(img)
    if not isinstance(img, Raster):
        raise ValueError(f"expected a numpy array or a Raster, got {type(img).__name__}")
    check_dtype(img.dtype)
    return img


# Channel conversion: channels are averaged as float32 and converted back
# with clamping (and rounding for integer types).

def to_continuous(values) -> np.ndarray:
    return np.asarray(values, dtype=np.float32)

def from_continuous(v, dtype, src_dtype=None) -> np.ndarray:
    """
    Convert interpolated float32 channels back to `dtype`.
    Integer sources read into a float dtype are normalised to [0, 1].
    """
    dtype = check_dtype(dtype)
    src = check_dtype(src_dtype) if src_dtype is not None else dtype
    v = np.asarray(v, dtype=np.float32)
    if np.issubdtype(dtype, np.integer):
        hi = np.iinfo(dtype).max
        return np.round(np.clip(v, 0.0, hi)).astype(dtype)
    if np.issubdtype(src, np.integer):
        v = v / np.float32(np.iinfo(src).max)
    return np.clip(v, 0.0, 1.0).astype(dtype)

def background(raster: Raster, dtype=None) -> np.ndarray:
    """Fill value for samples falling outside the source: black."""
    return np.zeros(raster.channels, dtype=dtype or raster.dtype)
