import numpy as np
from mlswarp.image.raster import ArrayRaster
from mlswarp.image.interpolation import bilinear, bilinear_array, bilinear_warp

def ramp(w=6, h=5):
    xs, ys = np.meshgrid(np.arange(w), np.arange(h))
    return np.stack([10*xs, 10*ys, xs+ys], -1).astype(np.uint8)

def test_bilinear_at_pixels_and_between():
    img = ramp(); r = ArrayRaster(img)
    assert np.array_equal(bilinear(r, 2.0, 1.0), img[1, 2])
    assert np.array_equal(bilinear(r, 2.5, 1.5), [25, 15, 4])
    assert bilinear(r, 0.25, 0.5, dtype=np.float32).dtype == np.float32

def test_bilinear_bounds_are_conservative():
    r = ArrayRaster(ramp(6, 5))
    assert bilinear(r, 3.99, 2.99) is not None
    assert bilinear(r, 4.0, 1.0) is None    # floor(x) == width - 2
    assert bilinear(r, 1.0, 3.0) is None    # floor(y) == height - 2
    assert bilinear(r, -0.01, 1.0) is None
    assert bilinear(r, float("nan"), 1.0) is None
    assert bilinear(r, float("inf"), 1.0) is None
    assert bilinear(ArrayRaster(np.zeros((2,2), np.uint8)), 0.0, 0.0) is None

def test_vectorised_matches_scalar():
    img = ramp(); r = ArrayRaster(img)
    xs = np.array([[0.0, 2.5, 3.9], [4.0, -1.0, np.nan]], np.float32)
    ys = np.array([[0.0, 1.5, 2.2], [1.0, 1.0, 1.0]], np.float32)
    vals, mask = bilinear_array(img, xs, ys)
    assert vals.shape == (2, 3, 3)
    assert np.array_equal(mask, [[True, True, True], [False, False, False]])
    for i, j in zip(*np.nonzero(mask)):
        assert np.allclose(vals[i, j], bilinear(r, float(xs[i, j]), float(ys[i, j]), dtype=np.float32) * 255, atol=1e-3)
    assert np.all(vals[~mask] == 0)

def test_field_interpolation_inside_a_block():
    corners = [(0, 0), (4, 0), (0, 4), (4, 4)]
    assert np.allclose(bilinear_warp((0, 0), (2, 2), corners, (0, 0)), (0, 0))
    assert np.allclose(bilinear_warp((0, 0), (2, 2), corners, (1, 1)), (2, 2))
    assert np.allclose(bilinear_warp((10, 20), (12, 22), corners, (11, 20)), (2, 0))
