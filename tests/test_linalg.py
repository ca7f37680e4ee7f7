import numpy as np
from mlswarp.algebra.linalg import Vec2, Mat2, rotation_scale

def test_vec2_is_float32_value():
    v = Vec2(1, 2)
    assert isinstance(v.x, np.float32) and isinstance(v.y, np.float32)
    assert v + Vec2(3, 4) == Vec2(4, 6)
    assert Vec2(3, 4) - v == Vec2(2, 2)
    assert np.float32(2.0) * v == Vec2(2, 4) and v * 2 == Vec2(2, 4)
    assert v.dot(Vec2(3, 4)) == 11 and Vec2(3, 4).sqr_norm() == 25
    assert v.perp() == Vec2(-2, 1)

def test_outer_and_transpose_mul_match_numpy():
    a, b = Vec2(1.5, -2), Vec2(3, 0.25)
    m = a.times_transpose(b)
    assert np.allclose(m.as_array(), np.outer([1.5, -2], [3, 0.25]))
    r = a.transpose_mul(m)
    assert np.allclose([r.x, r.y], np.array([1.5, -2]) @ m.as_array())

def test_mat2_algebra():
    A = Mat2(1, 2, 3, 4); B = Mat2(0, 1, -1, 2)
    assert np.allclose((A * B).as_array(), A.as_array() @ B.as_array())
    assert np.allclose((A + B).as_array(), A.as_array() + B.as_array())
    assert np.allclose((np.float32(0.5) * A).as_array(), 0.5 * A.as_array())
    assert A.det() == -2
    assert np.allclose((A.inv() * A).as_array(), np.eye(2), atol=1e-6)
    assert sum([A, B], Mat2.zero()) == A + B

def test_singular_inverse_is_not_finite():
    inv = Mat2(1, 1, 1, 1).inv()
    assert not np.all(np.isfinite(inv.as_array()))

def test_rotation_scale_products_are_conformal():
    m = rotation_scale(Vec2(1, 2)) * rotation_scale(Vec2(-3, 0.5))
    assert m.m11 == m.m22 and m.m12 == -m.m21
