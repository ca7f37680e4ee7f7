import math
import numpy as np
import pytest
from mlswarp.algebra.linalg import Vec2
from mlswarp.deform.mls import (deform, deform_affine, deform_similarity, deform_rigid,
                                TransformKind, ControlPointError, FINISHERS)

KINDS = list(TransformKind)
P = [(0,0),(10,0),(0,10),(10,10),(3,7)]
Q = [(1,2),(12,-1),(-2,11),(9,13),(5,6)]

def test_control_points_map_exactly():
    for kind in KINDS:
        for p, q in zip(P, Q):
            assert deform(kind, P, Q, p) == q

def test_identity_when_controls_do_not_move():
    rng = np.random.default_rng(0)
    for kind in KINDS:
        for v in rng.uniform(-5, 15, size=(20, 2)):
            x, y = deform(kind, P, P, tuple(v))
            assert np.allclose([x, y], v, atol=1e-3)

def test_unit_square_scaling():
    src = [(0,0),(1,0),(0,1),(1,1)]
    dst = [(0,0),(2,0),(0,2),(2,2)]
    assert np.allclose(deform_affine(src, dst, (0.5, 0.5)), (1.0, 1.0), atol=1e-5)
    assert np.allclose(deform_similarity(src, dst, (0.5, 0.5)), (1.0, 1.0), atol=1e-5)

def test_global_transforms_are_reproduced():
    theta = 0.3
    R = np.array([[math.cos(theta), -math.sin(theta)], [math.sin(theta), math.cos(theta)]])
    src = np.array([(0,0),(10,0),(0,10),(7,3)], dtype=float)
    rot = src @ R.T + [4, -2]
    shear = src @ np.array([[1, 0.5], [0, 1]]).T
    v = np.array([2.5, 6.0])
    assert np.allclose(deform_rigid(src, rot, v), R @ v + [4, -2], atol=1e-3)
    assert np.allclose(deform_similarity(src, 2 * rot, v), 2 * (R @ v + [4, -2]), atol=1e-3)
    assert np.allclose(deform_affine(src, shear, v), [v[0] + 0.5 * v[1], v[1]], atol=1e-3)

def test_similarity_and_rigid_do_not_shear():
    # centered controls around a right angle, destination sheared by q = (x + 0.8y, y)
    w = [np.float32(1.0), np.float32(0.5), np.float32(0.25)]
    p_hat = [Vec2(-1, -1), Vec2(1, 0), Vec2(0, 1)]
    q_hat = [Vec2(p.x + 0.8 * p.y, p.y) for p in p_hat]
    for kind in (TransformKind.SIMILARITY, TransformKind.RIGID):
        m = FINISHERS[kind](w, p_hat, q_hat).as_array()
        e1, e2 = m[0], m[1]  # images of the x and y axes under v^T M
        assert abs(np.dot(e1, e2)) < 1e-5 and np.isclose(np.linalg.norm(e1), np.linalg.norm(e2))
    rigid = FINISHERS[TransformKind.RIGID](w, p_hat, q_hat).as_array()
    assert np.isclose(np.linalg.det(rigid), 1.0, atol=1e-5)
    affine = FINISHERS[TransformKind.AFFINE](w, p_hat, q_hat).as_array()
    assert np.allclose(affine, [[1, 0], [0.8, 1]], atol=1e-5)

def test_first_matching_control_wins():
    assert deform("rigid", [(1,1),(1,1),(5,5)], [(5,5),(7,7),(0,0)], (1,1)) == (5.0, 5.0)

def test_degenerate_layouts_are_not_finite():
    x, y = deform("affine", [(0,0),(1,1),(2,2)], [(0,0),(1,2),(2,4)], (5,0))
    assert not (math.isfinite(x) and math.isfinite(y))
    for kind in KINDS:
        x, y = deform(kind, [(4,0)], [(5,1)], (0,0))
        assert not (math.isfinite(x) and math.isfinite(y))
        assert deform(kind, [(4,0)], [(5,1)], (4,0)) == (5.0, 1.0)

def test_contract_violations_are_rejected():
    with pytest.raises(ControlPointError):
        deform("affine", [(0,0),(1,0)], [(0,0)], (0.5,0.5))
    with pytest.raises(ControlPointError):
        deform("affine", [], [], (0.5,0.5))
    with pytest.raises(ControlPointError):
        deform("affine", [(0,0,0)], [(0,0,0)], (0.5,0.5))
    with pytest.raises(ValueError):
        deform("projective", P, Q, (0.5,0.5))
