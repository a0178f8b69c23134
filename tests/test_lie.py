import math

import numpy as np
import pytest

from slamkit.lie import (
    SE3,
    SO3,
    angle_axis_to_matrix,
    euler_angles_zyx,
    quaternion_from_matrix,
    quaternion_to_matrix,
)


def test_so3_from_matrix_and_quaternion_agree():
    r = angle_axis_to_matrix(math.pi / 2, [0, 0, 1])
    q = quaternion_from_matrix(r)
    assert np.allclose(SO3(r).matrix, SO3.from_quaternion(q).matrix)


@pytest.mark.parametrize("omega", [[0.1, -0.2, 0.3], [0, 0, math.pi / 2], [1e-12, 0, 0], [2.0, 1.0, -0.5]])
def test_so3_exp_log_round_trip(omega):
    assert np.allclose(SO3.exp(omega).log(), omega, atol=1e-9)


def test_so3_hat_vee_round_trip():
    omega = np.array([0.3, -1.2, 2.5])
    h = SO3.hat(omega)
    assert np.allclose(h, -h.T)
    assert np.allclose(SO3.vee(h), omega)


def test_so3_hat_is_cross_product():
    a, b = np.array([1.0, 2.0, 3.0]), np.array([-0.5, 0.4, 2.0])
    assert np.allclose(SO3.hat(a) @ b, np.cross(a, b))


def test_so3_inverse_composes_to_identity():
    r = SO3.exp([0.4, 0.2, -0.7])
    assert np.allclose((r @ r.inverse()).matrix, np.eye(3))


def test_so3_perturbation_update_is_close():
    r = SO3.exp([0, 0, math.pi / 2])
    updated = SO3.exp([1e-4, 0, 0]) @ r
    assert np.allclose(updated.matrix, r.matrix, atol=2e-4)
    assert not np.allclose(updated.matrix, r.matrix, atol=1e-8)


def test_so3_rejects_non_rotation():
    with pytest.raises(ValueError):
        SO3(np.eye(3) * 2)
    with pytest.raises(ValueError):
        SO3(np.diag([1.0, 1.0, -1.0]))


def test_zero_quaternion_rejected():
    with pytest.raises(ValueError):
        quaternion_to_matrix([0, 0, 0, 0])


def test_quaternion_round_trip():
    q = np.array([0.35, 0.2, 0.3, 0.1])
    q /= np.linalg.norm(q)
    back = quaternion_from_matrix(quaternion_to_matrix(q))
    assert np.allclose(back, q) or np.allclose(back, -q)


def test_quaternion_rotation_matches_conjugation():
    q = np.array([0.9, 0.1, -0.3, 0.2])
    q /= np.linalg.norm(q)
    v = np.array([1.0, 0.0, 0.0])
    w, x, y, z = q
    u = np.array([x, y, z])
    expected = v + 2 * w * np.cross(u, v) + 2 * np.cross(u, np.cross(u, v))
    assert np.allclose(SO3.from_quaternion(q) @ v, expected)


def test_euler_angles_recover_yaw():
    angle = math.pi / 4
    assert np.allclose(euler_angles_zyx(angle_axis_to_matrix(angle, [0, 0, 1])), [angle, 0, 0])


def test_euler_angles_rebuild_matrix():
    r = SO3.exp([0.3, -0.4, 0.9]).matrix
    yaw, pitch, roll = euler_angles_zyx(r)
    rebuilt = (
        angle_axis_to_matrix(yaw, [0, 0, 1])
        @ angle_axis_to_matrix(pitch, [0, 1, 0])
        @ angle_axis_to_matrix(roll, [1, 0, 0])
    )
    assert np.allclose(rebuilt, r)
    assert 0 <= yaw <= math.pi


def test_coordinate_transform_example():
    q1 = np.array([0.35, 0.2, 0.3, 0.1])
    q2 = np.array([-0.5, 0.4, -0.1, 0.2])
    t1w = SE3.from_quaternion(q1, [0.3, 0.1, 0.1])
    t2w = SE3.from_quaternion(q2, [-0.1, 0.5, 0.3])
    p2 = (t2w @ t1w.inverse()) @ np.array([0.5, 0.0, 0.2])
    assert np.allclose(p2, [-0.0309731, 0.73499, 0.296108], atol=1e-5)


def test_se3_log_matches_documented_output():
    r = angle_axis_to_matrix(math.pi / 2, [0, 0, 1])
    se3 = SE3(r, [1, 0, 0]).log()
    assert np.allclose(se3, [0.785398, -0.785398, 0, 0, 0, 1.5708], atol=1e-5)


def test_se3_from_matrix_and_quaternion_agree():
    r = angle_axis_to_matrix(math.pi / 2, [0, 0, 1])
    a = SE3(r, [1, 0, 0])
    b = SE3.from_quaternion(quaternion_from_matrix(r), [1, 0, 0])
    assert np.allclose(a.matrix(), b.matrix())


@pytest.mark.parametrize("xi", [[0.1, 0.2, 0.3, 0.4, -0.5, 0.6], [1, 2, 3, 0, 0, 0], [0.5, -1, 2, 0, 0, 1e-12]])
def test_se3_exp_log_round_trip(xi):
    assert np.allclose(SE3.exp(xi).log(), xi, atol=1e-9)


def test_se3_hat_vee_round_trip():
    xi = np.array([0.3, -0.2, 0.1, 0.5, 0.4, -0.6])
    h = SE3.hat(xi)
    assert np.allclose(h[3], 0)
    assert np.allclose(SE3.vee(h), xi)


def test_se3_inverse_and_point_transform():
    t = SE3.exp([0.5, -1.0, 2.0, 0.3, 0.2, -0.1])
    p = np.array([[1.0, 2.0, 3.0], [-4.0, 0.5, 2.0]])
    assert np.allclose(t.inverse() @ (t @ p), p)
    assert np.allclose((t @ t.inverse()).matrix(), np.eye(4))


def test_se3_point_transform_matches_matrix():
    t = SE3.exp([0.5, -1.0, 2.0, 0.3, 0.2, -0.1])
    p = np.array([1.0, -2.0, 0.5])
    assert np.allclose(t @ p, (t.matrix() @ np.append(p, 1.0))[:3])
    assert np.allclose(t.matrix3x4(), t.matrix()[:3])


def test_se3_adjoint_property():
    t = SE3.exp([0.2, 0.1, -0.3, 0.4, -0.2, 0.7])
    xi = np.array([0.01, -0.02, 0.03, 0.02, 0.01, -0.015])
    left = (t @ SE3.exp(xi) @ t.inverse()).matrix()
    right = SE3.exp(t.adjoint() @ xi).matrix()
    assert np.allclose(left, right, atol=1e-9)


def test_se3_rejects_bad_translation():
    with pytest.raises(ValueError):
        SE3(None, [1.0, 2.0])