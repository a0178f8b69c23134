"""Rotations and rigid-body transforms on the SO(3) and SE(3) Lie groups.

Quaternions are written as ``(w, x, y, z)`` with the real part first.
Tangent vectors of SE(3) are ordered translation first, rotation second:
``xi = (rho, phi)``.
"""

from __future__ import annotations

import math

import numpy as np

_EPS = 1e-10
_ORTHO_TOL = 1e-6


def _vec(values, size: int, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.shape != (size,):
        raise ValueError(f"{name} must have {size} elements, got shape {np.shape(values)}")
    return arr


def _unit_quaternion(quaternion) -> np.ndarray:
    q = _vec(quaternion, 4, "quaternion")
    norm = np.linalg.norm(q)
    if norm < _EPS:
        raise ValueError("quaternion has zero norm")
    return q / norm


def quaternion_to_matrix(quaternion) -> np.ndarray:
    """Rotation matrix of a quaternion ``(w, x, y, z)``; the quaternion is normalised first."""
    w, x, y, z = _unit_quaternion(quaternion)
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def quaternion_from_matrix(matrix) -> np.ndarray:
    """Unit quaternion ``(w, x, y, z)`` of a rotation matrix."""
    m = np.asarray(matrix, dtype=float)
    if m.shape != (3, 3):
        raise ValueError("rotation matrix must be 3x3")
    diag_sum = float(m[0, 0] + m[1, 1] + m[2, 2])
    if diag_sum > 0:
        t = math.sqrt(diag_sum + 1.0)
        w = 0.5 * t
        t = 0.5 / t
        q = np.array(
            [w, (m[2, 1] - m[1, 2]) * t, (m[0, 2] - m[2, 0]) * t, (m[1, 0] - m[0, 1]) * t]
        )
    else:
        i = 0
        if m[1, 1] > m[0, 0]:
            i = 1
        if m[2, 2] > m[i, i]:
            i = 2
        j = (i + 1) % 3
        k = (j + 1) % 3
        t = math.sqrt(m[i, i] - m[j, j] - m[k, k] + 1.0)
        xyz = np.zeros(3)
        xyz[i] = 0.5 * t
        t = 0.5 / t
        w = (m[k, j] - m[j, k]) * t
        xyz[j] = (m[j, i] + m[i, j]) * t
        xyz[k] = (m[k, i] + m[i, k]) * t
        q = np.array([w, *xyz])
    return q / np.linalg.norm(q)


def angle_axis_to_matrix(angle: float, axis) -> np.ndarray:
    """Rotation matrix for a rotation of ``angle`` radians about ``axis``."""
    a = _vec(axis, 3, "axis")
    norm = np.linalg.norm(a)
    if norm < _EPS:
        raise ValueError("rotation axis has zero length")
    return SO3.exp(a / norm * angle).matrix


def euler_angles_zyx(matrix) -> np.ndarray:
    """Yaw, pitch, roll (rotations about Z, Y, X) of a rotation matrix.

    The first angle lies in ``[0, pi]``, the other two in ``[-pi, pi]``.
    """
    m = np.asarray(matrix, dtype=float)
    if m.shape != (3, 3):
        raise ValueError("rotation matrix must be 3x3")
    res = np.zeros(3)
    res[0] = math.atan2(m[1, 0], m[0, 0])
    c2 = math.hypot(m[2, 2], m[2, 1])
    if res[0] < 0:
        res[0] += math.pi
        res[1] = math.atan2(m[2, 0], -c2)
    else:
        res[1] = math.atan2(-m[2, 0], c2)
    s1, c1 = math.sin(res[0]), math.cos(res[0])
    res[2] = math.atan2(s1 * m[0, 2] - c1 * m[1, 2], c1 * m[1, 1] - s1 * m[0, 1])
    return res


class SO3:
    """A 3D rotation."""

    __slots__ = ("_matrix",)

    def __init__(self, matrix=None):
        if matrix is None:
            self._matrix = np.eye(3)
            return
        m = np.array(matrix, dtype=float)
        if m.shape != (3, 3):
            raise ValueError("rotation matrix must be 3x3")
        if not np.allclose(m @ m.T, np.eye(3), atol=_ORTHO_TOL) or np.linalg.det(m) <= 0:
            raise ValueError("matrix is not a proper rotation")
        self._matrix = m

    @property
    def matrix(self) -> np.ndarray:
        """The 3x3 rotation matrix (a copy)."""
        return self._matrix.copy()

    @classmethod
    def from_quaternion(cls, quaternion) -> "SO3":
        return cls(quaternion_to_matrix(quaternion))

    @classmethod
    def exp(cls, omega) -> "SO3":
        """Exponential map from a rotation vector."""
        w = _vec(omega, 3, "omega")
        theta_sq = float(w @ w)
        theta = math.sqrt(theta_sq)
        if theta < _EPS:
            theta_po4 = theta_sq * theta_sq
            imag = 0.5 - theta_sq / 48.0 + theta_po4 / 3840.0
            real = 1.0 - theta_sq / 8.0 + theta_po4 / 384.0
        else:
            half = 0.5 * theta
            imag = math.sin(half) / theta
            real = math.cos(half)
        return cls.from_quaternion([real, *(imag * w)])

    def log(self) -> np.ndarray:
        """Logarithmic map to a rotation vector."""
        w, *xyz = quaternion_from_matrix(self._matrix)
        v = np.array(xyz)
        squared_n = float(v @ v)
        if squared_n < _EPS * _EPS:
            factor = 2.0 / w - 2.0 / 3.0 * squared_n / (w ** 3)
        else:
            n = math.sqrt(squared_n)
            if abs(w) < _EPS:
                factor = (math.pi if w > 0 else -math.pi) / n
            else:
                factor = 2.0 * math.atan(n / w) / n
        return factor * v

    @staticmethod
    def hat(omega) -> np.ndarray:
        """Skew-symmetric matrix of a 3-vector."""
        x, y, z = _vec(omega, 3, "omega")
        return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])

    @staticmethod
    def vee(omega_hat) -> np.ndarray:
        """3-vector of a skew-symmetric matrix."""
        m = np.asarray(omega_hat, dtype=float)
        if m.shape != (3, 3):
            raise ValueError("matrix must be 3x3")
        return np.array([m[2, 1], m[0, 2], m[1, 0]])

    def inverse(self) -> "SO3":
        return SO3(self._matrix.T)

    def quaternion(self) -> np.ndarray:
        """Unit quaternion ``(w, x, y, z)``."""
        return quaternion_from_matrix(self._matrix)

    def __matmul__(self, other):
        if isinstance(other, SO3):
            return SO3.from_quaternion(quaternion_from_matrix(self._matrix @ other._matrix))
        points = np.asarray(other, dtype=float)
        if points.shape[-1:] != (3,):
            return NotImplemented
        return points @ self._matrix.T

    def __repr__(self) -> str:
        return f"SO3({self._matrix.tolist()!r})"


class SE3:
    """A rigid-body transform: rotation followed by translation."""

    __slots__ = ("rotation", "translation")

    def __init__(self, rotation=None, translation=None):
        if rotation is None:
            rotation = SO3()
        elif not isinstance(rotation, SO3):
            rotation = SO3(rotation)
        self.rotation: SO3 = rotation
        self.translation: np.ndarray = (
            np.zeros(3) if translation is None else _vec(translation, 3, "translation").copy()
        )

    @classmethod
    def from_quaternion(cls, quaternion, translation) -> "SE3":
        return cls(SO3.from_quaternion(quaternion), translation)

    @classmethod
    def exp(cls, xi) -> "SE3":
        """Exponential map from a twist ``(rho, phi)``."""
        x = _vec(xi, 6, "xi")
        rho, phi = x[:3], x[3:]
        rotation = SO3.exp(phi)
        omega = SO3.hat(phi)
        theta = float(np.linalg.norm(phi))
        if theta < _EPS:
            v = np.eye(3) + 0.5 * omega + omega @ omega / 6.0
        else:
            theta_sq = theta * theta
            v = (
                np.eye(3)
                + (1.0 - math.cos(theta)) / theta_sq * omega
                + (theta - math.sin(theta)) / (theta_sq * theta) * (omega @ omega)
            )
        return cls(rotation, v @ rho)

    def log(self) -> np.ndarray:
        """Logarithmic map to a twist ``(rho, phi)``."""
        phi = self.rotation.log()
        theta = float(np.linalg.norm(phi))
        omega = SO3.hat(phi)
        omega_sq = omega @ omega
        if abs(theta) < _EPS:
            v_inv = np.eye(3) - 0.5 * omega + omega_sq / 12.0
        else:
            half = 0.5 * theta
            v_inv = (
                np.eye(3)
                - 0.5 * omega
                + (1.0 - theta * math.cos(half) / (2.0 * math.sin(half))) / (theta * theta) * omega_sq
            )
        return np.concatenate([v_inv @ self.translation, phi])

    @staticmethod
    def hat(xi) -> np.ndarray:
        """4x4 matrix of a twist ``(rho, phi)``."""
        x = _vec(xi, 6, "xi")
        m = np.zeros((4, 4))
        m[:3, :3] = SO3.hat(x[3:])
        m[:3, 3] = x[:3]
        return m

    @staticmethod
    def vee(xi_hat) -> np.ndarray:
        """Twist ``(rho, phi)`` of a 4x4 matrix."""
        m = np.asarray(xi_hat, dtype=float)
        if m.shape != (4, 4):
            raise ValueError("matrix must be 4x4")
        return np.concatenate([m[:3, 3], SO3.vee(m[:3, :3])])

    def inverse(self) -> "SE3":
        inv_rot = self.rotation.inverse()
        return SE3(inv_rot, -(inv_rot @ self.translation))

    def adjoint(self) -> np.ndarray:
        """6x6 adjoint matrix acting on twists ``(rho, phi)``."""
        r = self.rotation.matrix
        adj = np.zeros((6, 6))
        adj[:3, :3] = r
        adj[3:, 3:] = r
        adj[:3, 3:] = SO3.hat(self.translation) @ r
        return adj

    def matrix(self) -> np.ndarray:
        """Homogeneous 4x4 matrix."""
        m = np.eye(4)
        m[:3, :] = self.matrix3x4()
        return m

    def matrix3x4(self) -> np.ndarray:
        """Top three rows of the homogeneous matrix."""
        return np.hstack([self.rotation.matrix, self.translation.reshape(3, 1)])

    def __matmul__(self, other):
        if isinstance(other, SE3):
            return SE3(self.rotation @ other.rotation, self.rotation @ other.translation + self.translation)
        points = np.asarray(other, dtype=float)
        if points.shape[-1:] != (3,):
            return NotImplemented
        return self.rotation @ points + self.translation

    def __repr__(self) -> str:
        return f"SE3(rotation={self.rotation!r}, translation={self.translation.tolist()!r})"