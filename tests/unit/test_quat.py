"""
Unit tests for vector and quaternion primitives (common.quat)
"""

import math
import os
import sys

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.quat import (
    lerp3,
    normalize3,
    quat_conjugate,
    quat_from_basis,
    quat_identity,
    quat_multiply,
    quat_normalize,
    quat_rotate,
    quat_slerp,
    yaw_quat,
)


def same_rotation(a, b, atol=1e-9):
    """q and -q describe the same rotation"""
    return np.allclose(a, b, atol=atol) or np.allclose(a, -np.asarray(b), atol=atol)


class TestVectors:
    """3-vector helpers"""

    def test_normalize_zero_vector(self):
        """Zero-length input normalizes to the zero vector instead of raising"""
        assert np.array_equal(normalize3((0.0, 0.0, 0.0)), np.zeros(3))

    def test_normalize(self):
        out = normalize3((3.0, 0.0, 4.0))
        assert np.allclose(out, [0.6, 0.0, 0.8])

    def test_lerp(self):
        assert np.allclose(lerp3((0, 0, 0), (2, 4, 6), 0.25), [0.5, 1.0, 1.5])


class TestQuaternions:
    """Quaternion algebra in (x, y, z, w) order"""

    def test_normalize_zero_is_identity(self):
        """Zero-norm quaternion normalizes to identity"""
        assert np.array_equal(quat_normalize((0, 0, 0, 0)), quat_identity())

    def test_multiply_identity(self):
        q = quat_normalize((0.1, 0.2, 0.3, 0.9))
        assert np.allclose(quat_multiply(quat_identity(), q), q)
        assert np.allclose(quat_multiply(q, quat_identity()), q)

    def test_multiply_conjugate(self):
        """q * q^-1 is the identity for a unit quaternion"""
        q = quat_normalize((0.4, -0.1, 0.7, 0.3))
        assert np.allclose(quat_multiply(q, quat_conjugate(q)), quat_identity())

    def test_multiply_composition_order(self):
        """a * b applies b first: two 90 deg yaws make 180 deg"""
        q = quat_multiply(yaw_quat(math.pi / 2), yaw_quat(math.pi / 2))
        assert np.allclose(quat_rotate(q, (1.0, 0.0, 0.0)), [-1.0, 0.0, 0.0], atol=1e-12)

    def test_rotate_yaw(self):
        """A 90 deg rotation about z maps x onto y"""
        assert np.allclose(quat_rotate(yaw_quat(math.pi / 2), (1.0, 0.0, 0.0)), [0.0, 1.0, 0.0], atol=1e-12)

    def test_slerp_endpoints(self):
        a = yaw_quat(0.2)
        b = yaw_quat(1.4)
        assert same_rotation(quat_slerp(a, b, 0.0), a)
        assert same_rotation(quat_slerp(a, b, 1.0), b)

    def test_slerp_midpoint(self):
        """Halfway between 0 and 90 deg of yaw is 45 deg"""
        mid = quat_slerp(quat_identity(), yaw_quat(math.pi / 2), 0.5)
        assert same_rotation(mid, yaw_quat(math.pi / 4))

    def test_slerp_shortest_path(self):
        """Antipodal representation of the target is flipped onto the near hemisphere"""
        a = yaw_quat(0.0)
        b = -yaw_quat(math.pi / 2)
        mid = quat_slerp(a, b, 0.5)
        assert same_rotation(mid, yaw_quat(math.pi / 4))

    def test_slerp_nearly_identical_inputs(self):
        """Nearly equal inputs fall back to nlerp and stay unit length"""
        a = yaw_quat(0.5)
        b = yaw_quat(0.5 + 1e-4)
        mid = quat_slerp(a, b, 0.5)
        assert np.linalg.norm(mid) == pytest.approx(1.0)
        assert same_rotation(mid, yaw_quat(0.5 + 5e-5), atol=1e-8)

    def test_from_basis_identity(self):
        q = quat_from_basis((1, 0, 0), (0, 1, 0), (0, 0, 1))
        assert same_rotation(q, quat_identity())

    def test_from_basis_yaw(self):
        """Columns of a 90 deg z rotation give the matching quaternion"""
        q = quat_from_basis((0, 1, 0), (-1, 0, 0), (0, 0, 1))
        assert same_rotation(q, yaw_quat(math.pi / 2))

    @pytest.mark.parametrize("axes", [
        ((-1, 0, 0), (0, -1, 0), (0, 0, 1)),
        ((1, 0, 0), (0, -1, 0), (0, 0, -1)),
        ((-1, 0, 0), (0, 1, 0), (0, 0, -1)),
    ])
    def test_from_basis_negative_trace_branches(self, axes):
        """180 deg rotations exercise the non-trace branches"""
        q = quat_from_basis(*axes)
        for i, axis in enumerate(axes):
            unit = [0.0, 0.0, 0.0]
            unit[i] = 1.0
            assert np.allclose(quat_rotate(q, unit), axis, atol=1e-12)
