"""Tests for geometry utility functions."""

import numpy as np
import pytest

from thermosmart.utils.geometry import (
    calculate_moments_of_inertia,
    center_of_mass,
    is_collinear,
    reflection_matrix,
    rotation_matrix,
)


class TestIsCollinear:
    def test_collinear_points_on_x_axis(self):
        coords = [[0, 0, 0], [1, 0, 0], [2.5, 0, 0]]
        assert is_collinear(coords)

    def test_collinear_points_on_diagonal(self):
        coords = [[0, 0, 0], [1, 1, 1], [-2, -2, -2], [3, 3, 3]]
        assert is_collinear(coords)

    def test_non_collinear_points(self):
        coords = [[0, 0, 0], [1, 0, 0], [0, 1, 0]]
        assert not is_collinear(coords)

    def test_two_points_always_collinear(self):
        assert is_collinear([[0, 0, 0], [1, 2, 3]])

    def test_coincident_points(self):
        assert is_collinear([[1, 1, 1], [1, 1, 1], [1, 1, 1]])


class TestMomentsOfInertia:
    def test_diatomic(self):
        masses = [1.0, 1.0]
        coords = [[0, 0, -0.5], [0, 0, 0.5]]
        tensor, evals, evecs = calculate_moments_of_inertia(masses, coords)
        np.testing.assert_allclose(evals, [0.0, 0.5, 0.5], atol=1e-12)
        assert tensor.shape == (3, 3)
        # the zero moment lies along z
        assert abs(evecs[0][2]) == pytest.approx(1.0)

    def test_translation_invariant(self):
        masses = [16.0, 1.0, 1.0]
        coords = np.array([[0, 0, 0.1], [0, 0.75, -0.47], [0, -0.75, -0.47]])
        _, evals, _ = calculate_moments_of_inertia(masses, coords)
        _, shifted, _ = calculate_moments_of_inertia(masses, coords + 5.0)
        np.testing.assert_allclose(evals, shifted, atol=1e-10)

    def test_eigenvalues_never_negative(self):
        _, evals, _ = calculate_moments_of_inertia(
            [1.0, 1.0, 1.0], [[0, 0, 0], [0, 0, 1], [0, 0, 2]]
        )
        assert np.all(evals >= 0.0)


def test_center_of_mass():
    com = center_of_mass([1.0, 3.0], [[0, 0, 0], [0, 0, 4]])
    np.testing.assert_allclose(com, [0, 0, 3])


def test_rotation_matrix_quarter_turn():
    rot = rotation_matrix([0, 0, 1], np.pi / 2)
    np.testing.assert_allclose(rot @ [1, 0, 0], [0, 1, 0], atol=1e-12)
    np.testing.assert_allclose(rot @ rot.T, np.eye(3), atol=1e-12)


def test_reflection_matrix():
    ref = reflection_matrix([0, 0, 2])
    np.testing.assert_allclose(ref @ [1, 2, 3], [1, 2, -3])
