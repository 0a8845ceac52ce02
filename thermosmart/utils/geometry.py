"""
Geometric helpers for rotational analysis.

Inertia tensors and principal axes feed both the rotational partition
function and the point-group search; collinearity decides which
rotational branch a molecule takes.
"""

import numpy as np


def is_collinear(coords, tol=1e-5):
    """
    Check whether every point lies on one straight line.

    The first two distinct points define the line; the remaining points
    are tested through the norm of the cross product.

    Args:
        coords (array-like): Nx3 coordinates.
        tol (float, optional): Tolerance on the cross-product norm.
            Defaults to 1e-5.

    Returns:
        bool: True if the points are collinear within tolerance.
    """
    coords = np.asarray(coords, dtype=float)
    if len(coords) <= 2:
        return True
    origin = coords[0]
    direction = None
    for point in coords[1:]:
        vec = point - origin
        if np.linalg.norm(vec) > tol:
            direction = vec / np.linalg.norm(vec)
            break
    if direction is None:
        return True
    for point in coords[1:]:
        if np.linalg.norm(np.cross(direction, point - origin)) >= tol:
            return False
    return True


def center_of_mass(mass, coords):
    """Mass-weighted centroid of the coordinates."""
    return np.average(np.asarray(coords, dtype=float), axis=0, weights=mass)


def calculate_moments_of_inertia(mass, coords):
    """
    Calculate the moment of inertia tensor and principal moments of inertia.

    Parameters
    ----------
    mass : array-like
        Atomic masses corresponding to each coordinate.
    coords : array-like
        Nx3 array of atomic coordinates in Cartesian space.

    Returns
    -------
    moi_tensor : np.ndarray
        3x3 moment of inertia tensor about the center of mass.
    evals : np.ndarray
        Principal moments of inertia sorted in ascending order.
    evecs : np.ndarray
        Principal axes as row vectors (ASE convention).
    """
    mass = np.asarray(mass, dtype=float)
    coords = np.asarray(coords, dtype=float)

    shifted_coords = coords - center_of_mass(mass, coords)

    moi_tensor = np.zeros((3, 3))
    for k in range(len(mass)):
        x, y, z = shifted_coords[k]
        moi_tensor[0, 0] += mass[k] * (y**2 + z**2)  # Ixx
        moi_tensor[1, 1] += mass[k] * (x**2 + z**2)  # Iyy
        moi_tensor[2, 2] += mass[k] * (x**2 + y**2)  # Izz

        moi_tensor[0, 1] -= mass[k] * x * y  # Ixy
        moi_tensor[0, 2] -= mass[k] * x * z  # Ixz
        moi_tensor[1, 2] -= mass[k] * y * z  # Iyz

    moi_tensor[1, 0] = moi_tensor[0, 1]
    moi_tensor[2, 0] = moi_tensor[0, 2]
    moi_tensor[2, 1] = moi_tensor[1, 2]

    evals, evecs = np.linalg.eigh(moi_tensor)
    # eigh returns column eigenvectors; transpose to rows as in ASE
    # round-off can push a zero moment slightly negative
    return moi_tensor, np.clip(evals, 0.0, None), evecs.transpose()


def rotation_matrix(axis, angle):
    """Rotation matrix about a unit `axis` by `angle` radians (Rodrigues)."""
    axis = np.asarray(axis, dtype=float)
    axis = axis / np.linalg.norm(axis)
    x, y, z = axis
    c = np.cos(angle)
    s = np.sin(angle)
    C = 1.0 - c
    return np.array(
        [
            [c + x * x * C, x * y * C - z * s, x * z * C + y * s],
            [y * x * C + z * s, c + y * y * C, y * z * C - x * s],
            [z * x * C - y * s, z * y * C + x * s, c + z * z * C],
        ]
    )


def reflection_matrix(normal):
    """Reflection through the plane through the origin with `normal`."""
    normal = np.asarray(normal, dtype=float)
    normal = normal / np.linalg.norm(normal)
    return np.eye(3) - 2.0 * np.outer(normal, normal)
