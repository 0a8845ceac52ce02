"""
Point-group detection and rotational symmetry numbers.

The detector centres the molecule at its centre of mass, classifies the
rotor from its principal moments, collects candidate rotation axes and
mirror normals, tests each candidate operation for invariance of the
atom set, and maps the elements found onto a catalog of point groups.
"""

import logging
import re
from functools import cached_property
from itertools import combinations

import numpy as np
from scipy.spatial.distance import cdist

from thermosmart.utils.geometry import (
    calculate_moments_of_inertia,
    center_of_mass,
    is_collinear,
    reflection_matrix,
    rotation_matrix,
)

logger = logging.getLogger(__name__)

MAX_AXIS_ORDER = 12

# unique symmetry numbers of the fixed-order groups
_FIXED_GROUPS = {
    "c1": ("C1", 1),
    "ci": ("Ci", 1),
    "cs": ("Cs", 1),
    "kh": ("Kh", 1),
    "cinfv": ("Cinfv", 1),
    "dinfh": ("Dinfh", 2),
    "t": ("T", 12),
    "td": ("Td", 12),
    "th": ("Th", 12),
    "o": ("O", 24),
    "oh": ("Oh", 24),
    "i": ("I", 60),
    "ih": ("Ih", 60),
}

_LINEAR_ALIASES = {
    "c*v": "cinfv",
    "coov": "cinfv",
    "c_infv": "cinfv",
    "d*h": "dinfh",
    "dooh": "dinfh",
    "d_infh": "dinfh",
}


def symmetry_number_from_point_group(point_group):
    """
    Return the canonical label and rotational symmetry number of a
    point group.

    Cn, Cnv and Cnh give n; Dn, Dnd and Dnh give 2n; S2n gives n;
    T/Td/Th give 12, O/Oh 24, I/Ih 60; linear C*v gives 1 and D*h 2.

    Raises:
        ValueError: If the label is not a recognised point group.
    """
    if point_group is None:
        raise ValueError("Point group label is None.")
    key = point_group.strip().lower().replace(" ", "")
    key = _LINEAR_ALIASES.get(key, key)
    if key in _FIXED_GROUPS:
        return _FIXED_GROUPS[key]

    match = re.fullmatch(r"c(\d+)([vh]?)", key)
    if match:
        n = int(match.group(1))
        if n >= 1:
            return f"C{n}{match.group(2)}", n
    match = re.fullmatch(r"d(\d+)([dh]?)", key)
    if match:
        n = int(match.group(1))
        if n >= 2:
            return f"D{n}{match.group(2)}", 2 * n
    match = re.fullmatch(r"s(\d+)", key)
    if match:
        n = int(match.group(1))
        if n >= 2 and n % 2 == 0:
            return f"S{n}", n // 2
    raise ValueError(f"Unrecognised point group: {point_group}")


class SymmetryDetector:
    """Detect the point group of a molecule from its geometry.

    Args:
        symbols: element symbols, one per atom.
        positions: Nx3 positions in Angstrom.
        masses: atomic masses in amu.
        tolerance: maximum displacement (Angstrom) between an atom and
            its image under a symmetry operation.
        moment_tolerance: relative tolerance for degenerate principal
            moments.
    """

    def __init__(
        self,
        symbols,
        positions,
        masses,
        tolerance=0.05,
        moment_tolerance=0.02,
    ):
        self.symbols = list(symbols)
        self.masses = np.asarray(masses, dtype=float)
        self.positions = np.asarray(positions, dtype=float)
        self.tolerance = tolerance
        self.moment_tolerance = moment_tolerance

    @cached_property
    def _inertia(self):
        return calculate_moments_of_inertia(self.masses, self.positions)

    @cached_property
    def coords(self):
        """Positions relative to the centre of mass."""
        com = center_of_mass(self.masses, self.positions)
        return self.positions - com

    @property
    def principal_moments(self):
        return self._inertia[1]

    @property
    def principal_axes(self):
        return self._inertia[2]

    @cached_property
    def element_groups(self):
        groups = {}
        for i, symbol in enumerate(self.symbols):
            groups.setdefault(symbol, []).append(i)
        return [np.array(indices) for indices in groups.values()]

    @property
    def rotor_type(self):
        """One of 'atom', 'linear', 'spherical', 'symmetric', 'asymmetric'."""
        if len(self.symbols) == 1:
            return "atom"
        ia, ib, ic = self.principal_moments
        if ic < 1e-3:
            return "atom"
        if ia < 1e-3 or is_collinear(self.coords):
            return "linear"

        def same(a, b):
            return abs(a - b) <= self.moment_tolerance * max(a, b)

        if same(ia, ib) and same(ib, ic):
            return "spherical"
        if same(ia, ib) or same(ib, ic):
            return "symmetric"
        return "asymmetric"

    @property
    def unique_axis(self):
        """Principal axis of the non-degenerate moment of a symmetric top."""
        ia, ib, ic = self.principal_moments
        if abs(ia - ib) <= abs(ib - ic):
            return self.principal_axes[2]
        return self.principal_axes[0]

    def is_symmetry_operation(self, matrix):
        """True if `matrix` maps every atom onto an atom of the same
        element within tolerance."""
        transformed = self.coords @ np.asarray(matrix).T
        for indices in self.element_groups:
            distances = cdist(transformed[indices], self.coords[indices])
            if np.any(distances.min(axis=1) > self.tolerance):
                return False
        return True

    def has_inversion(self):
        return self.is_symmetry_operation(-np.eye(3))

    def has_mirror(self, normal):
        return self.is_symmetry_operation(reflection_matrix(normal))

    def has_improper_rotation(self, axis, order):
        matrix = reflection_matrix(axis) @ rotation_matrix(
            axis, 2 * np.pi / order
        )
        return self.is_symmetry_operation(matrix)

    def axis_order(self, axis, max_order=MAX_AXIS_ORDER):
        """Highest n for which C_n about `axis` is a symmetry operation."""
        for n in range(max_order, 1, -1):
            if self.is_symmetry_operation(rotation_matrix(axis, 2 * np.pi / n)):
                return n
        return 1

    @staticmethod
    def _unique_directions(vectors):
        unique = []
        for vector in vectors:
            norm = np.linalg.norm(vector)
            if norm < 1e-6:
                continue
            vector = vector / norm
            if all(abs(np.dot(vector, u)) < 1.0 - 1e-6 for u in unique):
                unique.append(vector)
        return unique

    def _equidistant_pairs(self):
        """Same-element atom pairs at equal distance from the centre."""
        radii = np.linalg.norm(self.coords, axis=1)
        for indices in self.element_groups:
            for i, j in combinations(indices, 2):
                if abs(radii[i] - radii[j]) <= self.tolerance:
                    yield i, j

    def _equidistant_triples(self, max_group_size=20):
        radii = np.linalg.norm(self.coords, axis=1)
        for indices in self.element_groups:
            if len(indices) > max_group_size:
                continue
            for i, j, k in combinations(indices, 3):
                if (
                    abs(radii[i] - radii[j]) <= self.tolerance
                    and abs(radii[i] - radii[k]) <= self.tolerance
                ):
                    yield i, j, k

    def _ring_normals(self, neighbour_factor=1.1):
        """Normals of the planes spanned by each atom and two of its
        nearest neighbours; for a cage these include the ring axes."""
        distances = cdist(self.coords, self.coords)
        np.fill_diagonal(distances, np.inf)
        nearest = distances.min(axis=1)
        for i, row in enumerate(distances):
            neighbours = np.flatnonzero(row <= neighbour_factor * nearest[i])
            for j, k in combinations(neighbours, 2):
                yield np.cross(
                    self.coords[j] - self.coords[i],
                    self.coords[k] - self.coords[i],
                )

    def candidate_axes(self):
        rotor = self.rotor_type
        vectors = list(self.principal_axes)
        if rotor == "asymmetric":
            return self._unique_directions(vectors)

        vectors.extend(self.coords)
        vectors.extend(
            self.coords[i] + self.coords[j]
            for i, j in self._equidistant_pairs()
        )
        if rotor == "symmetric":
            axis = self.unique_axis
            projected = [v - np.dot(v, axis) * axis for v in vectors[3:]]
            vectors = [axis] + vectors[:3] + projected
        elif rotor == "spherical":
            vectors.extend(
                self.coords[i] + self.coords[j] + self.coords[k]
                for i, j, k in self._equidistant_triples()
            )
            vectors.extend(self._ring_normals())
        return self._unique_directions(vectors)

    def candidate_mirror_normals(self, axes=()):
        vectors = list(self.principal_axes)
        if self.rotor_type == "asymmetric":
            return self._unique_directions(vectors)
        vectors.extend(
            self.coords[i] - self.coords[j]
            for i, j in self._equidistant_pairs()
        )
        for axis in axes:
            vectors.extend(np.cross(axis, c) for c in self.coords)
            vectors.extend(np.cross(axis, other) for other in axes)
        return self._unique_directions(vectors)

    def detect(self):
        """
        Detect the point group.

        Returns:
            tuple: (point group label, rotational symmetry number)
        """
        rotor = self.rotor_type
        if rotor == "atom":
            return "Kh", 1
        if rotor == "linear":
            label = "Dinfh" if self.has_inversion() else "Cinfv"
            return symmetry_number_from_point_group(label)

        rotations = []
        for axis in self.candidate_axes():
            n = self.axis_order(axis)
            if n >= 2:
                rotations.append((axis, n))
        label = self._classify(rotations)
        logger.debug(
            f"Rotor {rotor}; rotation axes "
            f"{sorted(n for _, n in rotations)}; point group {label}"
        )
        return symmetry_number_from_point_group(label)

    def _classify(self, rotations):
        high_order = [n for _, n in rotations if n >= 3]
        if len(high_order) >= 2:
            return self._classify_cubic(max(high_order))

        if not rotations:
            if any(self.has_mirror(v) for v in self.candidate_mirror_normals()):
                return "Cs"
            if self.has_inversion():
                return "Ci"
            return "C1"

        unique = self.unique_axis if self.rotor_type == "symmetric" else None

        def priority(rotation):
            axis, n = rotation
            on_unique = unique is not None and abs(np.dot(axis, unique)) > 0.999
            return n, on_unique

        main_axis, n = max(rotations, key=priority)
        perpendicular_c2 = [
            axis
            for axis, order in rotations
            if order % 2 == 0 and abs(np.dot(axis, main_axis)) < 1e-3
        ]
        horizontal_mirror = self.has_mirror(main_axis)
        vertical_normals = [
            v
            for v in self.candidate_mirror_normals(axes=[main_axis])
            if abs(np.dot(v, main_axis)) < 1e-3
        ]
        vertical_mirror = any(self.has_mirror(v) for v in vertical_normals)

        if len(perpendicular_c2) >= n:
            if horizontal_mirror:
                return f"D{n}h"
            if vertical_mirror:
                return f"D{n}d"
            return f"D{n}"
        if horizontal_mirror:
            return f"C{n}h"
        if vertical_mirror:
            return f"C{n}v"
        if self.has_improper_rotation(main_axis, 2 * n):
            return f"S{2 * n}"
        return f"C{n}"

    def _classify_cubic(self, max_order):
        if max_order >= 5:
            base = "I"
        elif max_order == 4:
            base = "O"
        else:
            base = "T"
        if self.has_inversion():
            return f"{base}h"
        if base == "T" and any(
            self.has_mirror(v) for v in self.candidate_mirror_normals()
        ):
            return "Td"
        return base

    def resolve(self, point_group=None):
        """
        Use a forced point group when it is a recognised label; otherwise
        detect one from the geometry.
        """
        if point_group:
            try:
                return symmetry_number_from_point_group(point_group)
            except ValueError:
                logger.warning(
                    f"Point group '{point_group}' is not recognised; "
                    "detecting it from the geometry instead."
                )
        return self.detect()
