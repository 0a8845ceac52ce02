from itertools import product

import numpy as np
import pytest

from thermosmart.analysis.symmetry import (
    SymmetryDetector,
    symmetry_number_from_point_group,
)
from thermosmart.utils.geometry import rotation_matrix


def detect(system):
    return SymmetryDetector(
        symbols=system.symbols,
        positions=system.positions,
        masses=system.masses,
    ).detect()


class TestPointGroupCatalog:
    @pytest.mark.parametrize(
        "label, expected",
        [
            ("C1", ("C1", 1)),
            ("cs", ("Cs", 1)),
            ("Ci", ("Ci", 1)),
            ("C2v", ("C2v", 2)),
            ("c3V", ("C3v", 3)),
            ("C2h", ("C2h", 2)),
            ("C5", ("C5", 5)),
            ("D2h", ("D2h", 4)),
            ("D3d", ("D3d", 6)),
            ("D6h", ("D6h", 12)),
            ("D3", ("D3", 6)),
            ("S4", ("S4", 2)),
            ("S6", ("S6", 3)),
            ("Td", ("Td", 12)),
            ("T", ("T", 12)),
            ("Oh", ("Oh", 24)),
            ("Ih", ("Ih", 60)),
            ("C*v", ("Cinfv", 1)),
            ("Dinfh", ("Dinfh", 2)),
            ("D*h", ("Dinfh", 2)),
        ],
    )
    def test_symmetry_numbers(self, label, expected):
        assert symmetry_number_from_point_group(label) == expected

    @pytest.mark.parametrize("label", ["X5", "D1", "S3", "", "C"])
    def test_invalid_labels_raise(self, label):
        with pytest.raises(ValueError):
            symmetry_number_from_point_group(label)


class TestSymmetryDetector:
    def test_single_atom(self, helium):
        assert detect(helium) == ("Kh", 1)

    def test_homonuclear_diatomic(self, nitrogen):
        assert detect(nitrogen) == ("Dinfh", 2)

    def test_heteronuclear_diatomic(self, carbon_monoxide):
        assert detect(carbon_monoxide) == ("Cinfv", 1)

    def test_water_is_c2v(self, water):
        assert detect(water) == ("C2v", 2)

    def test_methane_is_td(self, methane):
        assert detect(methane) == ("Td", 12)

    def test_ammonia_is_c3v(self, ammonia):
        assert detect(ammonia) == ("C3v", 3)

    def test_ethylene_is_d2h(self, ethylene):
        assert detect(ethylene) == ("D2h", 4)

    def test_benzene_is_d6h(self, benzene):
        assert detect(benzene) == ("D6h", 12)

    def test_sf6_is_oh(self, sulfur_hexafluoride):
        assert detect(sulfur_hexafluoride) == ("Oh", 24)

    def test_c60_is_ih(self):
        phi = (1 + np.sqrt(5)) / 2
        vertices = set()
        for base in (
            (0.0, 1.0, 3 * phi),
            (1.0, 2 + phi, 2 * phi),
            (phi, 2.0, 2 * phi + 1),
        ):
            for signs in product((1, -1), repeat=3):
                point = np.array(base) * signs
                for shift in range(3):
                    vertices.add(tuple(np.round(np.roll(point, shift), 8)))
        # edge length 2 scaled to a C-C bond of about 1.4 Angstrom
        positions = 0.7 * np.array(sorted(vertices))
        assert len(positions) == 60
        result = SymmetryDetector(
            symbols=["C"] * 60, positions=positions, masses=[12.0] * 60
        ).detect()
        assert result == ("Ih", 60)

    def test_detection_is_orientation_independent(self, methane):
        matrix = rotation_matrix([0.3, -0.5, 0.8], 0.77)
        rotated = methane.positions @ matrix.T + np.array([1.0, -2.0, 0.5])
        result = SymmetryDetector(
            symbols=methane.symbols,
            positions=rotated,
            masses=methane.masses,
        ).detect()
        assert result == ("Td", 12)

    def test_distorted_water_is_cs(self, water):
        positions = water.positions.copy()
        positions[1] = positions[1] + np.array([0.0, 0.2, 0.0])
        result = SymmetryDetector(
            symbols=water.symbols, positions=positions, masses=water.masses
        ).detect()
        assert result == ("Cs", 1)

    def test_no_symmetry_is_c1(self):
        result = SymmetryDetector(
            symbols=["C", "H", "F", "Cl", "Br"],
            positions=[
                [0.0, 0.0, 0.0],
                [1.09, 0.0, 0.0],
                [-0.36, 1.3, 0.0],
                [-0.6, -0.8, 1.4],
                [-0.7, -0.9, -1.6],
            ],
            masses=[12.011, 1.008, 18.998, 35.45, 79.904],
        ).detect()
        assert result == ("C1", 1)

    def test_forced_point_group_skips_detection(self, water):
        detector = SymmetryDetector(
            symbols=water.symbols,
            positions=water.positions,
            masses=water.masses,
        )
        assert detector.resolve(point_group="C1") == ("C1", 1)
        assert detector.resolve(point_group="d3h") == ("D3h", 6)

    def test_invalid_forced_point_group_falls_back(self, water, caplog):
        detector = SymmetryDetector(
            symbols=water.symbols,
            positions=water.positions,
            masses=water.masses,
        )
        assert detector.resolve(point_group="Q7") == ("C2v", 2)
        assert "not recognised" in caplog.text

    def test_rotor_types(self, helium, nitrogen, water, ammonia, methane):
        def rotor(system):
            return SymmetryDetector(
                system.symbols, system.positions, system.masses
            ).rotor_type

        assert rotor(helium) == "atom"
        assert rotor(nitrogen) == "linear"
        assert rotor(water) == "asymmetric"
        assert rotor(ammonia) == "symmetric"
        assert rotor(methane) == "spherical"
