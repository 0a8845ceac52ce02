import numpy as np
import pytest

from thermosmart.io.molecules.structure import MolecularSystem
from thermosmart.io.yaml import YAMLFile
from thermosmart.jobs.thermochemistry.settings import ThermoSettings
from thermosmart.utils.utils import InputDataError


class TestMolecularSystem:
    def test_basic_properties(self, water):
        assert water.num_atoms == 3
        assert water.num_frequencies == 3
        assert water.empirical_formula == "H2O"
        assert water.total_mass == pytest.approx(18.015, abs=1e-2)
        assert not water.is_linear
        assert not water.is_monoatomic

    def test_linear_and_monoatomic(self, nitrogen, helium):
        assert nitrogen.is_linear
        assert helium.is_monoatomic
        assert not helium.is_linear
        np.testing.assert_allclose(helium.moments_of_inertia, 0.0)

    def test_default_label_is_formula(self):
        system = MolecularSystem(
            symbols=["C", "O"], positions=[[0, 0, 0], [0, 0, 1.1]]
        )
        assert system.label == "CO"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"symbols": [], "positions": []},
            {"symbols": ["H"], "positions": None},
            {"symbols": ["H", "H"], "positions": [[0, 0, 0]]},
            {
                "symbols": ["H", "H"],
                "positions": [[0, 0, 0], [0, 0, 0.74]],
                "masses": [1.0],
            },
        ],
    )
    def test_invalid_input(self, kwargs):
        with pytest.raises(InputDataError):
            MolecularSystem(**kwargs)

    def test_frequency_partition(self):
        system = MolecularSystem(
            symbols=["O", "H", "H"],
            positions=[[0, 0, 0.12], [0, 0.76, -0.47], [0, -0.76, -0.47]],
            frequencies=[-120.0, -15.0, 0.0, 1600.0, 3650.0],
        )
        np.testing.assert_allclose(system.real_frequencies, [1600.0, 3650.0])
        assert system.num_imaginary_frequencies == 2

    def test_missing_frequencies(self, water):
        water.frequencies = None
        with pytest.raises(InputDataError, match="No vibrational"):
            water.check_frequency_data()

    def test_monoatomic_needs_no_frequencies(self):
        atom = MolecularSystem(symbols=["Ar"], positions=[[0, 0, 0]])
        atom.check_frequency_data()


class TestPreparation:
    def test_convert_imaginary_is_idempotent(self, water):
        water.frequencies = np.array([-30.0, -300.0, 1595.0])
        assert water.convert_imaginary_frequencies(50.0) == 1
        assert water.convert_imaginary_frequencies(50.0) == 0
        np.testing.assert_allclose(water.frequencies, [30.0, -300.0, 1595.0])
        assert water.num_converted_frequencies == 1

    def test_zero_threshold_converts_nothing(self, water):
        water.frequencies = np.array([-30.0, 1595.0])
        assert water.convert_imaginary_frequencies(0.0) == 0

    def test_prepare(self, water, settings):
        water.prepare(settings)
        assert water.is_prepared
        assert water.point_group == "C2v"
        assert water.rotational_symmetry_number == 2
        assert water.electronic_levels == ((0.0, 1),)

    def test_read_only_after_prepare(self, water, settings):
        water.prepare(settings)
        with pytest.raises(ValueError):
            water.positions[0, 0] = 1.0
        with pytest.raises(ValueError):
            water.frequencies[0] = 1.0
        with pytest.raises(RuntimeError, match="read-only"):
            water.convert_imaginary_frequencies(10.0)
        with pytest.raises(RuntimeError, match="read-only"):
            water.normalize(settings)

    def test_copy_is_independent(self, water, settings):
        clone = water.copy()
        clone.prepare(settings)
        assert not water.is_prepared

    def test_default_levels_follow_multiplicity(self, settings):
        oxygen = MolecularSystem(
            symbols=["O", "O"],
            positions=[[0, 0, 0], [0, 0, 1.21]],
            frequencies=[1580.0],
            multiplicity=3,
        )
        oxygen.prepare(settings)
        assert oxygen.electronic_levels == ((0.0, 3),)

    def test_invalid_degeneracy(self, water, settings):
        water.electronic_levels = [(0.0, 0)]
        with pytest.raises(InputDataError, match="degeneracy"):
            water.prepare(settings)

    def test_input_masses(self, settings):
        system = MolecularSystem(
            symbols=["H", "H"],
            positions=[[0, 0, 0], [0, 0, 0.74]],
            frequencies=[3100.0],
            masses=[2.014, 2.014],
        )
        system.prepare(ThermoSettings(mass_mode="input"))
        assert system.total_mass == pytest.approx(4.028)

    def test_input_masses_missing_warns(self, water, caplog):
        water.prepare(ThermoSettings(mass_mode="input"))
        assert "no masses given" in caplog.text

    def test_isotope_masses(self, water):
        water.prepare(ThermoSettings(mass_mode="isotope"))
        assert water.total_mass == pytest.approx(
            15.99491461957 + 2 * 1.00782503223
        )
        assert water.masses[0] == pytest.approx(15.99491461957)

    def test_external_energy(self, water):
        water.prepare(ThermoSettings(external_energy=-76.0))
        assert water.energy == -76.0

    def test_point_group_from_input(self, water, settings):
        water.point_group = "Cs"
        water.prepare(settings)
        assert water.point_group == "Cs"
        assert water.rotational_symmetry_number == 1


class TestYAMLIO:
    def test_round_trip(self, water, water_yaml):
        system = MolecularSystem.from_yaml(water_yaml)
        assert system.symbols == water.symbols
        np.testing.assert_allclose(system.positions, water.positions)
        np.testing.assert_allclose(system.frequencies, water.frequencies)
        assert system.energy == water.energy
        assert system.label == "water"

    def test_label_from_filename(self, tmp_path, helium):
        helium.label = None
        data = helium.to_dict()
        data.pop("label")
        path = tmp_path / "he_atom.yaml"
        YAMLFile(filename=str(path)).write(data)
        assert MolecularSystem.from_yaml(str(path)).label == "he_atom"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            MolecularSystem.from_yaml(str(tmp_path / "nope.yaml"))

    def test_unknown_keys_warn(self, caplog):
        MolecularSystem.from_dict(
            {"symbols": ["He"], "positions": [[0, 0, 0]], "charge": 0}
        )
        assert "Ignoring unknown molecule keys" in caplog.text

    def test_invalid_yaml_syntax(self, tmp_path):
        path = tmp_path / "syntax.yaml"
        path.write_text("symbols: [O, H\npositions: ]]\n")
        with pytest.raises(InputDataError, match="invalid YAML"):
            MolecularSystem.from_yaml(str(path))

    @pytest.mark.parametrize(
        "data",
        [
            {
                "symbols": ["He"],
                "positions": [[0, 0, 0]],
                "electronic_levels": [0.0],
            },
            {"symbols": [8, 1], "positions": [[0, 0, 0], [0, 0, 0.97]]},
            {"symbols": ["Xx"], "positions": [[0, 0, 0]]},
            ["He", [0, 0, 0]],
        ],
    )
    def test_malformed_data(self, data):
        with pytest.raises(InputDataError):
            MolecularSystem.from_dict(data, label="bad")
