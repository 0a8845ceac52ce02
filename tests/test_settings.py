import dataclasses

import pytest

from thermosmart.io.yaml import YAMLFile
from thermosmart.jobs.thermochemistry.settings import ThermoSettings
from thermosmart.settings.user import ThermosmartUserSettings


class TestThermoSettings:
    def test_defaults(self, settings):
        assert settings.temperature == 298.15
        assert settings.pressure == 1.0
        assert settings.concentration == "0"
        assert settings.low_vib_treatment == "harmonic"
        assert settings.raise_vib == 100.0
        assert settings.interp_vib == 100.0
        assert settings.alpha == 4
        assert settings.bav_preset == "grimme"
        assert settings.mass_mode == "element"
        assert settings.num_threads == 0
        assert not settings.is_scan

    def test_frozen(self, settings):
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.temperature = 300.0

    def test_treatment_aliases_normalised(self):
        assert ThermoSettings(low_vib_treatment="HG").low_vib_treatment == (
            "headgordon"
        )
        assert ThermoSettings(low_vib_treatment="rrho").low_vib_treatment == (
            "harmonic"
        )

    def test_scan_parsing(self):
        s = ThermoSettings(
            temperature_scan="200 400 50", pressure_scan=[1, 2, 0.5]
        )
        assert s.temperature_scan == (200.0, 400.0, 50.0)
        assert s.pressure_scan == (1.0, 2.0, 0.5)
        assert s.is_scan

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"temperature": 0.0},
            {"pressure": -1.0},
            {"temperature_scan": (300, 200, 10)},
            {"temperature_scan": (100, 200, 0)},
            {"temperature_scan": (0, 200, 10)},
            {"temperature_scan": "100 200"},
            {"scale_zpe": 0.0},
            {"interp_vib": 0.0},
            {"bav_preset": "unknown"},
            {"mass_mode": "average"},
            {"low_vib_treatment": "nonsense"},
            {"ip_mode": 2},
            {"num_threads": -1},
            {"imag_real": -5.0},
            {"inner_min_modes": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ThermoSettings(**kwargs)

    def test_merge_ignores_none(self, settings):
        merged = settings.merge(temperature=350.0, pressure=None)
        assert merged.temperature == 350.0
        assert merged.pressure == 1.0
        assert settings.temperature == 298.15

    def test_merge_unknown_key(self, settings):
        with pytest.raises(ValueError, match="Unknown thermochemistry"):
            settings.merge(temprature=350.0)

    def test_from_dict(self):
        s = ThermoSettings.from_dict(
            {"temperature": 310.0, "low_vib_treatment": "grimme"}
        )
        assert s.temperature == 310.0
        assert s.low_vib_treatment == "grimme"
        assert ThermoSettings.from_dict(None) == ThermoSettings()

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="frobnicate"):
            ThermoSettings.from_dict({"frobnicate": 1})

    def test_to_dict_round_trip(self):
        s = ThermoSettings(temperature_scan=(100, 200, 50), alpha=3)
        assert ThermoSettings.from_dict(s.to_dict()) == s

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        YAMLFile(filename=str(path)).write(
            {"temperature": 273.15, "concentration": 1.0, "bav_preset": "QChem"}
        )
        s = ThermoSettings.from_yaml(str(path))
        assert s.temperature == 273.15
        assert s.concentration == "1.0"
        assert s.bav_preset == "qchem"


class TestUserSettings:
    def test_missing_file(self, tmp_path):
        user = ThermosmartUserSettings(config_dir=str(tmp_path))
        assert user.data == {}
        assert user.settings(ThermoSettings) == ThermoSettings()

    def test_thermochemistry_section(self, tmp_path):
        YAMLFile(filename=str(tmp_path / "thermosettings.yaml")).write(
            {"thermochemistry": {"temperature": 350.0, "alpha": 5}}
        )
        user = ThermosmartUserSettings(config_dir=str(tmp_path))
        s = user.settings(ThermoSettings)
        assert s.temperature == 350.0
        assert s.alpha == 5

    def test_flat_file(self, tmp_path):
        YAMLFile(filename=str(tmp_path / "thermosettings.yaml")).write(
            {"pressure": 2.0}
        )
        user = ThermosmartUserSettings(config_dir=str(tmp_path))
        assert user.thermo_settings == {"pressure": 2.0}
