"""
Settings configuration for thermochemistry jobs.

This module provides the ThermoSettings class holding every parameter
of a thermochemical evaluation: temperature and pressure (fixed or
scanned), standard-state concentration, frequency scale factors, the
low-frequency treatment and its parameters, imaginary-mode handling,
symmetry and energy overrides, and the thread budget.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from thermosmart.analysis.lowvib import LowVibTreatment
from thermosmart.io.yaml import YAMLFile
from thermosmart.utils.constants import BAV_PRESETS

logger = logging.getLogger(__name__)

MASS_MODES = ("element", "isotope", "input")


def _scan_tuple(value, name):
    if value is None:
        return None
    if isinstance(value, str):
        value = value.replace(",", " ").split()
    try:
        low, high, step = (float(x) for x in value)
    except (TypeError, ValueError):
        raise ValueError(
            f"{name} must be given as (low, high, step), got {value!r}."
        )
    if step <= 0:
        raise ValueError(f"{name} step must be positive, got {step}.")
    if high < low:
        raise ValueError(
            f"{name} upper bound {high} is below lower bound {low}."
        )
    return low, high, step


@dataclass(frozen=True)
class ThermoSettings:
    """
    Configuration settings for thermochemistry calculations.

    Immutable: use `merge` to derive a modified copy.

    Attributes:
        temperature (float): Temperature in K.
        pressure (float): Pressure in atm.
        temperature_scan (tuple | None): (low, high, step) in K.
        pressure_scan (tuple | None): (low, high, step) in atm.
        concentration (str): Concentration in mol/L; "0" means unset.
        scale_zpe, scale_heat, scale_entropy, scale_cv (float): Frequency
            scale factors for ZPE, thermal energy, entropy and Cv.
        low_vib_treatment (str): harmonic, truhlar, grimme, minenkov or
            headgordon.
        raise_vib (float): Truhlar raise target in cm^-1.
        interp_vib (float): Interpolation threshold in cm^-1.
        alpha (int): Damping-function exponent.
        hg_entropy (bool): Interpolate the entropy in Head-Gordon's scheme.
        bav_preset (str): Average moment of inertia, grimme or qchem.
        imag_real (float): Imaginary modes below this magnitude (cm^-1)
            are treated as real.
        point_group (str | None): Forced point group.
        external_energy (float): Electronic energy override in Hartree;
            0 keeps the input energy.
        num_threads (int): Requested threads; 0 picks automatically.
        ip_mode (int): 1 skips translation and rotation.
        mass_mode (str): element (abundance-averaged), isotope (most
            abundant isotope) or input atomic masses.
        print_vib (bool): Write per-mode contributions.
        outer_points_per_thread (int): Grid points per thread above which
            a scan is parallelised over grid points.
        inner_min_modes (int): Real modes from which a small scan is
            parallelised over modes.
    """

    temperature: float = 298.15
    pressure: float = 1.0
    temperature_scan: Optional[Tuple[float, float, float]] = None
    pressure_scan: Optional[Tuple[float, float, float]] = None
    concentration: str = "0"
    scale_zpe: float = 1.0
    scale_heat: float = 1.0
    scale_entropy: float = 1.0
    scale_cv: float = 1.0
    low_vib_treatment: str = "harmonic"
    raise_vib: float = 100.0
    interp_vib: float = 100.0
    alpha: int = 4
    hg_entropy: bool = False
    bav_preset: str = "grimme"
    imag_real: float = 0.0
    point_group: Optional[str] = None
    external_energy: float = 0.0
    num_threads: int = 0
    ip_mode: int = 0
    mass_mode: str = "element"
    print_vib: bool = False
    outer_points_per_thread: int = 2
    inner_min_modes: int = 48

    def __post_init__(self):
        # frozen: normalised values go through object.__setattr__
        set_ = object.__setattr__
        set_(
            self,
            "temperature_scan",
            _scan_tuple(self.temperature_scan, "temperature_scan"),
        )
        set_(
            self,
            "pressure_scan",
            _scan_tuple(self.pressure_scan, "pressure_scan"),
        )
        set_(
            self,
            "low_vib_treatment",
            LowVibTreatment.from_string(self.low_vib_treatment).value,
        )
        set_(self, "bav_preset", str(self.bav_preset).lower())
        set_(self, "mass_mode", str(self.mass_mode).lower())
        set_(
            self,
            "concentration",
            "0" if self.concentration is None else str(self.concentration),
        )

        if self.temperature <= 0:
            raise ValueError(
                f"Temperature must be positive, got {self.temperature}."
            )
        if self.pressure <= 0:
            raise ValueError(
                f"Pressure must be positive, got {self.pressure}."
            )
        if self.temperature_scan and self.temperature_scan[0] <= 0:
            raise ValueError("Temperature scan must start above 0 K.")
        if self.pressure_scan and self.pressure_scan[0] <= 0:
            raise ValueError("Pressure scan must start above 0 atm.")
        for name in ("scale_zpe", "scale_heat", "scale_entropy", "scale_cv"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive.")
        if self.raise_vib < 0 or self.interp_vib <= 0:
            raise ValueError(
                "raise_vib must be >= 0 and interp_vib must be > 0."
            )
        if self.bav_preset not in BAV_PRESETS:
            raise ValueError(
                f"bav_preset must be one of {list(BAV_PRESETS)}, "
                f"got {self.bav_preset}."
            )
        if self.mass_mode not in MASS_MODES:
            raise ValueError(
                f"mass_mode must be one of {MASS_MODES}, got {self.mass_mode}."
            )
        if self.imag_real < 0:
            raise ValueError("imag_real must be >= 0.")
        if self.num_threads < 0:
            raise ValueError("num_threads must be >= 0.")
        if self.ip_mode not in (0, 1):
            raise ValueError(f"ip_mode must be 0 or 1, got {self.ip_mode}.")
        if self.outer_points_per_thread < 1 or self.inner_min_modes < 1:
            raise ValueError(
                "outer_points_per_thread and inner_min_modes must be >= 1."
            )

    @property
    def is_scan(self):
        return (
            self.temperature_scan is not None
            or self.pressure_scan is not None
        )

    def merge(self, **overrides):
        """Return a copy with `overrides` applied; None values are ignored."""
        overrides = {k: v for k, v in overrides.items() if v is not None}
        self._check_keys(overrides)
        return dataclasses.replace(self, **overrides)

    def to_dict(self):
        return dataclasses.asdict(self)

    @classmethod
    def field_names(cls):
        return [f.name for f in dataclasses.fields(cls)]

    @classmethod
    def _check_keys(cls, settings_dict):
        unknown = set(settings_dict) - set(cls.field_names())
        if unknown:
            raise ValueError(
                f"Unknown thermochemistry settings: {sorted(unknown)}"
            )

    @classmethod
    def from_dict(cls, settings_dict):
        """
        Create settings instance from a dictionary.

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        settings_dict = dict(settings_dict or {})
        cls._check_keys(settings_dict)
        return cls(**settings_dict)

    @classmethod
    def from_yaml(cls, filename):
        logger.debug(f"Reading thermochemistry settings from {filename}")
        return cls.from_dict(YAMLFile(filename=filename).yaml_contents_dict)
