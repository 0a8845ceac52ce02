"""
Low-frequency vibrational treatments.

Every treatment maps one vibrational mode at one temperature onto its
contribution to the entropy, the thermal internal energy (U - U0) and
the constant-volume heat capacity, all in SI units per mole. The
treatments share one signature and are dispatched through TREATMENTS.

Frequencies are given in Hz; a separately scaled frequency is supplied
for each quantity.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
from ase import units

from thermosmart.utils.constants import BAV_PRESETS, R, wavenumber_to_hz

logger = logging.getLogger(__name__)

# exp(x) overflows a double beyond ~709; the mode is frozen out long before
_MAX_EXPONENT = 700.0


class LowVibTreatment(str, Enum):
    HARMONIC = "harmonic"
    TRUHLAR = "truhlar"
    GRIMME = "grimme"
    MINENKOV = "minenkov"
    HEADGORDON = "headgordon"

    @classmethod
    def from_string(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "")
        aliases = {"rrho": "harmonic", "none": "harmonic", "hg": "headgordon"}
        key = aliases.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(
            f"Unknown low-frequency treatment '{value}'. "
            f"Choose from {[m.value for m in cls]}."
        )


def resolve_bav(treatment, preset):
    """
    Average moment of inertia (kg m^2) for the free-rotor reference.

    The 'qchem' preset only applies to the Head-Gordon treatment; for any
    other treatment it is replaced by the 'grimme' preset with a warning.
    """
    treatment = LowVibTreatment.from_string(treatment)
    preset = str(preset).lower()
    if preset not in BAV_PRESETS:
        raise ValueError(
            f"Unknown average moment of inertia preset '{preset}'. "
            f"Choose from {list(BAV_PRESETS)}."
        )
    if preset == "qchem" and treatment != LowVibTreatment.HEADGORDON:
        logger.warning(
            f"The 'qchem' average moment of inertia only applies to the "
            f"Head-Gordon treatment; using 'grimme' for {treatment.value}."
        )
        preset = "grimme"
    return BAV_PRESETS[preset]


@dataclass(frozen=True)
class LowVibParameters:
    """Parameters shared by the low-frequency treatments.

    raise_frequency and interpolation_frequency are in Hz; bav in kg m^2.
    """

    raise_frequency: float
    interpolation_frequency: float
    alpha: int = 4
    bav: float = BAV_PRESETS["grimme"]
    hg_entropy: bool = False

    @classmethod
    def from_settings(cls, settings):
        return cls(
            raise_frequency=settings.raise_vib * wavenumber_to_hz,
            interpolation_frequency=settings.interp_vib * wavenumber_to_hz,
            alpha=settings.alpha,
            bav=resolve_bav(settings.low_vib_treatment, settings.bav_preset),
            hg_entropy=settings.hg_entropy,
        )


@dataclass(frozen=True)
class ModeFrequencies:
    """One mode's frequency (Hz) after each quantity's scale factor."""

    entropy: float
    heat: float
    heat_capacity: float

    @classmethod
    def scaled(cls, frequency, scale_entropy=1.0, scale_heat=1.0, scale_cv=1.0):
        return cls(
            entropy=frequency * scale_entropy,
            heat=frequency * scale_heat,
            heat_capacity=frequency * scale_cv,
        )


@dataclass(frozen=True)
class ModeContribution:
    """Per-mode entropy (J/mol/K), U - U0 (J/mol) and Cv (J/mol/K)."""

    entropy: float
    energy: float
    heat_capacity: float


def _reduced(frequency, temperature):
    return units._hplanck * frequency / (units._k * temperature)


def harmonic_entropy(frequency, temperature):
    """
    S = R * [x / (exp(x) - 1) - ln(1 - exp(-x))], x = h*nu / (k*T)
    """
    x = _reduced(frequency, temperature)
    if x > _MAX_EXPONENT:
        return 0.0
    return R * (x / math.expm1(x) - math.log(-math.expm1(-x)))


def harmonic_energy(frequency, temperature):
    """Thermal part of the oscillator energy, U - U0 = R*theta/(exp(x)-1)."""
    x = _reduced(frequency, temperature)
    if x > _MAX_EXPONENT:
        return 0.0
    return R * temperature * x / math.expm1(x)


def harmonic_heat_capacity(frequency, temperature):
    """Cv = R * x^2 * exp(x) / (exp(x) - 1)^2"""
    x = _reduced(frequency, temperature)
    if x > _MAX_EXPONENT:
        return 0.0
    # exp(x)/(exp(x)-1)^2 written with exp(-x) to stay finite
    return R * x**2 * math.exp(-x) / math.expm1(-x) ** 2


def harmonic_partition_function(frequency, temperature):
    """Per-mode q referenced to v=0: 1 / (1 - exp(-x))."""
    x = _reduced(frequency, temperature)
    if x > _MAX_EXPONENT:
        return 1.0
    return -1.0 / math.expm1(-x)


def free_rotor_entropy(frequency, temperature, bav):
    """
    Entropy of a free rotor with the moment of inertia of the mode,
    damped towards the average molecular moment `bav`.

    mu = h / (8 pi^2 nu);  mu' = mu * bav / (mu + bav)
    S_R = R * (1/2 + ln(sqrt(8 pi^3 mu' k T / h^2)))
    """
    mu = units._hplanck / (8 * np.pi**2 * frequency)
    mu_prime = mu * bav / (mu + bav)
    return R * (
        0.5
        + math.log(
            math.sqrt(
                8
                * np.pi**3
                * mu_prime
                * units._k
                * temperature
                / units._hplanck**2
            )
        )
    )


def damping_function(frequency, cutoff, alpha):
    """w = 1 / (1 + (nu0 / nu)^alpha)"""
    return 1.0 / (1.0 + (cutoff / frequency) ** alpha)


def _interpolated_entropy(frequency, temperature, params):
    w = damping_function(
        frequency, params.interpolation_frequency, params.alpha
    )
    return w * harmonic_entropy(frequency, temperature) + (
        1 - w
    ) * free_rotor_entropy(frequency, temperature, params.bav)


def _interpolated_energy(frequency, temperature, params):
    w = damping_function(
        frequency, params.interpolation_frequency, params.alpha
    )
    return w * harmonic_energy(frequency, temperature) + (
        1 - w
    ) * 0.5 * R * temperature


def _interpolated_heat_capacity(frequency, temperature, params):
    w = damping_function(
        frequency, params.interpolation_frequency, params.alpha
    )
    return w * harmonic_heat_capacity(frequency, temperature) + (
        1 - w
    ) * 0.5 * R


def harmonic_mode(frequencies, temperature, params):
    return ModeContribution(
        entropy=harmonic_entropy(frequencies.entropy, temperature),
        energy=harmonic_energy(frequencies.heat, temperature),
        heat_capacity=harmonic_heat_capacity(
            frequencies.heat_capacity, temperature
        ),
    )


def truhlar_mode(frequencies, temperature, params):
    cutoff = params.raise_frequency
    return ModeContribution(
        entropy=harmonic_entropy(max(frequencies.entropy, cutoff), temperature),
        energy=harmonic_energy(max(frequencies.heat, cutoff), temperature),
        heat_capacity=harmonic_heat_capacity(
            max(frequencies.heat_capacity, cutoff), temperature
        ),
    )


def grimme_mode(frequencies, temperature, params):
    return ModeContribution(
        entropy=_interpolated_entropy(frequencies.entropy, temperature, params),
        energy=harmonic_energy(frequencies.heat, temperature),
        heat_capacity=harmonic_heat_capacity(
            frequencies.heat_capacity, temperature
        ),
    )


def minenkov_mode(frequencies, temperature, params):
    return ModeContribution(
        entropy=_interpolated_entropy(frequencies.entropy, temperature, params),
        energy=_interpolated_energy(frequencies.heat, temperature, params),
        heat_capacity=_interpolated_heat_capacity(
            frequencies.heat_capacity, temperature, params
        ),
    )


def headgordon_mode(frequencies, temperature, params):
    if params.hg_entropy:
        entropy = _interpolated_entropy(
            frequencies.entropy, temperature, params
        )
    else:
        entropy = harmonic_entropy(frequencies.entropy, temperature)
    return ModeContribution(
        entropy=entropy,
        energy=_interpolated_energy(frequencies.heat, temperature, params),
        heat_capacity=_interpolated_heat_capacity(
            frequencies.heat_capacity, temperature, params
        ),
    )


TREATMENTS = {
    LowVibTreatment.HARMONIC: harmonic_mode,
    LowVibTreatment.TRUHLAR: truhlar_mode,
    LowVibTreatment.GRIMME: grimme_mode,
    LowVibTreatment.MINENKOV: minenkov_mode,
    LowVibTreatment.HEADGORDON: headgordon_mode,
}


def mode_contribution(treatment, frequencies, temperature, params):
    """Evaluate one real mode with the selected treatment."""
    return TREATMENTS[LowVibTreatment.from_string(treatment)](
        frequencies, temperature, params
    )


def partition_function_frequency(treatment, frequency, params):
    """Frequency entering the vibrational partition function.

    Only the Truhlar treatment changes it, by raising low modes.
    """
    if LowVibTreatment.from_string(treatment) == LowVibTreatment.TRUHLAR:
        return max(frequency, params.raise_frequency)
    return frequency
