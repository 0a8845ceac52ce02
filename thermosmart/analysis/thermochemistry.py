import logging
import math
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType

import numpy as np
from ase import units

from thermosmart.analysis.lowvib import (
    LowVibParameters,
    LowVibTreatment,
    ModeFrequencies,
    harmonic_partition_function,
    mode_contribution,
    partition_function_frequency,
)
from thermosmart.utils.constants import (
    R,
    amu_to_kg,
    angstrom_to_meter,
    atm_to_pa,
    energy_conversion,
    entropy_conversion,
    ev_to_joules,
    wavenumber_to_hz,
)
from thermosmart.utils.utils import parse_concentration

logger = logging.getLogger(__name__)


def _exp_or_inf(value):
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


@dataclass(frozen=True)
class ComponentContribution:
    """Contribution of one degree of freedom, in J/mol and J/mol/K.

    ln_q is the natural log of the partition function (per molecule; the
    vibrational one is referenced to v=0).
    """

    entropy: float = 0.0
    energy: float = 0.0
    heat_capacity: float = 0.0
    ln_q: float = 0.0


@dataclass(frozen=True)
class ThermoResult:
    """Thermochemistry at one (T, P) point, stored in SI units.

    Energies are in J/mol, entropy and heat capacities in J/mol/K.
    Corrections include the zero-point energy.

    Both partition functions are built from the same vibrational
    frequencies (heat-scaled, raised under Truhlar); q(bot) differs from
    q(V=0) by the zero-point term of exactly those frequencies, which can
    differ from `zero_point_energy` when scale_zpe != scale_heat.
    `components` is a read-only mapping.
    """

    temperature: float
    pressure: float
    zero_point_energy: float
    internal_energy_correction: float
    enthalpy_correction: float
    gibbs_free_energy_correction: float
    entropy: float
    heat_capacity_v: float
    heat_capacity_p: float
    ln_partition_function_v0: float
    ln_partition_function_bot: float
    electronic_energy: float
    num_imaginary_frequencies: int = 0
    components: MappingProxyType = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )

    @property
    def partition_function_v0(self):
        return _exp_or_inf(self.ln_partition_function_v0)

    @property
    def partition_function_bot(self):
        return _exp_or_inf(self.ln_partition_function_bot)

    def corrections(self, unit="kcal/mol"):
        """Thermal corrections (U, H, G) in `unit`."""
        return tuple(
            energy_conversion("j/mol", unit, value)
            for value in (
                self.internal_energy_correction,
                self.enthalpy_correction,
                self.gibbs_free_energy_correction,
            )
        )

    def absolute_energies(self, unit="hartree"):
        """Electronic energy plus corrections (U, H, G) in `unit`."""
        return tuple(
            energy_conversion("j/mol", unit, value + self.electronic_energy)
            for value in (
                self.internal_energy_correction,
                self.enthalpy_correction,
                self.gibbs_free_energy_correction,
            )
        )

    def entropy_terms(self, unit="cal/mol/k"):
        """(S, Cv, Cp) in `unit`."""
        return tuple(
            entropy_conversion("j/mol/k", unit, value)
            for value in (self.entropy, self.heat_capacity_v, self.heat_capacity_p)
        )

    def partition_functions_per_mole(self):
        """(q(V=0)/NA, q(bot)/NA)."""
        ln_na = math.log(units._Nav)
        return (
            _exp_or_inf(self.ln_partition_function_v0 - ln_na),
            _exp_or_inf(self.ln_partition_function_bot - ln_na),
        )


class Thermochemistry:
    """Class for thermochemistry analysis using SI units.

    Evaluates one prepared MolecularSystem at one temperature and
    pressure. The system is only read.

    Args:
        system: MolecularSystem. Must have been prepared (imaginary
            conversion and normalization) beforehand.
        settings: ThermoSettings.
        temperature: float. Temperature in K; defaults to
            settings.temperature.
        pressure: float. Pressure in atm; defaults to settings.pressure.
        params: LowVibParameters. Built from the settings when omitted.
        mode_executor: callable with the signature of the builtin `map`,
            used to evaluate chunks of vibrational modes. Results are
            always summed in mode order, so any executor gives the same
            numbers.
        chunk_size: int. Number of modes per executor task.
    """

    def __init__(
        self,
        system,
        settings,
        temperature=None,
        pressure=None,
        params=None,
        mode_executor=None,
        chunk_size=16,
    ):
        if not system.is_prepared:
            raise RuntimeError(
                f"{system.label} must be prepared before evaluation."
            )
        system.check_frequency_data()
        self.system = system
        self.settings = settings
        self.T = float(
            temperature if temperature is not None else settings.temperature
        )
        self.pressure = float(
            pressure if pressure is not None else settings.pressure
        )
        if self.T <= 0:
            raise ValueError(f"Temperature must be positive, got {self.T} K.")
        if self.pressure <= 0:
            raise ValueError(
                f"Pressure must be positive, got {self.pressure} atm."
            )
        self.P = self.pressure * atm_to_pa  # Pa
        self.treatment = LowVibTreatment.from_string(settings.low_vib_treatment)
        self.params = params or LowVibParameters.from_settings(settings)
        self.mode_executor = mode_executor or map
        self.chunk_size = max(int(chunk_size), 1)

        self.m = system.total_mass * amu_to_kg  # kg per molecule
        concentration = parse_concentration(settings.concentration)
        # mol/L to molecules/m^3
        self.c = (
            concentration * 1000 * units._Nav
            if concentration is not None
            else None
        )
        # amu Angstrom^2 to kg m^2
        self.I = [
            i * amu_to_kg * angstrom_to_meter**2
            for i in system.moments_of_inertia
        ]
        # cm^-1 to Hz
        self.v = [k * wavenumber_to_hz for k in system.real_frequencies]

    @property
    def skip_external_motion(self):
        """Condensed-phase mode drops translation and rotation."""
        return bool(self.settings.ip_mode)

    @cached_property
    def translational(self):
        """Translational contribution.

        q_t = (2 pi m k T / h^2)^(3/2) * (k T / P), or * (1 / c) when a
        concentration (molecules m^-3) replaces the pressure.
        S_t = R * (ln q_t + 5/2); U_t = 3/2 R T; Cv_t = 3/2 R
        """
        if self.skip_external_motion:
            return ComponentContribution()
        thermal = (
            2 * np.pi * self.m * units._k * self.T / units._hplanck**2
        ) ** (3 / 2)
        volume = 1 / self.c if self.c is not None else units._k * self.T / self.P
        ln_q = math.log(thermal * volume)
        return ComponentContribution(
            entropy=R * (ln_q + 1 + 3 / 2),
            energy=3 / 2 * R * self.T,
            heat_capacity=3 / 2 * R,
            ln_q=ln_q,
        )

    @property
    def rotational_symmetry_number(self):
        return self.system.rotational_symmetry_number

    @cached_property
    def rotational(self):
        """Rotational contribution in the classical limit.

        Linear:    q_r = T / (sigma * theta_r)
        Nonlinear: q_r = sqrt(pi) / sigma * T^(3/2) / sqrt(theta_a theta_b theta_c)
        with theta_i = h^2 / (8 pi^2 I_i k). A single atom contributes
        nothing.
        """
        if self.skip_external_motion or self.system.is_monoatomic:
            return ComponentContribution()
        sigma = self.rotational_symmetry_number
        if self.system.is_linear:
            theta_r = units._hplanck**2 / (8 * np.pi**2 * self.I[-1] * units._k)
            ln_q = math.log(self.T / (sigma * theta_r))
            return ComponentContribution(
                entropy=R * (ln_q + 1),
                energy=R * self.T,
                heat_capacity=R,
                ln_q=ln_q,
            )
        theta_ri = [
            units._hplanck**2 / (8 * np.pi**2 * i * units._k) for i in self.I
        ]
        ln_q = math.log(
            np.pi ** (1 / 2)
            / sigma
            * (self.T ** (3 / 2) / np.prod(theta_ri) ** (1 / 2))
        )
        return ComponentContribution(
            entropy=R * (ln_q + 3 / 2),
            energy=3 / 2 * R * self.T,
            heat_capacity=3 / 2 * R,
            ln_q=ln_q,
        )

    @cached_property
    def electronic(self):
        """Boltzmann sum over (energy in eV, degeneracy) levels.

        q_e = sum g_i exp(-e_i / kT)
        U_e = N_A <e>;  S_e = R ln q_e + U_e / T
        Cv_e = R * (<e^2> - <e>^2) / (kT)^2
        """
        kT = units._k * self.T
        levels = [
            (energy * ev_to_joules, degeneracy)
            for energy, degeneracy in self.system.electronic_levels
        ]
        ground = min(e for e, _ in levels)
        weights = [g * math.exp(-(e - ground) / kT) for e, g in levels]
        q = math.fsum(weights)
        mean = math.fsum(w * e for w, (e, _) in zip(weights, levels)) / q
        mean_sq = math.fsum(w * e**2 for w, (e, _) in zip(weights, levels)) / q
        energy = units._Nav * mean
        return ComponentContribution(
            entropy=R * math.log(q) + (energy - units._Nav * ground) / self.T,
            energy=energy,
            heat_capacity=R * max(mean_sq - mean**2, 0.0) / kT**2,
            ln_q=math.log(q) - ground / kT,
        )

    @cached_property
    def zero_point_energy(self):
        """ZPE = 1/2 * sum(h * nu) * N_A over real modes, in J/mol."""
        return (
            0.5
            * units._hplanck
            * units._Nav
            * math.fsum(v * self.settings.scale_zpe for v in self.v)
        )

    def _evaluate_modes(self, frequencies):
        s = self.settings
        return [
            mode_contribution(
                self.treatment,
                ModeFrequencies.scaled(
                    v, s.scale_entropy, s.scale_heat, s.scale_cv
                ),
                self.T,
                self.params,
            )
            for v in frequencies
        ]

    @cached_property
    def mode_contributions(self):
        """Per-mode contributions, in the order of the real frequencies."""
        chunks = [
            self.v[i : i + self.chunk_size]
            for i in range(0, len(self.v), self.chunk_size)
        ]
        contributions = []
        for chunk_result in self.mode_executor(self._evaluate_modes, chunks):
            contributions.extend(chunk_result)
        return contributions

    @cached_property
    def partition_function_frequencies(self):
        """Frequencies (Hz) entering the vibrational partition function."""
        return [
            partition_function_frequency(
                self.treatment, v * self.settings.scale_heat, self.params
            )
            for v in self.v
        ]

    @cached_property
    def partition_function_zero_point(self):
        """Zero-point term (J/mol) of `partition_function_frequencies`;
        it separates q(bot) from q(V=0)."""
        return (
            0.5
            * units._hplanck
            * units._Nav
            * math.fsum(self.partition_function_frequencies)
        )

    @cached_property
    def vibrational(self):
        """Sum of the per-mode contributions; ln_q is referenced to v=0."""
        modes = self.mode_contributions
        ln_q = math.fsum(
            math.log(harmonic_partition_function(v, self.T))
            for v in self.partition_function_frequencies
        )
        return ComponentContribution(
            entropy=math.fsum(m.entropy for m in modes),
            energy=math.fsum(m.energy for m in modes),
            heat_capacity=math.fsum(m.heat_capacity for m in modes),
            ln_q=ln_q,
        )

    @property
    def components(self):
        return {
            "translation": self.translational,
            "rotation": self.rotational,
            "vibration": self.vibrational,
            "electronic": self.electronic,
        }

    def mode_table(self):
        """Rows of (wavenumber cm^-1, S, U - U0, Cv) for each real mode."""
        return [
            (
                wavenumber,
                contribution.entropy,
                contribution.energy,
                contribution.heat_capacity,
            )
            for wavenumber, contribution in zip(
                self.system.real_frequencies, self.mode_contributions
            )
        ]

    def compute(self):
        """Combine all contributions into a ThermoResult."""
        logger.debug(
            f"Evaluating {self.system.label} at T = {self.T} K, "
            f"P = {self.pressure} atm"
        )
        components = self.components
        internal_energy = (
            math.fsum(c.energy for c in components.values())
            + self.zero_point_energy
        )
        entropy = math.fsum(c.entropy for c in components.values())
        heat_capacity_v = math.fsum(
            c.heat_capacity for c in components.values()
        )
        enthalpy = internal_energy + R * self.T
        gibbs = enthalpy - self.T * entropy
        ln_q_v0 = math.fsum(c.ln_q for c in components.values())
        ln_q_bot = ln_q_v0 - self.partition_function_zero_point / (
            R * self.T
        )
        return ThermoResult(
            temperature=self.T,
            pressure=self.pressure,
            zero_point_energy=self.zero_point_energy,
            internal_energy_correction=internal_energy,
            enthalpy_correction=enthalpy,
            gibbs_free_energy_correction=gibbs,
            entropy=entropy,
            heat_capacity_v=heat_capacity_v,
            heat_capacity_p=heat_capacity_v + R,
            ln_partition_function_v0=ln_q_v0,
            ln_partition_function_bot=ln_q_bot,
            electronic_energy=self.system.electronic_energy_joules_per_mol,
            num_imaginary_frequencies=self.system.num_imaginary_frequencies,
            components=MappingProxyType(dict(components)),
        )
