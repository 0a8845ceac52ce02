"""Constants not found in ase units."""

import logging

from ase import units

logger = logging.getLogger(__name__)


atm_to_pa = 101325  # 1 atm = 101325 Pa
R = units._k * units._Nav  # Ideal gas constant
amu_to_kg = 1 * units._amu  # 1 amu = 1.66053906660e-27 kg
angstrom_to_meter = units.Ang / units.m  # 1 Angstrom = 1e-10 m
hartree_to_joules = 4.35974434e-18  # 1 Hartree = 4.35974434 × 10^-18 Joules
ev_to_joules = units._e  # 1 eV = 1.602176634e-19 J
cal_to_joules = 4.184  # 1 Calorie = 4.184 Joules
wavenumber_to_hz = units._c * 1e2  # cm^-1 to Hz

# Conversion factors for energy units
joule_per_mol_to_eV = 1.0364269574711572e-05  # J/mol to eV
joule_per_mol_to_kcal_per_mol = 1 / 4184  # J/mol to kcal/mol
joule_per_mol_to_kJ_per_mol = 0.001  # J/mol to kJ/mol
joule_per_mol_to_hartree = 1 / (
    hartree_to_joules * units._Nav
)  # J/mol to Hartree

# Average molecular moments of inertia (kg m^2) for the free-rotor
# reference of the quasi-RRHO entropy
BAV_PRESETS = {
    "grimme": 1.0e-44,
    "qchem": 2.79928e-46,
}


def energy_conversion(from_unit, to_unit, value=1.0):
    """
    Convert energy values between different units.

    Parameters
    ----------
    from_unit : str
        The unit to convert from. Options: 'hartree', 'eV', 'kcal/mol',
        'kJ/mol', 'J/mol'.
    to_unit : str
        The unit to convert to. Same options as `from_unit`.
    value : float, optional
        The energy value to convert. Default is 1.0 (returns conversion
        factor).

    Returns
    -------
    float
        The converted energy value, or None if `value` is None.

    Raises
    ------
    ValueError
        If from_unit or to_unit is not supported.
    """
    if value is None:
        return
    valid_units = ["hartree", "ev", "kcal/mol", "kj/mol", "j/mol"]
    if from_unit.lower() not in valid_units:
        raise ValueError(
            f"Unsupported from_unit: {from_unit}. Choose from {valid_units}"
        )
    if to_unit.lower() not in valid_units:
        raise ValueError(
            f"Unsupported to_unit: {to_unit}. Choose from {valid_units}"
        )

    # everything goes through J/mol, the unit used inside the engine
    to_j_per_mol = {
        "hartree": hartree_to_joules * units._Nav,
        "ev": 1 / joule_per_mol_to_eV,
        "kcal/mol": 4184.0,
        "kj/mol": 1000.0,
        "j/mol": 1.0,
    }
    value_in_j_per_mol = value * to_j_per_mol[from_unit.lower()]
    return value_in_j_per_mol / to_j_per_mol[to_unit.lower()]


def entropy_conversion(from_unit, to_unit, value=1.0):
    """Convert entropy / heat capacity between J/mol/K and cal/mol/K."""
    if value is None:
        return
    to_j_per_mol_k = {"j/mol/k": 1.0, "cal/mol/k": cal_to_joules}
    for unit in (from_unit, to_unit):
        if unit.lower() not in to_j_per_mol_k:
            raise ValueError(
                f"Unsupported entropy unit: {unit}. "
                f"Choose from {list(to_j_per_mol_k)}"
            )
    return (
        value
        * to_j_per_mol_k[from_unit.lower()]
        / to_j_per_mol_k[to_unit.lower()]
    )
