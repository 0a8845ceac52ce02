import copy
import logging
import os

import numpy as np
import yaml
from ase.symbols import Symbols

from thermosmart.io.yaml import YAMLFile
from thermosmart.utils.geometry import (
    calculate_moments_of_inertia,
    center_of_mass,
)
from thermosmart.utils.periodictable import PeriodicTable
from thermosmart.utils.utils import InputDataError

p = PeriodicTable()

logger = logging.getLogger(__name__)

# principal moments below this (amu Angstrom^2) are treated as zero
MOMENT_ZERO_TOLERANCE = 1e-3


class MolecularSystem:
    """Class to represent a molecular system for thermochemical analysis.

    Parameters:

    symbols: a list of element symbols.
    positions: a numpy array of atomic positions in Angstrom.
        The shape of the array should be (n, 3) where n is the number
        of atoms in the system.
    frequencies: vibrational wavenumbers in cm^-1. Negative values
        denote imaginary modes.
    energy: float
        The electronic energy in Hartree.
    multiplicity: integer
        The spin multiplicity.
    masses: optional atomic masses in amu, one per atom. Only used when
        the settings ask for input masses.
    electronic_levels: optional list of (energy in eV relative to the
        ground level, degeneracy) pairs.
    point_group: optional point group label read with the structure.
    label: name used for output files.
    """

    def __init__(
        self,
        symbols=None,
        positions=None,
        frequencies=None,
        energy=0.0,
        multiplicity=1,
        masses=None,
        electronic_levels=None,
        point_group=None,
        label=None,
    ):
        if symbols is None or len(symbols) == 0:
            raise InputDataError("No atoms loaded: symbols are empty.")
        if positions is None:
            raise InputDataError("No atomic positions loaded.")

        self.symbols = [p.to_element(s) for s in symbols]
        self.positions = np.array(positions, dtype=float).reshape(-1, 3)
        if len(self.symbols) != len(self.positions):
            logger.debug(f"Number of symbols: {len(self.symbols)}")
            logger.debug(f"Number of positions: {len(self.positions)}")
            raise InputDataError(
                "The number of symbols and positions should be the same!"
            )

        self.frequencies = (
            np.array(frequencies, dtype=float).ravel()
            if frequencies is not None
            else None
        )
        self.energy = float(energy) if energy is not None else 0.0
        self.multiplicity = int(multiplicity) if multiplicity else 1
        self.input_masses = (
            np.array(masses, dtype=float).ravel()
            if masses is not None
            else None
        )
        if self.input_masses is not None and len(self.input_masses) != len(
            self.symbols
        ):
            raise InputDataError(
                f"Got {len(self.input_masses)} masses for "
                f"{len(self.symbols)} atoms."
            )
        self.masses = np.array(
            [p.to_atomic_mass(s) for s in self.symbols], dtype=float
        )
        self.electronic_levels = (
            [(float(e), int(g)) for e, g in electronic_levels]
            if electronic_levels
            else None
        )
        self.point_group = point_group
        self.rotational_symmetry_number = None
        self.label = label or self.empirical_formula
        self.is_prepared = False
        self.num_converted_frequencies = 0

    def __len__(self):
        return len(self.symbols)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}<{self.label}, "
            f"{self.num_atoms} atoms, {self.num_frequencies} modes>"
        )

    @property
    def num_atoms(self):
        return len(self.symbols)

    @property
    def num_frequencies(self):
        if self.frequencies is None:
            return 0
        return len(self.frequencies)

    @property
    def empirical_formula(self):
        """
        Empirical chemical formula using Hill notation.
        """
        return Symbols.fromsymbols(self.symbols).get_chemical_formula(
            mode="hill", empirical=True
        )

    @property
    def total_mass(self):
        """Sum of atomic masses in amu."""
        return float(np.sum(self.masses))

    @property
    def center_of_mass(self):
        return center_of_mass(self.masses, self.positions)

    @property
    def moments_of_inertia(self):
        """
        Principal moments of inertia in amu Angstrom^2, ascending.
        """
        if self.num_atoms == 1:
            return np.zeros(3)
        _, eigenvalues, _ = calculate_moments_of_inertia(
            self.masses, self.positions
        )
        return eigenvalues

    @property
    def is_monoatomic(self):
        """
        Single atom, or all atoms collapsed onto one point.
        """
        return self.num_atoms == 1 or (
            np.max(self.moments_of_inertia) < MOMENT_ZERO_TOLERANCE
        )

    @property
    def is_linear(self):
        if self.is_monoatomic:
            return False
        return np.min(self.moments_of_inertia) < MOMENT_ZERO_TOLERANCE

    @property
    def real_frequencies(self):
        """Positive wavenumbers; zero-wavenumber modes carry no thermal
        contribution and are skipped."""
        if self.frequencies is None:
            return np.array([])
        return self.frequencies[self.frequencies > 0.0]

    @property
    def imaginary_frequencies(self):
        if self.frequencies is None:
            return np.array([])
        return self.frequencies[self.frequencies < 0.0]

    @property
    def num_imaginary_frequencies(self):
        return len(self.imaginary_frequencies)

    @property
    def electronic_energy_joules_per_mol(self):
        from thermosmart.utils.constants import energy_conversion

        return energy_conversion("hartree", "j/mol", self.energy)

    def check_frequency_data(self):
        """Raise InputDataError if frequencies are required but absent.

        A single atom has no vibrations, so an empty list is accepted.
        """
        if self.frequencies is None and not self.is_monoatomic:
            raise InputDataError(
                f"No vibrational frequencies found for {self.label}."
            )

    def convert_imaginary_frequencies(self, threshold):
        """
        Treat imaginary modes with |nu| below `threshold` cm^-1 as real.

        Returns the number of modes converted. Running the conversion
        again with the same threshold changes nothing.
        """
        if self.is_prepared:
            raise RuntimeError(
                f"{self.label} is read-only after preparation."
            )
        if self.frequencies is None or not threshold or threshold <= 0:
            return 0
        mask = (self.frequencies < 0.0) & (
            np.abs(self.frequencies) < threshold
        )
        num_converted = int(np.count_nonzero(mask))
        if num_converted:
            converted = ", ".join(f"{v:.2f}" for v in self.frequencies[mask])
            logger.info(
                f"{self.label}: {num_converted} imaginary mode(s) below "
                f"{threshold} cm^-1 treated as real: {converted}"
            )
            self.frequencies = np.where(
                mask, np.abs(self.frequencies), self.frequencies
            )
        self.num_converted_frequencies += num_converted
        return num_converted

    def normalize(self, settings):
        """
        Finalize masses, electronic levels, energy and point group.

        After this pass the system is read-only; arrays are locked so
        that parallel evaluation cannot mutate them.
        """
        if self.is_prepared:
            raise RuntimeError(
                f"{self.label} is read-only after preparation."
            )
        self.check_frequency_data()

        if settings.mass_mode == "input":
            if self.input_masses is None:
                logger.warning(
                    f"{self.label}: no masses given in input; "
                    "using element masses."
                )
            else:
                self.masses = self.input_masses.copy()
        elif settings.mass_mode == "isotope":
            self.masses = np.array(
                [p.to_most_abundant_atomic_mass(s) for s in self.symbols],
                dtype=float,
            )
        if np.any(self.masses <= 0.0):
            raise InputDataError(f"{self.label}: atomic masses must be > 0.")

        if self.electronic_levels is None:
            self.electronic_levels = [(0.0, max(self.multiplicity, 1))]
        for level_energy, degeneracy in self.electronic_levels:
            if degeneracy < 1:
                raise InputDataError(
                    f"{self.label}: electronic level at {level_energy} eV "
                    f"has degeneracy {degeneracy} < 1."
                )

        if settings.external_energy:
            logger.info(
                f"{self.label}: electronic energy {self.energy} Hartree "
                f"replaced by {settings.external_energy} Hartree."
            )
            self.energy = float(settings.external_energy)

        from thermosmart.analysis.symmetry import SymmetryDetector

        forced = settings.point_group or self.point_group
        self.point_group, self.rotational_symmetry_number = SymmetryDetector(
            symbols=self.symbols,
            positions=self.positions,
            masses=self.masses,
        ).resolve(point_group=forced)
        logger.info(
            f"{self.label}: point group {self.point_group}, "
            f"rotational symmetry number {self.rotational_symmetry_number}."
        )

        for array in (self.positions, self.masses, self.frequencies):
            if array is not None:
                array.flags.writeable = False
        self.electronic_levels = tuple(self.electronic_levels)
        self.is_prepared = True
        return self

    def prepare(self, settings):
        """Run both preparation passes in order."""
        self.convert_imaginary_frequencies(settings.imag_real)
        return self.normalize(settings)

    def copy(self):
        return copy.deepcopy(self)

    def to_dict(self):
        data = {
            "label": self.label,
            "symbols": list(self.symbols),
            "positions": self.positions.tolist(),
            "frequencies": (
                self.frequencies.tolist()
                if self.frequencies is not None
                else None
            ),
            "energy": self.energy,
            "multiplicity": self.multiplicity,
        }
        if self.input_masses is not None:
            data["masses"] = self.input_masses.tolist()
        if self.electronic_levels is not None:
            data["electronic_levels"] = [
                [e, g] for e, g in self.electronic_levels
            ]
        if self.point_group is not None:
            data["point_group"] = self.point_group
        return data

    @classmethod
    def from_dict(cls, data, label=None):
        """
        Build a system from a mapping such as the one written by `to_dict`.

        Raises:
            InputDataError: If the mapping is malformed (wrong types,
                unknown elements, unpackable electronic levels).
        """
        if not isinstance(data, dict):
            raise InputDataError(
                f"{label}: molecule data must be a mapping, "
                f"got {type(data).__name__}."
            )
        known = {
            "label",
            "symbols",
            "positions",
            "frequencies",
            "energy",
            "multiplicity",
            "masses",
            "electronic_levels",
            "point_group",
        }
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown molecule keys: {sorted(unknown)}")
        try:
            return cls(
                symbols=data.get("symbols"),
                positions=data.get("positions"),
                frequencies=data.get("frequencies"),
                energy=data.get("energy", 0.0),
                multiplicity=data.get("multiplicity", 1),
                masses=data.get("masses"),
                electronic_levels=data.get("electronic_levels"),
                point_group=data.get("point_group"),
                label=data.get("label") or label,
            )
        except InputDataError:
            raise
        except (TypeError, AttributeError, ValueError) as e:
            raise InputDataError(
                f"{data.get('label') or label}: malformed molecule data: {e}"
            ) from e

    @classmethod
    def from_yaml(cls, filename):
        """Read a molecular system from a YAML description."""
        if not os.path.exists(filename):
            raise FileNotFoundError(f"File {filename} does not exist.")
        yaml_file = YAMLFile(filename=filename)
        logger.debug(f"Reading molecular system from {filename}")
        try:
            data = yaml_file.yaml_contents_dict
        except yaml.YAMLError as e:
            raise InputDataError(
                f"{yaml_file.basename}: invalid YAML in {filename}: {e}"
            ) from e
        return cls.from_dict(data, label=yaml_file.basename)

    def write_yaml(self, filename):
        YAMLFile(filename=filename).write(self.to_dict())
