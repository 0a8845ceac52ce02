"""
Periodic table lookups backed by ASE element data.
"""

from ase.data import atomic_masses_common
from ase.data import atomic_masses_iupac2016 as atomic_masses
from ase.data import chemical_symbols as elements


class PeriodicTable:
    """Convert between element symbols, atomic numbers and masses."""

    PERIODIC_TABLE = [str(element) for element in elements]

    def to_element(self, element_str):
        """
        Normalize an element symbol's capitalization ("CL" -> "Cl").
        """
        element_str = element_str.strip()
        return element_str[0].upper() + element_str[1:].lower()

    def to_atomic_number(self, symbol):
        """
        Convert element symbol to atomic number.

        Raises:
            ValueError: If the symbol is not a known element.
        """
        symbol = self.to_element(symbol)
        if symbol not in self.PERIODIC_TABLE or symbol == "X":
            raise ValueError(f"Unknown element symbol: {symbol}")
        return self.PERIODIC_TABLE.index(symbol)

    def to_atomic_mass(self, symbol):
        """Standard (abundance-averaged) atomic mass in amu."""
        return float(atomic_masses[self.to_atomic_number(symbol)])

    def to_most_abundant_atomic_mass(self, symbol):
        """Mass of the most abundant isotope in amu."""
        return float(atomic_masses_common[self.to_atomic_number(symbol)])
