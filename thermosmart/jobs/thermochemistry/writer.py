"""Text reports for thermochemistry results."""

import logging
import os
from contextlib import nullcontext

from thermosmart.analysis.lowvib import LowVibTreatment
from thermosmart.utils.constants import energy_conversion, entropy_conversion
from thermosmart.utils.references import (
    grimme_quasi_rrho_entropy_ref,
    head_gordon_damping_function_ref,
    head_gordon_quasi_rrho_enthalpy_ref,
    minenkov_quasi_rrho_ref,
    qrrho_header,
    truhlar_quasi_rrho_entropy_ref,
)

logger = logging.getLogger(__name__)

TREATMENT_REFERENCES = {
    LowVibTreatment.HARMONIC: [],
    LowVibTreatment.TRUHLAR: [truhlar_quasi_rrho_entropy_ref],
    LowVibTreatment.GRIMME: [
        grimme_quasi_rrho_entropy_ref,
        head_gordon_damping_function_ref,
    ],
    LowVibTreatment.MINENKOV: [
        minenkov_quasi_rrho_ref,
        grimme_quasi_rrho_entropy_ref,
        head_gordon_damping_function_ref,
    ],
    LowVibTreatment.HEADGORDON: [
        head_gordon_quasi_rrho_enthalpy_ref,
        head_gordon_damping_function_ref,
    ],
}


class ThermochemistryWriter:
    """Write scan tables, single-point reports and per-mode tables.

    Args:
        label: basename of the output files.
        folder: output directory.
        file_manager: optional FileHandleManager bounding open files.
    """

    def __init__(self, label, folder=".", file_manager=None):
        self.label = label
        self.folder = folder
        self.file_manager = file_manager

    def _path(self, extension):
        return os.path.join(self.folder, f"{self.label}.{extension}")

    def _slot(self):
        if self.file_manager is None:
            return nullcontext()
        return self.file_manager.acquire()

    def _write(self, extension, text):
        path = self._path(extension)
        with self._slot():
            with open(path, "w") as f:
                f.write(text)
        logger.debug(f"Wrote {path}")
        return path

    @staticmethod
    def energy_table(results):
        lines = [
            f"{'T(K)':>10s}{'P(atm)':>10s}"
            f"{'Ucorr':>12s}{'Hcorr':>12s}{'Gcorr':>12s}  (kcal/mol)"
            f"{'U':>18s}{'H':>18s}{'G':>18s}  (a.u.)"
        ]
        for r in results:
            u_corr, h_corr, g_corr = r.corrections("kcal/mol")
            u, h, g = r.absolute_energies("hartree")
            lines.append(
                f"{r.temperature:10.3f}{r.pressure:10.4f}"
                f"{u_corr:12.4f}{h_corr:12.4f}{g_corr:12.4f}{'':12s}"
                f"{u:18.8f}{h:18.8f}{g:18.8f}"
            )
        return "\n".join(lines) + "\n"

    @staticmethod
    def entropy_table(results):
        lines = [
            f"{'T(K)':>10s}{'P(atm)':>10s}"
            f"{'S':>12s}{'CV':>12s}{'CP':>12s}  (cal/mol/K)"
            f"{'q(V=0)/NA':>16s}{'q(bot)/NA':>16s}"
        ]
        for r in results:
            s, cv, cp = r.entropy_terms("cal/mol/k")
            q_v0, q_bot = r.partition_functions_per_mole()
            lines.append(
                f"{r.temperature:10.3f}{r.pressure:10.4f}"
                f"{s:12.4f}{cv:12.4f}{cp:12.4f}{'':13s}"
                f"{q_v0:16.6E}{q_bot:16.6E}"
            )
        return "\n".join(lines) + "\n"

    def write_scan(self, results):
        """Write <label>.UHG and <label>.SCq; rows keep the given order."""
        return [
            self._write("UHG", self.energy_table(results)),
            self._write("SCq", self.entropy_table(results)),
        ]

    def single_point_report(self, system, settings, result):
        treatment = LowVibTreatment.from_string(settings.low_vib_treatment)
        lines = [
            f"   Thermochemistry for {system.label}",
            "",
            f"   Temperature           : {result.temperature:.2f} K",
            f"   Pressure              : {result.pressure:.4f} atm",
        ]
        if settings.concentration not in ("0", ""):
            lines.append(
                f"   Concentration         : {settings.concentration} mol/L"
            )
        lines += [
            f"   Point group           : {system.point_group}",
            f"   Symmetry number       : {system.rotational_symmetry_number}",
            f"   Total mass            : {system.total_mass:.5f} amu",
            f"   Multiplicity          : {system.multiplicity}",
            f"   Real modes            : {len(system.real_frequencies)}",
            f"   Imaginary modes       : {result.num_imaginary_frequencies}",
            f"   Low-frequency scheme  : {treatment.value}",
            f"   Scale factors (ZPE/heat/S/CV): {settings.scale_zpe} / "
            f"{settings.scale_heat} / {settings.scale_entropy} / "
            f"{settings.scale_cv}",
            "",
            f"   {'':14s}{'S (cal/mol/K)':>16s}{'U-U0 (kcal/mol)':>18s}"
            f"{'CV (cal/mol/K)':>16s}",
        ]
        for name, component in result.components.items():
            lines.append(
                f"   {name.capitalize():14s}"
                f"{entropy_conversion('j/mol/k', 'cal/mol/k', component.entropy):16.4f}"
                f"{energy_conversion('j/mol', 'kcal/mol', component.energy):18.4f}"
                f"{entropy_conversion('j/mol/k', 'cal/mol/k', component.heat_capacity):16.4f}"
            )
        u_corr, h_corr, g_corr = result.corrections("kcal/mol")
        u, h, g = result.absolute_energies("hartree")
        s, cv, cp = result.entropy_terms("cal/mol/k")
        q_v0, q_bot = result.partition_functions_per_mole()
        zpe = energy_conversion("j/mol", "kcal/mol", result.zero_point_energy)
        e_el = energy_conversion("j/mol", "hartree", result.electronic_energy)
        lines += [
            "",
            f"   Zero-point energy     : {zpe:.4f} kcal/mol",
            f"   Thermal correction U  : {u_corr:.4f} kcal/mol",
            f"   Thermal correction H  : {h_corr:.4f} kcal/mol",
            f"   Thermal correction G  : {g_corr:.4f} kcal/mol",
            f"   Electronic energy     : {e_el:.8f} a.u.",
            f"   U                     : {u:.8f} a.u.",
            f"   H                     : {h:.8f} a.u.",
            f"   G                     : {g:.8f} a.u.",
            f"   S                     : {s:.4f} cal/mol/K",
            f"   CV                    : {cv:.4f} cal/mol/K",
            f"   CP                    : {cp:.4f} cal/mol/K",
            f"   q(V=0)/NA             : {q_v0:.6E}",
            f"   q(bot)/NA             : {q_bot:.6E}",
            "",
        ]
        text = "\n".join(lines) + "\n"
        references = TREATMENT_REFERENCES[treatment]
        if references:
            text += qrrho_header + "".join(references)
        return text

    def write_single_point(self, system, settings, result):
        """Write <label>.dat."""
        return self._write(
            "dat", self.single_point_report(system, settings, result)
        )

    @staticmethod
    def mode_table(rows, temperature):
        lines = [
            f"   Per-mode contributions at {temperature:.2f} K",
            f"{'Mode':>6s}{'Freq (cm-1)':>14s}{'S (cal/mol/K)':>16s}"
            f"{'U-U0 (kcal/mol)':>18s}{'CV (cal/mol/K)':>16s}",
        ]
        for i, (wavenumber, entropy, energy, heat_capacity) in enumerate(
            rows, start=1
        ):
            lines.append(
                f"{i:6d}{wavenumber:14.2f}"
                f"{entropy_conversion('j/mol/k', 'cal/mol/k', entropy):16.4f}"
                f"{energy_conversion('j/mol', 'kcal/mol', energy):18.6f}"
                f"{entropy_conversion('j/mol/k', 'cal/mol/k', heat_capacity):16.4f}"
            )
        return "\n".join(lines) + "\n"

    def write_modes(self, rows, temperature):
        """Write <label>.vibcon."""
        return self._write("vibcon", self.mode_table(rows, temperature))
