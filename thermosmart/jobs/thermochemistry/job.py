import logging
import os
from dataclasses import dataclass, field
from functools import cached_property
from typing import List, Optional

from joblib import Parallel, delayed

from thermosmart.analysis.lowvib import LowVibParameters
from thermosmart.analysis.scan import ScanGrid, ScanScheduler, Topology
from thermosmart.analysis.thermochemistry import Thermochemistry
from thermosmart.io.molecules.structure import MolecularSystem
from thermosmart.jobs.thermochemistry.settings import ThermoSettings
from thermosmart.jobs.thermochemistry.writer import ThermochemistryWriter
from thermosmart.utils.resources import ResourceGovernor
from thermosmart.utils.utils import InputDataError, ResourceExhaustedError

logger = logging.getLogger(__name__)

# rough in-memory footprint used for admission to the memory monitor
RESULT_BYTES = 2048
MODE_BYTES = 256

INPUT_EXTENSIONS = (".yaml", ".yml")


@dataclass(frozen=True)
class ThermoOutcome:
    """Structured result of one unit of work (one molecular system)."""

    label: str
    success: bool
    error_message: Optional[str] = None
    results: List = field(default_factory=list)
    topology: Optional[Topology] = None
    output_files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False


@dataclass(frozen=True)
class BatchOutcome:
    outcomes: List[ThermoOutcome]

    @property
    def success(self):
        return all(outcome.success for outcome in self.outcomes)

    @property
    def num_failed(self):
        return sum(not outcome.success for outcome in self.outcomes)

    @property
    def error_messages(self):
        """Per-file qualified messages of the failed units."""
        return [
            f"File {outcome.label}: {outcome.error_message}"
            for outcome in self.outcomes
            if not outcome.success
        ]


class ThermochemistryJob:
    """One molecular system evaluated with one ThermoSettings.

    Either a MolecularSystem or a YAML filename must be given; a file is
    only read when the job runs, so read errors surface in the outcome.
    """

    TYPE = "thermochemistry"

    def __init__(
        self,
        system=None,
        filename=None,
        settings=None,
        label=None,
        folder=".",
        write_output=True,
    ):
        if system is None and filename is None:
            raise ValueError("Either a system or a filename is required.")
        if settings is not None and not isinstance(settings, ThermoSettings):
            raise ValueError(
                f"Settings must be instance of {ThermoSettings}, "
                f"but is {settings} instead!"
            )
        if system is not None and not isinstance(system, MolecularSystem):
            raise ValueError(
                "System must be instance of MolecularSystem, "
                f"but is {system} instead!"
            )
        # the job owns its copy: preparation mutates it
        self._system = system.copy() if system is not None else None
        self.filename = filename
        self.settings = settings if settings is not None else ThermoSettings()
        self.folder = folder
        self.write_output = write_output

        if label is None:
            if filename is not None:
                label = os.path.splitext(os.path.basename(filename))[0]
            else:
                label = system.label
        self.label = label

    def __repr__(self):
        return f"{self.__class__.__name__}<{self.label}>"

    @classmethod
    def from_filename(cls, filename, settings=None, label=None, **kwargs):
        """Create a ThermochemistryJob for a molecule YAML file."""
        return cls(filename=filename, settings=settings, label=label, **kwargs)

    @cached_property
    def system(self):
        if self._system is not None:
            return self._system
        if not self.filename.lower().endswith(INPUT_EXTENSIONS):
            raise ValueError(
                f"Unsupported file extension for '{self.filename}'. "
                f"Only {', '.join(INPUT_EXTENSIONS)} files are accepted."
            )
        logger.info(f"Reading molecular system from file: {self.filename}.")
        system = MolecularSystem.from_yaml(self.filename)
        system.label = self.label
        return system

    def _memory_estimate(self, grid):
        return len(grid) * RESULT_BYTES + self.system.num_frequencies * MODE_BYTES

    def compute_thermochemistry(self, cancel_token=None, governor=None):
        """
        Prepare the system, evaluate the grid and write the reports.

        Never raises for bad input or exhausted resources: failures are
        logged, recorded in the governor's error collector and returned
        as an unsuccessful ThermoOutcome.
        """
        if cancel_token is not None and cancel_token.is_set():
            return ThermoOutcome(
                label=self.label,
                success=False,
                error_message="cancelled before start",
                cancelled=True,
            )
        if governor is None:
            governor = ResourceGovernor.from_settings(
                requested_threads=self.settings.num_threads
            )

        try:
            return self._compute(cancel_token, governor)
        except (
            InputDataError,
            ResourceExhaustedError,
            ValueError,
            OSError,
        ) as e:
            logger.error(f"Error processing {self.label}: {e}")
            governor.errors.add_error(f"File {self.label}: {e}")
            return ThermoOutcome(
                label=self.label, success=False, error_message=str(e)
            )

    def _compute(self, cancel_token, governor):
        system = self.system
        settings = self.settings
        if not system.is_prepared:
            system.prepare(settings)

        warnings = []
        if system.num_imaginary_frequencies:
            message = (
                f"{system.num_imaginary_frequencies} imaginary mode(s) "
                f"excluded from the vibrational sums"
            )
            logger.warning(f"{self.label}: {message}.")
            governor.errors.add_warning(f"File {self.label}: {message}")
            warnings.append(message)

        params = LowVibParameters.from_settings(settings)
        grid = ScanGrid.from_settings(settings)
        scheduler = ScanScheduler(
            system,
            settings,
            num_threads=governor.num_threads,
            params=params,
            cancel_token=cancel_token,
        )
        with governor.memory.reserve(
            self._memory_estimate(grid), label=self.label
        ):
            scan = scheduler.run(grid)

        output_files = []
        if self.write_output and scan.results:
            writer = ThermochemistryWriter(
                self.label, folder=self.folder, file_manager=governor.files
            )
            if settings.is_scan:
                output_files += writer.write_scan(scan.results)
            else:
                output_files.append(
                    writer.write_single_point(system, settings, scan.results[0])
                )
            if settings.print_vib:
                first = grid.points[0]
                rows = Thermochemistry(
                    system,
                    settings,
                    temperature=first.temperature,
                    pressure=first.pressure,
                    params=params,
                ).mode_table()
                output_files.append(
                    writer.write_modes(rows, first.temperature)
                )

        if scan.cancelled:
            return ThermoOutcome(
                label=self.label,
                success=False,
                error_message=(
                    f"cancelled after {len(scan.results)} of "
                    f"{len(grid)} grid point(s)"
                ),
                results=scan.results,
                topology=scan.topology,
                output_files=output_files,
                warnings=warnings,
                cancelled=True,
            )
        return ThermoOutcome(
            label=self.label,
            success=True,
            results=scan.results,
            topology=scan.topology,
            output_files=output_files,
            warnings=warnings,
        )


def process_batch(
    filenames,
    settings=None,
    cancel_token=None,
    governor=None,
    n_jobs=1,
    folder=".",
):
    """
    Run one ThermochemistryJob per file.

    Failed files do not stop the batch; their messages are collected in
    the returned BatchOutcome. Files not yet started when the
    cancellation token is set are reported as cancelled.
    """
    settings = settings if settings is not None else ThermoSettings()
    if governor is None:
        governor = ResourceGovernor.from_settings(
            requested_threads=settings.num_threads
        )
    jobs = [
        ThermochemistryJob.from_filename(f, settings=settings, folder=folder)
        for f in filenames
    ]
    outcomes = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(job.compute_thermochemistry)(cancel_token, governor)
        for job in jobs
    )
    batch = BatchOutcome(outcomes=list(outcomes))
    if batch.success:
        logger.info(f"Processed {len(batch.outcomes)} file(s) successfully.")
    else:
        logger.error(
            f"{batch.num_failed} of {len(batch.outcomes)} file(s) failed."
        )
    return batch
