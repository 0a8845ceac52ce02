"""
Temperature/pressure scans.

A ScanGrid orders its points temperature-major (all pressures for the
first temperature, then the next temperature). The ScanScheduler picks
one of two thread topologies before evaluation starts:

- outer: grid points are spread over the threads, each point being
  evaluated on a single thread;
- inner: grid points are evaluated one after another and the per-mode
  vibrational work of each point is spread over the threads.

Results land in an index-addressed buffer, so the returned list always
follows grid order whatever the completion order.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from multiprocessing.pool import ThreadPool

from thermosmart.analysis.lowvib import LowVibParameters
from thermosmart.analysis.thermochemistry import Thermochemistry
from thermosmart.utils.utils import frange_count

logger = logging.getLogger(__name__)


class Topology(str, Enum):
    OUTER = "outer"
    INNER = "inner"


@dataclass(frozen=True)
class ScanPoint:
    index: int
    temperature: float
    pressure: float


def scan_values(fixed, scan):
    """Values of one scan axis; a single fixed value when not scanned."""
    if scan is None:
        return [float(fixed)]
    low, high, step = (float(x) for x in scan)
    return [low + i * step for i in range(frange_count(low, high, step))]


class ScanGrid:
    """Ordered (T, P) points: T is the outer loop, P the inner one."""

    def __init__(self, temperatures, pressures):
        if not temperatures or not pressures:
            raise ValueError("A scan grid needs at least one T and one P.")
        self.temperatures = list(temperatures)
        self.pressures = list(pressures)

    @classmethod
    def from_settings(cls, settings):
        return cls(
            scan_values(settings.temperature, settings.temperature_scan),
            scan_values(settings.pressure, settings.pressure_scan),
        )

    @property
    def points(self):
        n_pressures = len(self.pressures)
        return [
            ScanPoint(
                index=i * n_pressures + j, temperature=t, pressure=p
            )
            for i, t in enumerate(self.temperatures)
            for j, p in enumerate(self.pressures)
        ]

    @property
    def is_single_point(self):
        return len(self) == 1

    def __len__(self):
        return len(self.temperatures) * len(self.pressures)

    def __iter__(self):
        return iter(self.points)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}<{len(self.temperatures)} T x "
            f"{len(self.pressures)} P>"
        )


@dataclass(frozen=True)
class ScanOutcome:
    """Ordered results of a scan and the topology used to compute them."""

    results: list
    topology: Topology
    cancelled: bool = False


class ScanScheduler:
    """Evaluate a prepared system over a ScanGrid.

    Args:
        system: prepared MolecularSystem (read-only during the scan).
        settings: ThermoSettings.
        num_threads: thread budget for this scan.
        params: LowVibParameters; built from settings when omitted.
        cancel_token: optional CancellationToken, polled between batches.
    """

    def __init__(
        self,
        system,
        settings,
        num_threads=1,
        params=None,
        cancel_token=None,
    ):
        self.system = system
        self.settings = settings
        self.num_threads = max(int(num_threads), 1)
        self.params = params or LowVibParameters.from_settings(settings)
        self.cancel_token = cancel_token

    @staticmethod
    def choose_topology(
        num_points,
        num_modes,
        num_threads,
        outer_points_per_thread=2,
        inner_min_modes=48,
    ):
        """
        Pick the thread topology from grid size, mode count and threads.

        Outer when there is one thread, or when the grid offers at least
        `outer_points_per_thread` points per thread. Otherwise inner if
        the molecule has at least `inner_min_modes` real modes, else
        outer.
        """
        if num_threads <= 1:
            return Topology.OUTER
        if num_points >= num_threads * outer_points_per_thread:
            return Topology.OUTER
        if num_modes >= inner_min_modes:
            return Topology.INNER
        return Topology.OUTER

    def _is_cancelled(self):
        return self.cancel_token is not None and self.cancel_token.is_set()

    def _evaluate(self, point, mode_executor=None):
        return Thermochemistry(
            self.system,
            self.settings,
            temperature=point.temperature,
            pressure=point.pressure,
            params=self.params,
            mode_executor=mode_executor,
        ).compute()

    def _evaluate_indexed(self, point):
        return point.index, self._evaluate(point)

    def run(self, grid, topology=None):
        """
        Evaluate every grid point.

        Returns:
            ScanOutcome: results in grid order. When cancelled, only the
            points completed before the cancellation are returned.
        """
        if topology is None:
            topology = self.choose_topology(
                len(grid),
                len(self.system.real_frequencies),
                self.num_threads,
                self.settings.outer_points_per_thread,
                self.settings.inner_min_modes,
            )
        topology = Topology(topology)
        logger.info(
            f"{self.system.label}: {len(grid)} grid point(s), "
            f"{len(self.system.real_frequencies)} real mode(s), "
            f"{self.num_threads} thread(s); using {topology.value} topology."
        )

        buffer = [None] * len(grid)
        if topology == Topology.OUTER:
            cancelled = self._run_outer(grid, buffer)
        else:
            cancelled = self._run_inner(grid, buffer)

        results = []
        for result in buffer:
            if result is None:
                break
            results.append(result)
        if cancelled:
            logger.warning(
                f"{self.system.label}: scan cancelled after "
                f"{len(results)} of {len(grid)} point(s)."
            )
        return ScanOutcome(
            results=results, topology=topology, cancelled=cancelled
        )

    def _batches(self, points):
        size = self.num_threads * max(self.settings.outer_points_per_thread, 1)
        for i in range(0, len(points), size):
            yield points[i : i + size]

    def _run_outer(self, grid, buffer):
        points = grid.points
        if self.num_threads == 1:
            for point in points:
                if self._is_cancelled():
                    return True
                buffer[point.index] = self._evaluate(point)
            return False

        with ThreadPool(self.num_threads) as pool:
            for batch in self._batches(points):
                if self._is_cancelled():
                    return True
                for index, result in pool.imap_unordered(
                    self._evaluate_indexed, batch
                ):
                    buffer[index] = result
        return False

    def _run_inner(self, grid, buffer):
        with ThreadPool(self.num_threads) as pool:
            for point in grid.points:
                if self._is_cancelled():
                    return True
                buffer[point.index] = self._evaluate(
                    point, mode_executor=pool.map
                )
        return False
