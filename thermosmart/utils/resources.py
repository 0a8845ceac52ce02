"""
Resource governance for batch and parallel runs.

- MemoryMonitor: current/peak byte accounting against a ceiling
- FileHandleManager: bounded number of concurrently open files
- ThreadSafeErrorCollector: append-only error and warning lists
- helpers deriving safe memory and thread limits from the machine and
  from a batch scheduler allocation
"""

import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field

from thermosmart.utils.cluster import ClusterHelper, JobResources
from thermosmart.utils.utils import ResourceExhaustedError

logger = logging.getLogger(__name__)

MIN_MEMORY_MB = 512
MAX_MEMORY_MB = 65536
DEFAULT_SYSTEM_MEMORY_MB = 4096
DEFAULT_MAX_FILE_HANDLES = 100
# share of a scheduler's declared allocation that may be used
ALLOCATION_SAFETY_PERCENT = 95
# derating applied under a batch scheduler
CLUSTER_MEMORY_FACTOR = 0.7

CLUSTER_JOB_ENV_VARS = ("SLURM_JOB_ID", "PBS_JOBID", "SGE_JOB_ID", "LSB_JOBID")


def format_memory_size(num_bytes):
    """Human-readable size, e.g. 1536 -> '1.50 KB'."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024.0:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} TB"


def clamp_memory_mb(value):
    return int(min(max(value, MIN_MEMORY_MB), MAX_MEMORY_MB))


def get_system_memory_mb():
    """Physical memory in MB, or DEFAULT_SYSTEM_MEMORY_MB if unknown."""
    try:
        pages = os.sysconf("SC_PHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return DEFAULT_SYSTEM_MEMORY_MB
    if pages <= 0 or page_size <= 0:
        return DEFAULT_SYSTEM_MEMORY_MB
    return int(pages * page_size // (1024 * 1024))


def get_hardware_concurrency():
    return os.cpu_count() or 1


def memory_fraction_for_threads(thread_count):
    """Share of system memory granted; grows with the thread count."""
    if thread_count <= 4:
        return 0.3
    if thread_count <= 8:
        return 0.4
    if thread_count <= 16:
        return 0.5
    return 0.6


def in_cluster_environment(environ=None):
    environ = os.environ if environ is None else environ
    return any(var in environ for var in CLUSTER_JOB_ENV_VARS)


def calculate_optimal_memory_limit(
    thread_count, system_memory_mb=None, environ=None
):
    """
    Memory ceiling in MB from system memory and thread count, derated
    under a batch scheduler and clamped to [512, 65536].
    """
    if system_memory_mb is None:
        system_memory_mb = get_system_memory_mb()
    limit = system_memory_mb * memory_fraction_for_threads(thread_count)
    if in_cluster_environment(environ):
        limit *= CLUSTER_MEMORY_FACTOR
    return clamp_memory_mb(limit)


def calculate_safe_memory_limit(
    requested_mb=0,
    thread_count=1,
    job_resources=None,
    system_memory_mb=None,
    environ=None,
):
    """
    Memory ceiling in MB honouring a request and a scheduler allocation.

    A request of 0 means "choose for me" (calculate_optimal_memory_limit).
    A declared allocation caps the result at 95% of it. The result is
    always within [512, 65536]; on allocations below ~540 MB the 512 MB
    floor wins over the 95% cap.
    """
    if requested_mb and requested_mb > 0:
        limit = requested_mb
    else:
        limit = calculate_optimal_memory_limit(
            thread_count, system_memory_mb=system_memory_mb, environ=environ
        )
    if job_resources is not None and job_resources.has_memory_limit:
        cap = job_resources.allocated_memory_mb * ALLOCATION_SAFETY_PERCENT / 100
        limit = min(limit, cap)
    return clamp_memory_mb(limit)


def calculate_safe_thread_count(
    requested=0, job_resources=None, hardware_threads=None
):
    """
    Thread count clamped to the hardware and to a scheduler allocation;
    at least 1. A request of 0 uses everything available.
    """
    if hardware_threads is None:
        hardware_threads = get_hardware_concurrency()
    available = hardware_threads
    if job_resources is not None and job_resources.has_cpu_limit:
        available = min(available, job_resources.allocated_cpus)
    if requested and requested > 0:
        threads = min(requested, available)
        if threads < requested:
            logger.warning(
                f"Requested {requested} threads; limited to {threads}."
            )
    else:
        threads = available
    return max(int(threads), 1)


class MemoryMonitor:
    """Track current and peak memory use against a ceiling (bytes).

    Counters are guarded by a lock; `try_allocate` is check-and-add in
    one critical section so concurrent callers cannot overshoot.
    """

    def __init__(self, limit_bytes):
        self.limit_bytes = int(limit_bytes)
        self._current = 0
        self._peak = 0
        self._lock = threading.Lock()

    @classmethod
    def from_limit_mb(cls, limit_mb):
        return cls(int(limit_mb) * 1024 * 1024)

    @property
    def current_bytes(self):
        with self._lock:
            return self._current

    @property
    def peak_bytes(self):
        with self._lock:
            return self._peak

    def can_allocate(self, num_bytes):
        with self._lock:
            return self._current + num_bytes <= self.limit_bytes

    def try_allocate(self, num_bytes):
        with self._lock:
            if self._current + num_bytes > self.limit_bytes:
                return False
            self._current += num_bytes
            self._peak = max(self._peak, self._current)
            return True

    def release(self, num_bytes):
        with self._lock:
            self._current = max(self._current - num_bytes, 0)

    @contextmanager
    def reserve(self, num_bytes, label="allocation"):
        """
        Hold `num_bytes` for the duration of the block.

        Raises:
            ResourceExhaustedError: If the ceiling would be exceeded.
        """
        if not self.try_allocate(num_bytes):
            raise ResourceExhaustedError(
                f"Memory limit reached: {label} needs "
                f"{format_memory_size(num_bytes)}, "
                f"{format_memory_size(self.current_bytes)} of "
                f"{format_memory_size(self.limit_bytes)} in use."
            )
        try:
            yield
        finally:
            self.release(num_bytes)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}<current="
            f"{format_memory_size(self.current_bytes)}, peak="
            f"{format_memory_size(self.peak_bytes)}, limit="
            f"{format_memory_size(self.limit_bytes)}>"
        )


class FileHandleManager:
    """Bound the number of files open at once.

    `acquire` blocks until a slot is free and has no timeout: never hold
    two handles from the same manager in one thread.
    """

    def __init__(self, max_handles=DEFAULT_MAX_FILE_HANDLES):
        if max_handles < 1:
            raise ValueError("max_handles must be at least 1.")
        self.max_handles = max_handles
        self._semaphore = threading.BoundedSemaphore(max_handles)
        self._lock = threading.Lock()
        self._open = 0

    @property
    def open_handles(self):
        with self._lock:
            return self._open

    @contextmanager
    def acquire(self):
        self._semaphore.acquire()
        with self._lock:
            self._open += 1
        try:
            yield
        finally:
            with self._lock:
                self._open -= 1
            self._semaphore.release()

    @contextmanager
    def open(self, filename, mode="r"):
        """Open a file inside a handle slot."""
        with self.acquire():
            with open(filename, mode) as f:
                yield f


class ThreadSafeErrorCollector:
    """Append-only error and warning lists shared between threads."""

    def __init__(self):
        self._errors = []
        self._warnings = []
        self._lock = threading.Lock()

    def add_error(self, message):
        with self._lock:
            self._errors.append(message)

    def add_warning(self, message):
        with self._lock:
            self._warnings.append(message)

    @property
    def errors(self):
        """Snapshot copy of the errors."""
        with self._lock:
            return list(self._errors)

    @property
    def warnings(self):
        with self._lock:
            return list(self._warnings)

    @property
    def has_errors(self):
        with self._lock:
            return bool(self._errors)


@dataclass
class ResourceGovernor:
    """Bundle of the shared resource guards for one run."""

    memory: MemoryMonitor
    files: FileHandleManager = field(default_factory=FileHandleManager)
    errors: ThreadSafeErrorCollector = field(
        default_factory=ThreadSafeErrorCollector
    )
    num_threads: int = 1
    job_resources: JobResources = field(default_factory=JobResources)

    @classmethod
    def from_settings(
        cls,
        requested_threads=0,
        requested_memory_mb=0,
        max_file_handles=DEFAULT_MAX_FILE_HANDLES,
        environ=None,
    ):
        job_resources = ClusterHelper(environ).job_resources()
        num_threads = calculate_safe_thread_count(
            requested_threads, job_resources=job_resources
        )
        memory_mb = calculate_safe_memory_limit(
            requested_memory_mb,
            thread_count=num_threads,
            job_resources=job_resources,
            environ=environ,
        )
        logger.info(
            f"Resource limits: {num_threads} thread(s), "
            f"{format_memory_size(memory_mb * 1024 * 1024)} memory, "
            f"{max_file_handles} open files."
        )
        return cls(
            memory=MemoryMonitor.from_limit_mb(memory_mb),
            files=FileHandleManager(max_file_handles),
            num_threads=num_threads,
            job_resources=job_resources,
        )
