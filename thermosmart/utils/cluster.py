"""Utils for cluster-related stuff.

Detects the batch scheduler the process runs under and the CPU/memory
allocation it declares through environment variables. Only the
environment is inspected; no scheduler commands are run.
"""

import logging
import os
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobResources:
    """CPU and memory allocation declared by a batch scheduler."""

    scheduler: str = "none"
    allocated_cpus: int = 0
    allocated_memory_mb: int = 0

    @property
    def is_cluster(self):
        return self.scheduler != "none"

    @property
    def has_cpu_limit(self):
        return self.allocated_cpus > 0

    @property
    def has_memory_limit(self):
        return self.allocated_memory_mb > 0


def parse_memory_mb(value):
    """
    Parse a scheduler memory string into megabytes.

    Plain numbers are megabytes (SLURM convention); K/M/G/T suffixes with
    an optional trailing B are honoured. Returns 0 when unparsable.
    """
    if value is None:
        return 0
    match = re.match(
        r"^\s*(\d+(?:\.\d+)?)\s*([kKmMgGtT]?)[bB]?\s*$", str(value)
    )
    if not match:
        return 0
    number = float(match.group(1))
    factor = {
        "": 1,
        "k": 1 / 1024,
        "m": 1,
        "g": 1024,
        "t": 1024 * 1024,
    }[match.group(2).lower()]
    return int(number * factor)


def _to_int(value):
    try:
        return int(str(value).split("(")[0].split(",")[0])
    except (TypeError, ValueError):
        return 0


class ClusterHelper:
    """Class for cluster helper to obtain the resources of the running job.
    Works for SLURM, PBS/Torque, SGE and LSF. Can be expanded later to
    others."""

    SCHEDULERS = [
        {
            "name": "SLURM",
            "env_vars": ["SLURM_JOB_ID", "SLURM_JOBID"],
            "cpu_vars": [
                "SLURM_CPUS_PER_TASK",
                "SLURM_CPUS_ON_NODE",
                "SLURM_NTASKS",
            ],
        },
        {
            "name": "PBS",
            "env_vars": ["PBS_JOBID"],
            "cpu_vars": ["NCPUS", "PBS_NUM_PPN", "PBS_NP"],
        },
        {
            "name": "SGE",
            "env_vars": ["SGE_JOB_ID", "SGE_TASK_ID"],
            "cpu_vars": ["NSLOTS"],
        },
        {
            "name": "LSF",
            "env_vars": ["LSB_JOBID"],
            "cpu_vars": ["LSB_DJOB_NUMPROC", "LSB_MAX_NUM_PROCESSORS"],
        },
    ]

    def __init__(self, environ=None):
        self.environ = os.environ if environ is None else environ

    def detect_scheduler(self):
        for scheduler in self.SCHEDULERS:
            if any(env in self.environ for env in scheduler["env_vars"]):
                logger.debug(f"Detected scheduler: {scheduler['name']}")
                return scheduler["name"]
        return "none"

    def _allocated_cpus(self, scheduler):
        for entry in self.SCHEDULERS:
            if entry["name"] != scheduler:
                continue
            for var in entry["cpu_vars"]:
                cpus = _to_int(self.environ.get(var))
                if cpus > 0:
                    return cpus
        return 0

    def _allocated_memory_mb(self, scheduler, cpus):
        if scheduler == "SLURM":
            per_node = parse_memory_mb(self.environ.get("SLURM_MEM_PER_NODE"))
            if per_node:
                return per_node
            per_cpu = parse_memory_mb(self.environ.get("SLURM_MEM_PER_CPU"))
            if per_cpu:
                return per_cpu * max(cpus, 1)
        elif scheduler == "PBS":
            return parse_memory_mb(self.environ.get("PBS_MEM"))
        elif scheduler == "SGE":
            return parse_memory_mb(self.environ.get("SGE_HGR_h_vmem"))
        elif scheduler == "LSF":
            return parse_memory_mb(self.environ.get("LSB_MAX_MEM_RUSAGE"))
        return 0

    def job_resources(self):
        """Return the JobResources declared by the current environment."""
        scheduler = self.detect_scheduler()
        if scheduler == "none":
            return JobResources()
        cpus = self._allocated_cpus(scheduler)
        memory_mb = self._allocated_memory_mb(scheduler, cpus)
        resources = JobResources(
            scheduler=scheduler,
            allocated_cpus=cpus,
            allocated_memory_mb=memory_mb,
        )
        logger.info(
            f"Running under {scheduler}: {cpus or 'unknown'} CPUs, "
            f"{memory_mb or 'unknown'} MB declared."
        )
        return resources
