from .job import BatchOutcome, ThermochemistryJob, ThermoOutcome, process_batch
from .settings import ThermoSettings
from .writer import ThermochemistryWriter

__all__ = [
    "BatchOutcome",
    "ThermoOutcome",
    "ThermoSettings",
    "ThermochemistryJob",
    "ThermochemistryWriter",
    "process_batch",
]
