import logging

import numpy as np
import pytest

from thermosmart.io.molecules.structure import MolecularSystem
from thermosmart.jobs.thermochemistry.settings import ThermoSettings
from thermosmart.utils.resources import MemoryMonitor, ResourceGovernor


@pytest.fixture(autouse=True)
def restore_root_logger():
    """create_logger replaces the root handlers; undo it after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture()
def settings():
    return ThermoSettings()


@pytest.fixture()
def governor():
    return ResourceGovernor(
        memory=MemoryMonitor.from_limit_mb(1024), num_threads=1
    )


@pytest.fixture()
def helium():
    return MolecularSystem(
        symbols=["He"],
        positions=[[0.0, 0.0, 0.0]],
        frequencies=[],
        energy=-2.9,
        label="helium",
    )


@pytest.fixture()
def nitrogen():
    return MolecularSystem(
        symbols=["N", "N"],
        positions=[[0.0, 0.0, 0.0], [0.0, 0.0, 1.0977]],
        frequencies=[2358.6],
        energy=-109.5,
        label="nitrogen",
    )


@pytest.fixture()
def carbon_monoxide():
    return MolecularSystem(
        symbols=["C", "O"],
        positions=[[0.0, 0.0, 0.0], [0.0, 0.0, 1.128]],
        frequencies=[2170.0],
        energy=-113.3,
        label="carbon_monoxide",
    )


@pytest.fixture()
def water_frequencies():
    return [1595.0, 3657.0, 3756.0]


@pytest.fixture()
def water(water_frequencies):
    return MolecularSystem(
        symbols=["O", "H", "H"],
        positions=[
            [0.0, 0.0, 0.1173],
            [0.0, 0.7572, -0.4692],
            [0.0, -0.7572, -0.4692],
        ],
        frequencies=water_frequencies,
        energy=-76.4,
        multiplicity=1,
        label="water",
    )


@pytest.fixture()
def methane():
    a = 0.6291
    return MolecularSystem(
        symbols=["C", "H", "H", "H", "H"],
        positions=[
            [0.0, 0.0, 0.0],
            [a, a, a],
            [-a, -a, a],
            [-a, a, -a],
            [a, -a, -a],
        ],
        frequencies=[1306.0] * 3 + [1534.0] * 2 + [2917.0] + [3019.0] * 3,
        energy=-40.5,
        label="methane",
    )


@pytest.fixture()
def ammonia():
    angles = np.radians([0.0, 120.0, 240.0])
    hydrogens = [[0.9377 * np.cos(t), 0.9377 * np.sin(t), -0.3816] for t in angles]
    return MolecularSystem(
        symbols=["N", "H", "H", "H"],
        positions=[[0.0, 0.0, 0.0]] + hydrogens,
        frequencies=[950.0, 1627.0, 1627.0, 3337.0, 3444.0, 3444.0],
        energy=-56.5,
        label="ammonia",
    )


@pytest.fixture()
def ethylene():
    return MolecularSystem(
        symbols=["C", "C", "H", "H", "H", "H"],
        positions=[
            [0.0, 0.0, 0.6695],
            [0.0, 0.0, -0.6695],
            [0.0, 0.9289, 1.2321],
            [0.0, -0.9289, 1.2321],
            [0.0, 0.9289, -1.2321],
            [0.0, -0.9289, -1.2321],
        ],
        frequencies=[
            826.0, 943.0, 949.0, 1023.0, 1236.0, 1342.0,
            1444.0, 1623.0, 2989.0, 3026.0, 3103.0, 3106.0,
        ],
        energy=-78.5,
        label="ethylene",
    )


@pytest.fixture()
def benzene():
    angles = np.radians(np.arange(6) * 60.0)
    carbons = [[1.397 * np.cos(t), 1.397 * np.sin(t), 0.0] for t in angles]
    hydrogens = [[2.481 * np.cos(t), 2.481 * np.sin(t), 0.0] for t in angles]
    return MolecularSystem(
        symbols=["C"] * 6 + ["H"] * 6,
        positions=carbons + hydrogens,
        frequencies=list(np.linspace(400.0, 3100.0, 30)),
        energy=-232.0,
        label="benzene",
    )


@pytest.fixture()
def sulfur_hexafluoride():
    r = 1.564
    fluorines = [
        [r, 0.0, 0.0],
        [-r, 0.0, 0.0],
        [0.0, r, 0.0],
        [0.0, -r, 0.0],
        [0.0, 0.0, r],
        [0.0, 0.0, -r],
    ]
    return MolecularSystem(
        symbols=["S"] + ["F"] * 6,
        positions=[[0.0, 0.0, 0.0]] + fluorines,
        frequencies=[347.0] * 3 + [525.0] * 3 + [615.0] * 3
        + [643.0] * 2 + [774.0] + [939.0] * 3,
        energy=-997.0,
        label="sf6",
    )


@pytest.fixture()
def large_system():
    """Benzene geometry with 60 modes, enough for the inner topology."""
    angles = np.radians(np.arange(6) * 60.0)
    carbons = [[1.397 * np.cos(t), 1.397 * np.sin(t), 0.0] for t in angles]
    hydrogens = [[2.481 * np.cos(t), 2.481 * np.sin(t), 0.0] for t in angles]
    return MolecularSystem(
        symbols=["C"] * 6 + ["H"] * 6,
        positions=carbons + hydrogens,
        frequencies=list(np.linspace(25.0, 3200.0, 60)),
        energy=-232.0,
        label="large",
    )


@pytest.fixture()
def water_yaml(tmp_path, water):
    path = tmp_path / "water.yaml"
    water.write_yaml(str(path))
    return str(path)
