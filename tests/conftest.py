"""Shared fixtures: small trajectory files written into a temporary directory."""

import tempfile
from pathlib import Path

import pytest

from helpers import make_frames, write_dcd, write_pdb, write_xyz


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def frames():
    return make_frames()


@pytest.fixture
def dcd_file(temp_dir, frames):
    return write_dcd(temp_dir / "traj.dcd", frames, box=(30.0, 31.0, 32.0))


@pytest.fixture
def pdb_traj_file(temp_dir, frames):
    return write_pdb(temp_dir / "traj.pdb", frames, box=(30.0, 31.0, 32.0))


@pytest.fixture
def xyz_file(temp_dir, frames):
    return write_xyz(temp_dir / "traj.xyz", frames)


@pytest.fixture
def model_file(temp_dir, frames):
    return write_pdb(temp_dir / "model.pdb", frames[:1], box=(30.0, 31.0, 32.0), multimodel=False)
