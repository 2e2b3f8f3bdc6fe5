"""Tests for trajectory formats, model readers and the format factory."""

import io

import numpy as np
import pytest

from trajkit.exceptions import (
    AtomCountMismatchError,
    FileOpenError,
    TrajectoryFormatError,
    TrajectoryReadError,
)
from trajkit.io import (
    DCDTrajectory,
    PDBTrajectory,
    StreamWrapper,
    XYZTrajectory,
    create_system,
    create_trajectory,
)
from trajkit.system import AtomGroup

from helpers import make_frames, write_dcd, write_pdb, write_xyz


class TestStreamWrapper:
    """Owned and borrowed streams."""

    def test_owns_opened_path(self, xyz_file):
        wrapper = StreamWrapper(xyz_file)
        handle = wrapper.stream
        wrapper.close()
        assert handle.closed
        assert wrapper.closed

    def test_borrowed_stream_left_open(self):
        buffer = io.StringIO("1\n\nC 0 0 0\n")
        with StreamWrapper(buffer) as wrapper:
            assert wrapper.stream is buffer
        assert not buffer.closed

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileOpenError) as excinfo:
            StreamWrapper(temp_dir / "missing.dcd", binary=True)
        assert "missing.dcd" in str(excinfo.value)

    def test_stream_after_close(self, xyz_file):
        wrapper = StreamWrapper(xyz_file)
        wrapper.close()
        with pytest.raises(ValueError):
            wrapper.stream


class TestDCD:
    """DCD binary reader."""

    def test_header(self, dcd_file, frames):
        with DCDTrajectory(dcd_file) as traj:
            assert traj.n_atoms == frames.shape[1]
            assert traj.n_frames == frames.shape[0]
            assert traj.timestep == pytest.approx(0.5)
            assert traj.has_periodic_box

    def test_coordinates(self, dcd_file, frames):
        with DCDTrajectory(dcd_file) as traj:
            for i in traj:
                np.testing.assert_allclose(traj.coords(), frames[i], atol=1e-5)
                assert traj.coords().dtype == np.float64

    def test_unit_cell(self, dcd_file):
        with DCDTrajectory(dcd_file) as traj:
            box = traj.periodic_box()
            np.testing.assert_allclose(box.lengths, [30.0, 31.0, 32.0])
            assert box.is_orthorhombic

    def test_big_endian(self, temp_dir, frames):
        path = write_dcd(temp_dir / "be.dcd", frames, endian=">")
        with DCDTrajectory(path) as traj:
            assert traj.n_frames == len(frames)
            assert traj.read_frame(3)
            np.testing.assert_allclose(traj.coords(), frames[3], atol=1e-5)

    def test_no_cell_without_flag(self, temp_dir, frames):
        path = write_dcd(temp_dir / "nobox.dcd", frames)
        with DCDTrajectory(path) as traj:
            assert not traj.has_periodic_box
            assert traj.periodic_box() is None

    def test_frame_count_from_file_size(self, temp_dir, frames, caplog):
        path = write_dcd(temp_dir / "nset.dcd", frames, nset=99)
        with DCDTrajectory(path) as traj:
            assert traj.n_frames == len(frames)
        assert "header claims 99 frames" in caplog.text

    def test_partial_trailing_frame_ignored(self, temp_dir, frames, caplog):
        path = write_dcd(temp_dir / "partial.dcd", frames)
        with open(path, "ab") as f:
            f.write(b"\x00" * 17)
        with DCDTrajectory(path) as traj:
            assert traj.n_frames == len(frames)
            assert list(traj) == list(range(len(frames)))
        assert "trailing bytes" in caplog.text

    def test_bad_marker(self, temp_dir):
        path = temp_dir / "junk.dcd"
        path.write_bytes(b"\x01\x02\x03\x04" * 40)
        with pytest.raises(TrajectoryFormatError):
            DCDTrajectory(path)

    def test_too_short(self, temp_dir):
        path = temp_dir / "empty.dcd"
        path.write_bytes(b"")
        with pytest.raises(TrajectoryFormatError):
            DCDTrajectory(path)

    def test_truncated_header(self, temp_dir, frames):
        full = write_dcd(temp_dir / "full.dcd", frames).read_bytes()
        path = temp_dir / "cut.dcd"
        path.write_bytes(full[:120])
        with pytest.raises(TrajectoryFormatError):
            DCDTrajectory(path)

    def test_no_frames_is_format_error(self, temp_dir, frames):
        full = write_dcd(temp_dir / "full.dcd", frames[:1]).read_bytes()
        path = temp_dir / "headeronly.dcd"
        n_atoms = frames.shape[1]
        path.write_bytes(full[: len(full) - 3 * (4 * n_atoms + 8)])
        with pytest.raises(TrajectoryFormatError):
            DCDTrajectory(path)

    def test_corrupt_frame_record(self, temp_dir, frames):
        path = write_dcd(temp_dir / "corrupt.dcd", frames)
        data = bytearray(path.read_bytes())
        n_atoms = frames.shape[1]
        frame_size = 3 * (4 * n_atoms + 8)
        # Overwrite the leading marker of frame 2.
        offset = len(data) - 3 * frame_size
        data[offset:offset + 4] = (12345).to_bytes(4, "little")
        path.write_bytes(bytes(data))
        with DCDTrajectory(path) as traj:
            with pytest.raises(TrajectoryReadError):
                traj.read_frame(2)

    def test_borrowed_binary_stream(self, dcd_file, frames):
        with open(dcd_file, "rb") as handle:
            traj = DCDTrajectory(handle)
            traj.read_frame(1)
            np.testing.assert_allclose(traj.coords(), frames[1], atol=1e-5)
            traj.close()
            assert not handle.closed


class TestPDB:
    """PDB models and multi-model trajectories."""

    def test_read_system(self, model_file, frames):
        model = create_system(model_file)
        assert len(model) == frames.shape[1]
        np.testing.assert_array_equal(model.ids, np.arange(1, 11))
        assert model.names[:5] == ["N", "CA", "C", "O", "CB"]
        assert model.resnames[0] == "ALA"
        assert model.resnames[5] == "GLY"
        assert model.resids[9] == 2
        assert model.segids[0] == "PROT"
        np.testing.assert_allclose(model.positions, frames[0], atol=1e-3)
        np.testing.assert_allclose(model.box.lengths, [30.0, 31.0, 32.0])

    def test_system_reads_first_model_only(self, pdb_traj_file, frames):
        model = create_system(pdb_traj_file)
        assert len(model) == frames.shape[1]

    def test_trajectory(self, pdb_traj_file, frames):
        with PDBTrajectory(pdb_traj_file, timestep=2.0) as traj:
            assert traj.n_frames == len(frames)
            assert traj.timestep == 2.0
            assert traj.has_periodic_box
            assert traj.read_frame(4)
            np.testing.assert_allclose(traj.coords(), frames[4], atol=1e-3)
            np.testing.assert_allclose(traj.periodic_box().lengths, [30.0, 31.0, 32.0])

    def test_single_model_file(self, model_file, frames):
        with PDBTrajectory(model_file) as traj:
            assert traj.n_frames == 1
            assert traj.read_frame()
            assert not traj.read_frame()

    def test_model_atom_count_mismatch(self, temp_dir, frames):
        path = write_pdb(temp_dir / "ragged.pdb", frames[:2])
        lines = path.read_text().splitlines(keepends=True)
        # Drop the last atom of the second model.
        last_atom = max(i for i, line in enumerate(lines) if line.startswith("ATOM"))
        del lines[last_atom]
        path.write_text("".join(lines))
        with PDBTrajectory(path) as traj:
            assert traj.read_frame()
            with pytest.raises(TrajectoryReadError):
                traj.read_frame(1)

    def test_no_atoms(self, temp_dir):
        path = temp_dir / "empty.pdb"
        path.write_text("REMARK nothing\nEND\n")
        with pytest.raises(TrajectoryFormatError):
            PDBTrajectory(path)
        with pytest.raises(TrajectoryFormatError):
            create_system(path)


class TestXYZ:
    """XYZ structures and trajectories."""

    def test_trajectory(self, xyz_file, frames):
        with XYZTrajectory(xyz_file) as traj:
            assert traj.n_atoms == frames.shape[1]
            assert traj.n_frames == len(frames)
            assert traj.timestep == 1.0
            assert not traj.has_periodic_box
            for i in traj:
                np.testing.assert_allclose(traj.coords(), frames[i])

    def test_lattice(self, temp_dir, frames):
        lattice = np.diag([12.0, 13.0, 14.0])
        path = write_xyz(temp_dir / "ext.xyz", frames, lattice=lattice)
        with XYZTrajectory(path) as traj:
            assert traj.has_periodic_box
            np.testing.assert_allclose(traj.periodic_box().vectors, lattice)

    def test_system(self, xyz_file, frames):
        model = create_system(xyz_file)
        np.testing.assert_array_equal(model.ids, np.arange(1, frames.shape[1] + 1))
        assert set(model.names) == {"C"}
        np.testing.assert_allclose(model.positions, frames[0])

    def test_bad_count_line(self, temp_dir):
        path = temp_dir / "bad.xyz"
        path.write_text("three\ncomment\nC 0 0 0\n")
        with pytest.raises(TrajectoryFormatError):
            XYZTrajectory(path)

    def test_changing_atom_count(self, temp_dir):
        path = temp_dir / "ragged.xyz"
        path.write_text("1\nf0\nC 0 0 0\n2\nf1\nC 0 0 0\nC 1 1 1\n")
        with XYZTrajectory(path) as traj:
            assert traj.n_frames == 2
            with pytest.raises(TrajectoryReadError):
                traj.read_frame(1)

    def test_malformed_first_frame(self, temp_dir):
        path = temp_dir / "broken.xyz"
        path.write_text("2\ncomment\nC 0 0 0\nC 1 x 1\n")
        with pytest.raises(TrajectoryFormatError):
            XYZTrajectory(path)

    def test_text_stream(self):
        buffer = io.StringIO("2\nframe\nC 0 0 0\nO 1 2 3\n")
        traj = XYZTrajectory(buffer)
        np.testing.assert_allclose(traj.coords()[1], [1.0, 2.0, 3.0])
        traj.close()
        assert not buffer.closed


class TestFactory:
    """Format dispatch by suffix."""

    def test_dispatch(self, dcd_file, pdb_traj_file, xyz_file):
        assert isinstance(create_trajectory(dcd_file), DCDTrajectory)
        assert isinstance(create_trajectory(pdb_traj_file), PDBTrajectory)
        assert isinstance(create_trajectory(xyz_file), XYZTrajectory)

    def test_explicit_format(self, temp_dir, frames):
        path = write_dcd(temp_dir / "traj.bin", frames)
        traj = create_trajectory(path, fmt="DCD")
        assert isinstance(traj, DCDTrajectory)
        traj.close()

    def test_unknown_format(self, temp_dir):
        with pytest.raises(TrajectoryFormatError, match="unsupported format"):
            create_trajectory(temp_dir / "traj.trr")
        with pytest.raises(TrajectoryFormatError):
            create_system(temp_dir / "model.dcd")

    def test_model_larger_than_frames(self, temp_dir):
        path = write_dcd(temp_dir / "small.dcd", make_frames(n_atoms=4))
        model = AtomGroup(ids=np.arange(1, 9))
        with pytest.raises(AtomCountMismatchError):
            create_trajectory(path, model)

    def test_model_fits(self, dcd_file, model_file):
        model = create_system(model_file)
        traj = create_trajectory(dcd_file, model)
        traj.update_group_coords(model)
        assert model.box is not None
        traj.close()

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileOpenError):
            create_trajectory(temp_dir / "nope.dcd")
        with pytest.raises(FileOpenError):
            create_system(temp_dir / "nope.pdb")
