"""Writers for small trajectory files used across the tests."""

import struct
from pathlib import Path

import numpy as np


NAMES = ["N", "CA", "C", "O", "CB"]


def write_xyz(path, frames, lattice=None):
    """Write frames (F, N, 3) as a multi-frame XYZ file."""
    with open(path, "w") as f:
        for k, frame in enumerate(frames):
            f.write(f"{len(frame)}\n")
            if lattice is not None:
                values = " ".join(f"{v:.6f}" for v in np.asarray(lattice).reshape(-1))
                f.write(f'Lattice="{values}" Frame {k}\n')
            else:
                f.write(f"Frame {k}\n")
            for x, y, z in frame:
                f.write(f"C {x:.8f} {y:.8f} {z:.8f}\n")
    return Path(path)


def pdb_atom_line(serial, name, resname, resid, xyz, segid="PROT"):
    x, y, z = xyz
    return (
        f"ATOM  {serial:5d} {name:<4s} {resname:3s} A{resid:4d}    "
        f"{x:8.3f}{y:8.3f}{z:8.3f}  1.00  0.00      {segid:<4s}\n"
    )


def write_pdb(path, frames, box=None, multimodel=True):
    """Write frames (F, N, 3) as a PDB; atoms cycle through NAMES, 5 per residue."""
    with open(path, "w") as f:
        f.write("REMARK    test structure\n")
        if box is not None:
            a, b, c = box
            f.write(f"CRYST1{a:9.3f}{b:9.3f}{c:9.3f}{90.0:7.2f}{90.0:7.2f}{90.0:7.2f} P 1           1\n")
        for k, frame in enumerate(frames):
            if multimodel:
                f.write(f"MODEL     {k + 1:4d}\n")
            for i, xyz in enumerate(frame):
                name = NAMES[i % len(NAMES)]
                resid = i // len(NAMES) + 1
                resname = "ALA" if resid % 2 else "GLY"
                f.write(pdb_atom_line(i + 1, name, resname, resid, xyz))
            f.write("ENDMDL\n" if multimodel else "END\n")
        if multimodel:
            f.write("END\n")
    return Path(path)


def _record(endian, payload):
    marker = struct.pack(endian + "i", len(payload))
    return marker + payload + marker


def write_dcd(path, frames, box=None, endian="<", delta=0.5, nset=None):
    """
    Write frames (F, N, 3) as a CHARMM-style DCD.

    ``box`` (a, b, c) adds a unit-cell record to every frame; an (F, 3)
    array gives each frame its own cell.
    """
    frames = np.asarray(frames, dtype=np.float32)
    n_frames, n_atoms = frames.shape[:2]
    if box is not None:
        box = np.broadcast_to(np.asarray(box, dtype=np.float64), (n_frames, 3))
    icntrl = [0] * 20
    icntrl[0] = n_frames if nset is None else nset
    icntrl[2] = 1
    icntrl[10] = 1 if box is not None else 0
    icntrl[19] = 24
    header = b"CORD" + struct.pack(endian + "9i", *icntrl[:9])
    header += struct.pack(endian + "f", delta)
    header += struct.pack(endian + "10i", *icntrl[10:])

    title = struct.pack(endian + "i", 1) + b"test trajectory".ljust(80)

    data = _record(endian, header)
    data += _record(endian, title)
    data += _record(endian, struct.pack(endian + "i", n_atoms))
    for k, frame in enumerate(frames):
        if box is not None:
            a, b, c = box[k]
            data += _record(endian, struct.pack(endian + "6d", a, 90.0, b, 90.0, 90.0, c))
        for axis in range(3):
            data += _record(endian, frame[:, axis].astype(endian + "f4").tobytes())

    with open(path, "wb") as f:
        f.write(data)
    return Path(path)


def make_frames(n_frames=5, n_atoms=10, seed=7):
    """Deterministic random-walk frames, shape (n_frames, n_atoms, 3)."""
    rng = np.random.default_rng(seed)
    base = rng.uniform(-5.0, 5.0, (n_atoms, 3))
    steps = rng.normal(0.0, 0.3, (n_frames, n_atoms, 3))
    steps[0] = 0.0
    return np.round(base + np.cumsum(steps, axis=0), 3)
