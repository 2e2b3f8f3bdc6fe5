"""
Command-line tools.

    trajkit rmsds model.pdb simulation.dcd > rmsd.asc
    trajkit rmsds --cache 0 model.pdb simulation.dcd > rmsd.asc
    trajkit rmsds inactive.pdb inactive.dcd active.pdb active.dcd > rmsd.asc
    trajkit rmsds --sel1 'resid <= 100 && name == "CA"' model.pdb simulation.dcd
    trajkit bounding model.pdb 'name == "CA"'

There is no ``contained`` tool: checking atoms against a density grid needs
a grid file reader, which this package does not have.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from datetime import datetime
from typing import TextIO

import numpy as np
from numpy.typing import NDArray

from . import __version__, plotting
from .analysis.pairwise import PairwiseResult, pair_count, pairwise_rmsd
from .config import RMSDOptions, load_options
from .exceptions import AtomCountMismatchError, PreconditionError, TrajkitError
from .io import create_system, create_trajectory
from .progress import make_progress
from .selection import select_atoms
from .utils import frame_list

logger = logging.getLogger(__name__)

RMSDS_DESCRIPTION = """\
Calculate the pair-wise RMSD between each structure in a trajectory or,
alternatively, between each structure in two different trajectories.

In the single trajectory case, the ith structure is aligned with the jth
structure and the RMSD calculated. This is stored in a matrix, i.e.
R(j, i) = d(S_i, S_j). The block structure is indicative of sets of similar
conformations; the presence (or lack) of cross-peaks is diagnostic of the
sampling quality of a simulation.

The selected atoms of every frame are cached in memory. If the cache gets
too large the machine may swap; a warning is logged when that looks likely.
Disable the cache with --cache 0 to trade speed for memory.

When using two trajectories, the selections must match both in number of
atoms and in their order: the first atom of --sel1 is matched with the first
atom of --sel2, and so on.
"""


def invocation_header(argv: list[str]) -> str:
    """Provenance line: command, user, time and toolkit version."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    stamp = datetime.now().strftime("%a %b %d %H:%M:%S %Y")
    return f"{' '.join(argv)} - {user} ({stamp}) {{trajkit {__version__}}}"


def write_matrix(out: TextIO, matrix: NDArray[np.floating], precision: int = 2) -> None:
    """Write a matrix as space-separated rows with fixed decimals."""
    fmt = f"{{:.{precision}f}}"
    for row in matrix:
        out.write(" ".join(fmt.format(x) for x in row))
        out.write("\n")


def configure_logging(verbosity: int) -> None:
    """Map the verbosity option onto a logging level."""
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def run_rmsds(
    options: RMSDOptions,
    out: TextIO | None = None,
    header: str | None = None,
) -> PairwiseResult:
    """
    Run the pairwise RMSD tool with resolved options.

    Args:
        options: Tool options.
        out: Destination for the matrix (default: stdout).
        header: Provenance line written before the matrix.

    Returns:
        The computed PairwiseResult.
    """
    out = out if out is not None else sys.stdout
    options.validate()
    logger.debug("Options: %s", options.describe())

    model1 = create_system(options.model1)
    subset1 = select_atoms(model1, options.sel1)
    logger.info("Selected %d atoms from %s", len(subset1), options.model1)

    traj2 = subset2 = frames2 = None
    if options.two_systems:
        model2 = create_system(options.model2)
        subset2 = select_atoms(model2, options.sel2)
        logger.info("Selected %d atoms from %s", len(subset2), options.model2)
        if len(subset1) != len(subset2):
            raise AtomCountMismatchError(
                len(subset1), len(subset2), context="selections of the two systems"
            )

    traj1 = create_trajectory(options.traj1, model1)
    try:
        frames1 = frame_list(traj1.n_frames, options.skip1, options.range1)
        if options.two_systems:
            traj2 = create_trajectory(options.traj2, model2)
            frames2 = frame_list(traj2.n_frames, options.skip2, options.range2)

        if not frames1 or (frames2 is not None and not frames2):
            raise PreconditionError("No frames left to compare")

        total = pair_count(len(frames1), len(frames2) if frames2 is not None else None)
        progress = make_progress(total, options.verbosity, options.progress_bar)

        result = pairwise_rmsd(
            traj1,
            subset1,
            frames1,
            traj2=traj2,
            subset2=subset2,
            frames2=frames2,
            cache=options.cache,
            progress=progress,
            n_workers=options.workers,
        )
    finally:
        traj1.close()
        if traj2 is not None:
            traj2.close()

    stats = result.summary()
    logger.info(
        "RMSD over %d pairs: mean %.4f, std %.4f, min %.4f, max %.4f",
        stats["n_pairs"],
        stats["mean"],
        stats["std"],
        stats["min"],
        stats["max"],
    )

    if header is not None:
        out.write(f"# {header}\n")
    if options.noout:
        out.write(
            "# n_pairs={n_pairs} mean={mean:.4f} std={std:.4f} min={min:.4f} "
            "max={max:.4f}\n".format(**stats)
        )
    else:
        write_matrix(out, result.matrix, options.precision)

    if options.plot:
        plotting.rmsd_matrix(result, show=False)
        plotting.save(options.plot)
        plotting.close()

    return result


def run_bounding(model_file: str, selection: str, out: TextIO | None = None) -> None:
    """Report size, centroid and bounding box of a selection."""
    out = out if out is not None else sys.stdout
    subset = select_atoms(create_system(model_file), selection)
    low, high = subset.bounding_box()
    out.write(f"{len(subset)} atoms in subset.\n")
    out.write(f"Centroid at {_format_coord(subset.centroid())}\n")
    out.write(f"Bounds: {_format_coord(low)} x {_format_coord(high)}\n")


def _format_coord(c: NDArray[np.floating]) -> str:
    return f"({c[0]:.3f},{c[1]:.3f},{c[2]:.3f})"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trajkit", description="Molecular dynamics trajectory analysis tools."
    )
    parser.add_argument("--version", action="version", version=f"trajkit {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    rmsds = subparsers.add_parser(
        "rmsds",
        help="Pair-wise RMSD within one trajectory or between two",
        description=RMSDS_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    rmsds.add_argument(
        "files",
        nargs="*",
        metavar="FILE",
        help="model-1 trajectory-1 [model-2 trajectory-2]",
    )
    rmsds.add_argument("--config", help="YAML option file")
    rmsds.add_argument("--sel1", help="Atom selection for first system (default: name == 'CA')")
    rmsds.add_argument("--skip1", type=int, help="Skip n frames of first trajectory")
    rmsds.add_argument("--range1", help="Matlab-style range of frames to use from first trajectory")
    rmsds.add_argument("--sel2", help="Atom selection for second system (default: name == 'CA')")
    rmsds.add_argument("--skip2", type=int, help="Skip n frames of second trajectory")
    rmsds.add_argument("--range2", help="Matlab-style range of frames to use from second trajectory")
    rmsds.add_argument(
        "--cache", type=int, choices=(0, 1), help="Cache coordinates in memory (default: 1)"
    )
    rmsds.add_argument(
        "-N", "--noout", action="store_true", default=None,
        help="Do not output the matrix (only pair-wise RMSD statistics)",
    )
    rmsds.add_argument("--precision", type=int, help="Decimal places in the matrix (default: 2)")
    rmsds.add_argument("--workers", type=int, help="Worker threads (cached mode only)")
    rmsds.add_argument("--plot", help="Also save a heatmap of the matrix to this file")
    rmsds.add_argument(
        "--progress-bar", action="store_true", default=None, help="Show a progress bar"
    )
    rmsds.add_argument(
        "-v", "--verbosity", type=int, help="0 = warnings only, 1 = progress, 2 = debug"
    )

    bounding = subparsers.add_parser(
        "bounding", help="Size, centroid and bounding box of a selection"
    )
    bounding.add_argument("model", help="Structure file")
    bounding.add_argument("selection", help="Atom selection")
    bounding.add_argument("-v", "--verbosity", type=int, default=0)

    return parser


def _options_from_args(args: argparse.Namespace) -> RMSDOptions:
    if len(args.files) not in (0, 2, 4):
        raise PreconditionError(
            "Expected model-1 trajectory-1 [model-2 trajectory-2], "
            f"got {len(args.files)} file arguments"
        )
    files = dict(zip(("model1", "traj1", "model2", "traj2"), args.files))
    return load_options(
        args.config,
        sel1=args.sel1,
        skip1=args.skip1,
        range1=args.range1,
        sel2=args.sel2,
        skip2=args.skip2,
        range2=args.range2,
        cache=None if args.cache is None else bool(args.cache),
        noout=args.noout,
        precision=args.precision,
        workers=args.workers,
        plot=args.plot,
        progress_bar=args.progress_bar,
        verbosity=args.verbosity,
        **files,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``trajkit`` command."""
    argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(argv)

    try:
        if args.command == "bounding":
            configure_logging(args.verbosity)
            run_bounding(args.model, args.selection)
            return 0

        options = _options_from_args(args)
        configure_logging(options.verbosity)
        run_rmsds(options, header=invocation_header(["trajkit", *argv]))
    except (TrajkitError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
