"""
Options for the pairwise RMSD tool.

Options come from three layers, later ones winning: built-in defaults, an
optional YAML file, then command-line flags. A YAML file mirrors
:data:`DEFAULT_CONFIG`::

    system1:
      model: inactive.pdb
      trajectory: inactive.dcd
      selection: "resid <= 50 && name == 'CA'"
    system2:
      model: active.pdb
      trajectory: active.dcd
      selection: "resid >= 20 && resid <= 69 && name == 'CA'"
    compute:
      cache: true
      workers: 4
    output:
      precision: 3
"""

from __future__ import annotations

import copy
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import PreconditionError

logger = logging.getLogger(__name__)

DEFAULT_SELECTION = "name == 'CA'"

DEFAULT_CONFIG: dict[str, Any] = {
    "system1": {
        "model": None,
        "trajectory": None,
        "selection": DEFAULT_SELECTION,
        "skip": 0,
        "range": None,
    },
    "system2": {
        "model": None,
        "trajectory": None,
        "selection": DEFAULT_SELECTION,
        "skip": 0,
        "range": None,
    },
    "compute": {"cache": True, "workers": 1},
    "output": {"noout": False, "precision": 2, "plot": None, "progress_bar": False},
    "verbosity": 1,
}


def update_dict_recursively(base_dict: dict, update_with: dict) -> dict:
    """
    Recursively update a dictionary with another dictionary.

    Args:
        base_dict: Base dictionary to update
        update_with: Dictionary containing updates

    Returns:
        Updated dictionary
    """
    for k, v_update in update_with.items():
        if isinstance(v_update, dict) and k in base_dict and isinstance(base_dict[k], dict):
            update_dict_recursively(base_dict[k], v_update)
        else:
            base_dict[k] = v_update
    return base_dict


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise PreconditionError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PreconditionError(f"{name} must be an integer, got {value!r}") from exc


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise PreconditionError(f"{name} must be true or false, got {value!r}")
    return value


def _as_range(value: Any) -> str | None:
    # YAML reads a bare "7" as an int
    return None if value is None else str(value)


@dataclass
class RMSDOptions:
    """Resolved options for one pairwise RMSD run."""

    model1: str | None = None
    traj1: str | None = None
    sel1: str = DEFAULT_SELECTION
    skip1: int = 0
    range1: str | None = None
    model2: str | None = None
    traj2: str | None = None
    sel2: str = DEFAULT_SELECTION
    skip2: int = 0
    range2: str | None = None
    cache: bool = True
    workers: int = 1
    noout: bool = False
    precision: int = 2
    plot: str | None = None
    progress_bar: bool = False
    verbosity: int = 1

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> RMSDOptions:
        """
        Options from a merged configuration mapping.

        Raises:
            PreconditionError: If a section is not a mapping or a value has
                the wrong type.
        """
        for section in ("system1", "system2", "compute", "output"):
            if not isinstance(config[section], dict):
                raise PreconditionError(f"Configuration section '{section}' must be a mapping")
        s1, s2 = config["system1"], config["system2"]
        compute, output = config["compute"], config["output"]
        return cls(
            model1=s1["model"],
            traj1=s1["trajectory"],
            sel1=s1["selection"],
            skip1=_as_int(s1["skip"], "system1.skip"),
            range1=_as_range(s1["range"]),
            model2=s2["model"],
            traj2=s2["trajectory"],
            sel2=s2["selection"],
            skip2=_as_int(s2["skip"], "system2.skip"),
            range2=_as_range(s2["range"]),
            cache=_as_bool(compute["cache"], "compute.cache"),
            workers=_as_int(compute["workers"], "compute.workers"),
            noout=_as_bool(output["noout"], "output.noout"),
            precision=_as_int(output["precision"], "output.precision"),
            plot=output["plot"],
            progress_bar=_as_bool(output["progress_bar"], "output.progress_bar"),
            verbosity=_as_int(config["verbosity"], "verbosity"),
        )

    @property
    def two_systems(self) -> bool:
        """Whether a second model or trajectory is set."""
        return self.model2 is not None or self.traj2 is not None

    def validate(self) -> None:
        """
        Check the options are complete and consistent.

        Raises:
            PreconditionError: On missing or contradictory options.
        """
        if not (self.model1 and self.traj1):
            raise PreconditionError("A model and a trajectory are required")
        if bool(self.model2) != bool(self.traj2):
            raise PreconditionError("The second system needs both a model and a trajectory")
        if self.skip1 < 0 or self.skip2 < 0:
            raise PreconditionError("Frame skips must be non-negative")
        if self.workers < 1:
            raise PreconditionError(f"workers must be at least 1, got {self.workers}")
        if self.workers > 1 and not self.cache:
            raise PreconditionError("Multiple workers require the coordinate cache")
        if self.precision < 0:
            raise PreconditionError(f"precision must be non-negative, got {self.precision}")

    def describe(self) -> str:
        """One-line summary of all options, for logs and headers."""
        return ",".join(f"{k}={v!r}" for k, v in asdict(self).items())


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """
    Defaults merged with an optional YAML file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        PreconditionError: If the file is not a YAML mapping.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return config

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", config_path)
    with config_path.open() as f:
        try:
            user_cfg = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise PreconditionError(f"Invalid YAML in {path}: {exc}") from exc
    if user_cfg is None:
        return config
    if not isinstance(user_cfg, dict):
        raise PreconditionError(f"Configuration in {path} must be a mapping")
    return update_dict_recursively(config, user_cfg)


def load_options(path: str | Path | None = None, **overrides: Any) -> RMSDOptions:
    """
    Build options from defaults, an optional YAML file and overrides.

    Overrides use :class:`RMSDOptions` field names; None values are ignored
    so unset command-line flags do not mask the file.
    """
    options = RMSDOptions.from_config(load_config(path))
    for name, value in overrides.items():
        if value is None:
            continue
        if not hasattr(options, name):
            raise PreconditionError(f"Unknown option '{name}'")
        setattr(options, name, value)
    return options
